"""CHIP-8 virtual machine package."""

from chipvm.state import EmulatorState, Quirks, create_state
from chipvm.emulator import execute, fetch, step, load_rom, read_rom, reset, run_instructions, tick_timers
from chipvm.decode import DecodedInstruction, decode
from chipvm.constants import *
from chipvm.errors import (
    ChipVMError, LoadError, TooLarge, Unreadable,
    ExecutionError, StackOverflow, StackUnderflow, CorruptedFetch,
)
from chipvm.config import MachineConfig
from chipvm.input import InputLatch
from chipvm.machine import Machine, MachineStatus, Snapshot
from chipvm.disassembler import disassemble, disassemble_program

__all__ = [
    "EmulatorState",
    "Quirks",
    "create_state",
    "fetch",
    "execute",
    "step",
    "load_rom",
    "read_rom",
    "reset",
    "run_instructions",
    "tick_timers",
    "DecodedInstruction",
    "decode",
    "PROGRAM_START",
    "FONT_START",
    "SCREEN_WIDTH",
    "SCREEN_HEIGHT",
    "ChipVMError",
    "LoadError",
    "TooLarge",
    "Unreadable",
    "ExecutionError",
    "StackOverflow",
    "StackUnderflow",
    "CorruptedFetch",
    "MachineConfig",
    "InputLatch",
    "Machine",
    "MachineStatus",
    "Snapshot",
    "disassemble",
    "disassemble_program",
]
