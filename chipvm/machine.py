"""Host-side machine: lifecycle, fixed-rate scheduling and snapshots.

The pure functions in ``chipvm.emulator`` operate on immutable states. The
``Machine`` owns the current state, merges the input latch once per tick,
spends the per-tick instruction budget, decrements the timers and turns fault
codes recorded by the engine into exceptions.
"""

import enum
import os
import time
from typing import Callable, Optional

import jax
import numpy as np
from flax.struct import dataclass, field

from chipvm.config import MachineConfig
from chipvm.constants import NO_ERROR
from chipvm.disassembler import disassemble
from chipvm.emulator import (
    RomSource, read_rom, load_rom, reset, run_instructions, tick_timers, set_keypad, clear_fault,
)
from chipvm.errors import LoadError, error_from_code
from chipvm.input import InputLatch
from chipvm.logging import MachineLogger, build_tqdm_progress_bar
from chipvm.state import EmulatorState, Quirks, create_state


class MachineStatus(enum.Enum):
    PAUSED = "paused"
    RUNNING = "running"
    FAULTED = "faulted"
    QUIT = "quit"


@dataclass(frozen=True)
class Snapshot:
    """Read-only copy of the machine for presentation and inspection."""
    memory: np.ndarray
    display: np.ndarray
    V: np.ndarray
    I: int
    pc: int
    stack: np.ndarray
    stack_depth: int
    delay_timer: int
    sound_timer: int
    keypad: np.ndarray
    last_opcode: int
    instructions_executed: int
    unknown_opcodes: int
    waiting_for_key: bool
    error: int
    status: MachineStatus = field(pytree_node=False)
    rom: Optional[str] = field(pytree_node=False, default=None)
    quirks: Quirks = field(pytree_node=False, default=Quirks())

    @property
    def last_instruction(self) -> str:
        """Mnemonic of the last executed instruction, as the configured quirks execute it."""
        return disassemble(self.last_opcode, self.quirks)


def _rom_identifier(source: RomSource) -> str:
    if isinstance(source, (bytes, bytearray)):
        return "<bytes>"
    return os.fspath(source)


class Machine:
    """A single CHIP-8 machine driven at a fixed tick rate.

    Args:
        config: Engine configuration (display size, clock rate, quirks, seed)
        logger: Logger for lifecycle events; a MachineLogger is created if omitted
    """

    def __init__(self, config: Optional[MachineConfig] = None, logger: Optional[MachineLogger] = None):
        self.config = config if config is not None else MachineConfig()
        self.logger = logger if logger is not None else MachineLogger()
        self.input = InputLatch()
        self.state: EmulatorState = create_state(
            jax.random.PRNGKey(self.config.seed),
            width=self.config.display_width,
            height=self.config.display_height,
            quirks=self.config.quirks,
        )
        self.status = MachineStatus.PAUSED
        self.rom: Optional[str] = None
        self.ticks = 0
        self._rom_source: Optional[RomSource] = None

    @property
    def instructions_per_tick(self) -> int:
        return self.config.instructions_per_tick

    @property
    def running(self) -> bool:
        """False once the machine has been asked to quit."""
        return self.status is not MachineStatus.QUIT

    def _set_status(self, status: MachineStatus):
        self.logger.log_status(self.status, status)
        self.status = status

    # Lifecycle

    def load_rom(self, source: RomSource):
        """Load a program image and start running it.

        Raises:
            TooLarge: ROM exceeds the program area
            Unreadable: source cannot be read
            RuntimeError: the machine has quit
        """
        if self.status is MachineStatus.QUIT:
            raise RuntimeError("Machine has quit")
        rom_id = _rom_identifier(source)
        try:
            rom_data = read_rom(source)
            state = load_rom(self.state, rom_data)
        except LoadError as e:
            self.logger.log_load_failed(rom_id, e)
            raise

        self.state = state
        self.rom = rom_id
        self._rom_source = source
        self.logger.log_rom_loaded(rom_id, len(rom_data))
        self._set_status(MachineStatus.RUNNING)

    def reload(self):
        """Load the last ROM again."""
        if self._rom_source is None:
            raise RuntimeError("No ROM has been loaded")
        self.load_rom(self._rom_source)

    def reset(self):
        """Back to power-on state (font only) and pause. The ROM is not reloaded.

        A machine that has quit stays quit.
        """
        self.state = reset(self.state)
        self.ticks = 0
        self.logger.info("Machine reset")
        if self.status is not MachineStatus.QUIT:
            self._set_status(MachineStatus.PAUSED)

    def pause(self):
        if self.status is MachineStatus.RUNNING:
            self._set_status(MachineStatus.PAUSED)

    def resume(self):
        """Continue running; a faulted machine has its fault cleared first."""
        if self.status is MachineStatus.QUIT:
            return
        if self.status is MachineStatus.FAULTED:
            self.state = clear_fault(self.state)
        self._set_status(MachineStatus.RUNNING)

    def toggle_pause(self):
        if self.status is MachineStatus.RUNNING:
            self.pause()
        else:
            self.resume()

    def quit(self):
        self._set_status(MachineStatus.QUIT)

    # Scheduling

    def _merge_input(self):
        self.state = set_keypad(self.state, self.input.snapshot())

    def _check_fault(self):
        code = int(self.state.error)
        if code == NO_ERROR:
            return
        self._set_status(MachineStatus.FAULTED)
        error = error_from_code(code, int(self.state.pc))
        self.logger.log_fault(error, int(self.state.instructions_executed))
        raise error

    def tick(self) -> Snapshot:
        """One fixed-rate tick: merge input, run the instruction budget, decrement timers.

        Raises:
            ExecutionError: an instruction faulted; the machine is now FAULTED
        """
        if self.status is MachineStatus.QUIT:
            return self.snapshot()

        self._merge_input()
        if self.status is MachineStatus.RUNNING:
            state = run_instructions(self.state, self.instructions_per_tick)
            self.state = tick_timers(state)
            self.ticks += 1
            self._check_fault()
        return self.snapshot()

    def step(self) -> Snapshot:
        """Debug single-step: execute exactly one instruction, then pause.

        Does nothing on a faulted or quit machine.
        """
        if self.status in (MachineStatus.FAULTED, MachineStatus.QUIT):
            return self.snapshot()

        self._merge_input()
        self.state = run_instructions(self.state, 1)
        self._set_status(MachineStatus.PAUSED)
        self._check_fault()
        return self.snapshot()

    def run(
        self,
        ticks: int,
        progress: bool = False,
        on_tick: Optional[Callable[[Snapshot], None]] = None,
    ) -> Snapshot:
        """Run up to ``ticks`` ticks back to back (headless, not real time).

        Stops early when the machine quits. Faults propagate.
        """
        start = time.time()
        executed_before = int(self.state.instructions_executed)
        progress_bar = build_tqdm_progress_bar(ticks) if progress else None
        snapshot = self.snapshot()
        ran = 0
        try:
            for _ in range(ticks):
                if not self.running:
                    break
                snapshot = self.tick()
                ran += 1
                if on_tick is not None:
                    on_tick(snapshot)
                if progress_bar is not None:
                    progress_bar.update(1)
        finally:
            if progress_bar is not None:
                progress_bar.close()

        self.logger.log_run_summary(
            ran,
            int(self.state.instructions_executed) - executed_before,
            int(self.state.unknown_opcodes),
            time.time() - start,
        )
        return snapshot

    # Inspection

    def snapshot(self) -> Snapshot:
        state = jax.device_get(self.state)
        depth = int(state.stack.pointer)
        return Snapshot(
            memory=np.array(state.memory),
            display=np.array(state.display),
            V=np.array(state.V),
            I=int(state.I),
            pc=int(state.pc),
            stack=np.array(state.stack.data[:depth]),
            stack_depth=depth,
            delay_timer=int(state.delay_timer),
            sound_timer=int(state.sound_timer),
            keypad=np.array(state.keypad),
            last_opcode=int(state.last_opcode),
            instructions_executed=int(state.instructions_executed),
            unknown_opcodes=int(state.unknown_opcodes),
            waiting_for_key=bool(state.waiting_for_key),
            error=int(state.error),
            status=self.status,
            rom=self.rom,
            quirks=state.quirks,
        )
