"""Main CHIP-8 emulator execution engine."""

import os
from functools import partial
from typing import Union

import jax
import jax.lax
import jax.numpy as jnp
from chipvm.state import EmulatorState, StackState, create_state, fault
from chipvm.decode import decode
from chipvm.constants import (
    PROGRAM_START, MEMORY_SIZE, MAX_ROM_SIZE, NO_ERROR, ERROR_CORRUPTED_FETCH, NUM_KEYS,
)
from chipvm.errors import TooLarge, Unreadable
from chipvm.instructions.system import execute_system_instruction
from chipvm.instructions.control_flow import (
    execute_jump, execute_call, execute_skip_if_equal_immediate,
    execute_skip_if_not_equal_immediate, execute_skip_if_equal_register,
    execute_skip_if_not_equal_register, execute_jump_with_offset,
    execute_jump_with_offset_vx, execute_skip_if_key
)
from chipvm.instructions.alu import execute_alu_operation
from chipvm.instructions.memory import execute_set, execute_add, execute_set_index, execute_random
from chipvm.instructions.display import execute_display
from chipvm.instructions.misc import execute_misc_instruction, resume_wait_for_key

RomSource = Union[str, os.PathLike, bytes, bytearray]


def execute(state: EmulatorState, instruction: int) -> EmulatorState:
    """Execute single CHIP-8 instruction."""
    decoded_instruction = decode(instruction)

    return jax.lax.switch(
        decoded_instruction.family,
        [
            execute_system_instruction,
            execute_jump,
            execute_call,
            execute_skip_if_equal_immediate,
            execute_skip_if_not_equal_immediate,
            execute_skip_if_equal_register,
            execute_set,
            execute_add,
            execute_alu_operation,
            execute_skip_if_not_equal_register,
            execute_set_index,
            execute_jump_with_offset_vx if state.quirks.jump_uses_vx else execute_jump_with_offset,
            execute_random,
            execute_display,
            execute_skip_if_key,
            execute_misc_instruction,
        ],
        state, decoded_instruction
    )


def _pack_u16(high: jnp.uint8, low: jnp.uint8) -> jnp.uint16:
    """Pack two bytes into uint16."""
    return (high.astype(jnp.uint16) << 8) | low.astype(jnp.uint16)


def fetch(state: EmulatorState) -> tuple[EmulatorState, jnp.uint16]:
    """Fetch next instruction from memory.

    When PC + 1 is outside memory nothing is read, PC stays put and the state
    is faulted with a corrupted fetch.
    """
    in_bounds = jnp.astype(state.pc, jnp.int32) + 1 < MEMORY_SIZE
    pc = jnp.where(in_bounds, state.pc, 0)
    instruction = jnp.where(in_bounds, _pack_u16(state.memory[pc], state.memory[pc + 1]), 0)
    state = state.replace(
        pc=jnp.where(in_bounds, state.pc + 2, state.pc).astype(jnp.uint16),
        error=jnp.where(in_bounds, state.error, ERROR_CORRUPTED_FETCH).astype(jnp.uint8),
    )
    return state, instruction.astype(jnp.uint16)


def _fetch_and_execute(state: EmulatorState) -> EmulatorState:
    state, instruction = fetch(state)

    def run(state):
        state = execute(state, instruction)
        succeeded = jnp.astype(state.error == NO_ERROR, jnp.uint32)
        return state.replace(
            last_opcode=instruction,
            instructions_executed=state.instructions_executed + succeeded,
        )

    return jax.lax.cond(state.error == NO_ERROR, run, lambda state: state, state)


def step(state: EmulatorState) -> EmulatorState:
    """Advance the machine by one instruction.

    A machine waiting for a key (FX0A) only checks the keypad; the next
    instruction runs on the following step.
    """
    return jax.lax.cond(state.waiting_for_key, resume_wait_for_key, _fetch_and_execute, state)


def is_blocked(state: EmulatorState) -> jnp.ndarray:
    """True while waiting for a key that is not pressed yet."""
    return state.waiting_for_key & ~jnp.any(state.keypad)


@jax.jit
def run_instructions(state: EmulatorState, n: int) -> EmulatorState:
    """Run up to ``n`` steps, stopping early on a fault or an unsatisfied key wait."""
    def cond_fn(carry):
        count, state = carry
        return (count < n) & (state.error == NO_ERROR) & ~is_blocked(state)

    def body_fn(carry):
        count, state = carry
        return count + 1, step(state)

    _, state = jax.lax.while_loop(cond_fn, body_fn, (jnp.zeros((), dtype=jnp.int32), state))
    return state


@jax.jit
def tick_timers(state: EmulatorState) -> EmulatorState:
    """Decrement delay and sound timers once, floored at zero."""
    def decrement(timer):
        return jnp.where(timer > 0, timer - 1, 0).astype(jnp.uint8)

    return state.replace(
        delay_timer=decrement(state.delay_timer),
        sound_timer=decrement(state.sound_timer),
    )


def set_keypad(state: EmulatorState, keys) -> EmulatorState:
    """Replace the keypad with a 16-element pressed/released snapshot."""
    keypad = jnp.asarray(keys, dtype=jnp.bool_)
    if keypad.shape != (NUM_KEYS,):
        raise ValueError(f"Expected {NUM_KEYS} key states, got shape {keypad.shape}")
    return state.replace(keypad=keypad)


def read_rom(source: RomSource) -> bytes:
    """Read ROM bytes from a path, or pass raw bytes through."""
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)
    try:
        with open(source, 'rb') as f:
            return f.read()
    except OSError as e:
        raise Unreadable(source, e.strerror or str(e)) from e


def load_rom(state: EmulatorState, rom: RomSource) -> EmulatorState:
    """Load ROM data into CHIP-8 memory starting at 0x200.

    The program area is cleared, PC points at 0x200 and stack, timers, keypad
    and key-wait state are reset. Registers and I keep their values.
    """
    rom_data = read_rom(rom)
    if len(rom_data) > MAX_ROM_SIZE:
        raise TooLarge(len(rom_data))

    rom_array = jnp.array(list(rom_data), dtype=jnp.uint8)
    new_memory = state.memory.at[PROGRAM_START:].set(0)
    new_memory = new_memory.at[PROGRAM_START:PROGRAM_START + len(rom_data)].set(rom_array)
    return state.replace(
        memory=new_memory,
        pc=jnp.astype(PROGRAM_START, jnp.uint16),
        stack=StackState(),
        delay_timer=jnp.zeros((), dtype=jnp.uint8),
        sound_timer=jnp.zeros((), dtype=jnp.uint8),
        keypad=jnp.zeros_like(state.keypad),
        waiting_for_key=jnp.zeros((), dtype=jnp.bool_),
        key_register=jnp.zeros((), dtype=jnp.uint8),
        error=jnp.zeros((), dtype=jnp.uint8),
    )


def reset(state: EmulatorState) -> EmulatorState:
    """Return to power-on state, keeping display geometry, quirks and RNG key."""
    return create_state(
        state.rng,
        width=state.display_width,
        height=state.display_height,
        quirks=state.quirks,
    )


def clear_fault(state: EmulatorState) -> EmulatorState:
    return fault(state, NO_ERROR)
