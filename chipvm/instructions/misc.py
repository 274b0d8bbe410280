"""CHIP-8 miscellaneous instructions (Fxxx)."""

import jax
import jax.lax
import jax.numpy as jnp
from chipvm.state import EmulatorState
from chipvm.decode import DecodedInstruction
from chipvm.constants import FONT_START, FONT_GLYPH_SIZE, NUM_REGISTERS
from chipvm.instructions.system import unknown_instruction


def execute_get_delay_timer(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX07 - Set VX to delay timer value."""
    return state.replace(V=state.V.at[instruction.x].set(state.delay_timer))


def execute_set_delay_timer(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX15 - Set delay timer to VX."""
    return state.replace(delay_timer=state.V[instruction.x])


def execute_set_sound_timer(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX18 - Set sound timer to VX."""
    return state.replace(sound_timer=state.V[instruction.x])


def execute_add_to_index(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX1E - Add VX to I register. No flag, no 12-bit wrap."""
    return state.replace(I=jnp.astype(state.I + state.V[instruction.x], jnp.uint16))


def first_pressed_key(keypad: jnp.ndarray) -> jnp.ndarray:
    """Lowest index among pressed keys."""
    return jnp.astype(jnp.argmax(keypad), jnp.uint8)


def execute_wait_for_key(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX0A - Wait for key press.

    With no key down the machine enters the waiting sub-state; the program
    counter already points past this instruction and stays there.
    """
    def key_pressed_action(state):
        return state.replace(V=state.V.at[instruction.x].set(first_pressed_key(state.keypad)))

    def wait_action(state):
        return state.replace(
            waiting_for_key=jnp.ones((), dtype=jnp.bool_),
            key_register=jnp.astype(instruction.x, jnp.uint8),
        )

    return jax.lax.cond(jnp.any(state.keypad), key_pressed_action, wait_action, state)


def resume_wait_for_key(state: EmulatorState) -> EmulatorState:
    """Leave the waiting sub-state once a key is down, storing it in the target register."""
    def key_pressed_action(state):
        return state.replace(
            V=state.V.at[state.key_register].set(first_pressed_key(state.keypad)),
            waiting_for_key=jnp.zeros((), dtype=jnp.bool_),
        )

    return jax.lax.cond(jnp.any(state.keypad), key_pressed_action, lambda state: state, state)


def execute_font_character(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX29 - Set I to location of sprite for digit VX."""
    font_address = FONT_START + jnp.astype(state.V[instruction.x], jnp.uint16) * FONT_GLYPH_SIZE
    return state.replace(I=jnp.astype(font_address, jnp.uint16))


def execute_bcd_conversion(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX33 - Store BCD representation of VX at I, I+1, I+2."""
    value = state.V[instruction.x]

    digits = jnp.array([
        value // 100,
        (value // 10) % 10,
        value % 10
    ], dtype=jnp.uint8)

    indices = jnp.arange(3) + jnp.astype(state.I, jnp.int32)
    new_memory = state.memory.at[indices].set(digits, mode="drop")
    return state.replace(memory=new_memory)


def execute_store_registers(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX55 - Store V0 through VX in memory starting at I."""
    register_mask = jnp.arange(NUM_REGISTERS) <= instruction.x
    base_indices = jnp.astype(state.I, jnp.int32) + jnp.arange(NUM_REGISTERS)
    current_memory_values = state.memory.at[base_indices].get(mode="fill", fill_value=0)
    new_memory_values = jnp.where(register_mask, state.V, current_memory_values)
    new_memory = state.memory.at[base_indices].set(new_memory_values, mode="drop")

    if state.quirks.load_store_increments_i:
        return state.replace(memory=new_memory, I=jnp.astype(state.I + instruction.x + 1, jnp.uint16))
    return state.replace(memory=new_memory)


def execute_load_registers(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX65 - Load V0 through VX from memory starting at I."""
    register_mask = jnp.arange(NUM_REGISTERS) <= instruction.x
    base_indices = jnp.astype(state.I, jnp.int32) + jnp.arange(NUM_REGISTERS)
    memory_values = state.memory.at[base_indices].get(mode="fill", fill_value=0)
    new_V = jnp.where(register_mask, memory_values, state.V)

    if state.quirks.load_store_increments_i:
        return state.replace(V=new_V, I=jnp.astype(state.I + instruction.x + 1, jnp.uint16))
    return state.replace(V=new_V)


MISC_INSTRUCTIONS = {
    0x07: execute_get_delay_timer,
    0x0A: execute_wait_for_key,
    0x15: execute_set_delay_timer,
    0x18: execute_set_sound_timer,
    0x1E: execute_add_to_index,
    0x29: execute_font_character,
    0x33: execute_bcd_conversion,
    0x55: execute_store_registers,
    0x65: execute_load_registers,
}

_MISC_HANDLERS = list(MISC_INSTRUCTIONS.values()) + [unknown_instruction]

# NN -> position in _MISC_HANDLERS, unknown_instruction for everything unassigned
_MISC_TABLE = jnp.full(256, len(MISC_INSTRUCTIONS), dtype=jnp.int32).at[
    jnp.array(list(MISC_INSTRUCTIONS.keys()))
].set(jnp.arange(len(MISC_INSTRUCTIONS)))


def execute_misc_instruction(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """Dispatch misc instructions through the NN lookup table."""
    return jax.lax.switch(
        _MISC_TABLE[instruction.nn],
        _MISC_HANDLERS,
        state, instruction
    )
