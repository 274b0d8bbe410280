"""CHIP-8 control flow instructions."""

import jax
import jax.lax
import jax.numpy as jnp
from chipvm.state import EmulatorState, fault
from chipvm.decode import DecodedInstruction
from chipvm.constants import ERROR_STACK_OVERFLOW
from chipvm.stack import push
from chipvm.instructions.system import unknown_instruction


def execute_jump(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """1NNN - Jump to address NNN."""
    return state.replace(pc=jnp.astype(instruction.nnn, jnp.uint16))


def execute_call(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """2NNN - Call subroutine at NNN."""
    stack, ok = push(state.stack, state.pc)
    return jax.lax.cond(
        ok,
        lambda state: execute_jump(state.replace(stack=stack), instruction),
        lambda state: fault(state, ERROR_STACK_OVERFLOW),
        state
    )


def make_skip_instruction(condition_fn, require_zero_n: bool = False):
    """Factory for skip instructions.

    With ``require_zero_n`` the low nibble must be 0 (5XY0, 9XY0); any other
    value is treated as an unassigned opcode.
    """
    def skip_instruction(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
        condition = condition_fn(state, instruction)
        return jax.lax.cond(
            condition,
            lambda s: s.replace(pc=s.pc + 2),
            lambda s: s,
            state
        )

    if not require_zero_n:
        return skip_instruction

    def checked_skip_instruction(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
        return jax.lax.cond(
            instruction.n == 0,
            skip_instruction,
            unknown_instruction,
            state, instruction
        )
    return checked_skip_instruction


execute_skip_if_equal_immediate = make_skip_instruction(
    lambda state, inst: state.V[inst.x] == inst.nn
)

execute_skip_if_not_equal_immediate = make_skip_instruction(
    lambda state, inst: state.V[inst.x] != inst.nn
)

execute_skip_if_equal_register = make_skip_instruction(
    lambda state, inst: state.V[inst.x] == state.V[inst.y],
    require_zero_n=True,
)

execute_skip_if_not_equal_register = make_skip_instruction(
    lambda state, inst: state.V[inst.x] != state.V[inst.y],
    require_zero_n=True,
)


def execute_jump_with_offset(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """BNNN - Jump to address NNN + V0."""
    jump_address = instruction.nnn + jnp.astype(state.V[0], jnp.uint16)
    return state.replace(pc=jnp.astype(jump_address, jnp.uint16))


def execute_jump_with_offset_vx(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """BXNN - Jump to address XNN + VX (jump_uses_vx quirk)."""
    jump_address = instruction.nnn + jnp.astype(state.V[instruction.x], jnp.uint16)
    return state.replace(pc=jnp.astype(jump_address, jnp.uint16))


def execute_skip_if_key(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """EX9E/EXA1 - Skip if key pressed/not pressed."""

    def skip_if_key(state, instruction):
        key_index = state.V[instruction.x] & 0xF
        key_pressed = state.keypad[key_index]
        is_not_instruction = (instruction.nn == 0xA1)
        condition = key_pressed ^ is_not_instruction

        return jax.lax.cond(
            condition,
            lambda state: state.replace(pc=state.pc + 2),
            lambda state: state,
            state
        )

    return jax.lax.cond(
        (instruction.nn == 0x9E) | (instruction.nn == 0xA1),
        skip_if_key,
        unknown_instruction,
        state, instruction
    )
