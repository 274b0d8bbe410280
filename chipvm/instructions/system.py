"""CHIP-8 system instructions (0x0xxx)."""

import jax
import jax.lax
import jax.numpy as jnp
from chipvm.state import EmulatorState, fault, count_unknown
from chipvm.decode import DecodedInstruction
from chipvm.constants import ERROR_STACK_UNDERFLOW
from chipvm.stack import pop


def unknown_instruction(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """Unassigned opcode: no-op that is only counted."""
    return count_unknown(state)


def execute_clear_screen(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """00E0 - Clear display."""
    return state.replace(display=jnp.zeros_like(state.display))


def execute_return(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """00EE - Return from subroutine."""
    stack, address, ok = pop(state.stack)
    return jax.lax.cond(
        ok,
        lambda state: state.replace(stack=stack, pc=address),
        lambda state: fault(state, ERROR_STACK_UNDERFLOW),
        state
    )


def execute_system_instruction(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """Dispatch system instructions. 0NNN machine-code calls are not supported."""
    return jax.lax.cond(
        0x00E0 == instruction.raw,
        execute_clear_screen,
        lambda state, instruction: jax.lax.cond(
            0x00EE == instruction.raw,
            execute_return,
            unknown_instruction,
            state, instruction
        ),
        state, instruction
    )
