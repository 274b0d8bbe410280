"""CHIP-8 ALU operations (8xxx).

Every operation returns ``(result, flag, writes_flag)``. The result is written
to VX first and the flag to VF afterwards, so ``8FYN`` ends with the flag in VF.
"""

import jax
import jax.lax
import jax.numpy as jnp
from chipvm.state import EmulatorState
from chipvm.decode import DecodedInstruction
from chipvm.constants import FLAG_REGISTER

_NO_FLAG = jnp.zeros((), dtype=jnp.uint8)
_WRITES_FLAG = jnp.ones((), dtype=jnp.bool_)
_KEEPS_FLAG = jnp.zeros((), dtype=jnp.bool_)


def _flag(value) -> jnp.ndarray:
    return jnp.astype(value, jnp.uint8)


def alu_set(vx, vy):
    """8XY0 - Set: VX = VY."""
    return vy, _NO_FLAG, _KEEPS_FLAG


def alu_or(vx, vy):
    """8XY1 - Binary OR: VX |= VY."""
    return vx | vy, _NO_FLAG, _KEEPS_FLAG


def alu_and(vx, vy):
    """8XY2 - Binary AND: VX &= VY."""
    return vx & vy, _NO_FLAG, _KEEPS_FLAG


def alu_xor(vx, vy):
    """8XY3 - Logical XOR: VX ^= VY."""
    return vx ^ vy, _NO_FLAG, _KEEPS_FLAG


def alu_add(vx, vy):
    """8XY4 - Add: VX += VY, set carry flag."""
    result = jnp.astype(vx, jnp.int32) + vy
    carry = _flag(result > 255)
    return jnp.astype(result & 0xFF, jnp.uint8), carry, _WRITES_FLAG


def alu_sub_xy(vx, vy):
    """8XY5 - Subtract: VX -= VY, VF = 1 when there is no borrow."""
    no_borrow = _flag(vx >= vy)
    result = jnp.astype((jnp.astype(vx, jnp.int32) - vy) & 0xFF, jnp.uint8)
    return result, no_borrow, _WRITES_FLAG


def alu_shift_right(vx, vy):
    """8XY6 - Shift right: VX >>= 1, VF = shifted out bit."""
    shifted_bit = _flag(vx & 1)
    result = vx >> 1
    return result, shifted_bit, _WRITES_FLAG


def alu_sub_yx(vx, vy):
    """8XY7 - Subtract: VX = VY - VX, VF = 1 when there is no borrow."""
    no_borrow = _flag(vy >= vx)
    result = jnp.astype((jnp.astype(vy, jnp.int32) - vx) & 0xFF, jnp.uint8)
    return result, no_borrow, _WRITES_FLAG


def alu_shift_left(vx, vy):
    """8XYE - Shift left: VX <<= 1, VF = shifted out bit."""
    shifted_bit = _flag((vx >> 7) & 1)
    result = jnp.astype((jnp.astype(vx, jnp.uint16) << 1) & 0xFF, jnp.uint8)
    return result, shifted_bit, _WRITES_FLAG


def alu_undefined(vx, vy):
    """Undefined ALU operation."""
    return vx, _NO_FLAG, _KEEPS_FLAG


ALU_OPERATIONS = {
    0x0: alu_set,
    0x1: alu_or,
    0x2: alu_and,
    0x3: alu_xor,
    0x4: alu_add,
    0x5: alu_sub_xy,
    0x6: alu_shift_right,
    0x7: alu_sub_yx,
    0xE: alu_shift_left,
}

VALID_ALU_OPERATIONS = jnp.array([n in ALU_OPERATIONS for n in range(16)], dtype=bool)


def execute_alu_operation(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """8XYN - ALU operations dispatcher."""
    vx = state.V[instruction.x]
    vy = state.V[instruction.y]
    quirks = state.quirks

    def _shift(operation):
        def shift(vx, vy):
            return operation(vy if quirks.shift_uses_vy else vx, vy)
        return shift

    def _logic(operation):
        def logic(vx, vy):
            result, flag, writes_flag = operation(vx, vy)
            if quirks.logic_resets_vf:
                return result, _NO_FLAG, _WRITES_FLAG
            return result, flag, writes_flag
        return logic

    operations = dict(ALU_OPERATIONS)
    operations[0x6] = _shift(alu_shift_right)
    operations[0xE] = _shift(alu_shift_left)
    for n in (0x1, 0x2, 0x3):
        operations[n] = _logic(operations[n])

    result, flag, writes_flag = jax.lax.switch(
        instruction.n,
        [operations.get(n, alu_undefined) for n in range(16)],
        vx, vy
    )

    new_V = state.V.at[instruction.x].set(result)
    new_V = jnp.where(writes_flag, new_V.at[FLAG_REGISTER].set(flag), new_V)
    is_valid = VALID_ALU_OPERATIONS[instruction.n]
    return state.replace(
        V=new_V,
        unknown_opcodes=state.unknown_opcodes + jnp.astype(~is_valid, jnp.uint32),
    )
