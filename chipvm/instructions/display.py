"""CHIP-8 display operations."""

import jax.numpy as jnp
from chipvm.state import EmulatorState
from chipvm.decode import DecodedInstruction
from chipvm.constants import FLAG_REGISTER, SPRITE_WIDTH


def execute_display(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """DXYN - Draw sprite at (VX, VY) with height N.

    Only the origin wraps around the screen; pixels past the right or bottom
    edge are clipped.
    """
    height, width = state.display.shape
    yy, xx = jnp.meshgrid(jnp.arange(height), jnp.arange(width), indexing='ij')

    sprite_x = jnp.astype(state.V[instruction.x], jnp.int32) % width
    sprite_y = jnp.astype(state.V[instruction.y], jnp.int32) % height

    row_offset = yy - sprite_y
    col_offset = xx - sprite_x
    in_sprite = (
        (col_offset >= 0) & (col_offset < SPRITE_WIDTH)
        & (row_offset >= 0) & (row_offset < instruction.n)
    )

    sprite_addresses = jnp.astype(state.I, jnp.int32) + jnp.clip(row_offset, 0, 15)
    sprite_bytes = state.memory.at[sprite_addresses].get(mode="fill", fill_value=0)
    sprite_bits = (sprite_bytes >> (7 - jnp.clip(col_offset, 0, 7))) & 1
    sprite = (sprite_bits == 1) & in_sprite

    collision = jnp.any(state.display & sprite)
    return state.replace(
        display=state.display ^ sprite,
        V=state.V.at[FLAG_REGISTER].set(jnp.astype(collision, jnp.uint8))
    )
