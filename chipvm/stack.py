"""CHIP-8 stack operations.

Both operations are bounds-checked: they return the (possibly unchanged) stack
together with a boolean success flag instead of indexing out of range.
"""

import jax.numpy as jnp
from chipvm.constants import STACK_SIZE
from chipvm.state import StackState


def push(stack: StackState, address: jnp.ndarray) -> tuple[StackState, jnp.ndarray]:
    """Push the full 16-bit address onto the stack. Fails when the stack is full."""
    ok = stack.pointer < STACK_SIZE
    index = jnp.minimum(stack.pointer, STACK_SIZE - 1)
    address = jnp.astype(address, jnp.uint16)
    new_data = jnp.where(ok, stack.data.at[index].set(address), stack.data)
    new_pointer = jnp.where(ok, stack.pointer + 1, stack.pointer).astype(jnp.uint8)
    return stack.replace(data=new_data, pointer=new_pointer), ok


def pop(stack: StackState) -> tuple[StackState, jnp.ndarray, jnp.ndarray]:
    """Pop address from stack. Fails when the stack is empty."""
    ok = stack.pointer > 0
    index = jnp.maximum(stack.pointer.astype(jnp.int32) - 1, 0)
    popped_address = stack.data[index]
    new_data = jnp.where(ok, stack.data.at[index].set(0), stack.data)
    new_pointer = jnp.where(ok, stack.pointer - 1, stack.pointer).astype(jnp.uint8)
    return stack.replace(data=new_data, pointer=new_pointer), popped_address, ok
