"""CHIP-8 emulator state structures."""

import dataclasses

import jax
import jax.numpy as jnp
from flax.struct import dataclass, PyTreeNode, field

from chipvm.constants import (
    MEMORY_SIZE, FONT_START, FONT_DATA, SCREEN_WIDTH, SCREEN_HEIGHT, STACK_SIZE,
    NUM_REGISTERS, NUM_KEYS, PROGRAM_START,
)


@dataclasses.dataclass(frozen=True)
class Quirks:
    """Behaviours where historical CHIP-8 implementations disagree.

    Defaults keep VX as the shift source, leave I untouched after FX55/FX65,
    jump with V0 for BNNN and leave VF alone after the logical 8XY1-8XY3 ops.
    """
    shift_uses_vy: bool = False
    load_store_increments_i: bool = False
    jump_uses_vx: bool = False
    logic_resets_vf: bool = False


@dataclass(frozen=True)
class StackState:
    """Stack state for subroutine calls."""
    data: jnp.ndarray = field(default_factory=lambda: jnp.zeros(STACK_SIZE, dtype=jnp.uint16))
    pointer: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.uint8))


class EmulatorState(PyTreeNode):
    """Main CHIP-8 emulator state."""
    rng: jax.random.PRNGKey
    memory: jnp.ndarray = field(default_factory=lambda: jnp.zeros(MEMORY_SIZE, dtype=jnp.uint8))
    pc: jnp.ndarray = field(default_factory=lambda: jnp.astype(PROGRAM_START, jnp.uint16))
    display: jnp.ndarray = field(default_factory=lambda: jnp.zeros((SCREEN_HEIGHT, SCREEN_WIDTH), dtype=jnp.bool_))
    stack: StackState = StackState()
    delay_timer: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.uint8))
    sound_timer: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.uint8))
    keypad: jnp.ndarray = field(default_factory=lambda: jnp.zeros(NUM_KEYS, dtype=jnp.bool_))
    V: jnp.ndarray = field(default_factory=lambda: jnp.zeros(NUM_REGISTERS, dtype=jnp.uint8))
    I: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.uint16))

    # FX0A sub-state
    waiting_for_key: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.bool_))
    key_register: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.uint8))

    # Diagnostics
    error: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.uint8))
    last_opcode: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.uint16))
    instructions_executed: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.uint32))
    unknown_opcodes: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.uint32))

    quirks: Quirks = field(pytree_node=False, default=Quirks())

    @property
    def display_width(self) -> int:
        return self.display.shape[1]

    @property
    def display_height(self) -> int:
        return self.display.shape[0]


def create_state(
    rng: jax.random.PRNGKey = jax.random.PRNGKey(0),
    width: int = SCREEN_WIDTH,
    height: int = SCREEN_HEIGHT,
    quirks: Quirks = Quirks(),
) -> EmulatorState:
    """Create initial emulator state with font data loaded."""
    state = EmulatorState(
        rng,
        display=jnp.zeros((height, width), dtype=jnp.bool_),
        quirks=quirks,
    )
    return state.replace(memory=state.memory.at[FONT_START:FONT_START + len(FONT_DATA)].set(FONT_DATA))


def fault(state: EmulatorState, code: int) -> EmulatorState:
    """Record a fault code; the instruction loop stops on a non-zero code."""
    return state.replace(error=jnp.asarray(code, dtype=jnp.uint8))


def count_unknown(state: EmulatorState) -> EmulatorState:
    """Bump the unknown-opcode diagnostic counter."""
    return state.replace(unknown_opcodes=state.unknown_opcodes + jnp.uint32(1))
