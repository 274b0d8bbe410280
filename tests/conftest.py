"""Test configuration and fixtures for CHIP-8 machine tests."""

import pytest
import jax.numpy as jnp
from chipvm import create_state, Quirks, Machine, MachineConfig, PROGRAM_START
from chipvm.logging import MachineLogger


@pytest.fixture
def fresh_state():
    """Provide a fresh emulator state for each test."""
    return create_state()


@pytest.fixture
def quirky_state():
    """Provide a fresh state with every quirk flag turned on."""
    return create_state(quirks=Quirks(
        shift_uses_vy=True,
        load_store_increments_i=True,
        jump_uses_vx=True,
        logic_resets_vf=True,
    ))


@pytest.fixture
def quiet_logger():
    return MachineLogger(log_level="CRITICAL")


@pytest.fixture
def machine(quiet_logger):
    """Provide a paused machine with default configuration."""
    return Machine(MachineConfig(), logger=quiet_logger)


def setup_sprite_in_memory(state, address, sprite_bytes):
    """Helper to put sprite data in memory."""
    return state.replace(
        memory=state.memory.at[address:address+len(sprite_bytes)].set(
            jnp.array(sprite_bytes, dtype=jnp.uint8)
        )
    )


def assemble(*words):
    """Big-endian bytes for a sequence of 16-bit instruction words."""
    return b"".join(word.to_bytes(2, "big") for word in words)


def setup_program(state, *words, address=PROGRAM_START):
    """Helper to put instruction words in memory."""
    return setup_sprite_in_memory(state, address, list(assemble(*words)))
