"""CHIP-8 machine constants."""

import jax.numpy as jnp

MEMORY_SIZE = 4096
PROGRAM_START = 0x200
MAX_ROM_SIZE = MEMORY_SIZE - PROGRAM_START
ADDRESS_MASK = 0xFFF

NUM_REGISTERS = 16
FLAG_REGISTER = 0xF
NUM_KEYS = 16
STACK_SIZE = 12

SCREEN_WIDTH = 64
SCREEN_HEIGHT = 32
SPRITE_WIDTH = 8

DEFAULT_CLOCK_RATE = 700  # instructions per second
TIMER_RATE = 60           # ticks per second

FONT_START = 0x000
FONT_GLYPH_SIZE = 5
FONT_DATA = jnp.array([
    0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
    0x20, 0x60, 0x20, 0x20, 0x70,  # 1
    0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
    0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
    0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
    0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
    0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
    0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
    0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
    0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
    0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
    0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
    0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
    0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
    0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
    0xF0, 0x80, 0xF0, 0x80, 0x80,  # F
], dtype=jnp.uint8)

# Fault codes stored in EmulatorState.error
NO_ERROR = 0
ERROR_STACK_OVERFLOW = 1
ERROR_STACK_UNDERFLOW = 2
ERROR_CORRUPTED_FETCH = 3

__all__ = [
    "MEMORY_SIZE",
    "PROGRAM_START",
    "MAX_ROM_SIZE",
    "ADDRESS_MASK",
    "NUM_REGISTERS",
    "FLAG_REGISTER",
    "NUM_KEYS",
    "STACK_SIZE",
    "SCREEN_WIDTH",
    "SCREEN_HEIGHT",
    "SPRITE_WIDTH",
    "DEFAULT_CLOCK_RATE",
    "TIMER_RATE",
    "FONT_START",
    "FONT_GLYPH_SIZE",
    "FONT_DATA",
    "NO_ERROR",
    "ERROR_STACK_OVERFLOW",
    "ERROR_STACK_UNDERFLOW",
    "ERROR_CORRUPTED_FETCH",
]
