"""Input latch shared between the presentation layer and the engine."""

import threading
from typing import Tuple

from chipvm.constants import NUM_KEYS

# 4x4 hex keypad, as physically laid out
KEYPAD_LAYOUT = (
    (0x1, 0x2, 0x3, 0xC),
    (0x4, 0x5, 0x6, 0xD),
    (0x7, 0x8, 0x9, 0xE),
    (0xA, 0x0, 0xB, 0xF),
)

# Same grid on the left block of a QWERTY keyboard
KEYBOARD_LAYOUT = {
    char: key
    for row_chars, row_keys in zip(("1234", "qwer", "asdf", "zxcv"), KEYPAD_LAYOUT)
    for char, key in zip(row_chars, row_keys)
}


class InputLatch:
    """Pressed/released map for the 16 keys.

    Writers (event handlers, possibly on another thread) call ``press`` and
    ``release``; the engine takes one ``snapshot`` per tick.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._keys = [False] * NUM_KEYS

    @staticmethod
    def _check_key(key: int) -> int:
        if not 0 <= key < NUM_KEYS:
            raise ValueError(f"Key must be in [0, {NUM_KEYS - 1}], got {key}")
        return key

    def set(self, key: int, pressed: bool):
        key = self._check_key(key)
        with self._lock:
            self._keys[key] = bool(pressed)

    def press(self, key: int):
        self.set(key, True)

    def release(self, key: int):
        self.set(key, False)

    def press_char(self, char: str):
        """Press the key mapped to a keyboard character (see KEYBOARD_LAYOUT)."""
        self.press(self._key_for_char(char))

    def release_char(self, char: str):
        self.release(self._key_for_char(char))

    @staticmethod
    def _key_for_char(char: str) -> int:
        try:
            return KEYBOARD_LAYOUT[char.lower()]
        except KeyError:
            raise ValueError(f"No key mapped to {char!r}") from None

    def clear(self):
        with self._lock:
            self._keys = [False] * NUM_KEYS

    def is_pressed(self, key: int) -> bool:
        key = self._check_key(key)
        with self._lock:
            return self._keys[key]

    def snapshot(self) -> Tuple[bool, ...]:
        """Consistent copy of all 16 key states."""
        with self._lock:
            return tuple(self._keys)
