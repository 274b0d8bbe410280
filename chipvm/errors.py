"""Exceptions raised by the CHIP-8 machine."""

from typing import Optional

from chipvm.constants import (
    ERROR_STACK_OVERFLOW, ERROR_STACK_UNDERFLOW, ERROR_CORRUPTED_FETCH, MAX_ROM_SIZE
)


class ChipVMError(Exception):
    """Base class for all machine errors."""


class LoadError(ChipVMError):
    """A ROM could not be loaded. The machine state is left untouched."""


class TooLarge(LoadError):
    """ROM does not fit between the program start and the end of memory."""

    def __init__(self, size: int, limit: int = MAX_ROM_SIZE):
        super().__init__(f"ROM is {size} bytes, maximum is {limit}")
        self.size = size
        self.limit = limit


class Unreadable(LoadError):
    """ROM source could not be read."""

    def __init__(self, source, reason: str = ""):
        message = f"Cannot read ROM '{source}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.source = source


class ExecutionError(ChipVMError):
    """Instruction processing faulted. The machine is moved to the faulted state."""
    code = None
    description = "execution fault"

    def __init__(self, pc: Optional[int] = None):
        message = self.description
        if pc is not None:
            message = f"{message} (PC=0x{pc:03X})"
        super().__init__(message)
        self.pc = pc


class StackOverflow(ExecutionError):
    code = ERROR_STACK_OVERFLOW
    description = "subroutine call with a full stack"


class StackUnderflow(ExecutionError):
    code = ERROR_STACK_UNDERFLOW
    description = "return with an empty stack"


class CorruptedFetch(ExecutionError):
    code = ERROR_CORRUPTED_FETCH
    description = "program counter points past the end of memory"


_ERRORS_BY_CODE = {cls.code: cls for cls in (StackOverflow, StackUnderflow, CorruptedFetch)}


def error_from_code(code: int, pc: Optional[int] = None) -> ExecutionError:
    """Build the exception matching a fault code stored in the emulator state."""
    try:
        return _ERRORS_BY_CODE[int(code)](pc)
    except KeyError:
        raise ValueError(f"Unknown fault code {code}") from None
