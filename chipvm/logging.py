"""Console logging utilities for the CHIP-8 machine.

A small coloured console logger, a machine-specific subclass with helpers for
lifecycle events, and a tqdm progress bar for long headless runs.
"""

import time
import sys
from typing import Any, Dict, Optional

from tqdm import tqdm

LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
}
_RESET = "\033[0m"


class ConsoleLogger:
    """Console logger with level filtering, colours and elapsed-time stamps.

    Args:
        name: Tag shown on every line
        log_level: Lowest level that is printed
        use_colors: Colour the level tag when the stream is a terminal
        show_timestamps: Prefix each line with seconds since creation
        stream: Output stream, stdout when omitted
    """

    def __init__(
        self,
        name: str = "chipvm",
        log_level: str = "INFO",
        use_colors: bool = True,
        show_timestamps: bool = True,
        stream=None,
    ):
        level = log_level.upper()
        if level not in LEVELS:
            raise ValueError(f"Unknown log level '{log_level}'. Available: {list(LEVELS)}")

        self.name = name
        self.log_level = level
        self.stream = stream if stream is not None else sys.stdout
        self.use_colors = use_colors and getattr(self.stream, "isatty", lambda: False)()
        self.show_timestamps = show_timestamps
        self.start_time = time.time()

    def is_enabled_for(self, level: str) -> bool:
        return LEVELS.index(level) >= LEVELS.index(self.log_level)

    def _format_message(self, level: str, message: str) -> str:
        timestamp = (
            f"[{time.time() - self.start_time:8.2f}s]" if self.show_timestamps else ""
        )
        level_str = f"[{level:>8s}]"
        if self.use_colors:
            level_str = f"{_COLORS[level]}{level_str}{_RESET}"
        return f"{timestamp}{level_str}[{self.name}] {message}"

    def log(self, level: str, message: str):
        level = level.upper()
        if self.is_enabled_for(level):
            print(self._format_message(level, message), file=self.stream, flush=True)

    def debug(self, message: str):
        self.log("DEBUG", message)

    def info(self, message: str):
        self.log("INFO", message)

    def warning(self, message: str):
        self.log("WARNING", message)

    def error(self, message: str):
        self.log("ERROR", message)

    def critical(self, message: str):
        self.log("CRITICAL", message)


class MachineLogger(ConsoleLogger):
    """Logger with helpers for machine lifecycle events."""

    def __init__(self, name: str = "chipvm", **kwargs):
        super().__init__(name, **kwargs)

    def log_config(self, config: Dict[str, Any]):
        self.info("Machine configuration:")
        for key, value in config.items():
            self.info(f"  {key}: {value}")

    def log_rom_loaded(self, rom_id: str, size: int):
        self.info(f"Loaded ROM {rom_id} ({size} bytes)")

    def log_load_failed(self, rom_id: str, error: Exception):
        self.error(f"Failed to load ROM {rom_id}: {error}")

    def log_status(self, old, new):
        if old != new:
            self.debug(f"Status {old.name} -> {new.name}")

    def log_fault(self, error: Exception, instructions_executed: int):
        self.error(f"Execution fault after {instructions_executed} instructions: {error}")

    def log_run_summary(self, ticks: int, instructions: int, unknown_opcodes: int, elapsed: float):
        rate = instructions / elapsed if elapsed > 0 else 0.0
        self.info(
            f"Ran {ticks} ticks, {instructions} instructions "
            f"({rate:,.0f} instr/s), {unknown_opcodes} unknown opcodes"
        )
        if unknown_opcodes:
            self.warning(f"{unknown_opcodes} unknown opcodes were skipped")


def build_tqdm_progress_bar(n: int, desc: Optional[str] = None, **kwargs) -> tqdm:
    """Progress bar over ``n`` ticks."""
    if desc is None:
        desc = f"Running ({n:,} ticks)"

    for kwarg in ("total", "unit"):
        kwargs.pop(kwarg, None)

    return tqdm(total=n, desc=desc, unit="tick", **kwargs)
