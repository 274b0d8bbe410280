"""Machine configuration.

``MachineConfig`` can be filled from a Hydra config, a YAML file or a plain
dict. Keys are checked against the defaults on merge and values are validated
when the dataclass is built.
"""

import dataclasses
from typing import Any, Union

from omegaconf import DictConfig, OmegaConf

from chipvm.constants import SCREEN_WIDTH, SCREEN_HEIGHT, DEFAULT_CLOCK_RATE, TIMER_RATE
from chipvm.state import Quirks


@dataclasses.dataclass(frozen=True)
class MachineConfig:
    """Engine configuration.

    Attributes:
        display_width: Framebuffer width in pixels, used for DXYN wrap and clip
        display_height: Framebuffer height in pixels
        clock_rate: Instructions per second
        timer_rate: Ticks per second; timers decrement once per tick
        seed: Seed for the CXNN random number generator
        quirks: Behaviour flags for ambiguous opcodes
    """
    display_width: int = SCREEN_WIDTH
    display_height: int = SCREEN_HEIGHT
    clock_rate: int = DEFAULT_CLOCK_RATE
    timer_rate: int = TIMER_RATE
    seed: int = 0
    quirks: Quirks = dataclasses.field(default_factory=Quirks)

    def __post_init__(self):
        for name in ("display_width", "display_height", "clock_rate", "timer_rate"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")

    @property
    def instructions_per_tick(self) -> int:
        """Instruction budget for one tick (remainder discarded)."""
        return self.clock_rate // self.timer_rate

    @classmethod
    def from_omegaconf(cls, cfg: Union[DictConfig, dict, None] = None) -> "MachineConfig":
        """Merge ``cfg`` over the defaults and build a validated config.

        Raises:
            omegaconf.errors.ConfigKeyError: ``cfg`` holds a key the config does not know
            ValueError: a value is out of range
        """
        # Structured configs of frozen dataclasses are read-only; merge over a plain struct-mode dict
        defaults = OmegaConf.create(dataclasses.asdict(cls()))
        OmegaConf.set_struct(defaults, True)
        merged = defaults if cfg is None else OmegaConf.merge(defaults, cfg)
        values = OmegaConf.to_container(merged, resolve=True)
        quirks = Quirks(**values.pop("quirks"))
        return cls(quirks=quirks, **values)

    @classmethod
    def load(cls, path: str) -> "MachineConfig":
        """Load a YAML file holding MachineConfig keys."""
        return cls.from_omegaconf(OmegaConf.load(path))

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)
