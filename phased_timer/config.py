"""Scheduler configuration dataclass."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SchedulerConfig:
    """Immutable configuration shared by the bundled schedulers.

    Attributes:
        min_interval_ms: Smallest period a repeating schedule may use.
            Shorter (including zero or negative) intervals are clamped up
            to it, the same way browsers clamp ``setInterval(fn, 0)``.
    """

    min_interval_ms: float = 1.0

    def __post_init__(self) -> None:
        if self.min_interval_ms <= 0:
            raise ValueError("min_interval_ms must be positive")
