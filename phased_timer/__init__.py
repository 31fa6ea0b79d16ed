"""phased-timer - Pausable, phase-aligned, count-limited timers over a host scheduler."""
from __future__ import annotations

from phased_timer.config import SchedulerConfig
from phased_timer.schedulers import AsyncioScheduler, ManualScheduler
from phased_timer.timer import PhasedTimer, make_timer
from phased_timer.types import Scheduler, TimerState

__all__ = [
    "PhasedTimer",
    "make_timer",
    "TimerState",
    "Scheduler",
    "SchedulerConfig",
    "ManualScheduler",
    "AsyncioScheduler",
]
