"""Shared types and protocols for phased-timer."""
from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Protocol, runtime_checkable

if TYPE_CHECKING:
    from phased_timer.timer import PhasedTimer

# Opaque token returned by a Scheduler; only ever handed back to cancel().
Handle = Any

TimerCallback = Callable[["PhasedTimer"], None]


class TimerState(str, Enum):
    STOPPED = "stop"
    RUNNING = "play"
    PAUSED = "pause"


@runtime_checkable
class Scheduler(Protocol):
    """Host event-loop capability the timer is layered over.

    Times are milliseconds. ``now`` need only be monotonic-ish; the timer
    accepts whatever drift the host clock has.
    """

    def now(self) -> float: ...
    def schedule_once(self, delay: float, fn: Callable[[], None]) -> Handle: ...
    def schedule_repeating(self, interval: float, fn: Callable[[], None]) -> Handle: ...
    def cancel(self, handle: Handle) -> None: ...
