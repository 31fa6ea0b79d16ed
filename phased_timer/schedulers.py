"""Scheduler implementations: a virtual clock and an asyncio adapter."""
from __future__ import annotations

import asyncio
import heapq
import logging
import time
from dataclasses import dataclass
from typing import Callable

from phased_timer.config import SchedulerConfig

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class _Entry:
    fn: Callable[[], None]
    interval: float | None = None
    cancelled: bool = False


class ManualScheduler:
    """Deterministic scheduler driven by an explicit virtual clock.

    Nothing fires until ``advance`` or ``run_until`` moves the clock. Due
    callbacks run in due-time order (ties in scheduling order) and ``now()``
    reads each callback's due time while it runs. Conforms to the Scheduler
    protocol.

    Args:
        start: Initial clock value in milliseconds.
        config: Scheduler configuration. Defaults to SchedulerConfig().
    """

    def __init__(
        self, start: float = 0.0, config: SchedulerConfig | None = None
    ) -> None:
        self.config: SchedulerConfig = (
            config if config is not None else SchedulerConfig()
        )
        self._now = start
        self._queue: list[tuple[float, int, _Entry]] = []
        self._counter = 0

    def now(self) -> float:
        return self._now

    @property
    def pending(self) -> int:
        """Number of scheduled callbacks that have not been cancelled."""
        return sum(1 for _, _, entry in self._queue if not entry.cancelled)

    def schedule_once(self, delay: float, fn: Callable[[], None]) -> _Entry:
        entry = _Entry(fn)
        self._push(self._now + max(delay, 0), entry)
        return entry

    def schedule_repeating(self, interval: float, fn: Callable[[], None]) -> _Entry:
        interval = max(interval, self.config.min_interval_ms)
        entry = _Entry(fn, interval=interval)
        self._push(self._now + interval, entry)
        return entry

    def cancel(self, handle: _Entry) -> None:
        handle.cancelled = True

    def advance(self, ms: float) -> None:
        """Move the clock forward by ``ms``, firing everything due."""
        if ms < 0:
            raise ValueError("cannot advance the clock by a negative amount")
        self.run_until(self._now + ms)

    def run_until(self, t: float) -> None:
        """Move the clock to absolute time ``t``, firing everything due."""
        if t < self._now:
            raise ValueError(f"cannot move the clock back from {self._now} to {t}")
        while self._queue and self._queue[0][0] <= t:
            due, _, entry = heapq.heappop(self._queue)
            if entry.cancelled:
                continue
            self._now = due
            entry.fn()
            # The callback may have cancelled its own repeating entry.
            if entry.interval is not None and not entry.cancelled:
                self._push(due + entry.interval, entry)
        self._now = t

    def _push(self, due: float, entry: _Entry) -> None:
        heapq.heappush(self._queue, (due, self._counter, entry))
        self._counter += 1


class _Repeating:
    """Self re-arming loop callback, anchored to its previous due time."""

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        interval: float,
        fn: Callable[[], None],
    ) -> None:
        self._loop = loop
        self._interval = interval
        self._fn = fn
        self._cancelled = False
        self._due = loop.time() + interval
        self._handle = loop.call_at(self._due, self._run)

    def _run(self) -> None:
        self._fn()
        if self._cancelled:
            return
        # A late loop skips missed periods instead of bursting to catch up.
        self._due = max(self._due + self._interval, self._loop.time())
        self._handle = self._loop.call_at(self._due, self._run)

    def cancel(self) -> None:
        self._cancelled = True
        self._handle.cancel()

    def cancelled(self) -> bool:
        return self._cancelled


class AsyncioScheduler:
    """Scheduler backed by an asyncio event loop.

    With no explicit loop, callbacks go to the loop running at scheduling
    time, and ``now()`` falls back to the monotonic clock (the default loop
    clock) while no loop is running.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop | None = None,
        config: SchedulerConfig | None = None,
    ) -> None:
        self.config: SchedulerConfig = (
            config if config is not None else SchedulerConfig()
        )
        self._loop = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        return asyncio.get_running_loop()

    def now(self) -> float:
        try:
            loop = self._get_loop()
        except RuntimeError:
            return time.monotonic() * 1000.0
        return loop.time() * 1000.0

    def schedule_once(
        self, delay: float, fn: Callable[[], None]
    ) -> asyncio.TimerHandle:
        return self._get_loop().call_later(max(delay, 0) / 1000.0, fn)

    def schedule_repeating(self, interval: float, fn: Callable[[], None]) -> _Repeating:
        interval = max(interval, self.config.min_interval_ms)
        return _Repeating(self._get_loop(), interval / 1000.0, fn)

    def cancel(self, handle: asyncio.TimerHandle | _Repeating) -> None:
        if handle.cancelled():
            logger.debug("Handle %r already cancelled", handle)
            return
        handle.cancel()
