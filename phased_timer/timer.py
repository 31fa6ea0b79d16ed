"""PhasedTimer - pausable, count-limited timer over a host scheduler."""
from __future__ import annotations

import logging
import math
from functools import partial
from typing import TYPE_CHECKING

from phased_timer.schedulers import AsyncioScheduler
from phased_timer.types import Handle, TimerCallback, TimerState

if TYPE_CHECKING:
    from phased_timer.types import Scheduler

logger = logging.getLogger(__name__)


class PhasedTimer:
    """Recurring timer that keeps its cadence across pause/resume.

    Firings are aligned to the phase established by the last tick: resuming
    mid-interval waits only for the rest of that interval. The first tick
    after ``play()`` is a one-shot scheduled for ``remaining_time``; once it
    fires, a repeating schedule at ``delay`` takes over.

    The callback receives the timer as its only argument and may call any
    method on it. Every mutator returns the timer so calls can be chained::

        timer = PhasedTimer(1000, on_tick, scheduler).start(5)

    Without an explicit scheduler the timer schedules on the asyncio loop
    running at the time of ``play()``; with no running loop ``play()`` raises
    ``RuntimeError`` before changing any timer state.
    """

    def __init__(
        self,
        delay: float,
        callback: TimerCallback,
        scheduler: Scheduler | None = None,
    ) -> None:
        if not callable(callback):
            raise TypeError("callback must be callable")
        if scheduler is None:
            scheduler = AsyncioScheduler()
        self._scheduler = scheduler
        self._delay = delay
        self._callback = callback
        self._max_count: float = math.inf
        self._count = 0
        self._paused_time: float = 0
        self._current_time: float = scheduler.now()
        self._last_time: float = self._current_time
        self._handle: Handle | None = None
        self._state = TimerState.STOPPED
        # Bumped on every cancel; scheduled closures carry the value they saw.
        self._generation = 0
        # Bumped on every stop (and so every start).
        self._run_id = 0

    # --- Queries ---

    @property
    def count(self) -> int:
        """Number of firings since the last start/stop."""
        return self._count

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def state(self) -> TimerState:
        return self._state

    @property
    def is_paused(self) -> bool:
        return self._state is TimerState.PAUSED

    @property
    def is_running(self) -> bool:
        return self._state is TimerState.RUNNING

    @property
    def is_stopped(self) -> bool:
        return self._state is TimerState.STOPPED

    @property
    def scheduler(self) -> Scheduler:
        return self._scheduler

    @property
    def current_time(self) -> float:
        """Scheduler time not counting the time spent paused or stopped."""
        if self._state is TimerState.RUNNING:
            return self._scheduler.now() - self._paused_time
        return self._current_time

    @property
    def elapsed_time(self) -> float:
        """Time since the last tick (or since start if none yet)."""
        return self.current_time - self._last_time

    @property
    def remaining_time(self) -> float:
        """Time until the next tick boundary of the current cadence."""
        return self._remaining(self.elapsed_time)

    # --- Mutators ---

    def set_delay(self, delay: float) -> PhasedTimer:
        """Change the interval. A running timer is replayed under it.

        A paused timer keeps its phase untouched until the next ``play()``.
        """
        logger.debug("Timer delay changed from %s to %s", self._delay, delay)
        self._delay = delay
        if self.is_running:
            self.play()
        return self

    def start(self, n: float | None = None) -> PhasedTimer:
        """Reset and run. ``n`` limits the number of firings (None: unbounded)."""
        self._max_count = math.inf if n is None else n
        self.stop()
        self.play()
        return self

    def stop(self) -> PhasedTimer:
        self._cancel()
        self._count = 0
        self._paused_time = 0
        self._current_time = self._scheduler.now()
        self._last_time = self._current_time
        self._state = TimerState.STOPPED
        self._run_id += 1
        logger.debug("Timer stopped")
        return self

    def play(self) -> PhasedTimer:
        """Run (or resume) from the current phase."""
        if self._max_count <= 0:
            return self.stop()

        current = self.current_time
        remaining = self._remaining(current - self._last_time)
        # Schedule before touching any state so a failing host leaves the
        # timer as it was. _cancel() below moves to this generation.
        generation = self._generation + 1
        handle = self._scheduler.schedule_once(
            remaining, partial(self._on_phase_tick, generation)
        )
        self._cancel()
        self._handle = handle
        self._current_time = current
        self._paused_time = self._scheduler.now() - current
        self._state = TimerState.RUNNING
        logger.debug("Timer playing, next tick in %s ms", remaining)
        return self

    def pause(self) -> PhasedTimer:
        self._halt()
        logger.debug("Timer paused at %s ms elapsed", self.elapsed_time)
        return self

    def toggle(self) -> PhasedTimer:
        """Pause a running timer, otherwise play it."""
        if self.is_running:
            return self.pause()
        return self.play()

    def once(self) -> PhasedTimer:
        """Fire a single time, then stop."""
        return self.start(1)

    # --- Internal ---

    def _cancel(self) -> None:
        self._generation += 1
        if self._handle is not None:
            self._scheduler.cancel(self._handle)
            self._handle = None

    def _remaining(self, elapsed: float) -> float:
        if self._delay > 0:
            return math.ceil((elapsed + 1) / self._delay) * self._delay - elapsed
        return 0

    def _halt(self) -> None:
        self._cancel()
        self._current_time = self.current_time
        self._state = TimerState.PAUSED

    def _fire(self) -> None:
        self._last_time = self.current_time
        self._count += 1
        try:
            self._callback(self)
        except Exception:
            logger.debug("Timer callback raised, stopping timer")
            self.stop()
            raise

    def _consume(self, run_id: int) -> bool:
        """Account for one firing. Returns True if the run is exhausted.

        A callback that restarted or stopped the timer owns the count now,
        so nothing is consumed.
        """
        if run_id != self._run_id:
            return False
        self._max_count -= 1
        return self._max_count <= 0

    def _on_phase_tick(self, generation: int) -> None:
        if generation != self._generation:
            logger.debug("Discarding stale phase tick")
            return
        self._handle = None
        run_id = self._run_id
        self._fire()

        # A callback that paused keeps this firing's count for later.
        if self._state is not TimerState.RUNNING:
            return
        if self._consume(run_id):
            self.stop()
            return
        if generation == self._generation:
            self._handle = self._scheduler.schedule_repeating(
                self._delay, partial(self._on_periodic_tick, generation)
            )

    def _on_periodic_tick(self, generation: int) -> None:
        if generation != self._generation:
            logger.debug("Discarding stale periodic tick")
            return
        run_id = self._run_id
        self._fire()

        if self._consume(run_id):
            self.stop()


def make_timer(
    delay: float,
    callback: TimerCallback,
    scheduler: Scheduler | None = None,
) -> PhasedTimer:
    """Return a stopped PhasedTimer; call ``start()`` to run it."""
    return PhasedTimer(delay, callback, scheduler)
