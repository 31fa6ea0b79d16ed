"""Tests for AsyncioScheduler and PhasedTimer on a real event loop."""
import asyncio
import time

import pytest

from phased_timer import AsyncioScheduler, PhasedTimer, Scheduler, SchedulerConfig


class TestAsyncioScheduler:
    """Loop-backed scheduling."""

    def test_conforms_to_protocol(self):
        assert isinstance(AsyncioScheduler(), Scheduler)

    def test_now_without_loop_uses_monotonic_ms(self):
        sched = AsyncioScheduler()
        before = time.monotonic() * 1000.0
        now = sched.now()
        after = time.monotonic() * 1000.0
        assert before <= now <= after

    def test_now_inside_loop_uses_loop_time(self):
        async def main():
            loop = asyncio.get_running_loop()
            sched = AsyncioScheduler()
            before = loop.time() * 1000.0
            now = sched.now()
            return before, now, loop.time() * 1000.0

        before, now, after = asyncio.run(main())
        assert before <= now <= after

    def test_schedule_once_fires(self):
        async def main():
            sched = AsyncioScheduler()
            fired = []
            sched.schedule_once(10, lambda: fired.append(True))
            await asyncio.sleep(0.1)
            return fired

        assert asyncio.run(main()) == [True]

    def test_cancel_once(self):
        async def main():
            sched = AsyncioScheduler()
            fired = []
            handle = sched.schedule_once(20, lambda: fired.append(True))
            sched.cancel(handle)
            sched.cancel(handle)
            await asyncio.sleep(0.1)
            return fired

        assert asyncio.run(main()) == []

    def test_repeating_fires_until_cancelled(self):
        async def main():
            sched = AsyncioScheduler()
            fired = []
            handle = sched.schedule_repeating(10, lambda: fired.append(True))
            await asyncio.sleep(0.2)
            sched.cancel(handle)
            seen = len(fired)
            await asyncio.sleep(0.1)
            return seen, len(fired), handle.cancelled()

        seen, total, cancelled = asyncio.run(main())
        assert seen >= 3
        assert total == seen
        assert cancelled

    def test_repeating_cancel_from_callback(self):
        async def main():
            sched = AsyncioScheduler()
            fired = []
            handles = []

            def on_fire():
                fired.append(True)
                if len(fired) == 2:
                    sched.cancel(handles[0])

            handles.append(sched.schedule_repeating(10, on_fire))
            await asyncio.sleep(0.2)
            return fired

        assert asyncio.run(main()) == [True, True]

    def test_explicit_loop(self):
        loop = asyncio.new_event_loop()
        try:
            sched = AsyncioScheduler(loop, SchedulerConfig(min_interval_ms=2.0))
            fired = []
            sched.schedule_once(5, lambda: fired.append(sched.now()))
            loop.run_until_complete(asyncio.sleep(0.1))
            assert len(fired) == 1
            assert sched.config.min_interval_ms == 2.0
        finally:
            loop.close()


class TestPhasedTimerOnAsyncio:
    """End to end: the timer over a real loop."""

    def test_start_count_limited(self):
        async def main():
            fired = []
            timer = PhasedTimer(10, lambda t: fired.append(t.count))
            timer.start(3)
            await asyncio.sleep(0.3)
            return fired, timer.is_stopped

        fired, stopped = asyncio.run(main())
        assert fired == [1, 2, 3]
        assert stopped

    def test_once_with_zero_delay(self):
        async def main():
            fired = []
            timer = PhasedTimer(0, lambda t: fired.append(True), AsyncioScheduler())
            timer.once()
            await asyncio.sleep(0.05)
            return fired, timer.is_stopped

        fired, stopped = asyncio.run(main())
        assert fired == [True]
        assert stopped

    def test_pause_holds_firings(self):
        async def main():
            fired = []
            timer = PhasedTimer(20, lambda t: fired.append(True)).start()
            await asyncio.sleep(0.1)
            timer.pause()
            seen = len(fired)
            await asyncio.sleep(0.1)
            held = len(fired)
            timer.play()
            await asyncio.sleep(0.1)
            timer.stop()
            return seen, held, len(fired)

        seen, held, total = asyncio.run(main())
        assert seen >= 1
        assert held == seen
        assert total > held

    def test_stop_from_callback(self):
        async def main():
            fired = []

            def on_tick(t):
                fired.append(True)
                if t.count == 2:
                    t.stop()

            timer = PhasedTimer(10, on_tick).start()
            await asyncio.sleep(0.2)
            return fired, timer.is_stopped

        fired, stopped = asyncio.run(main())
        assert fired == [True, True]
        assert stopped

    def test_start_without_running_loop_raises(self):
        timer = PhasedTimer(10, lambda t: None)
        with pytest.raises(RuntimeError):
            timer.start()
        assert timer.is_stopped
