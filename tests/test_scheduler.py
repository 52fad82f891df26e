"""
Frame Scheduler Tests - Timers, frame tasks and clocks.
"""

import logging
import time

import pytest

from spatia.movement.scheduler import FrameScheduler, MonotonicClock, VirtualClock


class TestVirtualClock:
    def test_advance(self):
        clock = VirtualClock()

        clock.advance(0.25)

        assert clock.now() == 0.25

    def test_never_goes_backwards(self):
        clock = VirtualClock(1.0)

        with pytest.raises(ValueError):
            clock.advance(-0.1)
        with pytest.raises(ValueError):
            clock.set(0.5)

    def test_set(self):
        clock = VirtualClock()

        clock.set(2.0)

        assert clock.now() == 2.0


class TestTimers:
    """One-shot call_later timers."""

    def test_fires_when_due(self, scheduler, virtual_clock):
        fired = []
        scheduler.call_later(0.5, lambda: fired.append(virtual_clock.now()))

        scheduler.advance(0.4)
        assert fired == []

        scheduler.advance(0.2)
        assert len(fired) == 1
        assert fired[0] >= 0.5

    def test_fires_once(self, scheduler):
        fired = []
        handle = scheduler.call_later(0.1, lambda: fired.append(1))

        scheduler.advance(1.0)

        assert fired == [1]
        assert handle.fired
        assert not handle.pending

    def test_cancel(self, scheduler):
        fired = []
        handle = scheduler.call_later(0.1, lambda: fired.append(1))

        handle.cancel()
        scheduler.advance(1.0)

        assert fired == []
        assert not scheduler.pending_timers

    def test_due_order(self, scheduler, virtual_clock):
        order = []
        scheduler.call_later(0.3, lambda: order.append("late"))
        scheduler.call_later(0.1, lambda: order.append("early"))

        virtual_clock.advance(1.0)
        scheduler.tick()

        assert order == ["early", "late"]

    def test_timer_cancelled_by_earlier_timer(self, scheduler, virtual_clock):
        """A timer cancelled by another callback in the same tick does not run."""
        fired = []
        victim = scheduler.call_later(0.2, lambda: fired.append("victim"))
        scheduler.call_later(0.1, victim.cancel)

        virtual_clock.advance(1.0)
        scheduler.tick()

        assert fired == []


class TestFrameTasks:
    """Periodic every_frame tasks."""

    def test_runs_every_tick(self, scheduler):
        times = []
        scheduler.every_frame(times.append)

        ticks = scheduler.advance(0.5)

        assert ticks == 30
        assert len(times) == 30

    def test_receives_clock_time(self, scheduler, virtual_clock):
        times = []
        scheduler.every_frame(times.append)

        virtual_clock.advance(0.75)
        scheduler.tick()

        assert times == [0.75]

    def test_cancel_stops_task(self, scheduler):
        runs = []
        handle = scheduler.every_frame(runs.append)
        scheduler.advance(0.1)

        handle.cancel()
        scheduler.advance(0.1)

        assert len(runs) == 6
        assert handle.runs == 6
        assert not scheduler.active_tasks

    def test_timers_run_before_tasks(self, scheduler, virtual_clock):
        order = []
        scheduler.every_frame(lambda now: order.append("task"))
        scheduler.call_later(0.0, lambda: order.append("timer"))

        scheduler.tick()

        assert order == ["timer", "task"]

    def test_callback_may_schedule(self, scheduler):
        """Callbacks run without the lock, so they can schedule more work."""
        fired = []
        scheduler.call_later(0.0, lambda: scheduler.call_later(0.0, lambda: fired.append(1)))

        scheduler.tick()
        scheduler.tick()

        assert fired == [1]

    def test_cancel_all(self, scheduler):
        scheduler.every_frame(lambda now: None)
        scheduler.call_later(1.0, lambda: None)

        scheduler.cancel_all()

        assert not scheduler.active_tasks
        assert not scheduler.pending_timers


class TestErrors:
    def test_failing_callback_logged(self, scheduler, caplog):
        """A failing callback is logged and does not stop the others."""
        runs = []

        def broken(now):
            raise RuntimeError("boom")

        scheduler.every_frame(broken, name="broken")
        scheduler.every_frame(runs.append)

        with caplog.at_level(logging.ERROR, logger="spatia.movement.scheduler"):
            scheduler.tick()

        assert len(runs) == 1
        assert "broken" in caplog.text
        assert "boom" in caplog.text

    def test_advance_requires_virtual_clock(self):
        scheduler = FrameScheduler(MonotonicClock())

        with pytest.raises(TypeError):
            scheduler.advance(0.1)

    def test_bad_frame_rate(self):
        with pytest.raises(ValueError):
            FrameScheduler(VirtualClock(), frame_rate=0)


class TestBackgroundLoop:
    def test_start_stop(self):
        scheduler = FrameScheduler(MonotonicClock(), frame_rate=200.0)
        runs = []
        scheduler.every_frame(runs.append)

        scheduler.start()
        assert scheduler.running
        deadline = time.monotonic() + 2.0
        while not runs and time.monotonic() < deadline:
            time.sleep(0.01)
        scheduler.stop()

        assert runs
        assert not scheduler.running
