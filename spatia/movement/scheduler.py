"""
Frame Scheduler - Periodic frame tasks and one-shot timers.

One scheduler drives every moving voice (a frame task each) and every
pending fade-out teardown (a one-shot timer each). Time comes from an
injectable clock, so tests advance a VirtualClock instead of sleeping.
"""

from __future__ import annotations

import itertools
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Protocol


logger = logging.getLogger(__name__)


class Clock(Protocol):
    """Source of frame time in seconds."""

    def now(self) -> float:
        ...


class MonotonicClock:
    """Wall clock for live playback."""

    def now(self) -> float:
        return time.monotonic()


class VirtualClock:
    """Manually advanced clock for offline rendering and tests."""

    def __init__(self, start: float = 0.0):
        self._now = start
        self._lock = threading.Lock()

    def now(self) -> float:
        with self._lock:
            return self._now

    def advance(self, seconds: float) -> float:
        if seconds < 0:
            raise ValueError(f"cannot move a clock backwards ({seconds})")
        with self._lock:
            self._now += seconds
            return self._now

    def set(self, now: float) -> None:
        with self._lock:
            if now < self._now:
                raise ValueError(f"cannot move a clock backwards ({now} < {self._now})")
            self._now = now


_ids = itertools.count(1)


@dataclass
class TaskHandle:
    """A periodic frame task. Cancelled tasks never run again."""

    callback: Callable[[float], None]
    name: str = ""
    id: int = field(default_factory=lambda: next(_ids))
    cancelled: bool = False
    runs: int = 0

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class TimerHandle:
    """A one-shot timer. Cancelling a timer that already fired is a no-op."""

    due: float
    callback: Callable[[], None]
    name: str = ""
    id: int = field(default_factory=lambda: next(_ids))
    cancelled: bool = False
    fired: bool = False

    def cancel(self) -> None:
        self.cancelled = True

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.fired)


class FrameScheduler:
    """
    Run frame tasks and timers from a single loop.

    tick() first fires due timers in due order, then runs every live
    frame task once. A handle is checked for cancellation right before
    its callback runs. Callbacks run without the scheduler lock held, so
    they may schedule or cancel freely.

    Example:
        clock = VirtualClock()
        scheduler = FrameScheduler(clock)
        handle = scheduler.every_frame(lambda now: print(now))
        scheduler.advance(0.1)   # six ticks at 60 Hz
        handle.cancel()
    """

    def __init__(self, clock: Clock | None = None, frame_rate: float = 60.0):
        if frame_rate <= 0:
            raise ValueError(f"frame_rate must be positive, got {frame_rate}")
        self.clock = clock or MonotonicClock()
        self.frame_rate = frame_rate

        self._tasks: list[TaskHandle] = []
        self._timers: list[TimerHandle] = []
        self._lock = threading.RLock()

        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()

    @property
    def frame_interval(self) -> float:
        return 1.0 / self.frame_rate

    def now(self) -> float:
        return self.clock.now()

    # -- Scheduling -------------------------------------------------------

    def every_frame(self, callback: Callable[[float], None], name: str = "") -> TaskHandle:
        """Run callback(now) on every tick until the handle is cancelled."""
        handle = TaskHandle(callback, name=name)
        with self._lock:
            self._tasks.append(handle)
        return handle

    def call_later(self, delay: float, callback: Callable[[], None], name: str = "") -> TimerHandle:
        """Run callback() once, on the first tick at least delay seconds from now."""
        handle = TimerHandle(self.clock.now() + max(delay, 0.0), callback, name=name)
        with self._lock:
            self._timers.append(handle)
        return handle

    @property
    def active_tasks(self) -> list[TaskHandle]:
        with self._lock:
            return [t for t in self._tasks if not t.cancelled]

    @property
    def pending_timers(self) -> list[TimerHandle]:
        with self._lock:
            return [t for t in self._timers if t.pending]

    def cancel_all(self) -> None:
        with self._lock:
            for task in self._tasks:
                task.cancel()
            for timer in self._timers:
                timer.cancel()
            self._tasks.clear()
            self._timers.clear()

    # -- Running ----------------------------------------------------------

    def tick(self) -> int:
        """
        Run one frame.

        Returns:
            Number of callbacks invoked
        """
        now = self.clock.now()
        with self._lock:
            due = sorted(
                (t for t in self._timers if t.pending and t.due <= now),
                key=lambda t: t.due,
            )
            self._timers = [t for t in self._timers if t.pending and t not in due]

        invoked = 0
        for timer in due:
            if timer.cancelled:
                continue
            timer.fired = True
            invoked += self._run(timer.name, timer.callback)

        with self._lock:
            self._tasks = [t for t in self._tasks if not t.cancelled]
            tasks = list(self._tasks)

        for task in tasks:
            if task.cancelled:
                continue
            task.runs += 1
            invoked += self._run(task.name, task.callback, now)

        return invoked

    def _run(self, name: str, callback: Callable[..., None], *args: float) -> int:
        try:
            callback(*args)
        except Exception:
            logger.exception(f"Scheduled callback {name or callback!r} failed")
        return 1

    def advance(self, seconds: float) -> int:
        """
        Advance a VirtualClock by seconds, ticking once per frame interval.

        Returns:
            Number of ticks run
        """
        if not isinstance(self.clock, VirtualClock):
            raise TypeError("advance() requires a VirtualClock")

        ticks = 0
        remaining = seconds
        while remaining > 1e-12:
            step = min(self.frame_interval, remaining)
            self.clock.advance(step)
            self.tick()
            remaining -= step
            ticks += 1
        return ticks

    def start(self) -> None:
        """Tick at frame_rate on a background thread."""
        if self._thread is not None:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self.run_forever, name="spatia-frames", daemon=True)
        self._thread.start()
        logger.debug(f"Frame scheduler started at {self.frame_rate} Hz")

    def run_forever(self) -> None:
        while not self._stop_event.is_set():
            started = time.monotonic()
            self.tick()
            elapsed = time.monotonic() - started
            self._stop_event.wait(max(self.frame_interval - elapsed, 0.0))

    def stop(self) -> None:
        """Stop the background thread and wait for it."""
        if self._thread is None:
            return
        self._stop_event.set()
        self._thread.join()
        self._thread = None
        logger.debug("Frame scheduler stopped")

    @property
    def running(self) -> bool:
        return self._thread is not None
