"""
Movement Engine - Drives voice positions along their profiles.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable

from spatia.movement.profile import MovementProfile
from spatia.movement.scheduler import FrameScheduler, TaskHandle
from spatia.spatial.position import RoomPosition


logger = logging.getLogger(__name__)


PositionCallback = Callable[[str, RoomPosition], None]


@dataclass
class _Driver:
    profile: MovementProfile
    started: float
    handle: TaskHandle


class MovementEngine:
    """
    One frame task per moving voice.

    Each frame the engine evaluates the voice's profile at the elapsed
    time since start() and reports origin + offset through on_position.
    Static profiles never get a driver.

    Example:
        engine = MovementEngine(scheduler, on_position=session_callback)
        engine.start("ocean-1", MovementProfile("circle", speed=1, distance=3))
        engine.stop("ocean-1")
    """

    def __init__(
        self,
        scheduler: FrameScheduler,
        on_position: PositionCallback,
        origin: RoomPosition = RoomPosition(0.0, 0.0),
    ):
        self.scheduler = scheduler
        self.on_position = on_position
        self.origin = origin
        self._drivers: dict[str, _Driver] = {}
        self._lock = threading.RLock()

    def position_at(self, profile: MovementProfile, elapsed: float) -> RoomPosition:
        dx, dz = profile.offset(elapsed)
        return RoomPosition(self.origin.x + dx, self.origin.z + dz)

    def start(self, voice_id: str, profile: MovementProfile) -> bool:
        """
        Start driving a voice. Idempotent.

        Returns:
            True if a new driver was started
        """
        if profile.is_static:
            return False

        with self._lock:
            if voice_id in self._drivers:
                return False
            handle = self.scheduler.every_frame(
                lambda now: self._step(voice_id, now),
                name=f"movement:{voice_id}",
            )
            driver = _Driver(profile=profile, started=self.scheduler.now(), handle=handle)
            self._drivers[voice_id] = driver

        logger.debug(f"Movement started for {voice_id}: {profile.kind.value}")
        self.on_position(voice_id, self.position_at(profile, 0.0))
        return True

    def stop(self, voice_id: str) -> bool:
        """
        Stop driving a voice. The task never runs again after this returns.

        Returns:
            True if a driver was running
        """
        with self._lock:
            driver = self._drivers.pop(voice_id, None)
            if driver is None:
                return False
            driver.handle.cancel()

        logger.debug(f"Movement stopped for {voice_id}")
        return True

    def update(self, voice_id: str, profile: MovementProfile) -> bool:
        """
        Replace the profile of a running driver, restarting its time origin.

        Returns:
            True if a driver is running afterwards
        """
        self.stop(voice_id)
        return self.start(voice_id, profile)

    def stop_all(self) -> None:
        with self._lock:
            voice_ids = list(self._drivers)
        for voice_id in voice_ids:
            self.stop(voice_id)

    def is_running(self, voice_id: str) -> bool:
        with self._lock:
            return voice_id in self._drivers

    @property
    def running_ids(self) -> list[str]:
        with self._lock:
            return list(self._drivers)

    def _step(self, voice_id: str, now: float) -> None:
        with self._lock:
            driver = self._drivers.get(voice_id)
            if driver is None or driver.handle.cancelled:
                return
            position = self.position_at(driver.profile, now - driver.started)
        self.on_position(voice_id, position)
