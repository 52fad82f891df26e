"""
Spatia - Movement Module

Autonomous voice motion.

Components:
    MovementProfile  - Trajectory kind, speed and distance
    MovementEngine   - Per-voice frame tasks that move voices
    FrameScheduler   - Frame tasks and one-shot timers on one clock
    VirtualClock     - Manually advanced clock for offline use
"""

from spatia.movement.profile import (
    MovementKind,
    MovementProfile,
)

from spatia.movement.scheduler import (
    Clock,
    FrameScheduler,
    MonotonicClock,
    TaskHandle,
    TimerHandle,
    VirtualClock,
)

from spatia.movement.engine import MovementEngine

__all__ = [
    # Profile
    "MovementKind",
    "MovementProfile",
    # Scheduler
    "Clock",
    "FrameScheduler",
    "MonotonicClock",
    "TaskHandle",
    "TimerHandle",
    "VirtualClock",
    # Engine
    "MovementEngine",
]
