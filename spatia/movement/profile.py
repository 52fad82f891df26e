"""
Movement Profiles - Trajectory shapes for moving voices.

Offsets are functions of t = elapsed_seconds * speed, with d = distance:

    static     (0, 0)
    circle     (d cos t, d sin t)
    back-forth (d sin t, 0)
    close-far  (0, d (sin t + 1) / 2 + 1)    z stays in [1, d + 1]
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any


class MovementKind(str, Enum):
    """Shape of a voice's trajectory."""

    STATIC = "static"
    CIRCLE = "circle"
    BACK_FORTH = "back-forth"
    CLOSE_FAR = "close-far"

    @classmethod
    def parse(cls, value: "str | MovementKind") -> "MovementKind":
        """
        Parse a movement name.

        Also accepts the compact spellings older scene documents use
        ("backforth", "closefar") and underscores.
        """
        if isinstance(value, cls):
            return value
        name = str(value).strip().lower().replace("_", "-")
        aliases = {"backforth": cls.BACK_FORTH, "closefar": cls.CLOSE_FAR}
        if name in aliases:
            return aliases[name]
        try:
            return cls(name)
        except ValueError:
            raise ValueError(f"Unknown movement kind: {value}") from None


@dataclass(frozen=True)
class MovementProfile:
    """
    How a voice moves.

    Attributes:
        kind: Trajectory shape
        speed: Time multiplier (> 0)
        distance: Radius or amplitude in room units (> 0)
    """

    kind: MovementKind = MovementKind.STATIC
    speed: float = 1.0
    distance: float = 3.0

    def __post_init__(self):
        object.__setattr__(self, "kind", MovementKind.parse(self.kind))
        if not self.speed > 0:
            raise ValueError(f"speed must be > 0, got {self.speed}")
        if not self.distance > 0:
            raise ValueError(f"distance must be > 0, got {self.distance}")

    @property
    def is_static(self) -> bool:
        return self.kind == MovementKind.STATIC

    def offset(self, elapsed: float) -> tuple[float, float]:
        """Offset (x, z) after elapsed seconds of movement."""
        t = elapsed * self.speed
        d = self.distance

        if self.kind == MovementKind.CIRCLE:
            return (d * math.cos(t), d * math.sin(t))
        if self.kind == MovementKind.BACK_FORTH:
            return (d * math.sin(t), 0.0)
        if self.kind == MovementKind.CLOSE_FAR:
            return (0.0, d * (math.sin(t) + 1) / 2 + 1)
        return (0.0, 0.0)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.kind.value, "speed": self.speed, "distance": self.distance}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MovementProfile":
        return cls(
            kind=data.get("type", MovementKind.STATIC),
            speed=float(data.get("speed", 1.0)),
            distance=float(data.get("distance", 3.0)),
        )
