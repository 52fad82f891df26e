"""
Spatial Position - Room and listener coordinates.

Features:
    - 3D coordinate math
    - Room-relative 2D positions
    - Listener orientation
"""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class Coordinates:
    """3D coordinates in room units."""

    x: float = 0.0  # Left (-) / Right (+)
    y: float = 0.0  # Down (-) / Up (+)
    z: float = 0.0  # Room depth, listener faces -z

    def length(self) -> float:
        """Euclidean length."""
        return math.sqrt(self.x ** 2 + self.y ** 2 + self.z ** 2)

    def distance_to(self, other: "Coordinates") -> float:
        """Calculate distance to another point."""
        return (self - other).length()

    def dot(self, other: "Coordinates") -> float:
        return self.x * other.x + self.y * other.y + self.z * other.z

    def cross(self, other: "Coordinates") -> "Coordinates":
        return Coordinates(
            x=self.y * other.z - self.z * other.y,
            y=self.z * other.x - self.x * other.z,
            z=self.x * other.y - self.y * other.x,
        )

    def normalized(self) -> "Coordinates":
        """Return normalized unit vector."""
        length = self.length()
        if length == 0:
            return Coordinates(0, 0, -1)
        return Coordinates(self.x / length, self.y / length, self.z / length)

    def __add__(self, other: "Coordinates") -> "Coordinates":
        return Coordinates(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: "Coordinates") -> "Coordinates":
        return Coordinates(self.x - other.x, self.y - other.y, self.z - other.z)

    def __mul__(self, scalar: float) -> "Coordinates":
        return Coordinates(self.x * scalar, self.y * scalar, self.z * scalar)


@dataclass(frozen=True)
class RoomPosition:
    """
    Position of an emitter on the room floor.

    Coordinate system:
        x: Left (-) / Right (+)
        z: Room depth. Up the screen is -z, down the screen is +z.

    Values are room-relative (not screen pixels) and unbounded; they
    nominally lie within [-room_scale/2, room_scale/2].
    """

    x: float = 0.0
    z: float = 0.0

    @property
    def coordinates(self) -> Coordinates:
        """Position at ear height as 3D coordinates."""
        return Coordinates(self.x, 0.0, self.z)

    @classmethod
    def from_normalized(cls, nx: float, nz: float, room_scale: float) -> "RoomPosition":
        """
        Create a position from normalized room coordinates.

        Args:
            nx: Horizontal position, -1 (left wall) to 1 (right wall)
            nz: Depth position, -1 (top wall) to 1 (bottom wall)
            room_scale: Room width in audio units
        """
        half = room_scale / 2
        return cls(x=nx * half, z=nz * half)

    def to_normalized(self, room_scale: float) -> tuple[float, float]:
        """Convert to normalized room coordinates."""
        half = room_scale / 2
        return (self.x / half, self.z / half)

    @classmethod
    def coerce(cls, value: "RoomPosition | tuple[float, float]") -> "RoomPosition":
        """Accept a RoomPosition or an (x, z) pair."""
        if isinstance(value, RoomPosition):
            return value
        x, z = value
        return cls(x=float(x), z=float(z))


@dataclass(frozen=True)
class ListenerPosition:
    """
    Position and orientation of the single listener.

    The listener sits at the room center facing -z with +y up, so +x is
    to the listener's right.
    """

    position: Coordinates = Coordinates(0.0, 0.0, 0.0)
    forward: Coordinates = Coordinates(0.0, 0.0, -1.0)
    up: Coordinates = Coordinates(0.0, 1.0, 0.0)

    @property
    def right(self) -> Coordinates:
        """Right vector (forward x up)."""
        return self.forward.cross(self.up).normalized()

    def relative_position(self, world_pos: Coordinates) -> Coordinates:
        """
        Convert a world position to listener axes.

        Returns:
            Coordinates where x is to the right, y is up and z is in
            front of the listener.
        """
        relative = world_pos - self.position
        forward = self.forward.normalized()
        up = self.up.normalized()
        return Coordinates(
            x=relative.dot(self.right),
            y=relative.dot(up),
            z=relative.dot(forward),
        )

    def azimuth_to(self, world_pos: Coordinates) -> float:
        """
        Horizontal angle of a point in radians.

        0 = straight ahead, positive = right, +/-pi = behind.
        """
        rel = self.relative_position(world_pos)
        return math.atan2(rel.x, rel.z)
