"""
Spatia - Spatial Module

Room and listener geometry.

Components:
    Coordinates       - 3D coordinates
    RoomPosition      - Room-relative 2D emitter position
    ListenerPosition  - Listener position and orientation
"""

from spatia.spatial.position import (
    Coordinates,
    RoomPosition,
    ListenerPosition,
)

__all__ = [
    "Coordinates",
    "RoomPosition",
    "ListenerPosition",
]
