"""
Voice - One placed or dormant sound.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from spatia.movement.profile import MovementProfile
from spatia.spatial.position import RoomPosition
from spatia.synthesis.catalog import SoundDefinition
from spatia.voices.sources import VoiceSource

if TYPE_CHECKING:
    from spatia.movement.scheduler import TimerHandle
    from spatia.voices.graph import VoiceGraph


MIN_VOLUME = 0.0
MAX_VOLUME = 2.0


class VoiceState(str, Enum):
    """Lifecycle of a voice."""

    DOCKED = "docked"
    ACTIVE = "active"
    FADING_OUT = "fading-out"


def clamp_volume(multiplier: float) -> float:
    """Clamp a volume multiplier to [0, 2]."""
    return min(max(float(multiplier), MIN_VOLUME), MAX_VOLUME)


@dataclass
class Voice:
    """
    A sound in the room or in the dock.

    Templates stay in the dock and spawn instances. Instances own their
    position, volume and movement, and are destroyed on return to dock.
    A graph is attached exactly while the voice is active or fading out.

    Attributes:
        id: Unique voice id
        definition: Shared sound template
        source: Signal source variant
        is_instance: False for dock templates
        state: Lifecycle state
        position: Last commanded room position
        volume: Volume multiplier in [0, 2]
        movement: Movement profile
        label: Display label
        file_name: Original file name for custom voices
        file_data: Original encoded bytes for custom voices
        graph: Audio graph while audible
        generation: Bumped on every activation; stale teardowns compare it
        teardown_timer: Pending fade-out teardown
        fade_end: Audio-clock time at which the fade-out reaches silence
    """

    id: str
    definition: SoundDefinition
    source: VoiceSource
    is_instance: bool = True
    state: VoiceState = VoiceState.DOCKED
    position: RoomPosition = field(default_factory=RoomPosition)
    volume: float = 1.0
    movement: MovementProfile = field(default_factory=MovementProfile)
    label: str = ""
    file_name: str | None = None
    file_data: bytes | None = None
    graph: "VoiceGraph | None" = None
    generation: int = 0
    teardown_timer: "TimerHandle | None" = None
    fade_end: float | None = None

    def __post_init__(self):
        self.volume = clamp_volume(self.volume)
        if not self.label:
            self.label = self.definition.label

    @property
    def kind(self):
        return self.definition.kind

    @property
    def is_custom(self) -> bool:
        return self.file_data is not None or self.file_name is not None

    @property
    def is_active(self) -> bool:
        return self.state == VoiceState.ACTIVE

    @property
    def is_audible(self) -> bool:
        return self.state in (VoiceState.ACTIVE, VoiceState.FADING_OUT)

    @property
    def live_position(self) -> RoomPosition:
        """Where the panner is now, falling back to the last commanded position."""
        if self.graph is not None:
            return self.graph.position
        return self.position
