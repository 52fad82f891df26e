"""
Spatia 1.0 - Spatial ambient sound rooms.

Place sound emitters in a 2D room, hear them spatialized around a
listener at the center, let them move on their own, and save the
arrangement as a portable scene document.

Architecture:
    SpatiaSession -> VoiceGraph -> AudioContext -> device / WAV

Public API (stable):
    SpatiaSession   - Owns the room. Call .activate() to place a sound.
    CommandResult   - Returned by every session command.
    Config          - Engine configuration.
    SceneDocument   - Saved arrangement (JSON).

Modules:
    synthesis       - Noise generation and the sound catalog
    graph           - Block-rendering audio graph on numpy
    voices          - Voices, source variants and their audio graphs
    movement        - Trajectories and the frame scheduler
    scene           - Scene documents and the scene codec
    monitoring      - Structured lifecycle logging
    testing         - Fixtures for offline tests

Example:
    from spatia import SpatiaSession, Config

    session = SpatiaSession(Config(use_filters=True))
    session.start_audio(live=True)

    result = session.activate("rain", position=(-3.0, 2.0))
    session.set_movement(result.voice_id, "back-forth", speed=0.5)

    session.export_scene().save("evening.json")
"""

__version__ = "1.0.0"

from spatia.config import Config
from spatia.errors import (
    SpatiaError,
    AudioNotReady,
    UnknownSynthesisKind,
    AssetMissing,
    DecodeFailure,
    VoiceNotFound,
    VoiceNotActive,
    SceneFormatError,
    StreamingDisabled,
)
from spatia.session import (
    SpatiaSession,
    CommandResult,
    CommandStatus,
)
from spatia.scene import SceneDocument, SceneCodec
from spatia.movement import MovementProfile, MovementKind
from spatia.spatial import RoomPosition
from spatia.synthesis import NoiseGenerator, SynthesisKind, SoundDefinition, SOUND_CATALOG
from spatia.voices import VoiceState

__all__ = [
    "__version__",
    # Session
    "SpatiaSession",
    "CommandResult",
    "CommandStatus",
    "Config",
    # Data
    "SceneDocument",
    "SceneCodec",
    "MovementProfile",
    "MovementKind",
    "RoomPosition",
    "NoiseGenerator",
    "SynthesisKind",
    "SoundDefinition",
    "SOUND_CATALOG",
    "VoiceState",
    # Errors
    "SpatiaError",
    "AudioNotReady",
    "UnknownSynthesisKind",
    "AssetMissing",
    "DecodeFailure",
    "VoiceNotFound",
    "VoiceNotActive",
    "SceneFormatError",
    "StreamingDisabled",
]
