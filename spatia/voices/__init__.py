"""
Spatia - Voices Module

Voices and the audio graphs behind them.

Components:
    Voice       - A placed or docked sound and its state
    VoiceState  - docked / active / fading-out
    VoiceGraph  - Nodes for one audible voice
    Procedural, Decoded, Streamed - Source variants
"""

from spatia.voices.sources import (
    ArrayStream,
    Decoded,
    Procedural,
    SoundFileStream,
    StreamFanout,
    StreamHandle,
    StreamSubscription,
    Streamed,
    VoiceSource,
)

from spatia.voices.voice import (
    Voice,
    VoiceState,
    clamp_volume,
)

from spatia.voices.graph import VoiceGraph

__all__ = [
    # Sources
    "ArrayStream",
    "Decoded",
    "Procedural",
    "SoundFileStream",
    "StreamFanout",
    "StreamHandle",
    "StreamSubscription",
    "Streamed",
    "VoiceSource",
    # Voice
    "Voice",
    "VoiceState",
    "clamp_volume",
    # Graph
    "VoiceGraph",
]
