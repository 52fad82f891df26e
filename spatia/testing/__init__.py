"""
Spatia - Testing Module

Helpers for testing code built on Spatia.

Components:
    create_test_audio       - Tone, noise or silence arrays
    create_wav_bytes        - Encoded WAV files in memory
    create_offline_session  - Session on a virtual clock
    create_scene_document   - Scene documents from wire dicts
    rms, channel_balance    - Render analysis
"""

from spatia.testing.fixtures import (
    create_test_audio,
    create_wav_bytes,
    create_offline_session,
    create_scene_document,
    rms,
    channel_balance,
)

__all__ = [
    "create_test_audio",
    "create_wav_bytes",
    "create_offline_session",
    "create_scene_document",
    "rms",
    "channel_balance",
]
