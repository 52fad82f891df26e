"""
Test Fixtures - Audio and scene builders for tests.

Provides:
    - Test audio generation
    - Encoded WAV bytes (for upload and scene embedding)
    - Offline session setup
    - Render analysis helpers
"""

from __future__ import annotations

import io
from typing import Any

import numpy as np
import soundfile as sf

from spatia.config import Config
from spatia.movement.scheduler import FrameScheduler, VirtualClock
from spatia.scene.document import SceneDocument, SceneEntry
from spatia.session import SpatiaSession
from spatia.synthesis.noise import NoiseGenerator


def create_test_audio(
    duration: float = 1.0,
    sample_rate: int = 8000,
    frequency: float = 440.0,
    amplitude: float = 0.5,
    audio_type: str = "tone",
    channels: int = 1,
) -> np.ndarray:
    """
    Create test audio data.

    Args:
        duration: Duration in seconds
        sample_rate: Sample rate in Hz
        frequency: Frequency for tone (if audio_type == "tone")
        amplitude: Amplitude (0-1)
        audio_type: "tone", "silence" or "noise"
        channels: 1 for a flat array, more for (frames, channels)

    Returns:
        Float32 numpy array
    """
    num_samples = int(duration * sample_rate)

    if audio_type == "tone":
        t = np.arange(num_samples) / sample_rate
        audio = np.sin(2 * np.pi * frequency * t) * amplitude
    elif audio_type == "noise":
        audio = np.random.default_rng(0).uniform(-amplitude, amplitude, num_samples)
    else:
        audio = np.zeros(num_samples)

    audio = audio.astype(np.float32)
    if channels > 1:
        audio = np.repeat(audio[:, np.newaxis], channels, axis=1)
    return audio


def create_wav_bytes(
    duration: float = 0.5,
    sample_rate: int = 8000,
    **kwargs: Any,
) -> bytes:
    """Create a 16-bit PCM WAV file in memory."""
    audio = create_test_audio(duration, sample_rate, **kwargs)
    buffer = io.BytesIO()
    sf.write(buffer, audio, sample_rate, format="WAV", subtype="PCM_16")
    return buffer.getvalue()


def create_offline_session(
    sample_rate: int = 8000,
    seed: int = 1234,
    start_audio: bool = True,
    **config: Any,
) -> SpatiaSession:
    """
    Create a session on a VirtualClock with seeded noise.

    The session renders offline only; advance it with session.render().
    """
    cfg = Config(sample_rate=sample_rate, **config)
    session = SpatiaSession(
        cfg,
        scheduler=FrameScheduler(VirtualClock(), cfg.frame_rate),
        noise=NoiseGenerator(np.random.default_rng(seed)),
    )
    if start_audio:
        session.start_audio()
    return session


def create_scene_document(*entries: dict[str, Any]) -> SceneDocument:
    """Build a scene document from wire-format entry dicts."""
    return SceneDocument(sounds=[SceneEntry.from_dict(e, index=i) for i, e in enumerate(entries)])


def rms(audio: np.ndarray) -> float:
    """Root mean square level of a signal."""
    if audio.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(np.square(audio, dtype=np.float64))))


def channel_balance(stereo: np.ndarray) -> float:
    """
    Right-minus-left level of a (frames, 2) signal, in [-1, 1].

    Positive means the right channel is louder.
    """
    left, right = rms(stereo[:, 0]), rms(stereo[:, 1])
    total = left + right
    if total == 0:
        return 0.0
    return (right - left) / total
