"""
Engine configuration for Spatia.

Defines the timing, room and signal-path settings shared by the audio
subsystem, the voice graphs and the movement scheduler.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field


def _env_flag(name: str, default: bool) -> bool:
    """Read a boolean flag from the environment."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class Config:
    """Spatia engine configuration.

    Args:
        sample_rate: Rate of the audio context in Hz.
        block_size: Render quantum in frames. Parameter automation is
            evaluated per sample, filter and panner coefficients per block.
        room_scale: Width of the room in audio units. Room-relative
            positions nominally lie in [-room_scale/2, room_scale/2].
        fade_time: Length of the fade-in/fade-out envelope in seconds.
        position_ramp: Horizon of the linear ramp applied to every
            position update, in seconds.
        noise_buffer_seconds: Length of the looped procedural noise buffers.
        frame_rate: Cadence of the movement scheduler in ticks per second.
        use_filters: Route procedural sources through the coloring filter
            stage. When off, sources feed the spatializer directly.
        enable_streaming: Allow registering streamed sources.
        output_device: Device passed to sounddevice for live output
            (None = system default).

    Example:
        config = Config(sample_rate=44100, use_filters=True)
    """

    sample_rate: int = 48000
    block_size: int = 128

    room_scale: float = 15.0

    fade_time: float = 0.5
    position_ramp: float = 0.1

    noise_buffer_seconds: float = 2.0
    frame_rate: float = 60.0

    use_filters: bool = field(default_factory=lambda: _env_flag("SPATIA_USE_FILTERS", False))
    enable_streaming: bool = field(default_factory=lambda: _env_flag("SPATIA_ENABLE_STREAMING", True))

    output_device: int | str | None = None

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.sample_rate < 8000:
            raise ValueError("sample_rate must be >= 8000 Hz")
        if self.block_size < 1:
            raise ValueError("block_size must be >= 1")
        if self.room_scale <= 0:
            raise ValueError("room_scale must be positive")
        if self.fade_time < 0:
            raise ValueError("fade_time must be >= 0")
        if self.position_ramp < 0:
            raise ValueError("position_ramp must be >= 0")
        if self.noise_buffer_seconds <= 0:
            raise ValueError("noise_buffer_seconds must be positive")
        if self.frame_rate <= 0:
            raise ValueError("frame_rate must be positive")

    @property
    def half_room(self) -> float:
        """Distance from the room center to its edge."""
        return self.room_scale / 2
