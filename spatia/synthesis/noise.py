"""
Noise Generator - Procedural noise buffers.

Features:
    - White, pink and brown noise
    - Fixed-length mono float32 buffers
    - Looping is left to the consumer

Filter state lives only inside one generate() call, so every buffer
starts from silence and buffers are independent of each other.
"""

from __future__ import annotations

from enum import Enum

import numpy as np
from scipy.signal import lfilter


class NoiseType(Enum):
    """Color of generated noise."""

    WHITE = "white"
    PINK = "pink"
    BROWN = "brown"


# (pole, input gain) for the six leaky integrators b0..b5 of the pink filter
_PINK_POLES: tuple[tuple[float, float], ...] = (
    (0.99886, 0.0555179),
    (0.99332, 0.0750759),
    (0.96900, 0.1538520),
    (0.86650, 0.3104856),
    (0.55000, 0.5329522),
    (-0.7616, -0.0168980),
)
_PINK_DIRECT = 0.5362
_PINK_DELAYED = 0.115926
_PINK_SCALE = 0.11

_BROWN_STEP = 0.02
_BROWN_LEAK = 1.02
_BROWN_SCALE = 3.5


class NoiseGenerator:
    """
    Generate noise buffers.

    The generator is not seeded. Pass a numpy Generator to get
    reproducible output (tests do this).

    Example:
        noise = NoiseGenerator()
        pink = noise.generate("pink", duration=2.0, sample_rate=48000)
        len(pink)  # 96000
    """

    def __init__(self, rng: np.random.Generator | None = None):
        self._rng = rng or np.random.default_rng()

    def generate(
        self,
        kind: NoiseType | str,
        duration: float,
        sample_rate: int,
    ) -> np.ndarray:
        """
        Generate a noise buffer.

        Args:
            kind: Noise color (white, pink, brown)
            duration: Duration in seconds
            sample_rate: Sample rate in Hz

        Returns:
            Float32 array of exactly int(duration * sample_rate) samples
        """
        if duration < 0:
            raise ValueError(f"duration must be >= 0, got {duration}")
        if sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {sample_rate}")

        kind = NoiseType(kind)
        samples = int(duration * sample_rate)
        white = self._white(samples)

        if kind == NoiseType.WHITE:
            result = white
        elif kind == NoiseType.PINK:
            result = self._color_pink(white)
        else:
            result = self._color_brown(white)

        return result.astype(np.float32)

    def _white(self, samples: int) -> np.ndarray:
        """Uniform white noise in [-1, 1]."""
        return self._rng.uniform(-1.0, 1.0, samples)

    def _color_pink(self, white: np.ndarray) -> np.ndarray:
        """
        Pink (approximately 1/f) noise.

        Each of b0..b5 is a one-pole filter of the white input, so the
        per-sample recurrence is evaluated as a bank of lfilter calls.
        b6 is the white input scaled and delayed by one sample.
        """
        if len(white) == 0:
            return white

        total = white * _PINK_DIRECT
        for pole, gain in _PINK_POLES:
            total = total + lfilter([gain], [1.0, -pole], white)

        delayed = np.empty_like(white)
        delayed[0] = 0.0
        delayed[1:] = white[:-1] * _PINK_DELAYED
        total = total + delayed

        return total * _PINK_SCALE

    def _color_brown(self, white: np.ndarray) -> np.ndarray:
        """Brown (random walk) noise from a leaky integrator."""
        if len(white) == 0:
            return white

        # last = (last + step * white) / leak
        walk = lfilter([_BROWN_STEP / _BROWN_LEAK], [1.0, -1.0 / _BROWN_LEAK], white)
        return walk * _BROWN_SCALE
