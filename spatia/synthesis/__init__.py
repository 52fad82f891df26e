"""
Spatia - Synthesis Module

Procedural sound sources.

Components:
    NoiseGenerator   - White, pink and brown noise buffers
    SynthesisKind    - How a sound's signal is produced
    SoundDefinition  - Immutable sound template
    SOUND_CATALOG    - Built-in sounds

Usage:
    from spatia.synthesis import NoiseGenerator

    noise = NoiseGenerator()
    brown = noise.generate("brown", duration=2.0, sample_rate=48000)
"""

from spatia.synthesis.noise import (
    NoiseGenerator,
    NoiseType,
)

from spatia.synthesis.catalog import (
    SynthesisKind,
    SoundDefinition,
    SOUND_CATALOG,
    PEAK_VOLUMES,
    DEFAULT_PEAK_VOLUME,
    peak_volume,
    get_definition,
    list_definitions,
)

__all__ = [
    # Noise
    "NoiseGenerator",
    "NoiseType",
    # Catalog
    "SynthesisKind",
    "SoundDefinition",
    "SOUND_CATALOG",
    "PEAK_VOLUMES",
    "DEFAULT_PEAK_VOLUME",
    "peak_volume",
    "get_definition",
    "list_definitions",
]
