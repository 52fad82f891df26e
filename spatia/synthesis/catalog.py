"""
Sound Catalog - Static sound definitions and loudness table.

Features:
    - Synthesis kinds
    - Per-kind peak volume
    - Built-in catalog lookup
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from spatia.errors import UnknownSynthesisKind


class SynthesisKind(str, Enum):
    """How a sound's signal is produced."""

    TONE_528 = "tone528"
    OCEAN = "ocean"
    RAIN = "rain"
    WHITE = "white"
    CUSTOM = "custom"
    STREAM = "stream"

    @classmethod
    def parse(cls, value: "str | SynthesisKind") -> "SynthesisKind":
        """
        Parse a kind name.

        Accepts the canonical names plus "528", the name older scene
        documents use for the healing tone.

        Raises:
            UnknownSynthesisKind: If the name matches no kind.
        """
        if isinstance(value, cls):
            return value
        name = str(value).strip().lower()
        if name == "528":
            return cls.TONE_528
        try:
            return cls(name)
        except ValueError:
            raise UnknownSynthesisKind(value) from None

    @property
    def is_procedural(self) -> bool:
        """True for kinds synthesized from oscillators and noise."""
        return self not in (SynthesisKind.CUSTOM, SynthesisKind.STREAM)


# Raw noise and tones differ a lot in perceived loudness.
PEAK_VOLUMES: dict[SynthesisKind, float] = {
    SynthesisKind.WHITE: 0.05,
    SynthesisKind.RAIN: 0.2,
    SynthesisKind.OCEAN: 0.4,
    SynthesisKind.TONE_528: 0.3,
    SynthesisKind.CUSTOM: 1.0,
    SynthesisKind.STREAM: 1.0,
}

DEFAULT_PEAK_VOLUME = 0.3


def peak_volume(kind: SynthesisKind | str) -> float:
    """Get the full-scale gain for a kind at volume multiplier 1.0."""
    try:
        kind = SynthesisKind.parse(kind)
    except UnknownSynthesisKind:
        return DEFAULT_PEAK_VOLUME
    return PEAK_VOLUMES.get(kind, DEFAULT_PEAK_VOLUME)


@dataclass(frozen=True)
class SoundDefinition:
    """
    Immutable template for a sound.

    Attributes:
        id: Catalog identifier
        kind: Synthesis kind
        icon: Display glyph
        color: Display color
        label: Human-readable name
        peak_volume: Gain at volume multiplier 1.0 (defaults from the kind)
    """

    id: str
    kind: SynthesisKind
    icon: str = ""
    color: str = "#ffffff"
    label: str = ""
    peak_volume: float | None = None

    def __post_init__(self):
        object.__setattr__(self, "kind", SynthesisKind.parse(self.kind))
        if self.peak_volume is None:
            object.__setattr__(self, "peak_volume", peak_volume(self.kind))
        if not self.label:
            object.__setattr__(self, "label", self.id)


CUSTOM_ICON = "\U0001F3B5"
CUSTOM_COLOR = "#fbbf24"
STREAM_ICON = "\U0001F4FB"
STREAM_COLOR = "#22c55e"


SOUND_CATALOG: tuple[SoundDefinition, ...] = (
    SoundDefinition(
        id="528",
        kind=SynthesisKind.TONE_528,
        icon="✨",
        color="#d8b4fe",
        label="Healing",
    ),
    SoundDefinition(
        id="ocean",
        kind=SynthesisKind.OCEAN,
        icon="\U0001F30A",
        color="#38bdf8",
        label="Waves",
    ),
    SoundDefinition(
        id="rain",
        kind=SynthesisKind.RAIN,
        icon="\U0001F327️",
        color="#9ca3af",
        label="Rain",
    ),
    SoundDefinition(
        id="white",
        kind=SynthesisKind.WHITE,
        icon="\U0001F4A8",
        color="#e5e7eb",
        label="Static",
    ),
)


def get_definition(definition_id: str) -> SoundDefinition:
    """
    Get a built-in definition by id.

    Raises:
        KeyError: If the id is not in the catalog.
    """
    for definition in SOUND_CATALOG:
        if definition.id == definition_id:
            return definition
    raise KeyError(f"Unknown sound definition: {definition_id}")


def list_definitions() -> list[str]:
    """List built-in definition ids."""
    return [definition.id for definition in SOUND_CATALOG]
