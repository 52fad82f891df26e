"""
Scene Codec - Voices to documents and back.

Export reads only public voice state. Import does not touch the audio
engine: it resolves each entry into an ActivationRequest or an issue,
and the session carries the plan out.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from spatia.errors import AssetMissing, DecodeFailure, SpatiaError, UnknownSynthesisKind
from spatia.movement.profile import MovementProfile
from spatia.scene.document import SCENE_VERSION, SceneDocument, SceneEntry
from spatia.spatial.position import RoomPosition
from spatia.synthesis.catalog import SynthesisKind
from spatia.voices.voice import Voice, VoiceState, clamp_volume


logger = logging.getLogger(__name__)


@dataclass
class ActivationRequest:
    """A voice the session should create and activate."""

    index: int
    kind: SynthesisKind
    position: RoomPosition
    movement: MovementProfile
    volume: float
    label: str
    file_name: str | None = None
    file_data: bytes | None = None

    @property
    def is_custom(self) -> bool:
        return self.file_data is not None


@dataclass
class ImportIssue:
    """A scene entry that could not be (fully) restored."""

    index: int
    error: SpatiaError

    @property
    def code(self) -> str:
        return self.error.code

    @property
    def message(self) -> str:
        return self.error.message


@dataclass
class ImportPlan:
    requests: list[ActivationRequest] = field(default_factory=list)
    issues: list[ImportIssue] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.issues


class SceneCodec:
    """
    Serialize active voices and plan their restoration.

    Example:
        codec = SceneCodec()
        doc = codec.export(session.voices)
        plan = codec.import_document(SceneDocument.from_json(text))
    """

    def export(self, voices: Iterable[Voice]) -> SceneDocument:
        """Serialize every active instance, in the order given."""
        entries = []
        for voice in voices:
            if not voice.is_instance or voice.state != VoiceState.ACTIVE:
                continue
            entries.append(self.encode_voice(voice))
        return SceneDocument(sounds=entries, version=SCENE_VERSION)

    def encode_voice(self, voice: Voice) -> SceneEntry:
        file_data = None
        if voice.file_data is not None:
            file_data = SceneEntry.encode_bytes(voice.file_data)
        return SceneEntry(
            type=voice.kind.value,
            position=voice.live_position,
            movement=voice.movement,
            volume=voice.volume,
            label=voice.label,
            is_custom=voice.kind == SynthesisKind.CUSTOM,
            file_name=voice.file_name,
            file_data=file_data,
        )

    def import_document(self, document: SceneDocument) -> ImportPlan:
        """Resolve every entry into a request or an issue."""
        plan = ImportPlan()
        for error in document.errors:
            plan.issues.append(ImportIssue(index=error.index, error=error))
        for position, entry in enumerate(document.sounds):
            index = entry.index if entry.index is not None else position
            try:
                plan.requests.append(self.decode_entry(entry, index))
            except (AssetMissing, DecodeFailure, UnknownSynthesisKind) as e:
                logger.warning(f"Scene entry {index} skipped: {e.message}")
                plan.issues.append(ImportIssue(index=index, error=e))
        plan.issues.sort(key=lambda issue: issue.index)
        return plan

    def decode_entry(self, entry: SceneEntry, index: int) -> ActivationRequest:
        """
        Resolve one entry.

        Raises:
            AssetMissing: Custom entry without an embedded payload.
            DecodeFailure: Embedded payload is not valid base64.
            UnknownSynthesisKind: Entry type has no synthesis path.
        """
        kind = SynthesisKind.parse(entry.type)
        file_data = None

        if entry.is_custom or kind == SynthesisKind.CUSTOM:
            if not entry.has_payload:
                raise AssetMissing(entry.file_name or entry.label, index=index)
            try:
                file_data = entry.embedded_bytes()
            except DecodeFailure as e:
                e.index = index
                e.details["index"] = index
                raise
            kind = SynthesisKind.CUSTOM

        return ActivationRequest(
            index=index,
            kind=kind,
            position=entry.position,
            movement=entry.movement,
            volume=clamp_volume(entry.volume),
            label=entry.label,
            file_name=entry.file_name,
            file_data=file_data,
        )
