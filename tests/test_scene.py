"""
Scene Tests - Document format and import planning.
"""

import json

import pytest

from spatia.errors import SceneFormatError
from spatia.movement.profile import MovementKind, MovementProfile
from spatia.scene import SCENE_VERSION, SceneCodec, SceneDocument, SceneEntry
from spatia.spatial.position import RoomPosition
from spatia.synthesis.catalog import SynthesisKind, get_definition
from spatia.voices.sources import Procedural
from spatia.voices.voice import Voice, VoiceState


def ocean_entry(**overrides):
    data = {
        "type": "ocean",
        "position": {"x": 2.5, "z": -1.0},
        "movement": {"type": "circle", "speed": 1.0, "distance": 3.0},
        "volume": 1.0,
        "label": "Waves",
        "isCustom": False,
    }
    data.update(overrides)
    return data


class TestSceneEntry:
    """Wire format of one entry."""

    def test_from_dict(self):
        entry = SceneEntry.from_dict(ocean_entry())

        assert entry.type == "ocean"
        assert entry.position == RoomPosition(2.5, -1.0)
        assert entry.movement.kind == MovementKind.CIRCLE
        assert entry.label == "Waves"
        assert not entry.is_custom

    def test_to_dict_uses_wire_keys(self):
        entry = SceneEntry(
            type="custom",
            label="bell",
            is_custom=True,
            file_name="bell.wav",
            file_data=SceneEntry.encode_bytes(b"RIFF"),
        )

        data = entry.to_dict()

        assert data["isCustom"] is True
        assert data["fileName"] == "bell.wav"
        assert data["fileData"] == "UklGRg=="
        assert data["position"] == {"x": 0.0, "z": 0.0}
        assert data["movement"] == {"type": "static", "speed": 1.0, "distance": 3.0}

    def test_builtin_has_no_file_keys(self):
        data = SceneEntry.from_dict(ocean_entry()).to_dict()

        assert "fileName" not in data
        assert "fileData" not in data

    def test_defaults_for_missing_fields(self):
        entry = SceneEntry.from_dict({"type": "rain"})

        assert entry.position == RoomPosition(0.0, 0.0)
        assert entry.movement.is_static
        assert entry.volume == 1.0

    def test_legacy_movement_names(self):
        entry = SceneEntry.from_dict(ocean_entry(movement={"type": "closefar"}))

        assert entry.movement.kind == MovementKind.CLOSE_FAR

    def test_missing_type(self):
        with pytest.raises(SceneFormatError) as exc_info:
            SceneEntry.from_dict({"position": {}}, index=3)

        assert exc_info.value.index == 3

    def test_malformed_movement(self):
        with pytest.raises(SceneFormatError):
            SceneEntry.from_dict(ocean_entry(movement={"type": "circle", "speed": 0}))

    def test_embedded_bytes(self):
        entry = SceneEntry(type="custom", file_data=SceneEntry.encode_bytes(b"\x00\x01audio"))

        assert entry.embedded_bytes() == b"\x00\x01audio"


class TestSceneDocument:
    """Whole documents as JSON and files."""

    def test_json_round_trip(self):
        doc = SceneDocument.from_dict({"version": "1.0", "sounds": [ocean_entry(), {"type": "528"}]})

        restored = SceneDocument.from_json(doc.to_json())

        assert restored == doc
        assert len(restored) == 2

    def test_version_written(self):
        data = json.loads(SceneDocument().to_json())

        assert data == {"version": SCENE_VERSION, "sounds": []}

    def test_invalid_json(self):
        with pytest.raises(SceneFormatError, match="not valid JSON"):
            SceneDocument.from_json("{not json")

    def test_missing_sounds(self):
        with pytest.raises(SceneFormatError, match="sounds"):
            SceneDocument.from_dict({"version": "1.0"})

    def test_not_an_object(self):
        with pytest.raises(SceneFormatError):
            SceneDocument.from_json("[1, 2, 3]")

    def test_malformed_entries_kept_aside(self):
        doc = SceneDocument.from_dict(
            {
                "sounds": [
                    ocean_entry(),
                    ocean_entry(movement={"type": "spiral"}),
                    "not an entry",
                    {"type": "rain", "volume": "loud"},
                    {"type": "white"},
                ]
            }
        )

        assert [entry.type for entry in doc.sounds] == ["ocean", "white"]
        assert [entry.index for entry in doc.sounds] == [0, 4]
        assert [error.index for error in doc.errors] == [1, 2, 3]

    def test_save_and_load(self, tmp_path):
        doc = SceneDocument.from_dict({"sounds": [ocean_entry()]})

        path = doc.save(tmp_path / "room.json")

        assert SceneDocument.load(path) == doc


class TestSceneCodecImport:
    """Planning activations from a document."""

    def test_builtin_entry(self):
        plan = SceneCodec().import_document(SceneDocument.from_dict({"sounds": [ocean_entry()]}))

        assert plan.complete
        request = plan.requests[0]
        assert request.kind == SynthesisKind.OCEAN
        assert request.position == RoomPosition(2.5, -1.0)
        assert not request.is_custom

    def test_legacy_tone_name(self):
        plan = SceneCodec().import_document(SceneDocument.from_dict({"sounds": [{"type": "528"}]}))

        assert plan.requests[0].kind == SynthesisKind.TONE_528

    def test_volume_clamped(self):
        plan = SceneCodec().import_document(
            SceneDocument.from_dict({"sounds": [ocean_entry(volume=7.5)]})
        )

        assert plan.requests[0].volume == 2.0

    def test_custom_without_payload_is_missing_asset(self):
        doc = SceneDocument.from_dict(
            {"sounds": [ocean_entry(), {"type": "custom", "isCustom": True, "fileName": "bell.wav"}]}
        )

        plan = SceneCodec().import_document(doc)

        assert len(plan.requests) == 1
        issue = plan.issues[0]
        assert issue.index == 1
        assert issue.code == "asset_missing"
        assert "bell.wav" in issue.message

    def test_custom_with_payload(self):
        doc = SceneDocument.from_dict(
            {
                "sounds": [
                    {
                        "type": "custom",
                        "isCustom": True,
                        "fileName": "bell.wav",
                        "fileData": SceneEntry.encode_bytes(b"payload"),
                    }
                ]
            }
        )

        request = SceneCodec().import_document(doc).requests[0]

        assert request.is_custom
        assert request.kind == SynthesisKind.CUSTOM
        assert request.file_data == b"payload"

    def test_bad_base64(self):
        doc = SceneDocument.from_dict(
            {"sounds": [{"type": "custom", "isCustom": True, "fileName": "x.wav", "fileData": "!!!"}]}
        )

        plan = SceneCodec().import_document(doc)

        assert plan.issues[0].code == "decode_failure"
        assert plan.issues[0].error.index == 0

    def test_unknown_type(self):
        plan = SceneCodec().import_document(SceneDocument.from_dict({"sounds": [{"type": "thunder"}]}))

        assert plan.issues[0].code == "unknown_synthesis_kind"
        assert not plan.requests


class TestSceneCodecExport:
    def voice(self, voice_id, state=VoiceState.ACTIVE, is_instance=True):
        definition = get_definition("rain")
        return Voice(
            id=voice_id,
            definition=definition,
            source=Procedural(definition.kind),
            is_instance=is_instance,
            state=state,
            position=RoomPosition(1.0, 2.0),
            movement=MovementProfile("back-forth"),
        )

    def test_only_active_instances(self):
        voices = [
            self.voice("rain", is_instance=False),
            self.voice("rain-1"),
            self.voice("rain-2", state=VoiceState.FADING_OUT),
            self.voice("rain-3", state=VoiceState.DOCKED),
        ]

        doc = SceneCodec().export(voices)

        assert len(doc) == 1
        entry = doc.sounds[0]
        assert entry.type == "rain"
        assert entry.position == RoomPosition(1.0, 2.0)
        assert entry.movement.kind == MovementKind.BACK_FORTH
        assert entry.label == "Rain"

    def test_custom_voice_embeds_bytes(self):
        voice = self.voice("custom-1")
        voice.file_name = "bell.wav"
        voice.file_data = b"payload"

        entry = SceneCodec().export([voice]).sounds[0]

        assert entry.file_name == "bell.wav"
        assert entry.embedded_bytes() == b"payload"

    def test_malformed_entry_is_an_issue(self):
        doc = SceneDocument.from_dict(
            {"sounds": [{"type": "thunder"}, {"type": "rain", "movement": {"type": "spiral"}}, ocean_entry()]}
        )

        plan = SceneCodec().import_document(doc)

        assert [request.index for request in plan.requests] == [2]
        assert [issue.index for issue in plan.issues] == [0, 1]
        assert plan.issues[1].code == "scene_format"
        assert isinstance(plan.issues[1].error, SceneFormatError)
