"""
Scene Document - Portable, versioned snapshot of a room.

Wire format (JSON):

    {
      "version": "1.0",
      "sounds": [
        {
          "type": "ocean",
          "position": {"x": 2.5, "z": -1.0},
          "movement": {"type": "circle", "speed": 1.0, "distance": 3.0},
          "volume": 1.0,
          "label": "Waves",
          "isCustom": false,
          "fileName": null,
          "fileData": null
        }
      ]
    }

fileData is the original encoded audio file, base64 encoded.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from spatia.errors import DecodeFailure, SceneFormatError
from spatia.movement.profile import MovementProfile
from spatia.spatial.position import RoomPosition


logger = logging.getLogger(__name__)


SCENE_VERSION = "1.0"


@dataclass
class SceneEntry:
    """One serialized voice."""

    type: str
    position: RoomPosition = field(default_factory=RoomPosition)
    movement: MovementProfile = field(default_factory=MovementProfile)
    volume: float = 1.0
    label: str = ""
    is_custom: bool = False
    file_name: str | None = None
    file_data: str | None = None
    index: int | None = field(default=None, compare=False, repr=False)

    @property
    def has_payload(self) -> bool:
        return bool(self.file_data)

    def embedded_bytes(self) -> bytes:
        """
        Decode the embedded audio file.

        Raises:
            DecodeFailure: If the payload is missing or not valid base64.
        """
        name = self.file_name or self.label
        if not self.file_data:
            raise DecodeFailure(name, reason="no embedded data")
        try:
            return base64.b64decode(self.file_data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise DecodeFailure(name, reason=f"invalid base64: {e}") from e

    @staticmethod
    def encode_bytes(data: bytes) -> str:
        return base64.b64encode(data).decode("ascii")

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": self.type,
            "position": {"x": self.position.x, "z": self.position.z},
            "movement": self.movement.to_dict(),
            "volume": self.volume,
            "label": self.label,
            "isCustom": self.is_custom,
        }
        if self.file_name is not None:
            data["fileName"] = self.file_name
        if self.file_data is not None:
            data["fileData"] = self.file_data
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any], index: int | None = None) -> "SceneEntry":
        """
        Parse one entry.

        Raises:
            SceneFormatError: If required fields are missing or malformed.
        """
        if not isinstance(data, dict):
            raise SceneFormatError(f"Scene entry {index} is not an object", index=index)
        if "type" not in data:
            raise SceneFormatError(f"Scene entry {index} has no type", index=index)

        try:
            position = data.get("position") or {}
            movement = data.get("movement") or {}
            return cls(
                type=str(data["type"]),
                position=RoomPosition(float(position.get("x", 0.0)), float(position.get("z", 0.0))),
                movement=MovementProfile.from_dict(movement),
                volume=float(data.get("volume", 1.0)),
                label=str(data.get("label") or ""),
                is_custom=bool(data.get("isCustom", False)),
                file_name=data.get("fileName"),
                file_data=data.get("fileData"),
                index=index,
            )
        except (TypeError, ValueError, AttributeError) as e:
            raise SceneFormatError(f"Scene entry {index} is malformed: {e}", index=index) from e


@dataclass
class SceneDocument:
    """Version tag plus the ordered list of serialized voices."""

    sounds: list[SceneEntry] = field(default_factory=list)
    version: str = SCENE_VERSION
    errors: list[SceneFormatError] = field(default_factory=list, compare=False, repr=False)

    def __len__(self) -> int:
        return len(self.sounds)

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "sounds": [entry.to_dict() for entry in self.sounds],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SceneDocument":
        """
        Parse a scene document.

        Entries that cannot be parsed are left out of sounds and kept in
        errors, so the rest of the scene still loads.

        Raises:
            SceneFormatError: If the document is not an object or has no
                sounds list.
        """
        if not isinstance(data, dict):
            raise SceneFormatError("Scene document must be a JSON object")
        sounds = data.get("sounds")
        if not isinstance(sounds, list):
            raise SceneFormatError("Scene document has no 'sounds' list")

        entries: list[SceneEntry] = []
        errors: list[SceneFormatError] = []
        for i, item in enumerate(sounds):
            try:
                entries.append(SceneEntry.from_dict(item, index=i))
            except SceneFormatError as e:
                logger.warning(e.message)
                errors.append(e)

        return cls(
            sounds=entries,
            version=str(data.get("version", SCENE_VERSION)),
            errors=errors,
        )

    def to_json(self, indent: int | None = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    @classmethod
    def from_json(cls, text: str) -> "SceneDocument":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise SceneFormatError(f"Scene document is not valid JSON: {e}") from e
        return cls.from_dict(data)

    def save(self, path: str | Path) -> Path:
        path = Path(path)
        path.write_text(self.to_json(), encoding="utf-8")
        return path

    @classmethod
    def load(cls, path: str | Path) -> "SceneDocument":
        return cls.from_json(Path(path).read_text(encoding="utf-8"))
