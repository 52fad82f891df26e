"""
Spatia Errors - Domain-specific error types.

Error hierarchy:
    SpatiaError (base)
    ├── AudioNotReady
    ├── UnknownSynthesisKind
    ├── AssetMissing
    ├── DecodeFailure
    ├── VoiceNotFound
    ├── VoiceNotActive
    ├── SceneFormatError
    └── StreamingDisabled

None of these is fatal. The session converts them into CommandResult
values so that one failing voice or scene entry never takes down the rest
of the scene.
"""

from __future__ import annotations

from typing import Any


class SpatiaError(Exception):
    """Base error for all Spatia errors."""

    code = "error"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class AudioNotReady(SpatiaError):
    """
    Raised when an operation needs the audio context before the user
    has started audio.

    Recoverable: the operation is ignored until start_audio() is called.
    """

    code = "audio_not_ready"

    def __init__(self, operation: str = "activate"):
        super().__init__(
            f"Audio is not started; '{operation}' ignored",
            details={"operation": operation},
        )
        self.operation = operation


class UnknownSynthesisKind(SpatiaError):
    """Raised when no synthesis path exists for a sound kind."""

    code = "unknown_synthesis_kind"

    def __init__(self, kind: Any, message: str | None = None):
        super().__init__(
            message or f"No synthesis path for kind '{kind}'",
            details={"kind": str(kind)},
        )
        self.kind = kind


class AssetMissing(SpatiaError):
    """
    Raised when a scene entry references embedded audio that is absent.

    Reported per entry. The user must re-add the named file by hand.
    """

    code = "asset_missing"

    def __init__(self, file_name: str, index: int | None = None):
        super().__init__(
            f'Custom audio file "{file_name}" cannot be loaded automatically. '
            f"Please re-add this file manually.",
            details={"file_name": file_name, "index": index},
        )
        self.file_name = file_name
        self.index = index


class DecodeFailure(SpatiaError):
    """Raised when embedded or uploaded audio cannot be decoded."""

    code = "decode_failure"

    def __init__(
        self,
        file_name: str,
        reason: str = "",
        index: int | None = None,
    ):
        message = f'Failed to decode audio file "{file_name}"'
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message,
            details={"file_name": file_name, "reason": reason, "index": index},
        )
        self.file_name = file_name
        self.reason = reason
        self.index = index


class VoiceNotFound(SpatiaError):
    """Raised when a command addresses a voice id the session does not know."""

    code = "voice_not_found"

    def __init__(self, voice_id: str):
        super().__init__(f"Unknown voice '{voice_id}'", details={"voice_id": voice_id})
        self.voice_id = voice_id


class VoiceNotActive(SpatiaError):
    """Raised when a command needs an active voice."""

    code = "not_active"

    def __init__(self, voice_id: str, state: str = "docked"):
        super().__init__(
            f"Voice '{voice_id}' is not active (state={state})",
            details={"voice_id": voice_id, "state": state},
        )
        self.voice_id = voice_id
        self.state = state


class SceneFormatError(SpatiaError):
    """Raised when a scene document cannot be parsed."""

    code = "scene_format"

    def __init__(self, message: str, index: int | None = None):
        super().__init__(message, details={"index": index})
        self.index = index


class StreamingDisabled(SpatiaError):
    """Raised when a stream is registered while streaming is turned off."""

    code = "streaming_disabled"

    def __init__(self, label: str = ""):
        super().__init__(
            "Streaming sources are disabled (set SPATIA_ENABLE_STREAMING=1)",
            details={"label": label},
        )
        self.label = label
