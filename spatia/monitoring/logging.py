"""
Structured logging for Spatia.
"""

from __future__ import annotations

import json
import logging
import sys
import threading
import time
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, TextIO


class LogLevel(Enum):
    """Log levels."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

    @property
    def numeric(self) -> int:
        """Get numeric log level."""
        return {
            "debug": logging.DEBUG,
            "info": logging.INFO,
            "warning": logging.WARNING,
            "error": logging.ERROR,
        }[self.value]


@dataclass
class LogRecord:
    """A structured log record.

    Attributes:
        level: Log level.
        event: Event name.
        message: Human-readable message.
        timestamp: Unix timestamp.
        data: Additional structured data.
    """

    level: str
    event: str
    message: str = ""
    timestamp: float = field(default_factory=time.time)
    data: dict[str, Any] = field(default_factory=dict)
    logger_name: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Flatten data into the top level."""
        d = asdict(self)
        d.update(d.pop("data", {}))
        return d

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)


class StructuredLogger:
    """Event logger for voice and scene lifecycle.

    Writes one line per event, as JSON or in a human-readable form.
    Records are also forwarded to the standard ``logging`` logger of
    the same name, so they show up wherever the application routes its
    logs.

    Example:
        logger = StructuredLogger("spatia", json_format=False)
        session_log = logger.bind(session="living-room")
        session_log.voice_activated("ocean-1", kind="ocean", x=2.0, z=-1.0)
        # [2026-01-01 12:00:00] [INFO] [voice_activated] Voice ocean-1 active (session=living-room ...)
    """

    def __init__(
        self,
        name: str = "spatia",
        level: LogLevel = LogLevel.INFO,
        output: TextIO | None = None,
        json_format: bool = True,
    ):
        """Initialize the logger.

        Args:
            name: Logger name.
            level: Minimum log level.
            output: Output stream. None writes nothing directly and only
                forwards to standard logging.
            json_format: Output as JSON (vs. human-readable).
        """
        self.name = name
        self._level = level
        self._output = output
        self._json_format = json_format
        self._context: dict[str, Any] = {}
        self._lock = threading.Lock()
        self._stdlib = logging.getLogger(name)

    @property
    def level(self) -> LogLevel:
        return self._level

    def bind(self, **context: Any) -> "StructuredLogger":
        """Create a new logger with bound context."""
        new_logger = StructuredLogger(
            name=self.name,
            level=self._level,
            output=self._output,
            json_format=self._json_format,
        )
        new_logger._context = {**self._context, **context}
        return new_logger

    def _log(self, level: LogLevel, event: str, message: str = "", **data: Any) -> None:
        if level.numeric < self._level.numeric:
            return

        record = LogRecord(
            level=level.value,
            event=event,
            message=message,
            data={**self._context, **data},
            logger_name=self.name,
        )
        self._emit(record)

    def _emit(self, record: LogRecord) -> None:
        line = record.to_json() if self._json_format else self._format_human(record)
        if self._output is not None:
            with self._lock:
                print(line, file=self._output)
        self._stdlib.log(LogLevel(record.level).numeric, line)

    def _format_human(self, record: LogRecord) -> str:
        timestamp = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(record.timestamp))
        parts = [f"[{timestamp}]", f"[{record.level.upper()}]", f"[{record.event}]"]
        if record.message:
            parts.append(record.message)
        if record.data:
            data_str = " ".join(f"{k}={v}" for k, v in record.data.items())
            parts.append(f"({data_str})")
        return " ".join(parts)

    def debug(self, event: str, message: str = "", **data: Any) -> None:
        self._log(LogLevel.DEBUG, event, message, **data)

    def info(self, event: str, message: str = "", **data: Any) -> None:
        self._log(LogLevel.INFO, event, message, **data)

    def warning(self, event: str, message: str = "", **data: Any) -> None:
        self._log(LogLevel.WARNING, event, message, **data)

    def error(self, event: str, message: str = "", **data: Any) -> None:
        self._log(LogLevel.ERROR, event, message, **data)

    # Lifecycle events

    def voice_activated(self, voice_id: str, kind: str = "", **extra: Any) -> None:
        self.info("voice_activated", f"Voice {voice_id} active", voice_id=voice_id, kind=kind, **extra)

    def voice_released(self, voice_id: str, **extra: Any) -> None:
        self.info("voice_released", f"Voice {voice_id} returned to dock", voice_id=voice_id, **extra)

    def scene_exported(self, sounds: int, **extra: Any) -> None:
        self.info("scene_exported", f"Exported {sounds} sounds", sounds=sounds, **extra)

    def scene_imported(self, activated: int, issues: int = 0, **extra: Any) -> None:
        level = LogLevel.WARNING if issues else LogLevel.INFO
        self._log(
            level,
            "scene_imported",
            f"Imported {activated} sounds ({issues} issues)",
            activated=activated,
            issues=issues,
            **extra,
        )

    def asset_missing(self, file_name: str, **extra: Any) -> None:
        self.warning(
            "asset_missing",
            f'Custom audio file "{file_name}" must be re-added manually',
            file_name=file_name,
            **extra,
        )

    def decode_failure(self, error: Exception, **extra: Any) -> None:
        self.error("decode_failure", str(error), error_type=type(error).__name__, **extra)

    def command_failed(self, command: str, error: Exception, **extra: Any) -> None:
        self.warning(
            "command_failed",
            str(error),
            command=command,
            error_type=type(error).__name__,
            **extra,
        )


# Global logger instance
_global_logger: StructuredLogger | None = None


def configure_logging(
    level: LogLevel | str = LogLevel.INFO,
    output: TextIO | None = None,
    json_format: bool = True,
) -> StructuredLogger:
    """Configure the global structured logger.

    Args:
        level: Log level.
        output: Output stream (default: stderr).
        json_format: Use JSON format.

    Returns:
        Configured logger.
    """
    global _global_logger

    if isinstance(level, str):
        level = LogLevel(level.lower())

    _global_logger = StructuredLogger(
        name="spatia",
        level=level,
        output=output or sys.stderr,
        json_format=json_format,
    )
    return _global_logger


def get_logger(name: str = "spatia") -> StructuredLogger:
    """Get the global structured logger, creating a silent one if needed."""
    global _global_logger

    if _global_logger is None:
        _global_logger = StructuredLogger(name=name)
    return _global_logger
