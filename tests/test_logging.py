"""
Structured Logging Tests.
"""

import io
import json
import logging

import pytest

from spatia.errors import DecodeFailure
from spatia.monitoring import LogLevel, StructuredLogger, configure_logging, get_logger


def lines(stream):
    return [line for line in stream.getvalue().splitlines() if line]


class TestStructuredLogger:
    """Tests for StructuredLogger."""

    def test_json_output(self):
        out = io.StringIO()
        logger = StructuredLogger("test", output=out)

        logger.info("custom_event", "hello", voice_id="ocean-1")

        record = json.loads(lines(out)[0])
        assert record["level"] == "info"
        assert record["event"] == "custom_event"
        assert record["message"] == "hello"
        assert record["voice_id"] == "ocean-1"

    def test_human_output(self):
        out = io.StringIO()
        logger = StructuredLogger("test", output=out, json_format=False)

        logger.warning("asset_missing", "re-add bell.wav", index=2)

        line = lines(out)[0]
        assert "[WARNING]" in line
        assert "[asset_missing]" in line
        assert "index=2" in line

    def test_bound_context(self):
        out = io.StringIO()
        logger = StructuredLogger("test", output=out).bind(component="session")

        logger.voice_activated("rain-1", kind="rain", x=1.0, z=2.0)

        record = json.loads(lines(out)[0])
        assert record["component"] == "session"
        assert record["kind"] == "rain"
        assert record["x"] == 1.0

    def test_bind_does_not_change_parent(self):
        out = io.StringIO()
        parent = StructuredLogger("test", output=out)
        parent.bind(component="child")

        parent.info("plain")

        assert "component" not in json.loads(lines(out)[0])

    def test_no_output_stream(self):
        """Without an output stream records only go to standard logging."""
        logger = StructuredLogger("test")

        logger.info("quiet")

    def test_forwards_to_stdlib(self, caplog):
        logger = StructuredLogger("spatia.test")

        with caplog.at_level(logging.INFO, logger="spatia.test"):
            logger.voice_released("ocean-1", generation=3)

        assert "voice_released" in caplog.text


class TestLevels:
    def test_level_filtering(self):
        out = io.StringIO()
        logger = StructuredLogger("test", level=LogLevel.WARNING, output=out)

        logger.debug("a")
        logger.info("b")
        logger.warning("c")
        logger.error("d")

        assert [json.loads(line)["event"] for line in lines(out)] == ["c", "d"]

    def test_numeric_order(self):
        assert LogLevel.DEBUG.numeric < LogLevel.INFO.numeric < LogLevel.WARNING.numeric < LogLevel.ERROR.numeric


class TestLifecycleEvents:
    """Named lifecycle events."""

    @pytest.fixture
    def out(self):
        return io.StringIO()

    @pytest.fixture
    def logger(self, out):
        return StructuredLogger("test", level=LogLevel.DEBUG, output=out)

    def test_scene_imported_with_issues_is_warning(self, logger, out):
        logger.scene_imported(3, issues=1)

        record = json.loads(lines(out)[0])
        assert record["level"] == "warning"
        assert record["activated"] == 3

    def test_scene_imported_clean_is_info(self, logger, out):
        logger.scene_imported(3)

        assert json.loads(lines(out)[0])["level"] == "info"

    def test_decode_failure(self, logger, out):
        logger.decode_failure(DecodeFailure("bell.mp3", reason="bad header"), index=0)

        record = json.loads(lines(out)[0])
        assert record["level"] == "error"
        assert record["error_type"] == "DecodeFailure"
        assert "bell.mp3" in record["message"]

    def test_command_failed(self, logger, out):
        logger.command_failed("activate", ValueError("nope"), voice_id="x")

        record = json.loads(lines(out)[0])
        assert record["command"] == "activate"
        assert record["voice_id"] == "x"


class TestGlobalLogger:
    def test_configure(self):
        out = io.StringIO()

        logger = configure_logging("debug", output=out, json_format=False)

        assert get_logger() is logger
        assert logger.level == LogLevel.DEBUG

    def test_session_events_reach_configured_logger(self):
        from spatia.testing import create_offline_session

        out = io.StringIO()
        configure_logging("info", output=out)
        session = create_offline_session(8000)

        session.activate("ocean")
        session.close()

        events = [json.loads(line)["event"] for line in lines(out)]
        assert "voice_activated" in events
        assert "voice_released" in events
