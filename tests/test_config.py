"""
Config Tests - Defaults, validation and environment flags.
"""

import pytest

from spatia.config import Config


class TestDefaults:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("SPATIA_USE_FILTERS", raising=False)
        monkeypatch.delenv("SPATIA_ENABLE_STREAMING", raising=False)

        config = Config()

        assert config.sample_rate == 48000
        assert config.room_scale == 15.0
        assert config.half_room == 7.5
        assert config.fade_time == 0.5
        assert config.position_ramp == 0.1
        assert config.frame_rate == 60.0
        assert config.use_filters is False
        assert config.enable_streaming is True


class TestEnvironment:
    """Feature flags read from the environment."""

    @pytest.mark.parametrize("raw,expected", [("1", True), ("true", True), ("ON", True), ("0", False), ("no", False)])
    def test_use_filters(self, monkeypatch, raw, expected):
        monkeypatch.setenv("SPATIA_USE_FILTERS", raw)

        assert Config().use_filters is expected

    def test_disable_streaming(self, monkeypatch):
        monkeypatch.setenv("SPATIA_ENABLE_STREAMING", "false")

        assert Config().enable_streaming is False

    def test_explicit_argument_wins(self, monkeypatch):
        monkeypatch.setenv("SPATIA_USE_FILTERS", "1")

        assert Config(use_filters=False).use_filters is False


class TestValidation:
    @pytest.mark.parametrize(
        "kwargs,match",
        [
            ({"sample_rate": 4000}, "sample_rate"),
            ({"block_size": 0}, "block_size"),
            ({"room_scale": 0}, "room_scale"),
            ({"fade_time": -0.1}, "fade_time"),
            ({"position_ramp": -1}, "position_ramp"),
            ({"noise_buffer_seconds": 0}, "noise_buffer_seconds"),
            ({"frame_rate": 0}, "frame_rate"),
        ],
    )
    def test_invalid(self, kwargs, match):
        with pytest.raises(ValueError, match=match):
            Config(**kwargs)
