"""
CLI Tests - Command-line entry points.
"""

import numpy as np
import pytest
import soundfile as sf

from spatia import __version__
from spatia.cli import main
from spatia.scene import SceneDocument


@pytest.fixture
def scene_file(tmp_path):
    document = SceneDocument.from_dict(
        {
            "version": "1.0",
            "sounds": [
                {
                    "type": "ocean",
                    "position": {"x": -2.0, "z": -1.0},
                    "movement": {"type": "circle", "speed": 0.5, "distance": 2.0},
                    "volume": 1.0,
                    "label": "Waves",
                    "isCustom": False,
                },
                {"type": "white", "position": {"x": 3.0, "z": 0.0}, "label": "Static"},
                {"type": "custom", "isCustom": True, "fileName": "bell.mp3", "label": "bell"},
            ],
        }
    )
    return document.save(tmp_path / "scene.json")


class TestInfoCommands:
    def test_no_command_prints_help(self, capsys):
        assert main([]) == 0

        assert "usage" in capsys.readouterr().out

    def test_version(self, capsys):
        assert main(["version"]) == 0

        assert __version__ in capsys.readouterr().out

    def test_catalog(self, capsys):
        assert main(["catalog"]) == 0

        out = capsys.readouterr().out
        for name in ("Healing", "Waves", "Rain", "Static"):
            assert name in out


class TestNoiseCommand:
    def test_writes_wav(self, tmp_path, capsys):
        output = tmp_path / "pink.wav"

        code = main(["noise", "pink", "-o", str(output), "-d", "0.5", "--sample-rate", "8000", "--seed", "1"])

        assert code == 0
        info = sf.info(str(output))
        assert info.frames == 4000
        assert info.samplerate == 8000

    def test_negative_duration(self, tmp_path, capsys):
        code = main(["noise", "white", "-o", str(tmp_path / "x.wav"), "-d", "-1"])

        assert code == 1
        assert "duration" in capsys.readouterr().err


class TestInspectCommand:
    def test_summary(self, scene_file, capsys):
        assert main(["inspect", str(scene_file)]) == 0

        out = capsys.readouterr().out
        assert "3 sounds" in out
        assert "ocean" in out
        assert "circle" in out
        assert "MISSING" in out

    def test_malformed_entry_listed(self, tmp_path, capsys):
        path = tmp_path / "partly.json"
        path.write_text('{"sounds": [{"type": "rain"}, {"type": "ocean", "volume": "loud"}]}')

        assert main(["inspect", str(path)]) == 0

        out = capsys.readouterr().out
        assert "1 sounds" in out
        assert "[1] MALFORMED" in out

    def test_missing_file(self, tmp_path, capsys):
        assert main(["inspect", str(tmp_path / "nope.json")]) == 1

    def test_invalid_scene(self, tmp_path, capsys):
        path = tmp_path / "bad.json"
        path.write_text("{not json")

        assert main(["inspect", str(path)]) == 1
        assert "Error" in capsys.readouterr().err


class TestRenderCommand:
    def test_render(self, scene_file, tmp_path, capsys):
        output = tmp_path / "out.wav"

        code = main(["render", str(scene_file), "-o", str(output), "-d", "1", "--sample-rate", "8000", "--seed", "3"])

        assert code == 0
        audio, sample_rate = sf.read(str(output))
        assert sample_rate == 8000
        assert audio.shape == (8000, 2)
        assert np.abs(audio).max() <= 1.0
        assert np.abs(audio[4000:]).max() > 0

        captured = capsys.readouterr()
        assert "Rendered" in captured.out
        assert "bell.mp3" in captured.err

    def test_render_with_filters(self, scene_file, tmp_path):
        output = tmp_path / "out.wav"

        code = main(["render", str(scene_file), "-o", str(output), "-d", "0.5", "--sample-rate", "8000", "--filters"])

        assert code == 0
        assert sf.info(str(output)).frames == 4000

    def test_missing_scene(self, tmp_path, capsys):
        code = main(["render", str(tmp_path / "nope.json"), "-o", str(tmp_path / "out.wav")])

        assert code == 1
        assert "not found" in capsys.readouterr().err

    def test_invalid_scene(self, tmp_path, capsys):
        path = tmp_path / "bad.json"
        path.write_text('{"version": "1.0"}')

        code = main(["render", str(path), "-o", str(tmp_path / "out.wav"), "--sample-rate", "8000"])

        assert code == 1
