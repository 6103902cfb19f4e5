"""
Tests for the ``python -m morphos`` command line.
"""

import pytest

from morphos.__main__ import main
from morphos.io.stl import verify

CUBE = """
const { primitives } = require('@jscad/modeling')
function main() { return primitives.cuboid({ size: [10, 10, 10] }) }
"""


@pytest.fixture(autouse=True)
def no_environment(monkeypatch):
    for name in ("MORPHOS_API_KEY", "GEMINI_API_KEY", "MORPHOS_BASE_URL", "MORPHOS_MODEL", "MORPHOS_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)


def _program(tmp_path, text, name="part.js"):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return str(path)


class TestCheck:

    def test_ok(self, tmp_path, capsys):
        assert main(["check", _program(tmp_path, CUBE)]) == 0
        out = capsys.readouterr().out
        assert out.startswith("OK: part.js - 2 top-level statement(s)")

    def test_missing_main(self, tmp_path, capsys):
        assert main(["check", _program(tmp_path, "const x = 1")]) == 1
        assert "main() function" in capsys.readouterr().out

    def test_rejected(self, tmp_path, capsys):
        assert main(["check", _program(tmp_path, "eval('1')\nfunction main() {}")]) == 1
        assert "dynamic-code" in capsys.readouterr().out

    def test_syntax_error(self, tmp_path, capsys):
        assert main(["check", _program(tmp_path, "function main( {")]) == 1
        assert "E1" in capsys.readouterr().out

    def test_file_not_found(self, tmp_path, capsys):
        assert main(["check", str(tmp_path / "nope.js")]) == 1
        assert "File not found" in capsys.readouterr().err


class TestRun:

    def test_writes_stl(self, tmp_path, capsys):
        out = tmp_path / "cube.stl"
        assert main(["run", _program(tmp_path, CUBE), "-o", str(out)]) == 0
        assert verify(out.read_bytes()) == 12
        assert "Exported to:" in capsys.readouterr().out

    def test_failure(self, tmp_path, capsys):
        out = tmp_path / "bad.stl"
        assert main(["run", _program(tmp_path, "function main() { return 1 }"), "-o", str(out)]) == 1
        assert "runtime-failed" in capsys.readouterr().err
        assert not out.exists()

    def test_bad_timeout(self, tmp_path, capsys):
        """A non-positive timeout is a usage error."""
        out = tmp_path / "cube.stl"
        assert main(["run", _program(tmp_path, CUBE), "-o", str(out), "--timeout", "0"]) == 2

    def test_config_error(self, tmp_path, capsys):
        config = tmp_path / "morphos.yaml"
        config.write_text("nonsense: 1\n", encoding="utf-8")
        out = tmp_path / "cube.stl"
        assert main(["-c", str(config), "run", _program(tmp_path, CUBE), "-o", str(out)]) == 2
        assert "unknown configuration keys" in capsys.readouterr().err


class TestGenerate:

    def test_empty_prompt(self, tmp_path, capsys):
        assert main(["generate", "   ", "-o", str(tmp_path / "x.stl")]) == 2

    def test_no_api_key(self, tmp_path, capsys):
        """Without a key generation fails cleanly."""
        assert main(["generate", "a cube", "-o", str(tmp_path / "x.stl")]) == 1
        assert "collaborator-unavailable" in capsys.readouterr().err

    def test_config_after_subcommand(self, tmp_path, capsys):
        """generate also accepts --config after the subcommand."""
        config = tmp_path / "morphos.yaml"
        config.write_text("nonsense: 1\n", encoding="utf-8")
        assert main(["generate", "a cube", "-o", str(tmp_path / "x.stl"), "--config", str(config)]) == 2
        assert "unknown configuration keys" in capsys.readouterr().err
