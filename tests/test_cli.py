"""Tests for the command line interface."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from chip8_vm import cli


@pytest.fixture
def rom(tmp_path):
    path = tmp_path / "add.ch8"
    path.write_bytes(bytes([0x00, 0xE0, 0x60, 0x0A, 0x61, 0x05, 0x80, 0x14]))
    return path


HEADLESS = ["--no-render", "--no-wait", "--hz", "0"]


class TestArguments:

    def test_missing_rom_argument(self, capsys):
        """No ROM path prints a diagnostic and exits non-zero."""
        with pytest.raises(SystemExit) as exc_info:
            cli.main([])
        assert exc_info.value.code != 0
        assert "rom" in capsys.readouterr().err

    def test_missing_rom_file(self, tmp_path, capsys):
        code = cli.main([str(tmp_path / "nope.ch8")] + HEADLESS)
        assert code == 1
        assert "ROM file not found" in capsys.readouterr().out

    def test_invalid_rate(self, rom):
        with pytest.raises(SystemExit):
            cli.main([str(rom), "--hz", "-1"] + HEADLESS[:2])


class TestRun:

    def test_runs_to_cycle_limit(self, rom, capsys):
        code = cli.main([str(rom), "--max-cycles", "4"] + HEADLESS)
        out = capsys.readouterr().out
        assert code == 0
        assert "rom size: 8 bytes" in out
        assert "Cycles: 4" in out
        assert "PC: 0x208" in out

    def test_quiet_prints_nonzero_registers(self, rom, capsys):
        code = cli.main([str(rom), "--max-cycles", "4", "--quiet"] + HEADLESS)
        out = capsys.readouterr().out.splitlines()
        assert code == 0
        assert out == ["V0=15", "V1=5"]

    def test_hexdump(self, rom, capsys):
        cli.main([str(rom), "--max-cycles", "1", "--hexdump"] + HEADLESS)
        assert "0200: 00E0 600A 6105 8014" in capsys.readouterr().out

    def test_trace(self, rom, capsys):
        cli.main([str(rom), "--max-cycles", "4", "--trace"] + HEADLESS)
        out = capsys.readouterr().out
        assert "CHIP-8 EXECUTION TRACE" in out
        assert "ADD V0, V1" in out

    def test_fault_exit_code(self, tmp_path, capsys):
        path = tmp_path / "ret.ch8"
        path.write_bytes(bytes([0x00, 0xEE]))
        code = cli.main([str(path)] + HEADLESS)
        assert code == 1
        assert "Execution error" in capsys.readouterr().out

    def test_waits_for_start(self, rom, monkeypatch, capsys):
        prompts = []
        monkeypatch.setattr("builtins.input", lambda prompt="": prompts.append(prompt) or "")
        code = cli.main([str(rom), "--no-render", "--hz", "0", "--max-cycles", "1"])
        assert code == 0
        assert prompts == ["Press Enter to start interpreting..."]
