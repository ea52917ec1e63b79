"""
Tests for the command-line interface.
"""

import json
from pathlib import Path

import pytest

from hirepass.cli import (
    create_default_config,
    load_config_from_file,
    main,
    parse_int,
    save_config_to_file,
)
from hirepass.exceptions import ValidationError


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    path = tmp_path / "config.json"
    config = create_default_config(language="en", data_dir=tmp_path / "data")
    config.submission.simulation_mode = True
    assert save_config_to_file(config, path)
    return path


def run(config_path: Path, *args: str) -> int:
    command, rest = args[0], list(args[1:])
    return main([command, "--config", str(config_path), *rest])


class TestParseInt:

    @pytest.mark.parametrize("value,expected", [("10", 10), (" 500 ", 500), ("-3", -3)])
    def test_valid(self, value: str, expected: int) -> None:
        assert parse_int(value) == expected

    @pytest.mark.parametrize("value", ["", "abc", "1.5", "12x"])
    def test_invalid(self, value: str) -> None:
        with pytest.raises(ValidationError):
            parse_int(value)


class TestPasswordCommands:

    def test_generate_seeded_example(self, config_path: Path, capsys) -> None:
        assert run(config_path, "generate") == 0
        assert "Index 1: 90032" in capsys.readouterr().out

    def test_state_persists_between_invocations(self, config_path: Path, capsys) -> None:
        run(config_path, "generate")
        run(config_path, "generate")
        capsys.readouterr()

        assert run(config_path, "show") == 0
        out = capsys.readouterr().out
        assert "index 2" in out
        assert "Formula: (prev * 7 + 386) % 100000" in out

    def test_undo_refused_then_applied(self, config_path: Path, capsys) -> None:
        run(config_path, "generate")
        assert run(config_path, "undo") == 1
        assert "Cannot undo" in capsys.readouterr().err

        run(config_path, "generate")
        assert run(config_path, "undo") == 0
        assert "reverted to index 1" in capsys.readouterr().out

    def test_set_then_generate(self, config_path: Path, capsys) -> None:
        assert run(config_path, "set", "10", "500") == 0
        run(config_path, "generate")
        assert "Index 11: 03886" in capsys.readouterr().out

    def test_set_rejects_bad_numbers(self, config_path: Path, capsys) -> None:
        assert run(config_path, "set", "ten", "500") == 1
        assert "Invalid input" in capsys.readouterr().err

    def test_restore_and_history(self, config_path: Path, capsys) -> None:
        for _ in range(3):
            run(config_path, "generate")
        assert run(config_path, "restore", "1", "90032") == 0
        capsys.readouterr()

        run(config_path, "history")
        lines = capsys.readouterr().out.strip().splitlines()
        assert len(lines) == 1
        assert "90032" in lines[0]

        assert run(config_path, "restore", "3", "1") == 1

    def test_reset_history(self, config_path: Path, capsys) -> None:
        run(config_path, "generate")
        assert run(config_path, "reset-history") == 0
        capsys.readouterr()
        run(config_path, "history")
        assert "No history yet" in capsys.readouterr().out

    def test_german_output(self, config_path: Path, capsys) -> None:
        run(config_path, "reset-history", "--language", "de")
        assert "Verlauf gelöscht" in capsys.readouterr().out


class TestServiceCommands:

    def test_add_select_and_delete(self, config_path: Path, capsys) -> None:
        assert run(config_path, "service", "add", "Van", "--password", "1", "--modulus", "10") == 0
        assert run(config_path, "generate", "--service", "Van") == 0
        assert "Index 1: 00003" in capsys.readouterr().out

        assert run(config_path, "service", "list") == 0
        listing = capsys.readouterr().out
        assert "(G) Trailer" in listing and "Van" in listing

        assert run(config_path, "service", "delete", "--service", "Van") == 0
        assert run(config_path, "service", "delete") == 1
        assert "at least one service" in capsys.readouterr().err

    def test_unknown_service(self, config_path: Path, capsys) -> None:
        assert run(config_path, "generate", "--service", "Nope") == 1
        assert "Unknown service: Nope" in capsys.readouterr().err

    def test_zero_modulus_refused(self, config_path: Path, capsys) -> None:
        assert run(config_path, "service", "params", "--modulus", "0") == 0
        assert run(config_path, "generate") == 1
        assert "modulus must be greater than zero" in capsys.readouterr().err


class TestFormCommands:

    def test_parse_link_and_submit(self, config_path: Path, capsys) -> None:
        link = "https://docs.google.com/forms/d/e/abc/viewform?entry.1=a&entry.2=b"
        assert run(config_path, "form", "parse-link", link) == 0
        out = capsys.readouterr().out
        assert "found 2 fields" in out
        assert "Google Form settings updated" in out

        assert run(config_path, "form", "submit", "--hire-type", "Trailer", "--price", "40") == 0
        assert "Submitted" in capsys.readouterr().out

        run(config_path, "form", "show")
        out = capsys.readouterr().out
        assert "https://docs.google.com/forms/d/e/abc/formResponse" in out
        assert "success" in out and "(G) Trailer" in out

    def test_submit_without_configuration(self, config_path: Path, capsys) -> None:
        assert run(config_path, "form", "submit", "--hire-type", "Trailer") == 1
        assert "Configuration missing" in capsys.readouterr().err

    def test_invalid_link(self, config_path: Path, capsys) -> None:
        assert run(config_path, "form", "parse-link", "not a url") == 1

    def test_set_sheet(self, config_path: Path, capsys) -> None:
        url = "https://docs.google.com/spreadsheets/d/xyz"
        assert run(config_path, "form", "set-sheet", url) == 0
        capsys.readouterr()
        run(config_path, "form", "show")
        assert "googlesheets://docs.google.com/spreadsheets/d/xyz" in capsys.readouterr().out


class TestConfigCommand:

    def test_init_and_show(self, tmp_path: Path, capsys) -> None:
        path = tmp_path / "new" / "config.json"
        assert main(["config", "init", "--path", str(path)]) == 0
        assert main(["config", "init", "--path", str(path)]) == 1
        assert main(["config", "show", "--path", str(path)]) == 0
        assert "(G) Trailer" in capsys.readouterr().out

    def test_tampered_state_reported(self, config_path: Path, capsys) -> None:
        run(config_path, "generate")
        config = load_config_from_file(config_path)
        state_file = config.persistence.registry_file_path
        raw = json.loads(state_file.read_text(encoding="utf-8"))
        raw["data"]["services"][0]["current_index"] = 99
        state_file.write_text(json.dumps(raw), encoding="utf-8")

        assert run(config_path, "show") == 1
        assert "Could not open stored state" in capsys.readouterr().err

    def test_failed_write_reported(self, config_path: Path, capsys) -> None:
        run(config_path, "generate")
        config = load_config_from_file(config_path)
        state_file = config.persistence.registry_file_path
        blocker = state_file.with_name(state_file.name + ".tmp")
        blocker.mkdir()
        capsys.readouterr()

        assert run(config_path, "generate") == 1
        assert "Could not save state" in capsys.readouterr().err

        blocker.rmdir()
        assert run(config_path, "show") == 0
        assert "index 1" in capsys.readouterr().out
