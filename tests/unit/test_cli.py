import json

import pytest

from bracketflow import main as cli


def test_table_command_prints_bracket_math(capsys):
    cli.main(["table", "--gross", "100000", "--no-color"])
    out = capsys.readouterr().out
    assert "Bracket-by-bracket math" in out
    assert "$13,879" in out
    assert "22.0%" in out


def test_normalize_from_json_file(tmp_path, capsys):
    path = tmp_path / "mine.json"
    path.write_text(json.dumps([{"upper": 50000, "rate": 0.1}]), encoding="utf-8")
    cli.main(["normalize", "--brackets", str(path), "--no-color"])
    out = capsys.readouterr().out
    assert "Brackets: mine" in out
    assert "$50,000" in out
    assert "top" in out


def test_brackets_from_toml_file(tmp_path, capsys):
    path = tmp_path / "sched.toml"
    path.write_text(
        "[[brackets]]\nupper = 10000\nrate = 0.1\n\n[[brackets]]\nrate = 0.2\n",
        encoding="utf-8",
    )
    cli.main(["table", "--brackets", str(path), "--gross", "20000", "--no-color"])
    out = capsys.readouterr().out
    assert "$3,000" in out


def test_invalid_bracket_rows_exit_with_details(tmp_path, capsys):
    path = tmp_path / "broken.json"
    path.write_text(json.dumps([{"upper": 1000}]), encoding="utf-8")
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["table", "--brackets", str(path), "--no-color"])
    assert excinfo.value.code == 1
    out = capsys.readouterr().out
    assert "problem with the bracket rows" in out
    assert "rate" in out


def test_unknown_preset_exits(capsys):
    with pytest.raises(SystemExit):
        cli.main(["table", "--preset", "atlantis", "--no-color"])
    assert "mfj-2018" in capsys.readouterr().out


def test_presets_command(capsys):
    cli.main(["presets", "--no-color"])
    assert "single-2024" in capsys.readouterr().out


def test_animate_runs_to_completion(capsys):
    cli.main(["animate", "--gross", "100000", "--duration", "0", "--no-color"])
    out = capsys.readouterr().out
    assert "100%" in out


def test_non_finite_gross_is_rejected(capsys):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["table", "--gross", "inf", "--no-color"])
    assert excinfo.value.code == 2
    assert "finite" in capsys.readouterr().err
