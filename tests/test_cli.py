"""Tests for the safebash command-line interface."""

import json
import pathlib

import pytest
from typer.testing import CliRunner

from safebash import __main__ as cli

runner = CliRunner()


@pytest.fixture(autouse=True)
def _isolated_cwd(tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch) -> None:
    # Keep the project's own pyproject.toml out of config discovery.
    monkeypatch.chdir(tmp_path)


def _write(path: pathlib.Path, text: str) -> pathlib.Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# check: exit codes and text output
# ---------------------------------------------------------------------------


class TestCheck:
    def test_clean_script_exits_zero(self, tmp_path: pathlib.Path) -> None:
        script = _write(tmp_path / "ok.sh", 'cd "$dir" || exit 1\necho "$dir"\n')
        result = runner.invoke(cli.app, ["check", str(script)])
        assert result.exit_code == 0
        assert result.output == ""

    def test_warning_only_exits_zero(self, tmp_path: pathlib.Path) -> None:
        script = _write(tmp_path / "warn.sh", "echo $x\n")
        result = runner.invoke(cli.app, ["check", str(script)])
        assert result.exit_code == 0
        assert f"{script}:1: [warning] unquoted-expansion:" in result.output

    def test_error_exits_one(self, tmp_path: pathlib.Path) -> None:
        script = _write(tmp_path / "cd.sh", "cd nonExistingDirectory\nrm *\n")
        result = runner.invoke(cli.app, ["check", str(script)])
        assert result.exit_code == 1
        assert f"{script}:1: [error] unchecked-cd:" in result.output

    def test_missing_file_exits_two(self, tmp_path: pathlib.Path) -> None:
        result = runner.invoke(cli.app, ["check", str(tmp_path / "missing.sh")])
        assert result.exit_code == 2
        assert "error:" in result.output

    def test_bad_encoding_exits_two(self, tmp_path: pathlib.Path) -> None:
        script = tmp_path / "bad.sh"
        script.write_bytes(b"echo \xff\n")
        result = runner.invoke(cli.app, ["check", str(script)])
        assert result.exit_code == 2

    def test_read_failure_outranks_errors(self, tmp_path: pathlib.Path) -> None:
        script = _write(tmp_path / "cd.sh", "cd /tmp\n")
        result = runner.invoke(
            cli.app, ["check", str(script), str(tmp_path / "missing.sh")]
        )
        assert result.exit_code == 2
        assert f"{script}:1: [error] unchecked-cd:" in result.output

    def test_directory_is_searched(self, tmp_path: pathlib.Path) -> None:
        _write(tmp_path / "proj" / "a.sh", "echo $a\n")
        _write(tmp_path / "proj" / "lib" / "b.bash", "echo $b\n")
        _write(tmp_path / "proj" / "notes.txt", "echo $c\n")
        _write(tmp_path / "proj" / ".git" / "hooks" / "pre-commit.sh", "echo $d\n")
        result = runner.invoke(cli.app, ["check", str(tmp_path / "proj")])
        assert result.exit_code == 0
        assert "a.sh:1:" in result.output
        assert "b.bash:1:" in result.output
        assert "notes.txt" not in result.output
        assert "pre-commit.sh" not in result.output

    def test_duplicate_paths_checked_once(self, tmp_path: pathlib.Path) -> None:
        script = _write(tmp_path / "warn.sh", "echo $x\n")
        result = runner.invoke(cli.app, ["check", str(script), str(script)])
        assert result.output.count("unquoted-expansion") == 1

    def test_stdin(self) -> None:
        result = runner.invoke(cli.app, ["check", "-"], input="cd /tmp\n")
        assert result.exit_code == 1
        assert "<stdin>:1: [error] unchecked-cd:" in result.output


# ---------------------------------------------------------------------------
# check: rule selection
# ---------------------------------------------------------------------------


class TestCheckSelection:
    def test_select_option(self, tmp_path: pathlib.Path) -> None:
        script = _write(tmp_path / "s.sh", "cd $dir\n")
        result = runner.invoke(
            cli.app, ["check", "--select", "unquoted-expansion", str(script)]
        )
        assert result.exit_code == 0
        assert "unquoted-expansion" in result.output
        assert "unchecked-cd" not in result.output

    def test_ignore_option(self, tmp_path: pathlib.Path) -> None:
        script = _write(tmp_path / "s.sh", "cd /tmp\n")
        result = runner.invoke(cli.app, ["check", "--ignore", "unchecked-cd", str(script)])
        assert result.exit_code == 0
        assert result.output == ""

    def test_pyproject_config_used(self, tmp_path: pathlib.Path) -> None:
        _write(
            tmp_path / "pyproject.toml",
            '[tool.safebash.rules.unchecked-cd]\nseverity = "warning"\n',
        )
        script = _write(tmp_path / "s.sh", "cd /tmp\n")
        result = runner.invoke(cli.app, ["check", str(script)])
        assert result.exit_code == 0
        assert "[warning] unchecked-cd" in result.output


# ---------------------------------------------------------------------------
# check: JSON output
# ---------------------------------------------------------------------------


class TestCheckJson:
    def test_json_records(self, tmp_path: pathlib.Path) -> None:
        script = _write(tmp_path / "s.sh", "var='a b'\ncommand one two ${var}\n")
        result = runner.invoke(cli.app, ["check", "--format", "json", str(script)])
        assert result.exit_code == 0
        assert json.loads(result.stdout) == [
            {
                "path": str(script),
                "line": 2,
                "column": 16,
                "rule_id": "unquoted-expansion",
                "severity": "warning",
                "message": (
                    "Expansion `${var}` is unquoted; wrap it in double quotes"
                    " to prevent word splitting and globbing"
                ),
            }
        ]

    def test_json_empty(self, tmp_path: pathlib.Path) -> None:
        script = _write(tmp_path / "s.sh", 'echo "$x"\n')
        result = runner.invoke(cli.app, ["check", "-f", "json", str(script)])
        assert result.exit_code == 0
        assert json.loads(result.stdout) == []

    def test_json_exit_code_for_errors(self, tmp_path: pathlib.Path) -> None:
        script = _write(tmp_path / "s.sh", "cd /tmp\n")
        result = runner.invoke(cli.app, ["check", "--format", "json", str(script)])
        assert result.exit_code == 1
        (record,) = json.loads(result.stdout)
        assert record["severity"] == "error"


# ---------------------------------------------------------------------------
# rules
# ---------------------------------------------------------------------------


class TestRulesCommand:
    def test_lists_catalog(self) -> None:
        result = runner.invoke(cli.app, ["rules"])
        assert result.exit_code == 0
        for rule_id in (
            "unquoted-expansion",
            "backtick-substitution",
            "single-bracket-test",
            "unchecked-cd",
            "errexit-flag",
        ):
            assert rule_id in result.output

    def test_shows_severity(self) -> None:
        result = runner.invoke(cli.app, ["rules"])
        (line,) = [row for row in result.output.splitlines() if row.startswith("unchecked-cd")]
        assert "error" in line
