"""Tests for the command-line interface."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from trackboard.cli import main


@pytest.fixture
def runner(monkeypatch: pytest.MonkeyPatch) -> CliRunner:
    monkeypatch.delenv("TRACKBOARD_WORKSPACE", raising=False)
    monkeypatch.setenv("TRACKBOARD_LOG_LEVEL", "WARNING")
    return CliRunner()


@pytest.fixture
def workspace(tmp_path: Path, runner: CliRunner) -> Path:
    result = runner.invoke(main, ["--workspace", str(tmp_path), "init"])
    assert result.exit_code == 0, result.output
    return tmp_path


def _invoke(runner: CliRunner, workspace: Path, *args: str):
    return runner.invoke(main, ["--workspace", str(workspace), *args])


def _add(runner: CliRunner, workspace: Path, *args: str) -> str:
    """Add a project and return its id."""
    result = _invoke(runner, workspace, "add", *args)
    assert result.exit_code == 0, result.output
    listing = _invoke(runner, workspace, "export", "--format", "json", "--stdout")
    return json.loads(listing.output)[0]["id"]


def test_init_creates_workspace(workspace: Path):
    assert (workspace / "trackboard.db").exists()
    assert (workspace / "config.yaml").exists()


def test_commands_require_init(tmp_path: Path, runner: CliRunner):
    result = runner.invoke(main, ["--workspace", str(tmp_path / "empty"), "list"])
    assert result.exit_code == 1
    assert "trackboard init" in result.output


def test_add_and_list(runner: CliRunner, workspace: Path):
    _add(runner, workspace, "Alpha", "--status", "Build", "--tag", "cli", "--progress", "40")

    result = _invoke(runner, workspace, "list", "--tag", "CLI")
    assert result.exit_code == 0
    assert "Alpha" in result.output

    result = _invoke(runner, workspace, "list", "--status", "Idea")
    assert "No projects match" in result.output


def test_add_rejects_invalid_progress(runner: CliRunner, workspace: Path):
    result = _invoke(runner, workspace, "add", "Broken", "--progress", "150")
    assert result.exit_code == 1
    assert "Error:" in result.output


def test_show_update_delete(runner: CliRunner, workspace: Path):
    pid = _add(runner, workspace, "Lifecycle")

    result = _invoke(runner, workspace, "update", pid, "--progress", "60", "--name", "Renamed")
    assert result.exit_code == 0, result.output

    shown = json.loads(_invoke(runner, workspace, "show", pid).output)
    assert shown["name"] == "Renamed"
    assert shown["progress"] == 60

    result = _invoke(runner, workspace, "delete", pid, "--yes")
    assert result.exit_code == 0
    assert _invoke(runner, workspace, "show", pid).exit_code == 1


def test_log_activity(runner: CliRunner, workspace: Path):
    pid = _add(runner, workspace, "Busy")
    result = _invoke(runner, workspace, "log", pid, "Wrote docs")
    assert result.exit_code == 0
    assert "2 entries" in result.output


def test_export_and_import(runner: CliRunner, workspace: Path, tmp_path: Path):
    _add(runner, workspace, "Exported", "--tag", "web")
    out_dir = tmp_path / "out"

    result = _invoke(runner, workspace, "export", "--format", "csv", "--output", str(out_dir))
    assert result.exit_code == 0
    [exported] = list(out_dir.glob("projects_export_*.csv"))

    result = _invoke(runner, workspace, "import", str(exported))
    assert result.exit_code == 0, result.output
    assert "Imported 1 projects" in result.output

    listing = json.loads(_invoke(runner, workspace, "export", "--format", "json", "--stdout").output)
    assert len(listing) == 2


def test_import_bad_file_writes_nothing(runner: CliRunner, workspace: Path, tmp_path: Path):
    bad = tmp_path / "bad.csv"
    bad.write_text("name,progress\nGood,10\nBad,oops\n")

    result = _invoke(runner, workspace, "import", str(bad))
    assert result.exit_code == 1
    assert "Row 2" in result.output

    listing = json.loads(_invoke(runner, workspace, "export", "--format", "json", "--stdout").output)
    assert listing == []


def test_tags(runner: CliRunner, tmp_path: Path):
    result = runner.invoke(main, ["--workspace", str(tmp_path), "tags", "end"])
    assert result.exit_code == 0
    assert result.output.split() == ["backend", "frontend"]


def test_stats_and_timeline(runner: CliRunner, workspace: Path):
    _add(runner, workspace, "Measured", "--progress", "50", "--monetized")

    stats = json.loads(_invoke(runner, workspace, "stats").output)
    assert stats["total"] == 1
    assert stats["monetized"] == 1

    result = _invoke(runner, workspace, "timeline")
    assert result.exit_code == 0
    assert "Measured" in result.output


def test_sprint(runner: CliRunner, workspace: Path):
    _add(runner, workspace, "Sprinted", "--usefulness", "5", "--progress", "10")
    result = _invoke(runner, workspace, "sprint")
    assert result.exit_code == 0
    assert "Sprinted" in result.output


def test_deadlines(runner: CliRunner, workspace: Path, tmp_path: Path):
    result = _invoke(runner, workspace, "deadlines")
    assert result.exit_code == 0
    assert "No upcoming deadlines" in result.output

    source = tmp_path / "milestones.json"
    source.write_text(
        json.dumps(
            [
                {
                    "name": "Planned",
                    "milestones": [
                        {"title": "Beta", "dueDate": "2099-01-01"},
                        {"title": "Done", "dueDate": "2000-01-01", "status": "completed"},
                    ],
                }
            ]
        )
    )
    assert _invoke(runner, workspace, "import", str(source)).exit_code == 0

    result = _invoke(runner, workspace, "deadlines")
    assert result.exit_code == 0
    assert "Beta" in result.output
    assert "Done" not in result.output
