"""Command-line tests for scripts/ratings.py."""

from __future__ import annotations

import importlib.util
import sys
from pathlib import Path
from types import ModuleType

import pytest
from typer.testing import CliRunner

from domain.ratings.errors import ReplayError

SCRIPT_PATH = Path(__file__).resolve().parents[1] / "scripts" / "ratings.py"

runner = CliRunner()


@pytest.fixture
def cli(monkeypatch: pytest.MonkeyPatch) -> ModuleType:
    spec = importlib.util.spec_from_file_location("ratings_cli", SCRIPT_PATH)
    assert spec is not None and spec.loader is not None
    module = importlib.util.module_from_spec(spec)
    monkeypatch.setitem(sys.modules, spec.name, module)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def db_args(tmp_path: Path) -> list[str]:
    return ["--db-url", f"sqlite+pysqlite:///{tmp_path / 'cli.db'}"]


def test_add_match_then_leaderboard(cli: ModuleType, db_args: list[str]) -> None:
    added = runner.invoke(
        cli.app,
        [*db_args, "add-match", "--date", "2026-01-01", "--entry", "alice=40", "--entry", "bob=30"],
    )
    assert added.exit_code == 0, added.output
    assert "added match_id=1" in added.output

    leaderboard = runner.invoke(cli.app, [*db_args, "leaderboard"])
    assert leaderboard.exit_code == 0, leaderboard.output
    lines = leaderboard.output.strip().splitlines()
    assert "alice" in lines[0]
    assert "1014.45" in lines[0]


def test_dry_run_add_match_reports_without_writing(cli: ModuleType, db_args: list[str]) -> None:
    result = runner.invoke(
        cli.app,
        [
            *db_args,
            "add-match",
            "--date",
            "2026-01-01",
            "--entry",
            "alice=40",
            "--entry",
            "bob=30",
            "--dry-run",
        ],
    )
    assert result.exit_code == 0, result.output
    assert "[dry-run] would have added" in result.output

    listing = runner.invoke(cli.app, [*db_args, "list-matches"])
    assert listing.exit_code == 0
    assert listing.output.strip() == ""


def test_delete_unknown_match_is_a_usage_error(cli: ModuleType, db_args: list[str]) -> None:
    result = runner.invoke(cli.app, [*db_args, "delete-match", "404"])
    assert result.exit_code == 2
    assert "match_id=404 does not exist" in result.output


@pytest.mark.parametrize("command", ["configure", "recompute"])
def test_replay_failure_exits_with_code_one(
    monkeypatch: pytest.MonkeyPatch,
    cli: ModuleType,
    db_args: list[str],
    command: str,
) -> None:
    def failing_recompute(**_: object) -> None:
        raise ReplayError("rating history replay failed; nothing was committed")

    monkeypatch.setattr(cli, "recompute_all_rating_history", failing_recompute)

    result = runner.invoke(cli.app, [*db_args, command])

    assert result.exit_code == 1
    assert "error: rating history replay failed" in result.output
