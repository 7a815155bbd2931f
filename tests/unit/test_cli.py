"""
Tests for the newsdesk CLI against a temporary SQLite database.
"""

from __future__ import annotations

from pathlib import Path
from uuid import uuid4

import pytest

from newsdesk.app_shell.cli import build_parser, main


@pytest.fixture
def cli_args(tmp_path: Path, rules_path: Path, migrations_dir: str) -> list[str]:
    return [
        "--db",
        str(tmp_path / "data" / "newsdesk.db"),
        "--rules",
        str(rules_path),
        "--migrations",
        migrations_dir,
    ]


def _run(cli_args: list[str], *command: str) -> None:
    main([*cli_args, *command])


class TestParser:
    def test_command_is_required(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_process_due_options(self) -> None:
        args = build_parser().parse_args(
            ["process-due", "--worker-id", "w9", "--max-jobs", "3", "--at", "2025-06-10T09:00"]
        )

        assert args.worker_id == "w9"
        assert args.max_jobs == 3
        assert args.at == "2025-06-10T09:00"


class TestCommands:
    def test_migrate_is_idempotent(
        self, cli_args: list[str], capsys: pytest.CaptureFixture[str]
    ) -> None:
        _run(cli_args, "migrate")
        first = capsys.readouterr().out
        _run(cli_args, "migrate")
        second = capsys.readouterr().out

        assert first.startswith("Applied 1 migration(s): 001_initial.sql")
        assert second.strip() == "Database is up to date."

    def test_seed_rules(self, cli_args: list[str], capsys: pytest.CaptureFixture[str]) -> None:
        _run(cli_args, "migrate")
        capsys.readouterr()

        _run(cli_args, "seed-rules")
        _run(cli_args, "seed-rules")

        lines = capsys.readouterr().out.strip().splitlines()
        assert lines == [
            "Seeded 2 rule(s); 0 already present.",
            "Seeded 0 rule(s); 2 already present.",
        ]

    def test_process_due_on_empty_database(
        self, cli_args: list[str], capsys: pytest.CaptureFixture[str]
    ) -> None:
        _run(cli_args, "migrate")
        capsys.readouterr()

        _run(cli_args, "process-due", "--at", "2025-06-10T09:00:00+00:00")

        out = capsys.readouterr().out
        assert out.startswith("Claimed 0 job(s): 0 completed, 0 retrying, 0 failed")

    def test_emergency_queue_empty(
        self, cli_args: list[str], capsys: pytest.CaptureFixture[str]
    ) -> None:
        _run(cli_args, "migrate")
        capsys.readouterr()

        _run(cli_args, "emergency-queue")

        assert capsys.readouterr().out.strip() == "Emergency queue is empty."

    def test_emergency_publish_unknown_item_exits(self, cli_args: list[str]) -> None:
        _run(cli_args, "migrate")

        with pytest.raises(SystemExit) as exc:
            _run(cli_args, "emergency-queue", "--publish", str(uuid4()))

        assert exc.value.code == 1

    def test_stats_lists_every_platform(
        self, cli_args: list[str], capsys: pytest.CaptureFixture[str]
    ) -> None:
        _run(cli_args, "migrate")
        capsys.readouterr()

        _run(cli_args, "stats")

        lines = capsys.readouterr().out.strip().splitlines()
        assert [line.split()[0] for line in lines] == ["web", "mobile", "x", "instagram"]
        assert "0/unlimited" in lines[0]
        assert "0/10" in lines[2]

    def test_missing_rules_file_exits(self, tmp_path: Path, migrations_dir: str) -> None:
        args = [
            "--db",
            str(tmp_path / "newsdesk.db"),
            "--rules",
            str(tmp_path / "missing.yaml"),
            "--migrations",
            migrations_dir,
        ]

        with pytest.raises(SystemExit):
            main([*args, "stats"])
