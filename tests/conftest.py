from datetime import UTC, datetime
from pathlib import Path

import pytest

from newsdesk.adapters.sqlite.migrator import SQLiteMigrator
from newsdesk.adapters.time_zone import FrozenTimeAdapter
from newsdesk.app_shell.context import EngineContext
from newsdesk.rules.loader import load_rules

PROJECT_ROOT = Path(__file__).resolve().parents[1]

# Tuesday 12:00 in Istanbul: inside every default window, outside night mode
NOON_LOCAL = datetime(2025, 6, 10, 9, 0, tzinfo=UTC)


@pytest.fixture
def rules_path():
    return PROJECT_ROOT / "rules.yaml"


@pytest.fixture
def migrations_dir():
    return str(PROJECT_ROOT / "migrations")


@pytest.fixture
def rules(rules_path):
    return load_rules(rules_path)


@pytest.fixture
def clock():
    return FrozenTimeAdapter(NOON_LOCAL)


@pytest.fixture
def ctx(rules, clock):
    """In-memory engine wired with the real rules.yaml and a frozen clock."""
    return EngineContext.create_in_memory(rules, clock)


@pytest.fixture
def engine(ctx):
    return ctx.engine


@pytest.fixture
def db_path(tmp_path, migrations_dir):
    """Migrated SQLite database in a temp directory."""
    path = str(tmp_path / "newsdesk.db")
    SQLiteMigrator(path, migrations_dir).run_migrations()
    return path


@pytest.fixture
def sqlite_ctx(db_path, rules, clock):
    return EngineContext.create(db_path, rules, clock)
