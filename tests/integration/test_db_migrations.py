import sqlite3
from pathlib import Path

import pytest

from newsdesk.adapters.sqlite.migrator import MigrationError, SQLiteMigrator

TABLES = (
    "sources",
    "content_items",
    "content_revisions",
    "triage_rules",
    "publish_jobs",
    "channel_publish_logs",
    "published_content",
    "emergency_queue",
    "settings",
)


@pytest.fixture
def temp_db_path(tmp_path):
    return str(tmp_path / "test_db.sqlite")


def _table_names(db_path):
    conn = sqlite3.connect(db_path)
    try:
        rows = conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
        return {row[0] for row in rows}
    finally:
        conn.close()


def test_migrator_creates_all_tables(temp_db_path, migrations_dir):
    applied = SQLiteMigrator(temp_db_path, migrations_dir).run_migrations()

    assert applied == ["001_initial.sql"]
    assert {"_migrations", *TABLES} <= _table_names(temp_db_path)


def test_migrator_is_idempotent(temp_db_path, migrations_dir):
    migrator = SQLiteMigrator(temp_db_path, migrations_dir)

    migrator.run_migrations()
    assert migrator.run_migrations() == []
    assert migrator.pending_migrations() == []

    conn = sqlite3.connect(temp_db_path)
    cursor = conn.execute("SELECT count(*) FROM _migrations WHERE filename='001_initial.sql'")
    assert cursor.fetchone()[0] == 1
    conn.close()


def test_pending_migrations_before_run(temp_db_path, migrations_dir):
    assert SQLiteMigrator(temp_db_path, migrations_dir).pending_migrations() == [
        "001_initial.sql"
    ]


def test_one_active_job_per_version(db_path):
    """The partial unique index backs up the repository check."""
    conn = sqlite3.connect(db_path)
    conn.execute(
        "INSERT INTO content_items (id, title, status, current_version_no, ingested_at, "
        "updated_at) VALUES ('c1', 't', 'ready_to_publish', 1, '2025', '2025')"
    )
    insert = (
        "INSERT INTO publish_jobs (id, content_id, version_no, scheduled_at, status, "
        "target_platforms, created_at, updated_at) "
        "VALUES (?, 'c1', 1, '2025', ?, 'web', '2025', '2025')"
    )
    conn.execute(insert, ("j1", "pending"))
    conn.execute(insert, ("j2", "completed"))

    with pytest.raises(sqlite3.IntegrityError):
        conn.execute(insert, ("j3", "processing"))
    conn.close()


def test_failed_migration_stays_pending(tmp_path, temp_db_path, migrations_dir):
    scripts = tmp_path / "migrations"
    scripts.mkdir()
    initial = Path(migrations_dir) / "001_initial.sql"
    (scripts / initial.name).write_text(initial.read_text(encoding="utf-8"), encoding="utf-8")
    (scripts / "002_broken.sql").write_text("-- Up\nALTER TABLE missing ADD COLUMN x TEXT;\n")
    migrator = SQLiteMigrator(temp_db_path, str(scripts))

    with pytest.raises(MigrationError, match="002_broken.sql") as excinfo:
        migrator.run_migrations()

    assert excinfo.value.filename == "002_broken.sql"
    assert migrator.pending_migrations() == ["002_broken.sql"]


def test_down_section_is_not_applied(migrations_dir):
    migrator = SQLiteMigrator(":memory:", migrations_dir)

    script = migrator.up_script("001_initial.sql")

    assert "CREATE TABLE IF NOT EXISTS publish_jobs" in script
    assert "-- Down" not in script
    assert "DROP TABLE" not in script
