"""
Schema migrations for the newsdesk SQLite database.

Migration files live in migrations/ as NNN_name.sql and run in filename
order. Each file has an "-- Up" part and an optional "-- Down" part; only
the Up part is applied here. Applied filenames are recorded in the
_migrations table, so `newsdesk migrate` and API startup can both call
run_migrations() safely.
"""

import logging
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)

MIGRATIONS_TABLE = "_migrations"
DOWN_MARKER = "-- Down"


class MigrationError(RuntimeError):
    """A migration script failed and was not recorded as applied."""

    def __init__(self, filename: str, cause: sqlite3.Error) -> None:
        super().__init__(f"Migration {filename} failed: {cause}")
        self.filename = filename


class SQLiteMigrator:
    def __init__(self, db_path: str, migrations_dir: str):
        self.db_path = db_path
        self.migrations_dir = Path(migrations_dir)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.execute("PRAGMA foreign_keys = ON;")
        conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {MIGRATIONS_TABLE} (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                filename TEXT UNIQUE NOT NULL,
                applied_at DATETIME DEFAULT CURRENT_TIMESTAMP
            );
            """
        )
        return conn

    def _applied(self, conn: sqlite3.Connection) -> set[str]:
        rows = conn.execute(f"SELECT filename FROM {MIGRATIONS_TABLE}").fetchall()
        return {row[0] for row in rows}

    def migration_files(self) -> list[str]:
        return sorted(p.name for p in self.migrations_dir.glob("*.sql"))

    def pending_migrations(self) -> list[str]:
        conn = self._connect()
        try:
            applied = self._applied(conn)
        finally:
            conn.close()
        return [name for name in self.migration_files() if name not in applied]

    def run_migrations(self) -> list[str]:
        """
        Bring the schema up to date.

        Returns:
            Filenames applied by this call, in order (empty when up to date)

        Raises:
            MigrationError: a script failed; earlier files stay applied
        """
        conn = self._connect()
        applied_now: list[str] = []
        try:
            applied = self._applied(conn)
            for name in self.migration_files():
                if name in applied:
                    continue
                logger.info("Applying migration %s to %s", name, self.db_path)
                self._apply(conn, name)
                applied_now.append(name)
        finally:
            conn.close()

        if applied_now:
            logger.info("Applied %d migration(s)", len(applied_now))
        else:
            logger.debug("Schema up to date at %s", self.db_path)
        return applied_now

    def up_script(self, filename: str) -> str:
        text = (self.migrations_dir / filename).read_text(encoding="utf-8")
        return text.split(DOWN_MARKER, 1)[0]

    def _apply(self, conn: sqlite3.Connection, filename: str) -> None:
        try:
            conn.executescript(self.up_script(filename))
            conn.execute(f"INSERT INTO {MIGRATIONS_TABLE} (filename) VALUES (?)", (filename,))
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise MigrationError(filename, e) from e
