"""
SQLite adapters for the repository ports.

Every repository either opens its own connection per call or joins an
external one (tests and multi-step transactions). Datetimes are stored as
UTC ISO-8601 strings with fixed microsecond precision so that string order
equals time order.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from newsdesk.core.entities import PublishJob
from newsdesk.domain.entities import (
    ChannelPublishLog,
    ContentDraft,
    ContentItem,
    ContentRevision,
    EmergencyQueueItem,
    PublishedContent,
    Rule,
    Source,
)
from newsdesk.domain.state import PUBLISHABLE_STATUSES

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Helper functions
# -----------------------------------------------------------------------------


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """Convert SQLite row to dictionary."""
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def format_dt(dt: datetime | None) -> str | None:
    """Serialize as UTC ISO string (naive input is treated as UTC)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).isoformat(timespec="microseconds")


def parse_dt(s: str | None) -> datetime | None:
    """Parse ISO datetime string."""
    if not s:
        return None
    dt = datetime.fromisoformat(s)
    return dt if dt.tzinfo else dt.replace(tzinfo=UTC)


def parse_uuid(s: str | None) -> UUID | None:
    """Parse UUID string."""
    return UUID(s) if s else None


def _csv(values: frozenset[Any]) -> str:
    return ",".join(sorted(str(v) for v in values))


# -----------------------------------------------------------------------------
# Base SQLite Repository
# -----------------------------------------------------------------------------


class SQLiteRepoBase:
    """Base class for SQLite repositories."""

    def __init__(self, db_path: str, connection: sqlite3.Connection | None = None):
        self.db_path = db_path
        self._external_conn = connection

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection (uses external if provided)."""
        if self._external_conn is not None:
            return self._external_conn

        conn = sqlite3.connect(self.db_path, timeout=10.0)
        conn.row_factory = dict_factory
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def _should_close(self) -> bool:
        """Whether to close connection after use."""
        return self._external_conn is None

    def _begin_immediate(self, conn: sqlite3.Connection) -> None:
        """Take the write lock up front so check-then-write is atomic."""
        if not conn.in_transaction:
            conn.execute("BEGIN IMMEDIATE")

    def _commit(self, conn: sqlite3.Connection) -> None:
        if self._should_close():
            conn.commit()


# -----------------------------------------------------------------------------
# Sources
# -----------------------------------------------------------------------------


class SQLiteSourceRepo(SQLiteRepoBase):
    """SQLite implementation of SourceRepoPort."""

    def get_by_id(self, source_id: UUID) -> Source | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM sources WHERE id = ?", (str(source_id),)).fetchone()
            return self._map_row(row) if row else None
        finally:
            if self._should_close():
                conn.close()

    def save(self, source: Source) -> Source:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO sources (
                    id, name, type, category, group_name, trust_level, is_active, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name=excluded.name,
                    type=excluded.type,
                    category=excluded.category,
                    group_name=excluded.group_name,
                    trust_level=excluded.trust_level,
                    is_active=excluded.is_active
                """,
                (
                    str(source.id),
                    source.name,
                    source.type,
                    source.category,
                    source.group,
                    source.trust_level,
                    int(source.is_active),
                    format_dt(source.created_at),
                ),
            )
            self._commit(conn)
            return source
        finally:
            if self._should_close():
                conn.close()

    def list_all(self) -> list[Source]:
        conn = self._get_conn()
        try:
            rows = conn.execute("SELECT * FROM sources ORDER BY name").fetchall()
            return [self._map_row(r) for r in rows]
        finally:
            if self._should_close():
                conn.close()

    def _map_row(self, row: dict[str, Any]) -> Source:
        return Source(
            id=UUID(row["id"]),
            name=row["name"],
            type=row["type"],
            category=row["category"],
            group=row["group_name"],
            trust_level=row["trust_level"],
            is_active=bool(row["is_active"]),
            created_at=parse_dt(row["created_at"]),
        )


# -----------------------------------------------------------------------------
# Content items + revisions
# -----------------------------------------------------------------------------

_CONTENT_COLUMNS = (
    "id",
    "source_id",
    "title",
    "summary",
    "body_text",
    "canonical_url",
    "status",
    "decision_type",
    "decision_reason",
    "decided_by_rule_id",
    "decided_at",
    "trust_level_snapshot",
    "scheduled_at",
    "current_version_no",
    "published_version_no",
    "published_at",
    "is_breaking",
    "breaking_priority",
    "breaking_push_required",
    "is_retracted",
    "retract_reason",
    "retracted_at",
    "draft_json",
    "ingested_at",
    "updated_at",
)


class SQLiteContentRepo(SQLiteRepoBase):
    """SQLite implementation of ContentRepoPort."""

    def get_by_id(self, content_id: UUID) -> ContentItem | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM content_items WHERE id = ?", (str(content_id),)
            ).fetchone()
            return self._map_row(row) if row else None
        finally:
            if self._should_close():
                conn.close()

    def add(self, item: ContentItem) -> ContentItem:
        conn = self._get_conn()
        try:
            placeholders = ", ".join("?" for _ in _CONTENT_COLUMNS)
            conn.execute(
                f"INSERT INTO content_items ({', '.join(_CONTENT_COLUMNS)}) "
                f"VALUES ({placeholders})",
                self._to_params(item),
            )
            self._commit(conn)
            return item
        finally:
            if self._should_close():
                conn.close()

    def save_transition(self, item: ContentItem, revision: ContentRevision) -> bool:
        conn = self._get_conn()
        try:
            self._begin_immediate(conn)
            assignments = ", ".join(f"{col} = ?" for col in _CONTENT_COLUMNS[1:])
            params = self._to_params(item)
            cursor = conn.execute(
                f"UPDATE content_items SET {assignments} "
                "WHERE id = ? AND current_version_no = ?",
                (*params[1:], params[0], revision.version_no - 1),
            )
            if cursor.rowcount != 1:
                conn.rollback()
                logger.warning(
                    "Version conflict saving content %s at version %d",
                    item.id,
                    revision.version_no,
                )
                return False

            conn.execute(
                """
                INSERT INTO content_revisions (
                    id, content_id, version_no, action_type, snapshot_json,
                    created_by, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(revision.id),
                    str(revision.content_id),
                    revision.version_no,
                    revision.action_type,
                    revision.snapshot_json,
                    revision.created_by,
                    format_dt(revision.created_at),
                ),
            )
            self._commit(conn)
            return True
        except sqlite3.IntegrityError:
            conn.rollback()
            logger.warning("Duplicate revision %d for content %s", revision.version_no, item.id)
            return False
        finally:
            if self._should_close():
                conn.close()

    def mark_published(self, content_id: UUID, version_no: int, published_at: datetime) -> None:
        statuses = sorted(PUBLISHABLE_STATUSES)
        placeholders = ", ".join("?" for _ in statuses)
        conn = self._get_conn()
        try:
            # A retract or reject committed while the channels ran wins
            conn.execute(
                f"""
                UPDATE content_items SET
                    status = 'published',
                    published_version_no = MAX(COALESCE(published_version_no, 0), ?),
                    published_at = ?,
                    updated_at = ?
                WHERE id = ? AND status IN ({placeholders})
                """,
                (
                    version_no,
                    format_dt(published_at),
                    format_dt(published_at),
                    str(content_id),
                    *statuses,
                ),
            )
            self._commit(conn)
        finally:
            if self._should_close():
                conn.close()

    def list_by_status(self, status: str, limit: int = 100) -> list[ContentItem]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM content_items WHERE status = ? ORDER BY ingested_at DESC LIMIT ?",
                (status, limit),
            ).fetchall()
            return [self._map_row(r) for r in rows]
        finally:
            if self._should_close():
                conn.close()

    def list_revisions(self, content_id: UUID) -> list[ContentRevision]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM content_revisions WHERE content_id = ? ORDER BY version_no",
                (str(content_id),),
            ).fetchall()
            return [
                ContentRevision(
                    id=UUID(r["id"]),
                    content_id=UUID(r["content_id"]),
                    version_no=r["version_no"],
                    action_type=r["action_type"],
                    snapshot_json=r["snapshot_json"],
                    created_by=r["created_by"],
                    created_at=parse_dt(r["created_at"]),
                )
                for r in rows
            ]
        finally:
            if self._should_close():
                conn.close()

    def _to_params(self, item: ContentItem) -> tuple[Any, ...]:
        return (
            str(item.id),
            str(item.source_id) if item.source_id else None,
            item.title,
            item.summary,
            item.body_text,
            item.canonical_url,
            item.status,
            item.decision_type,
            item.decision_reason,
            str(item.decided_by_rule_id) if item.decided_by_rule_id else None,
            format_dt(item.decided_at),
            item.trust_level_snapshot,
            format_dt(item.scheduled_at),
            item.current_version_no,
            item.published_version_no,
            format_dt(item.published_at),
            int(item.is_breaking),
            item.breaking_priority,
            int(item.breaking_push_required),
            int(item.is_retracted),
            item.retract_reason,
            format_dt(item.retracted_at),
            item.draft.model_dump_json(),
            format_dt(item.ingested_at),
            format_dt(item.updated_at),
        )

    def _map_row(self, row: dict[str, Any]) -> ContentItem:
        return ContentItem(
            id=UUID(row["id"]),
            source_id=parse_uuid(row["source_id"]),
            title=row["title"],
            summary=row["summary"],
            body_text=row["body_text"],
            canonical_url=row["canonical_url"],
            status=row["status"],
            decision_type=row["decision_type"],
            decision_reason=row["decision_reason"],
            decided_by_rule_id=parse_uuid(row["decided_by_rule_id"]),
            decided_at=parse_dt(row["decided_at"]),
            trust_level_snapshot=row["trust_level_snapshot"],
            scheduled_at=parse_dt(row["scheduled_at"]),
            current_version_no=row["current_version_no"],
            published_version_no=row["published_version_no"],
            published_at=parse_dt(row["published_at"]),
            is_breaking=bool(row["is_breaking"]),
            breaking_priority=row["breaking_priority"],
            breaking_push_required=bool(row["breaking_push_required"]),
            is_retracted=bool(row["is_retracted"]),
            retract_reason=row["retract_reason"],
            retracted_at=parse_dt(row["retracted_at"]),
            draft=ContentDraft.model_validate_json(row["draft_json"] or "{}"),
            ingested_at=parse_dt(row["ingested_at"]),
            updated_at=parse_dt(row["updated_at"]),
        )


# -----------------------------------------------------------------------------
# Triage rules
# -----------------------------------------------------------------------------


class SQLiteRuleRepo(SQLiteRepoBase):
    """SQLite implementation of RuleRepoPort. Filters are stored as CSV."""

    def get_by_id(self, rule_id: UUID) -> Rule | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM triage_rules WHERE id = ?", (str(rule_id),)
            ).fetchone()
            return self._map_row(row) if row else None
        finally:
            if self._should_close():
                conn.close()

    def save(self, rule: Rule) -> Rule:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO triage_rules (
                    id, name, priority, decision_type, enabled, min_trust_level,
                    include_keywords, exclude_keywords, source_ids, group_names, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name=excluded.name,
                    priority=excluded.priority,
                    decision_type=excluded.decision_type,
                    enabled=excluded.enabled,
                    min_trust_level=excluded.min_trust_level,
                    include_keywords=excluded.include_keywords,
                    exclude_keywords=excluded.exclude_keywords,
                    source_ids=excluded.source_ids,
                    group_names=excluded.group_names
                """,
                (
                    str(rule.id),
                    rule.name,
                    rule.priority,
                    rule.decision_type,
                    int(rule.enabled),
                    rule.min_trust_level,
                    _csv(rule.include_keywords),
                    _csv(rule.exclude_keywords),
                    _csv(rule.source_ids),
                    _csv(rule.group_names),
                    format_dt(rule.created_at),
                ),
            )
            self._commit(conn)
            return rule
        finally:
            if self._should_close():
                conn.close()

    def delete(self, rule_id: UUID) -> None:
        conn = self._get_conn()
        try:
            conn.execute("DELETE FROM triage_rules WHERE id = ?", (str(rule_id),))
            self._commit(conn)
        finally:
            if self._should_close():
                conn.close()

    def list_all(self) -> list[Rule]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM triage_rules ORDER BY created_at, rowid"
            ).fetchall()
            return [self._map_row(r) for r in rows]
        finally:
            if self._should_close():
                conn.close()

    def _map_row(self, row: dict[str, Any]) -> Rule:
        # CSV columns are parsed into typed sets by the Rule validators
        return Rule(
            id=UUID(row["id"]),
            name=row["name"],
            priority=row["priority"],
            decision_type=row["decision_type"],
            enabled=bool(row["enabled"]),
            min_trust_level=row["min_trust_level"],
            include_keywords=row["include_keywords"],
            exclude_keywords=row["exclude_keywords"],
            source_ids=row["source_ids"],
            group_names=row["group_names"],
            created_at=parse_dt(row["created_at"]),
        )


# -----------------------------------------------------------------------------
# Publish jobs
# -----------------------------------------------------------------------------


class SQLitePublishJobRepo(SQLiteRepoBase):
    """SQLite implementation of PublishJobRepoPort."""

    def get_by_id(self, job_id: UUID) -> PublishJob | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM publish_jobs WHERE id = ?", (str(job_id),)).fetchone()
            return self._map_row(row) if row else None
        finally:
            if self._should_close():
                conn.close()

    def get_active_for_version(self, content_id: UUID, version_no: int) -> PublishJob | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                """
                SELECT * FROM publish_jobs
                WHERE content_id = ? AND version_no = ? AND status IN ('pending', 'processing')
                """,
                (str(content_id), version_no),
            ).fetchone()
            return self._map_row(row) if row else None
        finally:
            if self._should_close():
                conn.close()

    def save(self, job: PublishJob) -> PublishJob:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO publish_jobs (
                    id, content_id, version_no, scheduled_at, status, attempt_count,
                    next_retry_at, last_attempt_at, last_error, target_platforms,
                    is_emergency, silence_push, claimed_by, claimed_at,
                    created_at, updated_at, completed_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    scheduled_at=excluded.scheduled_at,
                    status=excluded.status,
                    attempt_count=excluded.attempt_count,
                    next_retry_at=excluded.next_retry_at,
                    last_attempt_at=excluded.last_attempt_at,
                    last_error=excluded.last_error,
                    silence_push=excluded.silence_push,
                    claimed_by=excluded.claimed_by,
                    claimed_at=excluded.claimed_at,
                    updated_at=excluded.updated_at,
                    completed_at=excluded.completed_at
                """,
                self._to_params(job),
            )
            self._commit(conn)
            return job
        finally:
            if self._should_close():
                conn.close()

    def create_if_not_exists(self, job: PublishJob) -> tuple[PublishJob, bool]:
        conn = self._get_conn()
        try:
            self._begin_immediate(conn)
            row = conn.execute(
                """
                SELECT * FROM publish_jobs
                WHERE content_id = ? AND version_no = ? AND status IN ('pending', 'processing')
                """,
                (str(job.content_id), job.version_no),
            ).fetchone()
            if row:
                conn.rollback()
                return self._map_row(row), False

            conn.execute(
                """
                INSERT INTO publish_jobs (
                    id, content_id, version_no, scheduled_at, status, attempt_count,
                    next_retry_at, last_attempt_at, last_error, target_platforms,
                    is_emergency, silence_push, claimed_by, claimed_at,
                    created_at, updated_at, completed_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                self._to_params(job),
            )
            self._commit(conn)
            return job, True
        finally:
            if self._should_close():
                conn.close()

    def claim_due(self, now_utc: datetime, limit: int, worker_id: str) -> list[PublishJob]:
        conn = self._get_conn()
        try:
            now_iso = format_dt(now_utc)
            self._begin_immediate(conn)
            rows = conn.execute(
                """
                SELECT * FROM publish_jobs
                WHERE status = 'pending'
                  AND scheduled_at <= ?
                  AND (next_retry_at IS NULL OR next_retry_at <= ?)
                ORDER BY scheduled_at ASC, created_at ASC
                LIMIT ?
                """,
                (now_iso, now_iso, limit),
            ).fetchall()

            claimed: list[PublishJob] = []
            for row in rows:
                cursor = conn.execute(
                    """
                    UPDATE publish_jobs
                    SET status = 'processing', claimed_by = ?, claimed_at = ?, updated_at = ?
                    WHERE id = ? AND status = 'pending'
                    """,
                    (worker_id, now_iso, now_iso, row["id"]),
                )
                if cursor.rowcount == 1:
                    row.update(
                        status="processing",
                        claimed_by=worker_id,
                        claimed_at=now_iso,
                        updated_at=now_iso,
                    )
                    claimed.append(self._map_row(row))

            self._commit(conn)
            return claimed
        finally:
            if self._should_close():
                conn.close()

    def requeue_stale(self, claimed_before: datetime, now_utc: datetime) -> int:
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                """
                UPDATE publish_jobs
                SET status = 'pending', claimed_by = NULL, claimed_at = NULL, updated_at = ?
                WHERE status = 'processing' AND claimed_at < ?
                """,
                (format_dt(now_utc), format_dt(claimed_before)),
            )
            self._commit(conn)
            return cursor.rowcount
        finally:
            if self._should_close():
                conn.close()

    def cancel_pending(
        self,
        content_id: UUID,
        now_utc: datetime,
        before_version: int | None = None,
    ) -> int:
        conn = self._get_conn()
        try:
            now_iso = format_dt(now_utc)
            sql = """
                UPDATE publish_jobs
                SET status = 'cancelled', completed_at = ?, updated_at = ?
                WHERE content_id = ? AND status = 'pending'
            """
            params: list[Any] = [now_iso, now_iso, str(content_id)]
            if before_version is not None:
                sql += " AND version_no < ?"
                params.append(before_version)
            cursor = conn.execute(sql, params)
            self._commit(conn)
            return cursor.rowcount
        finally:
            if self._should_close():
                conn.close()

    def list_by_content(self, content_id: UUID) -> list[PublishJob]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM publish_jobs WHERE content_id = ? ORDER BY created_at DESC",
                (str(content_id),),
            ).fetchall()
            return [self._map_row(r) for r in rows]
        finally:
            if self._should_close():
                conn.close()

    def list_by_status(self, status: str, limit: int = 100) -> list[PublishJob]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM publish_jobs WHERE status = ? ORDER BY scheduled_at LIMIT ?",
                (status, limit),
            ).fetchall()
            return [self._map_row(r) for r in rows]
        finally:
            if self._should_close():
                conn.close()

    def _to_params(self, job: PublishJob) -> tuple[Any, ...]:
        return (
            str(job.id),
            str(job.content_id),
            job.version_no,
            format_dt(job.scheduled_at),
            job.status,
            job.attempt_count,
            format_dt(job.next_retry_at),
            format_dt(job.last_attempt_at),
            job.last_error,
            json.dumps(job.target_platforms),
            int(job.is_emergency),
            int(job.silence_push),
            job.claimed_by,
            format_dt(job.claimed_at),
            format_dt(job.created_at),
            format_dt(job.updated_at),
            format_dt(job.completed_at),
        )

    def _map_row(self, row: dict[str, Any]) -> PublishJob:
        return PublishJob(
            id=UUID(row["id"]),
            content_id=UUID(row["content_id"]),
            version_no=row["version_no"],
            scheduled_at=datetime.fromisoformat(row["scheduled_at"]),
            target_platforms=json.loads(row["target_platforms"]),
            status=row["status"],
            attempt_count=row["attempt_count"],
            next_retry_at=parse_dt(row["next_retry_at"]),
            last_attempt_at=parse_dt(row["last_attempt_at"]),
            last_error=row["last_error"],
            is_emergency=bool(row["is_emergency"]),
            silence_push=bool(row["silence_push"]),
            claimed_by=row["claimed_by"],
            claimed_at=parse_dt(row["claimed_at"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
            completed_at=parse_dt(row["completed_at"]),
        )


# -----------------------------------------------------------------------------
# Channel publish logs
# -----------------------------------------------------------------------------


class SQLiteChannelLogRepo(SQLiteRepoBase):
    """Append-only SQLite implementation of ChannelLogRepoPort."""

    def append(self, log: ChannelPublishLog) -> ChannelPublishLog:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO channel_publish_logs (
                    id, content_id, job_id, channel, version_no, attempt_no,
                    status, error, error_kind, external_post_id, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(log.id),
                    str(log.content_id),
                    str(log.job_id) if log.job_id else None,
                    log.channel,
                    log.version_no,
                    log.attempt_no,
                    log.status,
                    log.error,
                    log.error_kind,
                    log.external_post_id,
                    format_dt(log.created_at),
                ),
            )
            self._commit(conn)
            return log
        finally:
            if self._should_close():
                conn.close()

    def list_by_content(
        self, content_id: UUID, version_no: int | None = None
    ) -> list[ChannelPublishLog]:
        conn = self._get_conn()
        try:
            if version_no is None:
                rows = conn.execute(
                    "SELECT * FROM channel_publish_logs WHERE content_id = ? "
                    "ORDER BY created_at, rowid",
                    (str(content_id),),
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM channel_publish_logs WHERE content_id = ? AND version_no = ? "
                    "ORDER BY created_at, rowid",
                    (str(content_id), version_no),
                ).fetchall()
            return [self._map_row(r) for r in rows]
        finally:
            if self._should_close():
                conn.close()

    def list_by_job(self, job_id: UUID) -> list[ChannelPublishLog]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM channel_publish_logs WHERE job_id = ? ORDER BY created_at, rowid",
                (str(job_id),),
            ).fetchall()
            return [self._map_row(r) for r in rows]
        finally:
            if self._should_close():
                conn.close()

    def has_success(self, content_id: UUID, channel: str, version_no: int) -> bool:
        conn = self._get_conn()
        try:
            row = conn.execute(
                """
                SELECT 1 FROM channel_publish_logs
                WHERE content_id = ? AND channel = ? AND version_no = ? AND status = 'success'
                LIMIT 1
                """,
                (str(content_id), channel, version_no),
            ).fetchone()
            return row is not None
        finally:
            if self._should_close():
                conn.close()

    def count_success(self, channel: str, start_utc: datetime, end_utc: datetime) -> int:
        conn = self._get_conn()
        try:
            row = conn.execute(
                """
                SELECT COUNT(*) AS n FROM channel_publish_logs
                WHERE channel = ? AND status = 'success' AND created_at >= ? AND created_at < ?
                """,
                (channel, format_dt(start_utc), format_dt(end_utc)),
            ).fetchone()
            return int(row["n"]) if row else 0
        finally:
            if self._should_close():
                conn.close()

    def last_success_at(self, channel: str) -> datetime | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                """
                SELECT MAX(created_at) AS last_at FROM channel_publish_logs
                WHERE channel = ? AND status = 'success'
                """,
                (channel,),
            ).fetchone()
            return parse_dt(row["last_at"]) if row else None
        finally:
            if self._should_close():
                conn.close()

    def _map_row(self, row: dict[str, Any]) -> ChannelPublishLog:
        return ChannelPublishLog(
            id=UUID(row["id"]),
            content_id=UUID(row["content_id"]),
            job_id=parse_uuid(row["job_id"]),
            channel=row["channel"],
            version_no=row["version_no"],
            attempt_no=row["attempt_no"],
            status=row["status"],
            error=row["error"],
            error_kind=row["error_kind"],
            external_post_id=row["external_post_id"],
            created_at=parse_dt(row["created_at"]),
        )


# -----------------------------------------------------------------------------
# Published content
# -----------------------------------------------------------------------------


class SQLitePublishedContentRepo(SQLiteRepoBase):
    """SQLite implementation of PublishedContentRepoPort."""

    def get_by_content(self, content_id: UUID) -> PublishedContent | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM published_content WHERE content_id = ?", (str(content_id),)
            ).fetchone()
            return self._map_row(row) if row else None
        finally:
            if self._should_close():
                conn.close()

    def get_by_path(self, path: str) -> PublishedContent | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM published_content WHERE path = ?", (path,)
            ).fetchone()
            return self._map_row(row) if row else None
        finally:
            if self._should_close():
                conn.close()

    def save(self, record: PublishedContent) -> PublishedContent:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO published_content (
                    id, content_id, version_no, slug, path, web_title, web_body,
                    source_name, published_at, updated_at, is_retracted, retracted_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(content_id) DO UPDATE SET
                    version_no=excluded.version_no,
                    slug=excluded.slug,
                    path=excluded.path,
                    web_title=excluded.web_title,
                    web_body=excluded.web_body,
                    source_name=excluded.source_name,
                    updated_at=excluded.updated_at,
                    is_retracted=excluded.is_retracted,
                    retracted_at=excluded.retracted_at
                """,
                (
                    str(record.id),
                    str(record.content_id),
                    record.version_no,
                    record.slug,
                    record.path,
                    record.web_title,
                    record.web_body,
                    record.source_name,
                    format_dt(record.published_at),
                    format_dt(record.updated_at),
                    int(record.is_retracted),
                    format_dt(record.retracted_at),
                ),
            )
            self._commit(conn)
            row = conn.execute(
                "SELECT * FROM published_content WHERE content_id = ?",
                (str(record.content_id),),
            ).fetchone()
            return self._map_row(row)
        finally:
            if self._should_close():
                conn.close()

    def _map_row(self, row: dict[str, Any]) -> PublishedContent:
        return PublishedContent(
            id=UUID(row["id"]),
            content_id=UUID(row["content_id"]),
            version_no=row["version_no"],
            slug=row["slug"],
            path=row["path"],
            web_title=row["web_title"],
            web_body=row["web_body"],
            source_name=row["source_name"],
            published_at=parse_dt(row["published_at"]),
            updated_at=parse_dt(row["updated_at"]),
            is_retracted=bool(row["is_retracted"]),
            retracted_at=parse_dt(row["retracted_at"]),
        )


# -----------------------------------------------------------------------------
# Emergency queue
# -----------------------------------------------------------------------------


class SQLiteEmergencyQueueRepo(SQLiteRepoBase):
    """SQLite implementation of EmergencyQueueRepoPort."""

    def get_by_id(self, item_id: UUID) -> EmergencyQueueItem | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM emergency_queue WHERE id = ?", (str(item_id),)
            ).fetchone()
            return self._map_row(row) if row else None
        finally:
            if self._should_close():
                conn.close()

    def get_active_for_content(self, content_id: UUID) -> EmergencyQueueItem | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM emergency_queue WHERE content_id = ? AND status = 'pending'",
                (str(content_id),),
            ).fetchone()
            return self._map_row(row) if row else None
        finally:
            if self._should_close():
                conn.close()

    def add(self, item: EmergencyQueueItem) -> tuple[EmergencyQueueItem, bool]:
        conn = self._get_conn()
        try:
            self._begin_immediate(conn)
            row = conn.execute(
                "SELECT * FROM emergency_queue WHERE content_id = ? AND status = 'pending'",
                (str(item.content_id),),
            ).fetchone()
            if row:
                conn.rollback()
                return self._map_row(row), False

            conn.execute(
                """
                INSERT INTO emergency_queue (
                    id, content_id, priority, matched_keywords, reason, target_platforms,
                    status, detected_at, published_at, cancelled_at, publish_job_id
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                self._to_params(item),
            )
            self._commit(conn)
            return item, True
        finally:
            if self._should_close():
                conn.close()

    def update_if_pending(self, item: EmergencyQueueItem) -> bool:
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                """
                UPDATE emergency_queue SET
                    priority = ?, matched_keywords = ?, reason = ?, target_platforms = ?,
                    status = ?, published_at = ?, cancelled_at = ?, publish_job_id = ?
                WHERE id = ? AND status = 'pending'
                """,
                (
                    item.priority,
                    json.dumps(item.matched_keywords, ensure_ascii=False),
                    item.reason,
                    json.dumps(item.target_platforms),
                    item.status,
                    format_dt(item.published_at),
                    format_dt(item.cancelled_at),
                    str(item.publish_job_id) if item.publish_job_id else None,
                    str(item.id),
                ),
            )
            self._commit(conn)
            return cursor.rowcount == 1
        finally:
            if self._should_close():
                conn.close()

    def list_pending(self, limit: int = 50) -> list[EmergencyQueueItem]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                """
                SELECT * FROM emergency_queue WHERE status = 'pending'
                ORDER BY priority DESC, detected_at ASC
                LIMIT ?
                """,
                (limit,),
            ).fetchall()
            return [self._map_row(r) for r in rows]
        finally:
            if self._should_close():
                conn.close()

    def count_by_status(self) -> dict[str, int]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT status, COUNT(*) AS n FROM emergency_queue GROUP BY status"
            ).fetchall()
            return {r["status"]: int(r["n"]) for r in rows}
        finally:
            if self._should_close():
                conn.close()

    def _to_params(self, item: EmergencyQueueItem) -> tuple[Any, ...]:
        return (
            str(item.id),
            str(item.content_id),
            item.priority,
            json.dumps(item.matched_keywords, ensure_ascii=False),
            item.reason,
            json.dumps(item.target_platforms),
            item.status,
            format_dt(item.detected_at),
            format_dt(item.published_at),
            format_dt(item.cancelled_at),
            str(item.publish_job_id) if item.publish_job_id else None,
        )

    def _map_row(self, row: dict[str, Any]) -> EmergencyQueueItem:
        return EmergencyQueueItem(
            id=UUID(row["id"]),
            content_id=UUID(row["content_id"]),
            priority=row["priority"],
            matched_keywords=json.loads(row["matched_keywords"]),
            reason=row["reason"],
            target_platforms=json.loads(row["target_platforms"]),
            status=row["status"],
            detected_at=parse_dt(row["detected_at"]),
            published_at=parse_dt(row["published_at"]),
            cancelled_at=parse_dt(row["cancelled_at"]),
            publish_job_id=parse_uuid(row["publish_job_id"]),
        )


# -----------------------------------------------------------------------------
# Settings (key/value JSON)
# -----------------------------------------------------------------------------


class SQLiteSettingsRepo(SQLiteRepoBase):
    """SQLite implementation of SettingsRepoPort."""

    def get(self, key: str) -> dict[str, Any] | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT value_json FROM settings WHERE key = ?", (key,)).fetchone()
            if not row:
                return None
            value = json.loads(row["value_json"])
            return value if isinstance(value, dict) else None
        finally:
            if self._should_close():
                conn.close()

    def set(self, key: str, value: dict[str, Any], now_utc: datetime) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO settings (key, value_json, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value_json=excluded.value_json,
                    updated_at=excluded.updated_at
                """,
                (key, json.dumps(value, ensure_ascii=False), format_dt(now_utc)),
            )
            self._commit(conn)
        finally:
            if self._should_close():
                conn.close()
