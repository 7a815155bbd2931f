"""
Repository interfaces.

Protocol-based so components can run against SQLite or the in-memory
adapters used in tests. Conditional writes (claim, save_transition,
update_if_pending) are the only coordination between workers.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol
from uuid import UUID

from newsdesk.core.entities import PublishJob
from newsdesk.domain.entities import (
    ChannelPublishLog,
    ContentItem,
    ContentRevision,
    EmergencyQueueItem,
    PublishedContent,
    Rule,
    Source,
)


class SourceRepoPort(Protocol):
    def get_by_id(self, source_id: UUID) -> Source | None: ...

    def save(self, source: Source) -> Source: ...

    def list_all(self) -> list[Source]: ...


class ContentRepoPort(Protocol):
    def get_by_id(self, content_id: UUID) -> ContentItem | None: ...

    def add(self, item: ContentItem) -> ContentItem:
        """Insert a newly ingested item."""
        ...

    def save_transition(self, item: ContentItem, revision: ContentRevision) -> bool:
        """
        Persist an item and its revision atomically.

        Returns False when the stored version is not revision.version_no - 1
        (another writer got there first); nothing is written in that case.
        """
        ...

    def mark_published(self, content_id: UUID, version_no: int, published_at: datetime) -> None:
        """Record delivery of version_no without bumping the version counter."""
        ...

    def list_by_status(self, status: str, limit: int = 100) -> list[ContentItem]: ...

    def list_revisions(self, content_id: UUID) -> list[ContentRevision]: ...


class RuleRepoPort(Protocol):
    def get_by_id(self, rule_id: UUID) -> Rule | None: ...

    def save(self, rule: Rule) -> Rule: ...

    def delete(self, rule_id: UUID) -> None: ...

    def list_all(self) -> list[Rule]:
        """All rules in insertion order."""
        ...


class PublishJobRepoPort(Protocol):
    def get_by_id(self, job_id: UUID) -> PublishJob | None: ...

    def get_active_for_version(self, content_id: UUID, version_no: int) -> PublishJob | None:
        """Pending or processing job for this content version, if any."""
        ...

    def create_if_not_exists(self, job: PublishJob) -> tuple[PublishJob, bool]:
        """Insert unless an active job exists for the version; returns (job, created)."""
        ...

    def save(self, job: PublishJob) -> PublishJob: ...

    def claim_due(self, now_utc: datetime, limit: int, worker_id: str) -> list[PublishJob]:
        """Atomically move due pending jobs to processing; returns only jobs won."""
        ...

    def requeue_stale(self, claimed_before: datetime, now_utc: datetime) -> int:
        """Return processing jobs whose claim is older than claimed_before to pending."""
        ...

    def cancel_pending(
        self,
        content_id: UUID,
        now_utc: datetime,
        before_version: int | None = None,
    ) -> int:
        """Cancel pending jobs for content (optionally only versions < before_version)."""
        ...

    def list_by_content(self, content_id: UUID) -> list[PublishJob]: ...

    def list_by_status(self, status: str, limit: int = 100) -> list[PublishJob]: ...


class ChannelLogRepoPort(Protocol):
    def append(self, log: ChannelPublishLog) -> ChannelPublishLog: ...

    def list_by_content(
        self, content_id: UUID, version_no: int | None = None
    ) -> list[ChannelPublishLog]: ...

    def list_by_job(self, job_id: UUID) -> list[ChannelPublishLog]: ...

    def has_success(self, content_id: UUID, channel: str, version_no: int) -> bool: ...

    def count_success(self, channel: str, start_utc: datetime, end_utc: datetime) -> int: ...

    def last_success_at(self, channel: str) -> datetime | None: ...


class PublishedContentRepoPort(Protocol):
    def get_by_content(self, content_id: UUID) -> PublishedContent | None: ...

    def get_by_path(self, path: str) -> PublishedContent | None: ...

    def save(self, record: PublishedContent) -> PublishedContent: ...


class EmergencyQueueRepoPort(Protocol):
    def get_by_id(self, item_id: UUID) -> EmergencyQueueItem | None: ...

    def get_active_for_content(self, content_id: UUID) -> EmergencyQueueItem | None: ...

    def add(self, item: EmergencyQueueItem) -> tuple[EmergencyQueueItem, bool]:
        """Insert unless a pending item exists for the content; returns (item, created)."""
        ...

    def update_if_pending(self, item: EmergencyQueueItem) -> bool:
        """Write item only if the stored row is still pending."""
        ...

    def list_pending(self, limit: int = 50) -> list[EmergencyQueueItem]:
        """Pending items by priority desc, detected_at asc."""
        ...

    def count_by_status(self) -> dict[str, int]: ...


class SettingsRepoPort(Protocol):
    def get(self, key: str) -> dict[str, Any] | None: ...

    def set(self, key: str, value: dict[str, Any], now_utc: datetime) -> None: ...
