"""
In-memory repository adapters.

Same contracts as the SQLite adapters, guarded by a lock so the conditional
writes (claim, save_transition, update_if_pending) stay atomic across
threads. Used by unit tests and the dev API.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime
from typing import Any
from uuid import UUID

from newsdesk.core.entities import ACTIVE_JOB_STATUSES, PublishJob
from newsdesk.domain.entities import (
    ChannelPublishLog,
    ContentItem,
    ContentRevision,
    EmergencyQueueItem,
    PublishedContent,
    Rule,
    Source,
)
from newsdesk.domain.state import mark_published as _mark_published


class InMemorySourceRepo:
    def __init__(self, sources: list[Source] | None = None) -> None:
        self.sources: dict[UUID, Source] = {s.id: s for s in sources or []}

    def get_by_id(self, source_id: UUID) -> Source | None:
        return self.sources.get(source_id)

    def save(self, source: Source) -> Source:
        self.sources[source.id] = source
        return source

    def list_all(self) -> list[Source]:
        return sorted(self.sources.values(), key=lambda s: s.name)


class InMemoryContentRepo:
    def __init__(self) -> None:
        self.items: dict[UUID, ContentItem] = {}
        self.revisions: dict[UUID, list[ContentRevision]] = {}
        self._lock = threading.Lock()

    def get_by_id(self, content_id: UUID) -> ContentItem | None:
        return self.items.get(content_id)

    def add(self, item: ContentItem) -> ContentItem:
        with self._lock:
            if item.id in self.items:
                raise ValueError(f"Content {item.id} already exists")
            self.items[item.id] = item
        return item

    def save_transition(self, item: ContentItem, revision: ContentRevision) -> bool:
        with self._lock:
            stored = self.items.get(item.id)
            if stored is None or stored.current_version_no != revision.version_no - 1:
                return False
            self.items[item.id] = item
            self.revisions.setdefault(item.id, []).append(revision)
            return True

    def mark_published(self, content_id: UUID, version_no: int, published_at: datetime) -> None:
        with self._lock:
            stored = self.items.get(content_id)
            if stored is not None:
                self.items[content_id] = _mark_published(stored, version_no, published_at)

    def list_by_status(self, status: str, limit: int = 100) -> list[ContentItem]:
        items = [i for i in self.items.values() if i.status == status]
        items.sort(key=lambda i: i.ingested_at, reverse=True)
        return items[:limit]

    def list_revisions(self, content_id: UUID) -> list[ContentRevision]:
        return sorted(self.revisions.get(content_id, []), key=lambda r: r.version_no)


class InMemoryRuleRepo:
    def __init__(self, rules: list[Rule] | None = None) -> None:
        # dict preserves insertion order
        self.rules: dict[UUID, Rule] = {r.id: r for r in rules or []}

    def get_by_id(self, rule_id: UUID) -> Rule | None:
        return self.rules.get(rule_id)

    def save(self, rule: Rule) -> Rule:
        self.rules[rule.id] = rule
        return rule

    def delete(self, rule_id: UUID) -> None:
        self.rules.pop(rule_id, None)

    def list_all(self) -> list[Rule]:
        return list(self.rules.values())


class InMemoryPublishJobRepo:
    def __init__(self) -> None:
        self.jobs: dict[UUID, PublishJob] = {}
        self._lock = threading.Lock()

    def get_by_id(self, job_id: UUID) -> PublishJob | None:
        job = self.jobs.get(job_id)
        return replace(job) if job else None

    def get_active_for_version(self, content_id: UUID, version_no: int) -> PublishJob | None:
        for job in self.jobs.values():
            if (
                job.content_id == content_id
                and job.version_no == version_no
                and job.status in ACTIVE_JOB_STATUSES
            ):
                return replace(job)
        return None

    def create_if_not_exists(self, job: PublishJob) -> tuple[PublishJob, bool]:
        with self._lock:
            existing = self.get_active_for_version(job.content_id, job.version_no)
            if existing:
                return existing, False
            self.jobs[job.id] = replace(job)
            return job, True

    def save(self, job: PublishJob) -> PublishJob:
        with self._lock:
            self.jobs[job.id] = replace(job)
        return job

    def claim_due(self, now_utc: datetime, limit: int, worker_id: str) -> list[PublishJob]:
        with self._lock:
            due = [
                j
                for j in self.jobs.values()
                if j.status == "pending"
                and j.scheduled_at <= now_utc
                and (j.next_retry_at is None or j.next_retry_at <= now_utc)
            ]
            due.sort(key=lambda j: (j.scheduled_at, j.created_at))
            claimed: list[PublishJob] = []
            for job in due[:limit]:
                job.status = "processing"
                job.claimed_by = worker_id
                job.claimed_at = now_utc
                job.updated_at = now_utc
                claimed.append(replace(job))
            return claimed

    def requeue_stale(self, claimed_before: datetime, now_utc: datetime) -> int:
        count = 0
        with self._lock:
            for job in self.jobs.values():
                stale = job.claimed_at is not None and job.claimed_at < claimed_before
                if job.status == "processing" and stale:
                    job.status = "pending"
                    job.claimed_by = None
                    job.claimed_at = None
                    job.updated_at = now_utc
                    count += 1
        return count

    def cancel_pending(
        self,
        content_id: UUID,
        now_utc: datetime,
        before_version: int | None = None,
    ) -> int:
        count = 0
        with self._lock:
            for job in self.jobs.values():
                if job.content_id != content_id or job.status != "pending":
                    continue
                if before_version is not None and job.version_no >= before_version:
                    continue
                job.status = "cancelled"
                job.completed_at = now_utc
                job.updated_at = now_utc
                count += 1
        return count

    def list_by_content(self, content_id: UUID) -> list[PublishJob]:
        jobs = [replace(j) for j in self.jobs.values() if j.content_id == content_id]
        jobs.sort(key=lambda j: j.created_at, reverse=True)
        return jobs

    def list_by_status(self, status: str, limit: int = 100) -> list[PublishJob]:
        jobs = [replace(j) for j in self.jobs.values() if j.status == status]
        jobs.sort(key=lambda j: j.scheduled_at)
        return jobs[:limit]


class InMemoryChannelLogRepo:
    def __init__(self) -> None:
        self.logs: list[ChannelPublishLog] = []

    def append(self, log: ChannelPublishLog) -> ChannelPublishLog:
        self.logs.append(log)
        return log

    def list_by_content(
        self, content_id: UUID, version_no: int | None = None
    ) -> list[ChannelPublishLog]:
        return [
            log
            for log in self.logs
            if log.content_id == content_id and (version_no is None or log.version_no == version_no)
        ]

    def list_by_job(self, job_id: UUID) -> list[ChannelPublishLog]:
        return [log for log in self.logs if log.job_id == job_id]

    def has_success(self, content_id: UUID, channel: str, version_no: int) -> bool:
        return any(
            log.content_id == content_id
            and log.channel == channel
            and log.version_no == version_no
            and log.status == "success"
            for log in self.logs
        )

    def count_success(self, channel: str, start_utc: datetime, end_utc: datetime) -> int:
        return sum(
            1
            for log in self.logs
            if log.channel == channel
            and log.status == "success"
            and start_utc <= log.created_at < end_utc
        )

    def last_success_at(self, channel: str) -> datetime | None:
        times = [
            log.created_at
            for log in self.logs
            if log.channel == channel and log.status == "success"
        ]
        return max(times) if times else None


class InMemoryPublishedContentRepo:
    def __init__(self) -> None:
        self.records: dict[UUID, PublishedContent] = {}

    def get_by_content(self, content_id: UUID) -> PublishedContent | None:
        return self.records.get(content_id)

    def get_by_path(self, path: str) -> PublishedContent | None:
        for record in self.records.values():
            if record.path == path:
                return record
        return None

    def save(self, record: PublishedContent) -> PublishedContent:
        existing = self.records.get(record.content_id)
        if existing is not None:
            # One record per content item; keep the original id and first publish time
            record = record.model_copy(
                update={"id": existing.id, "published_at": existing.published_at}
            )
        self.records[record.content_id] = record
        return record


class InMemoryEmergencyQueueRepo:
    def __init__(self) -> None:
        self.items: dict[UUID, EmergencyQueueItem] = {}
        self._lock = threading.Lock()

    def get_by_id(self, item_id: UUID) -> EmergencyQueueItem | None:
        return self.items.get(item_id)

    def get_active_for_content(self, content_id: UUID) -> EmergencyQueueItem | None:
        for item in self.items.values():
            if item.content_id == content_id and item.status == "pending":
                return item
        return None

    def add(self, item: EmergencyQueueItem) -> tuple[EmergencyQueueItem, bool]:
        with self._lock:
            existing = self.get_active_for_content(item.content_id)
            if existing:
                return existing, False
            self.items[item.id] = item
            return item, True

    def update_if_pending(self, item: EmergencyQueueItem) -> bool:
        with self._lock:
            stored = self.items.get(item.id)
            if stored is None or stored.status != "pending":
                return False
            self.items[item.id] = item
            return True

    def list_pending(self, limit: int = 50) -> list[EmergencyQueueItem]:
        pending = [i for i in self.items.values() if i.status == "pending"]
        pending.sort(key=lambda i: (-i.priority, i.detected_at))
        return pending[:limit]

    def count_by_status(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for item in self.items.values():
            counts[item.status] = counts.get(item.status, 0) + 1
        return counts


class InMemorySettingsRepo:
    def __init__(self) -> None:
        self.values: dict[str, dict[str, Any]] = {}

    def get(self, key: str) -> dict[str, Any] | None:
        return self.values.get(key)

    def set(self, key: str, value: dict[str, Any], now_utc: datetime) -> None:
        self.values[key] = value
