"""
Core scheduling entities.

PublishJob is a mutable dataclass: the scheduler owns it and updates it in
place between claim and save.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Literal
from uuid import UUID, uuid4

PublishJobStatus = Literal["pending", "processing", "completed", "failed", "cancelled"]

ACTIVE_JOB_STATUSES: frozenset[str] = frozenset({"pending", "processing"})


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class PublishJob:
    """
    One scheduled delivery of a content version to a set of platforms.

    Invariants:
    - at most one pending/processing job per (content_id, version_no)
    - attempt_count never decreases

    State machine:
    - pending -> processing -> completed
    - processing -> pending (retry with next_retry_at)
    - processing -> failed (terminal, after max attempts or a content check)
    - pending -> cancelled (terminal)
    """

    content_id: UUID
    version_no: int
    scheduled_at: datetime
    target_platforms: list[str]
    id: UUID = field(default_factory=uuid4)
    status: PublishJobStatus = "pending"
    attempt_count: int = 0
    next_retry_at: datetime | None = None
    last_attempt_at: datetime | None = None
    last_error: str | None = None
    is_emergency: bool = False
    silence_push: bool = False
    claimed_by: str | None = None
    claimed_at: datetime | None = None
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)
    completed_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_JOB_STATUSES
