"""
Scheduler component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from newsdesk.core.entities import PublishJob, PublishJobStatus
from newsdesk.domain.entities import ChannelErrorKind, ChannelLogStatus


@dataclass(frozen=True)
class SchedulerValidationError:
    code: str
    message: str
    job_id: UUID | None = None
    content_id: UUID | None = None


# --- Input Models ---


@dataclass(frozen=True)
class EnqueueInput:
    content_id: UUID
    target_platforms: tuple[str, ...]
    version_no: int | None = None
    scheduled_at: datetime | None = None
    is_emergency: bool = False
    silence_push: bool = False


# --- Output Models ---


@dataclass(frozen=True)
class EnqueueOutput:
    job: PublishJob | None
    already_queued: bool = False
    errors: list[SchedulerValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class ChannelOutcome:
    """Result of one channel call inside a dispatch."""

    channel: str
    status: ChannelLogStatus
    error: str | None = None
    error_kind: ChannelErrorKind | None = None
    external_post_id: str | None = None
    retry_after_seconds: int | None = None


@dataclass(frozen=True)
class DispatchResult:
    job_id: UUID
    content_id: UUID
    version_no: int
    status: PublishJobStatus
    outcomes: tuple[ChannelOutcome, ...] = ()
    error: str | None = None
    next_retry_at: datetime | None = None

    @property
    def completed(self) -> bool:
        return self.status == "completed"


@dataclass(frozen=True)
class ProcessResult:
    """Summary of one process-due pass."""

    claimed: int
    requeued: int
    results: list[DispatchResult] = field(default_factory=list)

    @property
    def completed(self) -> int:
        return sum(1 for r in self.results if r.status == "completed")

    @property
    def retrying(self) -> int:
        return sum(1 for r in self.results if r.status == "pending")

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.status == "failed")
