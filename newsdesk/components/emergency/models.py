"""
Emergency component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from uuid import UUID

from newsdesk.domain.entities import EmergencyQueueItem


@dataclass(frozen=True)
class EmergencyValidationError:
    code: str
    message: str
    item_id: UUID | None = None
    content_id: UUID | None = None


@dataclass(frozen=True)
class EmergencyDetection:
    """Read-only scan result; enqueueing is a separate action."""

    is_emergency: bool
    priority: int
    matched_keywords: tuple[str, ...] = ()
    reason: str = ""
    category_match: bool = False
    trusted_source: bool = False
    is_breaking: bool = False

    @property
    def score(self) -> int:
        return len(self.matched_keywords)


@dataclass(frozen=True)
class QueueOutput:
    item: EmergencyQueueItem | None
    already_queued: bool = False
    errors: list[EmergencyValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class PublishOutput:
    item: EmergencyQueueItem | None
    job_id: UUID | None = None
    already_queued: bool = False
    errors: list[EmergencyValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class QueueStats:
    pending: int = 0
    published: int = 0
    cancelled: int = 0
    top_priority: int | None = None
