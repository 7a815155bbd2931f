"""
Newsroom facade models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from newsdesk.components.emergency.models import EmergencyDetection
from newsdesk.components.triage.models import RuleDecision
from newsdesk.core.entities import PublishJob
from newsdesk.domain.entities import ContentItem, EmergencyQueueItem


@dataclass(frozen=True)
class EngineError:
    """Error from any component, flattened for callers."""

    code: str
    message: str
    component: str

    @classmethod
    def from_error(cls, error: Any, component: str) -> EngineError:
        return cls(
            code=getattr(error, "code", "error"),
            message=getattr(error, "message", str(error)),
            component=component,
        )


@dataclass(frozen=True)
class EditorialResult:
    """Outcome of an editorial action plus any publish job it queued."""

    item: ContentItem | None
    version_no: int | None = None
    job: PublishJob | None = None
    already_queued: bool = False
    errors: list[EngineError] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.item is not None and not self.errors


@dataclass(frozen=True)
class IngestResult:
    item: ContentItem | None
    decision: RuleDecision | None = None
    detection: EmergencyDetection | None = None
    job: PublishJob | None = None
    emergency_item: EmergencyQueueItem | None = None
    errors: list[EngineError] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.item is not None and not self.errors
