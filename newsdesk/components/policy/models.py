"""
Policy component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime

from newsdesk.domain.policy import PublishingPolicy


@dataclass(frozen=True)
class PolicyValidationError:
    code: str
    message: str
    field: str | None = None
    platform: str | None = None


@dataclass(frozen=True)
class DailyStats:
    """Successful publishes for one platform in the local calendar day."""

    platform: str
    date: date
    count: int
    limit: int
    remaining: int | None
    is_at_limit: bool
    last_published_at: datetime | None = None


@dataclass(frozen=True)
class ScheduleDecision:
    """
    Per-platform scheduling outcome.

    scheduled_at is None when the platform is disabled (deferred
    indefinitely); it equals now when can_publish_now is True.
    """

    platform: str
    can_publish_now: bool
    scheduled_at: datetime | None
    reason: str
    silence_push: bool = False
    is_emergency: bool = False
    daily_count: int = 0
    daily_limit: int = 0

    @property
    def is_deferred(self) -> bool:
        return not self.can_publish_now


@dataclass(frozen=True)
class PublishPlan:
    """Per-platform decisions folded into a single job."""

    platforms: tuple[str, ...]
    dropped: tuple[str, ...]
    scheduled_at: datetime | None
    can_publish_now: bool
    silence_push: bool
    is_emergency: bool
    decisions: dict[str, ScheduleDecision] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.platforms


# --- Input Models ---


@dataclass(frozen=True)
class PreviewInput:
    platforms: tuple[str, ...]
    is_emergency: bool = False
    at_utc: datetime | None = None


# --- Output Models ---


@dataclass(frozen=True)
class PolicyOutput:
    policy: PublishingPolicy | None
    errors: list[PolicyValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class PreviewOutput:
    plan: PublishPlan | None
    errors: list[PolicyValidationError] = field(default_factory=list)
    success: bool = True
