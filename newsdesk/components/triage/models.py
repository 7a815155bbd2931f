"""
Triage component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from newsdesk.domain.entities import ContentItem, ContentStatus, DecisionType, Rule, Source

DEFAULT_REASON = "Default - no rule matched"


@dataclass(frozen=True)
class TriageValidationError:
    code: str
    message: str
    content_id: UUID | None = None


@dataclass(frozen=True)
class RuleDecision:
    """Evaluation outcome. A pure function of (item, rules, source)."""

    decision_type: DecisionType
    status: ContentStatus
    reason: str
    matched_rule_id: UUID | None = None
    matched_rule_name: str | None = None
    scheduled_at: datetime | None = None
    trust_level: int | None = None

    @property
    def is_default(self) -> bool:
        return self.matched_rule_id is None


# --- Input Models ---


@dataclass(frozen=True)
class EvaluateInput:
    item: ContentItem
    source: Source | None
    rules: tuple[Rule, ...]
    now_utc: datetime
    schedule_offset_minutes: int = 15


@dataclass(frozen=True)
class DryRunInput:
    """Dry-run a single rule against sample text."""

    rule: Rule
    title: str
    summary: str = ""
    body_text: str = ""
    source: Source | None = None


# --- Output Models ---


@dataclass(frozen=True)
class EvaluateOutput:
    decision: RuleDecision | None
    errors: list[TriageValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class DryRunOutput:
    matched: bool
    failed_filters: tuple[str, ...] = ()
    errors: list[TriageValidationError] = field(default_factory=list)
    success: bool = True
