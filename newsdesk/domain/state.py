"""
Content lifecycle state machine.

new -> {auto_ready, pending_approval, blocked, scheduled}
    -> {ready_to_publish, rejected} -> published -> {published, retracted}

Every editorial action bumps current_version_no by exactly one and yields a
ContentRevision snapshot. apply_action is pure: on the error path nothing is
built and the caller's item is untouched.

mark_published is the scheduler's delivery acknowledgement, not an editorial
action; it records the delivered version without bumping the counter.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from newsdesk.domain.entities import (
    ContentDraft,
    ContentItem,
    ContentRevision,
    ContentStatus,
    RevisionAction,
)

TERMINAL_STATUSES: frozenset[ContentStatus] = frozenset({"blocked", "rejected", "retracted"})
TRIAGE_STATUSES: frozenset[ContentStatus] = frozenset(
    {"auto_ready", "pending_approval", "blocked", "scheduled"}
)
PUBLISHABLE_STATUSES: frozenset[ContentStatus] = frozenset(
    {"auto_ready", "scheduled", "ready_to_publish", "published"}
)

ALLOWED_FROM: dict[RevisionAction, frozenset[ContentStatus]] = {
    "Triaged": frozenset({"new"}),
    "DraftSaved": frozenset(
        {"new", "auto_ready", "pending_approval", "scheduled", "ready_to_publish", "published"}
    ),
    "Approved": frozenset({"auto_ready", "pending_approval", "scheduled"}),
    "Rejected": frozenset({"auto_ready", "pending_approval", "scheduled", "ready_to_publish"}),
    "Scheduled": frozenset({"auto_ready", "pending_approval", "ready_to_publish", "scheduled"}),
    "Corrected": frozenset({"published"}),
    "Retracted": frozenset({"published"}),
    "BreakingMarked": frozenset(
        {"auto_ready", "pending_approval", "scheduled", "ready_to_publish", "published"}
    ),
    "Resubmitted": frozenset({"rejected"}),
}

# Fixed targets; Triaged takes the decision status, DraftSaved keeps the current one
TARGET_STATUS: dict[RevisionAction, ContentStatus] = {
    "Approved": "ready_to_publish",
    "Rejected": "rejected",
    "Scheduled": "scheduled",
    "Corrected": "published",
    "Retracted": "retracted",
    "Resubmitted": "pending_approval",
}

# Item fields an action may set through `updates`
_UPDATABLE_FIELDS = frozenset(
    {
        "status",
        "title",
        "summary",
        "body_text",
        "draft",
        "decision_type",
        "decision_reason",
        "decided_by_rule_id",
        "decided_at",
        "trust_level_snapshot",
        "scheduled_at",
        "is_breaking",
        "breaking_priority",
        "breaking_push_required",
        "retract_reason",
    }
)

BREAKING_PUSH_MESSAGE = (
    "Breaking news requires push notification, but publish_to_mobile is disabled. "
    "Enable mobile publishing or set push_required=false."
)


@dataclass(frozen=True)
class LifecycleError:
    """Validation failure for a lifecycle action."""

    code: str
    message: str
    content_id: UUID | None = None


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of apply_action: either (item, revision) or errors."""

    item: ContentItem | None
    revision: ContentRevision | None
    errors: list[LifecycleError] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    @property
    def version_no(self) -> int | None:
        return self.revision.version_no if self.revision else None


def can_apply(current: ContentStatus, action: RevisionAction) -> bool:
    return current in ALLOWED_FROM.get(action, frozenset())


def _fail(item: ContentItem, code: str, message: str) -> TransitionResult:
    return TransitionResult(
        item=None,
        revision=None,
        errors=[LifecycleError(code=code, message=message, content_id=item.id)],
    )


def _resolve_status(
    item: ContentItem, action: RevisionAction, updates: dict[str, Any]
) -> ContentStatus | None:
    if action == "Triaged":
        status = updates.get("status")
        return status if status in TRIAGE_STATUSES else None
    if action == "DraftSaved":
        return item.status
    if action == "BreakingMarked":
        return "published" if item.status == "published" else "ready_to_publish"
    return TARGET_STATUS[action]


def apply_action(
    item: ContentItem,
    action: RevisionAction,
    now: datetime,
    updates: dict[str, Any] | None = None,
    actor: str | None = None,
) -> TransitionResult:
    """
    Apply an editorial action to an item.

    Args:
        item: Current item state
        action: Revision action type
        now: Current UTC time
        updates: Field changes carried by the action (draft, decision, ...)
        actor: Who performed the action (stored on the revision)

    Returns:
        TransitionResult with the new item and its revision, or errors.
    """
    updates = dict(updates or {})

    unknown = set(updates) - _UPDATABLE_FIELDS
    if unknown:
        return _fail(item, "invalid_update", f"Fields not updatable: {sorted(unknown)}")

    if not can_apply(item.status, action):
        return _fail(
            item,
            "invalid_transition",
            f"Cannot apply {action} to content in '{item.status}' status",
        )

    new_status = _resolve_status(item, action, updates)
    if new_status is None:
        return _fail(
            item,
            "invalid_decision_status",
            f"Triage status must be one of {sorted(TRIAGE_STATUSES)}",
        )

    draft = updates.get("draft", item.draft)
    if isinstance(draft, dict):
        draft = ContentDraft.model_validate(draft)
        updates["draft"] = draft

    if action == "BreakingMarked":
        push_required = updates.get("breaking_push_required", True)
        if push_required and not draft.publish_to_mobile:
            return _fail(item, "push_required", BREAKING_PUSH_MESSAGE)
        updates.setdefault("is_breaking", True)

    if action == "Scheduled" and updates.get("scheduled_at", item.scheduled_at) is None:
        return _fail(item, "scheduled_at_required", "Scheduling requires scheduled_at")

    updates["status"] = new_status
    updates["current_version_no"] = item.current_version_no + 1
    updates["updated_at"] = now

    if action == "Retracted":
        updates["is_retracted"] = True
        updates["retracted_at"] = now

    new_item = item.model_copy(update=updates)

    revision = ContentRevision(
        content_id=item.id,
        version_no=new_item.current_version_no,
        action_type=action,
        snapshot_json=new_item.model_dump_json(),
        created_by=actor,
        created_at=now,
    )
    return TransitionResult(item=new_item, revision=revision)


def mark_published(item: ContentItem, version_no: int, now: datetime) -> ContentItem:
    """
    Record a delivered version.

    Only publishable items change: a retracted, rejected or blocked item is
    returned as is. A late acknowledgement for an older version never lowers
    published_version_no.
    """
    if item.status not in PUBLISHABLE_STATUSES:
        return item
    published_version = max(item.published_version_no or 0, version_no)
    return item.model_copy(
        update={
            "status": "published",
            "published_version_no": published_version,
            "published_at": now,
            "updated_at": now,
        }
    )
