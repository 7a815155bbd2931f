"""
ContentLifecycle - editorial actions over the content state machine.

Key behaviors:
- Every action validates legality, bumps current_version_no by one and
  writes exactly one revision, in one transaction
- Concurrent writers race on the version number; the loser gets
  version_conflict and nothing is written
- mark_published acknowledges delivery without bumping the version
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from newsdesk.domain.entities import (
    ContentDraft,
    ContentItem,
    ContentRevision,
    ContentStatus,
    RevisionAction,
)
from newsdesk.domain.state import apply_action

from .models import (
    ALREADY_EXISTS,
    NOT_FOUND,
    VERSION_CONFLICT,
    LifecycleError,
    TransitionResult,
)
from .ports import ContentRepoPort, TimePort

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "system"


def _error(code: str, message: str, content_id: UUID | None) -> TransitionResult:
    return TransitionResult(
        item=None,
        revision=None,
        errors=[LifecycleError(code=code, message=message, content_id=content_id)],
    )


def _draft_updates(
    draft: ContentDraft | dict[str, Any] | None,
    title: str | None = None,
    summary: str | None = None,
    body_text: str | None = None,
) -> dict[str, Any]:
    updates: dict[str, Any] = {}
    if draft is not None:
        updates["draft"] = draft
    if title is not None:
        updates["title"] = title
    if summary is not None:
        updates["summary"] = summary
    if body_text is not None:
        updates["body_text"] = body_text
    return updates


class LifecycleService:
    """
    Content lifecycle service.

    Owns ContentItem.status and current_version_no.
    """

    def __init__(self, repo: ContentRepoPort, time_port: TimePort | None = None) -> None:
        self._repo = repo
        self._time = time_port

    def _now_utc(self) -> datetime:
        if self._time:
            return self._time.now_utc()
        return datetime.now(UTC)

    def _apply(
        self,
        content_id: UUID,
        action: RevisionAction,
        updates: dict[str, Any] | None = None,
        actor: str | None = None,
    ) -> TransitionResult:
        item = self._repo.get_by_id(content_id)
        if item is None:
            return _error(NOT_FOUND, f"Content {content_id} not found", content_id)

        result = apply_action(item, action, self._now_utc(), updates, actor)
        if not result.success or result.item is None or result.revision is None:
            logger.info(
                "Lifecycle %s rejected for content %s: %s",
                action,
                content_id,
                "; ".join(e.message for e in result.errors),
            )
            return result

        if not self._repo.save_transition(result.item, result.revision):
            logger.warning(
                "Version conflict on %s for content %s (expected v%d)",
                action,
                content_id,
                item.current_version_no,
            )
            return _error(
                VERSION_CONFLICT,
                f"Content {content_id} was modified concurrently; reload and retry",
                content_id,
            )

        logger.info(
            "Content %s: %s -> %s (v%d) by %s",
            content_id,
            action,
            result.item.status,
            result.revision.version_no,
            actor or SYSTEM_ACTOR,
        )
        return result

    # --- Creation / reads ---

    def create(self, item: ContentItem) -> TransitionResult:
        """Store a newly ingested item (status new, version 0)."""
        if item.status != "new" or item.current_version_no != 0:
            return _error(
                "invalid_state", "Ingested content must start as 'new' at version 0", item.id
            )
        if self._repo.get_by_id(item.id) is not None:
            return _error(ALREADY_EXISTS, f"Content {item.id} already exists", item.id)
        stored = self._repo.add(item)
        return TransitionResult(item=stored, revision=None)

    def get(self, content_id: UUID) -> ContentItem | None:
        return self._repo.get_by_id(content_id)

    def list_revisions(self, content_id: UUID) -> list[ContentRevision]:
        return self._repo.list_revisions(content_id)

    def list_by_status(self, status: ContentStatus, limit: int = 100) -> list[ContentItem]:
        return self._repo.list_by_status(status, limit)

    # --- Actions ---

    def triage(
        self,
        content_id: UUID,
        status: ContentStatus,
        decision_type: str,
        reason: str,
        rule_id: UUID | None = None,
        trust_level: int | None = None,
        scheduled_at: datetime | None = None,
        actor: str | None = SYSTEM_ACTOR,
    ) -> TransitionResult:
        """Record the rule decision: new -> decision status."""
        updates: dict[str, Any] = {
            "status": status,
            "decision_type": decision_type,
            "decision_reason": reason,
            "decided_by_rule_id": rule_id,
            "decided_at": self._now_utc(),
            "trust_level_snapshot": trust_level,
        }
        if scheduled_at is not None:
            updates["scheduled_at"] = scheduled_at
        return self._apply(content_id, "Triaged", updates, actor)

    def save_draft(
        self,
        content_id: UUID,
        draft: ContentDraft | dict[str, Any] | None = None,
        title: str | None = None,
        summary: str | None = None,
        body_text: str | None = None,
        actor: str | None = None,
    ) -> TransitionResult:
        return self._apply(
            content_id, "DraftSaved", _draft_updates(draft, title, summary, body_text), actor
        )

    def approve(
        self,
        content_id: UUID,
        draft: ContentDraft | dict[str, Any] | None = None,
        actor: str | None = None,
    ) -> TransitionResult:
        return self._apply(content_id, "Approved", _draft_updates(draft), actor)

    def reject(
        self, content_id: UUID, reason: str | None = None, actor: str | None = None
    ) -> TransitionResult:
        updates = {"decision_reason": reason} if reason else None
        return self._apply(content_id, "Rejected", updates, actor)

    def schedule(
        self, content_id: UUID, scheduled_at: datetime, actor: str | None = None
    ) -> TransitionResult:
        if scheduled_at.tzinfo is None:
            return _error("invalid_time", "scheduled_at must be timezone-aware", content_id)
        return self._apply(
            content_id, "Scheduled", {"scheduled_at": scheduled_at.astimezone(UTC)}, actor
        )

    def correct(
        self,
        content_id: UUID,
        draft: ContentDraft | dict[str, Any] | None = None,
        title: str | None = None,
        summary: str | None = None,
        body_text: str | None = None,
        actor: str | None = None,
    ) -> TransitionResult:
        """Publish a corrected version of published content."""
        return self._apply(
            content_id, "Corrected", _draft_updates(draft, title, summary, body_text), actor
        )

    def retract(
        self, content_id: UUID, reason: str | None = None, actor: str | None = None
    ) -> TransitionResult:
        return self._apply(content_id, "Retracted", {"retract_reason": reason}, actor)

    def mark_breaking(
        self,
        content_id: UUID,
        push_required: bool = True,
        priority: int | None = None,
        draft: ContentDraft | dict[str, Any] | None = None,
        actor: str | None = None,
    ) -> TransitionResult:
        """
        Flag content as breaking news.

        With push_required the draft must have mobile publishing enabled;
        otherwise the action fails and nothing changes.
        """
        updates = _draft_updates(draft)
        updates["is_breaking"] = True
        updates["breaking_push_required"] = push_required
        if priority is not None:
            updates["breaking_priority"] = priority
        return self._apply(content_id, "BreakingMarked", updates, actor)

    def resubmit(self, content_id: UUID, actor: str | None = None) -> TransitionResult:
        return self._apply(content_id, "Resubmitted", None, actor)

    def mark_published(self, content_id: UUID, version_no: int) -> None:
        """Delivery acknowledgement from the scheduler."""
        self._repo.mark_published(content_id, version_no, self._now_utc())
