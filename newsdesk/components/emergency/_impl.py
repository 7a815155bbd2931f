"""
EmergencyDetector and EmergencyQueue.

Detection is a read-only scan of item text and source metadata. The queue
holds pending candidates by (priority desc, detected_at asc); each item
leaves pending exactly once, to published or cancelled.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from newsdesk.domain.entities import ContentItem, EmergencyQueueItem, Source
from newsdesk.domain.policy import EmergencyRules

from .models import (
    EmergencyDetection,
    EmergencyValidationError,
    PublishOutput,
    QueueOutput,
    QueueStats,
)
from .ports import (
    EmergencyQueueRepoPort,
    PublishEnqueuePort,
    PublishPlannerPort,
    TimePort,
)

logger = logging.getLogger(__name__)

# Priority weights used when the caller supplies no priority
BREAKING_WEIGHT = 50
CATEGORY_WEIGHT = 30
TRUSTED_SOURCE_WEIGHT = 20
KEYWORD_WEIGHT = 10
MAX_PRIORITY = 100


# --- Detection ---


def match_keywords(text: str, keywords: Sequence[str]) -> tuple[str, ...]:
    """Configured keywords found in text (case-insensitive substring match)."""
    lowered = text.lower()
    return tuple(k for k in keywords if k.strip() and k.lower() in lowered)


def _in(value: str, options: Sequence[str]) -> bool:
    needle = value.strip().casefold()
    return bool(needle) and any(needle == o.strip().casefold() for o in options)


def weighted_priority(
    keyword_count: int,
    category_match: bool,
    trusted_source: bool,
    is_breaking: bool,
) -> int:
    score = keyword_count * KEYWORD_WEIGHT
    if category_match:
        score += CATEGORY_WEIGHT
    if trusted_source:
        score += TRUSTED_SOURCE_WEIGHT
    if is_breaking:
        score += BREAKING_WEIGHT
    return min(score, MAX_PRIORITY)


def detect(
    item: ContentItem,
    source: Source | None,
    rules: EmergencyRules,
    priority: int | None = None,
) -> EmergencyDetection:
    """
    Scan an item for breaking-news signals.

    Args:
        item: Content item (title, summary and body are scanned)
        source: Feed metadata for category/trusted-source checks
        rules: Emergency rules from the publishing policy
        priority: Caller-supplied priority; computed when omitted

    Returns:
        EmergencyDetection with flag, priority and evidence
    """
    matched = match_keywords(item.search_text, rules.keywords)
    category_match = source is not None and _in(source.category, rules.categories)
    trusted = source is not None and _in(source.name, rules.trusted_sources)

    is_emergency = (
        len(matched) >= rules.min_keyword_score or category_match or trusted or item.is_breaking
    )

    if priority is None:
        priority = weighted_priority(len(matched), category_match, trusted, item.is_breaking)
        if is_emergency:
            priority = max(priority, rules.default_priority)
    priority = max(0, min(priority, MAX_PRIORITY))

    reasons: list[str] = []
    if matched:
        reasons.append(f"Keywords: {', '.join(matched)}")
    if category_match and source is not None:
        reasons.append(f"Category: {source.category}")
    if trusted and source is not None:
        reasons.append(f"Trusted source: {source.name}")
    if item.is_breaking:
        reasons.append("Marked breaking")

    return EmergencyDetection(
        is_emergency=is_emergency,
        priority=priority,
        matched_keywords=matched,
        reason="; ".join(reasons) if reasons else "No emergency signals",
        category_match=category_match,
        trusted_source=trusted,
        is_breaking=item.is_breaking,
    )


# --- Queue ---


@dataclass(frozen=True)
class EmergencyQueueConfig:
    default_platforms: tuple[str, ...] = ("web", "mobile", "x")
    list_limit: int = 50


DEFAULT_CONFIG = EmergencyQueueConfig()


class EmergencyQueueService:
    """
    Emergency queue.

    Owns EmergencyQueueItem.status. Publishing hands the item to the job
    scheduler with is_emergency=True. With a planner, targets are first
    checked against the publishing policy: disabled platforms are dropped
    and platforms without an emergency override run at their next slot.
    """

    def __init__(
        self,
        repo: EmergencyQueueRepoPort,
        scheduler: PublishEnqueuePort,
        time_port: TimePort | None = None,
        config: EmergencyQueueConfig | None = None,
        planner: PublishPlannerPort | None = None,
    ) -> None:
        self._repo = repo
        self._scheduler = scheduler
        self._time = time_port
        self._config = config or DEFAULT_CONFIG
        self._planner = planner

    def _now_utc(self) -> datetime:
        if self._time:
            return self._time.now_utc()
        return datetime.now(UTC)

    def _not_found(self, item_id: UUID) -> EmergencyValidationError:
        return EmergencyValidationError(
            code="not_found",
            message=f"Emergency item {item_id} not found",
            item_id=item_id,
        )

    def _not_pending(self, item: EmergencyQueueItem) -> EmergencyValidationError:
        return EmergencyValidationError(
            code="not_pending",
            message=f"Emergency item is '{item.status}', not pending",
            item_id=item.id,
            content_id=item.content_id,
        )

    def add(
        self,
        content_id: UUID,
        detection: EmergencyDetection,
        target_platforms: Sequence[str] | None = None,
    ) -> QueueOutput:
        """
        Queue a candidate. Idempotent per content: an existing pending item
        is returned, with its priority raised if the new one is higher.
        """
        platforms = list(target_platforms or self._config.default_platforms)
        item = EmergencyQueueItem(
            content_id=content_id,
            priority=detection.priority,
            matched_keywords=list(detection.matched_keywords),
            reason=detection.reason,
            target_platforms=platforms,
            detected_at=self._now_utc(),
        )
        stored, created = self._repo.add(item)
        if created:
            logger.info(
                "Emergency candidate queued: content %s priority %d",
                content_id,
                stored.priority,
            )
            return QueueOutput(item=stored)

        if detection.priority > stored.priority:
            raised = stored.model_copy(update={"priority": detection.priority})
            if self._repo.update_if_pending(raised):
                logger.info(
                    "Emergency priority raised for content %s: %d -> %d",
                    content_id,
                    stored.priority,
                    raised.priority,
                )
                stored = raised
        return QueueOutput(item=stored, already_queued=True)

    def publish(self, item_id: UUID, version_no: int | None = None) -> PublishOutput:
        """Enqueue an emergency publish job now and mark the item published."""
        item = self._repo.get_by_id(item_id)
        if item is None:
            return PublishOutput(item=None, errors=[self._not_found(item_id)], success=False)
        if item.status != "pending":
            return PublishOutput(item=item, errors=[self._not_pending(item)], success=False)

        now = self._now_utc()
        targets = list(item.target_platforms or self._config.default_platforms)
        run_at = now
        silence_push = False
        if self._planner is not None:
            publish_plan = self._planner.plan(targets, True, now)
            if not publish_plan.platforms or publish_plan.scheduled_at is None:
                error = EmergencyValidationError(
                    code="no_enabled_platforms",
                    message="No target platform is enabled by the publishing policy",
                    item_id=item.id,
                    content_id=item.content_id,
                )
                return PublishOutput(item=item, errors=[error], success=False)
            if publish_plan.dropped:
                logger.info(
                    "Emergency item %s: policy dropped %s", item.id, ",".join(publish_plan.dropped)
                )
            targets = list(publish_plan.platforms)
            run_at = max(publish_plan.scheduled_at, now)
            silence_push = publish_plan.silence_push

        result = self._scheduler.enqueue(
            item.content_id,
            targets,
            scheduled_at=run_at,
            version_no=version_no,
            is_emergency=True,
            silence_push=silence_push,
        )
        if result.errors or result.job is None:
            errors = [
                EmergencyValidationError(
                    code=getattr(e, "code", "enqueue_failed"),
                    message=getattr(e, "message", str(e)),
                    item_id=item.id,
                    content_id=item.content_id,
                )
                for e in result.errors
            ] or [
                EmergencyValidationError(
                    code="enqueue_failed",
                    message="Scheduler returned no job",
                    item_id=item.id,
                    content_id=item.content_id,
                )
            ]
            return PublishOutput(item=item, errors=errors, success=False)

        published = item.model_copy(
            update={"status": "published", "published_at": now, "publish_job_id": result.job.id}
        )
        if not self._repo.update_if_pending(published):
            # Lost a race with cancel/publish; the job stays (idempotent per version)
            current = self._repo.get_by_id(item_id) or item
            return PublishOutput(item=current, errors=[self._not_pending(current)], success=False)

        logger.info(
            "Emergency item %s published as job %s (already_queued=%s)",
            item.id,
            result.job.id,
            result.already_queued,
        )
        return PublishOutput(
            item=published, job_id=result.job.id, already_queued=result.already_queued
        )

    def cancel(self, item_id: UUID) -> QueueOutput:
        item = self._repo.get_by_id(item_id)
        if item is None:
            return QueueOutput(item=None, errors=[self._not_found(item_id)], success=False)
        if item.status != "pending":
            return QueueOutput(item=item, errors=[self._not_pending(item)], success=False)

        cancelled = item.model_copy(update={"status": "cancelled", "cancelled_at": self._now_utc()})
        if not self._repo.update_if_pending(cancelled):
            current = self._repo.get_by_id(item_id) or item
            return QueueOutput(item=current, errors=[self._not_pending(current)], success=False)
        logger.info("Emergency item %s cancelled", item_id)
        return QueueOutput(item=cancelled)

    def cancel_for_content(self, content_id: UUID) -> QueueOutput | None:
        """Cancel the pending item for a content id, if there is one."""
        item = self._repo.get_active_for_content(content_id)
        return self.cancel(item.id) if item else None

    def update_priority(self, item_id: UUID, priority: int) -> QueueOutput:
        if not 0 <= priority <= MAX_PRIORITY:
            return QueueOutput(
                item=None,
                errors=[
                    EmergencyValidationError(
                        code="invalid_priority",
                        message=f"Priority must be between 0 and {MAX_PRIORITY}",
                        item_id=item_id,
                    )
                ],
                success=False,
            )

        item = self._repo.get_by_id(item_id)
        if item is None:
            return QueueOutput(item=None, errors=[self._not_found(item_id)], success=False)
        if item.status != "pending":
            return QueueOutput(item=item, errors=[self._not_pending(item)], success=False)

        updated = item.model_copy(update={"priority": priority})
        if not self._repo.update_if_pending(updated):
            current = self._repo.get_by_id(item_id) or item
            return QueueOutput(item=current, errors=[self._not_pending(current)], success=False)
        return QueueOutput(item=updated)

    def get(self, item_id: UUID) -> EmergencyQueueItem | None:
        return self._repo.get_by_id(item_id)

    def list_pending(self, limit: int | None = None) -> list[EmergencyQueueItem]:
        return self._repo.list_pending(limit or self._config.list_limit)

    def stats(self) -> QueueStats:
        counts = self._repo.count_by_status()
        top = self._repo.list_pending(1)
        return QueueStats(
            pending=counts.get("pending", 0),
            published=counts.get("published", 0),
            cancelled=counts.get("cancelled", 0),
            top_priority=top[0].priority if top else None,
        )


def create_emergency_queue(
    repo: EmergencyQueueRepoPort,
    scheduler: PublishEnqueuePort,
    time_port: TimePort | None = None,
    config: EmergencyQueueConfig | None = None,
    planner: PublishPlannerPort | None = None,
) -> EmergencyQueueService:
    """Create an EmergencyQueueService."""
    return EmergencyQueueService(
        repo=repo, scheduler=scheduler, time_port=time_port, config=config, planner=planner
    )
