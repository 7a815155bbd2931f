"""
NewsroomEngine - facade over triage, emergency, policy, lifecycle and scheduler.

Ingestion and editorial callers go through this class; it sequences the
components and turns lifecycle transitions into publish jobs:

- auto_ready after triage -> enqueue now (subject to policy)
- scheduled -> enqueue at scheduled_at (or later, if policy defers)
- approve / correct / mark_breaking -> enqueue the new version
- reject -> cancel pending jobs
- retract -> cancel pending jobs, retract the web record, drop the
  emergency candidate
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from newsdesk.components.emergency import (
    EmergencyDetection,
    EmergencyQueueService,
    EmergencyValidationError,
    PublishOutput,
    QueueOutput,
    detect,
)
from newsdesk.components.lifecycle import LifecycleService, TransitionResult
from newsdesk.components.policy import DailyStats, PolicyService, PolicyValidationError
from newsdesk.components.scheduler import (
    EnqueueOutput,
    ProcessResult,
    SchedulerService,
    SchedulerValidationError,
)
from newsdesk.components.triage import (
    EvaluateOutput,
    RuleDecision,
    TriageConfig,
    TriageValidationError,
    evaluate,
)
from newsdesk.domain.entities import ContentDraft, ContentItem, Source
from newsdesk.domain.policy import PublishingPolicy

from .models import EditorialResult, EngineError, IngestResult
from .ports import RuleRepoPort, SourceRepoPort, TimePort

logger = logging.getLogger(__name__)


def _errors(errors: Sequence[Any], component: str) -> list[EngineError]:
    return [EngineError.from_error(e, component) for e in errors]


class NewsroomEngine:
    """
    Publishing decision and scheduling engine.

    platforms is the set of registered channel names; a job targets the
    draft-enabled subset unless the caller names platforms explicitly.
    """

    def __init__(
        self,
        lifecycle: LifecycleService,
        scheduler: SchedulerService,
        policy: PolicyService,
        emergency: EmergencyQueueService,
        rules: RuleRepoPort,
        sources: SourceRepoPort,
        platforms: Sequence[str],
        time_port: TimePort | None = None,
    ) -> None:
        self.lifecycle = lifecycle
        self.scheduler = scheduler
        self.policy = policy
        self.emergency = emergency
        self._rules = rules
        self._sources = sources
        self._platforms = tuple(p.strip().lower() for p in platforms)
        self._time = time_port

    def _now_utc(self) -> datetime:
        if self._time:
            return self._time.now_utc()
        return datetime.now(UTC)

    def _source_for(self, item: ContentItem) -> Source | None:
        if item.source_id is None:
            return None
        return self._sources.get_by_id(item.source_id)

    def _evaluate(self, item: ContentItem, policy: PublishingPolicy) -> RuleDecision:
        return evaluate(
            item,
            self._source_for(item),
            self._rules.list_all(),
            self._now_utc(),
            TriageConfig(schedule_offset_minutes=policy.schedule_offset_minutes),
        )

    def default_platforms(self, item: ContentItem) -> list[str]:
        return item.draft.enabled_channels(self._platforms)

    # --- Ingestion ---

    def ingest(self, item: ContentItem, actor: str | None = None) -> IngestResult:
        """
        Store a new item, triage it and act on the decision.

        Args:
            item: Newly ingested item (status new, version 0)
            actor: Recorded on the Triaged revision (defaults to system)

        Returns:
            IngestResult with the triaged item, decision, detection and any job
        """
        created = self.lifecycle.create(item)
        if not created.success:
            return IngestResult(item=None, errors=_errors(created.errors, "lifecycle"))

        policy = self.policy.get()
        decision = self._evaluate(item, policy)
        triaged = self.lifecycle.triage(
            item.id,
            status=decision.status,
            decision_type=decision.decision_type,
            reason=decision.reason,
            rule_id=decision.matched_rule_id,
            trust_level=decision.trust_level,
            scheduled_at=decision.scheduled_at,
            actor=actor or "system",
        )
        if not triaged.success or triaged.item is None:
            return IngestResult(
                item=item, decision=decision, errors=_errors(triaged.errors, "lifecycle")
            )

        current = triaged.item
        logger.info(
            "Ingested content %s: %s (%s)", current.id, decision.decision_type, decision.reason
        )

        detection = detect(current, self._source_for(current), policy.emergency)
        emergency_item = None
        if detection.is_emergency and policy.emergency.auto_enqueue:
            queued = self.emergency.add(current.id, detection, self.default_platforms(current))
            emergency_item = queued.item

        job = None
        errors: list[EngineError] = []
        if current.status in ("auto_ready", "scheduled"):
            enqueued = self.enqueue_publish_job(
                current.id,
                scheduled_at=current.scheduled_at if current.status == "scheduled" else None,
            )
            job = enqueued.job
            errors = _errors(enqueued.errors, "scheduler")

        return IngestResult(
            item=current,
            decision=decision,
            detection=detection,
            job=job,
            emergency_item=emergency_item,
            errors=errors,
        )

    # --- Exposed engine operations ---

    def evaluate_rules(self, content_id: UUID) -> EvaluateOutput:
        """Re-run triage for an item without changing it."""
        item = self.lifecycle.get(content_id)
        if item is None:
            return EvaluateOutput(
                decision=None,
                errors=[
                    TriageValidationError(
                        code="not_found",
                        message=f"Content {content_id} not found",
                        content_id=content_id,
                    )
                ],
                success=False,
            )
        return EvaluateOutput(decision=self._evaluate(item, self.policy.get()))

    def detect_emergency(
        self, content_id: UUID, priority: int | None = None
    ) -> EmergencyDetection | None:
        item = self.lifecycle.get(content_id)
        if item is None:
            return None
        return detect(item, self._source_for(item), self.policy.get().emergency, priority)

    def enqueue_publish_job(
        self,
        content_id: UUID,
        platforms: Sequence[str] | None = None,
        scheduled_at: datetime | None = None,
        is_emergency: bool = False,
        version_no: int | None = None,
    ) -> EnqueueOutput:
        """
        Plan a publish against the policy and queue it.

        The policy is checked at the later of now and scheduled_at, and the
        job runs at the latest deferral; platforms the policy disables are
        dropped.
        """
        item = self.lifecycle.get(content_id)
        naive = scheduled_at is not None and scheduled_at.tzinfo is None
        if item is None or naive:
            # Let the scheduler report the missing content or naive time
            return self.scheduler.enqueue(content_id, platforms or (), scheduled_at, version_no)

        now = self._now_utc()
        at = max(scheduled_at, now) if scheduled_at is not None else now
        targets = list(platforms) if platforms else self.default_platforms(item)
        publish_plan = self.policy.plan(targets, is_emergency, at)
        if publish_plan.is_empty or publish_plan.scheduled_at is None:
            return EnqueueOutput(
                job=None,
                errors=[
                    SchedulerValidationError(
                        code="no_enabled_platforms",
                        message="No target platform is enabled by the publishing policy",
                        content_id=content_id,
                    )
                ],
                success=False,
            )

        run_at = max(publish_plan.scheduled_at, at)

        return self.scheduler.enqueue(
            content_id,
            list(publish_plan.platforms),
            scheduled_at=run_at,
            version_no=version_no,
            is_emergency=is_emergency,
            silence_push=publish_plan.silence_push,
        )

    def get_schedule_stats(self, platform: str) -> DailyStats:
        return self.policy.stats(platform, self._now_utc())

    def process_due(self, worker_id: str, max_jobs: int | None = None) -> ProcessResult:
        return self.scheduler.process_due(worker_id, max_jobs)

    # --- Policy ---

    def get_policy(self) -> PublishingPolicy:
        return self.policy.get()

    def update_policy(
        self, changes: Mapping[str, Any]
    ) -> tuple[PublishingPolicy | None, list[PolicyValidationError]]:
        return self.policy.update(changes)

    # --- Editorial actions ---

    def _editorial(
        self,
        result: TransitionResult,
        enqueue: bool = False,
        scheduled_at: datetime | None = None,
        is_emergency: bool = False,
        platforms: Sequence[str] | None = None,
    ) -> EditorialResult:
        if not result.success or result.item is None:
            return EditorialResult(item=None, errors=_errors(result.errors, "lifecycle"))

        item = result.item
        if not enqueue:
            return EditorialResult(item=item, version_no=result.version_no)

        # A new version supersedes queued work for older ones
        self.scheduler.cancel_pending(item.id, before_version=item.current_version_no)
        enqueued = self.enqueue_publish_job(
            item.id,
            platforms=platforms,
            scheduled_at=scheduled_at,
            is_emergency=is_emergency,
            version_no=item.current_version_no,
        )
        return EditorialResult(
            item=item,
            version_no=result.version_no,
            job=enqueued.job,
            already_queued=enqueued.already_queued,
            errors=_errors(enqueued.errors, "scheduler"),
        )

    def save_draft(
        self,
        content_id: UUID,
        draft: ContentDraft | dict[str, Any] | None = None,
        title: str | None = None,
        summary: str | None = None,
        body_text: str | None = None,
        actor: str | None = None,
    ) -> EditorialResult:
        return self._editorial(
            self.lifecycle.save_draft(content_id, draft, title, summary, body_text, actor)
        )

    def approve(
        self,
        content_id: UUID,
        draft: ContentDraft | dict[str, Any] | None = None,
        platforms: Sequence[str] | None = None,
        actor: str | None = None,
    ) -> EditorialResult:
        return self._editorial(
            self.lifecycle.approve(content_id, draft, actor), enqueue=True, platforms=platforms
        )

    def reject(
        self, content_id: UUID, reason: str | None = None, actor: str | None = None
    ) -> EditorialResult:
        result = self._editorial(self.lifecycle.reject(content_id, reason, actor))
        if result.success:
            self.scheduler.cancel_pending(content_id)
        return result

    def schedule(
        self,
        content_id: UUID,
        scheduled_at: datetime,
        platforms: Sequence[str] | None = None,
        actor: str | None = None,
    ) -> EditorialResult:
        return self._editorial(
            self.lifecycle.schedule(content_id, scheduled_at, actor),
            enqueue=True,
            scheduled_at=scheduled_at,
            platforms=platforms,
        )

    def correct(
        self,
        content_id: UUID,
        draft: ContentDraft | dict[str, Any] | None = None,
        title: str | None = None,
        summary: str | None = None,
        body_text: str | None = None,
        actor: str | None = None,
    ) -> EditorialResult:
        return self._editorial(
            self.lifecycle.correct(content_id, draft, title, summary, body_text, actor),
            enqueue=True,
        )

    def retract(
        self, content_id: UUID, reason: str | None = None, actor: str | None = None
    ) -> EditorialResult:
        result = self._editorial(self.lifecycle.retract(content_id, reason, actor))
        if result.success:
            self.scheduler.cancel_pending(content_id)
            self.scheduler.retract_published(content_id)
            self.emergency.cancel_for_content(content_id)
        return result

    def mark_breaking(
        self,
        content_id: UUID,
        push_required: bool = True,
        priority: int | None = None,
        draft: ContentDraft | dict[str, Any] | None = None,
        actor: str | None = None,
    ) -> EditorialResult:
        """Flag breaking news and publish the new version as an emergency."""
        return self._editorial(
            self.lifecycle.mark_breaking(content_id, push_required, priority, draft, actor),
            enqueue=True,
            is_emergency=True,
        )

    def resubmit(self, content_id: UUID, actor: str | None = None) -> EditorialResult:
        return self._editorial(self.lifecycle.resubmit(content_id, actor))

    # --- Emergency queue ---

    def add_to_emergency_queue(
        self,
        content_id: UUID,
        priority: int | None = None,
        platforms: Sequence[str] | None = None,
    ) -> QueueOutput:
        """
        Queue an item as an emergency candidate.

        Editors may queue items detection did not flag; the priority then
        comes from the caller or the policy default.
        """
        item = self.lifecycle.get(content_id)
        if item is None:
            return QueueOutput(
                item=None,
                errors=[
                    EmergencyValidationError(
                        code="content_not_found",
                        message=f"Content {content_id} not found",
                        content_id=content_id,
                    )
                ],
                success=False,
            )
        if item.is_retracted:
            return QueueOutput(
                item=None,
                errors=[
                    EmergencyValidationError(
                        code="content_retracted",
                        message="Retracted content cannot be queued",
                        content_id=content_id,
                    )
                ],
                success=False,
            )

        rules = self.policy.get().emergency
        detection = detect(item, self._source_for(item), rules, priority)
        if not detection.is_emergency and priority is None:
            detection = EmergencyDetection(
                is_emergency=True,
                priority=rules.default_priority,
                matched_keywords=detection.matched_keywords,
                reason="Queued by editor",
            )
        return self.emergency.add(content_id, detection, platforms or self.default_platforms(item))

    def publish_emergency(self, item_id: UUID, actor: str | None = None) -> PublishOutput:
        """
        Publish a queued emergency item now.

        Content still awaiting approval is approved first so the job
        publishes an approved version.
        """
        queued = self.emergency.get(item_id)
        if queued is not None and queued.status == "pending":
            content = self.lifecycle.get(queued.content_id)
            if content is not None and content.status == "pending_approval":
                approved = self.lifecycle.approve(content.id, actor=actor)
                if not approved.success:
                    return PublishOutput(
                        item=queued,
                        errors=[
                            EmergencyValidationError(
                                code=e.code,
                                message=e.message,
                                item_id=item_id,
                                content_id=content.id,
                            )
                            for e in approved.errors
                        ],
                        success=False,
                    )
        return self.emergency.publish(item_id)
