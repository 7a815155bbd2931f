"""
PublishJobScheduler - durable publish jobs, claiming, dispatch and retry.

Key behaviors:
- At most one pending/processing job per (content_id, version_no); a
  repeated enqueue returns the existing job
- Workers claim due jobs with a conditional update; only the winner runs
- Channels are dispatched sequentially in target order, each call bounded
  by channel_timeout_seconds
- Channels already delivered for the version are skipped on retry
- Failures retry with backoff until max_attempts, then the job fails;
  the attempt is stored before any channel is called
- Jobs are never upgraded to a newer version; stale ones fail as superseded
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from newsdesk.core.entities import PublishJob
from newsdesk.core.ports.channels import (
    ChannelError,
    ChannelPublisherPort,
    ChannelPublishResult,
)
from newsdesk.domain.entities import (
    ChannelErrorKind,
    ChannelPublishLog,
    ContentItem,
    PublishedContent,
)
from newsdesk.domain.slug import build_path, slugify
from newsdesk.domain.state import PUBLISHABLE_STATUSES
from newsdesk.rules.models import SchedulerRules

from .models import (
    ChannelOutcome,
    DispatchResult,
    EnqueueOutput,
    ProcessResult,
    SchedulerValidationError,
)
from .ports import (
    ChannelLogRepoPort,
    ChannelRegistryPort,
    ContentRepoPort,
    MediaProviderPort,
    PublishedContentRepoPort,
    PublishJobRepoPort,
    SourceRepoPort,
    TimePort,
)

logger = logging.getLogger(__name__)

WEB_PLATFORM = "web"
PERMANENT_PREFIX = "[permanent] "


# --- Configuration ---


@dataclass(frozen=True)
class SchedulerConfig:
    """Scheduler configuration from rules."""

    max_attempts: int = 5
    backoff_seconds: tuple[int, ...] = (60, 300, 900, 3600, 3600)
    batch_size: int = 10
    channel_timeout_seconds: float = 30.0
    claim_timeout_seconds: int = 600
    error_max_length: int = 2000


DEFAULT_CONFIG = SchedulerConfig()


def build_config(rules: SchedulerRules | None) -> SchedulerConfig:
    """Build scheduler config from the scheduler section of rules.yaml."""
    if rules is None:
        return DEFAULT_CONFIG
    return SchedulerConfig(
        max_attempts=rules.max_attempts,
        backoff_seconds=tuple(rules.backoff_seconds) or DEFAULT_CONFIG.backoff_seconds,
        batch_size=rules.batch_size,
        channel_timeout_seconds=rules.channel_timeout_seconds,
        claim_timeout_seconds=rules.claim_timeout_seconds,
        error_max_length=rules.error_max_length,
    )


# --- Backoff Calculation ---


def calculate_next_retry(
    attempts: int,
    now_utc: datetime,
    config: SchedulerConfig = DEFAULT_CONFIG,
    retry_after_seconds: int | None = None,
) -> datetime | None:
    """
    Calculate next retry time from the backoff table.

    Args:
        attempts: Attempt count including the one that just failed
        now_utc: Current time
        config: Scheduler configuration
        retry_after_seconds: Publisher-requested minimum delay (rate limits)

    Returns None if max attempts reached.
    """
    if attempts >= config.max_attempts:
        return None

    # First failure (attempts=1) uses backoff[0]; the last entry repeats
    backoff_index = max(0, min(attempts - 1, len(config.backoff_seconds) - 1))
    delay = config.backoff_seconds[backoff_index]
    if retry_after_seconds:
        delay = max(delay, retry_after_seconds)

    return now_utc + timedelta(seconds=delay)


def truncate_error(message: str, max_length: int) -> str:
    if len(message) <= max_length:
        return message
    return message[: max_length - 3] + "..."


def normalize_platforms(platforms: Iterable[str]) -> list[str]:
    """Lowercase, strip and de-duplicate, keeping first-seen order."""
    seen: list[str] = []
    for p in platforms:
        name = p.strip().lower()
        if name and name not in seen:
            seen.append(name)
    return seen


def call_with_timeout(
    publisher: ChannelPublisherPort,
    content_id: UUID,
    version_no: int,
    payload: dict[str, Any],
    timeout_seconds: float,
) -> ChannelPublishResult:
    """
    Run one publisher call bounded by timeout_seconds.

    Raises concurrent.futures.TimeoutError when the call overruns; the
    worker thread is abandoned, not joined.
    """
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="channel")
    try:
        future = executor.submit(publisher.publish, content_id, version_no, payload)
        return future.result(timeout=timeout_seconds)
    finally:
        executor.shutdown(wait=False, cancel_futures=True)


# --- SchedulerService ---


class SchedulerService:
    """
    Publish job scheduler.

    Owns PublishJob rows, ChannelPublishLog rows and PublishedContent
    records. Content status changes only through mark_published.
    """

    def __init__(
        self,
        jobs: PublishJobRepoPort,
        content: ContentRepoPort,
        logs: ChannelLogRepoPort,
        published: PublishedContentRepoPort,
        registry: ChannelRegistryPort,
        media: MediaProviderPort,
        sources: SourceRepoPort | None = None,
        time_port: TimePort | None = None,
        config: SchedulerConfig | None = None,
    ) -> None:
        self._jobs = jobs
        self._content = content
        self._logs = logs
        self._published = published
        self._registry = registry
        self._media = media
        self._sources = sources
        self._time = time_port
        self._config = config or DEFAULT_CONFIG

    @property
    def config(self) -> SchedulerConfig:
        return self._config

    def _now_utc(self) -> datetime:
        if self._time:
            return self._time.now_utc()
        return datetime.now(UTC)

    # --- Enqueue ---

    def enqueue(
        self,
        content_id: UUID,
        target_platforms: Sequence[str],
        scheduled_at: datetime | None = None,
        version_no: int | None = None,
        is_emergency: bool = False,
        silence_push: bool = False,
    ) -> EnqueueOutput:
        """
        Create a publish job for a content version.

        Idempotent per (content_id, version_no) while a job is pending or
        processing: the existing job is returned with already_queued=True.

        Args:
            content_id: Content to publish
            target_platforms: Platform names, dispatched in this order
            scheduled_at: Earliest run time (UTC); defaults to now
            version_no: Version to publish; defaults to the current version
            is_emergency: Emergency publish (bypasses policy upstream)
            silence_push: Deliver mobile without a push alert

        Returns:
            EnqueueOutput with job or errors.
        """

        def fail(code: str, message: str) -> EnqueueOutput:
            logger.info("Enqueue refused for content %s: %s", content_id, message)
            return EnqueueOutput(
                job=None,
                errors=[
                    SchedulerValidationError(code=code, message=message, content_id=content_id)
                ],
                success=False,
            )

        item = self._content.get_by_id(content_id)
        if item is None:
            return fail("content_not_found", f"Content {content_id} not found")
        if item.is_retracted or item.status == "retracted":
            return fail("content_retracted", "Retracted content cannot be published")
        if item.status not in PUBLISHABLE_STATUSES:
            return fail(
                "content_not_publishable",
                f"Content in '{item.status}' status cannot be published",
            )

        version = item.current_version_no if version_no is None else version_no
        if version < 1:
            return fail("invalid_version", "Version must be at least 1")
        if version > item.current_version_no:
            return fail(
                "invalid_version",
                f"Version {version} is newer than current version {item.current_version_no}",
            )

        platforms = normalize_platforms(target_platforms)
        if not platforms:
            return fail("platforms_required", "At least one target platform is required")
        unknown = [p for p in platforms if p not in self._registry]
        if unknown:
            return fail("unknown_platform", f"Unknown platforms: {', '.join(unknown)}")

        now = self._now_utc()
        if scheduled_at is not None and scheduled_at.tzinfo is None:
            return fail("invalid_time", "scheduled_at must be timezone-aware")
        run_at = scheduled_at.astimezone(UTC) if scheduled_at else now

        existing = self._jobs.get_active_for_version(content_id, version)
        if existing is not None:
            return EnqueueOutput(job=existing, already_queued=True)

        job, created = self._jobs.create_if_not_exists(
            PublishJob(
                content_id=content_id,
                version_no=version,
                scheduled_at=run_at,
                target_platforms=platforms,
                is_emergency=is_emergency,
                silence_push=silence_push,
                created_at=now,
                updated_at=now,
            )
        )
        if created:
            logger.info(
                "Job %s queued: content %s v%d -> %s at %s%s",
                job.id,
                content_id,
                version,
                ",".join(platforms),
                run_at.isoformat(),
                " (emergency)" if is_emergency else "",
            )
        return EnqueueOutput(job=job, already_queued=not created)

    # --- Claiming ---

    def claim_due(self, worker_id: str, limit: int | None = None) -> list[PublishJob]:
        """Claim due jobs; each returned job was won by this worker."""
        claimed = self._jobs.claim_due(
            self._now_utc(), limit or self._config.batch_size, worker_id
        )
        for job in claimed:
            logger.info(
                "Worker %s claimed job %s (content %s v%d, attempt %d)",
                worker_id,
                job.id,
                job.content_id,
                job.version_no,
                job.attempt_count + 1,
            )
        return claimed

    def requeue_stale(self) -> int:
        """Return jobs stuck in processing past the claim timeout to pending."""
        now = self._now_utc()
        cutoff = now - timedelta(seconds=self._config.claim_timeout_seconds)
        count = self._jobs.requeue_stale(cutoff, now)
        if count:
            logger.warning("Requeued %d stale processing jobs", count)
        return count

    # --- Dispatch ---

    def dispatch(self, job: PublishJob) -> DispatchResult:
        """
        Deliver a claimed job to its channels.

        The job is saved as completed, pending (retry) or failed before
        returning. An exception from a collaborator fails that channel as a
        transient error.
        """
        if job.status != "processing":
            logger.warning("Job %s not claimed (status %s); skipping", job.id, job.status)
            return DispatchResult(
                job_id=job.id,
                content_id=job.content_id,
                version_no=job.version_no,
                status=job.status,
                error="job not claimed",
            )

        item = self._content.get_by_id(job.content_id)
        if item is None:
            return self._fail_job(job, "content not found")
        if item.is_retracted or item.status == "retracted":
            return self._fail_job(job, "retracted")
        if item.published_version_no is not None and item.published_version_no > job.version_no:
            return self._fail_job(job, "superseded")
        if item.status in ("blocked", "rejected"):
            return self._fail_job(job, f"content {item.status}")

        now = self._now_utc()
        job.attempt_count += 1
        job.last_attempt_at = now
        job.updated_at = now
        # Stored before any channel call; a crash below still uses up the attempt
        self._jobs.save(job)
        versioned = self._item_at_version(item, job.version_no)

        outcomes: list[ChannelOutcome] = []
        for channel in job.target_platforms:
            try:
                outcome = self._dispatch_channel(job, versioned, channel, now)
            except Exception as e:
                logger.exception("Dispatch of %s raised for job %s", channel, job.id)
                outcome = self._channel_failure(
                    job, channel, f"{type(e).__name__}: {e}", "transient"
                )
            self._logs.append(
                ChannelPublishLog(
                    content_id=job.content_id,
                    job_id=job.id,
                    channel=channel,
                    version_no=job.version_no,
                    attempt_no=job.attempt_count,
                    status=outcome.status,
                    error=(
                        truncate_error(outcome.error, self._config.error_max_length)
                        if outcome.error
                        else None
                    ),
                    error_kind=outcome.error_kind,
                    external_post_id=outcome.external_post_id,
                    created_at=self._now_utc(),
                )
            )
            outcomes.append(outcome)

        failures = [o for o in outcomes if o.status == "failed"]
        if not failures:
            return self._complete_job(job, outcomes)
        return self._retry_or_fail(job, outcomes, failures)

    def _item_at_version(self, item: ContentItem, version_no: int) -> ContentItem:
        """Item state as of version_no, from its revision snapshot when needed."""
        if item.current_version_no == version_no:
            return item
        for revision in self._content.list_revisions(item.id):
            if revision.version_no == version_no:
                return ContentItem.model_validate_json(revision.snapshot_json)
        logger.warning(
            "No revision v%d for content %s; publishing current state", version_no, item.id
        )
        return item

    def _dispatch_channel(
        self, job: PublishJob, item: ContentItem, channel: str, now: datetime
    ) -> ChannelOutcome:
        if not item.draft.channel_enabled(channel):
            return ChannelOutcome(channel=channel, status="skipped", error="channel disabled")

        if self._logs.has_success(job.content_id, channel, job.version_no):
            return ChannelOutcome(channel=channel, status="skipped", error="already published")

        payload = self._media.get_payload(item, channel)
        if payload is None:
            return ChannelOutcome(
                channel=channel,
                status="failed",
                error="payload unavailable",
                error_kind="transient",
            )

        publisher = self._registry.get(channel)
        if publisher is None:
            return ChannelOutcome(
                channel=channel,
                status="failed",
                error=f"no publisher registered for '{channel}'",
                error_kind="permanent",
            )

        payload = {**payload, "silence_push": job.silence_push, "is_emergency": job.is_emergency}
        record = None
        if channel == WEB_PLATFORM:
            record = self._web_record(item, job.version_no, now)
            payload["path"] = record.path
            payload["slug"] = record.slug

        try:
            result = call_with_timeout(
                publisher,
                job.content_id,
                job.version_no,
                payload,
                self._config.channel_timeout_seconds,
            )
        except ChannelError as e:
            return self._channel_failure(
                job, channel, str(e), e.kind, retry_after=e.retry_after_seconds
            )
        except FuturesTimeoutError:
            return self._channel_failure(
                job,
                channel,
                f"timed out after {self._config.channel_timeout_seconds:g}s",
                "transient",
            )
        except Exception as e:
            logger.exception("Publisher %s raised for job %s", channel, job.id)
            return self._channel_failure(job, channel, f"{type(e).__name__}: {e}", "transient")

        if not result.success:
            return self._channel_failure(
                job,
                channel,
                result.error or "publish failed",
                result.error_kind or "transient",
                retry_after=result.retry_after_seconds,
            )

        if record is not None:
            current = self._content.get_by_id(job.content_id)
            if current is None or current.is_retracted or current.status == "retracted":
                logger.warning(
                    "Job %s: content %s retracted during the web publish; record not saved",
                    job.id,
                    job.content_id,
                )
            else:
                self._published.save(record)

        logger.info(
            "Job %s: %s delivered content %s v%d (attempt %d, id=%s)",
            job.id,
            channel,
            job.content_id,
            job.version_no,
            job.attempt_count,
            result.external_post_id,
        )
        return ChannelOutcome(
            channel=channel, status="success", external_post_id=result.external_post_id
        )

    def _channel_failure(
        self,
        job: PublishJob,
        channel: str,
        error: str,
        kind: ChannelErrorKind,
        retry_after: int | None = None,
    ) -> ChannelOutcome:
        logger.warning(
            "Job %s: %s failed for content %s v%d (attempt %d, %s): %s",
            job.id,
            channel,
            job.content_id,
            job.version_no,
            job.attempt_count,
            kind,
            error,
        )
        return ChannelOutcome(
            channel=channel,
            status="failed",
            error=error,
            error_kind=kind,
            retry_after_seconds=retry_after,
        )

    def _web_record(self, item: ContentItem, version_no: int, now: datetime) -> PublishedContent:
        """
        Public record for a web publish.

        The slug and path stay stable across corrections; they are rebuilt
        only when the existing record was retracted.
        """
        title = item.draft.web_title or item.title
        existing = self._published.get_by_content(item.id)
        if existing is not None and not existing.is_retracted:
            slug, path = existing.slug, existing.path
        else:
            slug = slugify(title)
            path = build_path(item.id, slug)

        source_name = None
        if self._sources is not None and item.source_id is not None:
            source = self._sources.get_by_id(item.source_id)
            source_name = source.name if source else None

        return PublishedContent(
            content_id=item.id,
            version_no=max(version_no, existing.version_no) if existing else version_no,
            slug=slug,
            path=path,
            web_title=title,
            web_body=item.draft.web_body or item.body_text,
            source_name=source_name,
            published_at=now,
            updated_at=now,
        )

    def _complete_job(self, job: PublishJob, outcomes: list[ChannelOutcome]) -> DispatchResult:
        now = self._now_utc()
        job.status = "completed"
        job.completed_at = now
        job.updated_at = now
        job.next_retry_at = None
        job.claimed_by = None
        job.claimed_at = None
        self._jobs.save(job)

        delivered = any(
            o.status == "success" or (o.status == "skipped" and o.error == "already published")
            for o in outcomes
        )
        if delivered:
            self._content.mark_published(job.content_id, job.version_no, now)

        logger.info(
            "Job %s completed: content %s v%d after %d attempt(s)",
            job.id,
            job.content_id,
            job.version_no,
            job.attempt_count,
        )
        return DispatchResult(
            job_id=job.id,
            content_id=job.content_id,
            version_no=job.version_no,
            status="completed",
            outcomes=tuple(outcomes),
        )

    def _retry_or_fail(
        self,
        job: PublishJob,
        outcomes: list[ChannelOutcome],
        failures: list[ChannelOutcome],
    ) -> DispatchResult:
        now = self._now_utc()
        error = "; ".join(
            f"{o.channel}: {PERMANENT_PREFIX if o.error_kind == 'permanent' else ''}{o.error}"
            for o in failures
        )
        retry_after = max((o.retry_after_seconds or 0 for o in failures), default=0)
        next_retry = calculate_next_retry(job.attempt_count, now, self._config, retry_after)

        job.last_error = truncate_error(error, self._config.error_max_length)
        job.updated_at = now
        job.claimed_by = None
        job.claimed_at = None

        if next_retry is not None:
            job.status = "pending"
            job.next_retry_at = next_retry
            self._jobs.save(job)
            logger.warning(
                "Job %s attempt %d/%d failed; retry at %s: %s",
                job.id,
                job.attempt_count,
                self._config.max_attempts,
                next_retry.isoformat(),
                error,
            )
        else:
            job.status = "failed"
            job.next_retry_at = None
            job.completed_at = now
            self._jobs.save(job)
            logger.error(
                "Job %s failed after %d attempts (content %s v%d): %s",
                job.id,
                job.attempt_count,
                job.content_id,
                job.version_no,
                error,
            )

        return DispatchResult(
            job_id=job.id,
            content_id=job.content_id,
            version_no=job.version_no,
            status=job.status,
            outcomes=tuple(outcomes),
            error=job.last_error,
            next_retry_at=job.next_retry_at,
        )

    def _fail_job(self, job: PublishJob, reason: str) -> DispatchResult:
        """Terminal failure from a content check; no channel is called."""
        now = self._now_utc()
        job.status = "failed"
        job.last_error = reason
        job.completed_at = now
        job.updated_at = now
        job.next_retry_at = None
        job.claimed_by = None
        job.claimed_at = None
        self._jobs.save(job)
        logger.warning(
            "Job %s failed: %s (content %s v%d)", job.id, reason, job.content_id, job.version_no
        )
        return DispatchResult(
            job_id=job.id,
            content_id=job.content_id,
            version_no=job.version_no,
            status="failed",
            error=reason,
        )

    # --- Batch Processing ---

    def process_due(self, worker_id: str, max_jobs: int | None = None) -> ProcessResult:
        """
        One worker pass: requeue stale claims, claim due jobs, dispatch them.

        Args:
            worker_id: Worker identifier stored on claimed jobs
            max_jobs: Claim limit (defaults to batch_size)

        Returns:
            ProcessResult with one DispatchResult per claimed job
        """
        requeued = self.requeue_stale()
        claimed = self.claim_due(worker_id, max_jobs)
        results: list[DispatchResult] = []
        for job in claimed:
            attempts = job.attempt_count
            try:
                results.append(self.dispatch(job))
            except Exception as e:
                logger.exception("Dispatch raised for job %s", job.id)
                results.append(self._abandon_attempt(job, attempts, f"{type(e).__name__}: {e}"))
        return ProcessResult(claimed=len(claimed), requeued=requeued, results=results)

    def _abandon_attempt(self, job: PublishJob, attempts: int, error: str) -> DispatchResult:
        """Count a crashed dispatch as a failed attempt and schedule the retry."""
        stored = self._jobs.get_by_id(job.id)
        if stored is None or stored.status != "processing":
            # The job reached a final state before the crash
            return DispatchResult(
                job_id=job.id,
                content_id=job.content_id,
                version_no=job.version_no,
                status=stored.status if stored else job.status,
                error=error,
            )
        job.status = "processing"
        if job.attempt_count == attempts:
            job.attempt_count += 1
            job.last_attempt_at = self._now_utc()
        failure = ChannelOutcome(
            channel="dispatch", status="failed", error=error, error_kind="transient"
        )
        return self._retry_or_fail(job, [], [failure])

    # --- Cancellation / retraction ---

    def cancel_pending(self, content_id: UUID, before_version: int | None = None) -> int:
        """Cancel pending jobs for content; optionally only older versions."""
        count = self._jobs.cancel_pending(content_id, self._now_utc(), before_version)
        if count:
            logger.info("Cancelled %d pending job(s) for content %s", count, content_id)
        return count

    def retract_published(self, content_id: UUID) -> PublishedContent | None:
        """Mark the public web record retracted, if there is one."""
        record = self._published.get_by_content(content_id)
        if record is None or record.is_retracted:
            return record
        now = self._now_utc()
        updated = self._published.save(
            record.model_copy(update={"is_retracted": True, "retracted_at": now, "updated_at": now})
        )
        logger.info("Public record %s retracted for content %s", record.path, content_id)
        return updated

    # --- Reads ---

    def get_job(self, job_id: UUID) -> PublishJob | None:
        return self._jobs.get_by_id(job_id)

    def list_jobs_for_content(self, content_id: UUID) -> list[PublishJob]:
        return self._jobs.list_by_content(content_id)

    def list_jobs_by_status(self, status: str, limit: int = 100) -> list[PublishJob]:
        return self._jobs.list_by_status(status, limit)

    def list_channel_logs(
        self, content_id: UUID, version_no: int | None = None
    ) -> list[ChannelPublishLog]:
        return self._logs.list_by_content(content_id, version_no)

    def get_published(self, content_id: UUID) -> PublishedContent | None:
        return self._published.get_by_content(content_id)
