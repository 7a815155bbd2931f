"""
Scheduler component - durable publish jobs.

Invariants:
- At most one pending/processing job per (content_id, version_no)
- A job is executed only by the worker that claimed it
- attempt_count never decreases; retries stop at max_attempts
- Retracted content is never enqueued or dispatched
"""

from __future__ import annotations

from ._impl import SchedulerService
from .models import EnqueueInput, EnqueueOutput, ProcessResult


def run_enqueue(inp: EnqueueInput, *, service: SchedulerService) -> EnqueueOutput:
    """Create (or return the existing) publish job for a content version."""
    return service.enqueue(
        inp.content_id,
        inp.target_platforms,
        scheduled_at=inp.scheduled_at,
        version_no=inp.version_no,
        is_emergency=inp.is_emergency,
        silence_push=inp.silence_push,
    )


def run_process_due(
    worker_id: str, *, service: SchedulerService, max_jobs: int | None = None
) -> ProcessResult:
    """Claim and dispatch due jobs once."""
    return service.process_due(worker_id, max_jobs)
