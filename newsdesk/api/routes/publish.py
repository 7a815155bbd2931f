"""
Publish API routes.

Job enqueueing, job and channel-log inspection, and a manual process-due
trigger for environments without a running worker.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder

from newsdesk.api.deps import get_engine
from newsdesk.api.schemas import (
    EnqueueRequest,
    ProcessDueRequest,
    job_response,
    not_found,
    raise_errors,
)
from newsdesk.components.newsroom import NewsroomEngine

router = APIRouter()


@router.post("/enqueue")
def enqueue(
    request: EnqueueRequest,
    engine: NewsroomEngine = Depends(get_engine),
) -> dict[str, Any]:
    """Queue a publish job; repeated calls for the same version return the same job."""
    out = engine.enqueue_publish_job(
        request.content_id,
        platforms=request.platforms,
        scheduled_at=request.scheduled_at,
        is_emergency=request.is_emergency,
        version_no=request.version_no,
    )
    if not out.success:
        status_code = 404 if any(e.code == "content_not_found" for e in out.errors) else 400
        raise_errors(out.errors, status_code)
    return {"job": job_response(out.job), "already_queued": out.already_queued}


@router.get("/jobs/{job_id}")
def get_job(
    job_id: UUID,
    engine: NewsroomEngine = Depends(get_engine),
) -> dict[str, Any]:
    job = engine.scheduler.get_job(job_id)
    if job is None:
        raise not_found(f"Job {job_id} not found")
    return job_response(job) or {}


@router.get("/jobs")
def list_jobs(
    status: str = "pending",
    limit: int = 100,
    engine: NewsroomEngine = Depends(get_engine),
) -> list[dict[str, Any] | None]:
    return [job_response(j) for j in engine.scheduler.list_jobs_by_status(status, limit)]


@router.get("/content/{content_id}/jobs")
def list_content_jobs(
    content_id: UUID,
    engine: NewsroomEngine = Depends(get_engine),
) -> list[dict[str, Any] | None]:
    return [job_response(j) for j in engine.scheduler.list_jobs_for_content(content_id)]


@router.get("/content/{content_id}/logs")
def list_channel_logs(
    content_id: UUID,
    version_no: int | None = None,
    engine: NewsroomEngine = Depends(get_engine),
) -> list[dict[str, Any]]:
    logs = engine.scheduler.list_channel_logs(content_id, version_no)
    return [jsonable_encoder(log) for log in logs]


@router.get("/content/{content_id}/published")
def get_published(
    content_id: UUID,
    engine: NewsroomEngine = Depends(get_engine),
) -> dict[str, Any]:
    record = engine.scheduler.get_published(content_id)
    if record is None:
        raise not_found(f"Content {content_id} has no public record")
    return jsonable_encoder(record)


@router.post("/content/{content_id}/cancel")
def cancel_pending(
    content_id: UUID,
    engine: NewsroomEngine = Depends(get_engine),
) -> dict[str, Any]:
    return {"cancelled": engine.scheduler.cancel_pending(content_id)}


@router.post("/process-due")
def process_due(
    request: ProcessDueRequest | None = None,
    engine: NewsroomEngine = Depends(get_engine),
) -> dict[str, Any]:
    request = request or ProcessDueRequest()
    result = engine.process_due(request.worker_id, request.max_jobs)
    return {
        "claimed": result.claimed,
        "requeued": result.requeued,
        "completed": result.completed,
        "retrying": result.retrying,
        "failed": result.failed,
        "results": jsonable_encoder(result.results),
    }
