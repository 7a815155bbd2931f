from datetime import datetime
from typing import Any, NoReturn
from uuid import UUID

from fastapi import HTTPException
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, ConfigDict, Field

from newsdesk.domain.entities import ContentDraft


# --- Errors ---
def raise_errors(errors: list[Any], status_code: int = 400) -> NoReturn:
    """Raise an HTTPException carrying structured component errors."""
    raise HTTPException(status_code=status_code, detail={"errors": jsonable_encoder(errors)})


def not_found(message: str) -> HTTPException:
    return HTTPException(status_code=404, detail=message)


# --- Editorial ---
class IngestRequest(BaseModel):
    title: str = Field(..., min_length=1)
    summary: str = ""
    body_text: str = ""
    source_id: UUID | None = None
    canonical_url: str | None = None
    draft: ContentDraft | None = None


class DraftRequest(BaseModel):
    draft: ContentDraft | None = None
    title: str | None = None
    summary: str | None = None
    body_text: str | None = None


class ApproveRequest(BaseModel):
    draft: ContentDraft | None = None
    platforms: list[str] | None = None


class ReasonRequest(BaseModel):
    reason: str | None = None


class ScheduleRequest(BaseModel):
    scheduled_at: datetime = Field(..., description="Publish time (timezone-aware)")
    platforms: list[str] | None = None


class BreakingRequest(BaseModel):
    push_required: bool = True
    priority: int | None = Field(default=None, ge=0, le=100)
    draft: ContentDraft | None = None


# --- Publish ---
class EnqueueRequest(BaseModel):
    content_id: UUID
    platforms: list[str] | None = None
    scheduled_at: datetime | None = None
    is_emergency: bool = False
    version_no: int | None = None


class ProcessDueRequest(BaseModel):
    worker_id: str = "api"
    max_jobs: int | None = Field(default=None, ge=1)


class JobResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    content_id: UUID
    version_no: int
    scheduled_at: datetime
    status: str
    target_platforms: list[str]
    attempt_count: int
    is_emergency: bool
    silence_push: bool
    next_retry_at: datetime | None = None
    last_attempt_at: datetime | None = None
    last_error: str | None = None
    claimed_by: str | None = None
    created_at: datetime
    updated_at: datetime
    completed_at: datetime | None = None


def job_response(job: Any) -> dict[str, Any] | None:
    if job is None:
        return None
    return jsonable_encoder(JobResponse.model_validate(job))


# --- Policy ---
class PreviewRequest(BaseModel):
    platforms: list[str]
    is_emergency: bool = False
    at_utc: datetime | None = None


# --- Emergency ---
class EmergencyAddRequest(BaseModel):
    content_id: UUID
    priority: int | None = Field(default=None, ge=0, le=100)
    platforms: list[str] | None = None


class PriorityRequest(BaseModel):
    priority: int = Field(..., ge=0, le=100)
