"""
Editorial API routes.

Ingestion, rule evaluation and the editorial actions. Actions that produce
a publishable version also return the publish job they queued.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder

from newsdesk.api.deps import get_engine
from newsdesk.api.schemas import (
    ApproveRequest,
    BreakingRequest,
    DraftRequest,
    IngestRequest,
    ReasonRequest,
    ScheduleRequest,
    job_response,
    not_found,
    raise_errors,
)
from newsdesk.components.newsroom import EditorialResult, IngestInput, NewsroomEngine, run_ingest
from newsdesk.domain.entities import ContentDraft, ContentStatus

router = APIRouter()


def _editorial_response(result: EditorialResult) -> dict[str, Any]:
    if result.item is None:
        status_code = 404 if any(e.code == "not_found" for e in result.errors) else 400
        if any(e.code == "version_conflict" for e in result.errors):
            status_code = 409
        raise_errors(result.errors, status_code)
    return {
        "item": jsonable_encoder(result.item),
        "version_no": result.version_no,
        "job": job_response(result.job),
        "already_queued": result.already_queued,
        # Enqueue problems do not undo the action; they are reported alongside it
        "errors": jsonable_encoder(result.errors),
    }


@router.post("/ingest", status_code=201)
def ingest(
    request: IngestRequest,
    engine: NewsroomEngine = Depends(get_engine),
) -> dict[str, Any]:
    """Ingest a feed item, triage it and queue it if the rules say so."""
    result = run_ingest(
        IngestInput(
            title=request.title,
            summary=request.summary,
            body_text=request.body_text,
            source_id=request.source_id,
            canonical_url=request.canonical_url,
            draft=request.draft or ContentDraft(),
        ),
        engine=engine,
    )
    if result.item is None:
        raise_errors(result.errors)
    return {
        "item": jsonable_encoder(result.item),
        "decision": jsonable_encoder(result.decision),
        "detection": jsonable_encoder(result.detection),
        "job": job_response(result.job),
        "emergency_item": jsonable_encoder(result.emergency_item),
        "errors": jsonable_encoder(result.errors),
    }


@router.get("/content")
def list_content(
    status: ContentStatus = "pending_approval",
    limit: int = 100,
    engine: NewsroomEngine = Depends(get_engine),
) -> list[dict[str, Any]]:
    items = engine.lifecycle.list_by_status(status, limit)
    return [jsonable_encoder(i) for i in items]


@router.get("/content/{content_id}")
def get_content(
    content_id: UUID,
    engine: NewsroomEngine = Depends(get_engine),
) -> dict[str, Any]:
    item = engine.lifecycle.get(content_id)
    if item is None:
        raise not_found(f"Content {content_id} not found")
    return jsonable_encoder(item)


@router.get("/content/{content_id}/revisions")
def list_revisions(
    content_id: UUID,
    engine: NewsroomEngine = Depends(get_engine),
) -> list[dict[str, Any]]:
    if engine.lifecycle.get(content_id) is None:
        raise not_found(f"Content {content_id} not found")
    return [jsonable_encoder(r) for r in engine.lifecycle.list_revisions(content_id)]


@router.post("/content/{content_id}/evaluate")
def evaluate_rules(
    content_id: UUID,
    engine: NewsroomEngine = Depends(get_engine),
) -> dict[str, Any]:
    """Dry-run triage against the current rule set; nothing is written."""
    out = engine.evaluate_rules(content_id)
    if out.decision is None:
        raise not_found(f"Content {content_id} not found")
    return jsonable_encoder(out.decision)


@router.put("/content/{content_id}/draft")
def save_draft(
    content_id: UUID,
    request: DraftRequest,
    engine: NewsroomEngine = Depends(get_engine),
) -> dict[str, Any]:
    return _editorial_response(
        engine.save_draft(
            content_id, request.draft, request.title, request.summary, request.body_text
        )
    )


@router.post("/content/{content_id}/approve")
def approve(
    content_id: UUID,
    request: ApproveRequest | None = None,
    engine: NewsroomEngine = Depends(get_engine),
) -> dict[str, Any]:
    request = request or ApproveRequest()
    return _editorial_response(
        engine.approve(content_id, request.draft, platforms=request.platforms)
    )


@router.post("/content/{content_id}/reject")
def reject(
    content_id: UUID,
    request: ReasonRequest | None = None,
    engine: NewsroomEngine = Depends(get_engine),
) -> dict[str, Any]:
    return _editorial_response(engine.reject(content_id, (request or ReasonRequest()).reason))


@router.post("/content/{content_id}/schedule")
def schedule(
    content_id: UUID,
    request: ScheduleRequest,
    engine: NewsroomEngine = Depends(get_engine),
) -> dict[str, Any]:
    return _editorial_response(
        engine.schedule(content_id, request.scheduled_at, platforms=request.platforms)
    )


@router.post("/content/{content_id}/correct")
def correct(
    content_id: UUID,
    request: DraftRequest,
    engine: NewsroomEngine = Depends(get_engine),
) -> dict[str, Any]:
    return _editorial_response(
        engine.correct(content_id, request.draft, request.title, request.summary, request.body_text)
    )


@router.post("/content/{content_id}/retract")
def retract(
    content_id: UUID,
    request: ReasonRequest | None = None,
    engine: NewsroomEngine = Depends(get_engine),
) -> dict[str, Any]:
    return _editorial_response(engine.retract(content_id, (request or ReasonRequest()).reason))


@router.post("/content/{content_id}/breaking")
def mark_breaking(
    content_id: UUID,
    request: BreakingRequest | None = None,
    engine: NewsroomEngine = Depends(get_engine),
) -> dict[str, Any]:
    request = request or BreakingRequest()
    return _editorial_response(
        engine.mark_breaking(content_id, request.push_required, request.priority, request.draft)
    )


@router.post("/content/{content_id}/resubmit")
def resubmit(
    content_id: UUID,
    engine: NewsroomEngine = Depends(get_engine),
) -> dict[str, Any]:
    return _editorial_response(engine.resubmit(content_id))
