"""
Emergency queue API routes.

Operators review pending breaking-news candidates (highest priority first),
publish them immediately or cancel them.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder

from newsdesk.api.deps import get_engine
from newsdesk.api.schemas import EmergencyAddRequest, PriorityRequest, not_found, raise_errors
from newsdesk.components.emergency import PublishOutput, QueueOutput, run_cancel
from newsdesk.components.newsroom import NewsroomEngine

router = APIRouter()


def _status_code(errors: list[Any]) -> int:
    codes = {e.code for e in errors}
    if codes & {"not_found", "content_not_found"}:
        return 404
    if "not_pending" in codes:
        return 409
    return 400


def _queue_response(out: QueueOutput) -> dict[str, Any]:
    if not out.success:
        raise_errors(out.errors, _status_code(out.errors))
    return {"item": jsonable_encoder(out.item), "already_queued": out.already_queued}


@router.get("")
def list_pending(
    limit: int | None = None,
    engine: NewsroomEngine = Depends(get_engine),
) -> list[dict[str, Any]]:
    return [jsonable_encoder(i) for i in engine.emergency.list_pending(limit)]


@router.get("/stats")
def get_stats(engine: NewsroomEngine = Depends(get_engine)) -> dict[str, Any]:
    return jsonable_encoder(engine.emergency.stats())


@router.post("", status_code=201)
def add(
    request: EmergencyAddRequest,
    engine: NewsroomEngine = Depends(get_engine),
) -> dict[str, Any]:
    return _queue_response(
        engine.add_to_emergency_queue(request.content_id, request.priority, request.platforms)
    )


@router.post("/detect/{content_id}")
def detect(
    content_id: UUID,
    engine: NewsroomEngine = Depends(get_engine),
) -> dict[str, Any]:
    """Run breaking-news detection on an item without queueing it."""
    detection = engine.detect_emergency(content_id)
    if detection is None:
        raise not_found(f"Content {content_id} not found")
    return jsonable_encoder(detection)


@router.get("/{item_id}")
def get_item(
    item_id: UUID,
    engine: NewsroomEngine = Depends(get_engine),
) -> dict[str, Any]:
    item = engine.emergency.get(item_id)
    if item is None:
        raise not_found(f"Emergency item {item_id} not found")
    return jsonable_encoder(item)


@router.post("/{item_id}/publish")
def publish(
    item_id: UUID,
    engine: NewsroomEngine = Depends(get_engine),
) -> dict[str, Any]:
    out: PublishOutput = engine.publish_emergency(item_id)
    if not out.success:
        raise_errors(out.errors, _status_code(out.errors))
    return {
        "item": jsonable_encoder(out.item),
        "job_id": jsonable_encoder(out.job_id),
        "already_queued": out.already_queued,
    }


@router.post("/{item_id}/cancel")
def cancel(
    item_id: UUID,
    engine: NewsroomEngine = Depends(get_engine),
) -> dict[str, Any]:
    return _queue_response(run_cancel(engine.emergency, item_id))


@router.put("/{item_id}/priority")
def update_priority(
    item_id: UUID,
    request: PriorityRequest,
    engine: NewsroomEngine = Depends(get_engine),
) -> dict[str, Any]:
    return _queue_response(engine.emergency.update_priority(item_id, request.priority))
