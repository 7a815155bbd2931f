"""
Publishing policy API routes.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends
from fastapi.encoders import jsonable_encoder

from newsdesk.api.deps import get_engine
from newsdesk.api.schemas import PreviewRequest, raise_errors
from newsdesk.components.newsroom import NewsroomEngine
from newsdesk.components.policy import PreviewInput, run_preview, run_update_policy

router = APIRouter()


@router.get("")
def get_policy(engine: NewsroomEngine = Depends(get_engine)) -> dict[str, Any]:
    return engine.get_policy().model_dump(mode="json")


@router.put("")
def update_policy(
    changes: dict[str, Any] = Body(...),
    engine: NewsroomEngine = Depends(get_engine),
) -> dict[str, Any]:
    """
    Update the publishing policy.

    Top-level keys replace the stored values; the result is stored as a new
    version. The version field itself is ignored.
    """
    out = run_update_policy(changes, service=engine.policy)
    if not out.success or out.policy is None:
        raise_errors(out.errors)
    return out.policy.model_dump(mode="json")


@router.get("/stats")
def get_stats(
    platform: str | None = None,
    engine: NewsroomEngine = Depends(get_engine),
) -> list[dict[str, Any]]:
    """Today's publish counters, for one platform or all configured ones."""
    names = [platform] if platform else list(engine.get_policy().platforms)
    return [jsonable_encoder(engine.get_schedule_stats(name)) for name in names]


@router.post("/preview")
def preview(
    request: PreviewRequest,
    engine: NewsroomEngine = Depends(get_engine),
) -> dict[str, Any]:
    """Show when a publish to the given platforms would go out; nothing is written."""
    out = run_preview(
        PreviewInput(
            platforms=tuple(request.platforms),
            is_emergency=request.is_emergency,
            at_utc=request.at_utc,
        ),
        service=engine.policy,
    )
    if not out.success or out.plan is None:
        raise_errors(out.errors)
    return {
        "platforms": list(out.plan.platforms),
        "dropped": list(out.plan.dropped),
        "scheduled_at": jsonable_encoder(out.plan.scheduled_at),
        "can_publish_now": out.plan.can_publish_now,
        "silence_push": out.plan.silence_push,
        "is_emergency": out.plan.is_emergency,
        "decisions": {
            name: jsonable_encoder(decision) for name, decision in out.plan.decisions.items()
        },
    }
