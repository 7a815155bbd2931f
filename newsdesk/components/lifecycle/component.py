"""
Lifecycle component - editorial state machine entry points.

Invariants:
- current_version_no increases by exactly one per editorial action
- Each action writes exactly one ContentRevision
- Retracted content cannot be published again
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from ._impl import LifecycleService
from .models import LifecycleError, TransitionResult

ACTIONS = (
    "approve",
    "reject",
    "schedule",
    "correct",
    "retract",
    "mark_breaking",
    "resubmit",
    "save_draft",
)


@dataclass(frozen=True)
class ActionInput:
    content_id: UUID
    action: str
    params: dict[str, Any] = field(default_factory=dict)
    actor: str | None = None


def run_action(inp: ActionInput, *, service: LifecycleService) -> TransitionResult:
    """Dispatch a named editorial action to the lifecycle service."""
    if inp.action not in ACTIONS:
        return TransitionResult(
            item=None,
            revision=None,
            errors=[
                LifecycleError(
                    code="unknown_action",
                    message=f"Unknown action '{inp.action}'",
                    content_id=inp.content_id,
                )
            ],
        )
    handler = getattr(service, inp.action)
    result: TransitionResult = handler(inp.content_id, actor=inp.actor, **inp.params)
    return result
