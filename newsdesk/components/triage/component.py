"""
Triage component - rule-based decision for ingested items.

Invariants:
- Decision equals the first enabled rule (priority desc, then insertion
  order) whose filters all pass, else require_approval
- Evaluation has no side effects
"""

from __future__ import annotations

from ._impl import TriageConfig, dry_run_rule, evaluate
from .models import (
    DryRunInput,
    DryRunOutput,
    EvaluateInput,
    EvaluateOutput,
    TriageValidationError,
)


def run_evaluate(inp: EvaluateInput) -> EvaluateOutput:
    """Evaluate an item against a rule set."""
    if inp.schedule_offset_minutes < 0:
        return EvaluateOutput(
            decision=None,
            errors=[
                TriageValidationError(
                    code="invalid_offset",
                    message="schedule_offset_minutes must be >= 0",
                    content_id=inp.item.id,
                )
            ],
            success=False,
        )

    decision = evaluate(
        inp.item,
        inp.source,
        inp.rules,
        inp.now_utc,
        TriageConfig(schedule_offset_minutes=inp.schedule_offset_minutes),
    )
    return EvaluateOutput(decision=decision)


def run_dry_run(inp: DryRunInput) -> DryRunOutput:
    """Check a single rule against sample text (admin rule tester)."""
    if not inp.title.strip():
        return DryRunOutput(
            matched=False,
            errors=[TriageValidationError(code="title_required", message="Title is required")],
            success=False,
        )

    failed = dry_run_rule(inp.rule, inp.title, inp.summary, inp.body_text, inp.source)
    return DryRunOutput(matched=not failed, failed_filters=tuple(failed))
