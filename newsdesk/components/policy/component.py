"""
Policy component - PublishingPolicyEngine entry points.

Invariants:
- Window containment: start <= t < end, wrapping past midnight when start > end
- Emergency override bypasses windows, night mode and limits
- Daily counts use the local calendar day of the policy timezone
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from newsdesk.domain.policy import PublishingPolicy

from ._impl import PolicyService, schedule
from .models import (
    DailyStats,
    PolicyOutput,
    PolicyValidationError,
    PreviewInput,
    PreviewOutput,
    ScheduleDecision,
)


def run_schedule(
    policy: PublishingPolicy,
    platform: str,
    is_emergency: bool,
    now_utc: datetime,
    stats: DailyStats | None = None,
) -> ScheduleDecision:
    """Schedule decision for one platform."""
    return schedule(policy, platform, is_emergency, now_utc, stats)


def run_preview(inp: PreviewInput, *, service: PolicyService) -> PreviewOutput:
    """
    Preview when a publish to the given platforms would go out.

    Used by operators before approving; nothing is written.
    """
    if not inp.platforms:
        return PreviewOutput(
            plan=None,
            errors=[
                PolicyValidationError(
                    code="platforms_required", message="At least one platform is required"
                )
            ],
            success=False,
        )

    result = service.plan(inp.platforms, inp.is_emergency, inp.at_utc)
    return PreviewOutput(plan=result)


def run_update_policy(changes: Mapping[str, Any], *, service: PolicyService) -> PolicyOutput:
    """Apply policy changes as a new version."""
    if not changes:
        return PolicyOutput(
            policy=None,
            errors=[PolicyValidationError(code="no_changes", message="No policy changes given")],
            success=False,
        )
    updated, errors = service.update(changes)
    if errors:
        return PolicyOutput(policy=None, errors=errors, success=False)
    return PolicyOutput(policy=updated)
