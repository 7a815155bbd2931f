"""
PublishingPolicyEngine - per-platform time windows, limits and night mode.

Decision order for one platform:
1. disabled / unknown platform -> deferred indefinitely
2. emergency with override -> now, push not silenced
3. night mode -> queue for morning, or continue with push silenced
4. outside every allowed window -> next window start
5. daily limit reached -> next local midnight
6. min interval not elapsed -> last publish + interval
7. otherwise now

Everything is evaluated on the wall clock of the policy timezone; callers
pass and receive UTC.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime, timedelta
from typing import Any

from pydantic import ValidationError

from newsdesk.domain.policy import (
    PlatformPolicy,
    PublishingPolicy,
    next_local_midnight,
    next_occurrence,
    next_window_start,
)

from .models import DailyStats, PolicyValidationError, PublishPlan, ScheduleDecision
from .ports import ChannelLogRepoPort, SettingsRepoPort, TimePort

logger = logging.getLogger(__name__)

POLICY_SETTINGS_KEY = "publishing_policy"
MOBILE_PLATFORM = "mobile"


# --- Stats ---


def compute_daily_stats(
    policy: PublishingPolicy,
    platform: str,
    now_utc: datetime,
    logs: ChannelLogRepoPort,
) -> DailyStats:
    """Count today's successful publishes (local calendar day) for a platform."""
    platform = platform.strip().lower()
    start_utc, end_utc = policy.day_bounds_utc(now_utc)
    count = logs.count_success(platform, start_utc, end_utc)
    platform_policy = policy.platform(platform)
    limit = platform_policy.daily_limit if platform_policy else 0
    remaining = max(limit - count, 0) if limit > 0 else None
    return DailyStats(
        platform=platform,
        date=policy.to_local(now_utc).date(),
        count=count,
        limit=limit,
        remaining=remaining,
        is_at_limit=limit > 0 and count >= limit,
        last_published_at=logs.last_success_at(platform),
    )


# --- Scheduling ---


def _open_from(platform_policy: PlatformPolicy, local_dt: datetime) -> datetime:
    """local_dt if it falls in an allowed window, else the next window start."""
    if platform_policy.in_allowed_window(local_dt.timetz()):
        return local_dt
    return next_window_start(local_dt, platform_policy.allowed_windows)


def schedule(
    policy: PublishingPolicy,
    platform: str,
    is_emergency: bool,
    now_utc: datetime,
    stats: DailyStats | None = None,
) -> ScheduleDecision:
    """
    Decide whether a platform may publish now, or when it may.

    Args:
        policy: Publishing policy snapshot
        platform: Platform name
        is_emergency: Emergency publishes may bypass windows and limits
        now_utc: Decision time
        stats: Today's counters for the platform (None means no publishes yet)

    Returns:
        ScheduleDecision. Deferred times are returned in UTC.
    """
    platform = platform.strip().lower()
    platform_policy = policy.platform(platform)
    count = stats.count if stats else 0

    if platform_policy is None or not platform_policy.enabled:
        return ScheduleDecision(
            platform=platform,
            can_publish_now=False,
            scheduled_at=None,
            reason="platform disabled",
            is_emergency=is_emergency,
            daily_count=count,
            daily_limit=platform_policy.daily_limit if platform_policy else 0,
        )

    limit = platform_policy.daily_limit

    def now_decision(reason: str, silence_push: bool) -> ScheduleDecision:
        return ScheduleDecision(
            platform=platform,
            can_publish_now=True,
            scheduled_at=now_utc,
            reason=reason,
            silence_push=silence_push,
            is_emergency=is_emergency,
            daily_count=count,
            daily_limit=limit,
        )

    def deferred(local_dt: datetime, reason: str, silence_push: bool) -> ScheduleDecision:
        return ScheduleDecision(
            platform=platform,
            can_publish_now=False,
            scheduled_at=local_dt.astimezone(UTC),
            reason=reason,
            silence_push=silence_push,
            is_emergency=is_emergency,
            daily_count=count,
            daily_limit=limit,
        )

    if is_emergency and platform_policy.emergency_override:
        return now_decision("emergency override", silence_push=False)

    local_now = policy.to_local(now_utc)
    silence_push = False

    night = platform_policy.night_mode
    if night is not None and night.is_night(local_now.timetz()):
        if night.queue_for_morning:
            return deferred(
                next_occurrence(local_now, night.end), "night mode: queued for morning", False
            )
        silence_push = night.silence_push

    if not platform_policy.in_allowed_window(local_now.timetz()):
        return deferred(
            next_window_start(local_now, platform_policy.allowed_windows),
            "outside allowed window",
            silence_push,
        )

    if limit > 0 and count >= limit:
        return deferred(
            _open_from(platform_policy, next_local_midnight(local_now)),
            f"daily limit reached ({count}/{limit})",
            silence_push,
        )

    last = stats.last_published_at if stats else None
    interval = timedelta(minutes=platform_policy.min_interval_minutes)
    if last is not None and interval and now_utc - last < interval:
        next_slot = policy.to_local(last + interval)
        return deferred(
            _open_from(platform_policy, next_slot),
            f"min interval {platform_policy.min_interval_minutes}m not elapsed",
            silence_push,
        )

    return now_decision("within policy", silence_push)


def plan(
    policy: PublishingPolicy,
    platforms: Iterable[str],
    is_emergency: bool,
    now_utc: datetime,
    stats_by_platform: Mapping[str, DailyStats] | None = None,
) -> PublishPlan:
    """
    Fold per-platform decisions into one job.

    Disabled platforms are dropped. The job runs at the latest deferral of
    the remaining platforms; silence_push follows the mobile decision.
    """
    stats_by_platform = stats_by_platform or {}
    decisions: dict[str, ScheduleDecision] = {}
    kept: list[str] = []
    dropped: list[str] = []

    for raw in platforms:
        name = raw.strip().lower()
        if name in decisions:
            continue
        decision = schedule(policy, name, is_emergency, now_utc, stats_by_platform.get(name))
        decisions[name] = decision
        if decision.scheduled_at is None:
            dropped.append(name)
        else:
            kept.append(name)

    if not kept:
        return PublishPlan(
            platforms=(),
            dropped=tuple(dropped),
            scheduled_at=None,
            can_publish_now=False,
            silence_push=False,
            is_emergency=is_emergency,
            decisions=decisions,
        )

    times = [d.scheduled_at for n, d in decisions.items() if n in kept and d.scheduled_at]
    mobile = decisions.get(MOBILE_PLATFORM)
    return PublishPlan(
        platforms=tuple(kept),
        dropped=tuple(dropped),
        scheduled_at=max(times),
        can_publish_now=all(decisions[n].can_publish_now for n in kept),
        silence_push=bool(mobile and MOBILE_PLATFORM in kept and mobile.silence_push),
        is_emergency=is_emergency,
        decisions=decisions,
    )


# --- Policy storage ---


def _validation_errors(e: ValidationError) -> list[PolicyValidationError]:
    return [
        PolicyValidationError(
            code="invalid_policy",
            message=str(err.get("msg", "invalid value")),
            field=".".join(str(p) for p in err.get("loc", ())) or None,
        )
        for err in e.errors()
    ]


class PolicyService:
    """
    Versioned publishing policy stored in the settings table.

    Falls back to the rules.yaml default when nothing is stored. Every
    update writes a new version; readers get an immutable snapshot.
    """

    def __init__(
        self,
        settings_repo: SettingsRepoPort,
        log_repo: ChannelLogRepoPort,
        defaults: PublishingPolicy,
        time_port: TimePort | None = None,
    ) -> None:
        self._settings = settings_repo
        self._logs = log_repo
        self._defaults = defaults
        self._time = time_port

    def _now_utc(self) -> datetime:
        if self._time:
            return self._time.now_utc()
        return datetime.now(UTC)

    def get(self) -> PublishingPolicy:
        stored = self._settings.get(POLICY_SETTINGS_KEY)
        if stored is None:
            return self._defaults
        try:
            return PublishingPolicy.model_validate(stored)
        except ValidationError:
            logger.exception("Stored publishing policy is invalid; using defaults")
            return self._defaults

    def update(
        self, changes: Mapping[str, Any]
    ) -> tuple[PublishingPolicy | None, list[PolicyValidationError]]:
        """
        Apply top-level changes and store the result as a new version.

        Returns:
            Tuple of (policy, errors). Policy is None if errors.
        """
        current = self.get()
        data = current.model_dump(mode="json")
        data.update({k: v for k, v in changes.items() if k != "version"})
        data["version"] = current.version + 1

        try:
            updated = PublishingPolicy.model_validate(data)
        except ValidationError as e:
            return None, _validation_errors(e)

        self._settings.set(POLICY_SETTINGS_KEY, updated.model_dump(mode="json"), self._now_utc())
        logger.info("Publishing policy updated to version %d", updated.version)
        return updated, []

    def stats(self, platform: str, now_utc: datetime | None = None) -> DailyStats:
        return compute_daily_stats(self.get(), platform, now_utc or self._now_utc(), self._logs)

    def plan(
        self,
        platforms: Iterable[str],
        is_emergency: bool = False,
        now_utc: datetime | None = None,
    ) -> PublishPlan:
        """Plan a publish against the current policy and today's counters."""
        policy = self.get()
        now = now_utc or self._now_utc()
        names = [p.strip().lower() for p in platforms]
        stats = {name: compute_daily_stats(policy, name, now, self._logs) for name in names}
        return plan(policy, names, is_emergency, now, stats)
