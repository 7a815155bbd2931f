"""
Policy component - PublishingPolicyEngine.
"""

from ._impl import (
    POLICY_SETTINGS_KEY,
    PolicyService,
    compute_daily_stats,
    plan,
    schedule,
)
from .component import run_preview, run_schedule, run_update_policy
from .models import (
    DailyStats,
    PolicyOutput,
    PolicyValidationError,
    PreviewInput,
    PreviewOutput,
    PublishPlan,
    ScheduleDecision,
)
from .ports import ChannelLogRepoPort, SettingsRepoPort, TimePort

__all__ = [
    # Entry points
    "run_preview",
    "run_schedule",
    "run_update_policy",
    # Service
    "POLICY_SETTINGS_KEY",
    "PolicyService",
    # Pure functions
    "compute_daily_stats",
    "plan",
    "schedule",
    # Models
    "DailyStats",
    "PolicyOutput",
    "PolicyValidationError",
    "PreviewInput",
    "PreviewOutput",
    "PublishPlan",
    "ScheduleDecision",
    # Ports
    "ChannelLogRepoPort",
    "SettingsRepoPort",
    "TimePort",
]
