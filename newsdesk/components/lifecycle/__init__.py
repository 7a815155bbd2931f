"""
Lifecycle component - ContentLifecycle.
"""

from ._impl import SYSTEM_ACTOR, LifecycleService
from .component import ACTIONS, ActionInput, run_action
from .models import (
    ALREADY_EXISTS,
    NOT_FOUND,
    VERSION_CONFLICT,
    LifecycleError,
    TransitionResult,
)
from .ports import ContentRepoPort, TimePort

__all__ = [
    # Entry points
    "ACTIONS",
    "ActionInput",
    "run_action",
    # Service
    "SYSTEM_ACTOR",
    "LifecycleService",
    # Models
    "ALREADY_EXISTS",
    "NOT_FOUND",
    "VERSION_CONFLICT",
    "LifecycleError",
    "TransitionResult",
    # Ports
    "ContentRepoPort",
    "TimePort",
]
