"""
Lifecycle component models.

The transition result types live in newsdesk.domain.state; this module
adds the service-level error codes.
"""

from __future__ import annotations

from newsdesk.domain.state import LifecycleError, TransitionResult

NOT_FOUND = "not_found"
VERSION_CONFLICT = "version_conflict"
ALREADY_EXISTS = "already_exists"

__all__ = [
    "ALREADY_EXISTS",
    "NOT_FOUND",
    "VERSION_CONFLICT",
    "LifecycleError",
    "TransitionResult",
]
