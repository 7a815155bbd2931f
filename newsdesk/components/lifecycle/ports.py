"""
Lifecycle component port definitions.
"""

from __future__ import annotations

from newsdesk.core.ports.db import ContentRepoPort as ContentRepoPort
from newsdesk.core.ports.time import TimePort as TimePort

__all__ = ["ContentRepoPort", "TimePort"]
