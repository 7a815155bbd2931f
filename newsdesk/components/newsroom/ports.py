"""
Newsroom facade port definitions.
"""

from __future__ import annotations

from newsdesk.core.ports.db import RuleRepoPort as RuleRepoPort
from newsdesk.core.ports.db import SourceRepoPort as SourceRepoPort
from newsdesk.core.ports.time import TimePort as TimePort

__all__ = ["RuleRepoPort", "SourceRepoPort", "TimePort"]
