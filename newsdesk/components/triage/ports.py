"""
Triage component port definitions.
"""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from newsdesk.domain.entities import Rule, Source


class RuleRepoPort(Protocol):
    def list_all(self) -> list[Rule]:
        """All rules in insertion order."""
        ...


class SourceRepoPort(Protocol):
    def get_by_id(self, source_id: UUID) -> Source | None: ...
