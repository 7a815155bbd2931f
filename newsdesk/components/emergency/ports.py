"""
Emergency component port definitions.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Any, Protocol
from uuid import UUID

from newsdesk.core.entities import PublishJob
from newsdesk.core.ports.db import EmergencyQueueRepoPort as EmergencyQueueRepoPort
from newsdesk.core.ports.time import TimePort as TimePort


class EnqueueResultLike(Protocol):
    @property
    def job(self) -> PublishJob | None: ...

    @property
    def already_queued(self) -> bool: ...

    @property
    def errors(self) -> Sequence[Any]: ...


class PublishEnqueuePort(Protocol):
    """The slice of the job scheduler the queue needs."""

    def enqueue(
        self,
        content_id: UUID,
        target_platforms: Sequence[str],
        scheduled_at: datetime | None = None,
        version_no: int | None = None,
        is_emergency: bool = False,
        silence_push: bool = False,
    ) -> EnqueueResultLike: ...


class PublishPlanLike(Protocol):
    @property
    def platforms(self) -> tuple[str, ...]: ...

    @property
    def dropped(self) -> tuple[str, ...]: ...

    @property
    def scheduled_at(self) -> datetime | None: ...

    @property
    def silence_push(self) -> bool: ...


class PublishPlannerPort(Protocol):
    """Checks target platforms against the publishing policy."""

    def plan(
        self,
        platforms: Iterable[str],
        is_emergency: bool = False,
        now_utc: datetime | None = None,
    ) -> PublishPlanLike: ...
