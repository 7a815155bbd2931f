"""
Channel publisher port.

One implementation per platform, selected through a registry keyed on
platform name. Publishers either return a ChannelPublishResult or raise one
of the channel errors below; anything else counts as transient.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Protocol
from uuid import UUID

ErrorKind = Literal["transient", "permanent"]


class ChannelError(Exception):
    """Base class for channel delivery failures."""

    kind: ErrorKind = "transient"

    def __init__(self, message: str, retry_after_seconds: int | None = None) -> None:
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds


class TransientChannelError(ChannelError):
    """Rate limit, network timeout, 5xx."""

    kind: ErrorKind = "transient"


class PermanentChannelError(ChannelError):
    """Auth failure, malformed payload. Still retried, but flagged for triage."""

    kind: ErrorKind = "permanent"


@dataclass(frozen=True)
class ChannelPublishResult:
    success: bool
    external_post_id: str | None = None
    error: str | None = None
    error_kind: ErrorKind | None = None
    retry_after_seconds: int | None = None

    @classmethod
    def ok(cls, external_post_id: str | None = None) -> ChannelPublishResult:
        return cls(success=True, external_post_id=external_post_id)

    @classmethod
    def failed(
        cls,
        error: str,
        error_kind: ErrorKind = "transient",
        retry_after_seconds: int | None = None,
    ) -> ChannelPublishResult:
        return cls(
            success=False,
            error=error,
            error_kind=error_kind,
            retry_after_seconds=retry_after_seconds,
        )


class ChannelPublisherPort(Protocol):
    """Delivers one content version to one external channel."""

    def publish(
        self,
        content_id: UUID,
        version_no: int,
        payload: dict[str, Any],
    ) -> ChannelPublishResult:
        ...
