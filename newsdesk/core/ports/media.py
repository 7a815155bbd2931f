"""Media provider port: rendered payload per platform, or None when not ready."""

from __future__ import annotations

from typing import Any, Protocol

from newsdesk.domain.entities import ContentItem


class MediaProviderPort(Protocol):
    def get_payload(self, item: ContentItem, platform: str) -> dict[str, Any] | None:
        """Return the rendered payload, or None if it is unavailable."""
        ...
