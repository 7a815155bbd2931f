"""
Channel publisher registry and dev publishers.

Adding a platform means registering a publisher under its name; the
scheduler never branches on platform.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any
from uuid import UUID

from newsdesk.core.ports.channels import ChannelPublisherPort, ChannelPublishResult

logger = logging.getLogger(__name__)


class ChannelRegistry:
    """Lookup table of platform name -> publisher."""

    def __init__(self, publishers: dict[str, ChannelPublisherPort] | None = None) -> None:
        self._publishers: dict[str, ChannelPublisherPort] = {}
        for name, publisher in (publishers or {}).items():
            self.register(name, publisher)

    def register(self, platform: str, publisher: ChannelPublisherPort) -> None:
        self._publishers[platform.strip().lower()] = publisher

    def get(self, platform: str) -> ChannelPublisherPort | None:
        return self._publishers.get(platform.strip().lower())

    def platforms(self) -> tuple[str, ...]:
        return tuple(self._publishers)

    def __contains__(self, platform: object) -> bool:
        return isinstance(platform, str) and platform.strip().lower() in self._publishers


class DevChannelPublisher:
    """Logs the delivery and reports success. Used for local runs."""

    def __init__(self, platform: str) -> None:
        self.platform = platform
        self.delivered: list[tuple[UUID, int, dict[str, Any]]] = []

    def publish(
        self,
        content_id: UUID,
        version_no: int,
        payload: dict[str, Any],
    ) -> ChannelPublishResult:
        self.delivered.append((content_id, version_no, payload))
        logger.info(
            "Dev %s publisher: delivered content %s v%d",
            self.platform,
            content_id,
            version_no,
        )
        return ChannelPublishResult.ok(f"{self.platform}-{content_id.hex[:8]}-v{version_no}")


class WebChannelPublisher:
    """
    Publishes to the public site.

    The page itself is served from published_content; the external id is
    the public path the scheduler computed.
    """

    def __init__(self, base_url: str = "") -> None:
        self.base_url = base_url.rstrip("/")

    def publish(
        self,
        content_id: UUID,
        version_no: int,
        payload: dict[str, Any],
    ) -> ChannelPublishResult:
        path = payload.get("path")
        if not path:
            return ChannelPublishResult.failed("web payload has no path", error_kind="permanent")
        logger.info("Web publisher: content %s v%d at %s", content_id, version_no, path)
        return ChannelPublishResult.ok(f"{self.base_url}{path}")


def build_dev_registry(platforms: Iterable[str], base_url: str = "") -> ChannelRegistry:
    """Web gets the site publisher; every other platform a dev publisher."""
    registry = ChannelRegistry()
    for platform in platforms:
        name = platform.strip().lower()
        if name == "web":
            registry.register(name, WebChannelPublisher(base_url))
        else:
            registry.register(name, DevChannelPublisher(name))
    return registry
