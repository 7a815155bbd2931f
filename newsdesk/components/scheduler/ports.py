"""
Scheduler component port definitions.
"""

from __future__ import annotations

from typing import Protocol

from newsdesk.core.ports.channels import ChannelPublisherPort
from newsdesk.core.ports.db import ChannelLogRepoPort as ChannelLogRepoPort
from newsdesk.core.ports.db import ContentRepoPort as ContentRepoPort
from newsdesk.core.ports.db import PublishedContentRepoPort as PublishedContentRepoPort
from newsdesk.core.ports.db import PublishJobRepoPort as PublishJobRepoPort
from newsdesk.core.ports.db import SourceRepoPort as SourceRepoPort
from newsdesk.core.ports.media import MediaProviderPort as MediaProviderPort
from newsdesk.core.ports.time import TimePort as TimePort


class ChannelRegistryPort(Protocol):
    """Platform name -> publisher lookup."""

    def get(self, platform: str) -> ChannelPublisherPort | None: ...

    def __contains__(self, platform: object) -> bool: ...
