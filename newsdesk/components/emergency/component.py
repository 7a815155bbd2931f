"""
Emergency component - breaking-news detection and the emergency queue.

Invariants:
- Detection is read-only; enqueueing is a separate action
- At most one pending queue item per content item
- Pending items are served by priority desc, then detected_at asc
- A queue item leaves pending exactly once
"""

from __future__ import annotations

from collections.abc import Sequence
from uuid import UUID

from newsdesk.domain.entities import ContentItem, Source
from newsdesk.domain.policy import EmergencyRules

from ._impl import EmergencyQueueService, detect
from .models import EmergencyDetection, EmergencyValidationError, PublishOutput, QueueOutput


def run_detect(
    item: ContentItem,
    source: Source | None,
    rules: EmergencyRules,
    priority: int | None = None,
) -> EmergencyDetection:
    """Scan an item for breaking-news signals."""
    return detect(item, source, rules, priority)


def run_enqueue(
    service: EmergencyQueueService,
    item: ContentItem,
    source: Source | None,
    rules: EmergencyRules,
    target_platforms: Sequence[str] | None = None,
    priority: int | None = None,
) -> QueueOutput:
    """Detect and queue in one step; non-emergency items are refused."""
    detection = detect(item, source, rules, priority)
    if not detection.is_emergency:
        return QueueOutput(
            item=None,
            errors=[
                EmergencyValidationError(
                    code="not_emergency",
                    message=detection.reason,
                    content_id=item.id,
                )
            ],
            success=False,
        )
    return service.add(item.id, detection, target_platforms)


def run_publish(
    service: EmergencyQueueService, item_id: UUID, version_no: int | None = None
) -> PublishOutput:
    """Publish a pending emergency item immediately."""
    return service.publish(item_id, version_no)


def run_cancel(service: EmergencyQueueService, item_id: UUID) -> QueueOutput:
    return service.cancel(item_id)
