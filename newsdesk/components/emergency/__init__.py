"""
Emergency component - EmergencyDetector and EmergencyQueue.
"""

from ._impl import (
    BREAKING_WEIGHT,
    CATEGORY_WEIGHT,
    KEYWORD_WEIGHT,
    MAX_PRIORITY,
    TRUSTED_SOURCE_WEIGHT,
    EmergencyQueueConfig,
    EmergencyQueueService,
    create_emergency_queue,
    detect,
    match_keywords,
    weighted_priority,
)
from .component import run_cancel, run_detect, run_enqueue, run_publish
from .models import (
    EmergencyDetection,
    EmergencyValidationError,
    PublishOutput,
    QueueOutput,
    QueueStats,
)
from .ports import (
    EmergencyQueueRepoPort,
    PublishEnqueuePort,
    PublishPlannerPort,
    TimePort,
)

__all__ = [
    # Entry points
    "run_cancel",
    "run_detect",
    "run_enqueue",
    "run_publish",
    # Service
    "EmergencyQueueConfig",
    "EmergencyQueueService",
    "create_emergency_queue",
    # Pure functions
    "detect",
    "match_keywords",
    "weighted_priority",
    # Constants
    "BREAKING_WEIGHT",
    "CATEGORY_WEIGHT",
    "KEYWORD_WEIGHT",
    "MAX_PRIORITY",
    "TRUSTED_SOURCE_WEIGHT",
    # Models
    "EmergencyDetection",
    "EmergencyValidationError",
    "PublishOutput",
    "QueueOutput",
    "QueueStats",
    # Ports
    "EmergencyQueueRepoPort",
    "PublishEnqueuePort",
    "PublishPlannerPort",
    "TimePort",
]
