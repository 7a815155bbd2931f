"""
Scheduler component - PublishJobScheduler.
"""

from ._impl import (
    DEFAULT_CONFIG,
    PERMANENT_PREFIX,
    SchedulerConfig,
    SchedulerService,
    build_config,
    calculate_next_retry,
    call_with_timeout,
    normalize_platforms,
    truncate_error,
)
from .component import run_enqueue, run_process_due
from .models import (
    ChannelOutcome,
    DispatchResult,
    EnqueueInput,
    EnqueueOutput,
    ProcessResult,
    SchedulerValidationError,
)
from .ports import (
    ChannelLogRepoPort,
    ChannelRegistryPort,
    ContentRepoPort,
    MediaProviderPort,
    PublishedContentRepoPort,
    PublishJobRepoPort,
    SourceRepoPort,
    TimePort,
)

__all__ = [
    # Entry points
    "run_enqueue",
    "run_process_due",
    # Service
    "DEFAULT_CONFIG",
    "PERMANENT_PREFIX",
    "SchedulerConfig",
    "SchedulerService",
    "build_config",
    # Pure functions
    "calculate_next_retry",
    "call_with_timeout",
    "normalize_platforms",
    "truncate_error",
    # Models
    "ChannelOutcome",
    "DispatchResult",
    "EnqueueInput",
    "EnqueueOutput",
    "ProcessResult",
    "SchedulerValidationError",
    # Ports
    "ChannelLogRepoPort",
    "ChannelRegistryPort",
    "ContentRepoPort",
    "MediaProviderPort",
    "PublishedContentRepoPort",
    "PublishJobRepoPort",
    "SourceRepoPort",
    "TimePort",
]
