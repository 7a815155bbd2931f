"""
Newsroom component - NewsroomEngine facade.
"""

from ._impl import NewsroomEngine
from .component import IngestInput, run_ingest
from .models import EditorialResult, EngineError, IngestResult
from .ports import RuleRepoPort, SourceRepoPort, TimePort

__all__ = [
    # Entry points
    "IngestInput",
    "run_ingest",
    # Facade
    "NewsroomEngine",
    # Models
    "EditorialResult",
    "EngineError",
    "IngestResult",
    # Ports
    "RuleRepoPort",
    "SourceRepoPort",
    "TimePort",
]
