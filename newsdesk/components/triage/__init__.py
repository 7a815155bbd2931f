"""
Triage component - RuleEvaluator for ingested news items.
"""

from ._impl import (
    DECISION_STATUS,
    TriageConfig,
    dry_run_rule,
    evaluate,
    failed_filters,
    order_rules,
    rule_matches,
)
from .component import run_dry_run, run_evaluate
from .models import (
    DEFAULT_REASON,
    DryRunInput,
    DryRunOutput,
    EvaluateInput,
    EvaluateOutput,
    RuleDecision,
    TriageValidationError,
)
from .ports import RuleRepoPort, SourceRepoPort

__all__ = [
    # Entry points
    "run_dry_run",
    "run_evaluate",
    # Pure functions
    "dry_run_rule",
    "evaluate",
    "failed_filters",
    "order_rules",
    "rule_matches",
    # Models
    "DECISION_STATUS",
    "DEFAULT_REASON",
    "DryRunInput",
    "DryRunOutput",
    "EvaluateInput",
    "EvaluateOutput",
    "RuleDecision",
    "TriageConfig",
    "TriageValidationError",
    # Ports
    "RuleRepoPort",
    "SourceRepoPort",
]
