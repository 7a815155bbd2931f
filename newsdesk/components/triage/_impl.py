"""
RuleEvaluator - rule-based triage of ingested items.

Key behaviors:
- Only enabled rules take part, ordered by priority desc; ties keep
  insertion order (stable sort)
- A rule matches only if every configured filter passes
- First match wins; no match yields require_approval
- Pure: no I/O, no clock reads, no mutation
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta

from newsdesk.domain.entities import ContentItem, ContentStatus, DecisionType, Rule, Source

from .models import DEFAULT_REASON, RuleDecision

DECISION_STATUS: dict[DecisionType, ContentStatus] = {
    "auto_publish": "auto_ready",
    "require_approval": "pending_approval",
    "block": "blocked",
    "schedule": "scheduled",
}


@dataclass(frozen=True)
class TriageConfig:
    schedule_offset_minutes: int = 15


DEFAULT_CONFIG = TriageConfig()


def order_rules(rules: Iterable[Rule]) -> list[Rule]:
    """Enabled rules, priority desc; sorted() is stable so ties keep input order."""
    return sorted((r for r in rules if r.enabled), key=lambda r: -r.priority)


def failed_filters(rule: Rule, text: str, source: Source | None) -> list[str]:
    """
    Names of the filters this rule fails for the given text/source.

    text must already be lowercased. An empty list means the rule matches.
    """
    failed: list[str] = []

    # Source-id list is authoritative; the group list only applies without it
    if rule.source_ids:
        if source is None or source.id not in rule.source_ids:
            failed.append("source_ids")
    elif rule.group_names:
        if source is None or source.group.strip().lower() not in rule.group_names:
            failed.append("group_names")

    if rule.min_trust_level is not None:
        trust = source.trust_level if source is not None else 0
        if trust < rule.min_trust_level:
            failed.append("min_trust_level")

    if rule.include_keywords and not any(k in text for k in rule.include_keywords):
        failed.append("include_keywords")

    if rule.exclude_keywords and any(k in text for k in rule.exclude_keywords):
        failed.append("exclude_keywords")

    return failed


def rule_matches(rule: Rule, text: str, source: Source | None) -> bool:
    return not failed_filters(rule, text, source)


def evaluate(
    item: ContentItem,
    source: Source | None,
    rules: Iterable[Rule],
    now_utc: datetime,
    config: TriageConfig = DEFAULT_CONFIG,
) -> RuleDecision:
    """
    Evaluate an item against the rule set.

    Args:
        item: Ingested content item
        source: Feed metadata (None when the item has no known source)
        rules: Rule set in insertion order
        now_utc: Evaluation time, used only for schedule decisions
        config: Triage configuration

    Returns:
        RuleDecision for the first matching rule, or the default decision.
    """
    text = item.search_text
    trust = source.trust_level if source is not None else None

    for rule in order_rules(rules):
        if not rule_matches(rule, text, source):
            continue

        scheduled_at = None
        if rule.decision_type == "schedule":
            scheduled_at = now_utc + timedelta(minutes=config.schedule_offset_minutes)

        return RuleDecision(
            decision_type=rule.decision_type,
            status=DECISION_STATUS[rule.decision_type],
            reason=f"Matched rule: {rule.name}",
            matched_rule_id=rule.id,
            matched_rule_name=rule.name,
            scheduled_at=scheduled_at,
            trust_level=trust,
        )

    return RuleDecision(
        decision_type="require_approval",
        status=DECISION_STATUS["require_approval"],
        reason=DEFAULT_REASON,
        trust_level=trust,
    )


def dry_run_rule(
    rule: Rule,
    title: str,
    summary: str = "",
    body_text: str = "",
    source: Source | None = None,
) -> list[str]:
    """Dry-run one rule (ignoring enabled/priority); returns failed filter names."""
    text = f"{title} {summary} {body_text}".lower()
    return failed_filters(rule, text, source)

