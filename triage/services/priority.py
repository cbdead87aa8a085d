"""Priority estimation from labels, configured rules, and category heuristics."""

from datetime import datetime, timezone

from triage.models.classification import Category, CategoryClassification, Priority
from triage.models.config import (
    ClassificationConfig,
    ConfidenceTiers,
    PriorityRule,
)
from triage.models.issue import Issue

# Checked in this order; the first level found on any label wins
_LABELLED_LEVELS = (Priority.CRITICAL, Priority.HIGH, Priority.MEDIUM, Priority.LOW)


def find_priority_label(labels: list[str]) -> str | None:
    """Return the first (lowercased) label carrying a ``priority:`` marker."""
    return next((label for label in labels if "priority:" in label), None)


def label_priority(labels: list[str]) -> Priority | None:
    """Read an explicit ``priority: <level>`` label, tolerating a missing space."""
    for level in _LABELLED_LEVELS:
        markers = (f"priority: {level.value}", f"priority:{level.value}")
        if any(marker in label for label in labels for marker in markers):
            return level
    return None


def _age_days(issue: Issue, now: datetime) -> float:
    created = issue.created_at
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return (now - created).total_seconds() / 86400


def priority_rule_matches(
    rule: PriorityRule,
    issue: Issue,
    classifications: list[CategoryClassification],
    now: datetime,
) -> bool:
    """True when every clause the rule specifies holds for the issue."""
    cond = rule.conditions

    if cond.categories is not None:
        classified = {c.category for c in classifications}
        if not classified.intersection(cond.categories):
            return False

    if cond.keywords is not None:
        text = f"{issue.title} {issue.body or ''}".lower()
        if not any(kw.lower() in text for kw in cond.keywords):
            return False

    if cond.labels is not None:
        labels = issue.lowered_labels
        if not any(
            wanted.lower() in label for wanted in cond.labels for label in labels
        ):
            return False

    if cond.age_threshold is not None:
        if _age_days(issue, now) < cond.age_threshold:
            return False

    if cond.confidence_threshold is not None:
        best = max((c.confidence for c in classifications), default=0.0)
        if best < cond.confidence_threshold:
            return False

    return True


def _heuristic_priority(
    classifications: list[CategoryClassification],
    tiers: ConfidenceTiers,
    fallback: Priority,
) -> Priority:
    if not classifications:
        return fallback

    if any(
        c.category == Category.SECURITY and c.confidence > tiers.security_min_confidence
        for c in classifications
    ):
        return Priority.CRITICAL

    if any(
        (c.category == Category.BUG and c.confidence > tiers.bug_min_confidence)
        or c.category == Category.PERFORMANCE
        for c in classifications
    ):
        return Priority.HIGH

    if any(
        c.category in (Category.FEATURE, Category.ENHANCEMENT) for c in classifications
    ):
        return Priority.MEDIUM

    return fallback


def estimate_priority(
    issue: Issue,
    classifications: list[CategoryClassification],
    config: ClassificationConfig,
    now: datetime | None = None,
) -> Priority:
    """Estimate an issue's priority.

    Precedence, first match wins:

    1. An explicit ``priority: <level>`` label.
    2. The first enabled configured priority rule whose conditions all hold.
    3. Category heuristics over the classifications, ending in the
       configured fallback priority (``low`` when none is configured).
    """
    labelled = label_priority(issue.lowered_labels)
    if labelled is not None:
        return labelled

    now = now or datetime.now(timezone.utc)
    estimation = config.priority_estimation

    if estimation is not None:
        for rule in estimation.rules:
            if not rule.enabled:
                continue
            if priority_rule_matches(rule, issue, classifications, now):
                return rule.result_priority

    fallback = estimation.fallback_priority if estimation is not None else Priority.LOW
    return _heuristic_priority(
        classifications, config.scoring_thresholds.confidence_thresholds, fallback
    )


def priority_confidence(
    classifications: list[CategoryClassification], multiplier: float = 1.2
) -> float:
    """Mean classification confidence, boosted and capped at 1.0."""
    if not classifications:
        return 0.0
    mean = sum(c.confidence for c in classifications) / len(classifications)
    return min(1.0, mean * multiplier)
