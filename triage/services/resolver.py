"""Runs every enabled rule against an issue and ranks the results."""

from dataclasses import dataclass, field

from triage.models.classification import (
    DEFAULT_CATEGORY,
    Category,
    CategoryClassification,
    ConfidenceAdjustment,
)
from triage.models.config import ClassificationConfig, ConfidenceThreshold
from triage.models.issue import Issue
from triage.services.matcher import DEFAULT_RULE_TIME_BUDGET_MS, apply_rule
from triage.services.priority import find_priority_label


@dataclass
class Resolution:
    """Ranked classifications for one issue plus bookkeeping counts."""

    classifications: list[CategoryClassification] = field(default_factory=list)
    primary_category: Category = DEFAULT_CATEGORY
    primary_confidence: float = 0.0
    rules_applied: int = 0
    rules_matched: int = 0
    adjustments: list[ConfidenceAdjustment] = field(default_factory=list)
    # True when the only entry is a placeholder carrying a priority-label reason
    synthesized: bool = False

    @property
    def matched(self) -> list[CategoryClassification]:
        """Classifications produced by rules (placeholder excluded)."""
        return [] if self.synthesized else self.classifications


def apply_confidence_thresholds(
    classifications: list[CategoryClassification],
    thresholds: list[ConfidenceThreshold],
) -> tuple[list[CategoryClassification], list[ConfidenceAdjustment]]:
    """Scale, clamp and filter confidences per category.

    A classification whose scaled confidence falls below its category's
    ``min_confidence`` is dropped; survivors are clamped into
    ``[min_confidence, max_confidence]``.  Categories without a threshold
    entry pass through untouched.
    """
    if not thresholds:
        return classifications, []

    by_category = {t.category: t for t in thresholds}
    kept: list[CategoryClassification] = []
    adjustments: list[ConfidenceAdjustment] = []

    for c in classifications:
        threshold = by_category.get(c.category)
        if threshold is None:
            kept.append(c)
            continue

        scaled = c.confidence * threshold.adjustment_factor
        label = c.rule_id or c.category.value
        if scaled < threshold.min_confidence:
            adjustments.append(
                ConfidenceAdjustment(
                    rule=label,
                    adjustment=-c.confidence,
                    reason=(
                        f"Dropped: {scaled:.2f} below {c.category.value} "
                        f"minimum {threshold.min_confidence:.2f}"
                    ),
                )
            )
            continue

        adjusted = min(threshold.max_confidence, scaled)
        if adjusted != c.confidence:
            adjustments.append(
                ConfidenceAdjustment(
                    rule=label,
                    adjustment=adjusted - c.confidence,
                    reason=f"Adjusted by factor {threshold.adjustment_factor}",
                )
            )
        kept.append(c.model_copy(update={"confidence": adjusted}))

    return kept, adjustments


def resolve_classifications(
    issue: Issue,
    config: ClassificationConfig,
    *,
    rule_time_budget_ms: float = DEFAULT_RULE_TIME_BUDGET_MS,
) -> Resolution:
    """Apply all enabled rules to *issue* and rank what passes the threshold."""
    scores = config.scoring_thresholds.keyword_scores
    resolution = Resolution()
    candidates: list[CategoryClassification] = []

    for rule in config.all_rules:
        if not rule.enabled:
            continue
        resolution.rules_applied += 1
        result = apply_rule(issue, rule, scores, time_budget_ms=rule_time_budget_ms)
        if result.confidence > 0 and result.confidence >= config.min_confidence:
            candidates.append(result)

    resolution.rules_matched = len(candidates)

    candidates, resolution.adjustments = apply_confidence_thresholds(
        candidates, config.confidence_thresholds
    )

    # sorted() is stable: ties keep rule declaration order
    ranked = sorted(candidates, key=lambda c: c.confidence, reverse=True)
    ranked = ranked[: config.max_categories]

    if ranked:
        resolution.primary_category = ranked[0].category
        resolution.primary_confidence = ranked[0].confidence

    priority_label = find_priority_label(issue.lowered_labels)
    if priority_label:
        reason = f'Has priority label: "{priority_label}"'
        if ranked:
            top = ranked[0]
            ranked[0] = top.model_copy(update={"reasons": [*top.reasons, reason]})
        elif config.max_categories > 0:
            ranked.append(
                CategoryClassification(
                    category=DEFAULT_CATEGORY, confidence=0.0, reasons=[reason]
                )
            )
            resolution.synthesized = True

    resolution.classifications = ranked
    return resolution
