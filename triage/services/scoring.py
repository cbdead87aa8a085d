"""Turns a category and priority into a 0-100 ranking score."""

import math

from triage.models.classification import Category, Priority, ScoreBreakdown
from triage.models.config import ClassificationConfig, weight_for

FALLBACK_ALGORITHM_VERSION = "fallback"


def round_half_up(value: float, digits: int = 1) -> float:
    """Round like a dashboard does: halves go up, not to the nearest even."""
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def _fallback_breakdown(config: ClassificationConfig) -> ScoreBreakdown:
    fallback = config.scoring_thresholds.fallback_scoring
    return ScoreBreakdown(
        category=fallback.category_score,
        priority=fallback.priority_score,
        recency=fallback.recency_score,
        custom=0.0,
    )


def calculate_breakdown(
    primary_category: Category,
    priority: Priority,
    config: ClassificationConfig,
) -> ScoreBreakdown:
    """Per-component score contributions under the active scoring algorithm."""
    algorithm = config.scoring_algorithm
    if algorithm is None or not algorithm.enabled:
        return _fallback_breakdown(config)

    weights = algorithm.weights
    custom = 0.0
    if weights.custom > 0:
        factor_total = sum(f.weight for f in algorithm.custom_factors if f.enabled)
        custom = factor_total * weights.custom

    category_weight = weight_for(config.category_weights, primary_category)
    priority_weight = weight_for(config.priority_weights, priority)

    return ScoreBreakdown(
        category=category_weight * weights.category,
        priority=priority_weight * weights.priority,
        recency=0.0,
        custom=custom,
    )


def calculate_score(
    primary_category: Category,
    priority: Priority,
    config: ClassificationConfig,
) -> tuple[float, ScoreBreakdown]:
    """Return ``(score, breakdown)``; score is rounded to one decimal, 0-100."""
    breakdown = calculate_breakdown(primary_category, priority, config)
    score = max(0.0, min(100.0, round_half_up(breakdown.total, 1)))
    return score, breakdown


def algorithm_version(config: ClassificationConfig) -> str:
    algorithm = config.scoring_algorithm
    if algorithm is None or not algorithm.enabled:
        return FALLBACK_ALGORITHM_VERSION
    return f"{algorithm.id}@{algorithm.version}"
