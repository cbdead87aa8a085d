"""Tests for the scoring engine."""

from triage.models.classification import Category, Priority
from triage.models.config import (
    ClassificationConfig,
    CustomFactor,
    FallbackScoring,
    ScoringAlgorithm,
    ScoringThresholds,
    ScoringWeights,
)
from triage.services.scoring import (
    algorithm_version,
    calculate_score,
    round_half_up,
)


def _config(**weights) -> ClassificationConfig:
    return ClassificationConfig(
        scoring_algorithm=ScoringAlgorithm(weights=ScoringWeights(**weights))
    )


def test_weighted_score():
    score, breakdown = calculate_score(
        Category.BUG, Priority.HIGH, _config(category=50, priority=50)
    )
    assert score == 90.0
    assert breakdown.category == 50.0
    assert breakdown.priority == 40.0
    assert breakdown.recency == 0.0
    assert breakdown.custom == 0.0


def test_unknown_weights_fall_back_to_half():
    config = _config(category=50, priority=50).model_copy(
        update={"category_weights": {}, "priority_weights": {}}
    )
    score, _ = calculate_score(Category.BUG, Priority.HIGH, config)
    assert score == 50.0


def test_recency_weight_contributes_nothing():
    score, breakdown = calculate_score(
        Category.BUG, Priority.CRITICAL, _config(category=40, priority=30, recency=30)
    )
    assert breakdown.recency == 0.0
    assert score == 70.0


def test_custom_factors_use_enabled_weights():
    config = ClassificationConfig(
        scoring_algorithm=ScoringAlgorithm(
            weights=ScoringWeights(category=0, priority=0, custom=10),
            custom_factors=[
                CustomFactor(id="a", name="A", weight=0.5),
                CustomFactor(id="b", name="B", weight=0.25),
                CustomFactor(id="c", name="C", weight=0.9, enabled=False),
            ],
        )
    )
    score, breakdown = calculate_score(Category.BUG, Priority.LOW, config)
    assert breakdown.custom == 7.5
    assert score == 7.5


def test_score_is_clamped_to_100():
    score, breakdown = calculate_score(
        Category.SECURITY, Priority.CRITICAL, _config(category=100, priority=100)
    )
    assert breakdown.total == 200.0
    assert score == 100.0


def test_no_algorithm_uses_fallback_breakdown():
    config = ClassificationConfig()
    score, breakdown = calculate_score(Category.BUG, Priority.CRITICAL, config)
    assert score == 40.0
    assert (breakdown.category, breakdown.priority, breakdown.recency) == (20, 15, 5)
    assert algorithm_version(config) == "fallback"


def test_disabled_algorithm_uses_configured_fallback():
    config = ClassificationConfig(
        scoring_algorithm=ScoringAlgorithm(enabled=False),
        scoring_thresholds=ScoringThresholds(
            fallback_scoring=FallbackScoring(
                category_score=10, priority_score=10, recency_score=0
            )
        ),
    )
    score, _ = calculate_score(Category.BUG, Priority.HIGH, config)
    assert score == 20.0


def test_algorithm_version():
    assert algorithm_version(_config()) == "default@1.0.0"


def test_round_half_up():
    assert round_half_up(0.25) == 0.3
    assert round_half_up(2.5, 0) == 3.0
    assert round_half_up(0.724, 2) == 0.72
