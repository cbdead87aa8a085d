"""Classification configuration models.

Everything that parameterizes the engine: rules, weight tables, per-category
confidence thresholds, priority estimation rules, the scoring algorithm, and
cache/batch tuning. Config files may use snake_case or camelCase keys.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from triage.models.classification import Category, Priority

# Used for any category or priority missing from a weight table
DEFAULT_WEIGHT = 0.5

DEFAULT_CATEGORY_WEIGHTS: dict[str, float] = {
    "bug": 1.0,
    "security": 1.0,
    "feature": 0.8,
    "enhancement": 0.7,
    "performance": 0.8,
    "documentation": 0.5,
    "question": 0.4,
    "duplicate": 0.3,
    "invalid": 0.3,
    "wontfix": 0.3,
    "help-wanted": 0.6,
    "good-first-issue": 0.5,
    "refactor": 0.6,
    "test": 0.5,
    "ci-cd": 0.6,
    "dependencies": 0.5,
}

DEFAULT_PRIORITY_WEIGHTS: dict[str, float] = {
    "critical": 1.0,
    "high": 0.8,
    "medium": 0.6,
    "low": 0.4,
    "backlog": 0.2,
}


def weight_for(
    table: dict[str, float],
    key: str | Category | Priority,
    default: float = DEFAULT_WEIGHT,
) -> float:
    """Look up a category or priority weight, falling back to *default*."""
    name = key.value if isinstance(key, (Category, Priority)) else key
    return table.get(name, default)


class ConfigModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )


class RuleConditions(ConfigModel):
    """Match conditions of a classification rule. All lists are optional."""

    title_keywords: list[str] = []
    body_keywords: list[str] = []
    labels: list[str] = []
    title_patterns: list[str] = []
    body_patterns: list[str] = []
    exclude_keywords: list[str] = []


class ClassificationRule(ConfigModel):
    id: str
    name: str
    description: str = ""
    category: Category
    priority: Priority | None = None
    conditions: RuleConditions = Field(default_factory=RuleConditions)
    weight: float = Field(default=1.0, ge=0.0, le=1.0)
    enabled: bool = True


class ConfidenceThreshold(ConfigModel):
    category: Category
    min_confidence: float = Field(default=0.7, ge=0.0, le=1.0)
    max_confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    adjustment_factor: float = Field(default=1.0, ge=0.0, le=2.0)


class PriorityRuleConditions(ConfigModel):
    categories: list[Category] | None = None
    keywords: list[str] | None = None
    labels: list[str] | None = None
    age_threshold: float | None = None  # days
    confidence_threshold: float | None = Field(default=None, ge=0.0, le=1.0)


class PriorityRule(ConfigModel):
    id: str
    name: str
    conditions: PriorityRuleConditions = Field(default_factory=PriorityRuleConditions)
    result_priority: Priority
    weight: float = Field(default=1.0, ge=0.0, le=1.0)
    enabled: bool = True


class PriorityEstimationConfig(ConfigModel):
    algorithm: Literal["rule-based", "weighted"] = "rule-based"
    rules: list[PriorityRule] = []
    fallback_priority: Priority = Priority.MEDIUM
    confidence_bonus: float = Field(default=0.1, ge=0.0, le=1.0)


class CustomFactor(ConfigModel):
    id: str
    name: str
    description: str = ""
    weight: float = Field(default=0.0, ge=0.0, le=1.0)
    enabled: bool = True


class ScoringWeights(ConfigModel):
    """Relative weights of the score components, usually summing to 100."""

    category: float = Field(default=40, ge=0, le=100)
    priority: float = Field(default=30, ge=0, le=100)
    recency: float = Field(default=0, ge=0, le=100)
    custom: float = Field(default=0, ge=0, le=100)


class ScoringAlgorithm(ConfigModel):
    id: str = "default"
    name: str = "Default Scoring Algorithm"
    description: str = ""
    version: str = "1.0.0"
    weights: ScoringWeights = Field(default_factory=ScoringWeights)
    custom_factors: list[CustomFactor] = []
    enabled: bool = True


class KeywordScores(ConfigModel):
    """Raw score added per matched condition before the rule weight applies."""

    title_keyword: float = Field(default=0.3, ge=0.0, le=1.0)
    body_keyword: float = Field(default=0.2, ge=0.0, le=1.0)
    label_match: float = Field(default=0.4, ge=0.0, le=1.0)
    title_pattern: float = Field(default=0.25, ge=0.0, le=1.0)
    body_pattern: float = Field(default=0.2, ge=0.0, le=1.0)


class ConfidenceTiers(ConfigModel):
    security_min_confidence: float = Field(default=0.7, ge=0.0, le=1.0)
    bug_min_confidence: float = Field(default=0.7, ge=0.0, le=1.0)
    priority_confidence_multiplier: float = Field(default=1.2, ge=0.0, le=5.0)


class FallbackScoring(ConfigModel):
    """Fixed breakdown used when no scoring algorithm is configured."""

    category_score: float = Field(default=20, ge=0, le=100)
    priority_score: float = Field(default=15, ge=0, le=100)
    recency_score: float = Field(default=5, ge=0, le=100)


class ScoringThresholds(ConfigModel):
    keyword_scores: KeywordScores = Field(default_factory=KeywordScores)
    confidence_thresholds: ConfidenceTiers = Field(default_factory=ConfidenceTiers)
    fallback_scoring: FallbackScoring = Field(default_factory=FallbackScoring)


class CachingConfig(ConfigModel):
    enabled: bool = True
    ttl: float = Field(default=3600, ge=0)  # seconds
    max_size: int = Field(default=1000, ge=1)


class BatchProcessingConfig(ConfigModel):
    enabled: bool = True
    batch_size: int = Field(default=100, ge=1, le=1000)
    parallelism: int = Field(default=3, ge=1, le=10)


class PerformanceConfig(ConfigModel):
    caching: CachingConfig = Field(default_factory=CachingConfig)
    batch_processing: BatchProcessingConfig = Field(
        default_factory=BatchProcessingConfig
    )


class RepositoryConfig(ConfigModel):
    owner: str
    repo: str
    branch: str = "main"
    enabled: bool = True


class FallbackScore(ConfigModel):
    base_score: float = Field(default=50, ge=0, le=100)
    score_decrement: float = Field(default=5, ge=0, le=20)


class TaskRecommendationConfig(ConfigModel):
    fallback_score: FallbackScore = Field(default_factory=FallbackScore)


class ClassificationConfig(ConfigModel):
    """Top-level engine configuration."""

    version: str = "2.0.0"
    min_confidence: float = Field(default=0.7, ge=0.0, le=1.0)
    max_categories: int = Field(default=3, ge=0, le=10)
    rules: list[ClassificationRule] = []
    custom_rules: list[ClassificationRule] = []
    category_weights: dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_CATEGORY_WEIGHTS)
    )
    priority_weights: dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_PRIORITY_WEIGHTS)
    )
    confidence_thresholds: list[ConfidenceThreshold] = []
    priority_estimation: PriorityEstimationConfig | None = None
    scoring_algorithm: ScoringAlgorithm | None = None
    scoring_thresholds: ScoringThresholds = Field(default_factory=ScoringThresholds)
    performance: PerformanceConfig = Field(default_factory=PerformanceConfig)
    repositories: list[RepositoryConfig] = []
    task_recommendation: TaskRecommendationConfig = Field(
        default_factory=TaskRecommendationConfig
    )

    @property
    def all_rules(self) -> list[ClassificationRule]:
        """Standard rules followed by custom rules, in declaration order."""
        return [*self.rules, *self.custom_rules]

    def repository(self, owner: str, repo: str) -> RepositoryConfig | None:
        return next(
            (r for r in self.repositories if r.owner == owner and r.repo == repo),
            None,
        )


class ConfigurationProfile(ConfigModel):
    id: str
    name: str
    description: str = ""
    type: Literal["development", "production", "testing", "custom"] = "custom"
    config: ClassificationConfig
    is_default: bool = False
    tags: list[str] = []


class ConfigurationUpdate(ConfigModel):
    """A dotted-path change applied to a loaded configuration."""

    path: str
    value: Any = None
    operation: Literal["set", "merge", "append", "remove"] = "set"


DEFAULT_CONFIG = ClassificationConfig(
    scoring_algorithm=ScoringAlgorithm(
        description="Standard scoring algorithm with balanced weights",
        weights=ScoringWeights(category=50, priority=50, custom=0),
    ),
)

# Used when a configuration file fails validation: no rules, strict thresholds
MINIMAL_CONFIG = ClassificationConfig(
    version="2.0.0",
    min_confidence=0.7,
    max_categories=3,
)
