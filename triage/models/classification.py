"""Classification result models.

Field names are snake_case in Python and camelCase on the wire so dashboard
consumers keep reading ``primaryCategory``, ``scoreBreakdown`` and friends.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from triage.models.issue import RepositoryContext


class Category(str, Enum):
    """Fixed set of categories a rule can assign."""

    BUG = "bug"
    SECURITY = "security"
    FEATURE = "feature"
    ENHANCEMENT = "enhancement"
    PERFORMANCE = "performance"
    DOCUMENTATION = "documentation"
    QUESTION = "question"
    DUPLICATE = "duplicate"
    INVALID = "invalid"
    WONTFIX = "wontfix"
    HELP_WANTED = "help-wanted"
    GOOD_FIRST_ISSUE = "good-first-issue"
    REFACTOR = "refactor"
    TEST = "test"
    CI_CD = "ci-cd"
    DEPENDENCIES = "dependencies"


class Priority(str, Enum):
    """Priority levels, most to least urgent."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    BACKLOG = "backlog"


# Category assigned when nothing passes the confidence threshold
DEFAULT_CATEGORY = Category.QUESTION


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


class CategoryClassification(_CamelModel):
    """Outcome of applying one rule to one issue."""

    category: Category
    confidence: float = 0.0
    reasons: list[str] = []
    keywords: list[str] = []
    rule_id: str | None = None
    rule_name: str | None = None

    @field_validator("confidence")
    @classmethod
    def _clamp_confidence(cls, v: float) -> float:
        return clamp(v)


class ConfidenceAdjustment(_CamelModel):
    """A per-category threshold adjustment applied during resolution."""

    rule: str
    adjustment: float
    reason: str


class ProcessingMetadata(_CamelModel):
    rules_applied: int = 0
    rules_matched: int = 0
    confidence_adjustments: list[ConfidenceAdjustment] = []


class IssueMetadata(_CamelModel):
    """Text-shape facts about an issue, recorded alongside its classification."""

    title_length: int = 0
    body_length: int = 0
    has_code_blocks: bool = False
    has_steps_to_reproduce: bool = False
    has_expected_behavior: bool = False
    label_count: int = 0
    existing_labels: list[str] = []
    repository_context: RepositoryContext | None = None
    processing_metadata: ProcessingMetadata = Field(default_factory=ProcessingMetadata)


class ScoreBreakdown(_CamelModel):
    """Per-component contributions to the final score.

    ``recency`` is always 0.0 in the weighted scoring path; it stays in the
    record so consumers built against the older breakdown keep working.
    """

    category: float = 0.0
    priority: float = 0.0
    recency: float = 0.0
    custom: float = 0.0

    @property
    def total(self) -> float:
        return self.category + self.priority + self.recency + self.custom


class IssueClassification(_CamelModel):
    """Complete classification result for one issue."""

    issue_id: int
    issue_number: int
    primary_category: Category = DEFAULT_CATEGORY
    primary_confidence: float = 0.0
    classifications: list[CategoryClassification] = []
    estimated_priority: Priority = Priority.LOW
    priority_confidence: float = 0.0
    score: float = 0.0
    score_breakdown: ScoreBreakdown = Field(default_factory=ScoreBreakdown)
    metadata: IssueMetadata = Field(default_factory=IssueMetadata)
    processing_time_ms: float = 0.0
    cache_hit: bool = False
    config_version: str = ""
    algorithm_version: str = ""

    @field_validator("primary_confidence", "priority_confidence")
    @classmethod
    def _clamp_unit(cls, v: float) -> float:
        return clamp(v)

    @field_validator("score")
    @classmethod
    def _clamp_score(cls, v: float) -> float:
        return clamp(v, 0.0, 100.0)
