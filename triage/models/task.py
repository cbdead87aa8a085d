"""Ranked task and batch result models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from triage.models.classification import Category, Priority, ScoreBreakdown


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TaskScore(_CamelModel):
    """One issue ranked for the top-tasks dashboard."""

    issue_number: int
    issue_id: int
    title: str
    body: str = ""
    score: float
    priority: Priority
    category: Category
    confidence: float
    reasons: list[str] = []
    labels: list[str] = []
    state: str = "open"
    created_at: datetime
    updated_at: datetime
    url: str = ""
    score_breakdown: ScoreBreakdown = Field(default_factory=ScoreBreakdown)


class PerformanceMetrics(_CamelModel):
    average_processing_time: float = 0.0
    min_processing_time: float = 0.0
    max_processing_time: float = 0.0
    throughput: float = 0.0  # items per second


class QualityMetrics(_CamelModel):
    average_confidence: float = 0.0
    category_distribution: dict[str, int] = {}
    priority_distribution: dict[str, int] = {}


class BatchError(_CamelModel):
    issue_id: int
    error: str


class BatchResult(_CamelModel):
    tasks: list[TaskScore] = []
    total_analyzed: int = 0
    average_score: float = 0.0
    processing_time_ms: float = 0.0
    cache_hit_rate: float = 0.0
    performance_metrics: PerformanceMetrics = Field(default_factory=PerformanceMetrics)
    quality_metrics: QualityMetrics = Field(default_factory=QualityMetrics)
    errors: list[BatchError] = []


class TopTasksResult(_CamelModel):
    tasks: list[TaskScore] = []
    total_analyzed: int = 0
    average_score: float = 0.0
    processing_time_ms: float = 0.0


class EngineMetrics(_CamelModel):
    """Running counters kept by an engine instance."""

    total_processed: int = 0
    total_cache_hits: int = 0
    total_processing_time: float = 0.0
    average_processing_time: float = 0.0
    cache_hit_rate: float = 0.0
    cache_size: int = 0


class AnalysisMetrics(_CamelModel):
    average_score: float = 0.0
    processing_time_ms: float = 0.0
    categories_found: list[str] = []
    priority_distribution: dict[str, int] = {}


class DashboardTasks(_CamelModel):
    """Top tasks payload served to the dashboard."""

    top_tasks: list[TaskScore] = []
    total_open_issues: int = 0
    analysis_metrics: AnalysisMetrics = Field(default_factory=AnalysisMetrics)
    source: str = "github_api"
    last_updated: datetime
