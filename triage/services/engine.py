"""Classification engine: cached per-issue classification and batch ranking.

One engine instance owns its configuration, its result cache and its running
performance counters.  Single-issue classification is synchronous apart from
the optional config lookup for a repository context; batches fan out over a
bounded asyncio worker pool.
"""

import inspect
import logging
import re
import time
from collections import Counter
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone

from triage.models.classification import (
    DEFAULT_CATEGORY,
    IssueClassification,
    IssueMetadata,
    Priority,
    ProcessingMetadata,
)
from triage.models.config import ClassificationConfig
from triage.models.issue import Issue, RepositoryContext
from triage.models.task import (
    BatchError,
    BatchResult,
    EngineMetrics,
    PerformanceMetrics,
    QualityMetrics,
    TaskScore,
    TopTasksResult,
)
from triage.services.cache import TTLCache
from triage.services.config_loader import ConfigLoader
from triage.services.matcher import DEFAULT_RULE_TIME_BUDGET_MS
from triage.services.priority import estimate_priority, priority_confidence
from triage.services.resolver import Resolution, resolve_classifications
from triage.services.scoring import algorithm_version, calculate_score, round_half_up
from triage.services.worker_pool import chunked, run_bounded

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], Awaitable[None] | None]

_REPRO_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (r"steps to reproduce", r"how to reproduce", r"reproduce", r"repro")
]
_EXPECTED_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (r"expected", r"should", r"supposed to", r"intended")
]


def has_code_blocks(body: str) -> bool:
    return "```" in body or "`" in body or "<code>" in body


def has_steps_to_reproduce(body: str) -> bool:
    return any(p.search(body) for p in _REPRO_PATTERNS)


def has_expected_behavior(body: str) -> bool:
    return any(p.search(body) for p in _EXPECTED_PATTERNS)


def build_metadata(
    issue: Issue,
    repository_context: RepositoryContext | None = None,
    resolution: Resolution | None = None,
) -> IssueMetadata:
    """Describe the shape of an issue's text; absent fields degrade to zero/False."""
    body = issue.body or ""
    processing = ProcessingMetadata()
    if resolution is not None:
        processing = ProcessingMetadata(
            rules_applied=resolution.rules_applied,
            rules_matched=resolution.rules_matched,
            confidence_adjustments=resolution.adjustments,
        )
    return IssueMetadata(
        title_length=len(issue.title),
        body_length=len(body),
        has_code_blocks=has_code_blocks(body),
        has_steps_to_reproduce=has_steps_to_reproduce(body),
        has_expected_behavior=has_expected_behavior(body),
        label_count=len(issue.labels),
        existing_labels=list(issue.labels),
        repository_context=repository_context,
        processing_metadata=processing,
    )


def result_cache_key(
    issue: Issue, repository_context: RepositoryContext | None = None
) -> str:
    key = f"issue:{issue.id}"
    if repository_context is not None:
        key += f":{repository_context.slug}"
    return key


@dataclass
class _Counters:
    total_processed: int = 0
    total_cache_hits: int = 0
    total_processing_time: float = 0.0  # ms


@dataclass
class _BatchItem:
    task: TaskScore
    classification: IssueClassification
    elapsed_ms: float
    error: BatchError | None = None


class ClassificationEngine:
    """Classifies, scores and ranks issues under one configuration."""

    def __init__(
        self,
        config: ClassificationConfig,
        *,
        config_loader: ConfigLoader | None = None,
        cache: TTLCache | None = None,
        rule_time_budget_ms: float = DEFAULT_RULE_TIME_BUDGET_MS,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self.config = config
        self._config_loader = config_loader
        if cache is None:
            caching = config.performance.caching
            cache = TTLCache(
                ttl=caching.ttl, max_size=caching.max_size, evict_expired=True
            )
        self._cache = cache
        self._rule_time_budget_ms = rule_time_budget_ms
        self._now = now or (lambda: datetime.now(timezone.utc))
        self._counters = _Counters()

    # ------------------------------------------------------------------
    # Single issue
    # ------------------------------------------------------------------

    async def classify_issue(
        self,
        issue: Issue,
        repository_context: RepositoryContext | None = None,
    ) -> IssueClassification:
        """Classify one issue, serving a fresh cached result when available."""
        started = time.perf_counter()
        caching = self.config.performance.caching.enabled
        key = result_cache_key(issue, repository_context)

        if caching:
            cached: IssueClassification | None = self._cache.get(key)
            if cached is not None:
                elapsed = (time.perf_counter() - started) * 1000
                self._record(elapsed, cache_hit=True)
                return cached.model_copy(
                    update={"cache_hit": True, "processing_time_ms": elapsed},
                    deep=True,
                )

        config = await self._effective_config(repository_context)
        classification = self._classify(issue, config, repository_context)
        elapsed = (time.perf_counter() - started) * 1000
        classification.processing_time_ms = elapsed

        if caching:
            self._cache.set(key, classification.model_copy(deep=True))
        self._record(elapsed, cache_hit=False)
        return classification

    async def _effective_config(
        self, repository_context: RepositoryContext | None
    ) -> ClassificationConfig:
        if repository_context is None or self._config_loader is None:
            return self.config
        result = await self._config_loader.load_config(repository_context)
        for error in result.errors:
            logger.warning("Config for %s: %s", repository_context.slug, error)
        return result.config

    def _classify(
        self,
        issue: Issue,
        config: ClassificationConfig,
        repository_context: RepositoryContext | None,
    ) -> IssueClassification:
        resolution = resolve_classifications(
            issue, config, rule_time_budget_ms=self._rule_time_budget_ms
        )
        matched = resolution.matched
        priority = estimate_priority(issue, matched, config, now=self._now())
        tiers = config.scoring_thresholds.confidence_thresholds
        score, breakdown = calculate_score(
            resolution.primary_category, priority, config
        )

        return IssueClassification(
            issue_id=issue.id,
            issue_number=issue.number,
            primary_category=resolution.primary_category,
            primary_confidence=resolution.primary_confidence,
            classifications=resolution.classifications,
            estimated_priority=priority,
            priority_confidence=priority_confidence(
                matched, tiers.priority_confidence_multiplier
            ),
            score=score,
            score_breakdown=breakdown,
            metadata=build_metadata(issue, repository_context, resolution),
            config_version=config.version,
            algorithm_version=algorithm_version(config),
        )

    def _default_classification(self, issue: Issue) -> IssueClassification:
        """Stand-in result for an issue whose classification raised."""
        fallback = (
            self.config.priority_estimation.fallback_priority
            if self.config.priority_estimation is not None
            else Priority.LOW
        )
        score, breakdown = calculate_score(DEFAULT_CATEGORY, fallback, self.config)
        return IssueClassification(
            issue_id=issue.id,
            issue_number=issue.number,
            estimated_priority=fallback,
            score=score,
            score_breakdown=breakdown,
            metadata=build_metadata(issue),
            config_version=self.config.version,
            algorithm_version=algorithm_version(self.config),
        )

    def calculate_task_score(
        self, issue: Issue, classification: IssueClassification
    ) -> TaskScore:
        """Flatten an issue and its classification into a dashboard task."""
        return TaskScore(
            issue_number=issue.number,
            issue_id=issue.id,
            title=issue.title,
            body=issue.body or "",
            score=classification.score,
            priority=classification.estimated_priority,
            category=classification.primary_category,
            confidence=round_half_up(classification.primary_confidence, 2),
            reasons=[r for c in classification.classifications for r in c.reasons],
            labels=list(issue.labels),
            state=issue.state,
            created_at=issue.created_at,
            updated_at=issue.updated_at,
            url=issue.html_url or "",
            score_breakdown=classification.score_breakdown,
        )

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------

    async def _classify_for_batch(
        self, issue: Issue, repository_context: RepositoryContext | None
    ) -> _BatchItem:
        started = time.perf_counter()
        error = None
        try:
            classification = await self.classify_issue(issue, repository_context)
        except Exception as e:
            logger.exception("Classification failed for issue #%d", issue.number)
            classification = self._default_classification(issue)
            error = BatchError(issue_id=issue.id, error=str(e))
        elapsed = (time.perf_counter() - started) * 1000
        return _BatchItem(
            task=self.calculate_task_score(issue, classification),
            classification=classification,
            elapsed_ms=elapsed,
            error=error,
        )

    async def classify_issues_batch(
        self,
        issues: Sequence[Issue],
        repository_context: RepositoryContext | None = None,
        *,
        batch_size: int | None = None,
        parallelism: int | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> BatchResult:
        """Classify many issues and aggregate score, quality and timing metrics.

        Issues are processed in chunks of ``batch_size``; each chunk runs on
        ``parallelism`` workers.  ``on_progress(processed, total)`` fires
        after every chunk.  Tasks come back in input order.
        """
        started = time.perf_counter()
        settings = self.config.performance.batch_processing
        size = batch_size or settings.batch_size
        workers = parallelism or settings.parallelism
        if not settings.enabled and batch_size is None and parallelism is None:
            size, workers = max(1, len(issues)), 1

        items: list[_BatchItem] = []
        total = len(issues)

        for chunk in chunked(issues, size):
            items.extend(
                await run_bounded(
                    chunk,
                    lambda issue: self._classify_for_batch(issue, repository_context),
                    workers,
                )
            )
            if on_progress is not None:
                outcome = on_progress(len(items), total)
                if inspect.isawaitable(outcome):
                    await outcome

        elapsed_ms = (time.perf_counter() - started) * 1000
        tasks = [item.task for item in items]
        errors = [item.error for item in items if item.error is not None]

        average_score = (
            round_half_up(sum(t.score for t in tasks) / len(tasks), 1) if tasks else 0.0
        )
        logger.info(
            "Classified %d issues in %.1fms (%d failed)", total, elapsed_ms, len(errors)
        )

        return BatchResult(
            tasks=tasks,
            total_analyzed=total,
            average_score=average_score,
            processing_time_ms=elapsed_ms,
            cache_hit_rate=self.get_performance_metrics().cache_hit_rate,
            performance_metrics=self._performance_metrics(items, elapsed_ms),
            quality_metrics=self._quality_metrics(items),
            errors=errors,
        )

    @staticmethod
    def _performance_metrics(
        items: list[_BatchItem], elapsed_ms: float
    ) -> PerformanceMetrics:
        if not items:
            return PerformanceMetrics()
        times = [item.elapsed_ms for item in items]
        elapsed_s = elapsed_ms / 1000
        return PerformanceMetrics(
            average_processing_time=sum(times) / len(times),
            min_processing_time=min(times),
            max_processing_time=max(times),
            throughput=len(items) / elapsed_s if elapsed_s > 0 else float(len(items)),
        )

    @staticmethod
    def _quality_metrics(items: list[_BatchItem]) -> QualityMetrics:
        if not items:
            return QualityMetrics()
        classifications = [item.classification for item in items]
        return QualityMetrics(
            average_confidence=sum(c.primary_confidence for c in classifications)
            / len(classifications),
            category_distribution=dict(
                Counter(c.primary_category.value for c in classifications)
            ),
            priority_distribution=dict(
                Counter(c.estimated_priority.value for c in classifications)
            ),
        )

    async def get_top_tasks(
        self,
        issues: Sequence[Issue],
        limit: int = 3,
        repository_context: RepositoryContext | None = None,
    ) -> TopTasksResult:
        """Rank open issues by score and keep the best *limit*."""
        started = time.perf_counter()
        open_issues = [issue for issue in issues if issue.state == "open"]
        batch = await self.classify_issues_batch(open_issues, repository_context)

        ranked = sorted(batch.tasks, key=lambda t: t.score, reverse=True)
        return TopTasksResult(
            tasks=ranked[:limit],
            total_analyzed=len(open_issues),
            average_score=batch.average_score,
            processing_time_ms=(time.perf_counter() - started) * 1000,
        )

    # ------------------------------------------------------------------
    # Cache and counters
    # ------------------------------------------------------------------

    def _record(self, elapsed_ms: float, *, cache_hit: bool) -> None:
        self._counters.total_processed += 1
        self._counters.total_processing_time += elapsed_ms
        if cache_hit:
            self._counters.total_cache_hits += 1

    def get_performance_metrics(self) -> EngineMetrics:
        c = self._counters
        processed = c.total_processed
        return EngineMetrics(
            total_processed=processed,
            total_cache_hits=c.total_cache_hits,
            total_processing_time=c.total_processing_time,
            average_processing_time=c.total_processing_time / processed
            if processed
            else 0.0,
            cache_hit_rate=c.total_cache_hits / processed if processed else 0.0,
            cache_size=len(self._cache),
        )

    def clear_cache(self) -> None:
        """Drop every cached result and reset the performance counters."""
        self._cache.clear()
        self._counters = _Counters()

    def cleanup_expired_cache(self) -> int:
        removed = self._cache.cleanup_expired()
        if removed:
            logger.info("Evicted %d expired classification results", removed)
        return removed


async def create_engine(
    config_loader: ConfigLoader,
    repository_context: RepositoryContext | None = None,
    profile_id: str | None = None,
    **engine_kwargs,
) -> ClassificationEngine:
    """Build an engine around the effective config for a repository/profile."""
    result = await config_loader.load_config(repository_context, profile_id)
    for warning in result.warnings:
        logger.warning("Config: %s", warning)
    return ClassificationEngine(
        result.config, config_loader=config_loader, **engine_kwargs
    )
