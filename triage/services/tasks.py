"""Top tasks for the dashboard."""

import logging
import time
from collections import Counter
from collections.abc import Sequence
from datetime import datetime, timezone

from triage.models.classification import DEFAULT_CATEGORY, Priority
from triage.models.config import ClassificationConfig
from triage.models.issue import Issue
from triage.models.task import AnalysisMetrics, DashboardTasks, TaskScore
from triage.services.engine import ClassificationEngine
from triage.services.issue_source import fetch_open_issues
from triage.services.scoring import round_half_up

logger = logging.getLogger(__name__)


def fallback_recommendations(
    issues: Sequence[Issue],
    limit: int,
    config: ClassificationConfig,
    source: str = "fallback",
) -> DashboardTasks:
    """Newest open issues with a fixed decreasing score.

    Used when classification itself fails, so the dashboard still shows
    something actionable.
    """
    open_issues = [issue for issue in issues if issue.state == "open"]
    newest = sorted(open_issues, key=lambda i: i.created_at, reverse=True)[:limit]
    fallback = config.task_recommendation.fallback_score

    tasks = [
        TaskScore(
            issue_number=issue.number,
            issue_id=issue.id,
            title=issue.title,
            body=issue.body or "",
            score=max(0.0, fallback.base_score - index * fallback.score_decrement),
            priority=Priority.MEDIUM,
            category=DEFAULT_CATEGORY,
            confidence=0.5,
            reasons=["Newest open issue"],
            labels=list(issue.labels),
            state=issue.state,
            created_at=issue.created_at,
            updated_at=issue.updated_at,
            url=issue.html_url or "",
        )
        for index, issue in enumerate(newest)
    ]

    average = sum(t.score for t in tasks) / len(tasks) if tasks else 0.0
    return DashboardTasks(
        top_tasks=tasks,
        total_open_issues=len(open_issues),
        analysis_metrics=AnalysisMetrics(
            average_score=round_half_up(average, 1),
            categories_found=[DEFAULT_CATEGORY.value] if tasks else [],
            priority_distribution={Priority.MEDIUM.value: len(tasks)} if tasks else {},
        ),
        source=source,
        last_updated=datetime.now(timezone.utc),
    )


async def get_dashboard_tasks(
    engine: ClassificationEngine,
    limit: int = 3,
    repo: str | None = None,
) -> DashboardTasks:
    """Top *limit* open issues for the dashboard."""
    started = time.perf_counter()
    fetched = await fetch_open_issues(repo)
    if not fetched.success:
        logger.warning("Issue source degraded: %s", fetched.error)

    try:
        top = await engine.get_top_tasks(fetched.issues, limit)
    except Exception:
        logger.exception("Task ranking failed, using fallback recommendations")
        return fallback_recommendations(fetched.issues, limit, engine.config)

    categories = list(dict.fromkeys(t.category.value for t in top.tasks))
    priorities = Counter(t.priority.value for t in top.tasks)

    return DashboardTasks(
        top_tasks=top.tasks,
        total_open_issues=top.total_analyzed,
        analysis_metrics=AnalysisMetrics(
            average_score=top.average_score,
            processing_time_ms=(time.perf_counter() - started) * 1000,
            categories_found=categories,
            priority_distribution=dict(priorities),
        ),
        source=fetched.source,
        last_updated=datetime.now(timezone.utc),
    )
