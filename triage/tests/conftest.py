"""Shared fixtures for issue triage tests."""

from datetime import datetime, timezone

import pytest

from triage.models.classification import Category, Priority
from triage.models.config import (
    ClassificationConfig,
    ClassificationRule,
    RuleConditions,
    ScoringAlgorithm,
    ScoringWeights,
)
from triage.models.issue import Issue
from triage.services.cache import TTLCache

NOW = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _reset_global_state():
    """Reset all module-level singletons and caches between tests."""
    yield

    # 1. Settings LRU cache
    from triage.config import get_settings

    get_settings.cache_clear()

    # 2. HTTP client singleton
    import triage.services.http_client as http_mod

    http_mod._client = None

    # 3. Open issue cache
    import triage.services.issue_source as source_mod

    source_mod._cache = TTLCache(ttl=300, max_size=10)

    # 4. Health check cache
    import triage.main as main_mod

    main_mod._health_cache = None


@pytest.fixture
def mock_settings(monkeypatch):
    """Provide a Settings object with safe test defaults."""
    from triage.config import Settings, get_settings

    test_settings = Settings(
        github_repo="testowner/testrepo",
        github_token="test-token",
        top_tasks_limit=3,
    )

    get_settings.cache_clear()
    monkeypatch.setattr("triage.config.get_settings", lambda: test_settings)

    # Patch modules that bind get_settings at import time
    for mod_path in [
        "triage.services.http_client",
        "triage.services.issue_source",
        "triage.routers.tasks",
        "triage.main",
    ]:
        monkeypatch.setattr(f"{mod_path}.get_settings", lambda: test_settings)

    return test_settings


def make_issue(
    number: int = 1,
    title: str = "Untitled",
    body: str | None = "",
    labels: list[str] | None = None,
    state: str = "open",
    created_at: datetime = NOW,
    **kwargs,
) -> Issue:
    return Issue(
        id=kwargs.pop("id", 1000 + number),
        number=number,
        title=title,
        body=body,
        labels=labels or [],
        state=state,
        created_at=created_at,
        updated_at=kwargs.pop("updated_at", created_at),
        html_url=kwargs.pop("html_url", f"https://github.com/o/r/issues/{number}"),
        **kwargs,
    )


def make_rule(
    rule_id: str,
    category: Category,
    weight: float = 1.0,
    enabled: bool = True,
    priority: Priority | None = None,
    **conditions,
) -> ClassificationRule:
    return ClassificationRule(
        id=rule_id,
        name=rule_id.replace("-", " ").title(),
        category=category,
        priority=priority,
        weight=weight,
        enabled=enabled,
        conditions=RuleConditions(**conditions),
    )


@pytest.fixture
def bug_rule() -> ClassificationRule:
    return make_rule(
        "bug-detection",
        Category.BUG,
        weight=0.9,
        title_keywords=["bug", "error", "crash"],
        body_keywords=["stack trace", "exception"],
        labels=["bug"],
        title_patterns=[r"/\bcrash(es)?\b/i"],
    )


@pytest.fixture
def security_rule() -> ClassificationRule:
    return make_rule(
        "security",
        Category.SECURITY,
        title_keywords=["security", "vulnerability", "xss"],
        body_keywords=["exploit", "attack"],
        labels=["security"],
    )


@pytest.fixture
def feature_rule() -> ClassificationRule:
    return make_rule(
        "feature-request",
        Category.FEATURE,
        weight=0.8,
        title_keywords=["feature", "add", "support"],
        body_keywords=["would like"],
        labels=["feature"],
        exclude_keywords=["wontfix"],
    )


@pytest.fixture
def config(bug_rule, security_rule, feature_rule) -> ClassificationConfig:
    """A small rule set with the standard 50/50 scoring algorithm."""
    return ClassificationConfig(
        min_confidence=0.3,
        max_categories=3,
        rules=[bug_rule, security_rule, feature_rule],
        scoring_algorithm=ScoringAlgorithm(
            weights=ScoringWeights(category=50, priority=50, recency=0, custom=0)
        ),
    )


class FakeClock:
    """Monotonic clock stand-in for TTLCache tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
