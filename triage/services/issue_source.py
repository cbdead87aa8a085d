"""Open issues for a repository, fetched from the GitHub REST API.

Results are cached for 5 minutes.  When GitHub is unreachable the last
good result is served (``source="cache"``); with nothing cached the result
is empty and tagged ``source="fallback"``.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import ValidationError

from triage.config import get_settings
from triage.models.issue import Issue
from triage.services.cache import TTLCache
from triage.services.http_client import get_shared_client, github_headers

logger = logging.getLogger(__name__)

IssueSource = Literal["github_api", "cache", "fallback"]

PER_PAGE = 100
MAX_PAGES = 10

_cache = TTLCache(ttl=300, max_size=10)


@dataclass
class IssueFetchResult:
    issues: list[Issue] = field(default_factory=list)
    source: IssueSource = "github_api"
    success: bool = True
    error: str | None = None


def _parse_issues(items: list[dict[str, Any]]) -> list[Issue]:
    """Convert REST payloads to Issues, dropping pull requests and bad rows."""
    issues: list[Issue] = []
    for item in items:
        # The Issues API includes PRs
        if "pull_request" in item:
            continue
        try:
            issues.append(Issue.model_validate(item))
        except ValidationError as e:
            logger.warning("Skipping malformed issue %s: %s", item.get("number"), e)
    return issues


async def _fetch_pages(repo: str) -> list[dict[str, Any]] | None:
    """Page through open issues. None if the first page fails.

    Partial results from later-page failures are returned as-is.
    """
    client = get_shared_client()
    headers = github_headers()
    url = f"https://api.github.com/repos/{repo}/issues"
    items: list[dict[str, Any]] = []

    for page in range(1, MAX_PAGES + 1):
        params = {
            "state": "open",
            "sort": "created",
            "direction": "desc",
            "per_page": str(PER_PAGE),
            "page": str(page),
        }
        try:
            resp = await client.get(url, headers=headers, params=params)
            if resp.status_code != 200:
                logger.warning(
                    "Issues API returned %d for %s (page %d)",
                    resp.status_code,
                    repo,
                    page,
                )
                return None if page == 1 else items
            batch = resp.json()
        except Exception:
            logger.exception("Issues API error for %s (page %d)", repo, page)
            return None if page == 1 else items

        items.extend(batch)
        if len(batch) < PER_PAGE:
            break

    return items


async def fetch_open_issues(repo: str | None = None) -> IssueFetchResult:
    """Fetch open issues for *repo* (``owner/name``), defaulting to settings."""
    repo = repo or get_settings().github_repo
    if not repo:
        return IssueFetchResult(
            source="fallback", success=False, error="No repository configured"
        )

    cache_key = f"open_issues:{repo}"
    cached = _cache.get(cache_key)
    if cached is not None:
        return IssueFetchResult(issues=cached, source="cache")

    items = await _fetch_pages(repo)
    if items is None:
        error = f"Failed to fetch open issues for {repo}"
        stale = _cache.get_stale(cache_key)
        if stale is not None:
            logger.warning("%s, serving stale cache", error)
            return IssueFetchResult(
                issues=stale, source="cache", success=False, error=error
            )
        return IssueFetchResult(source="fallback", success=False, error=error)

    issues = _parse_issues(items)
    _cache.set(cache_key, issues)
    return IssueFetchResult(issues=issues, source="github_api")
