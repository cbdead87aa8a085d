"""Rule matcher — scores one classification rule against one issue."""

import logging
import time

from triage.models.classification import CategoryClassification
from triage.models.config import ClassificationRule, KeywordScores
from triage.models.issue import Issue
from triage.services.patterns import InvalidPatternError, compile_rule_pattern

logger = logging.getLogger(__name__)

# Rules slower than this are reported; ``re`` matching cannot be interrupted
DEFAULT_RULE_TIME_BUDGET_MS = 50.0


def _pattern_matches(pattern: str, text: str, rule_id: str) -> bool:
    try:
        return compile_rule_pattern(pattern).search(text) is not None
    except InvalidPatternError as e:
        logger.warning("Skipping pattern in rule %s: %s", rule_id, e)
        return False


def apply_rule(
    issue: Issue,
    rule: ClassificationRule,
    scores: KeywordScores | None = None,
    *,
    time_budget_ms: float = DEFAULT_RULE_TIME_BUDGET_MS,
) -> CategoryClassification:
    """Evaluate *rule* against *issue* and return a confidence-scored candidate.

    Each matched condition adds a fixed amount to a raw score; the final
    confidence is ``min(1.0, raw * rule.weight)``.  Any exclude keyword
    found in the title or body zeroes the rule before anything else is
    checked.  Invalid patterns are logged and skipped.
    """
    scores = scores or KeywordScores()
    started = time.perf_counter()
    conditions = rule.conditions

    title = issue.title.lower()
    body = (issue.body or "").lower()
    labels = issue.lowered_labels

    for keyword in conditions.exclude_keywords:
        kw = keyword.lower()
        if kw in title or kw in body:
            return CategoryClassification(
                category=rule.category,
                confidence=0.0,
                reasons=[f'Excluded by keyword: "{keyword}"'],
                keywords=[],
                rule_id=rule.id,
                rule_name=rule.name,
            )

    raw = 0.0
    reasons: list[str] = []
    matched: list[str] = []

    for keyword in conditions.title_keywords:
        if keyword.lower() in title:
            raw += scores.title_keyword
            matched.append(keyword)
            reasons.append(f'Title contains keyword: "{keyword}"')

    for keyword in conditions.body_keywords:
        if keyword.lower() in body:
            raw += scores.body_keyword
            matched.append(keyword)
            reasons.append(f'Body contains keyword: "{keyword}"')

    for label_pattern in conditions.labels:
        needle = label_pattern.lower()
        if any(needle in label for label in labels):
            raw += scores.label_match
            reasons.append(f'Has matching label: "{label_pattern}"')

    for pattern in conditions.title_patterns:
        if _pattern_matches(pattern, title, rule.id):
            raw += scores.title_pattern
            reasons.append(f"Title matches pattern: {pattern}")

    for pattern in conditions.body_patterns:
        if _pattern_matches(pattern, body, rule.id):
            raw += scores.body_pattern
            reasons.append(f"Body matches pattern: {pattern}")

    elapsed_ms = (time.perf_counter() - started) * 1000
    if elapsed_ms > time_budget_ms:
        logger.warning(
            "Rule %s took %.1fms on issue #%d (budget %.1fms)",
            rule.id,
            elapsed_ms,
            issue.number,
            time_budget_ms,
        )

    return CategoryClassification(
        category=rule.category,
        confidence=min(1.0, raw * rule.weight),
        reasons=reasons,
        keywords=matched,
        rule_id=rule.id,
        rule_name=rule.name,
    )
