"""Tests for the rule matcher — per-rule confidence scoring."""

import logging

import pytest

from triage.models.classification import Category
from triage.models.config import KeywordScores
from triage.services.matcher import apply_rule
from triage.tests.conftest import make_issue, make_rule


def test_single_title_keyword_is_weighted(bug_rule):
    issue = make_issue(title="Login error on submit")
    result = apply_rule(issue, bug_rule)

    assert result.category == Category.BUG
    assert result.confidence == pytest.approx(0.3 * 0.9)
    assert result.reasons == ['Title contains keyword: "error"']
    assert result.keywords == ["error"]
    assert result.rule_id == "bug-detection"
    assert result.rule_name == "Bug Detection"


def test_all_condition_kinds_accumulate_and_cap_at_one(bug_rule):
    issue = make_issue(
        title="App crashes on startup",
        body="Stack trace: NullPointerException",
        labels=["bug"],
    )
    result = apply_rule(issue, bug_rule)

    assert result.confidence == 1.0
    assert result.reasons == [
        'Title contains keyword: "crash"',
        'Body contains keyword: "stack trace"',
        'Body contains keyword: "exception"',
        'Has matching label: "bug"',
        r"Title matches pattern: /\bcrash(es)?\b/i",
    ]
    assert result.keywords == ["crash", "stack trace", "exception"]


def test_label_matches_by_substring(bug_rule):
    issue = make_issue(title="Something odd", labels=["Type: Bug"])
    result = apply_rule(issue, bug_rule)
    assert result.confidence == pytest.approx(0.4 * 0.9)
    assert result.reasons == ['Has matching label: "bug"']


def test_keyword_matching_ignores_case():
    rule = make_rule("r", Category.DOCUMENTATION, title_keywords=["README"])
    result = apply_rule(make_issue(title="Update the readme"), rule)
    assert result.confidence == pytest.approx(0.3)


def test_exclude_keyword_short_circuits(feature_rule):
    issue = make_issue(
        title="Add feature support",
        body="Closing as WONTFIX",
        labels=["feature"],
    )
    result = apply_rule(issue, feature_rule)

    assert result.confidence == 0.0
    assert result.reasons == ['Excluded by keyword: "wontfix"']
    assert result.keywords == []
    assert result.rule_id == "feature-request"


def test_no_match_yields_zero_confidence(bug_rule):
    result = apply_rule(make_issue(title="Nice weather", body=None), bug_rule)
    assert result.confidence == 0.0
    assert result.reasons == []


def test_custom_keyword_scores():
    rule = make_rule("r", Category.TEST, body_keywords=["flaky"])
    scores = KeywordScores(body_keyword=0.5)
    result = apply_rule(make_issue(body="A flaky test"), rule, scores)
    assert result.confidence == pytest.approx(0.5)


def test_invalid_pattern_is_skipped_and_logged(caplog):
    rule = make_rule(
        "broken",
        Category.BUG,
        title_keywords=["bug"],
        title_patterns=["/(unclosed/i"],
    )
    with caplog.at_level(logging.WARNING, logger="triage.services.matcher"):
        result = apply_rule(make_issue(title="bug in parser"), rule)

    assert result.confidence == pytest.approx(0.3)
    assert "Skipping pattern in rule broken" in caplog.text


def test_slow_rule_is_reported(bug_rule, caplog):
    with caplog.at_level(logging.WARNING, logger="triage.services.matcher"):
        apply_rule(make_issue(title="bug"), bug_rule, time_budget_ms=-1)
    assert "Rule bug-detection took" in caplog.text
