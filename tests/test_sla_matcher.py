from datetime import UTC, datetime, timedelta

from bug_butler.analytics.sla.matcher import matches, violates
from bug_butler.core.models import IssueRecord, SLARule

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=UTC)


def _issue(priority="Critical", status="Backlog", age_days=1.0):
    updated = NOW - timedelta(days=age_days)
    return IssueRecord(
        key="BUG-1",
        summary="Crash on save",
        priority=priority,
        status=status,
        issuetype="Bug",
        created=updated,
        updated=updated,
    )


def test_empty_filters_match_everything():
    rule = SLARule(name="catch-all", max_age_days=5, bucket="REVIEW", severity=3)
    assert matches(rule, _issue())
    assert matches(rule, _issue(priority="Low", status="Needs Triage"))


def test_priority_filter():
    rule = SLARule(name="crit", priority="Critical", bucket="HIGH")
    assert matches(rule, _issue(priority="Critical"))
    assert not matches(rule, _issue(priority="High"))


def test_status_filter_is_or_of_statuses():
    rule = SLARule(name="triage", statuses=("Needs Triage", "Backlog"), bucket="HIGH")
    assert matches(rule, _issue(status="Backlog"))
    assert matches(rule, _issue(status="Needs Triage"))
    assert not matches(rule, _issue(status="In Progress"))


def test_unknown_priority_is_not_a_wildcard():
    rule = SLARule(name="crit", priority="Critical", bucket="HIGH")
    assert not matches(rule, _issue(priority="Unknown"))


def test_violates_uses_strict_inequality():
    rule = SLARule(name="crit", priority="Critical", max_age_days=3, bucket="HIGH")
    assert not violates(rule, _issue(age_days=3), now=NOW)
    assert violates(rule, _issue(age_days=3.01), now=NOW)
    assert not violates(rule, _issue(age_days=2), now=NOW)


def test_violates_requires_match():
    rule = SLARule(name="crit", priority="Critical", max_age_days=0, bucket="HIGH")
    assert not violates(rule, _issue(priority="Low", age_days=100), now=NOW)


def test_age_days_treats_naive_as_utc():
    issue = _issue(age_days=2)
    naive_now = NOW.replace(tzinfo=None)
    assert abs(issue.age_days_at(naive_now) - 2.0) < 1e-9
