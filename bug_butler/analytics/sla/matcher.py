"""Rule matching predicates (pure functions)."""

from __future__ import annotations

from datetime import datetime

from bug_butler.core.models import IssueRecord, SLARule


def matches(rule: SLARule, issue: IssueRecord) -> bool:
    """True when the issue satisfies the rule's priority and status filters.

    Empty filters match anything, so a rule with neither acts as a catch-all.
    Statuses are OR-ed together.
    """
    if rule.priority and rule.priority != issue.priority:
        return False
    if rule.statuses and issue.status not in rule.statuses:
        return False
    return True


def violates(rule: SLARule, issue: IssueRecord, *, now: datetime | None = None) -> bool:
    """True when the issue matches the rule and is strictly older than its limit."""
    if not matches(rule, issue):
        return False
    age = issue.age_days if now is None else issue.age_days_at(now)
    return age > rule.max_age_days
