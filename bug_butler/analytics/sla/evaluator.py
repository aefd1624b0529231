"""SLA evaluator: applies ordered rules to issues and groups violations into buckets."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence
from datetime import datetime

import pytz

from bug_butler.core.models import BucketGroup, IssueRecord, SLARule

from .buckets import add_to_bucket, sort_buckets, violation_summary
from .matcher import matches, violates

logger = logging.getLogger(__name__)


class SLAEvaluator:
    """Evaluate issues against SLA rules in configured order.

    The first rule whose priority/status filters match an issue decides its
    fate. If that rule's age limit is exceeded the issue lands in the rule's
    bucket; otherwise the issue is compliant and later rules are not tried,
    even a catch-all with a tighter limit.
    """

    def __init__(self, rules: Sequence[SLARule]):
        self.rules = list(rules)

    def evaluate(self, issues: Sequence[IssueRecord], *, now: datetime | None = None) -> BucketGroup:
        now = now or datetime.now(tz=pytz.UTC)
        group = BucketGroup()

        logger.debug("Evaluating %d issues against %d SLA rules", len(issues), len(self.rules))
        logger.debug("Issue distribution by priority: %s", dict(Counter(i.priority for i in issues)))
        logger.debug("Issue distribution by status: %s", dict(Counter(i.status for i in issues)))

        violations = 0
        for issue in issues:
            rule = self._first_match(issue)
            if rule is None:
                logger.debug(
                    "%s is compliant with all SLA rules (priority=%s status=%s age=%.2fd)",
                    issue.key,
                    issue.priority,
                    issue.status,
                    issue.age_days_at(now),
                )
                continue
            if violates(rule, issue, now=now):
                logger.debug(
                    "%s violates rule %r (age=%.2fd max=%.2fd)",
                    issue.key,
                    rule.name,
                    issue.age_days_at(now),
                    rule.max_age_days,
                )
                add_to_bucket(group, rule.bucket, rule.severity, issue)
                violations += 1
            else:
                logger.debug(
                    "%s matches rule %r but is within SLA (age=%.2fd max=%.2fd)",
                    issue.key,
                    rule.name,
                    issue.age_days_at(now),
                    rule.max_age_days,
                )

        sort_buckets(group)
        logger.debug(
            "SLA evaluation complete: %d issues, %d violations, %d buckets",
            len(issues),
            violations,
            len(group.buckets),
        )
        return group

    def _first_match(self, issue: IssueRecord) -> SLARule | None:
        for rule in self.rules:
            if matches(rule, issue):
                return rule
        return None

    def summary(self, group: BucketGroup) -> dict[str, int]:
        return violation_summary(group)


def evaluate(
    rules: Sequence[SLARule], issues: Sequence[IssueRecord], *, now: datetime | None = None
) -> BucketGroup:
    return SLAEvaluator(rules).evaluate(issues, now=now)
