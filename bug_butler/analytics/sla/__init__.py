"""SLA rule evaluation: matching, bucketing, and first-match-wins evaluation."""

from bug_butler.analytics.sla.buckets import add_to_bucket, sort_buckets, violation_summary
from bug_butler.analytics.sla.evaluator import SLAEvaluator, evaluate
from bug_butler.analytics.sla.matcher import matches, violates

__all__ = [
    "SLAEvaluator",
    "add_to_bucket",
    "evaluate",
    "matches",
    "sort_buckets",
    "violates",
    "violation_summary",
]
