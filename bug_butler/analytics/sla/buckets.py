"""Bucket grouping for SLA violations."""

from __future__ import annotations

from bug_butler.core.models import Bucket, BucketGroup, IssueRecord


def add_to_bucket(group: BucketGroup, bucket_name: str, severity: int, issue: IssueRecord) -> Bucket:
    # Severity is fixed by whichever call creates the bucket
    bucket = group.get(bucket_name)
    if bucket is None:
        bucket = Bucket(name=bucket_name, severity=severity)
        group.buckets.append(bucket)
    bucket.issues.append(issue)
    return bucket


def sort_buckets(group: BucketGroup) -> BucketGroup:
    """Order buckets by ascending severity; ties keep creation order."""
    group.buckets.sort(key=lambda b: b.severity)
    return group


def violation_summary(group: BucketGroup) -> dict[str, int]:
    return {bucket.name: len(bucket.issues) for bucket in group.buckets}
