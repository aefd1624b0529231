"""Domain data models for tracked issues, SLA rules, and report structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

import pytz


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime (naive input is taken as UTC)."""
    if value.tzinfo is None:
        return pytz.UTC.localize(value)
    return value.astimezone(pytz.UTC)


@dataclass(slots=True, frozen=True)
class IssueRecord:
    key: str
    summary: str
    priority: str
    status: str
    issuetype: str
    created: datetime
    updated: datetime
    resolution: str = ""
    resolution_date: datetime | None = None
    sprint_id: str = ""
    sprint_name: str = ""
    story_points: float = 0.0
    base_url: str = ""

    @property
    def url(self) -> str:
        return f"{self.base_url.rstrip('/')}/browse/{self.key}"

    @property
    def is_bug(self) -> bool:
        return self.issuetype == "Bug"

    @property
    def age_days(self) -> float:
        """Days since the last update, measured against the current time."""
        return self.age_days_at(datetime.now(tz=pytz.UTC))

    def age_days_at(self, now: datetime) -> float:
        return (as_utc(now) - as_utc(self.updated)).total_seconds() / 86400.0


@dataclass(slots=True)
class SLARule:
    name: str
    priority: str = ""
    statuses: tuple[str, ...] = ()
    max_age_days: float = 0.0
    bucket: str = ""
    severity: int = 1


@dataclass(slots=True)
class Bucket:
    name: str
    severity: int
    issues: list[IssueRecord] = field(default_factory=list)


@dataclass(slots=True)
class BucketGroup:
    buckets: list[Bucket] = field(default_factory=list)

    def get(self, name: str) -> Bucket | None:
        for bucket in self.buckets:
            if bucket.name == name:
                return bucket
        return None

    @property
    def total_violations(self) -> int:
        return sum(len(b.issues) for b in self.buckets)


@dataclass(slots=True)
class MonthlyBugStats:
    month: datetime
    total_created: int
    total_resolved: int
    total_unresolved: int
    net_change: int
    change_percent: float
    by_priority: dict[str, int] = field(default_factory=dict)


@dataclass(slots=True)
class SprintStats:
    sprint_id: str
    sprint_name: str
    bug_count: int
    other_count: int
    total_count: int
    bug_percentage: float
    bug_story_points: float
    total_story_points: float
    points_percentage: float


@dataclass(slots=True)
class TrendStats:
    monthly_data: list[MonthlyBugStats] = field(default_factory=list)
    current_month: MonthlyBugStats | None = None
    last_year_same_month: MonthlyBugStats | None = None
    reduction_goal: float = 0.0
    goal_target: int = 0
    on_track: bool = False
    months_to_analyze: int = 0
    sprint_stats: list[SprintStats] = field(default_factory=list)
