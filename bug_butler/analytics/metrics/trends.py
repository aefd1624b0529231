"""Monthly bug trend analysis: creation counts, backlog reconstruction, goal tracking."""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from datetime import datetime, timedelta

import pandas as pd
import pytz

from bug_butler.core.mappers import issues_to_dataframe
from bug_butler.core.models import IssueRecord, MonthlyBugStats, TrendStats, as_utc

logger = logging.getLogger(__name__)


def month_start(value: datetime) -> datetime:
    """Truncate ``value`` to the first instant of its calendar month in UTC."""
    value = as_utc(value)
    return pytz.UTC.localize(datetime(value.year, value.month, 1))


def next_month_start(month: datetime) -> datetime:
    month = month_start(month)
    if month.month == 12:
        return pytz.UTC.localize(datetime(month.year + 1, 1, 1))
    return pytz.UTC.localize(datetime(month.year, month.month + 1, 1))


def month_end(month: datetime) -> datetime:
    """Last representable instant of the month containing ``month``."""
    return next_month_start(month) - timedelta(microseconds=1)


def same_month_last_year(month: datetime) -> datetime:
    month = month_start(month)
    return pytz.UTC.localize(datetime(month.year - 1, month.month, 1))


def calculate_goal_target(last_year_count: int, reduction_percent: float) -> int:
    """Target count after reducing ``last_year_count`` by ``reduction_percent``.

    Halves round away from zero: 10 bugs with a 25% goal gives 8, not 7.
    """
    target = last_year_count - last_year_count * (reduction_percent / 100.0)
    return int(math.floor(target + 0.5))


def count_unresolved_at(frame: pd.DataFrame, instant: datetime) -> int:
    """Backlog size at ``instant``: created by then and not yet resolved.

    An issue counts as open when it has no resolution, or when its resolution
    timestamp is strictly after ``instant``. Resolving exactly at ``instant``
    removes it from the backlog.
    """
    if frame.empty:
        return 0
    resolved_later = frame["resolution_date"].notna() & (frame["resolution_date"] > instant)
    still_open = frame["resolution"].eq("") | resolved_later
    return int(((frame["created"] <= instant) & still_open).sum())


def count_resolved_between(frame: pd.DataFrame, start: datetime, end: datetime) -> int:
    if frame.empty:
        return 0
    dates = frame["resolution_date"]
    return int(((dates >= start) & (dates <= end)).sum())


class TrendAnalyzer:
    def __init__(self, reduction_goal: float, months_to_analyze: int):
        self.reduction_goal = reduction_goal
        self.months_to_analyze = months_to_analyze

    def analyze(self, issues: Sequence[IssueRecord], *, now: datetime | None = None) -> TrendStats:
        now = as_utc(now) if now is not None else datetime.now(tz=pytz.UTC)
        stats = TrendStats(reduction_goal=self.reduction_goal, months_to_analyze=self.months_to_analyze)
        if not issues:
            logger.debug("No issues to analyze")
            return stats

        frame = issues_to_dataframe(issues)
        months = [month_start(ts.to_pydatetime()) for ts in frame["created"]]
        frame["month"] = months

        previous_created = 0
        for month in sorted(set(months)):
            created_rows = frame[frame["month"] == month]
            created = len(created_rows)
            end = month_end(month)

            change_percent = 0.0
            if previous_created > 0:
                change_percent = (created - previous_created) / previous_created * 100

            by_priority = {str(p): int(c) for p, c in created_rows["priority"].value_counts().items()}
            stats.monthly_data.append(
                MonthlyBugStats(
                    month=month,
                    total_created=created,
                    total_resolved=count_resolved_between(frame, month, end),
                    total_unresolved=count_unresolved_at(frame, end),
                    net_change=created - previous_created,
                    change_percent=change_percent,
                    by_priority=by_priority,
                )
            )
            previous_created = created

        current_start = month_start(now)
        last_year_start = same_month_last_year(now)
        for entry in stats.monthly_data:
            if entry.month == current_start:
                stats.current_month = entry
            if entry.month == last_year_start:
                stats.last_year_same_month = entry

        if stats.current_month is not None and stats.last_year_same_month is not None:
            stats.goal_target = calculate_goal_target(
                stats.last_year_same_month.total_created, self.reduction_goal
            )
            stats.on_track = stats.current_month.total_created <= stats.goal_target

        logger.debug(
            "Trend analysis complete: %d months, current=%s last_year=%s target=%d on_track=%s",
            len(stats.monthly_data),
            stats.current_month is not None,
            stats.last_year_same_month is not None,
            stats.goal_target,
            stats.on_track,
        )
        return stats


def analyze_trends(
    issues: Sequence[IssueRecord],
    reduction_goal: float,
    months_to_analyze: int,
    *,
    now: datetime | None = None,
) -> TrendStats:
    return TrendAnalyzer(reduction_goal, months_to_analyze).analyze(issues, now=now)
