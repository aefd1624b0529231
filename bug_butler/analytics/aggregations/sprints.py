"""Sprint aggregations: sprint id extraction, name filtering, and bug density."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence

from bug_butler.core.mappers import issues_to_dataframe
from bug_butler.core.models import IssueRecord, SprintStats

logger = logging.getLogger(__name__)


def compile_sprint_name_filter(begins_with: str = "", pattern: str = "") -> re.Pattern[str] | None:
    """Build the sprint-name filter, or None when no filtering applies.

    ``pattern`` takes precedence over ``begins_with``. An invalid pattern is
    logged and disables filtering instead of failing the run.
    """
    if pattern:
        try:
            compiled = re.compile(pattern)
        except re.error as exc:
            logger.warning("Invalid sprint name pattern %r, ignoring filter: %s", pattern, exc)
            return None
        logger.debug("Filtering sprints by regex pattern %r", pattern)
        return compiled
    if begins_with:
        logger.debug("Filtering sprints by prefix %r", begins_with)
        return re.compile("^" + re.escape(begins_with))
    return None


def _name_allowed(name_filter: re.Pattern[str] | None, name: str) -> bool:
    return name_filter is None or name_filter.search(name) is not None


def extract_sprint_ids(issues: Iterable[IssueRecord]) -> list[str]:
    return sorted({issue.sprint_id for issue in issues if issue.sprint_id})


def extract_and_filter_sprints(
    issues: Iterable[IssueRecord],
    begins_with: str = "",
    pattern: str = "",
) -> list[str]:
    """Distinct sprint ids whose sprint name passes the configured filter."""
    sprint_names: dict[str, str] = {}
    for issue in issues:
        if issue.sprint_id:
            sprint_names[issue.sprint_id] = issue.sprint_name

    name_filter = compile_sprint_name_filter(begins_with, pattern)
    kept: list[str] = []
    for sprint_id, name in sprint_names.items():
        if _name_allowed(name_filter, name):
            kept.append(sprint_id)
        else:
            logger.debug("Excluding sprint %s (%r) due to name filter", sprint_id, name)

    logger.debug(
        "Sprint filtering complete: %d total, %d kept, %d excluded",
        len(sprint_names),
        len(kept),
        len(sprint_names) - len(kept),
    )
    return sorted(kept)


def calculate_sprint_stats(
    issues: Sequence[IssueRecord],
    begins_with: str = "",
    pattern: str = "",
) -> list[SprintStats]:
    """Per-sprint bug counts and story-point shares, ordered by sprint name.

    The name filter is applied again here because the sprint query can return
    issues that also belong to sprints outside the filter.
    """
    name_filter = compile_sprint_name_filter(begins_with, pattern)
    scoped = [i for i in issues if i.sprint_id and _name_allowed(name_filter, i.sprint_name)]
    if not scoped:
        return []

    frame = issues_to_dataframe(scoped)
    frame["bug_points"] = frame["story_points"].where(frame["is_bug"], 0.0)
    agg = (
        frame.groupby("sprint_id", sort=False)
        .agg(
            sprint_name=("sprint_name", "last"),
            bug_count=("is_bug", "sum"),
            total_count=("key", "count"),
            bug_story_points=("bug_points", "sum"),
            total_story_points=("story_points", "sum"),
        )
        .reset_index()
    )

    stats: list[SprintStats] = []
    for row in agg.itertuples(index=False):
        total = int(row.total_count)
        bugs = int(row.bug_count)
        bug_points = float(row.bug_story_points)
        total_points = float(row.total_story_points)
        stats.append(
            SprintStats(
                sprint_id=str(row.sprint_id),
                sprint_name=str(row.sprint_name),
                bug_count=bugs,
                other_count=total - bugs,
                total_count=total,
                bug_percentage=bugs / total * 100 if total > 0 else 0.0,
                bug_story_points=bug_points,
                total_story_points=total_points,
                points_percentage=bug_points / total_points * 100 if total_points > 0 else 0.0,
            )
        )
    stats.sort(key=lambda s: (s.sprint_name, s.sprint_id))
    return stats
