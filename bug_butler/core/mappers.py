"""Mapping raw Jira issue JSON into IssueRecord instances."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime
from typing import Any

import pandas as pd

from .config import FIELD_IDS, UNKNOWN
from .models import IssueRecord

logger = logging.getLogger(__name__)

FRAME_COLUMNS = (
    "key",
    "priority",
    "issuetype",
    "created",
    "resolution",
    "resolution_date",
    "sprint_id",
    "sprint_name",
    "story_points",
    "is_bug",
)


def parse_dt(val) -> datetime | None:
    if not val:
        return None
    ts = pd.to_datetime(val, utc=True, errors="coerce")
    if ts is None or pd.isna(ts):
        return None
    return ts.to_pydatetime()


def _name_of(value: Any) -> str:
    if isinstance(value, dict):
        return value.get("name") or ""
    return ""


def extract_sprint(value: Any) -> tuple[str, str]:
    """Return ``(sprint_id, sprint_name)`` of the first sprint in a sprint field.

    Jira returns the sprint custom field as a list of sprint objects; the first
    entry is treated as the issue's sprint. Anything else yields empty strings.
    """
    if not isinstance(value, list) or not value:
        return "", ""
    sprint = value[0]
    if not isinstance(sprint, dict):
        return "", ""
    raw_id = sprint.get("id")
    if isinstance(raw_id, bool) or raw_id is None:
        sprint_id = ""
    elif isinstance(raw_id, (int, float)):
        sprint_id = str(int(raw_id))
    else:
        sprint_id = str(raw_id).strip()
    name = sprint.get("name")
    return sprint_id, name if isinstance(name, str) else ""


def extract_story_points(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(value)


def map_issue(
    raw: dict[str, Any],
    base_url: str = "",
    sprint_field: str = FIELD_IDS["sprint"],
    story_points_field: str = FIELD_IDS["story_points"],
) -> IssueRecord:
    fields = raw.get("fields") or {}
    key = raw.get("key")
    if not key:
        raise ValueError("issue payload has no key")
    created = parse_dt(fields.get("created"))
    if created is None:
        raise ValueError(f"issue {key} has no created timestamp")
    updated = parse_dt(fields.get("updated")) or created

    sprint_id, sprint_name = extract_sprint(fields.get(sprint_field))
    if sprint_field not in fields:
        logger.debug("Sprint field %s not present on %s", sprint_field, key)

    return IssueRecord(
        key=key,
        summary=fields.get("summary") or "",
        priority=_name_of(fields.get("priority")) or UNKNOWN,
        status=_name_of(fields.get("status")) or UNKNOWN,
        issuetype=_name_of(fields.get("issuetype")) or UNKNOWN,
        created=created,
        updated=updated,
        resolution=_name_of(fields.get("resolution")),
        resolution_date=parse_dt(fields.get("resolutiondate")),
        sprint_id=sprint_id,
        sprint_name=sprint_name,
        story_points=extract_story_points(fields.get(story_points_field)),
        base_url=base_url,
    )


def map_issues(raw_issues: Iterable[dict[str, Any]], base_url: str = "", **field_ids: str) -> list[IssueRecord]:
    """Map every raw issue, logging and skipping the ones that cannot be mapped."""
    out: list[IssueRecord] = []
    for raw in raw_issues:
        try:
            out.append(map_issue(raw, base_url, **field_ids))
        except ValueError as exc:
            logger.warning("Failed to map issue %s: %s", raw.get("key"), exc)
    return out


def issues_to_dataframe(issues: Iterable[IssueRecord]) -> pd.DataFrame:
    rows = [
        {
            "key": i.key,
            "priority": i.priority,
            "issuetype": i.issuetype,
            "created": i.created,
            "resolution": i.resolution,
            "resolution_date": i.resolution_date,
            "sprint_id": i.sprint_id,
            "sprint_name": i.sprint_name,
            "story_points": i.story_points,
            "is_bug": i.is_bug,
        }
        for i in issues
    ]
    df = pd.DataFrame(rows, columns=list(FRAME_COLUMNS))
    df["created"] = pd.to_datetime(df["created"], utc=True)
    df["resolution_date"] = pd.to_datetime(df["resolution_date"], utc=True)
    df["resolution"] = df["resolution"].fillna("")
    df["story_points"] = pd.to_numeric(df["story_points"], errors="coerce").fillna(0.0)
    df["is_bug"] = df["is_bug"].astype(bool)
    return df
