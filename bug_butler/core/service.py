"""IssueService: builds JQL, fetches issues, and maps them into IssueRecords."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime

from .config import OPEN_BUG_FIELDS, SPRINT_ISSUE_FIELDS, TREND_BUG_FIELDS, JiraSettings
from .jira_client import JiraAPI
from .mappers import map_issues
from .models import IssueRecord

logger = logging.getLogger(__name__)


class IssueService:
    def __init__(self, api: JiraAPI, settings: JiraSettings):
        self.api = api
        self.settings = settings

    # ------------------ JQL Helpers ------------------
    def build_project_clause(self) -> str:
        keys = self.settings.project_keys
        if len(keys) == 1:
            return f"project = {keys[0]}"
        quoted = ", ".join(f'"{k}"' for k in keys)
        return f"project in ({quoted})"

    def _with_additional(self, jql: str) -> str:
        if self.settings.additional_jql:
            return f"{jql} {self.settings.additional_jql}"
        return jql

    def _fields(self, base: Sequence[str]) -> list[str]:
        return [*base, self.settings.sprint_field, self.settings.story_points_field]

    # ------------------ Fetch Methods ------------------
    def fetch_open_bugs(self) -> list[IssueRecord]:
        """Fetch every unresolved bug in the configured projects, most recently updated first."""
        jql = self._with_additional(f"{self.build_project_clause()} AND statusCategory != done AND type = Bug")
        jql += " ORDER BY updated DESC"
        return self._search(jql, self._fields(OPEN_BUG_FIELDS))

    def fetch_bugs_between(
        self,
        start: datetime,
        end: datetime,
    ) -> list[IssueRecord]:
        """Fetch all bugs created in ``[start, end)``, resolved or not.

        The trend analysis reconstructs the historical backlog, so resolved
        bugs are included and no status filter is applied.
        """
        start_str = start.strftime("%Y-%m-%d")
        end_str = end.strftime("%Y-%m-%d")
        jql = self._with_additional(
            f"{self.build_project_clause()} AND type = Bug AND created >= {start_str} AND created < {end_str}"
        )
        jql += " ORDER BY created DESC"
        return self._search(jql, self._fields(TREND_BUG_FIELDS))

    def fetch_issues_by_sprints(
        self,
        sprint_ids: Sequence[str],
        board_filter: str = "",
    ) -> list[IssueRecord]:
        """Fetch done issues of every type for the given sprints.

        ``additional_jql`` is deliberately not applied: it narrows the bug
        queries, and sprint density needs stories and tasks as well.
        """
        if not sprint_ids:
            return []
        sprint_list = ", ".join(sprint_ids)
        jql = f"{self.build_project_clause()} AND sprint in ({sprint_list}) AND statusCategory = done"
        if board_filter:
            jql += f" AND ({board_filter})"
        jql += " ORDER BY resolutiondate DESC"
        return self._search(jql, self._fields(SPRINT_ISSUE_FIELDS))

    # ------------------ Internal Helpers ------------------
    def _search(self, jql: str, fields: list[str]) -> list[IssueRecord]:
        logger.debug("Searching Jira: %s", jql)
        raw = self.api.search_enhanced(jql, fields=fields)
        issues = map_issues(
            raw,
            self.settings.base_url,
            sprint_field=self.settings.sprint_field,
            story_points_field=self.settings.story_points_field,
        )
        logger.debug("Mapped %d of %d fetched issues", len(issues), len(raw))
        return issues
