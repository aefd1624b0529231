"""Jira API client wrapper (REST v3 + enhanced search pagination)."""

from __future__ import annotations

import logging
from typing import Any

from jira import JIRA, JIRAError

from .config import SEARCH_PAGE_SIZE

logger = logging.getLogger(__name__)


class JiraAPI:
    def __init__(self, server: str, email: str, token: str):
        self.server = server.rstrip("/")
        self.client = JIRA(
            basic_auth=(email, token), options={"server": self.server, "rest_api_version": "3"}
        )

    def verify_auth(self) -> dict[str, Any]:
        """Fetch the current user so bad credentials fail before any search."""
        try:
            me = self.client.myself()
        except JIRAError as exc:  # pragma: no cover - network error path
            raise RuntimeError(f"authentication failed (check email and API token): {exc}") from exc
        logger.debug("Authenticated with Jira at %s as %s", self.server, me.get("emailAddress"))
        return me

    def search_enhanced(
        self,
        jql: str,
        fields: list[str] | None = None,
        page_size: int = SEARCH_PAGE_SIZE,
    ) -> list[dict[str, Any]]:
        session = getattr(self.client, "_session", None)
        if session is None:
            raise RuntimeError("JIRA session unavailable")
        url = f"{self.server}/rest/api/3/search/jql"
        params = {"jql": jql, "maxResults": page_size}
        if fields:
            params["fields"] = ",".join(fields)
        out: list[dict[str, Any]] = []
        token = None
        page = 0
        while True:
            page += 1
            qp = dict(params)
            if token:
                qp["nextPageToken"] = token
            resp = session.get(url, params=qp)
            if resp.status_code >= 400:
                logger.error("Search request failed with status %s: %s", resp.status_code, resp.text[:500])
                raise RuntimeError(f"Enhanced search failed {resp.status_code}: {resp.text[:200]}")
            data = resp.json()
            issues = data.get("issues", [])
            out.extend(issues)
            logger.debug("Fetched page %d (%d issues)", page, len(issues))
            token = data.get("nextPageToken")
            if not token or data.get("isLast") is True:
                break
        return out
