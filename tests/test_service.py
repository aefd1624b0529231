from datetime import UTC, datetime

from bug_butler.core.config import JiraSettings
from bug_butler.core.jira_client import JiraAPI
from bug_butler.core.service import IssueService


def _raw_issue(key, issuetype="Bug", sprint=None):
    return {
        "key": key,
        "fields": {
            "summary": f"Issue {key}",
            "created": "2025-01-05T10:00:00.000+0000",
            "updated": "2025-01-06T10:00:00.000+0000",
            "priority": {"name": "High"},
            "status": {"name": "Backlog"},
            "issuetype": {"name": issuetype},
            "customfield_10020": sprint,
            "customfield_10016": 2,
        },
    }


class DummyAPI(JiraAPI):
    def __init__(self, issues=None):
        self.server = "https://example.atlassian.net"
        self.issues = issues if issues is not None else [_raw_issue("TOOLS-1")]
        self.calls = []

    def verify_auth(self):
        return {"emailAddress": "bot@example.com"}

    def search_enhanced(self, jql, fields=None, page_size=100):
        self.calls.append((jql, fields))
        return self.issues


def _settings(**overrides):
    values = dict(
        base_url="https://example.atlassian.net",
        email="bot@example.com",
        api_token="token",
        project_keys=["TOOLS"],
    )
    values.update(overrides)
    return JiraSettings(**values)


def test_project_clause_single_and_multiple():
    assert IssueService(DummyAPI(), _settings()).build_project_clause() == "project = TOOLS"
    multi = IssueService(DummyAPI(), _settings(project_keys=["TOOLS", "CORE"]))
    assert multi.build_project_clause() == 'project in ("TOOLS", "CORE")'


def test_fetch_open_bugs_applies_additional_jql():
    api = DummyAPI()
    svc = IssueService(api, _settings(additional_jql="AND labels != noise"))
    bugs = svc.fetch_open_bugs()
    jql, fields = api.calls[0]
    assert jql == "project = TOOLS AND statusCategory != done AND type = Bug AND labels != noise ORDER BY updated DESC"
    assert "customfield_10020" in fields and "customfield_10016" in fields
    assert [b.key for b in bugs] == ["TOOLS-1"]
    assert bugs[0].base_url == "https://example.atlassian.net"


def test_fetch_bugs_between_formats_dates():
    api = DummyAPI()
    svc = IssueService(api, _settings())
    svc.fetch_bugs_between(datetime(2022, 6, 1, tzinfo=UTC), datetime(2025, 6, 16, tzinfo=UTC))
    jql, fields = api.calls[0]
    assert "created >= 2022-06-01 AND created < 2025-06-16" in jql
    assert "resolutiondate" in fields


def test_fetch_issues_by_sprints_skips_additional_jql_and_adds_board_filter():
    api = DummyAPI([_raw_issue("TOOLS-2", "Story", [{"id": 12, "name": "TOOLS Sprint 1"}])])
    svc = IssueService(api, _settings(additional_jql="AND labels != noise"))
    issues = svc.fetch_issues_by_sprints(["12", "13"], board_filter="component = UI")
    jql, _ = api.calls[0]
    assert jql == (
        "project = TOOLS AND sprint in (12, 13) AND statusCategory = done "
        "AND (component = UI) ORDER BY resolutiondate DESC"
    )
    assert issues[0].sprint_id == "12"
    assert issues[0].story_points == 2.0


def test_fetch_issues_by_sprints_without_ids_makes_no_call():
    api = DummyAPI()
    assert IssueService(api, _settings()).fetch_issues_by_sprints([]) == []
    assert api.calls == []
