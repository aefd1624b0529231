from datetime import UTC, datetime

from bug_butler.core.mappers import extract_sprint, issues_to_dataframe, map_issue, map_issues


def _raw(**overrides):
    fields = {
        "summary": "Crash on save",
        "created": "2024-09-01T10:00:00.000+0200",
        "updated": "2024-09-02T10:00:00.000+0000",
        "priority": {"name": "Critical"},
        "status": {"name": "Needs Triage"},
        "issuetype": {"name": "Bug"},
        "resolution": None,
        "resolutiondate": None,
        "customfield_10020": [{"id": 42, "name": "TOOLS Sprint 7"}, {"id": 43, "name": "TOOLS Sprint 8"}],
        "customfield_10016": 3.0,
    }
    fields.update(overrides)
    return {"key": "TOOLS-1", "fields": fields}


def test_map_issue_basic():
    issue = map_issue(_raw(), "https://example.atlassian.net")
    assert issue.key == "TOOLS-1"
    assert issue.priority == "Critical"
    assert issue.status == "Needs Triage"
    assert issue.is_bug
    assert issue.created == datetime(2024, 9, 1, 8, 0, tzinfo=UTC)
    assert issue.resolution == ""
    assert issue.resolution_date is None
    assert (issue.sprint_id, issue.sprint_name) == ("42", "TOOLS Sprint 7")
    assert issue.story_points == 3.0
    assert issue.url == "https://example.atlassian.net/browse/TOOLS-1"


def test_missing_optional_fields_get_defaults():
    issue = map_issue(_raw(priority=None, status=None, customfield_10020=None, customfield_10016=None))
    assert issue.priority == "Unknown"
    assert issue.status == "Unknown"
    assert issue.sprint_id == ""
    assert issue.story_points == 0.0


def test_resolved_issue():
    issue = map_issue(_raw(resolution={"name": "Fixed"}, resolutiondate="2024-09-05T12:00:00.000+0000"))
    assert issue.resolution == "Fixed"
    assert issue.resolution_date == datetime(2024, 9, 5, 12, 0, tzinfo=UTC)


def test_custom_field_ids():
    raw = _raw(customfield_99999=[{"id": 7, "name": "Alt"}], customfield_88888=5)
    issue = map_issue(raw, sprint_field="customfield_99999", story_points_field="customfield_88888")
    assert issue.sprint_id == "7"
    assert issue.story_points == 5.0


def test_extract_sprint_ignores_unexpected_shapes():
    assert extract_sprint("not-a-list") == ("", "")
    assert extract_sprint([]) == ("", "")
    assert extract_sprint(["legacy-string"]) == ("", "")


def test_map_issues_skips_unmappable():
    broken = {"key": "TOOLS-2", "fields": {"summary": "no dates"}}
    issues = map_issues([_raw(), broken])
    assert [i.key for i in issues] == ["TOOLS-1"]


def test_issues_to_dataframe_types():
    df = issues_to_dataframe([map_issue(_raw())])
    assert str(df["created"].dt.tz) == "UTC"
    assert df.loc[0, "resolution"] == ""
    assert df["resolution_date"].isna().all()
    assert df.loc[0, "is_bug"]
    empty = issues_to_dataframe([])
    assert empty.empty
