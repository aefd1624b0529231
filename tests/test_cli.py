from datetime import UTC, datetime

from click.testing import CliRunner
from rich.console import Console

from bug_butler.cli import CliContext, cli
from bug_butler.core.jira_client import JiraAPI

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=UTC)

CONFIG = """
jira:
  base_url: https://example.atlassian.net
  email: bot@example.com
  api_token: token
  project_key: TOOLS
sla_rules:
  - name: High stale
    priority: High
    max_age_days: 30
    bucket: REVIEW
    severity: 2
stats:
  months_to_analyze: 12
  reduction_goal_percent: 20
  show_sprints: {show_sprints}
"""


def _raw_issue(key, created, issuetype="Bug"):
    return {
        "key": key,
        "fields": {
            "summary": f"Issue {key}",
            "created": created,
            "updated": created,
            "priority": {"name": "High"},
            "status": {"name": "Backlog"},
            "issuetype": {"name": issuetype},
            "customfield_10020": [{"id": 5, "name": "TOOLS Sprint 1"}],
            "customfield_10016": 1,
        },
    }


class DummyAPI(JiraAPI):
    def __init__(self, issues):
        self.server = "https://example.atlassian.net"
        self.issues = issues

    def verify_auth(self):
        return {}

    def search_enhanced(self, jql, fields=None, page_size=100):
        return self.issues


def _invoke(tmp_path, args, issues, show_sprints="false", input=None):
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG.format(show_sprints=show_sprints))
    obj = CliContext(
        api_factory=lambda settings: DummyAPI(issues),
        clock=lambda: NOW,
        console=Console(width=120),
    )
    return CliRunner().invoke(cli, [*args, "--config", str(path)], obj=obj, input=input)


def test_version():
    result = CliRunner().invoke(cli, ["version"])
    assert result.exit_code == 0
    assert "bug-butler v" in result.output


def test_check_reports_violations_and_exits_nonzero(tmp_path):
    issues = [_raw_issue("TOOLS-1", "2025-01-05T10:00:00.000+0000")]
    result = _invoke(tmp_path, ["check"], issues)
    assert result.exit_code == 1
    assert "REVIEW (1 bugs)" in result.output
    assert "TOOLS-1" in result.output


def test_check_all_compliant(tmp_path):
    issues = [_raw_issue("TOOLS-1", "2025-06-14T10:00:00.000+0000")]
    result = _invoke(tmp_path, ["check"], issues)
    assert result.exit_code == 0
    assert "All bugs are compliant" in result.output


def test_check_without_bugs(tmp_path):
    result = _invoke(tmp_path, ["check"], [])
    assert result.exit_code == 0
    assert "No unresolved bugs found" in result.output


def test_missing_config_is_reported(tmp_path):
    result = CliRunner().invoke(cli, ["check", "--config", str(tmp_path / "nope.yaml")], obj=CliContext())
    assert result.exit_code == 1
    assert "failed to load configuration" in result.output


def test_stats_renders_report(tmp_path):
    issues = [
        _raw_issue("TOOLS-1", "2024-06-03T10:00:00.000+0000"),
        _raw_issue("TOOLS-2", "2025-05-03T10:00:00.000+0000"),
        _raw_issue("TOOLS-3", "2025-06-03T10:00:00.000+0000"),
    ]
    result = _invoke(tmp_path, ["stats"], issues)
    assert result.exit_code == 0, result.output
    assert "TREND STATISTICS" in result.output
    assert "Current Month Goal" in result.output
    assert "Sprint Statistics" not in result.output


def test_stats_with_sprints(tmp_path):
    issues = [
        _raw_issue("TOOLS-1", "2025-05-03T10:00:00.000+0000"),
        _raw_issue("TOOLS-2", "2025-06-03T10:00:00.000+0000", issuetype="Story"),
    ]
    result = _invoke(tmp_path, ["stats"], issues, show_sprints="true")
    assert result.exit_code == 0, result.output
    assert "Found 1 sprints with bugs" in result.output
    assert "Sprint Statistics" in result.output
    assert "TOOLS Sprint 1" in result.output


def test_stats_interactive_prefix_filter(tmp_path):
    issues = [_raw_issue("TOOLS-1", "2025-06-03T10:00:00.000+0000")]
    result = _invoke(tmp_path, ["stats", "-i"], issues, input="y\n2\nOTHER\nn\n")
    assert result.exit_code == 0, result.output
    assert "Filtered to 0 sprints" in result.output
    assert "Sprint Statistics" not in result.output


def test_check_reports_age_at_evaluation_time(tmp_path):
    issues = [_raw_issue("TOOLS-1", "2025-05-06T12:00:00.000+0000")]
    result = _invoke(tmp_path, ["check"], issues)
    assert result.exit_code == 1
    assert "5.7 weeks" in result.output
