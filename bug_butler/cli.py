"""Command-line entry point: ``bug-butler check``, ``stats`` and ``version``."""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

import click
import pytz
from rich.console import Console

from bug_butler.analytics.aggregations.sprints import (
    calculate_sprint_stats,
    extract_and_filter_sprints,
    extract_sprint_ids,
)
from bug_butler.analytics.metrics.trends import TrendAnalyzer, month_start
from bug_butler.analytics.sla import SLAEvaluator
from bug_butler.core.config import (
    DEFAULT_CONFIG_PATH,
    HISTORY_YEARS,
    VERSION,
    AppConfig,
    ConfigError,
    JiraSettings,
    StatsSettings,
    load_config,
)
from bug_butler.core.jira_client import JiraAPI
from bug_butler.core.service import IssueService
from bug_butler.visual.tables import render_buckets
from bug_butler.visual.trends import render_trend_stats

logger = logging.getLogger(__name__)

CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])


def _default_api_factory(settings: JiraSettings) -> JiraAPI:
    return JiraAPI(settings.base_url, settings.email, settings.api_token)


def _utcnow() -> datetime:
    return datetime.now(tz=pytz.UTC)


@dataclass(slots=True)
class CliContext:
    api_factory: Callable[[JiraSettings], JiraAPI] = _default_api_factory
    clock: Callable[[], datetime] = _utcnow
    console: Console = field(default_factory=Console)


@dataclass(slots=True)
class SprintFilter:
    show_sprints: bool = False
    name_begins_with: str = ""
    name_pattern: str = ""
    board_filter: str = ""

    @classmethod
    def from_settings(cls, stats: StatsSettings) -> SprintFilter:
        return cls(
            show_sprints=stats.show_sprints,
            name_begins_with=stats.sprint_name_begins_with,
            name_pattern=stats.sprint_name_pattern,
            board_filter=stats.sprint_board_filter,
        )


def configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    logger.debug("Debug mode enabled")


def _load(config_path: str) -> AppConfig:
    click.echo("Loading configuration...")
    try:
        return load_config(config_path)
    except ConfigError as exc:
        raise click.ClickException(f"failed to load configuration: {exc}") from exc


def _connect(obj: CliContext, cfg: AppConfig) -> IssueService:
    click.echo("\nAuthenticating with Jira...")
    try:
        api = obj.api_factory(cfg.jira)
        api.verify_auth()
    except RuntimeError as exc:
        raise click.ClickException(f"failed to create Jira client: {exc}") from exc
    click.echo("✓ Authenticated successfully")
    return IssueService(api, cfg.jira)


def _describe_projects(keys: list[str]) -> str:
    if len(keys) > 3:
        return ", ".join(keys[:3]) + f", ... +{len(keys) - 3} more"
    return ", ".join(keys)


@click.group(context_settings=CONTEXT_SETTINGS)
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Monitor Jira bugs against SLA rules.

    Bug Butler categorizes incoming bugs into buckets based on configurable
    SLA rules, tracking priority, status, and time since last activity.
    """
    if ctx.obj is None:
        ctx.obj = CliContext()


@cli.command("version")
def version_cmd() -> None:
    """Print the version number."""
    click.echo(f"bug-butler v{VERSION}")


@cli.command("check")
@click.option(
    "--config", "-c", "config_path", default=DEFAULT_CONFIG_PATH, show_default=True, help="Path to configuration file."
)
@click.option("--debug", is_flag=True, help="Enable debug logging.")
@click.pass_context
def check_cmd(ctx: click.Context, config_path: str, debug: bool) -> None:
    """Check unresolved bugs against SLA rules.

    Exits with status 1 when any bug violates a rule.
    """
    configure_logging(debug)
    obj: CliContext = ctx.obj
    cfg = _load(config_path)
    click.echo(f"Projects: {_describe_projects(cfg.jira.project_keys)}")
    click.echo(f"SLA Rules: {len(cfg.sla_rules)} configured")
    logger.debug(
        "Configuration loaded: url=%s projects=%d rules=%d",
        cfg.jira.base_url,
        len(cfg.jira.project_keys),
        len(cfg.sla_rules),
    )

    service = _connect(obj, cfg)
    click.echo("\nFetching bugs...", nl=False)
    try:
        bugs = service.fetch_open_bugs()
    except RuntimeError as exc:
        raise click.ClickException(f"failed to fetch bugs: {exc}") from exc
    click.echo(f" found {len(bugs)} bugs")

    if not bugs:
        click.echo("\nNo unresolved bugs found!")
        return

    click.echo("Evaluating against SLA rules...", nl=False)
    now = obj.clock()
    evaluator = SLAEvaluator(cfg.sla_rules)
    group = evaluator.evaluate(bugs, now=now)
    click.echo(" done")
    logger.debug("Violations by bucket: %s", evaluator.summary(group))
    render_buckets(group, obj.console, now=now)
    if group.buckets:
        ctx.exit(1)


@cli.command("stats")
@click.option(
    "--config", "-c", "config_path", default=DEFAULT_CONFIG_PATH, show_default=True, help="Path to configuration file."
)
@click.option("--debug", is_flag=True, help="Enable debug logging.")
@click.option("--interactive", "-i", is_flag=True, help="Prompt for sprint options.")
@click.pass_obj
def stats_cmd(obj: CliContext, config_path: str, debug: bool, interactive: bool) -> None:
    """Display bug trend statistics.

    Shows the unresolved backlog trend, monthly created/resolved/unresolved
    counts, current-month goal tracking against the same month last year,
    priority breakdown, and optional sprint bug density.
    """
    configure_logging(debug)
    cfg = _load(config_path)
    click.echo(f"Projects: {len(cfg.jira.project_keys)} configured")
    click.echo(f"Analysis Period: Last {cfg.stats.months_to_analyze} months")
    click.echo(f"Reduction Goal: {cfg.stats.reduction_goal_percent:.0f}%")

    service = _connect(obj, cfg)

    # Backlog at the start of the window depends on older issues still open
    now = obj.clock()
    current = month_start(now)
    start = current.replace(year=current.year - HISTORY_YEARS)
    end = now + timedelta(days=1)
    click.echo("\nFetching bug data...")
    click.echo(f"  Date range: {start:%Y-%m-%d} to {now:%Y-%m-%d}")
    try:
        bugs = service.fetch_bugs_between(start, end)
    except RuntimeError as exc:
        raise click.ClickException(f"failed to fetch bugs: {exc}") from exc
    click.echo(f"  Found {len(bugs)} bugs")

    if not bugs:
        click.echo("\nNo bug data available for the selected time range")
        return

    click.echo("\nAnalyzing trends...", nl=False)
    trend = TrendAnalyzer(cfg.stats.reduction_goal_percent, cfg.stats.months_to_analyze).analyze(bugs, now=now)
    click.echo(" done")

    sprint_filter = prompt_sprint_filter(cfg.stats) if interactive else SprintFilter.from_settings(cfg.stats)
    if sprint_filter.show_sprints:
        trend.sprint_stats = _collect_sprint_stats(service, bugs, sprint_filter)

    render_trend_stats(trend, obj.console)


def _collect_sprint_stats(service: IssueService, bugs, sprint_filter: SprintFilter):
    click.echo("\nAnalyzing sprint statistics...")
    if sprint_filter.name_begins_with or sprint_filter.name_pattern:
        sprint_ids = extract_and_filter_sprints(bugs, sprint_filter.name_begins_with, sprint_filter.name_pattern)
        click.echo(f"  Filtered to {len(sprint_ids)} sprints (from bugs data)")
    else:
        sprint_ids = extract_sprint_ids(bugs)
        click.echo(f"  Found {len(sprint_ids)} sprints with bugs")

    if not sprint_ids:
        click.echo("  No sprints found in bug data")
        click.echo("  Bugs may lack sprint assignments, or the sprint custom field id is wrong.")
        click.echo("  Run with --debug to see field details")
        logger.debug(
            "No sprints extracted: %d bugs checked, %d with sprint data",
            len(bugs),
            sum(1 for b in bugs if b.sprint_id),
        )
        return []

    logger.debug("Sprint ids: %s", sprint_ids)
    click.echo("  Fetching issues for filtered sprints...", nl=False)
    try:
        sprint_issues = service.fetch_issues_by_sprints(sprint_ids, sprint_filter.board_filter)
    except RuntimeError as exc:
        logger.warning("Failed to fetch sprint issues: %s", exc)
        click.echo(" failed (continuing without sprint stats)")
        return []
    click.echo(f" found {len(sprint_issues)} issues")
    return calculate_sprint_stats(sprint_issues, sprint_filter.name_begins_with, sprint_filter.name_pattern)


def prompt_sprint_filter(stats: StatsSettings) -> SprintFilter:
    """Ask the user how sprint statistics should be filtered."""
    chosen = SprintFilter()
    chosen.show_sprints = click.confirm("\nShow sprint statistics?", default=False)
    if not chosen.show_sprints:
        return chosen

    options = [
        "No filtering - show all sprints",
        "Filter by sprint name prefix (e.g., 'TOOLS Sprint')",
        "Filter by sprint name pattern (regex, e.g., 'Sprint \\d+')",
    ]
    has_config_filters = bool(stats.sprint_name_begins_with or stats.sprint_name_pattern)
    if has_config_filters:
        desc = "Use config file settings"
        if stats.sprint_name_begins_with:
            desc += f" (prefix: '{stats.sprint_name_begins_with}')"
        if stats.sprint_name_pattern:
            desc += f" (pattern: '{stats.sprint_name_pattern}')"
        options.insert(0, desc)

    click.echo("\nSelect sprint filtering option:")
    for idx, option in enumerate(options, start=1):
        click.echo(f"  {idx}. {option}")
    choice = click.prompt("Enter choice", type=click.IntRange(1, len(options)), default=1) - 1

    if has_config_filters:
        if choice == 0:
            chosen.name_begins_with = stats.sprint_name_begins_with
            chosen.name_pattern = stats.sprint_name_pattern
        choice -= 1
    if choice == 1:
        chosen.name_begins_with = click.prompt("Enter sprint name prefix").strip()
    elif choice == 2:
        chosen.name_pattern = click.prompt("Enter sprint name pattern (regex)").strip()

    if click.confirm("Apply sprint board JQL filter?", default=False):
        if stats.sprint_board_filter and click.confirm(
            f"Use config file filter? ('{stats.sprint_board_filter}')", default=True
        ):
            chosen.board_filter = stats.sprint_board_filter
        else:
            chosen.board_filter = click.prompt("Enter JQL filter").strip()
    return chosen


def main() -> None:
    """Console-script entry point."""
    cli()
