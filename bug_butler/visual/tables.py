"""Terminal rendering of the SLA bucket report."""

from __future__ import annotations

from datetime import datetime

import pytz
from rich.console import Console
from rich.style import Style
from rich.table import Table
from rich.text import Text

from bug_butler.core.config import SUMMARY_MAX_LEN
from bug_butler.analytics.sla.buckets import violation_summary
from bug_butler.core.models import Bucket, BucketGroup

RULE_WIDTH = 80

SEVERITY_STYLES: dict[int, tuple[str, str]] = {
    1: ("bold white on red", "bright_red"),
    2: ("bold black on yellow", "bright_yellow"),
}


def format_age(days: float) -> str:
    if days < 1:
        hours = days * 24
        if hours < 1:
            return f"{hours * 60:.0f} minutes"
        return f"{hours:.1f} hours"
    if days < 7:
        return f"{days:.1f} days"
    return f"{days / 7:.1f} weeks"


def truncate(text: str, max_len: int) -> str:
    if len(text) <= max_len:
        return text
    if max_len <= 3:
        return text[:max_len]
    return text[: max_len - 3] + "..."


def ticket_link(key: str, url: str) -> Text:
    """Issue key rendered as a terminal hyperlink to the issue."""
    return Text(key, style=Style(link=url))


def render_buckets(group: BucketGroup, console: Console | None = None, *, now: datetime | None = None) -> None:
    """Print the violation report; ages are measured at ``now`` (default: current time)."""
    console = console or Console()
    now = now or datetime.now(tz=pytz.UTC)
    if not group.buckets:
        console.print("\n[green]All bugs are compliant with SLA rules![/green]")
        console.print("No bugs require immediate attention.")
        return

    console.print("\n" + "=" * RULE_WIDTH)
    console.print("  BUG BUTLER - SLA VIOLATION REPORT", style="bold")
    console.print("=" * RULE_WIDTH)
    for bucket in group.buckets:
        render_bucket(bucket, console, now)
    render_summary(group, console)


def render_bucket(bucket: Bucket, console: Console, now: datetime) -> None:
    console.print(Text(f"\n{bucket.name} ({len(bucket.issues)} bugs)", style="bold"))
    if not bucket.issues:
        return
    header_style, row_style = SEVERITY_STYLES.get(bucket.severity, ("bold", ""))
    table = Table(show_header=True, header_style=header_style, style=row_style or "none")
    table.add_column("Key", no_wrap=True)
    table.add_column("Summary")
    table.add_column("Priority", no_wrap=True)
    table.add_column("Status", no_wrap=True)
    table.add_column("Age", no_wrap=True, justify="right")
    for issue in bucket.issues:
        table.add_row(
            ticket_link(issue.key, issue.url),
            Text(truncate(issue.summary, SUMMARY_MAX_LEN), style=row_style),
            Text(issue.priority, style=row_style),
            Text(issue.status, style=row_style),
            Text(format_age(issue.age_days_at(now)), style=row_style),
        )
    console.print(table)


def render_summary(group: BucketGroup, console: Console) -> None:
    console.print("\n" + "-" * RULE_WIDTH)
    console.print("  SUMMARY", style="bold")
    console.print("-" * RULE_WIDTH)
    console.print(f"\nTotal SLA violations: {group.total_violations}")
    console.print("\nBreakdown by bucket:")
    for name, count in violation_summary(group).items():
        console.print(Text(f"  {name}: {count} bugs"))
    console.print()
