"""Terminal rendering of the bug trend report."""

from __future__ import annotations

import math
from collections.abc import Sequence

from rich.console import Console
from rich.table import Table
from rich.text import Text

from bug_butler.core.config import (
    MONTHLY_TABLE_MONTHS,
    PRIORITY_BREAKDOWN_MONTHS,
    PRIORITY_DISPLAY_ORDER,
    TREND_ARROW_THRESHOLD,
)
from bug_butler.core.models import MonthlyBugStats, SprintStats, TrendStats

from .tables import RULE_WIDTH

SPARK_BLOCKS = "▁▂▃▄▅▆▇█"


def generate_sparkline(values: Sequence[int]) -> str:
    if not values:
        return ""
    lo, hi = min(values), max(values)
    out = []
    for val in values:
        if hi == lo:
            idx = 4
        else:
            idx = int(math.floor((val - lo) / (hi - lo) * 7 + 0.5))
            idx = min(max(idx, 0), 7)
        out.append(SPARK_BLOCKS[idx])
    return "".join(out)


def trend_indicator(change_percent: float) -> str:
    if change_percent > TREND_ARROW_THRESHOLD:
        return f"↑ +{change_percent:.1f}%"
    if change_percent < -TREND_ARROW_THRESHOLD:
        return f"↓ {change_percent:.1f}%"
    return "→"


def ordered_priorities(monthly: Sequence[MonthlyBugStats]) -> list[str]:
    """Priorities seen in ``monthly``: known levels first, the rest alphabetically."""
    seen = {p for m in monthly for p in m.by_priority}
    known = [p for p in PRIORITY_DISPLAY_ORDER if p in seen]
    return known + sorted(seen - set(known))


def _fmt_month(m: MonthlyBugStats, long: bool = False) -> str:
    return m.month.strftime("%B %Y" if long else "%b %Y")


def _window(monthly: Sequence[MonthlyBugStats], months: int) -> Sequence[MonthlyBugStats]:
    if months > 0 and len(monthly) > months:
        return monthly[-months:]
    return monthly


def render_trend_stats(stats: TrendStats, console: Console | None = None) -> None:
    console = console or Console()
    if not stats.monthly_data:
        console.print("\n[yellow]No bug data available for the selected time range[/yellow]")
        return
    monthly = _window(stats.monthly_data, stats.months_to_analyze)

    console.print("\n" + "=" * RULE_WIDTH)
    console.print("  BUG BUTLER - TREND STATISTICS", style="bold")
    console.print("=" * RULE_WIDTH)
    render_sparkline(monthly, console)
    render_monthly_table(monthly, console)
    render_goal_progress(stats, console)
    render_priority_breakdown(monthly, console)
    render_sprint_stats(stats.sprint_stats, console)


def render_sparkline(monthly: Sequence[MonthlyBugStats], console: Console) -> None:
    console.print(f"\nUnresolved Bug Backlog Trend (Last {len(monthly)} Months)", style="bold")
    console.print("\n" + generate_sparkline([m.total_unresolved for m in monthly]))
    if len(monthly) >= 3:
        points = (monthly[0], monthly[len(monthly) // 2], monthly[-1])
        console.print(
            "\n" + "  →  ".join(f"{_fmt_month(m)}: {m.total_unresolved} bugs" for m in points)
        )


def render_monthly_table(monthly: Sequence[MonthlyBugStats], console: Console) -> None:
    console.print("\nMonthly Bug Statistics", style="bold")
    table = Table(show_header=True, header_style="bold")
    for col in ("Month", "Created", "Resolved", "Unresolved"):
        table.add_column(col, justify="left" if col == "Month" else "right")
    table.add_column("Trend")
    for m in _window(monthly, MONTHLY_TABLE_MONTHS):
        table.add_row(
            _fmt_month(m),
            str(m.total_created),
            str(m.total_resolved),
            str(m.total_unresolved),
            trend_indicator(m.change_percent),
        )
    console.print(table)


def render_goal_progress(stats: TrendStats, console: Console) -> None:
    current, last_year = stats.current_month, stats.last_year_same_month
    if current is None or last_year is None:
        return
    target = stats.goal_target
    actual = current.total_created
    if stats.on_track:
        below = (target - actual) / target * 100 if target else 0.0
        status = Text(f"✓ On track ({below:.1f}% below target)", style="bold green")
    elif target:
        status = Text(f"⚠ Over target ({(actual - target) / target * 100:.1f}% above)", style="bold yellow")
    else:
        status = Text("⚠ Over target", style="bold yellow")

    console.print("\nCurrent Month Goal", style="bold")
    console.print(f"\n{_fmt_month(current, long=True)}")
    console.print(f"Last year: {last_year.total_created} bugs created")
    console.print(f"Target: ≤ {target} bugs ({stats.reduction_goal:.0f}% reduction goal)")
    console.print(f"Actual: {actual} bugs created so far")
    console.print(Text("Status: ").append(status))


def render_priority_breakdown(monthly: Sequence[MonthlyBugStats], console: Console) -> None:
    recent = _window(monthly, PRIORITY_BREAKDOWN_MONTHS)
    priorities = ordered_priorities(recent)
    console.print(f"\nPriority Breakdown (Last {len(recent)} Months)", style="bold")
    table = Table(show_header=True, header_style="bold")
    table.add_column("Month")
    for p in priorities:
        table.add_column(p, justify="right")
    for m in recent:
        table.add_row(_fmt_month(m), *(str(m.by_priority.get(p, 0)) for p in priorities))
    console.print(table)


def _bug_percent_style(percent: float) -> str:
    if percent > 50:
        return "bold red"
    if percent > 30:
        return "yellow"
    return "green"


def render_sprint_stats(sprint_stats: Sequence[SprintStats], console: Console) -> None:
    if not sprint_stats:
        return
    console.print("\nSprint Statistics", style="bold")
    console.print(f"\nShowing bug density across {len(sprint_stats)} sprints")
    table = Table(show_header=True, header_style="bold")
    table.add_column("Sprint")
    for col in ("Bugs", "Other", "Total", "Bug %", "Bug Pts", "Total Pts", "Pts %"):
        table.add_column(col, justify="right")
    for s in sprint_stats:
        table.add_row(
            Text(s.sprint_name),
            str(s.bug_count),
            str(s.other_count),
            str(s.total_count),
            Text(f"{s.bug_percentage:.1f}%", style=_bug_percent_style(s.bug_percentage)),
            f"{s.bug_story_points:.1f}",
            f"{s.total_story_points:.1f}",
            f"{s.points_percentage:.1f}%",
        )
    console.print(table)

    bugs = sum(s.bug_count for s in sprint_stats)
    other = sum(s.other_count for s in sprint_stats)
    bug_points = sum(s.bug_story_points for s in sprint_stats)
    all_points = sum(s.total_story_points for s in sprint_stats)
    total = bugs + other
    console.print("\nSummary:")
    console.print(f"  Total issues: {total} ({bugs} bugs, {other} other)")
    console.print(f"  Average bug density: {bugs / total * 100 if total else 0.0:.1f}% of issues")
    console.print(
        f"  Average bug points: {bug_points / all_points * 100 if all_points else 0.0:.1f}% of story points"
    )
