"""
Dashboard rendering (rich).

One clock reading is taken per render and passed to every computation, so
semester progress, week number and deadline badges always agree.
"""

from __future__ import annotations

from typing import Any, Optional

from rich import box
from rich.console import Console
from rich.progress_bar import ProgressBar
from rich.table import Table

from semdesk.deadlines import collect_deadline_records, upcoming_deadlines
from semdesk.model import DeadlineStatus
from semdesk.semester import (
    DateInput,
    current_semester,
    semester_date_range,
    semester_progress,
    semester_week,
    to_datetime,
)
from semdesk.storage import category_stats, group_files, recent_content

RECENT_LIMIT = 6


def _human_size(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    value = size / 1024
    for unit in ("KB", "MB"):
        if value < 1024:
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} GB"


def _badge(rec: dict[str, Any]) -> str:
    status = DeadlineStatus(rec["days_until"], rec["is_urgent"], rec["is_overdue"])
    if status.is_overdue:
        return f"[red]{status.badge_text()}[/]"
    if status.is_urgent:
        return f"[yellow]{status.badge_text()}[/]"
    return status.badge_text()


def render_semester_summary(console: Console, now: DateInput) -> None:
    sem = current_semester(now)
    sem_range = semester_date_range(sem)
    progress = semester_progress(now)
    week = semester_week(now)

    span = f"{sem_range.start_iso} → {sem_range.end_iso}" if sem_range else "(unknown range)"
    console.print(f"[bold]Semester {sem}[/]  {span}  |  Week {week}")

    grid = Table.grid(padding=(0, 1))
    grid.add_row(ProgressBar(total=100, completed=progress, width=40), f"{progress}%")
    console.print(grid)


def render_upcoming(console: Console, ws: dict[str, Any], now: DateInput) -> None:
    upcoming = upcoming_deadlines(collect_deadline_records(ws), now=now)
    if not upcoming:
        console.print("No upcoming deadlines.")
        return

    table = Table(title="Upcoming deadlines", box=box.SIMPLE)
    table.add_column("Kind")
    table.add_column("#", justify="right")
    table.add_column("Category")
    table.add_column("Title")
    table.add_column("Deadline")
    table.add_column("Status")
    for rec in upcoming:
        table.add_row(
            rec["source_type"],
            str(rec.get("id", "")),
            str(rec.get("category") or rec.get("type") or ""),
            str(rec.get("title") or rec.get("original_name") or ""),
            str(rec.get("deadline", "")),
            _badge(rec),
        )
    console.print(table)


def render_recent_content(console: Console, ws: dict[str, Any]) -> None:
    items = recent_content(ws, limit=RECENT_LIMIT)
    if not items:
        console.print("No content yet.")
        return

    table = Table(title="Recent content", box=box.SIMPLE)
    table.add_column("#", justify="right")
    table.add_column("Title")
    table.add_column("Type")
    table.add_column("Status")
    table.add_column("Progress", justify="right")
    table.add_column("Deadline")
    for c in items:
        table.add_row(
            str(c.get("id", "")),
            str(c.get("title", "")),
            str(c.get("type", "")),
            str(c.get("status", "")),
            f"{c.get('progress', 0)}%",
            str(c.get("deadline") or "-"),
        )
    console.print(table)


def render_files(console: Console, ws: dict[str, Any]) -> None:
    groups = group_files(ws, limit=RECENT_LIMIT)
    if not groups:
        console.print("No files yet.")
        return

    table = Table(title="Recent files", box=box.SIMPLE)
    table.add_column("#", justify="right")
    table.add_column("Name")
    table.add_column("Category")
    table.add_column("Size", justify="right")
    for g in groups:
        if g.get("folder_name"):
            name = f"[bold cyan]{g['folder_name']}/[/] ({g['file_count']} files)"
        else:
            name = str(g.get("original_name", ""))
        table.add_row(str(g.get("id", "")), name, str(g.get("category", "")), _human_size(g["size"]))
    console.print(table)

    stats = category_stats(ws)
    cat_table = Table(title="Categories", box=box.SIMPLE)
    cat_table.add_column("Category")
    cat_table.add_column("Files", justify="right")
    for category, count in stats:
        cat_table.add_row(category, str(count))
    console.print(cat_table)


def render_dashboard(ws: dict[str, Any], now: DateInput = None, console: Optional[Console] = None) -> None:
    console = console or Console()
    snapshot = to_datetime(now)

    console.print("\n=== semdesk ===")
    render_semester_summary(console, snapshot)
    console.print()
    render_upcoming(console, ws, snapshot)
    render_recent_content(console, ws)
    render_files(console, ws)
