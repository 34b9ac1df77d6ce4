"""
CLI (Command Line Interface).

Quick terminal commands, e.g.:

    semdesk semester [--date 2026-03-15]
    semdesk range 1142
    semdesk dashboard
    semdesk add "Thesis draft" --type project --deadline sem-end
    semdesk deadline file 3 2026-11-01
    semdesk upcoming
    semdesk import sheet.xlsx
    semdesk export deadlines.ics

Note:
- The dashboard is rendered with rich; every other command prints plain text
- Each handler returns an exit code, main() raises it via SystemExit
"""

from __future__ import annotations

import argparse
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

import requests

from semdesk.dashboard import render_dashboard
from semdesk.deadlines import collect_deadline_records, upcoming_deadlines
from semdesk.export_ics import export_deadlines_to_ics
from semdesk.importer import import_tasks
from semdesk.model import DeadlineStatus
from semdesk.semester import (
    current_semester,
    next_semester_id,
    previous_semester_id,
    semester_date_range,
    semester_progress,
    semester_sort_key,
    semester_week,
    to_datetime,
)
from semdesk.storage import (
    CONTENT_STATUSES,
    KINDS,
    add_content,
    add_file,
    category_stats,
    delete_record,
    find_record,
    group_files,
    load_workspace,
    recent_content,
    save_workspace,
    set_category,
    set_deadline,
)


def _date_arg(value: str) -> datetime:
    """
    argparse type for --date: ISO date or datetime.
    """
    try:
        return to_datetime(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _error_text(exc: Exception) -> str:
    # KeyError wraps its message in quotes
    return str(exc.args[0]) if isinstance(exc, KeyError) and exc.args else str(exc)


def _now(args: argparse.Namespace) -> datetime:
    """
    One clock reading per command, unless --date overrides it.
    """
    when = getattr(args, "date", None)
    return when if when is not None else datetime.now()


def _record_label(rec: dict[str, Any]) -> str:
    return str(rec.get("title") or rec.get("original_name") or "(untitled)")


# ---------------------------------------------------------------------------
# Semester commands
# ---------------------------------------------------------------------------


def _cmd_semester(args: argparse.Namespace) -> int:
    """
    Print the semester containing the given date with progress and week.
    """
    now = _now(args)
    sem = current_semester(now)
    sem_range = semester_date_range(sem)

    print(f"Semester: {sem}")
    if sem_range:
        print(f"Range: {sem_range.start_iso} .. {sem_range.end_iso}")
    print(f"Progress: {semester_progress(now)}%")
    print(f"Week: {semester_week(now)}")
    print(f"Previous: {previous_semester_id(sem) or '-'} | Next: {next_semester_id(sem) or '-'}")
    return 0


def _cmd_range(args: argparse.Namespace) -> int:
    sem_range = semester_date_range((args.semester_id or "").strip())
    if sem_range is None:
        print(f"Invalid semester id: {args.semester_id!r} (expected e.g. 1142)")
        return 1
    if args.json:
        print(json.dumps({"semester": args.semester_id.strip(), **sem_range.as_dict()}))
    else:
        print(f"{sem_range.start_iso} {sem_range.end_iso}")
    return 0


# ---------------------------------------------------------------------------
# Workspace commands
# ---------------------------------------------------------------------------


def _cmd_add(args: argparse.Namespace, ws: dict[str, Any], ws_path: Path | None) -> int:
    """
    Add a content item (project, tutorial, note, ...).
    """
    now = _now(args)
    try:
        item = add_content(
            ws,
            title=args.title,
            type=args.type,
            description=args.description,
            status=args.status,
            progress=args.progress,
            now=now,
        )
        if args.deadline:
            set_deadline(ws, "content", item["id"], args.deadline, now=now)
    except ValueError as exc:
        print(_error_text(exc))
        return 1

    save_workspace(ws, ws_path)
    print(f"Added content #{item['id']}: {item['title']} (semester {item['semester']})")
    return 0


def _cmd_list(args: argparse.Namespace, ws: dict[str, Any]) -> int:
    items = recent_content(ws, include_archived=args.all)
    if args.by_semester:
        # newest semester first, most recently updated first within a semester
        items.sort(key=lambda c: semester_sort_key(str(c.get("semester") or "")), reverse=True)
    if not items:
        print("No content.")
        return 0

    for c in items:
        deadline = c.get("deadline") or "-"
        print(
            f"#{c.get('id')} | [{c.get('type', '')}] {c.get('title', '')} | "
            f"{c.get('status', '')} | {c.get('progress', 0)}% | deadline {deadline}"
        )
    return 0


def _cmd_file_add(args: argparse.Namespace, ws: dict[str, Any], ws_path: Path | None) -> int:
    try:
        rec = add_file(
            ws,
            args.source,
            category=args.category,
            folder_name=args.folder,
            description=args.description,
        )
    except ValueError as exc:
        print(_error_text(exc))
        return 1

    save_workspace(ws, ws_path)
    print(f"Added file #{rec['id']}: {rec['original_name']} [{rec['category']}]")
    return 0


def _cmd_files(args: argparse.Namespace, ws: dict[str, Any]) -> int:
    """
    List files, grouped by folder, or all files of one category.
    """
    category = (args.category or "").strip()
    if category:
        rows = [f for f in ws.get("files", []) if f.get("category") == category]
        rows.sort(key=lambda f: str(f.get("created_at") or ""), reverse=True)
    else:
        rows = group_files(ws)

    if not rows:
        print("No files.")
        return 0

    for f in rows:
        if not category and f.get("folder_name"):
            name = f"{f['folder_name']}/ ({f['file_count']} files)"
        else:
            name = str(f.get("original_name", ""))
        deadline = f.get("deadline") or "-"
        print(f"#{f.get('id')} | {name} | {f.get('category', '')} | {f.get('size', 0)} bytes | deadline {deadline}")
    return 0


def _cmd_categories(args: argparse.Namespace, ws: dict[str, Any]) -> int:
    stats = category_stats(ws)
    if not stats:
        print("No files.")
        return 0
    for category, count in stats:
        print(f"{category}: {count}")
    return 0


def _cmd_set_category(args: argparse.Namespace, ws: dict[str, Any], ws_path: Path | None) -> int:
    try:
        rec = set_category(ws, args.file_id, args.category)
    except (KeyError, ValueError) as exc:
        print(_error_text(exc))
        return 1

    save_workspace(ws, ws_path)
    print(f"File #{rec['id']} moved to category: {rec['category']}")
    return 0


def _cmd_deadline(args: argparse.Namespace, ws: dict[str, Any], ws_path: Path | None) -> int:
    """
    Set, quick-set ("sem-end") or clear ("none") a deadline.
    """
    try:
        rec = set_deadline(ws, args.kind, args.record_id, args.value, now=_now(args))
    except (KeyError, ValueError) as exc:
        print(_error_text(exc))
        return 1

    save_workspace(ws, ws_path)
    deadline = rec.get("deadline") or "(none)"
    print(f"Deadline of {args.kind} #{rec['id']} ({_record_label(rec)}): {deadline}")
    return 0


def _cmd_upcoming(args: argparse.Namespace, ws: dict[str, Any]) -> int:
    upcoming = upcoming_deadlines(collect_deadline_records(ws), now=_now(args))
    if not upcoming:
        print("No upcoming deadlines.")
        return 0

    for rec in upcoming:
        badge = DeadlineStatus(rec["days_until"], rec["is_urgent"], rec["is_overdue"]).badge_text()
        print(f"{rec['deadline']} | {rec['source_type']} #{rec.get('id')} | {_record_label(rec)} | {badge}")
    return 0


def _cmd_delete(args: argparse.Namespace, ws: dict[str, Any], ws_path: Path | None) -> int:
    try:
        rec = delete_record(ws, args.kind, args.record_id)
    except KeyError as exc:
        print(_error_text(exc))
        return 1

    save_workspace(ws, ws_path)
    print(f"Deleted {args.kind} #{rec['id']}: {_record_label(rec)}")
    return 0


def _cmd_import(args: argparse.Namespace, ws: dict[str, Any], ws_path: Path | None) -> int:
    """
    Import tracking tasks from a spreadsheet (path, URL or registered file).
    """
    category = args.category
    if args.file_id is not None:
        try:
            file_rec = find_record(ws, "file", args.file_id)
        except KeyError as exc:
            print(_error_text(exc))
            return 1
        source = str(file_rec.get("url") or "")
        category = category or file_rec.get("category")
    else:
        source = (args.source or "").strip()

    if not source:
        print("Please provide a spreadsheet path/URL or --file-id.")
        return 1

    try:
        created = import_tasks(ws, source, category=category, now=_now(args))
    except (ValueError, OSError, requests.RequestException) as exc:
        print(f"Import failed: {exc}")
        return 1

    if created:
        save_workspace(ws, ws_path)
    print(f"Imported {len(created)} items.")
    return 0


def _cmd_export(args: argparse.Namespace, ws: dict[str, Any]) -> int:
    """
    Export all deadlines into an iCalendar (.ics) file.
    """
    records = collect_deadline_records(ws)
    if not records:
        print("No deadlines to export.")
        return 0

    out_path = (args.out or "").strip()
    if not out_path:
        print("Please provide output .ics path.")
        return 1

    n = export_deadlines_to_ics(records, out_path)
    print(f"Exported {n} deadlines to: {out_path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    parser = argparse.ArgumentParser(prog="semdesk", description="semdesk CLI")
    parser.add_argument("--workspace", type=Path, default=None, help="Path to workspace.json")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p_sem = sub.add_parser("semester", help="Show the current semester, progress and week")
    p_sem.add_argument("--date", type=_date_arg, default=None, help="Date to evaluate (default: now)")

    p_range = sub.add_parser("range", help="Show start and end date of a semester")
    p_range.add_argument("semester_id", type=str, help="Semester id (e.g. 1142)")
    p_range.add_argument("--json", action="store_true", help="Print the range as JSON")

    p_dash = sub.add_parser("dashboard", help="Show the workspace dashboard")
    p_dash.add_argument("--date", type=_date_arg, default=None, help="Date to evaluate (default: now)")

    p_add = sub.add_parser("add", help="Add a content item")
    p_add.add_argument("title", type=str, help="Title")
    p_add.add_argument("--type", type=str, required=True, help="Type / category (e.g. project)")
    p_add.add_argument("--description", type=str, default="")
    p_add.add_argument("--status", type=str, default="draft", choices=CONTENT_STATUSES)
    p_add.add_argument("--progress", type=int, default=0)
    p_add.add_argument("--deadline", type=str, default=None, help="ISO date or 'sem-end'")

    p_list = sub.add_parser("list", help="List content items")
    p_list.add_argument("--all", action="store_true", help="Include archived items")
    p_list.add_argument("--by-semester", action="store_true", help="Group items by semester, newest first")

    p_file_add = sub.add_parser("file-add", help="Register a file (local path or URL)")
    p_file_add.add_argument("source", type=str, help="File path or URL")
    p_file_add.add_argument("--category", type=str, default=None)
    p_file_add.add_argument("--folder", type=str, default=None)
    p_file_add.add_argument("--description", type=str, default="")

    p_files = sub.add_parser("files", help="List files")
    p_files.add_argument("--category", type=str, default=None)

    sub.add_parser("categories", help="Show file counts per category")

    p_set_cat = sub.add_parser("set-category", help="Change the category of a file")
    p_set_cat.add_argument("file_id", type=int)
    p_set_cat.add_argument("category", type=str)

    p_deadline = sub.add_parser("deadline", help="Set or clear a deadline")
    p_deadline.add_argument("kind", choices=sorted(KINDS))
    p_deadline.add_argument("record_id", type=int)
    p_deadline.add_argument("value", type=str, help="ISO date, 'sem-end' or 'none'")

    p_upcoming = sub.add_parser("upcoming", help="Show upcoming and overdue deadlines")
    p_upcoming.add_argument("--date", type=_date_arg, default=None, help="Date to evaluate (default: now)")

    p_delete = sub.add_parser("delete", help="Delete a content item or file record")
    p_delete.add_argument("kind", choices=sorted(KINDS))
    p_delete.add_argument("record_id", type=int)

    p_import = sub.add_parser("import", help="Import tasks from an .xlsx spreadsheet")
    p_import.add_argument("source", type=str, nargs="?", default=None, help="Spreadsheet path or URL")
    p_import.add_argument("--file-id", type=int, default=None, help="Use a registered file instead")
    p_import.add_argument("--category", type=str, default=None)

    p_export = sub.add_parser("export", help="Export deadlines to .ics")
    p_export.add_argument("out", type=str, help="Output file path (e.g. deadlines.ics)")

    return parser


def main(argv: list[str] | None = None) -> None:
    """
    CLI entry point. Parses args, dispatches to command handlers,
    and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command == "semester":
        raise SystemExit(_cmd_semester(args))
    if args.command == "range":
        raise SystemExit(_cmd_range(args))

    ws_path = args.workspace
    try:
        ws = load_workspace(ws_path)
    except OSError as exc:
        print(f"Could not open workspace: {exc}")
        raise SystemExit(1)

    if args.command == "dashboard":
        render_dashboard(ws, now=_now(args))
        raise SystemExit(0)
    if args.command == "add":
        raise SystemExit(_cmd_add(args, ws, ws_path))
    if args.command == "list":
        raise SystemExit(_cmd_list(args, ws))
    if args.command == "file-add":
        raise SystemExit(_cmd_file_add(args, ws, ws_path))
    if args.command == "files":
        raise SystemExit(_cmd_files(args, ws))
    if args.command == "categories":
        raise SystemExit(_cmd_categories(args, ws))
    if args.command == "set-category":
        raise SystemExit(_cmd_set_category(args, ws, ws_path))
    if args.command == "deadline":
        raise SystemExit(_cmd_deadline(args, ws, ws_path))
    if args.command == "upcoming":
        raise SystemExit(_cmd_upcoming(args, ws))
    if args.command == "delete":
        raise SystemExit(_cmd_delete(args, ws, ws_path))
    if args.command == "import":
        raise SystemExit(_cmd_import(args, ws, ws_path))
    if args.command == "export":
        raise SystemExit(_cmd_export(args, ws))

    raise SystemExit(2)
