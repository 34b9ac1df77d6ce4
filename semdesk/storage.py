"""
Persistent storage for the workspace.

This module manages the file:

    data/workspace.json

Layout:
    {"content": [ ...content items... ], "files": [ ...file records... ]}

Content items track projects, tutorials and notes with a progress value;
file records describe uploaded files (optionally grouped into folders).
Both may carry a deadline (ISO date or null).
"""

from __future__ import annotations

import json
import logging
import mimetypes
import os
import re
from collections import Counter
from pathlib import Path
from typing import Any, Optional
from urllib.parse import unquote, urlparse

from semdesk.semester import DateInput, current_semester, semester_end_deadline, to_date, to_datetime

logger = logging.getLogger(__name__)

WORKSPACE_ENV = "SEMDESK_WORKSPACE"

UNCATEGORIZED = "未分類"
CONTENT_STATUSES = ("draft", "active", "done", "archived")

# CLI kind -> workspace key
KINDS = {"content": "content", "file": "files"}


def _default_workspace_path() -> Path:
    """
    Return the default path of workspace.json.

    The SEMDESK_WORKSPACE environment variable wins over the package-local
    default, so tests and scripts can point at a temporary file.
    """
    env_path = os.environ.get(WORKSPACE_ENV, "").strip()
    if env_path:
        return Path(env_path)
    base_dir = Path(__file__).resolve().parent
    return base_dir / "data" / "workspace.json"


def _resolve(path: str | Path | None) -> Path:
    return Path(path) if path is not None else _default_workspace_path()


def empty_workspace() -> dict[str, list[dict[str, Any]]]:
    return {"content": [], "files": []}


def load_workspace(path: str | Path | None = None) -> dict[str, list[dict[str, Any]]]:
    """
    Load the workspace from workspace.json.

    Returns an empty workspace if the file does not exist.

    A malformed file (bad JSON or not an object) is moved aside to workspace.json.bak
    before an empty workspace is returned, so the next save cannot
    overwrite it.
    """
    ws_path = _resolve(path)

    # First run: nothing stored yet
    if not ws_path.exists():
        return empty_workspace()

    try:
        data = json.loads(ws_path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        _move_aside(ws_path, f"could not be parsed ({exc})")
        return empty_workspace()

    if not isinstance(data, dict):
        _move_aside(ws_path, "has an unexpected layout")
        return empty_workspace()

    ws = empty_workspace()
    for key in ("content", "files"):
        records = data.get(key, [])
        if isinstance(records, list):
            ws[key] = [r for r in records if isinstance(r, dict)]
    return ws


def backup_path(ws_path: Path) -> Path:
    return ws_path.with_name(ws_path.name + ".bak")


def _move_aside(ws_path: Path, reason: str) -> None:
    # os.replace overwrites an older backup; raises if the move fails
    bak = backup_path(ws_path)
    os.replace(ws_path, bak)
    logger.warning("Workspace %s %s, moved it to %s", ws_path, reason, bak)


def save_workspace(ws: dict[str, Any], path: str | Path | None = None) -> None:
    """
    Save the workspace to workspace.json. Creates parent directories if needed.
    """
    ws_path = _resolve(path)
    ws_path.parent.mkdir(parents=True, exist_ok=True)

    payload = {"content": ws.get("content", []), "files": ws.get("files", [])}
    ws_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.debug("Saved workspace to %s", ws_path)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _next_id(records: list[dict[str, Any]]) -> int:
    ids = [r.get("id") for r in records if isinstance(r.get("id"), int)]
    return max(ids, default=0) + 1


def _timestamp(now: DateInput = None) -> str:
    return to_datetime(now).isoformat(timespec="seconds")


def _normalize_deadline(value: DateInput) -> Optional[str]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return to_date(value).isoformat()


def _records(ws: dict[str, Any], kind: str) -> list[dict[str, Any]]:
    if kind not in KINDS:
        raise ValueError(f"Unknown record kind: {kind!r}")
    return ws.setdefault(KINDS[kind], [])


def find_record(ws: dict[str, Any], kind: str, record_id: int) -> dict[str, Any]:
    """
    Return the record with the given id. Raises KeyError if it does not exist.
    """
    for rec in _records(ws, kind):
        if rec.get("id") == record_id:
            return rec
    raise KeyError(f"{kind} {record_id} not found")


# ---------------------------------------------------------------------------
# Content items
# ---------------------------------------------------------------------------


def add_content(
    ws: dict[str, Any],
    title: str,
    type: str,
    description: str = "",
    content: str = "",
    status: str = "draft",
    progress: int = 0,
    semester: Optional[str] = None,
    deadline: DateInput = None,
    now: DateInput = None,
) -> dict[str, Any]:
    """
    Append a new content item and return it.

    Title and type are required. Progress is clamped to 0..100.
    """
    title = (title or "").strip()
    type = (type or "").strip()
    if not title or not type:
        raise ValueError("Title and type are required")

    status = (status or "draft").strip().lower()
    if status not in CONTENT_STATUSES:
        raise ValueError(f"Invalid status: {status!r}")

    items = _records(ws, "content")
    item = {
        "id": _next_id(items),
        "title": title,
        "type": type,
        "description": description or "",
        "content": content or "",
        "status": status,
        "progress": max(0, min(100, int(progress))),
        "semester": semester if semester is not None else current_semester(now),
        "deadline": _normalize_deadline(deadline),
        "updated_at": _timestamp(now),
    }
    items.append(item)
    return item


def recent_content(ws: dict[str, Any], limit: Optional[int] = None, include_archived: bool = False) -> list[dict[str, Any]]:
    """
    Content items ordered by last update (newest first).
    """
    items = [
        c for c in ws.get("content", [])
        if include_archived or c.get("status") != "archived"
    ]
    items.sort(key=lambda c: str(c.get("updated_at") or ""), reverse=True)
    return items if limit is None else items[:limit]


# ---------------------------------------------------------------------------
# File records
# ---------------------------------------------------------------------------


def _safe_filename(name: str) -> str:
    return re.sub(r"[^a-zA-Z0-9.-]", "_", name)


def add_file(
    ws: dict[str, Any],
    source: str,
    category: Optional[str] = None,
    folder_name: Optional[str] = None,
    description: str = "",
    now: DateInput = None,
) -> dict[str, Any]:
    """
    Register a file in the workspace and return the new record.

    `source` is either a local path (must exist) or an http(s) URL.
    Only metadata is stored; the file itself is not copied.
    """
    source = (source or "").strip()
    if not source:
        raise ValueError("No file provided")

    if source.startswith(("http://", "https://")):
        original_name = unquote(Path(urlparse(source).path).name) or "download"
        size = 0
        url = source
    else:
        p = Path(source)
        if not p.is_file():
            raise ValueError(f"File not found: {source}")
        original_name = p.name
        size = p.stat().st_size
        url = str(p.resolve())

    created = to_datetime(now)
    mime_type = mimetypes.guess_type(original_name)[0] or "application/octet-stream"

    files = _records(ws, "file")
    record = {
        "id": _next_id(files),
        "filename": f"{int(created.timestamp() * 1000)}-{_safe_filename(original_name)}",
        "original_name": original_name,
        "mime_type": mime_type,
        "size": size,
        "url": url,
        "category": (category or "").strip() or UNCATEGORIZED,
        "description": description or "",
        "folder_name": (folder_name or "").strip() or None,
        "deadline": None,
        "created_at": created.isoformat(timespec="seconds"),
    }
    files.append(record)
    return record


def set_category(ws: dict[str, Any], file_id: int, category: str) -> dict[str, Any]:
    category = (category or "").strip()
    if not category:
        raise ValueError("Category is required")
    record = find_record(ws, "file", file_id)
    record["category"] = category
    return record


def group_files(ws: dict[str, Any], limit: Optional[int] = None) -> list[dict[str, Any]]:
    """
    Group file records by folder_name (files without a folder stand alone).

    Each group reports the newest file's fields plus file_count and the
    summed size, newest group first.
    """
    groups: dict[Any, list[dict[str, Any]]] = {}
    for f in ws.get("files", []):
        key = ("folder", f["folder_name"]) if f.get("folder_name") else ("file", f.get("id"))
        groups.setdefault(key, []).append(f)

    out: list[dict[str, Any]] = []
    for members in groups.values():
        newest = max(members, key=lambda f: (str(f.get("created_at") or ""), f.get("id") or 0))
        out.append(
            {
                **newest,
                "file_count": len(members),
                "size": sum(int(f.get("size") or 0) for f in members),
            }
        )

    out.sort(key=lambda g: str(g.get("created_at") or ""), reverse=True)
    return out if limit is None else out[:limit]


def category_stats(ws: dict[str, Any]) -> list[tuple[str, int]]:
    """
    Number of files per category, most used first.
    """
    counts = Counter(str(f.get("category") or UNCATEGORIZED) for f in ws.get("files", []))
    return sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))


# ---------------------------------------------------------------------------
# Shared operations
# ---------------------------------------------------------------------------


def set_deadline(
    ws: dict[str, Any],
    kind: str,
    record_id: int,
    value: DateInput,
    now: DateInput = None,
) -> dict[str, Any]:
    """
    Set or clear the deadline of a content item or file.

    value: ISO date, "sem-end" (end of the semester containing `now`),
    or None / "" / "none" to clear.
    """
    record = find_record(ws, kind, record_id)

    if isinstance(value, str) and value.strip().lower() == "none":
        value = None
    if isinstance(value, str) and value.strip().lower() == "sem-end":
        value = semester_end_deadline(now)

    record["deadline"] = _normalize_deadline(value)
    if kind == "content":
        record["updated_at"] = _timestamp(now)
    return record


def delete_record(ws: dict[str, Any], kind: str, record_id: int) -> dict[str, Any]:
    record = find_record(ws, kind, record_id)
    _records(ws, kind).remove(record)
    return record
