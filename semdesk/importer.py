"""
Spreadsheet import (xlsx -> content items).

Reads the first worksheet of a project-tracking spreadsheet and turns every
reporting date of every project row into one draft content item:

    計畫名稱       project name (rows without one are skipped)
    期中成果報告   mid-term report date   -> "[<project>] - 期中報告"
    期末成果報告   final report date      -> "[<project>] - 期末報告"
    核銷要求       reimbursement deadline -> "[<project>] - 核銷截止"
    承辦人員/承辦人 contact person        -> description

Headers are matched by substring with whitespace removed, because exported
sheets often contain line breaks inside header cells.

Every imported item is stamped with the semester of the import time.
"""

from __future__ import annotations

import logging
import re
import zipfile
from datetime import date, datetime
from io import BytesIO
from pathlib import Path
from typing import Any, Optional

import requests
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from semdesk.semester import DateInput, current_semester
from semdesk.storage import UNCATEGORIZED, add_content

logger = logging.getLogger(__name__)

DEFAULT_IMPORT_CATEGORY = "校內計畫"

PROJECT_HEADER = "計畫名稱"
CONTACT_HEADERS = ("承辦人員", "承辦人")

# (title suffix, header)
MILESTONES = (
    ("期中報告", "期中成果報告"),
    ("期末報告", "期末成果報告"),
    ("核銷截止", "核銷要求"),
)

_DATE_FORMATS = (
    "%Y/%m/%d",
    "%Y/%m/%d %H:%M",
    "%Y/%m/%d %H:%M:%S",
    "%m/%d/%Y",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%y",
)

_DATE_RE = re.compile(r"(\d{4})/(\d{1,2})/(\d{1,2})")


# ---------------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------------


def fetch_workbook_bytes(url: str) -> bytes:
    """
    Download a workbook from a URL.
    """
    resp = requests.get(url, timeout=30)
    resp.raise_for_status()
    return resp.content


def read_rows(source: str | Path | bytes) -> list[dict[str, Any]]:
    """
    Read the first worksheet into a list of {header: value} dicts.

    `source` may be a local path, an http(s) URL or raw xlsx bytes.
    Empty cells become "". Raises ValueError if the data is not a workbook.
    """
    if isinstance(source, bytes):
        handle: Any = BytesIO(source)
    elif str(source).startswith(("http://", "https://")):
        handle = BytesIO(fetch_workbook_bytes(str(source)))
    else:
        handle = Path(source)

    try:
        wb = load_workbook(handle, read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        raise ValueError(f"Could not read workbook: {exc}") from exc

    try:
        ws = wb.worksheets[0]
        rows = list(ws.iter_rows(values_only=True))
    finally:
        wb.close()

    if not rows:
        return []

    headers = ["" if h is None else str(h) for h in rows[0]]

    out: list[dict[str, Any]] = []
    for raw in rows[1:]:
        row: dict[str, Any] = {}
        for i, header in enumerate(headers):
            if not header:
                continue
            value = raw[i] if i < len(raw) else None
            row[header] = "" if value is None else value
        out.append(row)

    logger.debug("Read %d rows with headers %s", len(out), headers)
    return out


# ---------------------------------------------------------------------------
# Row conversion
# ---------------------------------------------------------------------------


def _squash(text: str) -> str:
    return re.sub(r"\s", "", text)


def _get_value(row: dict[str, Any], header: str) -> Any:
    """
    Value of the first column whose header contains `header` (whitespace ignored).
    """
    wanted = _squash(header)
    for key, value in row.items():
        if wanted in _squash(str(key)):
            return value
    return None


def _is_blank(value: Any) -> bool:
    return value is None or str(value).strip() == ""


def parse_deadline(value: Any) -> Optional[str]:
    """
    Convert a spreadsheet cell to an ISO date string, or None.
    """
    if _is_blank(value):
        return None

    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()

    norm = str(value).replace("-", "/").strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(norm, fmt).date().isoformat()
        except ValueError:
            continue

    match = _DATE_RE.search(norm)
    if match:
        try:
            return date(int(match.group(1)), int(match.group(2)), int(match.group(3))).isoformat()
        except ValueError:
            pass

    logger.info("Unrecognised date value %r", value)
    return None


def resolve_import_category(file_category: Optional[str]) -> str:
    """
    Category for imported items: the spreadsheet file's own category,
    unless it was never categorised.
    """
    category = (file_category or "").strip()
    if not category or category == UNCATEGORIZED:
        return DEFAULT_IMPORT_CATEGORY
    return category


def build_import_items(
    rows: list[dict[str, Any]],
    semester: str,
    category: str,
) -> list[dict[str, Any]]:
    """
    Turn spreadsheet rows into add_content() keyword arguments.
    """
    items: list[dict[str, Any]] = []

    for row in rows:
        project = _get_value(row, PROJECT_HEADER)
        if _is_blank(project):
            continue
        project = str(project).strip()

        contact = None
        for header in CONTACT_HEADERS:
            contact = _get_value(row, header)
            if not _is_blank(contact):
                break
        description = f"聯絡窗口: {str(contact).strip()}" if not _is_blank(contact) else ""

        for suffix, header in MILESTONES:
            value = _get_value(row, header)
            if _is_blank(value):
                continue
            items.append(
                {
                    "title": f"[{project}] - {suffix}",
                    "type": category,
                    "description": description,
                    "content": "",
                    "status": "draft",
                    "progress": 0,
                    "semester": semester,
                    "deadline": parse_deadline(value),
                }
            )

    return items


def import_tasks(
    ws: dict[str, Any],
    source: str | Path | bytes,
    category: Optional[str] = None,
    now: DateInput = None,
) -> list[dict[str, Any]]:
    """
    Import tracking tasks from a spreadsheet into the workspace.

    Returns the newly created content items. The caller saves the workspace.
    """
    rows = read_rows(source)
    semester = current_semester(now)
    rows_fields = build_import_items(rows, semester=semester, category=resolve_import_category(category))

    created = [add_content(ws, now=now, **fields) for fields in rows_fields]
    logger.info("Imported %d items from %d rows (semester %s)", len(created), len(rows), semester)
    return created
