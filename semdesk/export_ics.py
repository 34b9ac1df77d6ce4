"""
iCalendar (.ics) export.

We convert deadlines into all-day events that can be imported into:
- Google Calendar
- Outlook
- Apple Calendar
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from semdesk.semester import to_date


def _ics_escape(text: str) -> str:
    """
    Escape text for ICS fields (very small subset, sufficient for our use).
    """
    return (
        text.replace("\\", "\\\\").replace("\r\n", "\\n").replace("\n", "\\n").replace(";", "\\;").replace(",", "\\,")
    )


def export_deadlines_to_ics(records: list[dict[str, Any]], out_path: str | Path) -> int:
    """
    Export deadline records to an .ics file. Returns number of exported events.

    Records without a (valid) deadline are skipped.
    """
    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)

    lines: list[str] = []
    lines.append("BEGIN:VCALENDAR")
    lines.append("VERSION:2.0")
    lines.append("PRODID:-//semdesk//EN")
    lines.append("CALSCALE:GREGORIAN")

    dtstamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")

    count = 0
    for rec in records:
        raw = rec.get("deadline")
        if not raw:
            continue
        try:
            day = to_date(raw)
        except (ValueError, TypeError):
            continue

        source_type = str(rec.get("source_type") or "content")
        title = str(rec.get("title") or rec.get("original_name") or "").strip()
        category = str(rec.get("category") or rec.get("type") or "").strip()
        description = str(rec.get("description") or "").strip()

        summary = title if title else "Deadline"
        if category:
            summary = f"[{category}] {summary}"

        uid = f"{source_type}-{rec.get('id')}@semdesk"

        lines.append("BEGIN:VEVENT")
        lines.append(f"UID:{_ics_escape(uid)}")
        lines.append(f"DTSTAMP:{dtstamp}")
        lines.append(f"DTSTART;VALUE=DATE:{day.strftime('%Y%m%d')}")
        lines.append(f"DTEND;VALUE=DATE:{(day + timedelta(days=1)).strftime('%Y%m%d')}")
        lines.append(f"SUMMARY:{_ics_escape(summary)}")
        if description:
            lines.append(f"DESCRIPTION:{_ics_escape(description)}")
        lines.append("END:VEVENT")
        count += 1

    lines.append("END:VCALENDAR")

    # ICS standard uses CRLF
    out.write_text("\r\n".join(lines) + "\r\n", encoding="utf-8")
    return count
