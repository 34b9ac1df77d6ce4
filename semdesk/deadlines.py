"""
Deadline classification.

Given content items and file records that carry a deadline, compute how many
days are left and whether the deadline is urgent or already overdue.

Display window for "upcoming deadlines" has two bounds:
    deadline >= now - 7 days     (applied when the records are collected)
    days_until <= 3              (applied before display)
so the list shows roughly one week of overdue items plus the next three days.
"""

from __future__ import annotations

import logging
import math
from datetime import timedelta
from typing import Any

from semdesk.model import DeadlineStatus
from semdesk.semester import DateInput, to_datetime

logger = logging.getLogger(__name__)

URGENT_HORIZON_DAYS = 3
OVERDUE_LOOKBACK_DAYS = 7


def days_until(deadline: DateInput, now: DateInput = None) -> int:
    """
    Signed number of days from now to the deadline, rounded up.
    """
    if deadline is None:
        raise ValueError("deadline is required")
    delta = to_datetime(deadline) - to_datetime(now)
    return math.ceil(delta / timedelta(days=1))


def classify_deadline(deadline: DateInput, now: DateInput = None) -> DeadlineStatus:
    """
    Classify a deadline relative to `now`.

    Overdue: days_until < 0
    Urgent:  0 <= days_until <= 3
    """
    n = days_until(deadline, now)
    return DeadlineStatus(
        days_until=n,
        is_urgent=0 <= n <= URGENT_HORIZON_DAYS,
        is_overdue=n < 0,
    )


def collect_deadline_records(workspace: dict[str, Any]) -> list[dict[str, Any]]:
    """
    Collect all content items and files that have a deadline set.

    Each returned dict is a copy tagged with source_type "content" or "file".
    Archived content is left out.
    """
    out: list[dict[str, Any]] = []

    for item in workspace.get("content", []):
        if not item.get("deadline") or item.get("status") == "archived":
            continue
        out.append({**item, "source_type": "content"})

    for f in workspace.get("files", []):
        if not f.get("deadline"):
            continue
        out.append({**f, "source_type": "file"})

    return out


def upcoming_deadlines(
    records: list[dict[str, Any]],
    now: DateInput = None,
    horizon_days: int = URGENT_HORIZON_DAYS,
    lookback_days: int = OVERDUE_LOOKBACK_DAYS,
) -> list[dict[str, Any]]:
    """
    Filter and sort records for the "upcoming deadlines" list.

    Both window bounds are applied. Returned records are copies enriched
    with days_until / is_urgent / is_overdue, sorted by deadline.
    """
    current = to_datetime(now)
    oldest = current - timedelta(days=lookback_days)

    parsed: list[tuple[Any, dict[str, Any]]] = []
    for rec in records:
        raw = rec.get("deadline")
        if not raw:
            continue
        try:
            deadline = to_datetime(raw)
        except (ValueError, TypeError):
            logger.warning("Skipping record %s with invalid deadline %r", rec.get("id"), raw)
            continue

        # query-layer bound
        if deadline < oldest:
            continue

        status = classify_deadline(deadline, current)
        # display bound
        if status.days_until > horizon_days:
            continue

        parsed.append(
            (
                deadline,
                {
                    **rec,
                    "days_until": status.days_until,
                    "is_urgent": status.is_urgent,
                    "is_overdue": status.is_overdue,
                },
            )
        )

    parsed.sort(key=lambda pair: pair[0])
    return [rec for _, rec in parsed]
