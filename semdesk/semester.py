"""
Taiwan academic-semester calendar.

A semester id is the Taiwan academic year followed by the half digit:

    1142  ->  academic year 114, 2nd half (Feb 1 2026 - Jul 31 2026)
    1151  ->  academic year 115, 1st half (Aug 1 2026 - Jan 31 2027)

Rules:
- Aug 1 .. Jan 31 -> half 1, academic year = CE year of the August - 1911
- Feb 1 .. Jul 31 -> half 2, academic year = CE year - 1912

Every function takes the date it works on as an argument. Leaving it out
means "now" and triggers a fresh clock read on every call, so callers that
need one coherent reading (e.g. a dashboard render) should read the clock
once and pass it down.
"""

from __future__ import annotations

import math
from datetime import date, datetime, time, timedelta
from typing import Optional, Tuple, Union

from semdesk.model import SemesterRange

DateInput = Union[None, str, date, datetime]

# Offset between CE years and Taiwan (ROC) years
ROC_OFFSET = 1911


# ---------------------------------------------------------------------------
# Date input
# ---------------------------------------------------------------------------


def to_datetime(value: DateInput = None) -> datetime:
    """
    Normalize a date input to a naive local datetime.

    Accepts None (current wall-clock time), datetime, date or an ISO-8601
    date/datetime string. Aware datetimes are converted to local time.

    Raises ValueError for strings that are not ISO dates and TypeError for
    anything else. Silently falling back to "now" would hide caller bugs.
    """
    if value is None:
        return datetime.now()

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone().replace(tzinfo=None)
        return value

    if isinstance(value, date):
        return datetime.combine(value, time.min)

    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("Empty date string")
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise ValueError(f"Invalid date: {value!r}") from None
        return to_datetime(parsed)

    raise TypeError(f"Unsupported date value: {value!r}")


def to_date(value: DateInput = None) -> date:
    """Day-granularity variant of to_datetime()."""
    return to_datetime(value).date()


# ---------------------------------------------------------------------------
# Semester ids
# ---------------------------------------------------------------------------


def current_semester(when: DateInput = None) -> str:
    """
    Return the semester id that contains the given date, e.g. "1142".
    """
    d = to_datetime(when)
    year = d.year
    month = d.month

    if 2 <= month <= 7:
        return f"{year - ROC_OFFSET - 1}2"

    # January still belongs to the academic year that started last August
    start_year = year - 1 if month == 1 else year
    return f"{start_year - ROC_OFFSET}1"


def parse_semester_id(semester_id: Optional[str]) -> Optional[Tuple[int, int]]:
    """
    Split a semester id into (taiwan_year, half).

    Returns None for anything that is not "<digits><1|2>" with at least
    four characters in total.
    """
    if not isinstance(semester_id, str) or len(semester_id) < 4:
        return None

    year_part, half_part = semester_id[:-1], semester_id[-1]
    if not year_part.isdigit() or half_part not in ("1", "2"):
        return None

    return int(year_part), int(half_part)


def semester_sort_key(semester_id: str) -> Tuple[int, int]:
    """
    Ordering key for semester ids. Malformed ids sort first.
    """
    parsed = parse_semester_id(semester_id)
    return parsed if parsed is not None else (-1, 0)


def next_semester_id(semester_id: str) -> Optional[str]:
    parsed = parse_semester_id(semester_id)
    if parsed is None:
        return None
    year, half = parsed
    if half == 1:
        return f"{year}2"
    return f"{year + 1}1"


def previous_semester_id(semester_id: str) -> Optional[str]:
    parsed = parse_semester_id(semester_id)
    if parsed is None:
        return None
    year, half = parsed
    if half == 2:
        return f"{year}1"
    if year == 0:
        return None
    return f"{year - 1}2"


# ---------------------------------------------------------------------------
# Date ranges and derived values
# ---------------------------------------------------------------------------


def semester_date_range(semester_id: Optional[str]) -> Optional[SemesterRange]:
    """
    Return the inclusive date range of a semester, or None if the id
    cannot be parsed or the range falls outside the supported calendar.
    """
    parsed = parse_semester_id(semester_id)
    if parsed is None:
        return None

    tw_year, half = parsed
    try:
        if half == 1:
            # 1st half: Aug 1 .. Jan 31 of the following CE year
            return SemesterRange(
                start=date(tw_year + ROC_OFFSET, 8, 1),
                end=date(tw_year + ROC_OFFSET + 1, 1, 31),
            )

        ce_year = tw_year + ROC_OFFSET + 1
        return SemesterRange(start=date(ce_year, 2, 1), end=date(ce_year, 7, 31))
    except ValueError:
        # CE year beyond datetime.MAXYEAR
        return None


def _range_bounds(d: datetime) -> Optional[Tuple[datetime, datetime]]:
    sem_range = semester_date_range(current_semester(d))
    if sem_range is None:
        return None
    return (
        datetime.combine(sem_range.start, time.min),
        datetime.combine(sem_range.end, time.min),
    )


def semester_progress(when: DateInput = None) -> int:
    """
    Percentage (0..100) of the current semester that has elapsed.

    The boundaries are midnight of the first and the last day, so the whole
    last day already reports 100.
    """
    current = to_datetime(when)
    bounds = _range_bounds(current)
    if bounds is None:
        return 0

    start, end = bounds
    if current <= start:
        return 0
    if current >= end:
        return 100

    ratio = (current - start) / (end - start)
    # round half up, not Python's banker's rounding
    return int(math.floor(ratio * 100 + 0.5))


def semester_week(when: DateInput = None) -> int:
    """
    1-based teaching week of the current semester. Partial days do not count.
    """
    current = to_datetime(when)
    bounds = _range_bounds(current)
    if bounds is None:
        return 0

    start, _ = bounds
    if current <= start:
        return 1

    diff_days = (current - start) // timedelta(days=1)
    return diff_days // 7 + 1


def semester_end_deadline(now: DateInput = None) -> Optional[str]:
    """
    ISO end date of the semester containing `now`.

    Used as the quick-set value when a deadline should simply be
    "end of this semester".
    """
    sem_range = semester_date_range(current_semester(now))
    return sem_range.end_iso if sem_range else None
