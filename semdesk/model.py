"""
Central data model definitions used across the project.

Workspace records (content items, file records) are kept as plain JSON dicts,
exactly as they are stored in workspace.json. The dataclasses below describe
the values the semester engine and the deadline helpers compute on demand.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import date
from typing import Dict


@dataclass(frozen=True)
class SemesterRange:
    """
    Inclusive date range of one academic semester.
    """

    start: date
    end: date

    @property
    def start_iso(self) -> str:
        return self.start.isoformat()

    @property
    def end_iso(self) -> str:
        return self.end.isoformat()

    def as_dict(self) -> Dict[str, str]:
        return {"start": self.start_iso, "end": self.end_iso}


@dataclass(frozen=True)
class DeadlineStatus:
    """
    Classification of one deadline relative to "now".

    days_until is negative when the deadline has passed.
    """

    days_until: int
    is_urgent: bool
    is_overdue: bool

    def badge_text(self) -> str:
        if self.is_overdue:
            return f"Overdue by {abs(self.days_until)} days"
        if self.days_until == 0:
            return "Due Today"
        return f"Due in {self.days_until} days"
