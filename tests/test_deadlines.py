"""
Unit tests for deadline classification and the upcoming-deadlines window.

Window used here:
- keep deadlines not older than 7 days before now
- keep only days_until <= 3 (overdue ones included)
"""

import unittest
from datetime import datetime

from semdesk.deadlines import (
    classify_deadline,
    collect_deadline_records,
    days_until,
    upcoming_deadlines,
)


class TestClassifyDeadline(unittest.TestCase):
    def test_tomorrow_is_urgent(self) -> None:
        status = classify_deadline("2026-10-02", now="2026-10-01")
        self.assertEqual(status.days_until, 1)
        self.assertTrue(status.is_urgent)
        self.assertFalse(status.is_overdue)
        self.assertEqual(status.badge_text(), "Due in 1 days")

    def test_partial_day_rounds_up(self) -> None:
        self.assertEqual(days_until("2026-10-02", now="2026-10-01T18:00:00"), 1)
        self.assertEqual(days_until("2026-10-05", now="2026-10-01T18:00:00"), 4)

    def test_same_moment_is_due_today(self) -> None:
        status = classify_deadline("2026-10-01", now="2026-10-01")
        self.assertEqual(status.days_until, 0)
        self.assertTrue(status.is_urgent)
        self.assertEqual(status.badge_text(), "Due Today")

    def test_later_today_counts_as_zero(self) -> None:
        # deadline at midnight, now a few hours later: -0.x days rounds up to 0
        self.assertEqual(days_until("2026-10-01", now="2026-10-01T09:00:00"), 0)

    def test_overdue(self) -> None:
        status = classify_deadline("2026-09-28", now="2026-10-01")
        self.assertEqual(status.days_until, -3)
        self.assertTrue(status.is_overdue)
        self.assertFalse(status.is_urgent)
        self.assertEqual(status.badge_text(), "Overdue by 3 days")

    def test_far_future_is_neither(self) -> None:
        status = classify_deadline("2026-10-10", now="2026-10-01")
        self.assertFalse(status.is_urgent)
        self.assertFalse(status.is_overdue)

    def test_missing_deadline_is_an_error(self) -> None:
        with self.assertRaises(ValueError):
            days_until(None, now="2026-10-01")


class TestUpcomingDeadlines(unittest.TestCase):
    def setUp(self) -> None:
        self.workspace = {
            "content": [
                {"id": 1, "title": "Far future", "status": "draft", "deadline": "2026-10-20"},
                {"id": 2, "title": "Tomorrow", "status": "draft", "deadline": "2026-10-02"},
                {"id": 3, "title": "Archived", "status": "archived", "deadline": "2026-10-02"},
                {"id": 4, "title": "No deadline", "status": "draft", "deadline": None},
                {"id": 5, "title": "Long overdue", "status": "draft", "deadline": "2026-09-20"},
            ],
            "files": [
                {"id": 1, "original_name": "report.pdf", "deadline": "2026-09-28"},
                {"id": 2, "original_name": "broken.pdf", "deadline": "someday"},
                {"id": 3, "original_name": "edge.pdf", "deadline": "2026-10-04"},
            ],
        }

    def test_collect_tags_source_type_and_skips_archived(self) -> None:
        records = collect_deadline_records(self.workspace)
        keys = {(r["source_type"], r["id"]) for r in records}
        self.assertIn(("content", 2), keys)
        self.assertIn(("file", 1), keys)
        self.assertNotIn(("content", 3), keys)
        self.assertNotIn(("content", 4), keys)

    def test_window_and_sort_order(self) -> None:
        now = datetime(2026, 10, 1)
        upcoming = upcoming_deadlines(collect_deadline_records(self.workspace), now=now)

        labels = [(r["source_type"], r["id"]) for r in upcoming]
        # overdue file first, then tomorrow, then the 3-day edge case
        self.assertEqual(labels, [("file", 1), ("content", 2), ("file", 3)])

        self.assertTrue(upcoming[0]["is_overdue"])
        self.assertEqual(upcoming[0]["days_until"], -3)
        self.assertEqual(upcoming[2]["days_until"], 3)
        self.assertTrue(upcoming[2]["is_urgent"])

    def test_does_not_mutate_input(self) -> None:
        records = collect_deadline_records(self.workspace)
        upcoming_deadlines(records, now="2026-10-01")
        self.assertNotIn("days_until", records[0])

    def test_lookback_bound_is_inclusive(self) -> None:
        records = [{"id": 1, "deadline": "2026-09-24"}]
        self.assertEqual(len(upcoming_deadlines(records, now="2026-10-01")), 1)
        self.assertEqual(upcoming_deadlines(records, now="2026-10-01T00:00:01"), [])


if __name__ == "__main__":
    unittest.main()
