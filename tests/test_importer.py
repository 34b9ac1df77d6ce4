"""
Unit tests for the spreadsheet import.

Import rules:
- 1 project row -> up to 3 content items (mid-term, final, reimbursement)
- rows without a project name are skipped
- unparseable dates still create the item, with deadline None
- every item is stamped with the semester of the import
"""

import tempfile
import unittest
from datetime import datetime
from io import BytesIO
from pathlib import Path
from unittest import mock

from openpyxl import Workbook

from semdesk.importer import (
    DEFAULT_IMPORT_CATEGORY,
    build_import_items,
    import_tasks,
    parse_deadline,
    read_rows,
    resolve_import_category,
)
from semdesk.storage import empty_workspace


def _make_workbook() -> Workbook:
    wb = Workbook()
    ws = wb.active
    ws.append(["計畫\n名稱", "期中 成果報告", "期末成果報告", "核銷要求", "承辦人員"])
    ws.append(["AI 教學計畫", datetime(2026, 4, 30), "2026-07-15", "", "王小明"])
    ws.append(["", "2026-05-01", "", "", ""])
    ws.append(["Robot", "", "12/01/2026", "TBD", None])
    return wb


def _workbook_bytes() -> bytes:
    buf = BytesIO()
    _make_workbook().save(buf)
    return buf.getvalue()


class TestParseDeadline(unittest.TestCase):
    def test_supported_formats(self) -> None:
        self.assertEqual(parse_deadline(datetime(2026, 4, 30, 9, 0)), "2026-04-30")
        self.assertEqual(parse_deadline("2026/3/5"), "2026-03-05")
        self.assertEqual(parse_deadline("2026-03-31 00:00:00"), "2026-03-31")
        self.assertEqual(parse_deadline("03/31/2026"), "2026-03-31")
        self.assertEqual(parse_deadline("見公告 2026/4/1 前"), "2026-04-01")

    def test_unparseable_values(self) -> None:
        self.assertIsNone(parse_deadline(""))
        self.assertIsNone(parse_deadline(None))
        self.assertIsNone(parse_deadline("TBD"))
        self.assertIsNone(parse_deadline("2026/13/45"))


class TestImportCategory(unittest.TestCase):
    def test_fallback_category(self) -> None:
        self.assertEqual(resolve_import_category(None), DEFAULT_IMPORT_CATEGORY)
        self.assertEqual(resolve_import_category("未分類"), DEFAULT_IMPORT_CATEGORY)
        self.assertEqual(resolve_import_category("Research"), "Research")


class TestBuildItems(unittest.TestCase):
    def test_rows_to_items(self) -> None:
        rows = read_rows(_workbook_bytes())
        self.assertEqual(len(rows), 3)

        items = build_import_items(rows, semester="1142", category="校內計畫")
        titles = [i["title"] for i in items]
        self.assertEqual(
            titles,
            [
                "[AI 教學計畫] - 期中報告",
                "[AI 教學計畫] - 期末報告",
                "[Robot] - 期末報告",
                "[Robot] - 核銷截止",
            ],
        )
        self.assertEqual(items[0]["deadline"], "2026-04-30")
        self.assertEqual(items[1]["deadline"], "2026-07-15")
        self.assertEqual(items[2]["deadline"], "2026-12-01")
        self.assertIsNone(items[3]["deadline"])

        self.assertEqual(items[0]["description"], "聯絡窗口: 王小明")
        self.assertEqual(items[2]["description"], "")
        self.assertTrue(all(i["semester"] == "1142" and i["status"] == "draft" for i in items))

    def test_contact_header_fallback(self) -> None:
        rows = [{"計畫名稱": "X", "期中成果報告": "2026/5/1", "承辦人": "Lin"}]
        items = build_import_items(rows, semester="1142", category="c")
        self.assertEqual(items[0]["description"], "聯絡窗口: Lin")


class TestImportTasks(unittest.TestCase):
    def test_import_from_file(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "projects.xlsx"
            _make_workbook().save(p)

            ws = empty_workspace()
            created = import_tasks(ws, p, now="2026-03-15")

            self.assertEqual(len(created), 4)
            self.assertEqual(len(ws["content"]), 4)
            self.assertEqual([c["id"] for c in created], [1, 2, 3, 4])
            self.assertTrue(all(c["semester"] == "1142" for c in created))
            self.assertTrue(all(c["type"] == DEFAULT_IMPORT_CATEGORY for c in created))

    def test_import_from_url(self) -> None:
        resp = mock.Mock()
        resp.content = _workbook_bytes()
        resp.raise_for_status.return_value = None

        with mock.patch("semdesk.importer.requests.get", return_value=resp) as get:
            ws = empty_workspace()
            created = import_tasks(ws, "https://example.com/p.xlsx", category="Research", now="2026-10-01")

        get.assert_called_once_with("https://example.com/p.xlsx", timeout=30)
        self.assertEqual(len(created), 4)
        self.assertEqual(created[0]["semester"], "1151")
        self.assertEqual(created[0]["type"], "Research")

    def test_not_a_workbook(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "broken.xlsx"
            p.write_text("definitely not a zip", encoding="utf-8")
            with self.assertRaises(ValueError):
                read_rows(p)


if __name__ == "__main__":
    unittest.main()
