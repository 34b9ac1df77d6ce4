import tempfile
import unittest
from pathlib import Path

from semdesk.export_ics import export_deadlines_to_ics


class TestExportICS(unittest.TestCase):
    def test_export_creates_all_day_events(self) -> None:
        records = [
            {
                "id": 7,
                "source_type": "content",
                "title": "[AI 教學計畫] - 期末報告",
                "type": "校內計畫",
                "description": "聯絡窗口: 王小明",
                "deadline": "2026-07-15",
            },
            {"id": 3, "source_type": "file", "original_name": "form.docx", "deadline": None},
            {"id": 4, "source_type": "file", "original_name": "bad.docx", "deadline": "soon"},
        ]

        with tempfile.TemporaryDirectory() as d:
            out = Path(d) / "out.ics"
            n = export_deadlines_to_ics(records, out)
            self.assertEqual(n, 1)
            text = out.read_text(encoding="utf-8")
            self.assertIn("BEGIN:VCALENDAR", text)
            self.assertIn("UID:content-7@semdesk", text)
            self.assertIn("DTSTART;VALUE=DATE:20260715", text)
            self.assertIn("DTEND;VALUE=DATE:20260716", text)
            self.assertIn("SUMMARY:[校內計畫] [AI 教學計畫] - 期末報告", text)
            self.assertIn(b"\r\n", out.read_bytes())


if __name__ == "__main__":
    unittest.main()
