import tempfile
import unittest
from pathlib import Path

from stormrank.models import EventRecord
from stormrank.pipeline import analyze_records
from stormrank.report import (
    PANELS, ReportConfig, build_narrative, format_rankings, format_value,
    generate_docx_report, render_panels,
)

RECORDS = [
    EventRecord("TORNADO", 90, 900, 5, "B", 0, ""),
    EventRecord("FLOOD", 10, 50, 150, "B", 5, "B"),
    EventRecord("HEAT", 120, 300, 0, "", 0, ""),
    EventRecord("LIGHTNING", 80, 500, 1, "M", 0, ""),
    EventRecord("DROUGHT", 0, 0, 1, "B", 14, "B"),
    EventRecord("HAIL", 0, 5, 300, "M", 20, "M"),
    EventRecord("FOG", 0, 0, 0, "", 0, ""),
]


class ReportTestCase(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        self.analysis = analyze_records(RECORDS)

    def tearDown(self):
        self._tmp.cleanup()


class TestNarrative(ReportTestCase):

    def test_names_top_three_per_panel(self):
        text = build_narrative(self.analysis.rankings)
        self.assertEqual(set(text), {key for key, _, _ in PANELS})
        health = text["health"]
        self.assertIn("population health", health)
        self.assertLess(health.index("TORNADO"), health.index("LIGHTNING"))
        self.assertLess(health.index("LIGHTNING"), health.index("HEAT"))
        self.assertNotIn("FLOOD (", health)
        self.assertIn("HEAT leads by fatalities", health)

        economic = text["economic"]
        self.assertIn("economic consequences", economic)
        self.assertLess(economic.index("FLOOD"), economic.index("DROUGHT"))
        self.assertIn("US$ 155,000,000,000", economic)
        self.assertIn("DROUGHT leads by crop damage", economic)

    def test_empty_rankings(self):
        text = build_narrative({})
        self.assertIn("No event types", text["health"])
        self.assertIn("No event types", text["economic"])

    def test_format_value(self):
        self.assertEqual(format_value("injuries", 1234), "1,234")
        self.assertEqual(format_value("damage", 2_001_000_000), "US$ 2,001,000,000")

    def test_format_rankings(self):
        out = format_rankings(self.analysis.rankings)
        self.assertIn("Top 5 by Fatalities + Injuries:", out)
        self.assertIn("1. TORNADO", out)


class TestCharts(ReportTestCase):

    def test_render_panels_writes_two_images(self):
        paths = render_panels(self.analysis.rankings, self.tmp / "charts")
        self.assertEqual([p.name for p in paths], ["panel_health.png", "panel_economic.png"])
        for p in paths:
            self.assertTrue(p.exists())
            self.assertGreater(p.stat().st_size, 0)

    def test_render_panels_with_few_categories(self):
        analysis = analyze_records(RECORDS[:2])
        paths = render_panels(analysis.rankings, self.tmp)
        self.assertEqual(len(paths), 2)

    def test_docx_report(self):
        from docx import Document

        out = str(self.tmp / "out" / "storm_report.docx")
        generate_docx_report(self.analysis, out, config=ReportConfig(title="Test Report", dpi=60))
        self.assertTrue(Path(out).exists())
        self.assertTrue((self.tmp / "out" / "storm_report_health.png").exists())
        self.assertTrue((self.tmp / "out" / "storm_report_economic.png").exists())

        doc = Document(out)
        text = "\n".join(p.text for p in doc.paragraphs)
        self.assertIn("Test Report", text)
        self.assertIn("Impact on population health", text)
        self.assertIn("Impact on economic consequences", text)
        self.assertIn("1 of 7 records", text)
        self.assertEqual(len(doc.tables), 6)
