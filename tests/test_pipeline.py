import json
import tempfile
import unittest
from pathlib import Path
from unittest import mock

import requests

from stormrank import cli
from stormrank.errors import StageError
from stormrank.pipeline import run

CSV = (
    "EVTYPE,FATALITIES,INJURIES,PROPDMG,PROPDMGEXP,CROPDMG,CROPDMGEXP\n"
    "TORNADO,5,10,100,K,0,\n"
    "FLOOD,1,0,2,B,1,M\n"
    "TORNADO,2,3,50,K,0,\n"
    "HAIL,0,1,5,M,2,m\n"
    "FOG,0,0,0,,0,\n"
    "HEAT,4,20,0,,0,\n"
    "WIND,0,0,7,K,,\n"
)

URL = "https://example.org/StormData.csv.bz2"


class PipelineTestCase(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        self.csv = self.tmp / "StormData.csv"
        self.csv.write_text(CSV, encoding="utf-8")

    def tearDown(self):
        self._tmp.cleanup()


class TestRun(PipelineTestCase):

    def test_full_run(self):
        a = run(self.csv, url=URL)
        self.assertEqual(len(a.records), 7)
        self.assertEqual(list(a.aggregates), ["TORNADO", "FLOOD", "HAIL", "FOG", "HEAT", "WIND"])
        self.assertEqual(a.aggregates["HAIL"].crop_damage, 2)  # lowercase code is not a unit
        self.assertEqual(a.empty_records, 1)
        self.assertEqual([x.category for x in a.rankings["damage"]][:2], ["FLOOD", "HAIL"])
        self.assertEqual([x.category for x in a.rankings["health"]], ["HEAT", "TORNADO", "FLOOD", "HAIL", "FOG"])
        self.assertEqual(a.source, self.csv)

    def test_idempotent(self):
        first = run(self.csv, url=URL)
        second = run(self.csv, url=URL)
        self.assertEqual(first.aggregates, second.aggregates)
        self.assertEqual(first.rankings, second.rankings)

    @mock.patch("stormrank.loader.requests.get")
    def test_fetch_failure_names_load_stage(self, get):
        get.side_effect = requests.ConnectionError("unreachable")
        with self.assertRaises(StageError) as ctx:
            run(self.tmp / "missing.csv", url=URL)
        self.assertEqual(ctx.exception.stage, "load")
        self.assertIn("load", str(ctx.exception))

    def test_missing_column_names_project_stage(self):
        self.csv.write_text("EVTYPE,FATALITIES\nFLOOD,1\n", encoding="utf-8")
        with self.assertRaises(StageError) as ctx:
            run(self.csv, url=URL)
        self.assertEqual(ctx.exception.stage, "project")


    def test_short_row_names_load_stage(self):
        self.csv.write_text(CSV + "HAIL,1\n", encoding="utf-8")
        with self.assertRaises(StageError) as ctx:
            run(self.csv, url=URL)
        self.assertEqual(ctx.exception.stage, "load")

    def test_logs_grand_totals(self):
        with self.assertLogs("stormrank.pipeline", level="INFO") as logs:
            run(self.csv, url=URL)
        line = next(m for m in logs.output if "Totals:" in m)
        self.assertIn("health=46", line)
        self.assertIn("damage=2,006,157,002", line)


class TestCLI(PipelineTestCase):

    def test_main_writes_report_and_export(self):
        report = self.tmp / "r" / "report.docx"
        export = self.tmp / "aggs.json"
        rc = cli.main(["--csv", str(self.csv), "--url", URL,
                       "--report", str(report), "--export", str(export)])
        self.assertEqual(rc, 0)
        self.assertTrue(report.exists())
        with open(export, encoding="utf-8") as f:
            self.assertEqual(len(json.load(f)), 6)

    def test_main_without_report(self):
        rc = cli.main(["--csv", str(self.csv), "--url", URL, "--report", "", "--top", "3"])
        self.assertEqual(rc, 0)

    @mock.patch("stormrank.loader.requests.get")
    def test_main_reports_fetch_failure(self, get):
        get.side_effect = requests.ConnectionError("unreachable")
        rc = cli.main(["--csv", str(self.tmp / "missing.csv"), "--url", URL, "--report", ""])
        self.assertEqual(rc, 1)

    def test_bad_top(self):
        self.assertEqual(cli.main(["--csv", str(self.csv), "--top", "0"]), 2)
