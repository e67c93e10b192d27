import io
import json
import os
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout

from trainsync.scripts.reconcile_csv import build_report, main

OUT_9339 = ["12:22", "13:18", "13:44", "13:53", "14:45", "15:50"] + ["-"] * 6
RET_9320 = ["-"] * 6 + ["-", "-", "-", "09:43", "10:09", "11:05"]

TEXT = "\n".join(
    [
        "\t".join(["Friday", "9320", *RET_9320]),
        "\t".join(["", "9339", *OUT_9339]),
        "\t".join(["2025-07-04", "9339", "12:20", *OUT_9339[1:]]),
    ]
)


class BuildReportTests(unittest.TestCase):
    def test_report(self):
        report = build_report(TEXT, "2025-06-27", "2025-07-11", "July", auto_rollout=True)
        self.assertEqual(report["period"]["regime_days"], ["friday"])
        self.assertEqual(report["overwritten"], ["Train 9339 on 2025-07-04"])
        self.assertEqual(report["stats"]["total"], 6)
        self.assertEqual(report["stats"]["total_discrepancies"], 0)
        row = next(r for r in report["services"] if r["service_id"] == "actual-9339-2025-07-04")
        self.assertEqual(row["checks"], {"system_b": "consistent", "system_c": "consistent"})
        self.assertEqual(row["differences"], {"system_b": [], "system_c": []})


class MainTests(unittest.TestCase):
    def setUp(self):
        fd, self.path = tempfile.mkstemp(suffix=".tsv")
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(TEXT)

    def tearDown(self):
        os.unlink(self.path)

    def test_prints_json(self):
        out = io.StringIO()
        with redirect_stdout(out):
            code = main([self.path, "--start", "2025-06-27", "--end", "2025-07-11"])
        self.assertEqual(code, 0)
        report = json.loads(out.getvalue())
        self.assertEqual(report["period"]["id"], "import")
        self.assertEqual(len(report["services"]), 6)

    def test_failure_exit_code(self):
        err = io.StringIO()
        with redirect_stderr(err):
            code = main([self.path, "--start", "2025-07-05", "--end", "2025-07-11"])
        self.assertEqual(code, 2)
        self.assertIn("Import failed", err.getvalue())


if __name__ == "__main__":
    unittest.main()
