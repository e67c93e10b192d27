import unittest
from datetime import date

from trainsync.domain.errors import FormatError
from trainsync.ingest.tabular import detect_delimiter, parse, serialize_services
from trainsync.services.import_merger import build_scheduled_services

OUT_9339 = ["12:22", "13:18", "13:44", "13:53", "14:45", "15:50"] + ["-"] * 6
RET_9320 = ["-"] * 6 + ["-", "-", "-", "09:43", "10:09", "11:05"]


def line(first: str, train: str, times: list[str], sep: str = ";") -> str:
    return sep.join([first, train, *times])


class DelimiterTests(unittest.TestCase):
    def test_priority_tab_then_semicolon_then_comma(self):
        self.assertEqual(detect_delimiter("a\tb;c,d"), "\t")
        self.assertEqual(detect_delimiter("a;b,c"), ";")
        self.assertEqual(detect_delimiter("a,b"), ",")
        self.assertEqual(detect_delimiter("ab"), ",")

    def test_each_line_detected_independently(self):
        text = "\n".join(
            [
                line("Friday", "9320", RET_9320, sep="\t"),
                line("Friday", "9339", OUT_9339, sep=","),
            ]
        )
        rows = parse(text)
        self.assertEqual([r.train_id for r in rows], ["9320", "9339"])
        self.assertEqual(rows[1].times, OUT_9339)


class WeekdayRowsTests(unittest.TestCase):
    def test_header_noise_is_skipped_and_reference_dates_assigned(self):
        text = "\n".join(
            [
                "Régime export;generated 2025-06-01",
                "Day;Train;PNO;WNH;BRU;BRU;HDK;AMS;AMS;HDK;BRU;BRU;WNH;PNO",
                line("Friday", "9320", RET_9320),
                line("SAMEDI", "9395", OUT_9339),
            ]
        )
        rows = parse(text)
        self.assertEqual(len(rows), 2)
        self.assertEqual(rows[0].date, date(2025, 1, 10))
        self.assertEqual(rows[0].day_of_week, "friday")
        self.assertTrue(rows[0].is_template)
        self.assertEqual(rows[1].date, date(2025, 1, 11))
        self.assertEqual(rows[1].day_of_week, "saturday")

    def test_continuation_row_inherits_weekday(self):
        text = "\n".join([line("vendredi", "9320", RET_9320), line("", "9339", OUT_9339)])
        rows = parse(text)
        self.assertEqual([r.day_of_week for r in rows], ["friday", "friday"])
        self.assertTrue(all(r.date == date(2025, 1, 10) for r in rows))


class DateRowsTests(unittest.TestCase):
    def test_weekday_derived_from_date(self):
        rows = parse(line("2025-07-04", "9339", OUT_9339))
        self.assertEqual(rows[0].date, date(2025, 7, 4))
        self.assertEqual(rows[0].day_of_week, "friday")
        self.assertFalse(rows[0].is_template)

    def test_continuation_row_inherits_date(self):
        text = "\n".join(
            [
                line("2025-07-05", "9395", OUT_9339),
                line("", "9396", RET_9320),
                line("2025-07-04", "9339", OUT_9339),
                line("", "9320", RET_9320),
            ]
        )
        rows = parse(text)
        self.assertEqual(
            [(r.date.isoformat(), r.train_id) for r in rows],
            [
                ("2025-07-05", "9395"),
                ("2025-07-05", "9396"),
                ("2025-07-04", "9339"),
                ("2025-07-04", "9320"),
            ],
        )

    def test_mode_switches_from_weekday_to_date(self):
        text = "\n".join(
            [
                line("Friday", "9320", RET_9320),
                line("2025-07-05", "9395", OUT_9339),
                line("", "9396", OUT_9339),
            ]
        )
        rows = parse(text)
        self.assertEqual(rows[2].date, date(2025, 7, 5))
        self.assertFalse(rows[2].is_template)

    def test_impossible_date_is_rejected(self):
        with self.assertRaises(FormatError):
            parse(line("2025-02-30", "9339", OUT_9339))


class TolerantSkippingTests(unittest.TestCase):
    def test_short_lines_and_blank_train_ids_are_skipped(self):
        text = "\n".join(
            [
                line("Friday", "9320", RET_9320),
                "Friday;9999;12:00",
                line("", "  ", OUT_9339),
                line("", "9339", OUT_9339),
            ]
        )
        rows = parse(text)
        self.assertEqual([r.train_id for r in rows], ["9320", "9339"])

    def test_thirteen_columns_pads_last_time(self):
        rows = parse(line("Friday", "9339", OUT_9339[:11]))
        self.assertEqual(len(rows[0].times), 12)
        self.assertEqual(rows[0].times[11], "")


class FailureTests(unittest.TestCase):
    def test_empty_input(self):
        with self.assertRaises(FormatError):
            parse("   \n\n")

    def test_no_recognizable_first_column(self):
        with self.assertRaises(FormatError) as ctx:
            parse(line("Train", "9339", OUT_9339))
        self.assertIn("first row must contain a day of week or date", str(ctx.exception))

    def test_continuation_without_context(self):
        text = "\n".join(["Friday;9320;09:43", line("", "9339", OUT_9339)])
        with self.assertRaises(FormatError) as ctx:
            parse(text)
        self.assertIn("first row must contain a day of week or date", str(ctx.exception))

    def test_every_line_too_short(self):
        with self.assertRaises(FormatError):
            parse("Friday;9320;09:43\nSaturday;9395;07:18")


class SerializeServicesTests(unittest.TestCase):
    def test_dated_services_read_back(self):
        text = "\n".join(
            [line("2025-07-04", "9339", OUT_9339), line("2025-07-10", "9303", OUT_9339)]
        )
        services = build_scheduled_services(parse(text), "p")
        out = serialize_services(services, delimiter="\t")
        self.assertTrue(out.startswith("Date\tTrain\tPNO (dep)"))
        rows = parse(out)
        self.assertEqual([(r.date, r.train_id) for r in rows], [s.key for s in services])
        self.assertEqual(rows[0].times, OUT_9339)


if __name__ == "__main__":
    unittest.main()
