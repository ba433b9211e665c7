import tempfile
import unittest
from datetime import date, datetime
from pathlib import Path

from oskmanager.errors import ValidationError
from oskmanager.export_report import (
    ExportFormat,
    ExportPeriod,
    build_schedule_report,
    build_students_report,
    is_date_in_period,
    week_bounds,
    write_report,
)
from tests.helpers import sample_state


NOW = datetime(2024, 3, 1, 14, 5, 9)


class TestPeriodFilter(unittest.TestCase):
    def test_week_starts_on_monday(self) -> None:
        # 2024-03-03 is a Sunday: its week starts on Monday 2024-02-26
        self.assertEqual(week_bounds(date(2024, 3, 3)), (date(2024, 2, 26), date(2024, 3, 3)))
        self.assertEqual(week_bounds(date(2024, 2, 26)), (date(2024, 2, 26), date(2024, 3, 3)))

    def test_periods(self) -> None:
        today = date(2024, 3, 1)
        self.assertTrue(is_date_in_period("2024-03-01", ExportPeriod.DAY, today))
        self.assertFalse(is_date_in_period("2024-03-02", ExportPeriod.DAY, today))
        self.assertTrue(is_date_in_period("2024-02-26", ExportPeriod.WEEK, today))
        self.assertFalse(is_date_in_period("2024-03-04", ExportPeriod.WEEK, today))
        self.assertTrue(is_date_in_period("2024-03-31", ExportPeriod.MONTH, today))
        self.assertFalse(is_date_in_period("2023-03-01", ExportPeriod.MONTH, today))
        self.assertTrue(is_date_in_period("1999-01-01", ExportPeriod.ALL, today))

    def test_unparseable_date_never_matches(self) -> None:
        self.assertFalse(is_date_in_period("not-a-date", ExportPeriod.ALL, date(2024, 3, 1)))


class TestScheduleReport(unittest.TestCase):
    def test_full_text(self) -> None:
        report = build_schedule_report(sample_state(), ExportPeriod.ALL, today=NOW.date(), now=NOW)
        expected = (
            "Raport grafiku\n"
            "Wygenerowano: 01.03.2024, 14:05:09\n"
            "Instruktor: Wszyscy instruktorzy\n"
            "Okres: Wszystkie dane\n"
            "Liczba wpisów: 1\n"
            "========================================\n"
            "\n--- 01.03.2024 ---\n"
            "08:00 - 10:00 | Instruktor: Jan Kowalski | Kursant: Jan Nowak | Opis: Jazda\n"
        )
        self.assertEqual(report.text, expected)
        self.assertEqual(report.count, 1)
        self.assertEqual(report.filename, "grafik_Wszyscy_instruktorzy_2024-03-01.txt")
        self.assertEqual(report.mime_type, "text/plain")

    def test_instructor_filter(self) -> None:
        report = build_schedule_report(sample_state(), instructor_id="inst1", today=NOW.date(), now=NOW)
        self.assertIn("Instruktor: Jan Kowalski\n", report.text)
        self.assertEqual(report.filename, "grafik_Jan_Kowalski_2024-03-01.txt")

        with self.assertRaises(ValidationError):
            build_schedule_report(sample_state(), instructor_id="inst2", today=NOW.date(), now=NOW)

    def test_day_period_without_entries(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            build_schedule_report(sample_state(), ExportPeriod.DAY, today=date(2024, 3, 2), now=NOW)
        self.assertEqual(str(ctx.exception), "Brak danych do wyeksportowania dla wybranych kryteriów.")

    def test_month_period_header(self) -> None:
        report = build_schedule_report(sample_state(), ExportPeriod.MONTH, today=NOW.date(), now=NOW)
        self.assertIn("Okres: marzec 2024\n", report.text)

    def test_doc_format_only_changes_type_and_extension(self) -> None:
        txt = build_schedule_report(sample_state(), today=NOW.date(), now=NOW)
        doc = build_schedule_report(sample_state(), fmt=ExportFormat.DOC, today=NOW.date(), now=NOW)
        self.assertEqual(txt.text, doc.text)
        self.assertEqual(doc.mime_type, "application/msword")
        self.assertTrue(doc.filename.endswith(".doc"))


class TestStudentsReport(unittest.TestCase):
    def test_all_lists_every_reservation_with_dates(self) -> None:
        report = build_students_report(sample_state(), ExportPeriod.ALL, today=NOW.date(), now=NOW)
        self.assertEqual(report.count, 2)
        self.assertIn("Liczba rezerwacji: 2\n", report.text)
        self.assertLess(report.text.index("--- 01.03.2024 ---"), report.text.index("--- 05.03.2024 ---"))
        self.assertIn("Kurs: Kat B 03/2024", report.text)
        self.assertIn("Kurs: Indywidualny - A", report.text)
        self.assertIn("Zaliczka: Zapłacono (300 zł)", report.text)
        self.assertIn("Zaliczka: Nie zapłacono", report.text)
        self.assertEqual(report.filename, "eksport_kursantow_2024-03-01.txt")

    def test_day_period_uses_reference_date(self) -> None:
        report = build_students_report(sample_state(), ExportPeriod.DAY, today=date(2024, 3, 5), now=NOW)
        self.assertEqual(report.count, 1)
        self.assertIn("Imię i nazwisko: Ewa Lis", report.text)
        self.assertNotIn("Jan Nowak", report.text)

    def test_week_period(self) -> None:
        report = build_students_report(sample_state(), ExportPeriod.WEEK, today=date(2024, 3, 3), now=NOW)
        self.assertEqual(report.count, 1)
        self.assertIn("Okres: 26.02.2024 - 03.03.2024\n", report.text)

    def test_course_filter(self) -> None:
        report = build_students_report(sample_state(), course_id="c1", today=NOW.date(), now=NOW)
        self.assertEqual(report.count, 1)
        self.assertIn("Kurs: Kat B 03/2024\n", report.text.split("=" * 40)[0])

    def test_reservation_without_dates_is_skipped(self) -> None:
        state = sample_state()
        state.courses = []
        report = build_students_report(state, today=NOW.date(), now=NOW)
        self.assertEqual(report.count, 1)


class TestWriteReport(unittest.TestCase):
    def test_write_creates_file(self) -> None:
        report = build_schedule_report(sample_state(), today=NOW.date(), now=NOW)
        with tempfile.TemporaryDirectory() as d:
            out = write_report(report, Path(d) / "exports")
            self.assertEqual(out.name, report.filename)
            self.assertEqual(out.read_text(encoding="utf-8"), report.text)


if __name__ == "__main__":
    unittest.main()
