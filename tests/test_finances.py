import unittest

from oskmanager.finances import (
    finance_row,
    finance_rows,
    financial_summary,
    format_currency,
    format_currency_short,
)
from oskmanager.model import CoursePrices
from tests.helpers import course_res


class TestFinances(unittest.TestCase):
    def setUp(self) -> None:
        self.prices = CoursePrices(A=2800, B=3200, C=4500, D=6000)

    def test_single_unpaid_reservation(self) -> None:
        summary = financial_summary([course_res(category="B")], self.prices)
        self.assertEqual(summary.total_revenue, 3200)
        self.assertEqual(summary.total_paid, 0)
        self.assertEqual(summary.total_outstanding, 3200)

    def test_missing_category_defaults_to_b(self) -> None:
        row = finance_row(course_res(category=None), self.prices)
        self.assertEqual(row.category, "B")
        self.assertEqual(row.price, 3200)

    def test_unknown_category_costs_nothing(self) -> None:
        row = finance_row(course_res(category="X"), self.prices)
        self.assertEqual(row.price, 0)

    def test_unpaid_flag_ignores_amount(self) -> None:
        row = finance_row(course_res(category="A", advance_paid=False, advance_amount=500), self.prices)
        self.assertEqual(row.paid, 0)
        self.assertEqual(row.remaining, 2800)
        self.assertFalse(row.is_paid)

    def test_overpaid_row_is_floored_but_total_is_not(self) -> None:
        reservations = [
            course_res("r1", category="A", advance_paid=True, advance_amount=3000),
            course_res("r2", category="B", advance_paid=True, advance_amount=300),
        ]
        rows = finance_rows(reservations, self.prices)
        self.assertEqual(rows[0].remaining, 0)
        self.assertTrue(rows[0].is_paid)
        self.assertEqual(rows[1].remaining, 2900)

        summary = financial_summary(reservations, self.prices)
        self.assertEqual(summary.total_revenue, 6000)
        self.assertEqual(summary.total_paid, 3300)
        self.assertEqual(summary.total_outstanding, 2700)

        summary = financial_summary(reservations[:1], self.prices)
        self.assertEqual(summary.total_outstanding, -200)

    def test_currency_formatting(self) -> None:
        self.assertEqual(format_currency(3200), "3200.00 zł")
        self.assertEqual(format_currency(12.5), "12.50 zł")
        self.assertEqual(format_currency_short(3200), "3200 zł")
        self.assertEqual(format_currency_short(12.5), "12.50 zł")


if __name__ == "__main__":
    unittest.main()
