"""
Financial aggregation.

Price of a reservation = price of its category (B when the category is
missing, 0 for an unknown category). Paid = the advance, if it was paid.

Note the asymmetry kept on purpose from the original dashboard:
- a single row floors its remaining amount at zero (overpaid -> 0 to pay)
- the aggregate outstanding total is revenue - paid, which can go negative
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List

from oskmanager.model import DEFAULT_CATEGORY, CoursePrices, Reservation


@dataclass
class FinanceRow:
    reservation_id: str
    student: str
    category: str
    price: float
    paid: float
    remaining: float
    is_paid: bool


@dataclass
class FinancialSummary:
    total_revenue: float
    total_paid: float
    total_outstanding: float


def _paid_amount(reservation: Reservation) -> float:
    return reservation.advance_amount if reservation.advance_paid else 0


def finance_row(reservation: Reservation, prices: CoursePrices) -> FinanceRow:
    category = reservation.category or DEFAULT_CATEGORY
    price = prices.get(category, 0)
    paid = _paid_amount(reservation)
    remaining = price - paid
    return FinanceRow(
        reservation_id=reservation.id,
        student=reservation.student.name,
        category=category,
        price=price,
        paid=paid,
        remaining=max(0, remaining),
        is_paid=remaining <= 0,
    )


def finance_rows(reservations: Iterable[Reservation], prices: CoursePrices) -> List[FinanceRow]:
    return [finance_row(r, prices) for r in reservations]


def financial_summary(reservations: Iterable[Reservation], prices: CoursePrices) -> FinancialSummary:
    total_revenue: float = 0
    total_paid: float = 0
    for r in reservations:
        total_revenue += prices.get(r.category or DEFAULT_CATEGORY, 0)
        total_paid += _paid_amount(r)
    return FinancialSummary(
        total_revenue=total_revenue,
        total_paid=total_paid,
        total_outstanding=total_revenue - total_paid,
    )


def format_currency(amount: float) -> str:
    return f"{amount:.2f} zł"


def format_currency_short(amount: float) -> str:
    """Like format_currency, without a trailing '.00' (dashboard cards)."""
    text = f"{amount:.2f}"
    if text.endswith(".00"):
        text = text[:-3]
    return f"{text} zł"
