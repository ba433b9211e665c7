"""
Plain-text report export (Polish).

Two reports share the same layout:
- schedule report ("Raport grafiku"): planned instructor entries
- students report ("Raport kursantów"): reservations with a date in the period

Layout:
    header block (title, generated at, filters, period, record count)
    records grouped by date, dates ascending

The "txt" and "doc" formats produce the same text; they only differ in the
declared MIME type and the file extension.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from oskmanager.errors import ValidationError
from oskmanager.model import AppState, Reservation, ScheduleEntry
from oskmanager.reconcile import course_name, relevant_dates, scheduled_items

logger = logging.getLogger(__name__)


ALL = "all"
NO_DATA_MESSAGE = "Brak danych do wyeksportowania dla wybranych kryteriów."
RULE = "=" * 40
DIVIDER = "-" * 40

MONTHS_PL = [
    "styczeń", "luty", "marzec", "kwiecień", "maj", "czerwiec",
    "lipiec", "sierpień", "wrzesień", "październik", "listopad", "grudzień",
]


class ExportPeriod(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    ALL = "all"


class ExportFormat(str, Enum):
    TXT = "txt"
    DOC = "doc"

    @property
    def mime_type(self) -> str:
        return "text/plain" if self is ExportFormat.TXT else "application/msword"

    @property
    def extension(self) -> str:
        return self.value


@dataclass
class Report:
    text: str
    count: int
    filename_stem: str
    fmt: ExportFormat = ExportFormat.TXT

    @property
    def mime_type(self) -> str:
        return self.fmt.mime_type

    @property
    def filename(self) -> str:
        return f"{self.filename_stem}.{self.fmt.extension}"


# ---------------------------------------------------------------------------
# Period filter
# ---------------------------------------------------------------------------


def _parse_date(value: str) -> Optional[date]:
    try:
        return datetime.strptime(value.split("T")[0], "%Y-%m-%d").date()
    except (ValueError, AttributeError):
        return None


def week_bounds(today: date) -> Tuple[date, date]:
    """
    Monday..Sunday of the week containing `today`.
    """
    # isoweekday: Monday=1 .. Sunday=7
    monday = today - timedelta(days=today.isoweekday() - 1)
    return monday, monday + timedelta(days=6)


def is_date_in_period(value: str, period: ExportPeriod, today: date) -> bool:
    d = _parse_date(value)
    if d is None:
        return False

    period = ExportPeriod(period)
    if period is ExportPeriod.DAY:
        return d == today
    if period is ExportPeriod.WEEK:
        start, end = week_bounds(today)
        return start <= d <= end
    if period is ExportPeriod.MONTH:
        return (d.year, d.month) == (today.year, today.month)
    return True


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def format_date_pl(value: str | date) -> str:
    d = value if isinstance(value, date) else _parse_date(value)
    if d is None:
        return str(value)
    return d.strftime("%d.%m.%Y")


def _format_amount(amount: float) -> str:
    if float(amount).is_integer():
        return str(int(amount))
    return str(amount)


def _period_label(period: ExportPeriod, today: date) -> str:
    period = ExportPeriod(period)
    if period is ExportPeriod.DAY:
        return format_date_pl(today)
    if period is ExportPeriod.WEEK:
        start, end = week_bounds(today)
        return f"{format_date_pl(start)} - {format_date_pl(end)}"
    if period is ExportPeriod.MONTH:
        return f"{MONTHS_PL[today.month - 1]} {today.year}"
    return "Wszystkie dane"


def _header(title: str, filters: List[str], period: ExportPeriod, today: date, now: datetime, count_label: str, count: int) -> str:
    lines = [
        title,
        f"Wygenerowano: {now.strftime('%d.%m.%Y, %H:%M:%S')}",
        *filters,
        f"Okres: {_period_label(period, today)}",
        f"{count_label}: {count}",
        RULE,
    ]
    return "\n".join(lines) + "\n"


def _group_by_date(pairs: List[Tuple[object, str]]) -> Dict[str, List[object]]:
    grouped: Dict[str, List[object]] = defaultdict(list)
    for item, d in pairs:
        grouped[d].append(item)
    return grouped


# ---------------------------------------------------------------------------
# Schedule report
# ---------------------------------------------------------------------------


def _entry_line(entry: ScheduleEntry, state: AppState) -> str:
    res = state.find_reservation(entry.reservation_id)
    inst = state.find_instructor(entry.instructor_id)
    student_name = res.student.name if res else "Brak kursanta"
    inst_name = inst.name if inst else "Brak instruktora"
    return (
        f"{entry.start_time} - {entry.end_time} | Instruktor: {inst_name} "
        f"| Kursant: {student_name} | Opis: {entry.description}"
    )


def build_schedule_report(
    state: AppState,
    period: ExportPeriod = ExportPeriod.ALL,
    instructor_id: str = ALL,
    fmt: ExportFormat = ExportFormat.TXT,
    today: Optional[date] = None,
    now: Optional[datetime] = None,
) -> Report:
    """
    Render the planned entries matching the instructor and period filters.

    Raises ValidationError when nothing matches.
    """
    now = now or datetime.now()
    today = today or now.date()

    pairs = [
        (entry, d)
        for entry, d in scheduled_items(state.schedule)
        if (instructor_id == ALL or entry.instructor_id == instructor_id) and is_date_in_period(d, period, today)
    ]
    if not pairs:
        raise ValidationError(NO_DATA_MESSAGE)

    if instructor_id == ALL:
        instructor_name = "Wszyscy instruktorzy"
    else:
        inst = state.find_instructor(instructor_id)
        instructor_name = inst.name if inst else "Nieznany"

    text = _header(
        "Raport grafiku",
        [f"Instruktor: {instructor_name}"],
        period,
        today,
        now,
        "Liczba wpisów",
        len(pairs),
    )

    grouped = _group_by_date(pairs)
    for d in sorted(grouped):
        text += f"\n--- {format_date_pl(d)} ---\n"
        for entry in grouped[d]:
            text += _entry_line(entry, state) + "\n"

    logger.debug(f"Schedule report: {len(pairs)} entries (period={ExportPeriod(period).value}, instructor={instructor_id})")
    stem = f"grafik_{instructor_name.replace(' ', '_', 1)}_{today.isoformat()}"
    return Report(text=text, count=len(pairs), filename_stem=stem, fmt=ExportFormat(fmt))


# ---------------------------------------------------------------------------
# Students report
# ---------------------------------------------------------------------------


def _student_block(res: Reservation, state: AppState) -> str:
    student = res.student
    if res.is_individual:
        course = f"Indywidualny - {res.category}"
    else:
        course = course_name(res.course_id, state.courses)
    advance = f"Zapłacono ({_format_amount(res.advance_amount)} zł)" if res.advance_paid else "Nie zapłacono"
    return "\n".join(
        [
            f"Imię i nazwisko: {student.name}",
            f"Nr telefonu: {student.phone}",
            f"Email: {student.email or 'Brak'}",
            f"PESEL: {student.pesel or 'Brak'}",
            f"PKK: {student.pkk or 'Brak'}",
            f"Adres: {student.address or 'Brak'}",
            "",
            f"Kurs: {course}",
            f"Kategoria: {res.category or 'Brak'}",
            f"Zaliczka: {advance}",
        ]
    )


def build_students_report(
    state: AppState,
    period: ExportPeriod = ExportPeriod.ALL,
    course_id: str = ALL,
    fmt: ExportFormat = ExportFormat.TXT,
    today: Optional[date] = None,
    now: Optional[datetime] = None,
) -> Report:
    """
    Render every reservation that has at least one relevant date in the period.

    A reservation is listed once, under the first of its dates that falls in
    the period. Reservations without any date are never listed.
    """
    now = now or datetime.now()
    today = today or now.date()

    pairs: List[Tuple[Reservation, str]] = []
    for res in state.reservations:
        if course_id != ALL and res.course_id != course_id:
            continue
        in_period = sorted(d for d in relevant_dates(res, state.courses) if is_date_in_period(d, period, today))
        if in_period:
            pairs.append((res, in_period[0]))

    if not pairs:
        raise ValidationError(NO_DATA_MESSAGE)

    filters: List[str] = []
    if course_id != ALL:
        filters.append(f"Kurs: {course_name(course_id, state.courses)}")

    text = _header("Raport kursantów", filters, period, today, now, "Liczba rezerwacji", len(pairs))

    grouped = _group_by_date(pairs)
    for d in sorted(grouped):
        text += f"\n--- {format_date_pl(d)} ---\n\n"
        text += f"\n\n{DIVIDER}\n\n".join(_student_block(res, state) for res in grouped[d])
        text += "\n"

    return Report(
        text=text,
        count=len(pairs),
        filename_stem=f"eksport_kursantow_{today.isoformat()}",
        fmt=ExportFormat(fmt),
    )


def write_report(report: Report, directory: str | Path) -> Path:
    """
    Write the report into `directory` under its own filename. Returns the path.
    """
    out_dir = Path(directory)
    out_dir.mkdir(parents=True, exist_ok=True)
    out = out_dir / report.filename
    out.write_text(report.text, encoding="utf-8")
    logger.info(f"Wrote {out} ({report.mime_type}, {report.count} records)")
    return out
