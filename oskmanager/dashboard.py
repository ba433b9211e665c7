"""
Overview data for the start screen and the students list.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, List, Optional, Tuple

from oskmanager.export_report import format_date_pl
from oskmanager.model import AppState, Course, Reservation
from oskmanager.reconcile import unscheduled_items


@dataclass
class SummaryCounts:
    students: int
    courses: int
    instructors: int


def summary_counts(state: AppState) -> SummaryCounts:
    return SummaryCounts(
        students=len(state.reservations),
        courses=sum(1 for c in state.courses if not c.is_individual),
        instructors=len(state.instructors),
    )


def _earliest(course: Course) -> Optional[date]:
    parsed: List[date] = []
    for d in course.dates:
        try:
            parsed.append(datetime.strptime(d.split("T")[0], "%Y-%m-%d").date())
        except ValueError:
            continue
    return min(parsed) if parsed else None


def upcoming_courses(courses: Iterable[Course], today: Optional[date] = None, limit: int = 5) -> List[Tuple[Course, date]]:
    """
    Group courses that have not started yet, soonest first.
    """
    today = today or date.today()
    out: List[Tuple[Course, date]] = []
    for c in courses:
        if c.is_individual:
            continue
        first = _earliest(c)
        if first is not None and first >= today:
            out.append((c, first))
    out.sort(key=lambda pair: pair[1])
    return out[:limit]


def first_unscheduled(state: AppState, limit: int = 5) -> List[Tuple[Reservation, str]]:
    return unscheduled_items(state.reservations, state.courses, state.schedule)[:limit]


def available_courses(courses: Iterable[Course]) -> List[Course]:
    """Courses a new student can still be booked into."""
    return [c for c in courses if c.slots > 0 and not c.is_individual]


def search_students(reservations: Iterable[Reservation], term: str) -> List[Reservation]:
    """
    Case-insensitive substring search over name, PESEL, PKK, phone and email.
    """
    needle = term.strip().lower()
    if not needle:
        return list(reservations)

    out: List[Reservation] = []
    for r in reservations:
        s = r.student
        hay = [s.name, s.pesel, s.pkk or "", s.phone, s.email]
        if any(needle in field.lower() for field in hay):
            out.append(r)
    return out


def course_term(course_id: Optional[str], courses: Iterable[Course]) -> str:
    """
    Human-readable course period: 'dd.mm.yyyy' or 'dd.mm.yyyy - dd.mm.yyyy'.
    """
    if not course_id:
        return "Brak"
    course = next((c for c in courses if c.id == course_id), None)
    if course is None or not course.dates:
        return "Brak dat"

    dates = sorted(course.dates)
    start, end = dates[0], dates[-1]
    if start == end:
        return format_date_pl(start)
    return f"{format_date_pl(start)} - {format_date_pl(end)}"
