"""
Reservation reconciliation.

Every reservation has a set of relevant dates:
- individual booking -> its own custom dates
- course booking     -> the dates of the referenced course ([] if the course is gone)

A (reservation, date) pair is "scheduled" when the schedule table holds an
entry for that date pointing at the reservation, otherwise it still has to be
planned. Both lists are pure functions of the current state.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Tuple

from oskmanager.model import Course, Reservation, Schedule, ScheduleEntry, iter_entries


NO_COURSE_LABEL = "Brak kursu"
NOT_ASSIGNED_LABEL = "Nie przypisano"


def _date_only(value: str) -> str:
    return value.split("T")[0]


def _find_course(courses: Iterable[Course], course_id: Optional[str]) -> Optional[Course]:
    if not course_id:
        return None
    return next((c for c in courses if c.id == course_id), None)


def relevant_dates(reservation: Reservation, courses: Iterable[Course]) -> List[str]:
    custom = reservation.custom_dates
    if custom is not None:
        dates = custom
    else:
        course = _find_course(courses, reservation.course_id)
        dates = course.dates if course else []
    return [_date_only(d) for d in dates]


def is_scheduled(schedule: Schedule, reservation_id: str, date: str) -> bool:
    return any(entry.reservation_id == reservation_id for entry in schedule.get(date, []))


def reservation_status(
    reservation: Reservation, courses: Iterable[Course], schedule: Schedule
) -> Tuple[List[str], List[str]]:
    """
    Split a reservation's relevant dates into (scheduled, unscheduled).
    """
    scheduled: List[str] = []
    unscheduled: List[str] = []
    for d in relevant_dates(reservation, courses):
        if is_scheduled(schedule, reservation.id, d):
            scheduled.append(d)
        else:
            unscheduled.append(d)
    return scheduled, unscheduled


def unscheduled_items(
    reservations: Iterable[Reservation], courses: Iterable[Course], schedule: Schedule
) -> List[Tuple[Reservation, str]]:
    """
    All (reservation, date) pairs still waiting for an instructor, oldest date first.
    """
    courses = list(courses)
    items: List[Tuple[Reservation, str]] = []
    for res in reservations:
        _, unscheduled = reservation_status(res, courses, schedule)
        items.extend((res, d) for d in unscheduled)
    # sort is stable: same-date pairs keep reservation order
    items.sort(key=lambda item: item[1])
    return items


def scheduled_items(schedule: Schedule) -> List[Tuple[ScheduleEntry, str]]:
    """
    Flatten the schedule table into (entry, date) pairs sorted by date, then start time.
    """
    items = [(entry, d) for d, entry in iter_entries(schedule)]
    items.sort(key=lambda item: (item[1], item[0].start_time))
    return items


def course_label(reservation: Reservation, courses: Iterable[Course]) -> str:
    """
    Short 'course / type' text for a reservation row.
    """
    if reservation.is_individual:
        return f"Indywidualny - {reservation.category}"
    course = _find_course(courses, reservation.course_id)
    return course.name if course else NO_COURSE_LABEL


def course_name(course_id: Optional[str], courses: Iterable[Course]) -> str:
    course = _find_course(courses, course_id)
    return course.name if course else NOT_ASSIGNED_LABEL
