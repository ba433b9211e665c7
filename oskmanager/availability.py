"""
Date availability.

A calendar date is occupied if any course (group or individual) has it in its
date set. Selecting an occupied date for another course is rejected, so that a
date belongs to at most one course at a time.

Two ways to ask:
- occupant(courses, date): plain linear scan, fine for a handful of courses
- AvailabilityIndex.build(courses): date -> course mapping, build it once per
  course list when many dates have to be checked
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from oskmanager.errors import ValidationError
from oskmanager.model import Course


DATE_TAKEN_MESSAGE = "Ten dzień jest już zarezerwowany."


def occupant(courses: Iterable[Course], date: str) -> Optional[Course]:
    """
    Return the course occupying `date`, or None if the date is free.
    """
    for course in courses:
        if date in course.dates:
            return course
    return None


class AvailabilityIndex:
    """
    Date -> course lookup built from one snapshot of the course list.

    Rebuild it whenever the course list changes; it does not track updates.
    """

    def __init__(self, by_date: Dict[str, Course]) -> None:
        self._by_date = by_date

    @classmethod
    def build(cls, courses: Iterable[Course]) -> "AvailabilityIndex":
        by_date: Dict[str, Course] = {}
        for course in courses:
            for d in course.dates:
                # first course wins, same as the linear scan
                by_date.setdefault(d, course)
        return cls(by_date)

    def occupant(self, date: str) -> Optional[Course]:
        return self._by_date.get(date)

    def is_free(self, date: str, editing_course_id: Optional[str] = None) -> bool:
        course = self._by_date.get(date)
        return course is None or (editing_course_id is not None and course.id == editing_course_id)

    def occupied_dates(self) -> List[str]:
        return sorted(self._by_date)


def toggle_date(
    pending: set[str],
    date: str,
    index: AvailabilityIndex,
    editing_course_id: Optional[str] = None,
) -> set[str]:
    """
    Add `date` to a pending selection, or remove it if already selected.

    Raises ValidationError if the date belongs to a course other than the one
    being edited. Returns a new set; `pending` is left untouched.
    """
    if not index.is_free(date, editing_course_id):
        raise ValidationError(DATE_TAKEN_MESSAGE)

    out = set(pending)
    if date in out:
        out.remove(date)
    else:
        out.add(date)
    return out


def check_dates_free(
    dates: Iterable[str],
    index: AvailabilityIndex,
    editing_course_id: Optional[str] = None,
) -> None:
    """
    Validate a whole selection at once (used when dates arrive in bulk, e.g. from the CLI).
    """
    for d in dates:
        if not index.is_free(d, editing_course_id):
            raise ValidationError(DATE_TAKEN_MESSAGE)
