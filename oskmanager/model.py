"""
Central data model definitions used across the project.

This module defines the canonical structure of every entity the driving school
back office works with, so that:
- all modules share the same field names
- the persisted JSON layout (camelCase keys) is produced in exactly one place
- a backup written by to_dict() can be read back by from_dict() unchanged

A reservation is either a CourseBooking (its dates come from a shared course)
or an IndividualBooking (its own private date set). The JSON layout keeps the
old shape: "courseId" for course bookings, "customDates" for individual ones.
"""

from __future__ import annotations

import itertools
import time
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Union


CATEGORIES = ("A", "B", "C", "D")
DEFAULT_CATEGORY = "B"
DEFAULT_APP_TITLE = "Osk Menager"
DEFAULT_ADVANCE_AMOUNT = 300
INDIVIDUAL_COURSE_COLOR = "#757575"


_last_id = 0


def new_id(prefix: str = "") -> str:
    """
    Return a millisecond timestamp id (optionally prefixed).

    Two ids requested within the same millisecond still differ:
    the counter is bumped past the last issued value.
    """
    global _last_id
    now = int(time.time() * 1000)
    _last_id = max(now, _last_id + 1)
    return f"{prefix}{_last_id}"


def _dedupe(dates: List[str]) -> List[str]:
    # keep first occurrence order
    seen: set[str] = set()
    out: List[str] = []
    for d in dates:
        if d not in seen:
            seen.add(d)
            out.append(d)
    return out


@dataclass
class Course:
    """
    A group course occupying one or more calendar dates.

    Individual bookings also get a Course (is_individual=True) so that their
    dates show up as occupied in the availability index.
    """

    id: str
    name: str
    slots: int
    info: str
    color: str
    dates: List[str]
    reservations: int = 0
    is_individual: bool = False
    reservation_id: Optional[str] = None

    def __post_init__(self) -> None:
        self.dates = _dedupe(list(self.dates))

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "slots": self.slots,
            "info": self.info,
            "color": self.color,
            "dates": list(self.dates),
            "reservations": self.reservations,
        }
        if self.is_individual:
            out["isIndividual"] = True
        if self.reservation_id is not None:
            out["reservationId"] = self.reservation_id
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Course":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            slots=int(data.get("slots", 0)),
            info=str(data.get("info", "")),
            color=str(data.get("color", "")),
            dates=[str(d) for d in data.get("dates", [])],
            reservations=int(data.get("reservations", 0)),
            is_individual=bool(data.get("isIndividual", False)),
            reservation_id=data.get("reservationId"),
        )


@dataclass
class Student:
    name: str
    pesel: str
    phone: str
    email: str
    address: str
    pkk: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"name": self.name, "pesel": self.pesel}
        if self.pkk is not None:
            out["pkk"] = self.pkk
        out.update({"phone": self.phone, "email": self.email, "address": self.address})
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Student":
        return cls(
            name=str(data.get("name", "")),
            pesel=str(data.get("pesel", "")),
            phone=str(data.get("phone", "")),
            email=str(data.get("email", "")),
            address=str(data.get("address", "")),
            pkk=data.get("pkk"),
        )


@dataclass
class CourseBooking:
    """Reservation of a seat in a shared course."""

    course_id: Optional[str]


@dataclass
class IndividualBooking:
    """Reservation with its own private set of dates."""

    custom_dates: List[str]


Booking = Union[CourseBooking, IndividualBooking]


@dataclass
class Reservation:
    id: str
    student: Student
    booking: Booking
    advance_paid: bool = False
    advance_amount: float = 0
    category: Optional[str] = None

    @property
    def is_individual(self) -> bool:
        return isinstance(self.booking, IndividualBooking)

    @property
    def course_id(self) -> Optional[str]:
        if isinstance(self.booking, CourseBooking):
            return self.booking.course_id
        return None

    @property
    def custom_dates(self) -> Optional[List[str]]:
        if isinstance(self.booking, IndividualBooking):
            return self.booking.custom_dates
        return None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "courseId": self.course_id,
            "student": self.student.to_dict(),
            "advancePaid": self.advance_paid,
            "advanceAmount": self.advance_amount,
        }
        if self.category is not None:
            out["category"] = self.category
        if isinstance(self.booking, IndividualBooking):
            out["customDates"] = list(self.booking.custom_dates)
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Reservation":
        custom = data.get("customDates")
        booking: Booking
        if custom is not None:
            booking = IndividualBooking(custom_dates=[str(d) for d in custom])
        else:
            cid = data.get("courseId")
            booking = CourseBooking(course_id=str(cid) if cid is not None else None)
        return cls(
            id=str(data["id"]),
            student=Student.from_dict(data.get("student", {})),
            booking=booking,
            advance_paid=bool(data.get("advancePaid", False)),
            advance_amount=data.get("advanceAmount", 0),
            category=data.get("category"),
        )


@dataclass
class Instructor:
    id: str
    name: str
    color: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "color": self.color}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Instructor":
        return cls(id=str(data["id"]), name=str(data.get("name", "")), color=str(data.get("color", "")))


@dataclass
class ScheduleEntry:
    """
    One instructor time slot on a specific date, linked to one reservation.

    start_time/end_time are zero-padded 'HH:MM' strings, so plain string
    comparison orders them correctly.
    """

    id: str
    instructor_id: str
    reservation_id: str
    start_time: str
    end_time: str
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "instructorId": self.instructor_id,
            "reservationId": self.reservation_id,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScheduleEntry":
        return cls(
            id=str(data["id"]),
            instructor_id=str(data.get("instructorId", "")),
            reservation_id=str(data.get("reservationId", "")),
            start_time=str(data.get("startTime", "")),
            end_time=str(data.get("endTime", "")),
            description=str(data.get("description", "")),
        )


@dataclass
class CoursePrices:
    A: float = 2800
    B: float = 3200
    C: float = 4500
    D: float = 6000

    def get(self, category: Optional[str], default: float = 0) -> float:
        if category not in CATEGORIES:
            return default
        return getattr(self, category) or default

    def to_dict(self) -> Dict[str, Any]:
        return {c: getattr(self, c) for c in CATEGORIES}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CoursePrices":
        defaults = cls()
        return cls(**{c: data.get(c, getattr(defaults, c)) for c in CATEGORIES})


@dataclass
class OperatingHours:
    """Advisory opening hours. Not enforced against schedule entries."""

    start: str = "08:00"
    end: str = "18:00"

    def to_dict(self) -> Dict[str, Any]:
        return {"start": self.start, "end": self.end}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OperatingHours":
        return cls(start=str(data.get("start", "08:00")), end=str(data.get("end", "18:00")))


Schedule = Dict[str, List[ScheduleEntry]]


def default_instructors() -> List[Instructor]:
    return [
        Instructor(id="inst1", name="Jan Kowalski", color="#ef5350"),
        Instructor(id="inst2", name="Anna Nowak", color="#42a5f5"),
        Instructor(id="inst3", name="Piotr Wiśniewski", color="#66bb6a"),
        Instructor(id="inst4", name="Zofia Dąbrowska", color="#ab47bc"),
    ]


@dataclass
class AppState:
    """
    The whole application state tree.

    It is owned by the Controller and persisted wholesale on every change.
    """

    app_title: str = DEFAULT_APP_TITLE
    courses: List[Course] = field(default_factory=list)
    reservations: List[Reservation] = field(default_factory=list)
    instructors: List[Instructor] = field(default_factory=default_instructors)
    schedule: Schedule = field(default_factory=dict)
    course_prices: CoursePrices = field(default_factory=CoursePrices)
    operating_hours: OperatingHours = field(default_factory=OperatingHours)
    default_advance_amount: float = DEFAULT_ADVANCE_AMOUNT

    def with_changes(self, **changes: Any) -> "AppState":
        return replace(self, **changes)

    def find_course(self, course_id: Optional[str]) -> Optional[Course]:
        if not course_id:
            return None
        return next((c for c in self.courses if c.id == course_id), None)

    def find_reservation(self, reservation_id: str) -> Optional[Reservation]:
        return next((r for r in self.reservations if r.id == reservation_id), None)

    def find_instructor(self, instructor_id: str) -> Optional[Instructor]:
        return next((i for i in self.instructors if i.id == instructor_id), None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "appTitle": self.app_title,
            "courses": [c.to_dict() for c in self.courses],
            "reservations": [r.to_dict() for r in self.reservations],
            "instructors": [i.to_dict() for i in self.instructors],
            "schedule": {d: [e.to_dict() for e in entries] for d, entries in self.schedule.items()},
            "coursePrices": self.course_prices.to_dict(),
            "operatingHours": self.operating_hours.to_dict(),
            "defaultAdvanceAmount": self.default_advance_amount,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AppState":
        """
        Build a state from the persisted/backup layout.

        Every top-level field is optional; a missing (or null) field gets the
        same default as a fresh start.
        """
        if not isinstance(data, dict):
            raise TypeError("state must be a JSON object")

        def pick(key: str) -> Any:
            return data.get(key)

        state = cls()
        if pick("appTitle") is not None:
            state.app_title = str(pick("appTitle"))
        if pick("courses") is not None:
            state.courses = [Course.from_dict(c) for c in pick("courses")]
        if pick("reservations") is not None:
            state.reservations = [Reservation.from_dict(r) for r in pick("reservations")]
        if pick("instructors") is not None:
            state.instructors = [Instructor.from_dict(i) for i in pick("instructors")]
        if pick("schedule") is not None:
            state.schedule = {
                str(d): [ScheduleEntry.from_dict(e) for e in entries] for d, entries in pick("schedule").items()
            }
        if pick("coursePrices") is not None:
            state.course_prices = CoursePrices.from_dict(pick("coursePrices"))
        if pick("operatingHours") is not None:
            state.operating_hours = OperatingHours.from_dict(pick("operatingHours"))
        if pick("defaultAdvanceAmount") is not None:
            state.default_advance_amount = pick("defaultAdvanceAmount")
        return state


def iter_entries(schedule: Schedule):
    """Yield (date, entry) for every entry in the schedule table."""
    return itertools.chain.from_iterable(((d, e) for e in entries) for d, entries in schedule.items())
