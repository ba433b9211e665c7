"""
Small builders shared by the tests.
"""

from oskmanager.model import (
    AppState,
    Course,
    CourseBooking,
    IndividualBooking,
    Reservation,
    ScheduleEntry,
    Student,
)


def student(name: str = "Jan Nowak", phone: str = "600100200", **kw) -> Student:
    fields = {"pesel": "90010112345", "email": "jan@example.com", "address": "Kraków", "pkk": "PKK1"}
    fields.update(kw)
    return Student(name=name, phone=phone, **fields)


def course(
    course_id: str = "c1",
    dates=("2024-03-01", "2024-03-02"),
    slots: int = 10,
    name: str = "Kat B 03/2024",
    **kw,
) -> Course:
    return Course(id=course_id, name=name, slots=slots, info="", color="#d32f2f", dates=list(dates), **kw)


def course_res(res_id: str = "r1", course_id: str = "c1", who: Student = None, **kw) -> Reservation:
    return Reservation(id=res_id, student=who or student(), booking=CourseBooking(course_id), **kw)


def individual_res(res_id: str = "r2", dates=("2024-03-05",), who: Student = None, **kw) -> Reservation:
    return Reservation(
        id=res_id,
        student=who or student("Ewa Lis", "500600700"),
        booking=IndividualBooking(list(dates)),
        **kw,
    )


def entry(entry_id: str, reservation_id: str, start: str = "08:00", end: str = "10:00", instructor_id: str = "inst1") -> ScheduleEntry:
    return ScheduleEntry(
        id=entry_id,
        instructor_id=instructor_id,
        reservation_id=reservation_id,
        start_time=start,
        end_time=end,
        description="Jazda",
    )


def sample_state() -> AppState:
    return AppState(
        courses=[course()],
        reservations=[course_res(category="B", advance_paid=True, advance_amount=300), individual_res(category="A")],
        schedule={"2024-03-01": [entry("e1", "r1")]},
    )
