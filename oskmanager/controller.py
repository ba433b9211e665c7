"""
Application controller.

The controller owns the single AppState of a session. Every operation either
- validates, builds a new state, swaps it in and saves it, or
- raises ValidationError and leaves the state exactly as it was.

Reading happens straight from `controller.state` together with the pure
helpers in availability / reconcile / finances / export_report.
"""

from __future__ import annotations

import copy
import datetime as dt
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

from oskmanager import schedule as schedule_table
from oskmanager.availability import AvailabilityIndex, check_dates_free
from oskmanager.errors import ParseServiceError, ValidationError
from oskmanager.model import (
    CATEGORIES,
    DEFAULT_CATEGORY,
    INDIVIDUAL_COURSE_COLOR,
    AppState,
    Course,
    CourseBooking,
    CoursePrices,
    IndividualBooking,
    Instructor,
    OperatingHours,
    Reservation,
    ScheduleEntry,
    Student,
    new_id,
)
from oskmanager.parse import StudentTextParser
from oskmanager.reconcile import relevant_dates
from oskmanager.storage import LocalStore, load_state, read_backup, save_state, write_backup

logger = logging.getLogger(__name__)


IMPORT_CONFIRM_MESSAGE = (
    "Czy na pewno chcesz zaimportować dane? Wszystkie obecne, niezapisane dane zostaną nadpisane."
)
DEFAULT_COURSE_COLOR = "#d32f2f"
DEFAULT_START_TIME = "08:00"
DEFAULT_END_TIME = "10:00"
INDIVIDUAL_COURSE_MESSAGE = (
    "To jest termin rezerwacji indywidualnej. Aby go zwolnić, usuń rezerwację kursanta."
)
TIME_FORMAT_MESSAGE = "Proszę podać godzinę w formacie GG:MM."


def _validate_student(student: Student) -> None:
    if not student.name.strip():
        raise ValidationError("Proszę podać imię i nazwisko kursanta.")
    if not student.phone.strip():
        raise ValidationError("Proszę podać numer telefonu.")


def _validate_category(category: Optional[str]) -> None:
    if category is not None and category not in CATEGORIES:
        raise ValidationError(f"Nieznana kategoria: {category}")


def _validate_times(*values: str) -> None:
    if not all(schedule_table.is_hhmm(v) for v in values):
        raise ValidationError(TIME_FORMAT_MESSAGE)


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@dataclass
class SettingsDraft:
    """
    Pending edits of the settings screen.

    Nothing reaches the state until Controller.apply_settings(draft).
    """

    app_title: str
    course_prices: CoursePrices
    instructors: List[Instructor] = field(default_factory=list)
    operating_hours: OperatingHours = field(default_factory=OperatingHours)
    default_advance_amount: float = 0

    @classmethod
    def from_state(cls, state: AppState) -> "SettingsDraft":
        return cls(
            app_title=state.app_title,
            course_prices=copy.deepcopy(state.course_prices),
            instructors=copy.deepcopy(state.instructors),
            operating_hours=copy.deepcopy(state.operating_hours),
            default_advance_amount=state.default_advance_amount,
        )

    def has_changes(self, state: AppState) -> bool:
        return self != SettingsDraft.from_state(state)

    def add_instructor(self, name: str, color: str = DEFAULT_COURSE_COLOR) -> Instructor:
        if not name.strip():
            raise ValidationError("Proszę podać imię i nazwisko instruktora.")
        inst = Instructor(id=new_id("inst-"), name=name.strip(), color=color)
        self.instructors.append(inst)
        return inst

    def remove_instructor(self, instructor_id: str) -> None:
        self.instructors = [i for i in self.instructors if i.id != instructor_id]

    def set_price(self, category: str, value: object) -> None:
        _validate_category(category)
        try:
            amount = float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            amount = 0
        setattr(self.course_prices, category, amount)

    def set_operating_hours(self, start: str, end: str) -> None:
        _validate_times(start, end)
        self.operating_hours = OperatingHours(start=start, end=end)


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------


class Controller:
    def __init__(
        self,
        store: LocalStore,
        state: Optional[AppState] = None,
        parser: Optional[StudentTextParser] = None,
    ) -> None:
        self.store = store
        self.state = state if state is not None else AppState()
        self._parser = parser
        self._parsing = False

    @classmethod
    def load(cls, store: LocalStore, parser: Optional[StudentTextParser] = None) -> "Controller":
        return cls(store, load_state(store), parser=parser)

    def save(self) -> bool:
        return save_state(self.store, self.state)

    def _commit(self, state: AppState) -> None:
        self.state = state
        self.save()

    def availability(self) -> AvailabilityIndex:
        return AvailabilityIndex.build(self.state.courses)

    def _require_course(self, course_id: str) -> Course:
        course = self.state.find_course(course_id)
        if course is None:
            raise ValidationError("Nie znaleziono kursu.")
        return course

    def _require_group_course(self, course_id: str) -> Course:
        # an individual course mirrors its reservation's dates; it goes away with delete_reservation
        course = self._require_course(course_id)
        if course.is_individual:
            raise ValidationError(INDIVIDUAL_COURSE_MESSAGE)
        return course

    def _require_reservation(self, reservation_id: str) -> Reservation:
        res = self.state.find_reservation(reservation_id)
        if res is None:
            raise ValidationError("Nie znaleziono rezerwacji.")
        return res

    # --- Courses ---------------------------------------------------------

    def create_course(
        self,
        name: str,
        dates: Iterable[str],
        slots: int = 0,
        info: str = "",
        color: str = DEFAULT_COURSE_COLOR,
    ) -> Course:
        dates = list(dates)
        if not dates:
            raise ValidationError("Proszę wybrać co najmniej jeden dzień na kalendarzu.")
        if not name.strip():
            raise ValidationError("Proszę podać nazwę kursu.")
        if slots < 0:
            raise ValidationError("Liczba miejsc nie może być ujemna.")
        check_dates_free(dates, self.availability())

        course = Course(id=new_id(), name=name, slots=slots, info=info, color=color, dates=dates, reservations=0)
        self._commit(self.state.with_changes(courses=[*self.state.courses, course]))
        logger.info(f"Created course {course.id} ({course.name}, {len(course.dates)} dates)")
        return course

    def update_course_details(
        self,
        course_id: str,
        name: Optional[str] = None,
        slots: Optional[int] = None,
        info: Optional[str] = None,
        color: Optional[str] = None,
    ) -> Course:
        course = self._require_group_course(course_id)
        changes: Dict[str, object] = {}
        if name is not None:
            if not name.strip():
                raise ValidationError("Proszę podać nazwę kursu.")
            changes["name"] = name
        if slots is not None:
            if slots < 0:
                raise ValidationError("Liczba miejsc nie może być ujemna.")
            changes["slots"] = slots
        if info is not None:
            changes["info"] = info
        if color is not None:
            changes["color"] = color

        updated = replace(course, **changes)
        self._commit(
            self.state.with_changes(courses=[updated if c.id == course_id else c for c in self.state.courses])
        )
        return updated

    def update_course_dates(self, course_id: str, dates: Iterable[str]) -> Course:
        course = self._require_group_course(course_id)
        dates = list(dates)
        check_dates_free(dates, self.availability(), editing_course_id=course_id)

        updated = replace(course, dates=dates)
        self._commit(
            self.state.with_changes(courses=[updated if c.id == course_id else c for c in self.state.courses])
        )
        return updated

    def delete_course(self, course_id: str) -> None:
        """
        Remove a course. Reservations pointing at it stay, shown as not assigned.
        """
        self._require_group_course(course_id)
        self._commit(self.state.with_changes(courses=[c for c in self.state.courses if c.id != course_id]))
        logger.info(f"Deleted course {course_id}")

    # --- Reservations ----------------------------------------------------

    def create_course_reservation(
        self,
        student: Student,
        course_id: Optional[str],
        category: Optional[str] = DEFAULT_CATEGORY,
        advance_paid: bool = False,
        advance_amount: float = 0,
    ) -> Reservation:
        """
        Book a student into a group course: the course loses one free slot.
        """
        if not course_id:
            raise ValidationError("Proszę wybrać kurs.")
        course = self.state.find_course(course_id)
        if course is None or course.slots <= 0:
            raise ValidationError("Wybrany kurs jest pełny lub nie istnieje.")
        _validate_student(student)
        _validate_category(category)

        reservation = Reservation(
            id=new_id(),
            student=student,
            booking=CourseBooking(course_id=course_id),
            advance_paid=advance_paid,
            advance_amount=advance_amount if advance_paid else 0,
            category=category,
        )
        courses = [
            replace(c, slots=c.slots - 1, reservations=c.reservations + 1) if c.id == course_id else c
            for c in self.state.courses
        ]
        self._commit(self.state.with_changes(courses=courses, reservations=[*self.state.reservations, reservation]))
        logger.info(f"Reservation {reservation.id} for course {course_id}")
        return reservation

    def create_individual_reservation(
        self,
        student: Student,
        dates: Iterable[str],
        category: Optional[str] = DEFAULT_CATEGORY,
        advance_paid: bool = False,
        advance_amount: float = 0,
    ) -> Reservation:
        """
        Book a student on private dates. The dates are blocked through a
        dedicated one-seat course so nobody else can take them.
        """
        dates = list(dict.fromkeys(dates))
        if not dates:
            raise ValidationError(
                "Proszę wybrać przynajmniej jeden dzień w kalendarzu dla rezerwacji indywidualnej."
            )
        _validate_student(student)
        _validate_category(category)
        check_dates_free(dates, self.availability())

        reservation = Reservation(
            id=new_id(),
            student=student,
            booking=IndividualBooking(custom_dates=dates),
            advance_paid=advance_paid,
            advance_amount=advance_amount if advance_paid else 0,
            category=category,
        )
        course = Course(
            id=f"ind-{reservation.id}",
            name=f"Ind: {student.name}",
            slots=1,
            info=f"Rezerwacja indywidualna dla {student.name}. Kategoria: {category}. Kontakt: {student.phone}",
            color=INDIVIDUAL_COURSE_COLOR,
            dates=list(dates),
            reservations=1,
            is_individual=True,
            reservation_id=reservation.id,
        )
        self._commit(
            self.state.with_changes(
                courses=[*self.state.courses, course],
                reservations=[*self.state.reservations, reservation],
            )
        )
        logger.info(f"Individual reservation {reservation.id} on {len(dates)} dates")
        return reservation

    def delete_reservation(self, reservation_id: str) -> None:
        """
        Remove a reservation together with its planned entries and its
        individual course. A group course gets its slot back.
        """
        res = self._require_reservation(reservation_id)

        courses: List[Course] = []
        for c in self.state.courses:
            if c.is_individual and c.reservation_id == reservation_id:
                continue
            if not res.is_individual and c.id == res.course_id:
                c = replace(c, slots=c.slots + 1, reservations=max(0, c.reservations - 1))
            courses.append(c)

        table = self.state.schedule
        for d, entries in list(table.items()):
            for entry in entries:
                if entry.reservation_id == reservation_id:
                    table = schedule_table.remove_entry(table, d, entry.id)

        self._commit(
            self.state.with_changes(
                courses=courses,
                reservations=[r for r in self.state.reservations if r.id != reservation_id],
                schedule=table,
            )
        )
        logger.info(f"Deleted reservation {reservation_id}")

    # --- Schedule --------------------------------------------------------

    def plan(
        self,
        reservation_id: str,
        date: str,
        instructor_id: Optional[str] = None,
        start_time: str = DEFAULT_START_TIME,
        end_time: str = DEFAULT_END_TIME,
        description: Optional[str] = None,
    ) -> ScheduleEntry:
        """
        Assign an instructor slot to one (reservation, date) pair.

        Overlapping entries of the same instructor are accepted.
        """
        res = self._require_reservation(reservation_id)
        if date not in relevant_dates(res, self.state.courses):
            raise ValidationError(f"Rezerwacja nie obejmuje dnia {date}.")
        _validate_times(start_time, end_time)

        if instructor_id is None:
            if not self.state.instructors:
                raise ValidationError("Brak instruktorów.")
            instructor_id = self.state.instructors[0].id
        elif self.state.find_instructor(instructor_id) is None:
            raise ValidationError("Nie znaleziono instruktora.")

        entry = ScheduleEntry(
            id=new_id(),
            instructor_id=instructor_id,
            reservation_id=reservation_id,
            start_time=start_time,
            end_time=end_time,
            description=description if description is not None else f"Jazda - {res.student.name}",
        )
        self._commit(self.state.with_changes(schedule=schedule_table.add_entry(self.state.schedule, date, entry)))
        logger.info(f"Planned {reservation_id} on {date} {start_time}-{end_time} with {instructor_id}")
        return entry

    def edit_entry(self, date: str, entry_id: str, **patch: object) -> None:
        if "instructor_id" in patch and self.state.find_instructor(str(patch["instructor_id"])) is None:
            raise ValidationError("Nie znaleziono instruktora.")
        _validate_times(*(str(patch[k]) for k in ("start_time", "end_time") if k in patch))
        try:
            table = schedule_table.update_entry(self.state.schedule, date, entry_id, **patch)
        except KeyError as e:
            raise ValidationError("Nie znaleziono wpisu w grafiku.") from e
        self._commit(self.state.with_changes(schedule=table))

    def unplan(self, date: str, entry_id: str) -> None:
        """
        Drop a planned entry; its (reservation, date) pair is unscheduled again.
        """
        if not any(e.id == entry_id for e in self.state.schedule.get(date, [])):
            raise ValidationError("Nie znaleziono wpisu w grafiku.")
        self._commit(self.state.with_changes(schedule=schedule_table.remove_entry(self.state.schedule, date, entry_id)))
        logger.info(f"Unplanned entry {entry_id} on {date}")

    # --- Settings --------------------------------------------------------

    def settings_draft(self) -> SettingsDraft:
        return SettingsDraft.from_state(self.state)

    def apply_settings(self, draft: SettingsDraft) -> None:
        if not draft.has_changes(self.state):
            return
        self._commit(
            self.state.with_changes(
                app_title=draft.app_title,
                course_prices=copy.deepcopy(draft.course_prices),
                instructors=copy.deepcopy(draft.instructors),
                operating_hours=copy.deepcopy(draft.operating_hours),
                default_advance_amount=draft.default_advance_amount,
            )
        )
        logger.info("Settings saved")

    # --- Backup ----------------------------------------------------------

    def export_backup(self, directory: str | Path, today: Optional[dt.date] = None) -> Path:
        return write_backup(self.state, directory, today)

    def import_backup(self, path: str | Path, confirm: Callable[[str], bool]) -> bool:
        """
        Replace the whole state with a backup file.

        The file is parsed completely first (BackupImportError, nothing applied).
        Returns False if the operator did not confirm.
        """
        imported = read_backup(path)
        if not confirm(IMPORT_CONFIRM_MESSAGE):
            logger.info("Import cancelled")
            return False
        self._commit(imported)
        logger.info(f"Imported state from {path}")
        return True

    # --- Student text parsing --------------------------------------------

    def parse_student_text(self, text: str) -> Dict[str, str]:
        if not text.strip():
            raise ValidationError("Proszę wkleić dane do przetworzenia.")
        if self._parsing:
            raise ValidationError("Przetwarzanie danych już trwa.")

        if self._parser is None:
            self._parser = StudentTextParser()
        self._parsing = True
        try:
            return self._parser.parse(text)
        except ParseServiceError:
            logger.exception("Student text parsing failed")
            raise
        finally:
            self._parsing = False
