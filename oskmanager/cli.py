"""
CLI (Command Line Interface).

Quick terminal commands for the school office and for testing, e.g.:

    oskmanager courses
    oskmanager course-add "Kat B 03/2024" --slots 10 --dates 2024-03-01 2024-03-02
    oskmanager reserve <course_id> --name "Jan Nowak" --phone 600100200 --category B
    oskmanager unscheduled
    oskmanager plan <reservation_id> 2024-03-01 --instructor inst1 --start 08:00 --end 10:00
    oskmanager finances
    oskmanager export-schedule --period week --format doc
    oskmanager settings --price B=3500 --add-instructor "Adam Zieliński"
    oskmanager backup
    oskmanager interactive

Note:
- The interactive UI lives in oskmanager/interactive.py
- This CLI prints plain text; logs go to stderr
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict

from oskmanager import config
from oskmanager.conflicts import find_conflicts
from oskmanager.controller import DEFAULT_COURSE_COLOR, Controller
from oskmanager.dashboard import course_term, first_unscheduled, search_students, summary_counts, upcoming_courses
from oskmanager.errors import BackupImportError, ParseServiceError, ValidationError
from oskmanager.export_report import (
    ALL,
    ExportFormat,
    ExportPeriod,
    build_schedule_report,
    build_students_report,
    format_date_pl,
    write_report,
)
from oskmanager.finances import finance_rows, financial_summary, format_currency, format_currency_short
from oskmanager.model import CATEGORIES, Student
from oskmanager.reconcile import course_label, course_name, scheduled_items, unscheduled_items
from oskmanager.storage import LocalStore

logger = logging.getLogger(__name__)


IMPORT_FAILED_MESSAGE = "Nie udało się zaimportować danych. Upewnij się, że plik ma poprawny format."
PARSE_FAILED_MESSAGE = "Nie udało się przetworzyć danych."


def setup_logging(verbose: bool) -> None:
    """Configures logging to stderr with local time."""
    level = logging.DEBUG if verbose else logging.WARNING
    handler = logging.StreamHandler(sys.stderr)
    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s]: %(name)s:%(lineno)d | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    formatter.converter = time.localtime
    handler.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=[handler], force=True)


def _iso_date(value: str) -> str:
    """argparse type: accept only YYYY-MM-DD."""
    try:
        return datetime.strptime(value, "%Y-%m-%d").date().isoformat()
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date {value!r} (expected YYYY-MM-DD)")


def _hhmm(value: str) -> str:
    try:
        return datetime.strptime(value, "%H:%M").strftime("%H:%M")
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid time {value!r} (expected HH:MM)")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _cmd_courses(args: argparse.Namespace, ctl: Controller) -> int:
    courses = [c for c in ctl.state.courses if args.all or not c.is_individual]
    if not courses:
        print("No courses.")
        return 0
    for c in courses:
        kind = "individual" if c.is_individual else f"{c.slots} free"
        print(f"{c.id} | {c.name} | {course_term(c.id, ctl.state.courses)} | {kind} | {c.reservations} booked")
    return 0


def _cmd_course_add(args: argparse.Namespace, ctl: Controller) -> int:
    course = ctl.create_course(args.name, args.dates, slots=args.slots, info=args.info, color=args.color)
    print(f"Created: {course.id} | {course.name} ({len(course.dates)} dates)")
    return 0


def _cmd_course_dates(args: argparse.Namespace, ctl: Controller) -> int:
    course = ctl.update_course_dates(args.course_id, args.dates)
    print(f"Updated dates of {course.id}: {', '.join(sorted(course.dates)) or '(none)'}")
    return 0


def _cmd_course_edit(args: argparse.Namespace, ctl: Controller) -> int:
    course = ctl.update_course_details(args.course_id, name=args.name, slots=args.slots, info=args.info, color=args.color)
    print(f"Updated: {course.id} | {course.name} | {course.slots} free")
    return 0


def _cmd_course_delete(args: argparse.Namespace, ctl: Controller) -> int:
    ctl.delete_course(args.course_id)
    print(f"Deleted: {args.course_id}")
    return 0


def _student_from_args(args: argparse.Namespace, ctl: Controller) -> Student:
    """
    Build the student from flags; --from-text fills the fields not given explicitly.
    """
    fields: Dict[str, str] = {}
    if args.from_text:
        fields = ctl.parse_student_text(args.from_text)

    def pick(name: str) -> str:
        explicit = getattr(args, name)
        return explicit if explicit is not None else fields.get(name, "")

    return Student(
        name=pick("name"),
        pesel=pick("pesel"),
        pkk=pick("pkk"),
        phone=pick("phone"),
        email=pick("email"),
        address=pick("address"),
    )


def _advance(args: argparse.Namespace, ctl: Controller) -> tuple[bool, float]:
    if args.advance is None:
        return False, 0
    amount = args.advance if args.advance >= 0 else ctl.state.default_advance_amount
    return True, amount


def _cmd_reserve(args: argparse.Namespace, ctl: Controller) -> int:
    paid, amount = _advance(args, ctl)
    res = ctl.create_course_reservation(
        _student_from_args(args, ctl), args.course_id, category=args.category, advance_paid=paid, advance_amount=amount
    )
    print(f"Reserved: {res.id} | {res.student.name} -> {course_name(res.course_id, ctl.state.courses)}")
    return 0


def _cmd_reserve_individual(args: argparse.Namespace, ctl: Controller) -> int:
    paid, amount = _advance(args, ctl)
    res = ctl.create_individual_reservation(
        _student_from_args(args, ctl), args.dates, category=args.category, advance_paid=paid, advance_amount=amount
    )
    print(f"Reserved: {res.id} | {res.student.name} | {len(res.custom_dates or [])} individual dates")
    return 0


def _cmd_reservation_delete(args: argparse.Namespace, ctl: Controller) -> int:
    ctl.delete_reservation(args.reservation_id)
    print(f"Deleted reservation: {args.reservation_id}")
    return 0


def _cmd_students(args: argparse.Namespace, ctl: Controller) -> int:
    matches = search_students(ctl.state.reservations, args.query or "")
    if not matches:
        print("No results.")
        return 0
    for r in matches:
        s = r.student
        term = course_term(r.course_id, ctl.state.courses) if not r.is_individual else "indywidualny"
        print(f"{r.id} | {s.name} | {s.phone} | {course_label(r, ctl.state.courses)} | {term}")
    return 0


def _cmd_unscheduled(args: argparse.Namespace, ctl: Controller) -> int:
    items = unscheduled_items(ctl.state.reservations, ctl.state.courses, ctl.state.schedule)
    if not items:
        print("Nothing to plan.")
        return 0
    print(f"To plan: {len(items)}")
    for res, d in items:
        print(f"- {d} | {res.id} | {res.student.name} | {course_label(res, ctl.state.courses)}")
    return 0


def _cmd_scheduled(args: argparse.Namespace, ctl: Controller) -> int:
    items = scheduled_items(ctl.state.schedule)
    if not items:
        print("Schedule is empty.")
        return 0
    for entry, d in items:
        inst = ctl.state.find_instructor(entry.instructor_id)
        res = ctl.state.find_reservation(entry.reservation_id)
        print(
            f"- {d} {entry.start_time}-{entry.end_time} | {entry.id} | "
            f"{inst.name if inst else 'Brak instruktora'} | {res.student.name if res else 'Brak kursanta'} | {entry.description}"
        )
    return 0


def _cmd_plan(args: argparse.Namespace, ctl: Controller) -> int:
    entry = ctl.plan(
        args.reservation_id,
        args.date,
        instructor_id=args.instructor,
        start_time=args.start,
        end_time=args.end,
        description=args.description,
    )
    print(f"Planned: {entry.id} on {args.date} {entry.start_time}-{entry.end_time}")
    return 0


def _cmd_edit_entry(args: argparse.Namespace, ctl: Controller) -> int:
    patch = {
        key: value
        for key, value in (
            ("instructor_id", args.instructor),
            ("start_time", args.start),
            ("end_time", args.end),
            ("description", args.description),
        )
        if value is not None
    }
    if not patch:
        print("Nothing to change.")
        return 0
    ctl.edit_entry(args.date, args.entry_id, **patch)
    print(f"Updated entry: {args.entry_id} ({args.date})")
    return 0


def _cmd_unplan(args: argparse.Namespace, ctl: Controller) -> int:
    ctl.unplan(args.date, args.entry_id)
    print(f"Unplanned: {args.entry_id} ({args.date})")
    return 0


def _cmd_conflicts(args: argparse.Namespace, ctl: Controller) -> int:
    """
    Print instructor double bookings. Informational only.
    """
    confs = find_conflicts(ctl.state.schedule)
    if not confs:
        print("No conflicts found.")
        return 0

    print(f"Conflicts found: {len(confs)}")
    for d, a, b in confs:
        inst = ctl.state.find_instructor(a.instructor_id)
        who = inst.name if inst else a.instructor_id
        print(f"- {d} {who}: {a.start_time}-{a.end_time} {a.description}  <->  {b.start_time}-{b.end_time} {b.description}")
    return 0


def _cmd_finances(args: argparse.Namespace, ctl: Controller) -> int:
    rows = finance_rows(ctl.state.reservations, ctl.state.course_prices)
    for row in rows:
        status = "opłacone" if row.is_paid else "do zapłaty"
        print(
            f"{row.student} | {row.category} | {format_currency(row.price)} | "
            f"{format_currency(row.paid)} | {format_currency(row.remaining)} | {status}"
        )
    summary = financial_summary(ctl.state.reservations, ctl.state.course_prices)
    print(f"Przychód: {format_currency(summary.total_revenue)}")
    print(f"Wpłacono: {format_currency(summary.total_paid)}")
    print(f"Do zapłaty: {format_currency(summary.total_outstanding)}")
    return 0


def _cmd_dashboard(args: argparse.Namespace, ctl: Controller) -> int:
    state = ctl.state
    counts = summary_counts(state)
    print(f"=== {state.app_title} ===")
    print(f"Kursanci: {counts.students} | Kursy: {counts.courses} | Instruktorzy: {counts.instructors}")

    print("\nDo zaplanowania:")
    for res, d in first_unscheduled(state):
        print(f"- {format_date_pl(d)} | {res.student.name} | {course_label(res, state.courses)}")

    print("\nNadchodzące kursy:")
    for course, first in upcoming_courses(state.courses):
        print(f"- {format_date_pl(first)} | {course.name} | Wolne miejsca: {course.slots}")

    summary = financial_summary(state.reservations, state.course_prices)
    print(
        f"\nPrzychód: {format_currency_short(summary.total_revenue)} | "
        f"Wpłacono: {format_currency_short(summary.total_paid)} | "
        f"Do zapłaty: {format_currency_short(summary.total_outstanding)}"
    )
    return 0


def _cmd_export_schedule(args: argparse.Namespace, ctl: Controller) -> int:
    report = build_schedule_report(ctl.state, ExportPeriod(args.period), args.instructor, ExportFormat(args.format))
    out = write_report(report, args.out_dir or config.EXPORT_DIR)
    print(f"Exported {report.count} entries to: {out}")
    return 0


def _cmd_export_students(args: argparse.Namespace, ctl: Controller) -> int:
    report = build_students_report(ctl.state, ExportPeriod(args.period), args.course, ExportFormat(args.format))
    out = write_report(report, args.out_dir or config.EXPORT_DIR)
    print(f"Exported {report.count} reservations to: {out}")
    return 0


def _cmd_backup(args: argparse.Namespace, ctl: Controller) -> int:
    out = ctl.export_backup(args.out_dir or config.EXPORT_DIR)
    print(f"Backup saved to: {out}")
    return 0


def _cmd_import(args: argparse.Namespace, ctl: Controller) -> int:
    def confirm(message: str) -> bool:
        if args.yes:
            return True
        return input(f"{message} [t/N]: ").strip().lower() in ("t", "y", "tak", "yes")

    if ctl.import_backup(args.file, confirm):
        print("Dane zostały pomyślnie zaimportowane.")
    else:
        print("Import cancelled.")
    return 0


def _cmd_settings(args: argparse.Namespace, ctl: Controller) -> int:
    """
    Show settings; with options, change them and save in one go.
    """
    draft = ctl.settings_draft()
    if args.title is not None:
        draft.app_title = args.title
    for pair in args.price:
        category, _, amount = pair.partition("=")
        draft.set_price(category.strip().upper(), amount)
    if args.hours is not None:
        start, _, end = args.hours.partition("-")
        draft.set_operating_hours(start.strip(), end.strip())
    if args.advance_default is not None:
        draft.default_advance_amount = args.advance_default
    for name in args.add_instructor:
        draft.add_instructor(name, args.instructor_color)
    for instructor_id in args.remove_instructor:
        draft.remove_instructor(instructor_id)

    if draft.has_changes(ctl.state):
        ctl.apply_settings(draft)
        print("Ustawienia zostały zapisane.")

    state = ctl.state
    print(f"Tytuł: {state.app_title}")
    print("Ceny: " + " | ".join(f"{c}: {format_currency_short(state.course_prices.get(c))}" for c in CATEGORIES))
    print(f"Domyślna zaliczka: {format_currency_short(state.default_advance_amount)}")
    print(f"Godziny pracy: {state.operating_hours.start} - {state.operating_hours.end}")
    for inst in state.instructors:
        print(f"{inst.id} | {inst.name} | {inst.color}")
    return 0


def _cmd_parse_student(args: argparse.Namespace, ctl: Controller) -> int:
    fields = ctl.parse_student_text(args.text)
    for name, value in fields.items():
        print(f"{name}: {value}")
    return 0


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def _add_student_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--name", type=str, default=None, help="Student full name")
    p.add_argument("--phone", type=str, default=None, help="Phone number")
    p.add_argument("--pesel", type=str, default=None, help="PESEL")
    p.add_argument("--pkk", type=str, default=None, help="PKK number")
    p.add_argument("--email", type=str, default=None, help="E-mail")
    p.add_argument("--address", type=str, default=None, help="Address")
    p.add_argument("--from-text", type=str, default=None, help="Free text to extract missing fields from")
    p.add_argument("--category", choices=CATEGORIES, default="B", help="Licence category (default B)")
    p.add_argument(
        "--advance",
        type=float,
        nargs="?",
        const=-1,
        default=None,
        help="Advance paid; without a value the default advance amount is used",
    )


def _add_export_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--period", choices=[x.value for x in ExportPeriod], default="all")
    p.add_argument("--format", choices=[x.value for x in ExportFormat], default="txt")
    p.add_argument("--out-dir", type=Path, default=None, help="Target directory (default ~/Downloads)")


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    parser = argparse.ArgumentParser(prog="oskmanager", description="OSK Manager CLI")
    parser.add_argument("--store", type=Path, default=None, help="Local storage file (default ~/.oskmanager)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging.")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("courses", help="List courses")
    p.add_argument("--all", action="store_true", help="Include individual bookings")

    p = sub.add_parser("course-add", help="Create a course")
    p.add_argument("name", type=str)
    p.add_argument("--dates", type=_iso_date, nargs="+", default=[], help="Course dates (YYYY-MM-DD)")
    p.add_argument("--slots", type=int, default=0)
    p.add_argument("--info", type=str, default="")
    p.add_argument("--color", type=str, default=DEFAULT_COURSE_COLOR)

    p = sub.add_parser("course-dates", help="Replace the dates of a course")
    p.add_argument("course_id", type=str)
    p.add_argument("--dates", type=_iso_date, nargs="*", default=[])

    p = sub.add_parser("course-edit", help="Change name, slots, info or colour of a course")
    p.add_argument("course_id", type=str)
    p.add_argument("--name", type=str, default=None)
    p.add_argument("--slots", type=int, default=None)
    p.add_argument("--info", type=str, default=None)
    p.add_argument("--color", type=str, default=None)

    p = sub.add_parser("course-delete", help="Delete a course")
    p.add_argument("course_id", type=str)

    p = sub.add_parser("reserve", help="Book a student into a course")
    p.add_argument("course_id", type=str)
    _add_student_args(p)

    p = sub.add_parser("reserve-individual", help="Book a student on individual dates")
    p.add_argument("--dates", type=_iso_date, nargs="+", default=[])
    _add_student_args(p)

    p = sub.add_parser("reservation-delete", help="Delete a reservation")
    p.add_argument("reservation_id", type=str)

    p = sub.add_parser("students", help="List / search students")
    p.add_argument("query", type=str, nargs="?", default="")

    sub.add_parser("unscheduled", help="Reservation dates without an instructor")
    sub.add_parser("scheduled", help="Planned instructor entries")

    p = sub.add_parser("plan", help="Plan a reservation date")
    p.add_argument("reservation_id", type=str)
    p.add_argument("date", type=_iso_date)
    p.add_argument("--instructor", type=str, default=None, help="Instructor id (default: first one)")
    p.add_argument("--start", type=_hhmm, default="08:00")
    p.add_argument("--end", type=_hhmm, default="10:00")
    p.add_argument("--description", type=str, default=None)

    p = sub.add_parser("edit-entry", help="Change a planned entry")
    p.add_argument("date", type=_iso_date)
    p.add_argument("entry_id", type=str)
    p.add_argument("--instructor", type=str, default=None)
    p.add_argument("--start", type=_hhmm, default=None)
    p.add_argument("--end", type=_hhmm, default=None)
    p.add_argument("--description", type=str, default=None)

    p = sub.add_parser("unplan", help="Remove a planned entry")
    p.add_argument("date", type=_iso_date)
    p.add_argument("entry_id", type=str)

    sub.add_parser("conflicts", help="Show instructor double bookings")
    sub.add_parser("finances", help="Prices, payments and outstanding amounts")
    sub.add_parser("dashboard", help="Overview")

    p = sub.add_parser("export-schedule", help="Export the instructor schedule report")
    p.add_argument("--instructor", type=str, default=ALL)
    _add_export_args(p)

    p = sub.add_parser("export-students", help="Export the students report")
    p.add_argument("--course", type=str, default=ALL)
    _add_export_args(p)

    p = sub.add_parser("backup", help="Save a JSON backup of all data")
    p.add_argument("--out-dir", type=Path, default=None)

    p = sub.add_parser("import", help="Replace all data with a JSON backup")
    p.add_argument("file", type=Path)
    p.add_argument("--yes", action="store_true", help="Do not ask for confirmation")

    p = sub.add_parser("settings", help="Show or change app settings")
    p.add_argument("--title", type=str, default=None)
    p.add_argument("--price", action="append", default=[], metavar="CAT=AMOUNT", help="Course price, e.g. B=3200")
    p.add_argument("--advance-default", type=float, default=None, help="Default advance amount")
    p.add_argument("--hours", type=str, default=None, metavar="START-END", help="Operating hours, e.g. 08:00-18:00")
    p.add_argument("--add-instructor", action="append", default=[], metavar="NAME")
    p.add_argument("--instructor-color", type=str, default=DEFAULT_COURSE_COLOR, help="Colour of added instructors")
    p.add_argument("--remove-instructor", action="append", default=[], metavar="ID")

    p = sub.add_parser("parse-student", help="Extract student fields from free text")
    p.add_argument("text", type=str)

    sub.add_parser("interactive", help="Interactive menu mode")

    return parser


COMMANDS: Dict[str, Callable[[argparse.Namespace, Controller], int]] = {
    "courses": _cmd_courses,
    "course-add": _cmd_course_add,
    "course-dates": _cmd_course_dates,
    "course-edit": _cmd_course_edit,
    "course-delete": _cmd_course_delete,
    "reserve": _cmd_reserve,
    "reserve-individual": _cmd_reserve_individual,
    "reservation-delete": _cmd_reservation_delete,
    "students": _cmd_students,
    "unscheduled": _cmd_unscheduled,
    "scheduled": _cmd_scheduled,
    "plan": _cmd_plan,
    "edit-entry": _cmd_edit_entry,
    "unplan": _cmd_unplan,
    "conflicts": _cmd_conflicts,
    "finances": _cmd_finances,
    "dashboard": _cmd_dashboard,
    "export-schedule": _cmd_export_schedule,
    "export-students": _cmd_export_students,
    "backup": _cmd_backup,
    "import": _cmd_import,
    "settings": _cmd_settings,
    "parse-student": _cmd_parse_student,
}


def main(argv: list[str] | None = None) -> None:
    """
    CLI entry point. Parses args, loads the saved state, dispatches to the
    command handler and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    ctl = Controller.load(LocalStore(args.store))

    if args.command == "interactive":
        from oskmanager.interactive import run_interactive

        run_interactive(ctl)
        raise SystemExit(0)

    handler = COMMANDS.get(args.command)
    if handler is None:
        raise SystemExit(2)

    try:
        code = handler(args, ctl)
    except ValidationError as e:
        print(str(e))
        code = 1
    except BackupImportError as e:
        logger.error(f"Import failed: {e}")
        print(IMPORT_FAILED_MESSAGE)
        code = 1
    except ParseServiceError as e:
        print(f"{PARSE_FAILED_MESSAGE} {e}")
        code = 1
    raise SystemExit(code)
