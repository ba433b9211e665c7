from __future__ import annotations

from typing import Any, Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from oskmanager import config
from oskmanager.controller import DEFAULT_COURSE_COLOR, Controller
from oskmanager.dashboard import (
    available_courses,
    course_term,
    first_unscheduled,
    search_students,
    summary_counts,
    upcoming_courses,
)
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
from oskmanager.reconcile import course_label, scheduled_items, unscheduled_items


console = Console()


def _println(msg: str = "") -> None:
    console.print(msg)


def _prompt(msg: str) -> str:
    # prompts carry literal "[t/N]"-style hints, not markup
    return console.input(escape(msg))


def _pick(msg: str, n: int) -> Optional[int]:
    """
    Ask for a 1-based number. Returns the 0-based index, or None for blank/invalid.
    """
    raw = _prompt(msg).strip()
    if not raw:
        return None
    if not raw.isdigit():
        _println("Not a number.")
        return None
    i = int(raw)
    if not (1 <= i <= n):
        _println("Out of range.")
        return None
    return i - 1


def run_interactive(ctl: Controller) -> None:
    """
    Interactive menu loop. Every change is saved right away by the controller.
    """
    while True:
        _print_header(ctl)

        choice = _prompt(
            "\n[1] Dashboard\n"
            "[2] Courses\n"
            "[3] New reservation\n"
            "[4] Plan instructor schedule\n"
            "[5] Planned entries / edit / unplan\n"
            "[6] Finances\n"
            "[7] Export report\n"
            "[8] Backup / import\n"
            "[9] Students\n"
            "[10] Settings\n"
            "[0] Exit\n"
            "Select: "
        ).strip()

        if choice == "0":
            _println("Bye.")
            return

        flows = {
            "1": _flow_dashboard,
            "2": _flow_courses,
            "3": _flow_reservation,
            "4": _flow_plan,
            "5": _flow_scheduled,
            "6": _flow_finances,
            "7": _flow_export,
            "8": _flow_backup,
            "9": _flow_students,
            "10": _flow_settings,
        }
        flow = flows.get(choice)
        if flow is None:
            _println("Invalid choice.")
            continue

        try:
            flow(ctl)
        except ValidationError as e:
            _println(f"[bold red]{escape(str(e))}[/]")


def _print_header(ctl: Controller) -> None:
    counts = summary_counts(ctl.state)
    todo = len(unscheduled_items(ctl.state.reservations, ctl.state.courses, ctl.state.schedule))
    _println(f"\n=== {escape(ctl.state.app_title)} ===")
    _println(
        f"Students: {counts.students} | Courses: {counts.courses} | "
        f"Instructors: {counts.instructors} | To plan: [yellow]{todo}[/]"
    )


def _flow_dashboard(ctl: Controller) -> None:
    state = ctl.state

    table = Table(title="Do zaplanowania", box=box.SIMPLE)
    table.add_column("Data")
    table.add_column("Kursant")
    table.add_column("Kurs/Typ")
    for res, d in first_unscheduled(state):
        table.add_row(format_date_pl(d), res.student.name, course_label(res, state.courses))
    console.print(table)

    table = Table(title="Nadchodzące kursy", box=box.SIMPLE)
    table.add_column("Start")
    table.add_column("Kurs")
    table.add_column("Wolne miejsca", justify="right")
    for course, first in upcoming_courses(state.courses):
        table.add_row(format_date_pl(first), f"[bold cyan]{escape(course.name)}[/]", str(course.slots))
    console.print(table)

    summary = financial_summary(state.reservations, state.course_prices)
    _println(
        f"Przychód: {format_currency_short(summary.total_revenue)} | "
        f"Wpłacono: {format_currency_short(summary.total_paid)} | "
        f"Do zapłaty: {format_currency_short(summary.total_outstanding)}"
    )


def _read_dates(msg: str) -> list[str]:
    raw = _prompt(msg).strip()
    return [d.strip() for d in raw.replace(",", " ").split() if d.strip()]


def _flow_courses(ctl: Controller) -> None:
    courses = [c for c in ctl.state.courses if not c.is_individual]

    table = Table(title="Courses", box=box.SIMPLE)
    table.add_column("#", justify="right")
    table.add_column("Course")
    table.add_column("Term")
    table.add_column("Free", justify="right")
    table.add_column("Booked", justify="right")
    for i, c in enumerate(courses, start=1):
        table.add_row(str(i), f"[bold cyan]{escape(c.name)}[/]", course_term(c.id, ctl.state.courses), str(c.slots), str(c.reservations))
    console.print(table)

    action = _prompt("[a] add  [e] edit  [d] change dates  [x] delete  [blank = back]: ").strip().lower()
    if action == "a":
        name = _prompt("Name: ").strip()
        slots_in = _prompt("Slots [0]: ").strip()
        slots = int(slots_in) if slots_in.isdigit() else 0
        info = _prompt("Info: ").strip()
        dates = _read_dates("Dates (YYYY-MM-DD, space separated): ")
        course = ctl.create_course(name, dates, slots=slots, info=info)
        _println(f"Created: {course.name}")
    elif action in ("e", "d", "x"):
        idx = _pick("Course number: ", len(courses))
        if idx is None:
            return
        course = courses[idx]
        if action == "e":
            name = _prompt(f"Name [{course.name}]: ").strip() or None
            slots_in = _prompt(f"Free slots [{course.slots}]: ").strip()
            info = _prompt(f"Info [{course.info}]: ").strip() or None
            color = _prompt(f"Colour [{course.color}]: ").strip() or None
            slots = int(slots_in) if slots_in.isdigit() else None
            ctl.update_course_details(course.id, name=name, slots=slots, info=info, color=color)
            _println("Course updated.")
        elif action == "d":
            _println(f"Current dates: {', '.join(sorted(course.dates))}")
            ctl.update_course_dates(course.id, _read_dates("New dates: "))
            _println("Dates updated.")
        elif _prompt(f'Czy na pewno chcesz usunąć kurs "{course.name}"? [t/N]: ').strip().lower() == "t":
            ctl.delete_course(course.id)
            _println(f"Deleted: {course.name}")


def _student_form(ctl: Controller) -> Student:
    fields: dict[str, str] = {}
    pasted = _prompt("Paste student data to parse [blank = type by hand]: ").strip()
    if pasted:
        try:
            fields = ctl.parse_student_text(pasted)
        except ParseServiceError as e:
            _println(f"[red]Nie udało się przetworzyć danych.[/] {e}")

    def ask(label: str, key: str) -> str:
        default = fields.get(key, "")
        answer = _prompt(f"{label} [{default}]: ").strip()
        return answer or default

    return Student(
        name=ask("Imię i nazwisko", "name"),
        pesel=ask("PESEL", "pesel"),
        pkk=ask("PKK", "pkk"),
        phone=ask("Telefon", "phone"),
        email=ask("Email", "email"),
        address=ask("Adres", "address"),
    )


def _flow_reservation(ctl: Controller) -> None:
    individual = _prompt("Individual booking? [y/N]: ").strip().lower() == "y"

    course_id: Optional[str] = None
    dates: list[str] = []
    if individual:
        dates = _read_dates("Dates (YYYY-MM-DD, space separated): ")
    else:
        courses = available_courses(ctl.state.courses)
        if not courses:
            _println("No course with free slots.")
            return
        for i, c in enumerate(courses, start=1):
            _println(f"{i}) {c.name} | {course_term(c.id, ctl.state.courses)} | {c.slots} free")
        idx = _pick("Course number: ", len(courses))
        if idx is None:
            return
        course_id = courses[idx].id

    student = _student_form(ctl)
    category = _prompt(f"Kategoria {'/'.join(CATEGORIES)} [B]: ").strip().upper() or "B"
    default_advance = ctl.state.default_advance_amount
    advance_in = _prompt(f"Advance paid? amount [blank = no, '-' = {default_advance}]: ").strip()
    advance_paid = bool(advance_in)
    amount: Any = 0
    if advance_in == "-":
        amount = default_advance
    elif advance_paid:
        try:
            amount = float(advance_in)
        except ValueError:
            _println("Not a number.")
            return

    if individual:
        res = ctl.create_individual_reservation(student, dates, category, advance_paid, amount)
    else:
        res = ctl.create_course_reservation(student, course_id, category, advance_paid, amount)
    _println(f"Reserved: {res.student.name} ({course_label(res, ctl.state.courses)})")


def _flow_plan(ctl: Controller) -> None:
    while True:
        items = unscheduled_items(ctl.state.reservations, ctl.state.courses, ctl.state.schedule)
        if not items:
            _println("Nothing to plan.")
            return

        table = Table(title="Zaplanuj grafik", box=box.SIMPLE)
        table.add_column("#", justify="right")
        table.add_column("Data")
        table.add_column("Kursant")
        table.add_column("Kurs/Typ")
        for i, (res, d) in enumerate(items, start=1):
            table.add_row(str(i), format_date_pl(d), res.student.name, course_label(res, ctl.state.courses))
        console.print(table)

        idx = _pick("Enter number to plan [blank = back]: ", len(items))
        if idx is None:
            return
        res, d = items[idx]

        instructors = ctl.state.instructors
        for i, inst in enumerate(instructors, start=1):
            _println(f"{i}) {inst.name}")
        inst_idx = _pick("Instructor [blank = first]: ", len(instructors))
        instructor_id = instructors[inst_idx].id if inst_idx is not None else None

        start = _prompt("Start [08:00]: ").strip() or "08:00"
        end = _prompt("End [10:00]: ").strip() or "10:00"
        description = _prompt(f"Opis [Jazda - {res.student.name}]: ").strip() or None

        ctl.plan(res.id, d, instructor_id=instructor_id, start_time=start, end_time=end, description=description)
        _println(f"Planned: {res.student.name} on {format_date_pl(d)} {start}-{end}")


def _flow_scheduled(ctl: Controller) -> None:
    items = scheduled_items(ctl.state.schedule)
    if not items:
        _println("Schedule is empty.")
        return

    table = Table(title="Zaplanowane", box=box.SIMPLE)
    table.add_column("#", justify="right")
    table.add_column("Data")
    table.add_column("Godziny")
    table.add_column("Instruktor")
    table.add_column("Kursant")
    table.add_column("Opis")
    for i, (entry, d) in enumerate(items, start=1):
        inst = ctl.state.find_instructor(entry.instructor_id)
        res = ctl.state.find_reservation(entry.reservation_id)
        table.add_row(
            str(i),
            format_date_pl(d),
            f"{entry.start_time}-{entry.end_time}",
            f"[magenta]{escape(inst.name)}[/]" if inst else "Brak instruktora",
            res.student.name if res else "Brak kursanta",
            entry.description,
        )
    console.print(table)

    idx = _pick("Enter number to edit or unplan [blank = back]: ", len(items))
    if idx is None:
        return
    entry, d = items[idx]

    action = _prompt("[e] edit  [u] unplan  [blank = back]: ").strip().lower()
    if action == "e":
        instructors = ctl.state.instructors
        for i, inst in enumerate(instructors, start=1):
            _println(f"{i}) {inst.name}")
        inst_idx = _pick("Instructor [blank = keep]: ", len(instructors))
        patch = {
            "instructor_id": instructors[inst_idx].id if inst_idx is not None else None,
            "start_time": _prompt(f"Start [{entry.start_time}]: ").strip() or None,
            "end_time": _prompt(f"End [{entry.end_time}]: ").strip() or None,
            "description": _prompt(f"Opis [{entry.description}]: ").strip() or None,
        }
        ctl.edit_entry(d, entry.id, **{k: v for k, v in patch.items() if v is not None})
        _println("Entry updated.")
    elif action == "u" and _prompt("Czy na pewno chcesz cofnąć ten wpis do ponownego zaplanowania? [t/N]: ").strip().lower() == "t":
        ctl.unplan(d, entry.id)
        _println("Entry moved back to planning.")


def _flow_finances(ctl: Controller) -> None:
    table = Table(title="Finanse", box=box.SIMPLE)
    for col in ("Kursant", "Kategoria", "Cena kursu", "Wpłacona zaliczka", "Do zapłaty", "Status"):
        table.add_column(col)
    for row in finance_rows(ctl.state.reservations, ctl.state.course_prices):
        status = "[green]Opłacone[/]" if row.is_paid else "[red]Do zapłaty[/]"
        table.add_row(
            row.student,
            row.category,
            format_currency(row.price),
            format_currency(row.paid),
            format_currency(row.remaining),
            status,
        )
    console.print(table)

    summary = financial_summary(ctl.state.reservations, ctl.state.course_prices)
    _println(
        f"Przychód: {format_currency(summary.total_revenue)} | "
        f"Wpłacono: {format_currency(summary.total_paid)} | "
        f"Do zapłaty: {format_currency(summary.total_outstanding)}"
    )


def _flow_export(ctl: Controller) -> None:
    kind = _prompt("[1] Instructor schedule  [2] Students: ").strip()
    period_in = _prompt("Period day/week/month/all [all]: ").strip().lower() or "all"
    fmt_in = _prompt("Format txt/doc [txt]: ").strip().lower() or "txt"
    try:
        period = ExportPeriod(period_in)
        fmt = ExportFormat(fmt_in)
    except ValueError:
        _println("Invalid period or format.")
        return

    if kind == "1":
        instructors = ctl.state.instructors
        for i, inst in enumerate(instructors, start=1):
            _println(f"{i}) {inst.name}")
        idx = _pick("Instructor [blank = all]: ", len(instructors))
        instructor_id = instructors[idx].id if idx is not None else ALL
        report = build_schedule_report(ctl.state, period, instructor_id, fmt)
    elif kind == "2":
        courses = [c for c in ctl.state.courses if not c.is_individual]
        for i, c in enumerate(courses, start=1):
            _println(f"{i}) {c.name}")
        idx = _pick("Course [blank = all]: ", len(courses))
        course_id = courses[idx].id if idx is not None else ALL
        report = build_students_report(ctl.state, period, course_id, fmt)
    else:
        _println("Invalid choice.")
        return

    out = write_report(report, config.EXPORT_DIR)
    _println(f"\nExported {report.count} records.")
    _println(f"Saved to: {out.resolve()}")


def _flow_backup(ctl: Controller) -> None:
    action = _prompt("[e] export backup  [i] import backup: ").strip().lower()
    if action == "e":
        out = ctl.export_backup(config.EXPORT_DIR)
        _println(f"Backup saved to: {out.resolve()}")
    elif action == "i":
        path = _prompt("Backup file: ").strip()
        if not path:
            return
        try:
            done = ctl.import_backup(path, lambda msg: _prompt(f"{msg} [t/N]: ").strip().lower() == "t")
        except BackupImportError:
            _println("[red]Nie udało się zaimportować danych. Upewnij się, że plik ma poprawny format.[/]")
            return
        if done:
            _println("Dane zostały pomyślnie zaimportowane.")


def _flow_students(ctl: Controller) -> None:
    matches = search_students(ctl.state.reservations, _prompt("Search [blank = all]: "))
    if not matches:
        _println("No results.")
        return

    table = Table(title="Kursanci", box=box.SIMPLE)
    table.add_column("#", justify="right")
    table.add_column("Imię i nazwisko")
    table.add_column("Telefon")
    table.add_column("Kurs/Typ")
    table.add_column("Termin")
    for i, r in enumerate(matches, start=1):
        term = "indywidualny" if r.is_individual else course_term(r.course_id, ctl.state.courses)
        table.add_row(str(i), r.student.name, r.student.phone, course_label(r, ctl.state.courses), term)
    console.print(table)

    idx = _pick("Enter number to delete [blank = back]: ", len(matches))
    if idx is None:
        return
    res = matches[idx]
    if _prompt(f'Czy na pewno chcesz usunąć rezerwację "{res.student.name}"? [t/N]: ').strip().lower() == "t":
        ctl.delete_reservation(res.id)
        _println(f"Deleted: {res.student.name}")


def _flow_settings(ctl: Controller) -> None:
    draft = ctl.settings_draft()
    while True:
        _println(f"\nTytuł: {escape(draft.app_title)}")
        _println("Ceny: " + " | ".join(f"{c}: {format_currency_short(draft.course_prices.get(c))}" for c in CATEGORIES))
        _println(f"Domyślna zaliczka: {format_currency_short(draft.default_advance_amount)}")
        _println(f"Godziny pracy: {draft.operating_hours.start} - {draft.operating_hours.end}")
        for i, inst in enumerate(draft.instructors, start=1):
            _println(f"{i}) [magenta]{escape(inst.name)}[/] ({inst.id}, {inst.color})")

        action = _prompt(
            "[t] title  [p] price  [d] default advance  [h] hours  [a] add instructor  "
            "[r] remove instructor  [s] save  [blank = back]: "
        ).strip().lower()
        try:
            if action == "t":
                draft.app_title = _prompt("Title: ").strip() or draft.app_title
            elif action == "p":
                category = _prompt(f"Kategoria {'/'.join(CATEGORIES)}: ").strip().upper()
                draft.set_price(category, _prompt("Cena: ").strip())
            elif action == "d":
                raw = _prompt(f"Domyślna zaliczka [{draft.default_advance_amount}]: ").strip()
                if raw:
                    try:
                        draft.default_advance_amount = float(raw)
                    except ValueError:
                        _println("Not a number.")
            elif action == "h":
                start = _prompt(f"Od [{draft.operating_hours.start}]: ").strip() or draft.operating_hours.start
                end = _prompt(f"Do [{draft.operating_hours.end}]: ").strip() or draft.operating_hours.end
                draft.set_operating_hours(start, end)
            elif action == "a":
                name = _prompt("Imię i nazwisko: ")
                color = _prompt(f"Kolor [{DEFAULT_COURSE_COLOR}]: ").strip() or DEFAULT_COURSE_COLOR
                draft.add_instructor(name, color)
            elif action == "r":
                idx = _pick("Instructor number: ", len(draft.instructors))
                if idx is not None:
                    draft.remove_instructor(draft.instructors[idx].id)
            elif action == "s":
                ctl.apply_settings(draft)
                _println("Ustawienia zostały zapisane.")
                return
            elif not action:
                if draft.has_changes(ctl.state):
                    answer = _prompt("Masz niezapisane zmiany. Czy na pewno chcesz je odrzucić? [t/N]: ")
                    if answer.strip().lower() != "t":
                        continue
                return
            else:
                _println("Invalid choice.")
        except ValidationError as e:
            # keep the draft, only this edit is rejected
            _println(f"[bold red]{escape(str(e))}[/]")
