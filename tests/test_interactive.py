"""
Tests for interactive flows.

Prompts are fed from a list and the rich console writes into a buffer, so the
flows run without a terminal.
"""

import io
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from rich.console import Console

from oskmanager import interactive
from oskmanager.controller import Controller
from oskmanager.storage import LocalStore, load_state
from tests.helpers import student


class InteractiveTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.store = LocalStore(Path(self._tmp.name) / "store.json")
        self.ctl = Controller.load(self.store)
        self.out = io.StringIO()
        console_patch = patch.object(interactive, "console", Console(file=self.out, width=200))
        console_patch.start()
        self.addCleanup(console_patch.stop)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def answers(self, *values: str):
        return patch.object(interactive, "_prompt", side_effect=list(values))


class TestHeader(InteractiveTestCase):
    def test_title_with_brackets_is_printed_literally(self) -> None:
        draft = self.ctl.settings_draft()
        draft.app_title = "OSK [Kraków] [/b]"
        self.ctl.apply_settings(draft)
        interactive._print_header(self.ctl)
        self.assertIn("=== OSK [Kraków] [/b] ===", self.out.getvalue())


class TestCourseAndScheduleEditing(InteractiveTestCase):
    def test_edit_course_details(self) -> None:
        course = self.ctl.create_course("Kat B", ["2024-03-01"], slots=10)
        # action, course number, name, slots, info (keep), colour (keep)
        with self.answers("e", "1", "Kat B 03/2024", "8", "", ""):
            interactive._flow_courses(self.ctl)
        updated = self.ctl.state.find_course(course.id)
        self.assertEqual((updated.name, updated.slots, updated.color), ("Kat B 03/2024", 8, course.color))

    def test_edit_planned_entry(self) -> None:
        course = self.ctl.create_course("Kat B", ["2024-03-01"], slots=10)
        res = self.ctl.create_course_reservation(student(), course.id)
        self.ctl.plan(res.id, "2024-03-01")
        # entry number, action, instructor, start, end (keep), description
        with self.answers("1", "e", "2", "09:00", "", "Plac manewrowy"):
            interactive._flow_scheduled(self.ctl)
        entry = load_state(self.store).schedule["2024-03-01"][0]
        self.assertEqual(
            (entry.instructor_id, entry.start_time, entry.end_time, entry.description),
            ("inst2", "09:00", "10:00", "Plac manewrowy"),
        )


class TestSettingsFlow(InteractiveTestCase):
    def test_hours_advance_and_instructor_colour(self) -> None:
        with self.answers(
            "h", "07:30", "17:00",
            "d", "450",
            "a", "Adam Zieliński", "#00ff00",
            "s",
        ):
            interactive._flow_settings(self.ctl)

        state = load_state(self.store)
        self.assertEqual((state.operating_hours.start, state.operating_hours.end), ("07:30", "17:00"))
        self.assertEqual(state.default_advance_amount, 450)
        self.assertEqual((state.instructors[-1].name, state.instructors[-1].color), ("Adam Zieliński", "#00ff00"))

    def test_bad_hours_keep_the_rest_of_the_draft(self) -> None:
        with self.answers("d", "450", "h", "7", "", "s"):
            interactive._flow_settings(self.ctl)
        state = load_state(self.store)
        self.assertEqual(state.default_advance_amount, 450)
        self.assertEqual(state.operating_hours.start, "08:00")
        self.assertIn("GG:MM", self.out.getvalue())


if __name__ == "__main__":
    unittest.main()
