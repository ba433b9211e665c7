"""
Unit tests for the data model and its JSON layout.

Layout contract:
- camelCase keys, same shape as the persisted / backup JSON
- missing top-level fields fall back to the startup defaults
- from_dict(to_dict(state)) reproduces the state field for field
"""

import json
import unittest

from oskmanager.model import AppState, CourseBooking, IndividualBooking, Reservation, new_id
from tests.helpers import sample_state


class TestDefaults(unittest.TestCase):
    def test_empty_dict_gives_seeded_defaults(self) -> None:
        state = AppState.from_dict({})
        self.assertEqual(state.app_title, "Osk Menager")
        self.assertEqual([i.id for i in state.instructors], ["inst1", "inst2", "inst3", "inst4"])
        self.assertEqual(state.course_prices.B, 3200)
        self.assertEqual(state.operating_hours.start, "08:00")
        self.assertEqual(state.default_advance_amount, 300)
        self.assertEqual(state.courses, [])
        self.assertEqual(state.schedule, {})

    def test_course_dates_are_deduplicated(self) -> None:
        state = AppState.from_dict({"courses": [{"id": "c1", "dates": ["2024-03-01", "2024-03-01"]}]})
        self.assertEqual(state.courses[0].dates, ["2024-03-01"])


class TestReservationVariant(unittest.TestCase):
    def test_custom_dates_make_an_individual_booking(self) -> None:
        res = Reservation.from_dict(
            {"id": "r1", "courseId": None, "customDates": ["2024-03-05"], "student": {"name": "Ewa"}}
        )
        self.assertIsInstance(res.booking, IndividualBooking)
        self.assertTrue(res.is_individual)
        self.assertIsNone(res.course_id)
        self.assertEqual(res.custom_dates, ["2024-03-05"])

    def test_course_id_makes_a_course_booking(self) -> None:
        res = Reservation.from_dict({"id": "r1", "courseId": "c1", "student": {"name": "Jan"}})
        self.assertEqual(res.booking, CourseBooking("c1"))
        self.assertIsNone(res.custom_dates)
        self.assertNotIn("customDates", res.to_dict())


class TestRoundTrip(unittest.TestCase):
    def test_to_dict_from_dict_roundtrip(self) -> None:
        state = sample_state()
        raw = json.loads(json.dumps(state.to_dict()))
        self.assertEqual(AppState.from_dict(raw), state)

    def test_layout_uses_camel_case_keys(self) -> None:
        data = sample_state().to_dict()
        self.assertEqual(
            set(data),
            {
                "appTitle",
                "courses",
                "reservations",
                "instructors",
                "schedule",
                "coursePrices",
                "operatingHours",
                "defaultAdvanceAmount",
            },
        )
        self.assertEqual(data["schedule"]["2024-03-01"][0]["reservationId"], "r1")
        self.assertIsNone(data["reservations"][1]["courseId"])

    def test_non_object_is_rejected(self) -> None:
        with self.assertRaises(TypeError):
            AppState.from_dict([])


class TestIds(unittest.TestCase):
    def test_ids_are_unique_within_a_millisecond(self) -> None:
        ids = {new_id() for _ in range(50)}
        self.assertEqual(len(ids), 50)


if __name__ == "__main__":
    unittest.main()
