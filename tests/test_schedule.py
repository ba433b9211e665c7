import unittest

from oskmanager.schedule import add_entry, remove_entry, update_entry
from tests.helpers import entry


class TestScheduleTable(unittest.TestCase):
    def test_add_keeps_order_and_does_not_mutate(self) -> None:
        original = {"2024-03-01": [entry("e1", "r1")]}
        table = add_entry(original, "2024-03-01", entry("e2", "r2"))
        self.assertEqual([e.id for e in table["2024-03-01"]], ["e1", "e2"])
        self.assertEqual(len(original["2024-03-01"]), 1)

    def test_add_creates_date_bucket(self) -> None:
        table = add_entry({}, "2024-03-05", entry("e1", "r1"))
        self.assertEqual(list(table), ["2024-03-05"])

    def test_update_patches_fields_but_not_reservation(self) -> None:
        table = {"2024-03-01": [entry("e1", "r1")]}
        table = update_entry(table, "2024-03-01", "e1", start_time="09:00", instructor_id="inst2")
        updated = table["2024-03-01"][0]
        self.assertEqual(updated.start_time, "09:00")
        self.assertEqual(updated.instructor_id, "inst2")
        self.assertEqual(updated.reservation_id, "r1")

        with self.assertRaises(TypeError):
            update_entry(table, "2024-03-01", "e1", reservation_id="r9")

    def test_update_unknown_entry(self) -> None:
        with self.assertRaises(KeyError):
            update_entry({}, "2024-03-01", "nope", description="x")

    def test_remove_last_entry_drops_the_date(self) -> None:
        table = {"2024-03-01": [entry("e1", "r1"), entry("e2", "r2")]}
        table = remove_entry(table, "2024-03-01", "e1")
        self.assertEqual([e.id for e in table["2024-03-01"]], ["e2"])
        table = remove_entry(table, "2024-03-01", "e2")
        self.assertNotIn("2024-03-01", table)
        self.assertFalse(any(len(v) == 0 for v in table.values()))

    def test_same_instructor_double_booking_is_accepted(self) -> None:
        table = add_entry({}, "2024-03-01", entry("e1", "r1", "08:00", "10:00"))
        table = add_entry(table, "2024-03-01", entry("e2", "r2", "08:00", "10:00"))
        self.assertEqual(len(table["2024-03-01"]), 2)


if __name__ == "__main__":
    unittest.main()
