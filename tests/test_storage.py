"""
Unit tests for local storage and backups.

Storage contract:
- Missing key / missing file -> None (caller uses defaults)
- Broken stored value -> None, logged, no crash
- Failed write -> False, logged, no crash
- Backup files round-trip the whole state; malformed files raise BackupImportError
"""

import json
import tempfile
import unittest
from datetime import date
from pathlib import Path
from unittest.mock import patch

from oskmanager import config
from oskmanager.errors import BackupImportError
from oskmanager.model import AppState
from oskmanager.storage import LocalStore, backup_filename, load_state, read_backup, save_state, write_backup
from tests.helpers import sample_state


class TestLocalStore(unittest.TestCase):
    def test_load_missing_file_returns_none(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            store = LocalStore(Path(d) / "missing.json")
            self.assertIsNone(load_state(store))

    def test_save_and_load_roundtrip(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            store = LocalStore(Path(d) / "nested" / "store.json")
            state = sample_state()
            self.assertTrue(save_state(store, state))
            self.assertEqual(load_state(store), state)

            raw = json.loads(store.path.read_text(encoding="utf-8"))
            self.assertEqual(list(raw), [config.STORAGE_KEY])
            self.assertIsInstance(raw[config.STORAGE_KEY], str)

    def test_other_keys_are_preserved(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            store = LocalStore(Path(d) / "store.json")
            store.set_item("theme", "dark")
            save_state(store, AppState())
            self.assertEqual(store.get_item("theme"), "dark")

    def test_corrupted_value_returns_none(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            store = LocalStore(Path(d) / "store.json")
            store.set_item(config.STORAGE_KEY, "{not json")
            with self.assertLogs("oskmanager.storage", level="ERROR"):
                self.assertIsNone(load_state(store))

    def test_write_failure_is_logged_not_raised(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            store = LocalStore(Path(d) / "store.json")
            with patch.object(Path, "write_text", side_effect=OSError("disk full")):
                with self.assertLogs("oskmanager.storage", level="ERROR"):
                    self.assertFalse(save_state(store, AppState()))


class TestBackup(unittest.TestCase):
    def test_backup_roundtrip(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            state = sample_state()
            out = write_backup(state, d, today=date(2024, 3, 1))
            self.assertEqual(out.name, "osk_manager_backup_2024-03-01.json")
            self.assertEqual(backup_filename(date(2024, 3, 1)), out.name)
            # pretty-printed
            self.assertIn('\n  "appTitle"', out.read_text(encoding="utf-8"))
            self.assertEqual(read_backup(out), state)

    def test_partial_backup_gets_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "partial.json"
            p.write_text(json.dumps({"appTitle": "Moja OSK"}), encoding="utf-8")
            state = read_backup(p)
            self.assertEqual(state.app_title, "Moja OSK")
            self.assertEqual(len(state.instructors), 4)

    def test_malformed_backup_raises(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "broken.json"
            p.write_text("{oops", encoding="utf-8")
            with self.assertRaises(BackupImportError):
                read_backup(p)

            p.write_text(json.dumps({"courses": [{"name": "no id"}]}), encoding="utf-8")
            with self.assertRaises(BackupImportError):
                read_backup(p)

            with self.assertRaises(BackupImportError):
                read_backup(Path(d) / "missing.json")


if __name__ == "__main__":
    unittest.main()
