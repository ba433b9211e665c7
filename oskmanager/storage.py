"""
Persistent storage.

The application keeps its whole state as one JSON value under a fixed key in a
small local key-value store:

    ~/.oskmanager/localStorage.json   {"oskMenagerData": "<serialized state>"}

Design rationale:
- the store behaves like a browser's local storage (string keys, string values)
- the state is written wholesale on every change, last write wins
- storage problems never crash the application: reads fall back to defaults,
  failed writes are logged and the in-memory state stays authoritative

Backups are separate, human-readable files (pretty-printed JSON with the same
layout) that can be imported back.
"""

from __future__ import annotations

import json
import logging
from datetime import date
from pathlib import Path
from typing import Dict, Optional

from oskmanager import config
from oskmanager.errors import BackupImportError
from oskmanager.model import AppState

logger = logging.getLogger(__name__)


class LocalStore:
    """
    String key -> string value store backed by one JSON file.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        # Using a custom path is mainly for tests
        self.path = Path(path) if path is not None else config.STORE_FILE

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        data = json.loads(self.path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not contain a JSON object")
        return data

    def get_item(self, key: str) -> Optional[str]:
        value = self._read_all().get(key)
        return value if isinstance(value, str) else None

    def set_item(self, key: str, value: str) -> None:
        try:
            items = self._read_all()
        except (OSError, ValueError) as e:
            logger.warning(f"Store {self.path} unreadable, overwriting: {e}")
            items = {}
        items[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(items, ensure_ascii=False), encoding="utf-8")


def load_state(store: LocalStore) -> Optional[AppState]:
    """
    Load the persisted state.

    Returns None when nothing was stored yet or the stored value is broken,
    the caller then starts from defaults.
    """
    try:
        serialized = store.get_item(config.STORAGE_KEY)
        if serialized is None:
            logger.info("No saved state found. Starting with defaults.")
            return None
        state = AppState.from_dict(json.loads(serialized))
        logger.info(f"Loaded state from {store.path}")
        return state
    except (OSError, ValueError, TypeError, KeyError, AttributeError) as e:
        logger.error(f"Could not load state from {store.path}: {e}")
        return None


def save_state(store: LocalStore, state: AppState) -> bool:
    """
    Persist the whole state. Returns False (after logging) if the write failed.
    """
    try:
        store.set_item(config.STORAGE_KEY, json.dumps(state.to_dict(), ensure_ascii=False))
        logger.debug(f"Saved state to {store.path}")
        return True
    except (OSError, TypeError, ValueError) as e:
        logger.error(f"Could not save state to {store.path}: {e}")
        return False


# ---------------------------------------------------------------------------
# Backup files
# ---------------------------------------------------------------------------


def backup_filename(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"osk_manager_backup_{today.isoformat()}.json"


def write_backup(state: AppState, directory: str | Path, today: Optional[date] = None) -> Path:
    out_dir = Path(directory)
    out_dir.mkdir(parents=True, exist_ok=True)
    out = out_dir / backup_filename(today)
    out.write_text(json.dumps(state.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info(f"Backup written to {out}")
    return out


def read_backup(path: str | Path) -> AppState:
    """
    Parse a backup file completely before anything is applied.

    Raises BackupImportError for unreadable files, malformed JSON or an
    unexpected structure.
    """
    p = Path(path)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
        return AppState.from_dict(data)
    except (OSError, UnicodeDecodeError) as e:
        raise BackupImportError(f"Cannot read {p}: {e}") from e
    except json.JSONDecodeError as e:
        raise BackupImportError(f"Malformed JSON in {p}: {e}") from e
    except (TypeError, KeyError, ValueError, AttributeError) as e:
        raise BackupImportError(f"Unexpected backup structure in {p}: {e}") from e
