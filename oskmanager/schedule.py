"""
Schedule table mutation.

The schedule maps an ISO date to the ordered list of instructor entries on that
day. The table is kept sparse: a date whose last entry is removed disappears.

Every function returns a new mapping and leaves its argument untouched, the
controller swaps the whole table in afterwards.

There is no overlap check here. Two entries for the same instructor at the same
time are accepted; see conflicts.find_conflicts for a read-only report.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Any

from oskmanager.model import Schedule, ScheduleEntry


_PATCHABLE = {"instructor_id", "start_time", "end_time", "description"}


def is_hhmm(value: str) -> bool:
    """
    True for a zero-padded 24h 'HH:MM'. Entries are ordered by comparing
    these strings, so '9:00' is not accepted.
    """
    try:
        return datetime.strptime(value, "%H:%M").strftime("%H:%M") == value
    except (TypeError, ValueError):
        return False


def add_entry(schedule: Schedule, date: str, entry: ScheduleEntry) -> Schedule:
    out = dict(schedule)
    out[date] = [*schedule.get(date, []), entry]
    return out


def update_entry(schedule: Schedule, date: str, entry_id: str, **patch: Any) -> Schedule:
    """
    Patch one entry in place of its old version.

    Only instructor, times and description can change; an entry never moves to
    another reservation. Raises KeyError if the entry is not on that date.
    """
    unknown = set(patch) - _PATCHABLE
    if unknown:
        raise TypeError(f"Cannot patch fields: {', '.join(sorted(unknown))}")

    entries = schedule.get(date, [])
    if not any(e.id == entry_id for e in entries):
        raise KeyError(f"No entry {entry_id!r} on {date}")

    out = dict(schedule)
    out[date] = [replace(e, **patch) if e.id == entry_id else e for e in entries]
    return out


def remove_entry(schedule: Schedule, date: str, entry_id: str) -> Schedule:
    remaining = [e for e in schedule.get(date, []) if e.id != entry_id]
    out = dict(schedule)
    if remaining:
        out[date] = remaining
    else:
        out.pop(date, None)
    return out
