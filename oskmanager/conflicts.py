"""
Instructor double-booking report.

Planning never blocks on overlaps: staff resolve clashes by hand. This module
only lists them so they can be spotted.

Overlap rule (same instructor, same date):
    start < other_end AND end > other_start
"""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, List, Optional, Tuple

from oskmanager.model import Schedule, ScheduleEntry

Conflict = Tuple[str, ScheduleEntry, ScheduleEntry]


def _minutes(hhmm: str) -> Optional[int]:
    """'HH:MM' -> minutes since midnight, None if unreadable."""
    hours, sep, minutes = hhmm.strip().partition(":")
    if not sep or not (hours.isdigit() and minutes.isdigit()):
        return None
    h, m = int(hours), int(minutes)
    if h > 23 or m > 59:
        return None
    return h * 60 + m


def _span(entry: ScheduleEntry) -> Optional[Tuple[int, int]]:
    start, end = _minutes(entry.start_time), _minutes(entry.end_time)
    if start is None or end is None or end <= start:
        return None
    return start, end


def find_conflicts(schedule: Schedule) -> List[Conflict]:
    """
    Find overlapping entry pairs of one instructor, as (date, A, B).

    Dates ascend; within a date each pair appears once, in table order.
    Entries with unreadable or inverted times are skipped.
    """
    found: List[Conflict] = []

    for day in sorted(schedule):
        by_instructor: Dict[str, List[Tuple[int, int, ScheduleEntry]]] = defaultdict(list)
        for entry in schedule[day]:
            span = _span(entry)
            if span is not None:
                by_instructor[entry.instructor_id].append((*span, entry))

        pairs: List[Tuple[int, int, ScheduleEntry, ScheduleEntry]] = []
        for spans in by_instructor.values():
            for i, (start, end, first) in enumerate(spans):
                for other_start, other_end, second in spans[i + 1 :]:
                    if start < other_end and end > other_start:
                        pairs.append((schedule[day].index(first), schedule[day].index(second), first, second))

        # keep table order across instructors
        found.extend((day, a, b) for _, _, a, b in sorted(pairs, key=lambda p: (p[0], p[1])))

    return found
