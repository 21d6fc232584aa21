"""
Time arithmetic for rota entries.

All values are wall-clock without timezone. A shift whose end lies before its
start runs overnight; no shift is assumed to last 24 hours or longer.
"""
import re
from datetime import date, time, timedelta

_HHMM = re.compile(r"^([0-1]?[0-9]|2[0-3]):([0-5][0-9])$")


def parse_hhmm(value: str) -> time:
    """'7:30' / '07:30' → time(7, 30). Raises ValueError for anything else."""
    match = _HHMM.match(value.strip())
    if not match:
        raise ValueError(f"Time must be in HH:MM format, got {value!r}")
    return time(int(match.group(1)), int(match.group(2)))


def _minutes(t: time) -> int:
    return t.hour * 60 + t.minute


def hours_between(start: time, end: time) -> float:
    diff = (_minutes(end) - _minutes(start)) / 60
    if diff < 0:
        diff += 24
    return diff


def shift_hours(entry) -> float:
    """Length of a shift in hours; start == end yields 0, not 24."""
    return hours_between(entry.start_time, entry.end_time)


def week_start(d: date) -> date:
    """Monday of the week containing d (Sunday belongs to the preceding Monday)."""
    return d - timedelta(days=d.weekday())


def week_end(d: date) -> date:
    return week_start(d) + timedelta(days=6)


def is_weekend(d: date) -> bool:
    return d.weekday() >= 5


def format_hours(hours: float) -> str:
    """12.0 → '12', 7.5 → '7.5'"""
    return f"{round(hours, 2):g}"
