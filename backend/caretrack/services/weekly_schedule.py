"""
Per-carer weekly summaries for the rota view.

Violations are recomputed with the same rule list the write path uses, so the
week grid and the write guard cannot disagree.
"""
import uuid
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Sequence

from caretrack.models.rota import ShiftType
from caretrack.services.scheduling_rules import (
    RULES, Rule, RuleContext, RuleViolation, SchedulingLimits, evaluate, shift_type_value,
)
from caretrack.utils.shift_time import shift_hours, week_start as monday_of


@dataclass
class WeeklyScheduleSummary:
    carer_id: uuid.UUID
    week_start: date
    carer_name: str | None = None
    total_hours: float = 0
    day_shifts: int = 0
    night_shifts: int = 0
    entries: list = field(default_factory=list)
    violations: list[RuleViolation] = field(default_factory=list)


def _chronological(entries: Sequence) -> list:
    return sorted(entries, key=lambda e: (e.date, e.start_time))


def summarize(
    carer_id: uuid.UUID,
    week_start: date,
    entries: Sequence,
    *,
    carer_name: str | None = None,
    limits: SchedulingLimits | None = None,
    rules: Sequence[Rule] = RULES,
) -> WeeklyScheduleSummary:
    """
    Summarise one carer's week. ``entries`` may contain other carers and
    entries outside the week; earlier entries serve as rule history only.
    """
    first = monday_of(week_start)
    last = first + timedelta(days=6)

    carer_entries = [e for e in entries if e.carer_id == carer_id]
    week = _chronological([e for e in carer_entries if first <= e.date <= last])

    summary = WeeklyScheduleSummary(carer_id=carer_id, week_start=first, carer_name=carer_name, entries=week)
    for e in week:
        summary.total_hours += shift_hours(e)
        if shift_type_value(e.shift_type) == ShiftType.DAY.value:
            summary.day_shifts += 1
        else:
            summary.night_shifts += 1

    ctx = RuleContext(entries=carer_entries, limits=limits or SchedulingLimits.from_settings(),
                      carer_name=carer_name)
    seen: set[tuple[str, str]] = set()
    for e in week:
        for v in evaluate(e, ctx, rules):
            if (v.rule, v.message) in seen:
                continue
            seen.add((v.rule, v.message))
            summary.violations.append(v)

    return summary


def build_weekly_schedules(
    week_start: date,
    entries: Sequence,
    carer_names: dict | None = None,
    limits: SchedulingLimits | None = None,
) -> list[WeeklyScheduleSummary]:
    """One summary per carer who works in the week, in order of first shift."""
    first = monday_of(week_start)
    last = first + timedelta(days=6)
    carer_names = carer_names or {}
    limits = limits or SchedulingLimits.from_settings()

    carer_ids: list = []
    for e in _chronological(entries):
        if first <= e.date <= last and e.carer_id not in carer_ids:
            carer_ids.append(e.carer_id)

    return [
        summarize(cid, first, entries, carer_name=carer_names.get(cid), limits=limits)
        for cid in carer_ids
    ]
