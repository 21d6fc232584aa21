"""
Scheduling rules for the weekly rota.

Every rule is a pure function ``rule(candidate, context) -> list[RuleViolation]``.
Rules look at one candidate entry against the complete set of entries the
caller loaded for that carer and never touch the database, so the write guard
and the weekly view run the identical code.

Entries are duck-typed: anything with ``carer_id``, ``date``, ``shift_type``,
``start_time`` and ``end_time`` (ORM rows, request payloads, test stubs).
"""
import enum
import uuid
from dataclasses import dataclass, field
from datetime import date as Date, timedelta
from typing import Callable, Iterable, Sequence

from caretrack.core.config import settings
from caretrack.models.rota import ShiftType
from caretrack.utils.shift_time import format_hours, is_weekend, shift_hours, week_end, week_start


class Severity(str, enum.Enum):
    ERROR = "error"
    WARNING = "warning"


WEEKLY_HOUR_LIMIT = "WEEKLY_HOUR_LIMIT"
INSUFFICIENT_REST = "INSUFFICIENT_REST"
CONSECUTIVE_WEEKENDS = "CONSECUTIVE_WEEKENDS"


@dataclass(frozen=True)
class RuleViolation:
    rule: str
    message: str
    severity: str = Severity.ERROR.value
    carer_id: uuid.UUID | None = None
    carer_name: str | None = None
    entry_id: uuid.UUID | None = None  # None while the candidate is unsaved
    date: Date | None = None
    shift_type: str | None = None

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR.value


@dataclass(frozen=True)
class SchedulingLimits:
    weekly_hour_limit: float = 36
    rest_period_night_to_day_hours: float = 48
    rest_lookback_days: int = 7
    consecutive_weekend_gap_days: int = 7

    @classmethod
    def from_settings(cls) -> "SchedulingLimits":
        return cls(
            weekly_hour_limit=settings.WEEKLY_HOUR_LIMIT,
            rest_period_night_to_day_hours=settings.REST_PERIOD_NIGHT_TO_DAY_HOURS,
            rest_lookback_days=settings.REST_LOOKBACK_DAYS,
            consecutive_weekend_gap_days=settings.CONSECUTIVE_WEEKEND_GAP_DAYS,
        )


@dataclass
class RuleContext:
    entries: Sequence
    limits: SchedulingLimits = field(default_factory=SchedulingLimits)
    carer_name: str | None = None

    def history_for(self, candidate) -> list:
        """Entries of the candidate's carer, without the candidate's own persisted row."""
        own_id = getattr(candidate, "id", None)
        return [
            e for e in self.entries
            if e is not candidate
            and e.carer_id == candidate.carer_id
            and (own_id is None or getattr(e, "id", None) != own_id)
        ]

    def display_name(self) -> str:
        return self.carer_name or "Carer"


@dataclass
class ScheduleValidationResult:
    violations: list[RuleViolation] = field(default_factory=list)
    warnings: list[RuleViolation] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.violations) == 0

    def add(self, items: Iterable[RuleViolation]) -> None:
        for v in items:
            if v.is_error:
                self.violations.append(v)
            else:
                self.warnings.append(v)


Rule = Callable[[object, RuleContext], list[RuleViolation]]


def shift_type_value(value) -> str:
    return getattr(value, "value", value)


def _violation(rule: str, message: str, candidate, ctx: RuleContext,
               severity: str = Severity.ERROR.value) -> RuleViolation:
    return RuleViolation(
        rule=rule,
        message=message,
        severity=severity,
        carer_id=candidate.carer_id,
        carer_name=ctx.carer_name,
        entry_id=getattr(candidate, "id", None),
        date=candidate.date,
        shift_type=shift_type_value(candidate.shift_type),
    )


# ── Rules ─────────────────────────────────────────────────────────────────────

def check_weekly_hours(candidate, ctx: RuleContext) -> list[RuleViolation]:
    first, last = week_start(candidate.date), week_end(candidate.date)
    current = sum(
        shift_hours(e) for e in ctx.history_for(candidate) if first <= e.date <= last
    )
    adding = shift_hours(candidate)
    limit = ctx.limits.weekly_hour_limit

    if current + adding > limit:
        return [_violation(
            WEEKLY_HOUR_LIMIT,
            f"{ctx.display_name()} would exceed weekly hours: currently {format_hours(current)}h, "
            f"adding {format_hours(adding)}h ({format_hours(current + adding)}/{format_hours(limit)}h)",
            candidate, ctx,
        )]
    return []


def check_rest_period(candidate, ctx: RuleContext) -> list[RuleViolation]:
    """Night shift followed by a day shift needs the minimum rest (date-level)."""
    window_start = candidate.date - timedelta(days=ctx.limits.rest_lookback_days)
    recent = [
        e for e in ctx.history_for(candidate)
        if window_start <= e.date < candidate.date
    ]
    if not recent:
        return []

    # Same date: the later start wins
    last = max(recent, key=lambda e: (e.date, e.start_time))
    if shift_type_value(last.shift_type) != ShiftType.NIGHT.value:
        return []
    if shift_type_value(candidate.shift_type) != ShiftType.DAY.value:
        return []

    elapsed = (candidate.date - last.date).days * 24
    minimum = ctx.limits.rest_period_night_to_day_hours
    if elapsed < minimum:
        return [_violation(
            INSUFFICIENT_REST,
            f"{ctx.display_name()} needs rest after night shift on {last.date.isoformat()}: "
            f"{format_hours(elapsed)}h before this day shift (minimum {format_hours(minimum)}h)",
            candidate, ctx,
        )]
    return []


def check_consecutive_weekends(candidate, ctx: RuleContext) -> list[RuleViolation]:
    if not is_weekend(candidate.date):
        return []

    this_week = week_start(candidate.date)
    prior = [
        e for e in ctx.history_for(candidate)
        if is_weekend(e.date) and e.date < candidate.date and week_start(e.date) < this_week
    ]
    if not prior:
        return []

    last = max(prior, key=lambda e: e.date)
    gap = (candidate.date - last.date).days
    if gap <= ctx.limits.consecutive_weekend_gap_days:
        return [_violation(
            CONSECUTIVE_WEEKENDS,
            f"Cannot schedule consecutive weekends: {ctx.display_name()} worked on {last.date.isoformat()}",
            candidate, ctx,
        )]
    return []


# Evaluation order is part of the contract (stable violation order → stable keys)
RULES: tuple[Rule, ...] = (
    check_weekly_hours,
    check_rest_period,
    check_consecutive_weekends,
)


# ── Orchestration ─────────────────────────────────────────────────────────────

def evaluate(candidate, ctx: RuleContext, rules: Sequence[Rule] = RULES) -> list[RuleViolation]:
    found: list[RuleViolation] = []
    for rule in rules:
        found.extend(rule(candidate, ctx))
    return found


def validate(
    candidate,
    existing: Sequence,
    *,
    carer_name: str | None = None,
    limits: SchedulingLimits | None = None,
    rules: Sequence[Rule] = RULES,
) -> ScheduleValidationResult:
    ctx = RuleContext(entries=existing, limits=limits or SchedulingLimits.from_settings(),
                      carer_name=carer_name)
    result = ScheduleValidationResult()
    result.add(evaluate(candidate, ctx, rules))
    return result


def validate_batch(
    candidates: Sequence,
    existing: Sequence,
    *,
    carer_names: dict | None = None,
    limits: SchedulingLimits | None = None,
    rules: Sequence[Rule] = RULES,
) -> list[ScheduleValidationResult]:
    """
    Validate candidates in the given order. Each one is checked against the
    existing entries plus every earlier candidate that passed; a later
    candidate never invalidates an earlier one.
    """
    limits = limits or SchedulingLimits.from_settings()
    carer_names = carer_names or {}
    accepted = list(existing)
    results: list[ScheduleValidationResult] = []

    for candidate in candidates:
        result = validate(candidate, accepted, carer_name=carer_names.get(candidate.carer_id),
                          limits=limits, rules=rules)
        results.append(result)
        if result.is_valid:
            accepted.append(candidate)

    return results
