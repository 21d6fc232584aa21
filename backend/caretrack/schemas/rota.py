import calendar
import uuid
from datetime import date as Date, datetime as DateTime, time as Time
from typing import Annotated, Optional

from pydantic import BaseModel, BeforeValidator, Field, field_validator, model_validator

from caretrack.core.config import settings
from caretrack.models.rota import ShiftType
from caretrack.utils.shift_time import hours_between, parse_hhmm

MIN_DAY_SHIFT_HOURS = 2
MAX_DAY_SHIFT_HOURS = 12


def _add_months(d: Date, months: int) -> Date:
    month_index = d.month - 1 + months
    year = d.year + month_index // 12
    month = month_index % 12 + 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return d.replace(year=year, month=month, day=day)


def _coerce_time(v):
    # "HH:MM" from the rota grid; anything else is left to pydantic ("HH:MM:SS", time objects)
    if isinstance(v, str) and len(v.strip()) <= 5:
        return parse_hhmm(v)
    return v


WallClock = Annotated[Time, BeforeValidator(_coerce_time)]


class RotaEntryIn(BaseModel):
    """Shape and format of one entry (bulk, validate, and the merged result of an update)."""
    package_id: uuid.UUID
    carer_id: uuid.UUID
    date: Date
    shift_type: ShiftType
    start_time: WallClock
    end_time: WallClock
    is_confirmed: bool = False


class RotaEntryCreate(RotaEntryIn):
    """Single-entry create: also bounds how far ahead and how long a day shift may be."""

    @field_validator("date")
    @classmethod
    def not_too_far_ahead(cls, v: Date) -> Date:
        limit = _add_months(Date.today(), settings.MAX_ADVANCE_MONTHS)
        if v > limit:
            raise ValueError(
                f"Cannot schedule shifts more than {settings.MAX_ADVANCE_MONTHS} months in advance"
            )
        return v

    @model_validator(mode="after")
    def day_shift_window(self) -> "RotaEntryCreate":
        if self.shift_type == ShiftType.DAY:
            if self.end_time <= self.start_time:
                raise ValueError("End time must be after start time for day shifts")
            duration = hours_between(self.start_time, self.end_time)
            if not MIN_DAY_SHIFT_HOURS <= duration <= MAX_DAY_SHIFT_HOURS:
                raise ValueError(
                    f"Shift duration must be between {MIN_DAY_SHIFT_HOURS} and {MAX_DAY_SHIFT_HOURS} hours"
                )
        return self


class RotaEntryUpdate(BaseModel):
    package_id: Optional[uuid.UUID] = None
    carer_id: Optional[uuid.UUID] = None
    date: Optional[Date] = None
    shift_type: Optional[ShiftType] = None
    start_time: Optional[WallClock] = None
    end_time: Optional[WallClock] = None
    is_confirmed: Optional[bool] = None


class RotaEntryOut(BaseModel):
    id: uuid.UUID
    package_id: uuid.UUID
    carer_id: uuid.UUID
    date: Date
    shift_type: str
    start_time: Time
    end_time: Time
    is_confirmed: bool
    created_by_admin_id: Optional[uuid.UUID]
    created_at: DateTime

    model_config = {"from_attributes": True}


class RuleViolationOut(BaseModel):
    rule: str
    message: str
    severity: str  # error | warning
    carer_id: Optional[uuid.UUID] = None
    carer_name: Optional[str] = None
    entry_id: Optional[uuid.UUID] = None
    date: Optional[Date] = None
    shift_type: Optional[str] = None

    model_config = {"from_attributes": True}


class ValidationResultOut(BaseModel):
    is_valid: bool
    violations: list[RuleViolationOut]
    warnings: list[RuleViolationOut]

    model_config = {"from_attributes": True}


class RotaEntryWriteOut(BaseModel):
    """Stored entry plus the non-blocking warnings raised while storing it."""
    entry: RotaEntryOut
    violations: list[RuleViolationOut] = []
    warnings: list[RuleViolationOut] = []
    message: str


class RotaEntryPage(BaseModel):
    items: list[RotaEntryOut]
    page: int
    limit: int
    total: int
    total_pages: int


class BulkRotaCreate(BaseModel):
    entries: list[RotaEntryIn] = Field(min_length=1)
    validate_only: bool = False


class BulkValidationItem(ValidationResultOut):
    index: int


class BulkRotaOut(BaseModel):
    entries: list[RotaEntryOut] = []
    validation_results: list[BulkValidationItem]
    valid_entries: int
    total_entries: int
    message: str


class BatchDeleteRequest(BaseModel):
    ids: list[uuid.UUID] = Field(min_length=1)


class DeletedEntryOut(BaseModel):
    id: uuid.UUID
    carer_name: str
    package_name: str
    date: Date
    shift_type: str


class BatchDeleteOut(BaseModel):
    deleted_count: int
    deleted_entries: list[DeletedEntryOut]
    message: str


class WeeklyScheduleSummaryOut(BaseModel):
    carer_id: uuid.UUID
    carer_name: Optional[str]
    week_start: Date
    total_hours: float
    day_shifts: int
    night_shifts: int
    violations: list[RuleViolationOut]

    model_config = {"from_attributes": True}


class TaskRefOut(BaseModel):
    id: uuid.UUID
    name: str


class PackageCompetencyOut(BaseModel):
    competent_task_count: int
    total_task_count: int
    is_package_competent: bool
    has_no_tasks: bool
    package_tasks: list[TaskRefOut] = []

    model_config = {"from_attributes": True}


class BoardCarerOut(BaseModel):
    """Carer in the board's drag list, with competency for the viewed package."""
    id: uuid.UUID
    name: str
    email: Optional[str]
    package_competency: PackageCompetencyOut

    model_config = {"from_attributes": True}


class WeeklyRotaOut(BaseModel):
    package_id: uuid.UUID
    week_start: Date
    week_end: Date
    entries: list[RotaEntryOut]
    weekly_schedules: list[WeeklyScheduleSummaryOut]
    package_carers: list[BoardCarerOut]
    other_carers: list[BoardCarerOut]
