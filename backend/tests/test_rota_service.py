"""
Tests for RotaService – the history window it loads must cover every rule,
so the write guard and the weekly view agree with the pure rules.
"""
from datetime import date, time

import pytest

from caretrack.models.rota import RotaEntry
from caretrack.services.rota_service import RotaService
from caretrack.services.scheduling_rules import CONSECUTIVE_WEEKENDS, SchedulingLimits, validate
from caretrack.services.staffing_service import ROTATION_PATTERN
from tests.conftest import add_entry, rate

FORTNIGHT = SchedulingLimits(consecutive_weekend_gap_days=14)


def unsaved(carer, package, d: date, shift_type: str = "DAY") -> RotaEntry:
    return RotaEntry(
        package_id=package.id, carer_id=carer.id, date=d, shift_type=shift_type,
        start_time=time(9, 0), end_time=time(17, 0),
    )


def test_window_covers_the_longest_look_back():
    assert RotaService(None).window_for(date(2025, 9, 20)) == (date(2025, 9, 8), date(2025, 9, 21))
    assert RotaService(None, FORTNIGHT).window_for(date(2025, 9, 20)) == (date(2025, 9, 1), date(2025, 9, 21))


@pytest.mark.asyncio
async def test_wider_weekend_gap_is_enforced_on_write(db, carer, package):
    stored = await add_entry(db, carer, package, date(2025, 9, 6))     # Sat
    candidate = unsaved(carer, package, date(2025, 9, 20))             # Sat, two weeks on

    pure = validate(candidate, [stored], carer_name=carer.name, limits=FORTNIGHT)
    result = await RotaService(db, FORTNIGHT).validate_entry(candidate)

    assert [v.rule for v in pure.violations] == [CONSECUTIVE_WEEKENDS]
    assert [v.rule for v in result.violations] == [CONSECUTIVE_WEEKENDS]
    # default gap of 7 days lets the same pair through
    assert (await RotaService(db).validate_entry(candidate)).is_valid


@pytest.mark.asyncio
async def test_wider_weekend_gap_shows_in_weekly_view(db, carer, package):
    await add_entry(db, carer, package, date(2025, 9, 6))
    await add_entry(db, carer, package, date(2025, 9, 20))

    _, summaries = await RotaService(db, FORTNIGHT).weekly_schedules(package.id, date(2025, 9, 15))
    assert [v.rule for v in summaries[0].violations] == [CONSECUTIVE_WEEKENDS]


@pytest.mark.asyncio
async def test_rotation_warning_on_write(db, carer, package, task):
    await rate(db, carer, task)
    await add_entry(db, carer, package, date(2025, 9, 1))
    await add_entry(db, carer, package, date(2025, 9, 3))

    result = await RotaService(db).validate_entry(unsaved(carer, package, date(2025, 9, 9)))
    assert result.is_valid
    assert [w.rule for w in result.warnings] == [ROTATION_PATTERN]

    result = await RotaService(db).validate_entry(unsaved(carer, package, date(2025, 9, 9), "NIGHT"))
    assert result.warnings == []


@pytest.mark.asyncio
async def test_rotation_in_batch_sees_earlier_entries(db, carer, package, task):
    await rate(db, carer, task)
    batch = [
        unsaved(carer, package, date(2025, 9, 2), "NIGHT"),
        unsaved(carer, package, date(2025, 9, 10), "NIGHT"),
    ]
    first, second = await RotaService(db).validate_entries(batch)
    assert first.warnings == []
    assert [w.rule for w in second.warnings] == [ROTATION_PATTERN]
