"""
Tests for the rota client and the weekly board, run against the app in-process.
"""
import uuid
from datetime import date, time

import httpx
import pytest
import pytest_asyncio

from caretrack.client.rota_client import (
    RotaBoard, RotaClient, RotaClientError, ShiftSlot, parse_carer_id, parse_slot_id,
)
from caretrack.client.violations import ACTIVE, IDLE, ViolationTracker
from caretrack.models.care_package import CarerPackageAssignment
from caretrack.models.rota import ShiftType
from tests.conftest import add_entry, rate
from tests.test_violations import FakeLoop

MONDAY = date(2025, 9, 8)


# ── Drop target parsing ───────────────────────────────────────────────────────

def test_parse_slot_id():
    assert parse_slot_id("shift-slot-2025-09-10-NIGHT") == ShiftSlot(date(2025, 9, 10), ShiftType.NIGHT)
    assert parse_slot_id("shift-slot-2025-09-10-DAY") == ShiftSlot(date(2025, 9, 10), ShiftType.DAY)


@pytest.mark.parametrize("slot_id", [
    "carer-list",
    "shift-slot-2025-09-10",
    "shift-slot-2025-13-40-DAY",
    "shift-slot-2025-09-10-EVENING",
    "slot-shift-2025-09-10-DAY",
])
def test_parse_slot_id_rejects_other_targets(slot_id):
    assert parse_slot_id(slot_id) is None


def test_parse_carer_id():
    cid = uuid.uuid4()
    assert parse_carer_id(f"carer-{cid}") == cid


# ── Board ─────────────────────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def board(client, admin_token, package):
    loop = FakeLoop()
    tracker = ViolationTracker(loop=loop, display_seconds=10)
    b = RotaBoard(RotaClient(http=client, token=admin_token), tracker, package.id, MONDAY)
    yield b
    tracker.dispose()


@pytest.mark.asyncio
async def test_login_sets_token(client, admin_user):
    api = RotaClient(http=client)
    await api.login("admin@caretrack.co.uk", "testpass123")
    assert api.token


@pytest.mark.asyncio
async def test_login_wrong_password(client, admin_user):
    api = RotaClient(http=client)
    with pytest.raises(RotaClientError) as exc:
        await api.login("admin@caretrack.co.uk", "nope")
    assert exc.value.status_code == 401


@pytest.mark.asyncio
async def test_drop_places_default_day_shift(board, db, carer, task):
    await rate(db, carer, task)
    result = await board.drop(f"carer-{carer.id}", "shift-slot-2025-09-10-DAY")
    assert result.ok
    assert result.status_code == 201
    [entry] = board.entries
    assert entry["start_time"].startswith("09:00")
    assert entry["end_time"].startswith("17:00")
    assert board.tracker.state == IDLE
    assert [s["carer_id"] for s in board.weekly_schedules] == [str(carer.id)]


@pytest.mark.asyncio
async def test_drop_night_uses_night_times(board, carer):
    result = await board.drop(f"carer-{carer.id}", "shift-slot-2025-09-10-NIGHT")
    assert result.ok
    assert result.entry["start_time"].startswith("21:00")
    assert result.entry["end_time"].startswith("07:00")
    # unrated carer: stored, but the warnings show up
    assert board.tracker.state == ACTIVE
    assert {d.severity for d in board.tracker.get_displayed_violations()} == {"warning"}


@pytest.mark.asyncio
async def test_drop_refused_feeds_tracker(board, db, carer, package, task):
    await rate(db, carer, task)
    await add_entry(db, carer, package, date(2025, 9, 8), "NIGHT", time(21, 0), time(7, 0))
    await board.reload()

    result = await board.drop(f"carer-{carer.id}", "shift-slot-2025-09-09-DAY")
    assert not result.ok
    assert result.status_code == 400
    assert len(board.entries) == 1

    shown = board.tracker.get_displayed_violations()
    assert [d.rule for d in shown] == ["INSUFFICIENT_REST"]
    assert shown[0].key.startswith(f"INSUFFICIENT_REST-{carer.id}-2025-09-09-DAY-")

    board.tracker.loop.advance(10)
    assert board.tracker.get_displayed_violations() == []


@pytest.mark.asyncio
async def test_drop_duplicate_is_refused(board, db, carer, package):
    await add_entry(db, carer, package, date(2025, 9, 10))
    result = await board.drop(f"carer-{carer.id}", "shift-slot-2025-09-10-NIGHT")
    assert result.status_code == 409
    assert [d.rule for d in board.tracker.get_displayed_violations()] == ["NO_DUPLICATE_SHIFTS"]


@pytest.mark.asyncio
async def test_drop_outside_slot_ignored(board, carer):
    assert await board.drop(f"carer-{carer.id}", "carer-list") is None
    assert board.entries == []


@pytest.mark.asyncio
async def test_show_all_includes_schedule_violations(board, db, carer, package):
    await add_entry(db, carer, package, date(2025, 9, 8), "NIGHT", time(21, 0), time(7, 0))
    await add_entry(db, carer, package, date(2025, 9, 9))
    await board.reload()

    board.tracker.show_all = True
    shown = board.tracker.get_displayed_violations()
    assert [d.rule for d in shown] == ["INSUFFICIENT_REST"]
    assert shown[0].is_persistent
    assert shown[0].carer_name == "Alice Carer"

    board.tracker.handle_dismiss_violation(0)
    assert len(board.tracker.get_displayed_violations()) == 1


@pytest.mark.asyncio
async def test_navigation_clears_recent(board, db, carer, package):
    await add_entry(db, carer, package, date(2025, 9, 8), "NIGHT", time(21, 0), time(7, 0))
    await board.drop(f"carer-{carer.id}", "shift-slot-2025-09-09-DAY")
    assert board.tracker.state == ACTIVE

    await board.next_week()
    assert board.week_start == date(2025, 9, 15)
    assert board.tracker.state == IDLE
    assert board.entries == []

    await board.previous_week()
    assert len(board.entries) == 1


@pytest.mark.asyncio
async def test_clear_week(board, db, carer, package):
    await add_entry(db, carer, package, date(2025, 9, 8))
    await add_entry(db, carer, package, date(2025, 9, 10))
    await add_entry(db, carer, package, date(2025, 9, 1))   # other week stays
    await board.reload()

    assert await board.clear_week() == 2
    assert board.entries == []
    await board.go_to_week(date(2025, 9, 1))
    assert len(board.entries) == 1


@pytest.mark.asyncio
async def test_client_error_on_unknown_entry(client, admin_token):
    api = RotaClient(http=client, token=admin_token)
    with pytest.raises(RotaClientError) as exc:
        await api.delete_entry(uuid.uuid4())
    assert exc.value.status_code == 404
    assert exc.value.detail == "Rota entry not found"


@pytest.mark.asyncio
async def test_client_error_with_non_object_body():
    def gateway(request):
        return httpx.Response(502, json=["upstream", "unavailable"])

    api = RotaClient(http=httpx.AsyncClient(transport=httpx.MockTransport(gateway), base_url="http://test"))
    with pytest.raises(RotaClientError) as exc:
        await api.delete_entry(uuid.uuid4())
    assert exc.value.status_code == 502
    assert exc.value.detail == ["upstream", "unavailable"]
    await api.aclose()

    def plain(request):
        return httpx.Response(503, text="Service Unavailable")

    api = RotaClient(http=httpx.AsyncClient(transport=httpx.MockTransport(plain), base_url="http://test"))
    with pytest.raises(RotaClientError) as exc:
        await api.weekly(uuid.uuid4(), MONDAY)
    assert exc.value.detail == "Service Unavailable"
    await api.aclose()


@pytest.mark.asyncio
async def test_reload_loads_board_carers(board, db, carer, package, task):
    await rate(db, carer, task)
    db.add(CarerPackageAssignment(carer_id=carer.id, package_id=package.id))
    await db.commit()

    await board.reload()
    assert [c["name"] for c in board.package_carers] == ["Alice Carer"]
    assert board.package_carers[0]["package_competency"]["is_package_competent"] is True
    assert board.other_carers == []
