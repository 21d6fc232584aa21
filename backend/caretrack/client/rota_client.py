"""
Python client for the rota API plus the weekly board that drives it the way
the web rota page does: drop a carer on a shift slot, reload the week, feed
the violation tracker.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import date, time, timedelta

import httpx

from caretrack.client.violations import ViolationTracker
from caretrack.models.rota import ShiftType
from caretrack.utils.shift_time import week_start as monday_of

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

DEFAULT_SHIFT_TIMES = {
    ShiftType.DAY: (time(9, 0), time(17, 0)),
    ShiftType.NIGHT: (time(21, 0), time(7, 0)),
}


class RotaClientError(Exception):
    """Non-rule failure of an API call (auth, not found, bad request body)."""

    def __init__(self, status_code: int, detail):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"{status_code}: {detail}")


@dataclass(frozen=True)
class ShiftSlot:
    date: date
    shift_type: ShiftType


def parse_slot_id(slot_id: str) -> ShiftSlot | None:
    """'shift-slot-2026-10-19-DAY' → ShiftSlot. Anything else is not a slot."""
    parts = slot_id.split("-")
    if len(parts) < 6 or parts[0] != "shift" or parts[1] != "slot":
        return None
    try:
        return ShiftSlot(
            date=date.fromisoformat("-".join(parts[2:5])),
            shift_type=ShiftType(parts[5]),
        )
    except ValueError:
        return None


def parse_carer_id(draggable_id: str) -> uuid.UUID:
    return uuid.UUID(draggable_id.removeprefix("carer-"))


@dataclass
class WriteResult:
    """Outcome of a write: stored (``entry`` set) or refused with violations."""
    status_code: int
    entry: dict | None
    violations: list
    warnings: list
    message: str

    @property
    def ok(self) -> bool:
        return self.entry is not None


class RotaClient:

    def __init__(self, base_url: str = "", *, token: str | None = None,
                 http: httpx.AsyncClient | None = None):
        self.http = http or httpx.AsyncClient(base_url=base_url)
        self.token = token

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.aclose()

    async def aclose(self) -> None:
        await self.http.aclose()

    def _headers(self) -> dict:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        return await self.http.request(method, f"{API_PREFIX}{path}", headers=self._headers(), **kwargs)

    @staticmethod
    def _detail(resp: httpx.Response):
        """FastAPI error detail; the raw text when the body is not a JSON object."""
        try:
            body = resp.json()
        except ValueError:
            return resp.text
        if isinstance(body, dict):
            return body.get("detail")
        return body

    @classmethod
    def _raise_for(cls, resp: httpx.Response):
        if resp.is_success:
            return
        raise RotaClientError(resp.status_code, cls._detail(resp))

    async def login(self, email: str, password: str) -> None:
        resp = await self._request("POST", "/auth/login", json={"email": email, "password": password})
        self._raise_for(resp)
        self.token = resp.json()["access_token"]

    async def weekly(self, package_id, week_start: date) -> dict:
        resp = await self._request(
            "GET", "/rota/weekly",
            params={"package_id": str(package_id), "week_start": week_start.isoformat()},
        )
        self._raise_for(resp)
        return resp.json()

    async def validate(self, entry: dict) -> dict:
        resp = await self._request("POST", "/rota/validate", json=entry)
        self._raise_for(resp)
        return resp.json()

    async def create_entry(self, entry: dict) -> WriteResult:
        """Rule violations (400) and duplicates (409) come back as a refused WriteResult."""
        resp = await self._request("POST", "/rota", json=entry)
        if resp.status_code in (400, 409):
            detail = self._detail(resp)
            if isinstance(detail, dict) and "violations" in detail:
                return WriteResult(
                    status_code=resp.status_code,
                    entry=None,
                    violations=detail.get("violations", []),
                    warnings=detail.get("warnings", []),
                    message=detail.get("message", ""),
                )
        self._raise_for(resp)
        body = resp.json()
        return WriteResult(
            status_code=resp.status_code,
            entry=body["entry"],
            violations=body.get("violations", []),
            warnings=body.get("warnings", []),
            message=body.get("message", ""),
        )

    async def bulk_create(self, entries: list[dict], *, validate_only: bool = False) -> dict:
        resp = await self._request(
            "POST", "/rota/bulk", json={"entries": entries, "validate_only": validate_only},
        )
        self._raise_for(resp)
        return resp.json()

    async def batch_delete(self, ids) -> dict:
        resp = await self._request("DELETE", "/rota/batch", json={"ids": [str(i) for i in ids]})
        self._raise_for(resp)
        return resp.json()

    async def delete_entry(self, entry_id) -> None:
        resp = await self._request("DELETE", f"/rota/{entry_id}")
        self._raise_for(resp)


class RotaBoard:
    """State of one weekly rota view for one care package."""

    def __init__(self, client: RotaClient, tracker: ViolationTracker,
                 package_id, week_start: date):
        self.client = client
        self.tracker = tracker
        self.package_id = package_id
        self.week_start = monday_of(week_start)
        self.entries: list[dict] = []
        self.weekly_schedules: list[dict] = []
        self.package_carers: list[dict] = []
        self.other_carers: list[dict] = []

    async def reload(self) -> None:
        data = await self.client.weekly(self.package_id, self.week_start)
        self.entries = data["entries"]
        self.weekly_schedules = data["weekly_schedules"]
        self.package_carers = data["package_carers"]
        self.other_carers = data["other_carers"]
        self.tracker.set_weekly_schedules(self.weekly_schedules)

    async def go_to_week(self, week_start: date) -> None:
        self.tracker.clear_on_navigation()
        self.week_start = monday_of(week_start)
        await self.reload()

    async def next_week(self) -> None:
        await self.go_to_week(self.week_start + timedelta(days=7))

    async def previous_week(self) -> None:
        await self.go_to_week(self.week_start - timedelta(days=7))

    def shift_for(self, carer_id, slot: ShiftSlot) -> dict:
        start, end = DEFAULT_SHIFT_TIMES[slot.shift_type]
        return {
            "package_id": str(self.package_id),
            "carer_id": str(carer_id),
            "date": slot.date.isoformat(),
            "shift_type": slot.shift_type.value,
            "start_time": start.strftime("%H:%M"),
            "end_time": end.strftime("%H:%M"),
        }

    async def drop(self, draggable_id: str, slot_id: str) -> WriteResult | None:
        """Place a carer on a shift slot. Returns None when the target is not a slot."""
        slot = parse_slot_id(slot_id)
        if slot is None:
            logger.debug("Ignoring drop on %r", slot_id)
            return None

        shift = self.shift_for(parse_carer_id(draggable_id), slot)
        result = await self.client.create_entry(shift)
        self.tracker.add_violations(result.violations, result.warnings, shift)
        if result.ok:
            await self.reload()
        return result

    async def clear_week(self) -> int:
        """Delete every entry of the loaded week; returns how many were removed."""
        if not self.entries:
            return 0
        result = await self.client.batch_delete([e["id"] for e in self.entries])
        await self.reload()
        return result["deleted_count"]
