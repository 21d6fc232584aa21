"""
Violation tracker for one weekly rota view.

Holds the violations raised by the most recent write attempt ("recent",
transient, dismissible, auto-expiring) and, when ``show_all`` is on, merges
them with the violations the server attached to the loaded weekly schedules
(persistent, never dismissible).

The tracker is single-threaded. It only needs an event loop that offers
``time()`` and ``call_later()``; asyncio loops do, and tests pass a fake one.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Iterable, Sequence, Union

from caretrack.core.config import settings

logger = logging.getLogger(__name__)

IDLE = "idle"
ACTIVE = "active"

MESSAGE_KEY_LENGTH = 50
UNKNOWN_CARER = "Unknown Carer"


def _get(obj: Any, name: str, default=None):
    """Field access for both JSON dicts and attribute objects."""
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def _text(value) -> str:
    if value is None:
        return ""
    value = getattr(value, "value", value)  # enums
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def transient_key(violation, context) -> str:
    return "-".join((
        _text(_get(violation, "rule")),
        _text(_get(context, "carer_id")),
        _text(_get(context, "date")),
        _text(_get(context, "shift_type")),
        _text(_get(violation, "message"))[:MESSAGE_KEY_LENGTH],
    ))


def persistent_key(violation, carer_id) -> str:
    return "-".join((
        _text(_get(violation, "rule")),
        _text(carer_id),
        _text(_get(violation, "message")),
    ))


@dataclass(frozen=True)
class TransientTag:
    key: str
    timestamp: float
    expires_at: float


@dataclass(frozen=True)
class PersistentTag:
    source_entry_id: Any
    key: str


Tag = Union[TransientTag, PersistentTag]


@dataclass(frozen=True)
class DisplayedViolation:
    violation: Any
    carer_name: str | None
    tag: Tag

    @property
    def key(self) -> str:
        return self.tag.key

    @property
    def is_persistent(self) -> bool:
        return isinstance(self.tag, PersistentTag)

    @property
    def rule(self) -> str:
        return _get(self.violation, "rule")

    @property
    def message(self) -> str:
        return _get(self.violation, "message")

    @property
    def severity(self) -> str:
        return _get(self.violation, "severity", "error")


class ViolationTracker:

    def __init__(self, loop=None, display_seconds: float | None = None, show_all: bool = False):
        self.loop = loop or asyncio.get_running_loop()
        self.display_seconds = (
            settings.VIOLATION_DISPLAY_SECONDS if display_seconds is None else display_seconds
        )
        self.show_all = show_all
        self._recent: list[DisplayedViolation] = []
        self._schedules: list = []
        self._timer = None
        self._timer_keys: frozenset = frozenset()
        self._last_timestamp = float("-inf")
        self._disposed = False

    # ── State ─────────────────────────────────────────────────────────────────

    @property
    def state(self) -> str:
        return ACTIVE if self._recent else IDLE

    @property
    def recent_violations(self) -> list[DisplayedViolation]:
        return list(self._recent)

    @property
    def has_pending_timer(self) -> bool:
        return self._timer is not None

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
            self._timer_keys = frozenset()

    def _set_recent(self, items: list[DisplayedViolation]) -> None:
        self._recent = items
        if not items:
            self._cancel_timer()

    def _next_timestamp(self, now: float) -> float:
        self._last_timestamp = max(now, self._last_timestamp + 1e-6)
        return self._last_timestamp

    # ── Recent (transient) violations ─────────────────────────────────────────

    def add_violations(self, violations: Sequence, warnings: Sequence, context) -> None:
        """
        Replace the recent set with the result of one validation call.
        ``context`` is the shift that was attempted (carer_id, date, shift_type);
        an empty result clears the recent set.
        """
        if self._disposed:
            logger.warning("add_violations called on a disposed ViolationTracker")
            return

        raised = [*violations, *warnings]
        if not raised:
            self.clear_recent_violations()
            return

        now = self.loop.time()
        expires_at = now + self.display_seconds
        carer_name = _get(context, "carer_name")

        fresh: list[DisplayedViolation] = []
        keys: set[str] = set()
        for v in raised:
            key = transient_key(v, context)
            if key in keys:
                continue
            keys.add(key)
            fresh.append(DisplayedViolation(
                violation=v,
                carer_name=_get(v, "carer_name") or carer_name,
                tag=TransientTag(key=key, timestamp=self._next_timestamp(now), expires_at=expires_at),
            ))

        self._cancel_timer()
        self._set_recent(fresh)
        self._timer_keys = frozenset(keys)
        self._timer = self.loop.call_later(self.display_seconds, self._expire, self._timer_keys)

    def _expire(self, keys: frozenset) -> None:
        if keys is self._timer_keys:
            self._timer = None
            self._timer_keys = frozenset()
        if self._disposed:
            return
        self._set_recent([d for d in self._recent if d.key not in keys])

    def clear_recent_violations(self) -> None:
        self._set_recent([])

    def clear_on_navigation(self) -> None:
        """Week or package changed: nothing raised for the old view stays visible."""
        self._set_recent([])

    # ── Persistent (schedule) violations ──────────────────────────────────────

    def set_weekly_schedules(self, schedules: Iterable) -> None:
        self._schedules = list(schedules or [])

    def _persistent(self) -> list[DisplayedViolation]:
        found = []
        for schedule in self._schedules:
            carer_id = _get(schedule, "carer_id")
            carer_name = _get(schedule, "carer_name") or UNKNOWN_CARER
            for v in _get(schedule, "violations") or []:
                found.append(DisplayedViolation(
                    violation=v,
                    carer_name=carer_name,
                    tag=PersistentTag(
                        source_entry_id=_get(v, "entry_id"),
                        key=persistent_key(v, carer_id),
                    ),
                ))
        return found

    # ── Display ───────────────────────────────────────────────────────────────

    def get_displayed_violations(self) -> list[DisplayedViolation]:
        if self.show_all:
            return [*self._recent, *self._persistent()]
        return list(self._recent)

    def get_total_violation_count(self) -> int:
        persistent = sum(len(_get(s, "violations") or []) for s in self._schedules)
        return persistent + len(self._recent)

    def handle_dismiss_violation(self, index: int) -> None:
        if self.show_all:
            displayed = self.get_displayed_violations()
            if not 0 <= index < len(displayed):
                return
            target = displayed[index]
            if isinstance(target.tag, PersistentTag):
                return
            self._set_recent([d for d in self._recent if d.key != target.key])
        else:
            if not 0 <= index < len(self._recent):
                return
            self._set_recent([d for i, d in enumerate(self._recent) if i != index])

    def dispose(self) -> None:
        self._cancel_timer()
        self._recent = []
        self._schedules = []
        self._disposed = True
