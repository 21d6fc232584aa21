"""
Rota service: loads the complete entry window a rule needs and runs the
scheduling rules plus the staffing checks against it.
"""
import logging
import uuid
from datetime import date, timedelta
from typing import Iterable, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from caretrack.models.carer import Carer
from caretrack.models.rota import RotaEntry
from caretrack.services.scheduling_rules import (
    ScheduleValidationResult, SchedulingLimits, validate, validate_batch,
)
from caretrack.services.staffing_service import ROTATION_LOOKBACK_DAYS, StaffingService
from caretrack.services.weekly_schedule import WeeklyScheduleSummary, build_weekly_schedules
from caretrack.utils.shift_time import week_end, week_start

logger = logging.getLogger(__name__)


class RotaService:

    def __init__(self, db: AsyncSession, limits: SchedulingLimits | None = None):
        self.db = db
        self.limits = limits or SchedulingLimits.from_settings()
        self.staffing = StaffingService(db)

    def history_days(self) -> int:
        """How far before the candidate's week the rules and the rotation check look."""
        return max(
            self.limits.rest_lookback_days,
            self.limits.consecutive_weekend_gap_days,
            ROTATION_LOOKBACK_DAYS,
        )

    def window_for(self, d: date) -> tuple[date, date]:
        """Date range whose entries the rules need for a candidate on d."""
        return week_start(d) - timedelta(days=self.history_days()), week_end(d)

    async def entries_for_carers(
        self, carer_ids: Iterable[uuid.UUID], from_date: date, to_date: date
    ) -> list[RotaEntry]:
        """All entries of the carers in [from_date, to_date], across every package. Not paginated."""
        ids = set(carer_ids)
        if not ids:
            return []
        result = await self.db.execute(
            select(RotaEntry)
            .where(
                RotaEntry.carer_id.in_(ids),
                RotaEntry.date >= from_date,
                RotaEntry.date <= to_date,
            )
            .order_by(RotaEntry.date, RotaEntry.start_time)
        )
        return list(result.scalars().all())

    async def carer_names(self, carer_ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, str]:
        ids = set(carer_ids)
        if not ids:
            return {}
        result = await self.db.execute(select(Carer.id, Carer.name).where(Carer.id.in_(ids)))
        return {row.id: row.name for row in result.all()}

    async def validate_entry(
        self,
        candidate,
        *,
        carer_name: str | None = None,
        exclude_id: uuid.UUID | None = None,
    ) -> ScheduleValidationResult:
        if carer_name is None:
            carer_name = (await self.carer_names([candidate.carer_id])).get(candidate.carer_id)

        first, last = self.window_for(candidate.date)
        existing = [
            e for e in await self.entries_for_carers([candidate.carer_id], first, last)
            if e.id != exclude_id
        ]
        result = validate(candidate, existing, carer_name=carer_name, limits=self.limits)
        result.add(await self.staffing.check_entry(candidate, carer_name=carer_name, history=existing))

        if not result.is_valid:
            logger.info(
                "Rota entry for carer %s on %s rejected: %s",
                candidate.carer_id, candidate.date, [v.rule for v in result.violations],
            )
        return result

    async def validate_entries(self, candidates: Sequence) -> list[ScheduleValidationResult]:
        """Batch validation in input order (see validate_batch)."""
        if not candidates:
            return []

        carer_ids = {c.carer_id for c in candidates}
        first = min(self.window_for(c.date)[0] for c in candidates)
        last = max(self.window_for(c.date)[1] for c in candidates)
        existing = await self.entries_for_carers(carer_ids, first, last)
        names = await self.carer_names(carer_ids)

        results = validate_batch(candidates, existing, carer_names=names, limits=self.limits)

        accepted: list = []
        for candidate, result in zip(candidates, results):
            result.add(await self.staffing.check_entry(
                candidate, carer_name=names.get(candidate.carer_id), pending=accepted, history=existing,
            ))
            if result.is_valid:
                accepted.append(candidate)

        rejected = sum(1 for r in results if not r.is_valid)
        logger.info("Validated batch of %d rota entries, %d rejected", len(candidates), rejected)
        return results

    async def weekly_schedules(
        self, package_id: uuid.UUID, week_of: date
    ) -> tuple[list[RotaEntry], list[WeeklyScheduleSummary]]:
        """Entries of the package's week plus one summary per carer working it."""
        first = week_start(week_of)
        last = first + timedelta(days=6)

        result = await self.db.execute(
            select(RotaEntry)
            .where(
                RotaEntry.package_id == package_id,
                RotaEntry.date >= first,
                RotaEntry.date <= last,
            )
            .order_by(RotaEntry.date, RotaEntry.start_time)
        )
        week_entries = list(result.scalars().all())

        carer_ids = {e.carer_id for e in week_entries}
        history_from, _ = self.window_for(first)
        all_entries = await self.entries_for_carers(carer_ids, history_from, last)
        names = await self.carer_names(carer_ids)

        # Summaries only for carers on this package; their hours span every package
        summaries = [
            s for s in build_weekly_schedules(first, all_entries, names, self.limits)
            if s.carer_id in carer_ids
        ]
        return week_entries, summaries
