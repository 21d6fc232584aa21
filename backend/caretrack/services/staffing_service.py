"""
Checks at the assignment layer: is somebody on the shift competent for the
tasks of the care package, and does the carer keep rotating between day and
night weeks? These never block a write, they only produce warnings.

Also builds the carer lists of the weekly board with each carer's
competency for the package.
"""
import uuid
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from caretrack.core.config import settings
from caretrack.models.care_package import CarerPackageAssignment, PackageTaskAssignment, Task
from caretrack.models.carer import COMPETENT_LEVELS, Carer, CompetencyRating
from caretrack.models.rota import RotaEntry
from caretrack.services.scheduling_rules import RuleViolation, Severity, shift_type_value
from caretrack.utils.shift_time import week_start

NO_PACKAGE_TASKS = "NO_PACKAGE_TASKS"
NO_COMPETENT_STAFF = "NO_COMPETENT_STAFF"
COMPETENCY_PAIRING = "COMPETENCY_PAIRING"
ROTATION_PATTERN = "ROTATION_PATTERN"

ROTATION_LOOKBACK_DAYS = 7


def _warning(candidate, rule: str, message: str, carer_name: str | None) -> RuleViolation:
    return RuleViolation(
        rule=rule,
        message=message,
        severity=Severity.WARNING.value,
        carer_id=candidate.carer_id,
        carer_name=carer_name,
        entry_id=getattr(candidate, "id", None),
        date=candidate.date,
        shift_type=shift_type_value(candidate.shift_type),
    )


def rotation_warning(candidate, history: Sequence, carer_name: str | None = None) -> RuleViolation | None:
    """
    Warn when the carer worked only day or only night shifts in the previous
    week and the candidate repeats that shift type. No history, or a mixed
    previous week, means there is no pattern to follow.
    """
    this_week = week_start(candidate.date)
    last_week = this_week - timedelta(days=ROTATION_LOOKBACK_DAYS)
    own_id = getattr(candidate, "id", None)

    worked = {
        shift_type_value(e.shift_type)
        for e in history
        if e.carer_id == candidate.carer_id
        and last_week <= e.date < this_week
        and (own_id is None or getattr(e, "id", None) != own_id)
    }
    if len(worked) != 1:
        return None

    [previous] = worked
    if previous != shift_type_value(candidate.shift_type):
        return None
    return _warning(
        candidate,
        ROTATION_PATTERN,
        f"{carer_name or 'Carer'} worked {previous.lower()} shifts last week",
        carer_name,
    )


@dataclass
class PackageCompetency:
    competent_task_count: int
    total_task_count: int
    is_package_competent: bool
    has_no_tasks: bool
    package_tasks: list = field(default_factory=list)


@dataclass
class BoardCarer:
    id: uuid.UUID
    name: str
    email: str | None
    package_competency: PackageCompetency


class StaffingService:

    def __init__(self, db: AsyncSession, min_competent_staff: int | None = None):
        self.db = db
        self.min_competent_staff = (
            settings.MIN_COMPETENT_STAFF if min_competent_staff is None else min_competent_staff
        )

    async def package_tasks(self, package_id: uuid.UUID) -> list[Task]:
        result = await self.db.execute(
            select(Task)
            .join(PackageTaskAssignment, PackageTaskAssignment.task_id == Task.id)
            .where(
                PackageTaskAssignment.package_id == package_id,
                PackageTaskAssignment.is_active == True,  # noqa: E712
                Task.deleted_at.is_(None),
            )
            .order_by(Task.name)
        )
        return list(result.scalars().all())

    async def package_task_ids(self, package_id: uuid.UUID) -> list[uuid.UUID]:
        return [t.id for t in await self.package_tasks(package_id)]

    async def competent_carer_ids(
        self, carer_ids: set[uuid.UUID], task_ids: Sequence[uuid.UUID]
    ) -> set[uuid.UUID]:
        if not carer_ids or not task_ids:
            return set()
        result = await self.db.execute(
            select(CompetencyRating.carer_id).where(
                CompetencyRating.carer_id.in_(carer_ids),
                CompetencyRating.task_id.in_(task_ids),
                CompetencyRating.level.in_(COMPETENT_LEVELS),
            )
        )
        return set(result.scalars().all())

    async def _same_shift_entries(self, candidate) -> list[RotaEntry]:
        own_id = getattr(candidate, "id", None)
        conditions = [
            RotaEntry.package_id == candidate.package_id,
            RotaEntry.date == candidate.date,
            RotaEntry.shift_type == shift_type_value(candidate.shift_type),
        ]
        if own_id is not None:
            conditions.append(RotaEntry.id != own_id)
        result = await self.db.execute(select(RotaEntry).where(*conditions))
        return list(result.scalars().all())

    async def check_entry(
        self,
        candidate,
        *,
        carer_name: str | None = None,
        pending: Sequence = (),
        history: Sequence = (),
    ) -> list[RuleViolation]:
        """
        ``pending`` holds entries accepted earlier in the same batch that are
        not stored yet; those on the same package/date/shift count as colleagues.
        ``history`` is the carer's loaded entry window, used for the rotation check.
        """
        found = await self._staffing_warnings(candidate, carer_name, pending)
        rotation = rotation_warning(candidate, [*history, *pending], carer_name)
        if rotation is not None:
            found.append(rotation)
        return found

    async def _staffing_warnings(self, candidate, carer_name, pending) -> list[RuleViolation]:
        task_ids = await self.package_task_ids(candidate.package_id)
        if not task_ids:
            return [_warning(candidate, NO_PACKAGE_TASKS, "Package has no tasks assigned", carer_name)]

        colleagues = await self._same_shift_entries(candidate)
        colleagues += [
            e for e in pending
            if e.package_id == candidate.package_id
            and e.date == candidate.date
            and shift_type_value(e.shift_type) == shift_type_value(candidate.shift_type)
        ]
        on_shift = {e.carer_id for e in colleagues} | {candidate.carer_id}
        competent = await self.competent_carer_ids(on_shift, task_ids)

        found: list[RuleViolation] = []
        if len(competent) < self.min_competent_staff:
            found.append(_warning(
                candidate, NO_COMPETENT_STAFF, "This shift needs a competent supervisor", carer_name,
            ))
        if candidate.carer_id not in competent and not (competent - {candidate.carer_id}):
            found.append(_warning(
                candidate,
                COMPETENCY_PAIRING,
                f"{carer_name or 'Carer'} needs assessment for this package",
                carer_name,
            ))
        return found

    # ── Weekly board ──────────────────────────────────────────────────────────

    async def board_carers(self, package_id: uuid.UUID) -> tuple[list[BoardCarer], list[BoardCarer]]:
        """
        Live carers split into those assigned to the package and everybody
        else, each with how many of the package's tasks they are competent for.
        """
        tasks = await self.package_tasks(package_id)
        task_ids = [t.id for t in tasks]

        result = await self.db.execute(
            select(Carer).where(Carer.deleted_at.is_(None), Carer.is_active == True)  # noqa: E712
            .order_by(Carer.name)
        )
        carers = list(result.scalars().all())

        result = await self.db.execute(
            select(CarerPackageAssignment.carer_id).where(
                CarerPackageAssignment.package_id == package_id,
                CarerPackageAssignment.is_active == True,  # noqa: E712
            )
        )
        assigned = set(result.scalars().all())

        competent_counts: dict[uuid.UUID, int] = {}
        if task_ids and carers:
            result = await self.db.execute(
                select(CompetencyRating.carer_id).where(
                    CompetencyRating.carer_id.in_([c.id for c in carers]),
                    CompetencyRating.task_id.in_(task_ids),
                    CompetencyRating.level.in_(COMPETENT_LEVELS),
                )
            )
            for carer_id in result.scalars().all():
                competent_counts[carer_id] = competent_counts.get(carer_id, 0) + 1

        def board_carer(carer: Carer) -> BoardCarer:
            count = competent_counts.get(carer.id, 0)
            return BoardCarer(
                id=carer.id,
                name=carer.name,
                email=carer.email,
                package_competency=PackageCompetency(
                    competent_task_count=count,
                    total_task_count=len(task_ids),
                    is_package_competent=count > 0,
                    has_no_tasks=not task_ids,
                    package_tasks=[{"id": t.id, "name": t.name} for t in tasks],
                ),
            )

        package_carers = [board_carer(c) for c in carers if c.id in assigned]
        other_carers = [board_carer(c) for c in carers if c.id not in assigned]
        return package_carers, other_carers
