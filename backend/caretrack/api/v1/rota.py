import logging
import math
import uuid
from datetime import date, timedelta
from typing import Optional

from fastapi import APIRouter, HTTPException, status, Query
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy import select, func

from caretrack.api.deps import DB, AdminUser, Rota
from caretrack.models.audit import AuditLog
from caretrack.models.care_package import CarePackage
from caretrack.models.carer import Carer
from caretrack.models.rota import RotaEntry, ShiftType
from caretrack.schemas.rota import (
    RotaEntryIn, RotaEntryCreate, RotaEntryUpdate, RotaEntryOut, RotaEntryPage, RotaEntryWriteOut,
    RuleViolationOut, ValidationResultOut, BulkRotaCreate, BulkRotaOut, BulkValidationItem,
    BatchDeleteRequest, BatchDeleteOut, DeletedEntryOut, WeeklyRotaOut, WeeklyScheduleSummaryOut,
    BoardCarerOut,
)
from caretrack.services.scheduling_rules import ScheduleValidationResult
from caretrack.utils.shift_time import week_start as monday_of

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rota", tags=["rota"])

NO_DUPLICATE_SHIFTS = "NO_DUPLICATE_SHIFTS"


# ── Helpers ───────────────────────────────────────────────────────────────────

async def _write_audit(db, *, user_id, entity_id, action: str,
                       old_values: dict | None = None, new_values: dict | None = None):
    db.add(AuditLog(
        user_id=user_id,
        entity_type="rota_entry",
        entity_id=entity_id,
        action=action,
        old_values=old_values,
        new_values=new_values,
    ))


def _entry_values(entry: RotaEntry) -> dict:
    return {
        "package_id": str(entry.package_id),
        "carer_id": str(entry.carer_id),
        "date": entry.date.isoformat(),
        "shift_type": entry.shift_type,
        "start_time": entry.start_time.strftime("%H:%M"),
        "end_time": entry.end_time.strftime("%H:%M"),
        "is_confirmed": entry.is_confirmed,
    }


def _candidate(payload: RotaEntryIn, *, entry_id: uuid.UUID | None = None) -> RotaEntry:
    """Unsaved entry built from a payload; only added to the session once it passed validation."""
    entry = RotaEntry(
        package_id=payload.package_id,
        carer_id=payload.carer_id,
        date=payload.date,
        shift_type=payload.shift_type.value,
        start_time=payload.start_time,
        end_time=payload.end_time,
        is_confirmed=payload.is_confirmed,
    )
    if entry_id is not None:
        entry.id = entry_id
    return entry


def _dump(items) -> list[dict]:
    return [RuleViolationOut.model_validate(v).model_dump(mode="json") for v in items]


def _rejected(message: str, result: ScheduleValidationResult) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={
            "message": message,
            "violations": _dump(result.violations),
            "warnings": _dump(result.warnings),
        },
    )


async def _get_entry(entry_id: uuid.UUID, db) -> RotaEntry:
    entry = await db.get(RotaEntry, entry_id)
    if not entry:
        raise HTTPException(status_code=404, detail="Rota entry not found")
    return entry


async def _require_live(db, *, carer_ids, package_ids) -> dict[uuid.UUID, str]:
    """404 unless every carer and package exists and is not deleted. Returns carer names."""
    carer_ids, package_ids = set(carer_ids), set(package_ids)

    result = await db.execute(
        select(Carer.id, Carer.name).where(Carer.id.in_(carer_ids), Carer.deleted_at.is_(None))
    )
    names = {row.id: row.name for row in result.all()}
    if carer_ids - set(names):
        raise HTTPException(status_code=404, detail="Carer not found")

    result = await db.execute(
        select(CarePackage.id).where(CarePackage.id.in_(package_ids), CarePackage.deleted_at.is_(None))
    )
    if package_ids - set(result.scalars().all()):
        raise HTTPException(status_code=404, detail="Care package not found")
    return names


async def _check_duplicate(db, candidate: RotaEntry, carer_name: str | None) -> None:
    conditions = [
        RotaEntry.carer_id == candidate.carer_id,
        RotaEntry.package_id == candidate.package_id,
        RotaEntry.date == candidate.date,
    ]
    if candidate.id is not None:
        conditions.append(RotaEntry.id != candidate.id)
    result = await db.execute(select(RotaEntry.id).where(*conditions).limit(1))
    if result.scalar_one_or_none() is None:
        return

    message = f"{carer_name or 'Carer'} already has a shift on this package on {candidate.date.isoformat()}"
    raise HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail={
            "message": message,
            "violations": [{
                "rule": NO_DUPLICATE_SHIFTS,
                "message": message,
                "severity": "error",
                "carer_id": str(candidate.carer_id),
                "carer_name": carer_name,
                "entry_id": None,
                "date": candidate.date.isoformat(),
                "shift_type": candidate.shift_type,
            }],
            "warnings": [],
        },
    )


# ── Read ──────────────────────────────────────────────────────────────────────

@router.get("", response_model=RotaEntryPage)
async def list_entries(
    current_user: AdminUser,
    db: DB,
    package_id: Optional[uuid.UUID] = Query(None),
    carer_id: Optional[uuid.UUID] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    shift_type: Optional[ShiftType] = Query(None),
    is_confirmed: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
):
    conditions = []
    if package_id:
        conditions.append(RotaEntry.package_id == package_id)
    if carer_id:
        conditions.append(RotaEntry.carer_id == carer_id)
    if start_date:
        conditions.append(RotaEntry.date >= start_date)
    if end_date:
        conditions.append(RotaEntry.date <= end_date)
    if shift_type:
        conditions.append(RotaEntry.shift_type == shift_type.value)
    if is_confirmed is not None:
        conditions.append(RotaEntry.is_confirmed == is_confirmed)

    total = (await db.execute(
        select(func.count()).select_from(RotaEntry).where(*conditions)
    )).scalar_one()

    result = await db.execute(
        select(RotaEntry)
        .where(*conditions)
        .order_by(RotaEntry.date, RotaEntry.start_time)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return RotaEntryPage(
        items=[RotaEntryOut.model_validate(e) for e in result.scalars().all()],
        page=page,
        limit=limit,
        total=total,
        total_pages=math.ceil(total / limit) if total else 0,
    )


@router.get("/weekly", response_model=WeeklyRotaOut)
async def weekly_rota(
    current_user: AdminUser,
    rota: Rota,
    package_id: uuid.UUID = Query(...),
    week_start: date = Query(...),
):
    entries, summaries = await rota.weekly_schedules(package_id, week_start)
    package_carers, other_carers = await rota.staffing.board_carers(package_id)
    first = monday_of(week_start)
    return WeeklyRotaOut(
        package_id=package_id,
        week_start=first,
        week_end=first + timedelta(days=6),
        entries=[RotaEntryOut.model_validate(e) for e in entries],
        weekly_schedules=[WeeklyScheduleSummaryOut.model_validate(s) for s in summaries],
        package_carers=[BoardCarerOut.model_validate(c) for c in package_carers],
        other_carers=[BoardCarerOut.model_validate(c) for c in other_carers],
    )


# ── Validation / bulk ─────────────────────────────────────────────────────────

@router.post("/validate", response_model=ValidationResultOut)
async def validate_entry(payload: RotaEntryIn, current_user: AdminUser, db: DB, rota: Rota):
    """Dry run of the write guard; never stores anything."""
    names = await _require_live(db, carer_ids=[payload.carer_id], package_ids=[payload.package_id])
    result = await rota.validate_entry(
        _candidate(payload), carer_name=names[payload.carer_id]
    )
    return ValidationResultOut(
        is_valid=result.is_valid,
        violations=_dump(result.violations),
        warnings=_dump(result.warnings),
    )


@router.post("/bulk", response_model=BulkRotaOut)
async def bulk_create(payload: BulkRotaCreate, current_user: AdminUser, db: DB, rota: Rota):
    await _require_live(
        db,
        carer_ids=[e.carer_id for e in payload.entries],
        package_ids=[e.package_id for e in payload.entries],
    )
    candidates = [_candidate(e) for e in payload.entries]
    results = await rota.validate_entries(candidates)

    items = [
        BulkValidationItem(
            index=i,
            is_valid=r.is_valid,
            violations=_dump(r.violations),
            warnings=_dump(r.warnings),
        )
        for i, r in enumerate(results)
    ]
    valid = sum(1 for r in results if r.is_valid)
    total = len(results)

    if payload.validate_only:
        return BulkRotaOut(
            validation_results=items,
            valid_entries=valid,
            total_entries=total,
            message=f"{valid} of {total} entries are valid",
        )

    if valid < total:
        logger.info("Bulk rota create rejected: %d of %d entries invalid", total - valid, total)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": f"{total - valid} of {total} entries violate scheduling rules",
                "validation_results": [item.model_dump(mode="json") for item in items],
            },
        )

    for candidate in candidates:
        candidate.created_by_admin_id = current_user.id
        db.add(candidate)
    await db.flush()
    for candidate in candidates:
        await _write_audit(db, user_id=current_user.id, entity_id=candidate.id,
                           action="create", new_values=_entry_values(candidate))
    await db.commit()
    for candidate in candidates:
        await db.refresh(candidate)

    logger.info("Bulk rota create stored %d entries", total)
    return BulkRotaOut(
        entries=[RotaEntryOut.model_validate(c) for c in candidates],
        validation_results=items,
        valid_entries=valid,
        total_entries=total,
        message=f"Created {total} rota entries",
    )


@router.delete("/batch", response_model=BatchDeleteOut)
async def batch_delete(payload: BatchDeleteRequest, current_user: AdminUser, db: DB):
    ids = list(dict.fromkeys(payload.ids))
    result = await db.execute(
        select(RotaEntry, Carer.name, CarePackage.name)
        .join(Carer, Carer.id == RotaEntry.carer_id)
        .join(CarePackage, CarePackage.id == RotaEntry.package_id)
        .where(RotaEntry.id.in_(ids))
    )
    rows = result.all()

    found = {row[0].id for row in rows}
    missing = [str(i) for i in ids if i not in found]
    if missing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": "Some rota entries were not found", "not_found_ids": missing},
        )

    deleted = []
    for entry, carer_name, package_name in rows:
        deleted.append(DeletedEntryOut(
            id=entry.id,
            carer_name=carer_name,
            package_name=package_name,
            date=entry.date,
            shift_type=entry.shift_type,
        ))
        await _write_audit(db, user_id=current_user.id, entity_id=entry.id,
                           action="delete", old_values=_entry_values(entry))
        await db.delete(entry)
    await db.commit()

    logger.info("Batch deleted %d rota entries", len(deleted))
    return BatchDeleteOut(
        deleted_count=len(deleted),
        deleted_entries=deleted,
        message=f"Deleted {len(deleted)} rota entries",
    )


# ── Single entry ──────────────────────────────────────────────────────────────

@router.get("/{entry_id}", response_model=RotaEntryOut)
async def get_entry(entry_id: uuid.UUID, current_user: AdminUser, db: DB):
    return await _get_entry(entry_id, db)


@router.post("", response_model=RotaEntryWriteOut, status_code=status.HTTP_201_CREATED)
async def create_entry(payload: RotaEntryCreate, current_user: AdminUser, db: DB, rota: Rota):
    names = await _require_live(db, carer_ids=[payload.carer_id], package_ids=[payload.package_id])
    carer_name = names[payload.carer_id]
    candidate = _candidate(payload)

    await _check_duplicate(db, candidate, carer_name)

    result = await rota.validate_entry(candidate, carer_name=carer_name)
    if not result.is_valid:
        raise _rejected("Scheduling rules violated", result)

    candidate.created_by_admin_id = current_user.id
    db.add(candidate)
    await db.flush()
    await _write_audit(db, user_id=current_user.id, entity_id=candidate.id,
                       action="create", new_values=_entry_values(candidate))
    await db.commit()
    await db.refresh(candidate)

    return RotaEntryWriteOut(
        entry=RotaEntryOut.model_validate(candidate),
        violations=[],
        warnings=_dump(result.warnings),
        message="Rota entry created",
    )


@router.put("/{entry_id}", response_model=RotaEntryWriteOut)
async def update_entry(
    entry_id: uuid.UUID, payload: RotaEntryUpdate, current_user: AdminUser, db: DB, rota: Rota,
):
    entry = await _get_entry(entry_id, db)
    old = _entry_values(entry)

    merged = {**old, **payload.model_dump(exclude_unset=True, exclude_none=True)}
    try:
        proposed = RotaEntryIn.model_validate(merged)
    except ValidationError as exc:
        raise RequestValidationError(exc.errors(include_url=False, include_context=False))

    names = await _require_live(db, carer_ids=[proposed.carer_id], package_ids=[proposed.package_id])
    carer_name = names[proposed.carer_id]
    candidate = _candidate(proposed, entry_id=entry.id)

    await _check_duplicate(db, candidate, carer_name)

    result = await rota.validate_entry(candidate, carer_name=carer_name, exclude_id=entry.id)
    if not result.is_valid:
        raise _rejected("Scheduling rules violated", result)

    for field in ("package_id", "carer_id", "date", "shift_type", "start_time", "end_time", "is_confirmed"):
        setattr(entry, field, getattr(candidate, field))

    await _write_audit(db, user_id=current_user.id, entity_id=entry.id,
                       action="update", old_values=old, new_values=_entry_values(entry))
    await db.commit()
    await db.refresh(entry)

    return RotaEntryWriteOut(
        entry=RotaEntryOut.model_validate(entry),
        violations=[],
        warnings=_dump(result.warnings),
        message="Rota entry updated",
    )


@router.patch("/{entry_id}/confirm", response_model=RotaEntryOut)
async def confirm_entry(entry_id: uuid.UUID, current_user: AdminUser, db: DB):
    entry = await _get_entry(entry_id, db)
    if not entry.is_confirmed:
        entry.is_confirmed = True
        await _write_audit(db, user_id=current_user.id, entity_id=entry.id, action="confirm",
                           old_values={"is_confirmed": False}, new_values={"is_confirmed": True})
        await db.commit()
        await db.refresh(entry)
    return entry


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_entry(entry_id: uuid.UUID, current_user: AdminUser, db: DB):
    entry = await _get_entry(entry_id, db)
    await _write_audit(db, user_id=current_user.id, entity_id=entry.id,
                       action="delete", old_values=_entry_values(entry))
    await db.delete(entry)
    await db.commit()
