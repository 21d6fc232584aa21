import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import select

from caretrack.api.deps import DB, AdminUser
from caretrack.models.care_package import Task
from caretrack.models.carer import Carer, CompetencyRating
from caretrack.schemas.carer import (
    CarerCreate, CarerUpdate, CarerOut, CompetencyRatingSet, CompetencyRatingOut,
)

router = APIRouter(prefix="/carers", tags=["carers"])


async def _get_live_carer(carer_id: uuid.UUID, db) -> Carer:
    carer = await db.get(Carer, carer_id)
    if not carer or carer.deleted_at is not None:
        raise HTTPException(status_code=404, detail="Carer not found")
    return carer


@router.get("", response_model=list[CarerOut])
async def list_carers(current_user: AdminUser, db: DB, include_inactive: bool = False):
    conditions = [Carer.deleted_at.is_(None)]
    if not include_inactive:
        conditions.append(Carer.is_active == True)  # noqa: E712
    result = await db.execute(select(Carer).where(*conditions).order_by(Carer.name))
    return result.scalars().all()


@router.post("", response_model=CarerOut, status_code=status.HTTP_201_CREATED)
async def create_carer(payload: CarerCreate, current_user: AdminUser, db: DB):
    if payload.email:
        existing = await db.execute(select(Carer.id).where(Carer.email == payload.email))
        if existing.scalar_one_or_none():
            raise HTTPException(status_code=409, detail="A carer with this email already exists")

    carer = Carer(**payload.model_dump())
    db.add(carer)
    await db.commit()
    await db.refresh(carer)
    return carer


@router.get("/{carer_id}", response_model=CarerOut)
async def get_carer(carer_id: uuid.UUID, current_user: AdminUser, db: DB):
    return await _get_live_carer(carer_id, db)


@router.put("/{carer_id}", response_model=CarerOut)
async def update_carer(carer_id: uuid.UUID, payload: CarerUpdate, current_user: AdminUser, db: DB):
    carer = await _get_live_carer(carer_id, db)
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(carer, field, value)
    await db.commit()
    await db.refresh(carer)
    return carer


@router.delete("/{carer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_carer(carer_id: uuid.UUID, current_user: AdminUser, db: DB):
    """Soft delete – the carer moves to the recycle bin, rota history stays."""
    carer = await _get_live_carer(carer_id, db)
    carer.deleted_at = datetime.now(timezone.utc)
    carer.is_active = False
    await db.commit()


# ── Competencies ──────────────────────────────────────────────────────────────

@router.get("/{carer_id}/competencies", response_model=list[CompetencyRatingOut])
async def list_competencies(carer_id: uuid.UUID, current_user: AdminUser, db: DB):
    await _get_live_carer(carer_id, db)
    result = await db.execute(
        select(CompetencyRating).where(CompetencyRating.carer_id == carer_id)
    )
    return result.scalars().all()


@router.put("/{carer_id}/competencies/{task_id}", response_model=CompetencyRatingOut)
async def set_competency(
    carer_id: uuid.UUID,
    task_id: uuid.UUID,
    payload: CompetencyRatingSet,
    current_user: AdminUser,
    db: DB,
):
    await _get_live_carer(carer_id, db)
    task = await db.get(Task, task_id)
    if not task or task.deleted_at is not None:
        raise HTTPException(status_code=404, detail="Task not found")

    result = await db.execute(
        select(CompetencyRating).where(
            CompetencyRating.carer_id == carer_id,
            CompetencyRating.task_id == task_id,
        )
    )
    rating = result.scalar_one_or_none()
    if rating is None:
        rating = CompetencyRating(carer_id=carer_id, task_id=task_id)
        db.add(rating)

    rating.level = payload.level.value
    rating.source = payload.source
    rating.set_by_admin_id = current_user.id

    await db.commit()
    await db.refresh(rating)
    return rating
