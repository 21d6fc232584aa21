import uuid

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import select

from caretrack.api.deps import DB, AdminUser
from caretrack.models.care_package import CarePackage, CarerPackageAssignment, PackageTaskAssignment, Task
from caretrack.models.carer import Carer
from caretrack.schemas.care_package import CarePackageCreate, CarePackageOut, TaskCreate, TaskOut
from caretrack.schemas.carer import CarerOut


# ── Tasks ────────────────────────────────────────────────────────────────────

tasks_router = APIRouter(prefix="/tasks", tags=["tasks"])


@tasks_router.get("", response_model=list[TaskOut])
async def list_tasks(current_user: AdminUser, db: DB):
    result = await db.execute(
        select(Task).where(Task.deleted_at.is_(None)).order_by(Task.name)
    )
    return result.scalars().all()


@tasks_router.post("", response_model=TaskOut, status_code=status.HTTP_201_CREATED)
async def create_task(payload: TaskCreate, current_user: AdminUser, db: DB):
    task = Task(**payload.model_dump())
    db.add(task)
    await db.commit()
    await db.refresh(task)
    return task


# ── Care packages ────────────────────────────────────────────────────────────

packages_router = APIRouter(prefix="/packages", tags=["packages"])


async def _get_live_package(package_id: uuid.UUID, db) -> CarePackage:
    package = await db.get(CarePackage, package_id)
    if not package or package.deleted_at is not None:
        raise HTTPException(status_code=404, detail="Care package not found")
    return package


@packages_router.get("", response_model=list[CarePackageOut])
async def list_packages(current_user: AdminUser, db: DB):
    result = await db.execute(
        select(CarePackage)
        .where(CarePackage.deleted_at.is_(None), CarePackage.is_active == True)  # noqa: E712
        .order_by(CarePackage.name)
    )
    return result.scalars().all()


@packages_router.post("", response_model=CarePackageOut, status_code=status.HTTP_201_CREATED)
async def create_package(payload: CarePackageCreate, current_user: AdminUser, db: DB):
    package = CarePackage(**payload.model_dump())
    db.add(package)
    await db.commit()
    await db.refresh(package)
    return package


@packages_router.get("/{package_id}/tasks", response_model=list[TaskOut])
async def list_package_tasks(package_id: uuid.UUID, current_user: AdminUser, db: DB):
    await _get_live_package(package_id, db)
    result = await db.execute(
        select(Task)
        .join(PackageTaskAssignment, PackageTaskAssignment.task_id == Task.id)
        .where(
            PackageTaskAssignment.package_id == package_id,
            PackageTaskAssignment.is_active == True,  # noqa: E712
            Task.deleted_at.is_(None),
        )
        .order_by(Task.name)
    )
    return result.scalars().all()


@packages_router.post("/{package_id}/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def assign_task(package_id: uuid.UUID, task_id: uuid.UUID, current_user: AdminUser, db: DB):
    await _get_live_package(package_id, db)
    task = await db.get(Task, task_id)
    if not task or task.deleted_at is not None:
        raise HTTPException(status_code=404, detail="Task not found")

    result = await db.execute(
        select(PackageTaskAssignment).where(
            PackageTaskAssignment.package_id == package_id,
            PackageTaskAssignment.task_id == task_id,
        )
    )
    assignment = result.scalar_one_or_none()
    if assignment is None:
        db.add(PackageTaskAssignment(package_id=package_id, task_id=task_id))
    else:
        assignment.is_active = True
    await db.commit()


# ── Package carers ───────────────────────────────────────────────────────────

async def _get_assignment(package_id: uuid.UUID, carer_id: uuid.UUID, db) -> CarerPackageAssignment | None:
    result = await db.execute(
        select(CarerPackageAssignment).where(
            CarerPackageAssignment.package_id == package_id,
            CarerPackageAssignment.carer_id == carer_id,
        )
    )
    return result.scalar_one_or_none()


@packages_router.get("/{package_id}/carers", response_model=list[CarerOut])
async def list_package_carers(package_id: uuid.UUID, current_user: AdminUser, db: DB):
    await _get_live_package(package_id, db)
    result = await db.execute(
        select(Carer)
        .join(CarerPackageAssignment, CarerPackageAssignment.carer_id == Carer.id)
        .where(
            CarerPackageAssignment.package_id == package_id,
            CarerPackageAssignment.is_active == True,  # noqa: E712
            Carer.deleted_at.is_(None),
        )
        .order_by(Carer.name)
    )
    return result.scalars().all()


@packages_router.post("/{package_id}/carers/{carer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def assign_carer(package_id: uuid.UUID, carer_id: uuid.UUID, current_user: AdminUser, db: DB):
    await _get_live_package(package_id, db)
    carer = await db.get(Carer, carer_id)
    if not carer or carer.deleted_at is not None:
        raise HTTPException(status_code=404, detail="Carer not found")

    assignment = await _get_assignment(package_id, carer_id, db)
    if assignment is None:
        db.add(CarerPackageAssignment(package_id=package_id, carer_id=carer_id))
    else:
        assignment.is_active = True
    await db.commit()


@packages_router.delete("/{package_id}/carers/{carer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unassign_carer(package_id: uuid.UUID, carer_id: uuid.UUID, current_user: AdminUser, db: DB):
    """Rota history stays; the carer just drops to the 'other carers' list."""
    assignment = await _get_assignment(package_id, carer_id, db)
    if assignment is None or not assignment.is_active:
        raise HTTPException(status_code=404, detail="Carer is not assigned to this package")
    assignment.is_active = False
    await db.commit()
