"""
Shared pytest fixtures for CareTrack backend tests.

Every test gets its own in-memory SQLite database. The HTTP client and the
``db`` fixture share one connection, so rows added through ``db`` are visible
to the API and the other way round.
"""
import uuid
from datetime import datetime, time, timezone

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

import caretrack.models  # noqa – registers all SQLAlchemy models with Base.metadata
from caretrack.core.database import Base, build_engine, create_tables, get_db
from caretrack.core.security import hash_password, create_access_token
from caretrack.main import app
from caretrack.models.care_package import CarePackage, PackageTaskAssignment, Task
from caretrack.models.carer import Carer, CompetencyLevel, CompetencyRating
from caretrack.models.rota import RotaEntry
from caretrack.models.user import User

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# ── Shared engine (function-scoped: fresh DB per test) ───────────────────────

@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory SQLite per test; StaticPool keeps a single shared connection."""
    eng = build_engine(TEST_DATABASE_URL, poolclass=StaticPool)
    await create_tables(bind=eng)

    yield eng

    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await eng.dispose()


@pytest_asyncio.fixture
async def db(engine) -> AsyncSession:
    """Async DB session for direct data inspection inside tests."""
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


# ── HTTP client fixture ───────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def client(engine) -> AsyncClient:
    """
    FastAPI test client with get_db overridden to use the test engine.
    Each request gets its own session but shares the same underlying
    connection via StaticPool.
    """
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()


# ── User fixtures ─────────────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def admin_user(db) -> User:
    u = User(
        id=uuid.uuid4(),
        email="admin@caretrack.co.uk",
        name="Rota Admin",
        hashed_password=hash_password("testpass123"),
        role="admin",
        is_active=True,
        created_at=datetime.now(timezone.utc),
    )
    db.add(u)
    await db.commit()
    await db.refresh(u)
    return u


@pytest_asyncio.fixture
async def viewer_user(db) -> User:
    u = User(
        id=uuid.uuid4(),
        email="viewer@caretrack.co.uk",
        name="Read Only",
        hashed_password=hash_password("testpass123"),
        role="viewer",
        is_active=True,
        created_at=datetime.now(timezone.utc),
    )
    db.add(u)
    await db.commit()
    await db.refresh(u)
    return u


@pytest.fixture
def admin_token(admin_user) -> str:
    return create_access_token(admin_user.id, "admin")


@pytest.fixture
def viewer_token(viewer_user) -> str:
    return create_access_token(viewer_user.id, "viewer")


# ── Domain fixtures ───────────────────────────────────────────────────────────

async def make_carer(db, name: str) -> Carer:
    c = Carer(id=uuid.uuid4(), name=name, is_active=True)
    db.add(c)
    await db.commit()
    await db.refresh(c)
    return c


async def rate(db, carer: Carer, task: Task, level: CompetencyLevel = CompetencyLevel.COMPETENT):
    db.add(CompetencyRating(carer_id=carer.id, task_id=task.id, level=level.value))
    await db.commit()


async def add_entry(db, carer: Carer, package: CarePackage, day, shift_type: str = "DAY",
                    start: time = time(9, 0), end: time = time(17, 0)) -> RotaEntry:
    e = RotaEntry(
        package_id=package.id,
        carer_id=carer.id,
        date=day,
        shift_type=shift_type,
        start_time=start,
        end_time=end,
    )
    db.add(e)
    await db.commit()
    await db.refresh(e)
    return e


@pytest_asyncio.fixture
async def carer(db) -> Carer:
    return await make_carer(db, "Alice Carer")


@pytest_asyncio.fixture
async def task(db) -> Task:
    t = Task(id=uuid.uuid4(), name="Medication support")
    db.add(t)
    await db.commit()
    await db.refresh(t)
    return t


@pytest_asyncio.fixture
async def package(db, task) -> CarePackage:
    p = CarePackage(id=uuid.uuid4(), name="Mr Jones", postcode="SW1A", is_active=True)
    db.add(p)
    await db.flush()
    db.add(PackageTaskAssignment(package_id=p.id, task_id=task.id))
    await db.commit()
    await db.refresh(p)
    return p


# ── Helper ────────────────────────────────────────────────────────────────────

def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
