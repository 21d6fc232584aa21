from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from caretrack.core.config import settings


class Base(DeclarativeBase):
    pass


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(url: str, **kwargs) -> AsyncEngine:
    """
    Async engine for ``url``. On SQLite the connection may hop between threads
    and foreign keys are switched on so that competency ratings follow their
    carer and task.
    """
    is_sqlite = url.startswith("sqlite")
    if is_sqlite:
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    eng = create_async_engine(url, **kwargs)
    if is_sqlite:
        event.listen(eng.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return eng


engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)

AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db():
    """Request-scoped session. Routers commit explicitly; errors roll back."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def create_tables(bind: AsyncEngine | None = None):
    """Create all tables (local development without Alembic)."""
    import caretrack.models  # noqa – registers every model
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
