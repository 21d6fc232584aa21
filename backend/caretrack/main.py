import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from caretrack.core.config import settings
from caretrack.core.database import create_tables
from caretrack.api.v1.auth import router as auth_router
from caretrack.api.v1.carers import router as carers_router
from caretrack.api.v1.packages import packages_router, tasks_router
from caretrack.api.v1.rota import router as rota_router

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
VERSION = "1.0.0"

ROUTERS = (auth_router, carers_router, packages_router, tasks_router, rota_router)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # SQLite / local development; managed databases go through `alembic upgrade head`
    await create_tables()
    logger.info(
        "CareTrack rota API started (%s, weekly limit %sh)",
        settings.APP_ENV, settings.WEEKLY_HOUR_LIMIT,
    )
    yield


app = FastAPI(
    title="CareTrack Pro API",
    description="Weekly rota scheduling for home-care packages",
    version=VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for router in ROUTERS:
    app.include_router(router, prefix=API_PREFIX)


@app.get("/health")
async def health_check():
    return {"status": "ok", "service": "CareTrack Pro API", "version": VERSION, "env": settings.APP_ENV}
