"""
Attendance Ledger: application entry point.

This is the **only** file that assembles the app. All business logic
lives in the `services/`, `models/`, and `core/` packages.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.api import api_router
from app.core.config import settings
from app.core.events import RedisEventPublisher, event_bus
from app.core.exceptions import register_exception_handlers
from app.db.base import Base
from app.db.schema import probe_schema
from app.db.session import engine

# Ensure all models are imported so metadata.create_all can see them
from app.models.attendance import AttendanceFact, AuditEntry, LedgerRevision  # noqa: F401
from app.models.attendance_policy import AttendancePolicy  # noqa: F401
from app.models.employee import Employee, Shift  # noqa: F401

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan ────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(_app: FastAPI):
    if settings.AUTO_CREATE_TABLES:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables initialised")

    status = await probe_schema(engine)
    logger.info("Ledger schema provisioned: facts=%s audit=%s", status.facts_provisioned, status.audit_provisioned)

    if settings.EVENTS_BACKEND == "redis":
        event_bus.attach_redis(RedisEventPublisher.from_url(settings.REDIS_URL, settings.EVENTS_CHANNEL))
        logger.info("Publishing change events to redis channel %s", settings.EVENTS_CHANNEL)

    logger.info("%s v%s started", settings.PROJECT_NAME, settings.VERSION)
    yield
    await event_bus.close()
    await engine.dispose()
    logger.info("Shutdown complete")


# ── App factory ─────────────────────────────────────────────────────
def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.PROJECT_NAME,
        description="Auditable daily attendance ledger with period locks and payroll derivation",
        version=settings.VERSION,
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Global exception handlers (prevent stack-trace leakage)
    register_exception_handlers(application)

    # Mount API v1
    application.include_router(api_router, prefix=settings.API_V1_PREFIX)

    return application


app = create_app()
