"""
Shared test fixtures for the attendance ledger test suite.

Each test gets its own SQLite file database (aiosqlite) so that several
sessions can hold independent transactions against the same rows.
"""

import os
from datetime import time
from typing import AsyncGenerator

import pytest

# Override environment BEFORE importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CORS_ORIGINS"] = '["*"]'
os.environ["EVENTS_BACKEND"] = "memory"

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.api.v1.deps import get_current_actor, get_db
from app.core.events import EventBus, FactsChanged
from app.core.security import Actor
from app.db.base import Base
from app.main import app
from app.models.employee import Employee, Shift
from app.services.ledger import AttendanceLedger

TENANT = "default"
HR = Actor(id="hr-1", role="hr_admin", tenant_id=TENANT, name="Hana HR")
KIOSK = Actor(id="kiosk-1", role="kiosk", tenant_id=TENANT)


@pytest.fixture
async def engine(tmp_path):
    test_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct queries in tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def hr() -> Actor:
    return HR


@pytest.fixture
def kiosk() -> Actor:
    return KIOSK


@pytest.fixture
def published() -> list[FactsChanged]:
    return []


@pytest.fixture
def bus(published) -> EventBus:
    event_bus = EventBus()

    async def _collect(event: FactsChanged) -> None:
        published.append(event)

    event_bus.subscribe(_collect)
    return event_bus


@pytest.fixture
def ledger(db_session, bus) -> AttendanceLedger:
    return AttendanceLedger(db_session, TENANT, events=bus)


# ── Seed data ───────────────────────────────────────────────────────
@pytest.fixture
async def employee(db_session) -> Employee:
    emp = Employee(
        tenant_id=TENANT,
        code="T-001",
        full_name="Amina Yusuf",
        department="Science",
        position="Teacher",
        employee_type="teacher",
    )
    db_session.add(emp)
    await db_session.commit()
    await db_session.refresh(emp)
    return emp


@pytest.fixture
async def colleague(db_session) -> Employee:
    emp = Employee(
        tenant_id=TENANT,
        code="T-002",
        full_name="Bilal Rahman",
        department="Mathematics",
        position="Teacher",
        employee_type="teacher",
    )
    db_session.add(emp)
    await db_session.commit()
    await db_session.refresh(emp)
    return emp


@pytest.fixture
async def night_shift(db_session) -> Shift:
    shift = Shift(
        tenant_id=TENANT,
        name="Evening",
        start_time=time(13, 0),
        end_time=time(20, 0),
        grace_minutes=5,
    )
    db_session.add(shift)
    await db_session.commit()
    await db_session.refresh(shift)
    return shift


# ── HTTP client ─────────────────────────────────────────────────────
@pytest.fixture
async def async_client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app, acting as HR."""

    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    async def _override_get_current_actor() -> Actor:
        return HR

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_current_actor] = _override_get_current_actor

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def act_as(async_client):
    """Switch the caller identity used by ``async_client``."""

    def _act_as(actor: Actor) -> None:
        async def _override() -> Actor:
            return actor

        app.dependency_overrides[get_current_actor] = _override

    return _act_as
