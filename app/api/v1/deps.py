"""
FastAPI dependencies: caller identity, role guards, database session and
the per-request ledger.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Optional

from fastapi import Cookie, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.events import event_bus
from app.core.security import Actor, actor_from_payload, decode_access_token
from app.db.schema import schema_status
from app.db.session import async_session_factory
from app.services.ledger import AttendanceLedger

HR_ROLES = frozenset({"admin", "hr_admin"})
RECORDER_ROLES = HR_ROLES | {"kiosk"}

# auto_error=False so the cookie can be checked when the header is missing
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token", auto_error=False)


# ── Database session ────────────────────────────────────────────────
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


# ── Auth dependencies ───────────────────────────────────────────────
async def get_current_actor(
    token: Optional[str] = Depends(oauth2_scheme),
    access_token: Optional[str] = Cookie(default=None),
) -> Actor:
    """Decode JWT from Header OR Cookie into the calling actor."""

    # Priority: Header > Cookie
    final_token = token
    if not final_token and access_token:
        if access_token.startswith("Bearer "):
            final_token = access_token.split(" ", 1)[1]
        else:
            final_token = access_token

    credentials_exc = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if not final_token:
        raise credentials_exc

    payload = decode_access_token(final_token)
    if payload is None:
        raise credentials_exc

    actor = actor_from_payload(payload)
    if actor is None:
        raise credentials_exc
    return actor


async def require_hr(actor: Actor = Depends(get_current_actor)) -> Actor:
    """Only HR administrators may correct, lock, or reconfigure."""
    if actor.role not in HR_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="HR administrator privileges required",
        )
    return actor


async def require_recorder(actor: Actor = Depends(get_current_actor)) -> Actor:
    if actor.role not in RECORDER_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not allowed to record attendance",
        )
    return actor


# ── Ledger ──────────────────────────────────────────────────────────
async def get_ledger(
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> AttendanceLedger:
    return AttendanceLedger(
        db,
        actor.tenant_id,
        events=event_bus,
        provisioned=schema_status.facts_provisioned,
    )
