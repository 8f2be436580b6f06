"""
Tenant attendance policy lookup.

Each tenant has at most one ``AttendancePolicy`` row. Readers that only need
the values get an unsaved row built from the configured defaults when none
exists; the settings API persists one on first access.
"""

from __future__ import annotations

import logging
from datetime import datetime, time
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.attendance_policy import AttendancePolicy

logger = logging.getLogger(__name__)


def parse_hhmm(value: str) -> time:
    return datetime.strptime(value.strip(), "%H:%M").time()


def default_policy(tenant_id: str) -> AttendancePolicy:
    return AttendancePolicy(
        tenant_id=tenant_id,
        official_start=parse_hhmm(settings.DEFAULT_SHIFT_START),
        official_end=parse_hhmm(settings.DEFAULT_SHIFT_END),
        grace_minutes=settings.DEFAULT_GRACE_MINUTES,
        lateness_penalty_rate=Decimal(settings.DEFAULT_LATENESS_PENALTY_RATE),
        late_rate_per_minute=Decimal(settings.DEFAULT_LATE_RATE_PER_MINUTE),
    )


async def load_policy(db: AsyncSession, tenant_id: str) -> AttendancePolicy:
    """Return the tenant's policy, or an unsaved default."""
    result = await db.execute(
        select(AttendancePolicy).where(AttendancePolicy.tenant_id == tenant_id)
    )
    return result.scalar_one_or_none() or default_policy(tenant_id)


async def get_or_create_policy(db: AsyncSession, tenant_id: str) -> AttendancePolicy:
    """Fetch the tenant's policy row, creating it with defaults if absent."""
    result = await db.execute(
        select(AttendancePolicy).where(AttendancePolicy.tenant_id == tenant_id)
    )
    policy = result.scalar_one_or_none()
    if policy is None:
        policy = default_policy(tenant_id)
        db.add(policy)
        await db.commit()
        await db.refresh(policy)
        logger.info("Created default attendance policy for tenant %s", tenant_id)
    return policy
