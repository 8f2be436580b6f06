"""
Attendance policy endpoints: HR-configurable official hours and rates.

One row per tenant in attendance_policies. GET retrieves it, PUT updates
it. If no row exists, one is created with defaults on first access.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import get_db, require_hr
from app.core.exceptions import ValidationError
from app.core.security import Actor
from app.models.attendance_policy import AttendancePolicy
from app.schemas.attendance import AttendancePolicyRead, AttendancePolicyUpdate
from app.services.policy import get_or_create_policy

router = APIRouter(tags=["settings"])
logger = logging.getLogger(__name__)


@router.get("/settings", response_model=AttendancePolicyRead)
async def get_settings(
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(require_hr),
) -> AttendancePolicy:
    """Get the tenant's attendance policy."""
    return await get_or_create_policy(db, actor.tenant_id)


@router.put("/settings", response_model=AttendancePolicyRead)
async def update_settings(
    body: AttendancePolicyUpdate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(require_hr),
) -> AttendancePolicy:
    """Update official hours, grace period, or lateness rates.

    Existing facts keep the schedule they were recorded against.
    """
    policy = await get_or_create_policy(db, actor.tenant_id)
    changes = body.model_dump(exclude_unset=True, exclude_none=True)

    start = changes.get("official_start", policy.official_start)
    end = changes.get("official_end", policy.official_end)
    if end <= start:
        raise ValidationError("Official end must be after official start")

    for field, value in changes.items():
        setattr(policy, field, value)

    await db.commit()
    await db.refresh(policy)
    logger.info("Attendance policy for tenant %s updated by %s: %s", actor.tenant_id, actor.display_name, changes)
    return policy
