"""
Period locking.

A locked fact belongs to a period that has been closed for payroll. Only
``LockManager.set_lock`` may touch it until the period is reopened.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import LockedRecordError, ValidationError
from app.models.attendance import AttendanceFact

logger = logging.getLogger(__name__)


def ensure_unlocked(fact: AttendanceFact) -> None:
    if fact.is_locked:
        raise LockedRecordError(
            f"Attendance record {fact.id} ({fact.date.isoformat()}) is locked"
            f" by {fact.locked_by or 'unknown'}"
        )


class LockManager:
    def __init__(self, db: AsyncSession, tenant_id: str):
        self._db = db
        self._tenant_id = tenant_id

    async def set_lock(self, start: date, end: date, actor_id: str, lock: bool = True) -> int:
        """Lock or unlock every fact dated within [start, end].

        Rows are written through the ORM so each one gets its version
        bumped; an update that read a row before it was locked will then
        fail its version check instead of slipping through.
        """
        if start is None or end is None:
            raise ValidationError("Both start and end dates are required")
        if start > end:
            raise ValidationError("Start date must not be after end date")

        result = await self._db.execute(
            select(AttendanceFact).where(
                AttendanceFact.tenant_id == self._tenant_id,
                AttendanceFact.date >= start,
                AttendanceFact.date <= end,
            )
        )
        facts = list(result.scalars().all())

        now = datetime.now(timezone.utc)
        for fact in facts:
            fact.is_locked = lock
            fact.locked_at = now if lock else None
            fact.locked_by = actor_id if lock else None

        await self._db.flush()
        return len(facts)
