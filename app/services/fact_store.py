"""
Storage for daily attendance facts: one row per (tenant, employee, date).
"""

from __future__ import annotations

import logging
from datetime import date, time
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BackendUnavailableError, NotFoundError, ValidationError
from app.models.attendance import AttendanceFact
from app.models.employee import Employee
from app.services.audit import FieldChange, differs
from app.services.locks import ensure_unlocked
from app.services.timesheet import Schedule, Timesheet

logger = logging.getLogger(__name__)


class FactStore:
    def __init__(self, db: AsyncSession, tenant_id: str, *, provisioned: bool = True):
        self._db = db
        self._tenant_id = tenant_id
        self.provisioned = provisioned

    async def create(
        self,
        *,
        employee: Employee,
        work_date: date,
        check_in: time | None,
        check_out: time | None,
        schedule: Schedule,
        sheet: Timesheet,
        deduction_amount: Decimal | None = None,
        notes: str | None = None,
    ) -> AttendanceFact:
        if employee is None or work_date is None:
            raise ValidationError("employee and date are required")

        fact = AttendanceFact(
            tenant_id=self._tenant_id,
            employee_id=employee.id,
            employee=employee,
            date=work_date,
            check_in_time=check_in,
            check_out_time=check_out,
            scheduled_start=schedule.start,
            scheduled_end=schedule.end,
            status=sheet.status,
            late_minutes=sheet.late_minutes,
            early_leave_minutes=sheet.early_leave_minutes,
            overtime_minutes=sheet.overtime_minutes,
            worked_hours=sheet.worked_hours,
            deduction_amount=deduction_amount,
            notes=notes,
            is_locked=False,
        )
        self._db.add(fact)
        await self._db.flush()
        return fact

    async def find(self, employee_id: int, work_date: date) -> AttendanceFact | None:
        result = await self._db.execute(
            select(AttendanceFact).where(
                AttendanceFact.tenant_id == self._tenant_id,
                AttendanceFact.employee_id == employee_id,
                AttendanceFact.date == work_date,
            )
        )
        return result.scalar_one_or_none()

    async def get(self, fact_id: int) -> AttendanceFact:
        result = await self._db.execute(
            select(AttendanceFact).where(
                AttendanceFact.tenant_id == self._tenant_id,
                AttendanceFact.id == fact_id,
            )
        )
        fact = result.scalar_one_or_none()
        if fact is None:
            raise NotFoundError(f"Attendance record {fact_id} not found")
        return fact

    async def fetch(
        self,
        start: date,
        end: date,
        employee_id: int | None = None,
    ) -> list[AttendanceFact]:
        """Facts dated within [start, end], newest first.

        On a deployment whose facts table has not been provisioned yet this
        returns an empty list. Any other storage failure is raised.
        """
        if not self.provisioned:
            return []

        stmt = (
            select(AttendanceFact)
            .where(
                AttendanceFact.tenant_id == self._tenant_id,
                AttendanceFact.date >= start,
                AttendanceFact.date <= end,
            )
            .order_by(AttendanceFact.date.desc(), AttendanceFact.employee_id)
        )
        if employee_id is not None:
            stmt = stmt.where(AttendanceFact.employee_id == employee_id)

        try:
            result = await self._db.execute(stmt)
        except DBAPIError as exc:
            logger.error("Attendance fetch failed for %s..%s: %s", start, end, exc)
            raise BackendUnavailableError("Attendance store is unavailable") from exc
        return list(result.scalars().all())

    async def apply_patch(self, fact: AttendanceFact, values: dict[str, Any]) -> list[FieldChange]:
        """Write *values* onto *fact* and flush; return one change per patched field.

        Unchanged fields are reported as well but left untouched on the row;
        a value that renders the same in the trail (None and "") is unchanged.
        """
        ensure_unlocked(fact)

        changes = [FieldChange(name, getattr(fact, name), value) for name, value in values.items()]
        for change in changes:
            if differs(change.old, change.new):
                setattr(fact, change.field, change.new)

        await self._db.flush()
        return changes
