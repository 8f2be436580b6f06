"""Attendance ledger service layer: the operations callers use.

Business logic:
  - Record a day's attendance, classified against the employee's schedule
  - Correct a fact through the audited update path (lock check, versioned
    row write and audit entries commit together or not at all)
  - Close and reopen periods for payroll
  - Derive monthly summaries and payroll figures from a fresh fact scan
  - Filtered listings for the daily / weekly / monthly attendance screens
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any

import pydantic
from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from app.core.events import EventBus, FactsChanged, event_bus
from app.core.exceptions import (BackendUnavailableError,
                                 ConcurrencyConflictError, DomainError,
                                 DuplicateRecordError, NotFoundError,
                                 ValidationError)
from app.core.security import Actor
from app.models.attendance import (AttendanceFact, AttendanceStatus,
                                   AuditEntry, LedgerRevision)
from app.models.employee import Employee
from app.schemas.attendance import FactPatch
from app.services.aggregation import MonthlySummary, month_bounds, summarize
from app.services.audit import AuditRecorder
from app.services.fact_store import FactStore
from app.services.locks import LockManager, ensure_unlocked
from app.services.payroll import PayrollDerivation, derive
from app.services.policy import default_policy, load_policy
from app.services.queries import (AttendanceListing, RangeType, compute_stats,
                                   date_window, departments_of, filter_facts)
from app.services.timesheet import (checkout_figures, classify,
                                    lateness_deduction, resolve_schedule,
                                    with_status)

logger = logging.getLogger(__name__)

CHECK_OUT_REASON = "check-out"


def _as_patch(patch: FactPatch | Mapping[str, Any]) -> FactPatch:
    if isinstance(patch, FactPatch):
        return patch
    try:
        return FactPatch.model_validate(dict(patch))
    except pydantic.ValidationError as exc:
        raise ValidationError(f"Invalid attendance patch: {exc}") from exc


class AttendanceLedger:
    """All ledger operations for one tenant, bound to one session."""

    def __init__(
        self,
        db: AsyncSession,
        tenant_id: str,
        *,
        events: EventBus | None = None,
        provisioned: bool = True,
    ):
        self._db = db
        self.tenant_id = tenant_id
        self.facts = FactStore(db, tenant_id, provisioned=provisioned)
        self.audit = AuditRecorder(db, tenant_id)
        self.locks = LockManager(db, tenant_id)
        self._events = events or event_bus

    # ── Helpers ─────────────────────────────────────────────────────
    async def _abort(self, *, reload: bool = True) -> None:
        """Roll the session back and reload the instances it was holding.

        A rollback expires every loaded instance; reloading keeps facts already
        handed to a caller readable without a lazy load.
        """
        held = list(self._db.identity_map.values())
        await self._db.rollback()
        if not reload:
            return
        for instance in held:
            if instance not in self._db:
                continue
            try:
                await self._db.refresh(instance)
            except SQLAlchemyError as exc:
                logger.warning("Could not reload %r after rollback: %s", instance, exc)
                return

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[None]:
        """Commit the enclosed work as one unit, translating store errors."""
        try:
            yield
            await self._db.commit()
        except BackendUnavailableError:
            await self._abort(reload=False)
            raise
        except DomainError:
            await self._abort()
            raise
        except StaleDataError as exc:
            await self._abort()
            raise ConcurrencyConflictError(
                "Attendance record was modified or locked concurrently; reload and retry"
            ) from exc
        except IntegrityError as exc:
            await self._abort()
            raise DuplicateRecordError(
                "Attendance is already recorded for this employee and date"
            ) from exc
        except DBAPIError as exc:
            await self._abort(reload=False)
            logger.error("Attendance store error: %s", exc, exc_info=True)
            raise BackendUnavailableError("Attendance store is unavailable") from exc

    @asynccontextmanager
    async def _reading(self) -> AsyncIterator[None]:
        """Translate store failures raised by a read into ``BackendUnavailableError``."""
        try:
            yield
        except DBAPIError as exc:
            await self._abort(reload=False)
            logger.error("Attendance store read failed: %s", exc, exc_info=True)
            raise BackendUnavailableError("Attendance store is unavailable") from exc

    async def _bump_revision(self) -> int:
        dialect = self._db.get_bind().dialect.name
        insert = pg_insert if dialect == "postgresql" else sqlite_insert
        stmt = insert(LedgerRevision).values(tenant_id=self.tenant_id, revision=1)
        # Concurrent first writers for a tenant meet on the primary key.
        stmt = stmt.on_conflict_do_update(
            index_elements=["tenant_id"],
            set_={
                "revision": LedgerRevision.revision + 1,
                "updated_at": datetime.now(timezone.utc),
            },
        )
        await self._db.execute(stmt)
        return await self.current_revision()

    async def current_revision(self) -> int:
        if not self.facts.provisioned:
            return 0
        result = await self._db.execute(
            select(LedgerRevision.revision).where(LedgerRevision.tenant_id == self.tenant_id)
        )
        return result.scalar() or 0

    async def _employee(self, employee_id: int) -> Employee:
        result = await self._db.execute(
            select(Employee).where(
                Employee.id == employee_id,
                Employee.tenant_id == self.tenant_id,
            )
        )
        employee = result.scalar_one_or_none()
        if employee is None:
            raise NotFoundError(f"Employee {employee_id} not found")
        return employee

    async def _publish(self, start: date, end: date, revision: int, kind: str) -> None:
        await self._events.publish(
            FactsChanged(tenant_id=self.tenant_id, start=start, end=end, revision=revision, kind=kind)
        )

    # ── Create ──────────────────────────────────────────────────────
    async def create_attendance_record(
        self,
        employee_id: int,
        work_date: date,
        check_in: time | None = None,
        check_out: time | None = None,
        *,
        status: AttendanceStatus | None = None,
        notes: str | None = None,
    ) -> AttendanceFact:
        if employee_id is None or work_date is None:
            raise ValidationError("employee_id and date are required")

        async with self._transaction():
            employee = await self._employee(employee_id)
            if not employee.is_active:
                raise ValidationError(f"Employee {employee_id} is inactive")

            existing = await self.facts.find(employee_id, work_date)
            if existing is not None:
                ensure_unlocked(existing)
                raise DuplicateRecordError(
                    f"Attendance for employee {employee_id} on {work_date.isoformat()}"
                    f" already exists (record {existing.id}); submit a correction instead"
                )

            policy = await load_policy(self._db, self.tenant_id)
            schedule = resolve_schedule(employee, policy)
            sheet = with_status(classify(work_date, check_in, check_out, schedule), status)
            fact = await self.facts.create(
                employee=employee,
                work_date=work_date,
                check_in=check_in,
                check_out=check_out,
                schedule=schedule,
                sheet=sheet,
                deduction_amount=lateness_deduction(sheet, policy.lateness_penalty_rate),
                notes=notes,
            )
            revision = await self._bump_revision()

        logger.info(
            "Recorded attendance %d for employee %d on %s (%s)",
            fact.id,
            employee_id,
            work_date,
            fact.status.value,
        )
        await self._publish(work_date, work_date, revision, "created")
        return fact

    # ── Update (audited) ────────────────────────────────────────────
    async def update_attendance_record(
        self,
        fact_id: int,
        patch: FactPatch | Mapping[str, Any],
        actor: Actor,
        reason: str,
        *,
        expected_version: int | None = None,
    ) -> AttendanceFact:
        """Apply a correction and record one audit entry per changed field.

        Order inside the transaction: lock check, versioned row write, audit
        inserts. A locked fact fails before anything is written.
        """
        patch = _as_patch(patch)
        if not reason or not reason.strip():
            raise ValidationError("A reason is required when modifying attendance")

        async with self._transaction():
            fact = await self.facts.get(fact_id)
            ensure_unlocked(fact)
            if expected_version is not None and fact.version != expected_version:
                raise ConcurrencyConflictError(
                    f"Attendance record {fact_id} is at version {fact.version},"
                    f" expected {expected_version}"
                )

            values = patch.supplied()
            check_in = values.get("check_in_time", fact.check_in_time)
            check_out = values.get("check_out_time", fact.check_out_time)
            if check_in is not None and check_out is not None and check_out < check_in:
                raise ValidationError("Check-out time cannot be earlier than check-in time")

            changes = await self.facts.apply_patch(fact, values)
            entries = await self.audit.record(
                fact.id, actor.id, actor.role, reason, changes
            )
            revision = await self._bump_revision() if entries else None

        if revision is not None:
            logger.info(
                "%s (%s) changed %s on attendance %d: %s",
                actor.display_name,
                actor.role,
                ", ".join(e.field_changed for e in entries),
                fact.id,
                reason.strip(),
            )
            await self._publish(fact.date, fact.date, revision, "updated")
        return fact

    async def record_check_out(self, fact_id: int, check_out: time, actor: Actor) -> AttendanceFact:
        """Close an open day; goes through the audited update path."""
        async with self._reading():
            fact = await self.facts.get(fact_id)
        ensure_unlocked(fact)
        if fact.check_in_time is None:
            raise ValidationError("Cannot check out without a check-in")
        if fact.check_out_time is not None:
            raise ValidationError("Check-out already recorded for this day")

        figures = checkout_figures(fact.date, fact.check_in_time, check_out, fact.scheduled_end)
        patch = FactPatch(
            check_out_time=check_out,
            worked_hours=figures.worked_hours,
            early_leave_minutes=figures.early_leave_minutes,
            overtime_minutes=figures.overtime_minutes,
        )
        return await self.update_attendance_record(
            fact_id, patch, actor, CHECK_OUT_REASON, expected_version=fact.version
        )

    # ── Locking ─────────────────────────────────────────────────────
    async def lock_period(self, start: date, end: date, actor: Actor, lock: bool = True) -> int:
        async with self._transaction():
            affected = await self.locks.set_lock(start, end, actor.id, lock)
            revision = await self._bump_revision() if affected else None

        if revision is None:
            logger.info("No attendance records to %s for %s..%s", "lock" if lock else "unlock", start, end)
            return 0

        logger.warning(
            "%s %s %d attendance records for %s..%s",
            actor.display_name,
            "locked" if lock else "unlocked",
            affected,
            start,
            end,
        )
        await self._publish(start, end, revision, "locked" if lock else "unlocked")
        return affected

    # ── History ─────────────────────────────────────────────────────
    async def get_modification_history(self, fact_id: int) -> list[AuditEntry]:
        async with self._reading():
            await self.facts.get(fact_id)
            return await self.audit.history(fact_id)

    # ── Derived views ───────────────────────────────────────────────
    async def get_monthly_summary(self, employee_id: int, month: str) -> MonthlySummary:
        start, end = month_bounds(month)
        async with self._reading():
            if self.facts.provisioned:
                await self._employee(employee_id)
            revision = await self.current_revision()
            facts = await self.facts.fetch(start, end, employee_id=employee_id)
        return summarize(facts, employee_id, month, revision=revision)

    async def calculate_financials(
        self,
        employee_id: int,
        month: str,
        daily_rate: Decimal | float | int | str,
        late_rate_per_minute: Decimal | float | int | str | None = None,
    ) -> PayrollDerivation:
        if late_rate_per_minute is None:
            async with self._reading():
                policy = (
                    await load_policy(self._db, self.tenant_id)
                    if self.facts.provisioned
                    else default_policy(self.tenant_id)
                )
            late_rate_per_minute = policy.late_rate_per_minute
        summary = await self.get_monthly_summary(employee_id, month)
        return derive(summary, daily_rate, late_rate_per_minute)

    async def list_attendance(
        self,
        anchor: date,
        range_type: RangeType | str = RangeType.DAY,
        *,
        employee_id: int | None = None,
        status: AttendanceStatus | None = None,
        department: str | None = None,
        search: str | None = None,
    ) -> AttendanceListing:
        try:
            start, end = date_window(anchor, range_type)
        except ValueError as exc:
            raise ValidationError(f"Unknown range type: {range_type}") from exc

        async with self._reading():
            revision = await self.current_revision()
            facts = await self.facts.fetch(start, end, employee_id=employee_id)

            if self.facts.provisioned:
                result = await self._db.execute(
                    select(Employee).where(
                        Employee.tenant_id == self.tenant_id,
                        Employee.is_active.is_(True),
                    )
                )
                departments = departments_of(result.scalars().all())
            else:
                departments = []

        return AttendanceListing(
            start=start,
            end=end,
            revision=revision,
            stats=compute_stats(facts),
            departments=departments,
            records=filter_facts(facts, search=search, status=status, department=department),
        )
