"""
Attendance ledger endpoints.

- Recording a day is open to HR and the kiosk role.
- Corrections, check-out overrides and period locks require HR.
- Listings and history are open to any authenticated caller of the tenant.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone

from fastapi import APIRouter, Depends, Query

from app.api.v1.deps import get_ledger, require_hr, require_recorder
from app.core.security import Actor
from app.models.attendance import AttendanceFact, AttendanceStatus, AuditEntry
from app.schemas.attendance import (AttendanceCreate, AttendanceListItem,
                                    AttendanceListResponse, AttendanceRead,
                                    AttendanceStatsRead, AttendanceUpdate,
                                    AuditEntryRead, CheckOutRequest,
                                    LockRequest, LockResponse)
from app.services.ledger import AttendanceLedger
from app.services.queries import RangeType

router = APIRouter(tags=["attendance"])
logger = logging.getLogger(__name__)


def _list_item(fact: AttendanceFact) -> AttendanceListItem:
    item = AttendanceListItem.model_validate(fact)
    if fact.employee is not None:
        item.employee_name = fact.employee.full_name
        item.employee_code = fact.employee.code
        item.department = fact.employee.department
    return item


# ── Record ──────────────────────────────────────────────────────────
@router.post("/attendance", response_model=AttendanceRead, status_code=201)
async def create_attendance(
    body: AttendanceCreate,
    ledger: AttendanceLedger = Depends(get_ledger),
    _actor: Actor = Depends(require_recorder),
) -> AttendanceFact:
    return await ledger.create_attendance_record(
        body.employee_id,
        body.date,
        body.check_in_time,
        body.check_out_time,
        status=body.status,
        notes=body.notes,
    )


@router.get("/attendance", response_model=AttendanceListResponse)
async def list_attendance(
    anchor: date | None = Query(default=None, alias="date"),
    range_type: RangeType = Query(default=RangeType.DAY, alias="range"),
    employee_id: int | None = None,
    status: AttendanceStatus | None = None,
    department: str | None = None,
    search: str | None = Query(default=None, max_length=100),
    ledger: AttendanceLedger = Depends(get_ledger),
) -> AttendanceListResponse:
    """Daily, weekly (Sunday-Saturday) or monthly attendance with headline stats."""
    listing = await ledger.list_attendance(
        anchor or datetime.now(timezone.utc).date(),
        range_type,
        employee_id=employee_id,
        status=status,
        department=department,
        search=search,
    )
    return AttendanceListResponse(
        start=listing.start,
        end=listing.end,
        revision=listing.revision,
        stats=AttendanceStatsRead.model_validate(listing.stats),
        departments=listing.departments,
        records=[_list_item(f) for f in listing.records],
    )


# ── Period locks ────────────────────────────────────────────────────
@router.post("/attendance/lock", response_model=LockResponse)
async def lock_period(
    body: LockRequest,
    ledger: AttendanceLedger = Depends(get_ledger),
    actor: Actor = Depends(require_hr),
) -> LockResponse:
    """Lock (or unlock) every fact dated within the inclusive range."""
    affected = await ledger.lock_period(body.start, body.end, actor, body.lock)
    return LockResponse(success=True, lock=body.lock, start=body.start, end=body.end, affected=affected)


# ── Corrections ─────────────────────────────────────────────────────
@router.patch("/attendance/{fact_id}", response_model=AttendanceRead)
async def update_attendance(
    fact_id: int,
    body: AttendanceUpdate,
    ledger: AttendanceLedger = Depends(get_ledger),
    actor: Actor = Depends(require_hr),
) -> AttendanceFact:
    return await ledger.update_attendance_record(
        fact_id,
        body.changes,
        actor,
        body.reason,
        expected_version=body.expected_version,
    )


@router.post("/attendance/{fact_id}/check-out", response_model=AttendanceRead)
async def check_out(
    fact_id: int,
    body: CheckOutRequest,
    ledger: AttendanceLedger = Depends(get_ledger),
    actor: Actor = Depends(require_recorder),
) -> AttendanceFact:
    return await ledger.record_check_out(fact_id, body.check_out_time, actor)


@router.get("/attendance/{fact_id}/history", response_model=list[AuditEntryRead])
async def modification_history(
    fact_id: int,
    ledger: AttendanceLedger = Depends(get_ledger),
) -> list[AuditEntry]:
    """Audit entries for one fact, newest first."""
    return await ledger.get_modification_history(fact_id)
