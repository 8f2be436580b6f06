"""
Employee and shift endpoints.

- GET operations require any authenticated caller.
- POST operations require HR.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import get_current_actor, get_db, require_hr
from app.core.security import Actor
from app.models.employee import Employee, Shift
from app.schemas.employee import EmployeeCreate, EmployeeRead, ShiftCreate, ShiftRead

router = APIRouter(tags=["employees"])
logger = logging.getLogger(__name__)


# ── Employees ───────────────────────────────────────────────────────
@router.get("/employees", response_model=list[EmployeeRead])
async def list_employees(
    skip: int = 0,
    limit: int = Query(default=50, le=500),
    search: str | None = None,
    department: str | None = None,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> list[Employee]:
    query = (
        select(Employee)
        .where(Employee.tenant_id == actor.tenant_id, Employee.is_active.is_(True))
        .order_by(Employee.full_name)
        .offset(skip)
        .limit(limit)
    )
    if search:
        # Escape SQL LIKE metacharacters to prevent wildcard injection
        safe_search = search.replace("%", r"\%").replace("_", r"\_")
        query = query.where(Employee.full_name.ilike(f"%{safe_search}%", escape="\\"))
    if department:
        query = query.where(Employee.department == department)
    result = await db.execute(query)
    return list(result.scalars().all())


@router.post("/employees", response_model=EmployeeRead, status_code=201)
async def create_employee(
    body: EmployeeCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(require_hr),
) -> Employee:
    existing = await db.execute(
        select(Employee).where(Employee.tenant_id == actor.tenant_id, Employee.code == body.code)
    )
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=409, detail=f"Employee code '{body.code}' already registered")

    if body.shift_id is not None:
        shift = await db.execute(
            select(Shift).where(Shift.id == body.shift_id, Shift.tenant_id == actor.tenant_id)
        )
        if shift.scalar_one_or_none() is None:
            raise HTTPException(status_code=404, detail="Shift not found")

    employee = Employee(tenant_id=actor.tenant_id, **body.model_dump())
    db.add(employee)
    await db.commit()
    await db.refresh(employee)
    logger.info("Created employee %s (%s)", employee.full_name, employee.code)
    return employee


@router.get("/employees/{employee_id}", response_model=EmployeeRead)
async def get_employee(
    employee_id: int,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> Employee:
    result = await db.execute(
        select(Employee).where(Employee.id == employee_id, Employee.tenant_id == actor.tenant_id)
    )
    emp = result.scalar_one_or_none()
    if emp is None:
        raise HTTPException(status_code=404, detail="Employee not found")
    return emp


# ── Shifts ──────────────────────────────────────────────────────────
@router.get("/shifts", response_model=list[ShiftRead])
async def list_shifts(
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> list[Shift]:
    result = await db.execute(
        select(Shift).where(Shift.tenant_id == actor.tenant_id).order_by(Shift.start_time)
    )
    return list(result.scalars().all())


@router.post("/shifts", response_model=ShiftRead, status_code=201)
async def create_shift(
    body: ShiftCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(require_hr),
) -> Shift:
    shift = Shift(tenant_id=actor.tenant_id, **body.model_dump())
    db.add(shift)
    await db.commit()
    await db.refresh(shift)
    logger.info("Created shift %s (%s-%s)", shift.name, shift.start_time, shift.end_time)
    return shift
