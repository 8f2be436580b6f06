"""Pydantic schemas for attendance facts, audit history, locks and reports."""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from app.models.attendance import AttendanceStatus

# Columns that exist on every fact and may be changed but never cleared.
_NON_NULLABLE = frozenset(
    {
        "scheduled_start",
        "scheduled_end",
        "status",
        "late_minutes",
        "early_leave_minutes",
        "overtime_minutes",
        "worked_hours",
    }
)


# ── Create ──────────────────────────────────────────────────────────
class AttendanceCreate(BaseModel):
    employee_id: int
    date: date
    check_in_time: time | None = None
    check_out_time: time | None = None
    status: AttendanceStatus | None = None  # manual entries, e.g. on_leave
    notes: str | None = Field(default=None, max_length=500)


# ── Update (closed patch) ───────────────────────────────────────────
class FactPatch(BaseModel):
    """The fields a correction may touch. Anything else is rejected."""

    model_config = {"extra": "forbid"}

    check_in_time: time | None = None
    check_out_time: time | None = None
    scheduled_start: time | None = None
    scheduled_end: time | None = None
    status: AttendanceStatus | None = None
    late_minutes: int | None = Field(default=None, ge=0)
    early_leave_minutes: int | None = Field(default=None, ge=0)
    overtime_minutes: int | None = Field(default=None, ge=0)
    worked_hours: float | None = Field(default=None, ge=0)
    permission_type: str | None = Field(default=None, max_length=50)
    permission_reason: str | None = Field(default=None, max_length=500)
    notes: str | None = Field(default=None, max_length=500)
    deduction_amount: Decimal | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _required_fields_not_cleared(self) -> "FactPatch":
        cleared = sorted(
            name for name in self.model_fields_set & _NON_NULLABLE if getattr(self, name) is None
        )
        if cleared:
            raise ValueError(f"Fields cannot be cleared: {', '.join(cleared)}")
        return self

    def supplied(self) -> dict[str, Any]:
        """Explicitly supplied fields, in declaration order."""
        return {
            name: getattr(self, name)
            for name in type(self).model_fields
            if name in self.model_fields_set
        }


class AttendanceUpdate(BaseModel):
    changes: FactPatch
    reason: str = Field(min_length=1, max_length=500)
    expected_version: int | None = None

    @field_validator("reason")
    @classmethod
    def _reason(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Reason must not be empty")
        return v


class CheckOutRequest(BaseModel):
    check_out_time: time


# ── Read ────────────────────────────────────────────────────────────
class AttendanceRead(BaseModel):
    id: int
    employee_id: int
    date: date
    check_in_time: time | None
    check_out_time: time | None
    scheduled_start: time
    scheduled_end: time
    status: AttendanceStatus
    late_minutes: int
    early_leave_minutes: int
    overtime_minutes: int
    worked_hours: float
    permission_type: str | None = None
    permission_reason: str | None = None
    notes: str | None = None
    deduction_amount: Decimal | None = None
    is_locked: bool
    locked_at: datetime | None = None
    locked_by: str | None = None
    version: int

    model_config = {"from_attributes": True}


class AttendanceListItem(AttendanceRead):
    employee_name: str | None = None
    employee_code: str | None = None
    department: str | None = None


class AttendanceStatsRead(BaseModel):
    total: int
    present: int
    late: int
    absent: int
    on_leave: int
    on_permission: int

    model_config = {"from_attributes": True}


class AttendanceListResponse(BaseModel):
    start: date
    end: date
    revision: int
    stats: AttendanceStatsRead
    departments: list[str]
    records: list[AttendanceListItem]


# ── Audit ───────────────────────────────────────────────────────────
class AuditEntryRead(BaseModel):
    id: int
    attendance_fact_id: int
    sequence: int
    modified_by: str
    modified_by_role: str
    modified_at: datetime
    field_changed: str
    old_value: str
    new_value: str
    reason: str

    model_config = {"from_attributes": True}


# ── Locking ─────────────────────────────────────────────────────────
class LockRequest(BaseModel):
    start: date
    end: date
    lock: bool = True


class LockResponse(BaseModel):
    success: bool
    lock: bool
    start: date
    end: date
    affected: int


# ── Reports ─────────────────────────────────────────────────────────
class MonthlySummaryRead(BaseModel):
    employee_id: int
    month: str
    total_records: int
    present_days: int
    late_days: int
    absent_days: int
    leave_days: int
    permission_days: int
    status_counts: dict[str, int]
    total_late_minutes: int
    total_early_leave_minutes: int
    total_overtime_minutes: int
    total_worked_hours: float
    revision: int

    model_config = {"from_attributes": True}


class PayrollDerivationRead(BaseModel):
    employee_id: int
    month: str
    daily_rate: Decimal
    late_rate_per_minute: Decimal
    present_days: int
    absent_days: int
    total_late_minutes: int
    total_work_days: int
    late_deductions: Decimal
    absent_deductions: Decimal
    total_deductions: Decimal
    amount_due: Decimal
    revision: int

    model_config = {"from_attributes": True}


# ── Attendance Policy ──────────────────────────────────────────────
class AttendancePolicyRead(BaseModel):
    official_start: time
    official_end: time
    grace_minutes: int
    lateness_penalty_rate: Decimal
    late_rate_per_minute: Decimal

    model_config = {"from_attributes": True}


class AttendancePolicyUpdate(BaseModel):
    official_start: time | None = None
    official_end: time | None = None
    grace_minutes: int | None = Field(default=None, ge=0, le=240)
    lateness_penalty_rate: Decimal | None = Field(default=None, ge=0)
    late_rate_per_minute: Decimal | None = Field(default=None, ge=0)


# ── Health ─────────────────────────────────────────────────────────
class HealthResponse(BaseModel):
    db: bool
    redis: bool
    schema_provisioned: bool
