"""
Attendance ledger models: daily facts, their audit trail, and the
per-tenant revision counter.
"""

from __future__ import annotations

import enum
from datetime import date, datetime, time, timezone
from decimal import Decimal

from sqlalchemy import (Boolean, Column, Date, DateTime, Enum, Float,
                        ForeignKey, Index, Integer, Numeric, String, Text,
                        Time, UniqueConstraint)
from sqlalchemy.orm import relationship

from app.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AttendanceStatus(str, enum.Enum):
    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    ON_LEAVE = "on_leave"
    ON_PERMISSION = "on_permission"
    ON_ASSIGNMENT = "on_assignment"


class AttendanceFact(Base):
    __tablename__ = "attendance_facts"
    __table_args__ = (
        UniqueConstraint("tenant_id", "employee_id", "date", name="uq_fact_tenant_emp_date"),
        Index("ix_fact_tenant_date", "tenant_id", "date"),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    tenant_id: str = Column(String(64), nullable=False)  # type: ignore[assignment]
    employee_id: int = Column(Integer, ForeignKey("employees.id"), nullable=False)  # type: ignore[assignment]
    date: date = Column(Date, nullable=False)  # type: ignore[assignment]
    check_in_time: time | None = Column(Time, nullable=True)  # type: ignore[assignment]
    check_out_time: time | None = Column(Time, nullable=True)  # type: ignore[assignment]
    scheduled_start: time = Column(Time, nullable=False)  # type: ignore[assignment]
    scheduled_end: time = Column(Time, nullable=False)  # type: ignore[assignment]
    status: AttendanceStatus = Column(  # type: ignore[assignment]
        Enum(
            AttendanceStatus,
            name="attendance_status",
            native_enum=False,
            length=20,
            validate_strings=True,
            values_callable=lambda members: [m.value for m in members],
        ),
        nullable=False,
        default=AttendanceStatus.ABSENT,
    )
    late_minutes: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]
    early_leave_minutes: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]
    overtime_minutes: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]
    worked_hours: float = Column(Float, nullable=False, default=0.0)  # type: ignore[assignment]
    permission_type: str | None = Column(String(50), nullable=True)  # type: ignore[assignment]
    permission_reason: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]
    notes: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]
    deduction_amount: Decimal | None = Column(Numeric(12, 2), nullable=True)  # type: ignore[assignment]

    is_locked: bool = Column(Boolean, nullable=False, default=False)  # type: ignore[assignment]
    locked_at: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    locked_by: str | None = Column(String(200), nullable=True)  # type: ignore[assignment]

    version: int = Column(Integer, nullable=False)  # type: ignore[assignment]
    created_at: datetime = Column(DateTime(timezone=True), default=_utcnow)  # type: ignore[assignment]
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
    )

    employee = relationship("Employee", lazy="selectin")

    # Every UPDATE is issued as "... WHERE version = <read version>"; a row
    # changed by someone else in between raises StaleDataError on flush.
    __mapper_args__ = {"version_id_col": version}


class AuditEntry(Base):
    __tablename__ = "attendance_audit_entries"
    __table_args__ = (
        UniqueConstraint("attendance_fact_id", "sequence", name="uq_audit_fact_sequence"),
        Index("ix_audit_fact_modified", "attendance_fact_id", "modified_at"),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    tenant_id: str = Column(String(64), nullable=False)  # type: ignore[assignment]
    attendance_fact_id: int = Column(  # type: ignore[assignment]
        Integer, ForeignKey("attendance_facts.id"), nullable=False
    )
    sequence: int = Column(Integer, nullable=False)  # type: ignore[assignment]
    modified_by: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    modified_by_role: str = Column(String(50), nullable=False)  # type: ignore[assignment]
    modified_at: datetime = Column(DateTime(timezone=True), nullable=False, default=_utcnow)  # type: ignore[assignment]
    field_changed: str = Column(String(50), nullable=False)  # type: ignore[assignment]
    old_value: str = Column(Text, nullable=False, default="")  # type: ignore[assignment]
    new_value: str = Column(Text, nullable=False, default="")  # type: ignore[assignment]
    reason: str = Column(String(500), nullable=False)  # type: ignore[assignment]


class LedgerRevision(Base):
    __tablename__ = "ledger_revisions"

    tenant_id: str = Column(String(64), primary_key=True)  # type: ignore[assignment]
    revision: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
    )
