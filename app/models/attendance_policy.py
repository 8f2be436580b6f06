"""
Attendance Policy model: one row per tenant of admin-configurable rules.

The HR admin updates it via the settings API. Fact creation reads it for the
official day and grace period when an employee has no shift, and payroll
reads the default late rate from it.
"""

from __future__ import annotations

from datetime import datetime, time, timezone
from decimal import Decimal

from sqlalchemy import Column, DateTime, Integer, Numeric, String, Time

from app.db.base import Base


class AttendancePolicy(Base):
    __tablename__ = "attendance_policies"

    tenant_id: str = Column(String(64), primary_key=True)  # type: ignore[assignment]
    official_start: time = Column(Time, nullable=False)  # type: ignore[assignment]
    official_end: time = Column(Time, nullable=False)  # type: ignore[assignment]
    grace_minutes: int = Column(Integer, nullable=False, default=15)  # type: ignore[assignment]
    lateness_penalty_rate: Decimal = Column(Numeric(10, 4), nullable=False)  # type: ignore[assignment]
    late_rate_per_minute: Decimal = Column(Numeric(10, 4), nullable=False)  # type: ignore[assignment]
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
