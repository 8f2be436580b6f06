"""
Employee & Shift models: the staff whose attendance the ledger tracks.
"""

from __future__ import annotations

from datetime import datetime, time, timezone

from sqlalchemy import (Boolean, Column, DateTime, ForeignKey, Integer, String,
                        Time, UniqueConstraint)
from sqlalchemy.orm import relationship

from app.db.base import Base


class Shift(Base):
    __tablename__ = "shifts"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    tenant_id: str = Column(String(64), nullable=False, index=True)  # type: ignore[assignment]
    name: str = Column(String(100), nullable=False)  # type: ignore[assignment]
    start_time: time = Column(Time, nullable=False)  # type: ignore[assignment]
    end_time: time = Column(Time, nullable=False)  # type: ignore[assignment]
    grace_minutes: int = Column(Integer, nullable=False, default=15)  # type: ignore[assignment]


class Employee(Base):
    __tablename__ = "employees"
    __table_args__ = (UniqueConstraint("tenant_id", "code", name="uq_employee_tenant_code"),)

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    tenant_id: str = Column(String(64), nullable=False, index=True)  # type: ignore[assignment]
    code: str = Column(String(50), nullable=False)  # type: ignore[assignment]
    full_name: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    department: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    position: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    employee_type: str | None = Column(String(50), nullable=True)  # type: ignore[assignment]
    is_active: bool = Column(Boolean, default=True, server_default="true")  # type: ignore[assignment]
    shift_id: int | None = Column(Integer, ForeignKey("shifts.id"), nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    shift = relationship("Shift", lazy="selectin")
