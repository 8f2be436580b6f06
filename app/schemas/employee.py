"""Pydantic schemas for Employee and Shift."""

from __future__ import annotations

import re
from datetime import datetime, time

from pydantic import BaseModel, Field, field_validator, model_validator

_CODE_RE = re.compile(r"^[A-Za-z0-9_-]{1,50}$")


class EmployeeCreate(BaseModel):
    code: str
    full_name: str
    department: str | None = None
    position: str | None = None
    employee_type: str | None = None
    shift_id: int | None = None

    @field_validator("code")
    @classmethod
    def _code(cls, v: str) -> str:
        v = v.strip()
        if not _CODE_RE.match(v):
            raise ValueError("Code must be 1-50 alphanumeric chars (hyphens / underscores allowed)")
        return v

    @field_validator("full_name")
    @classmethod
    def _name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name must not be empty")
        if len(v) > 200:
            raise ValueError("Name must not exceed 200 characters")
        return v


class EmployeeRead(BaseModel):
    id: int
    code: str
    full_name: str
    department: str | None
    position: str | None
    employee_type: str | None
    is_active: bool
    shift_id: int | None
    created_at: datetime | None

    model_config = {"from_attributes": True}


class ShiftCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    start_time: time
    end_time: time
    grace_minutes: int = Field(default=15, ge=0, le=240)

    @model_validator(mode="after")
    def _ordered(self) -> "ShiftCreate":
        if self.end_time <= self.start_time:
            raise ValueError("Shift must end after it starts")
        return self


class ShiftRead(BaseModel):
    id: int
    name: str
    start_time: time
    end_time: time
    grace_minutes: int

    model_config = {"from_attributes": True}
