"""
Read-side helpers for the attendance screens: date windows, filtering,
and headline counts.
"""

from __future__ import annotations

import calendar
import enum
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, timedelta

from app.models.attendance import AttendanceFact, AttendanceStatus
from app.models.employee import Employee


class RangeType(str, enum.Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


@dataclass(frozen=True)
class AttendanceStats:
    total: int = 0
    present: int = 0
    late: int = 0
    absent: int = 0
    on_leave: int = 0
    on_permission: int = 0  # on_permission + on_assignment


@dataclass(frozen=True)
class AttendanceListing:
    start: date
    end: date
    revision: int
    stats: AttendanceStats
    departments: list[str]
    records: list[AttendanceFact] = field(default_factory=list)


def date_window(anchor: date, range_type: RangeType | str) -> tuple[date, date]:
    """Weeks run Sunday through Saturday; months cover the calendar month."""
    range_type = RangeType(range_type)
    if range_type is RangeType.WEEK:
        start = anchor - timedelta(days=(anchor.weekday() + 1) % 7)
        return start, start + timedelta(days=6)
    if range_type is RangeType.MONTH:
        _, days_in_month = calendar.monthrange(anchor.year, anchor.month)
        return anchor.replace(day=1), anchor.replace(day=days_in_month)
    return anchor, anchor


def compute_stats(facts: Iterable[AttendanceFact]) -> AttendanceStats:
    counts = {status: 0 for status in AttendanceStatus}
    total = 0
    for fact in facts:
        counts[AttendanceStatus(fact.status)] += 1
        total += 1
    return AttendanceStats(
        total=total,
        present=counts[AttendanceStatus.PRESENT],
        late=counts[AttendanceStatus.LATE],
        absent=counts[AttendanceStatus.ABSENT],
        on_leave=counts[AttendanceStatus.ON_LEAVE],
        on_permission=counts[AttendanceStatus.ON_PERMISSION] + counts[AttendanceStatus.ON_ASSIGNMENT],
    )


def _matches(
    fact: AttendanceFact,
    search: str | None,
    status: AttendanceStatus | None,
    department: str | None,
) -> bool:
    employee: Employee | None = fact.employee
    if search:
        needle = search.casefold()
        haystacks = [employee.full_name, employee.code] if employee else []
        if not any(needle in (h or "").casefold() for h in haystacks):
            return False
    if status is not None and AttendanceStatus(fact.status) is not AttendanceStatus(status):
        return False
    if department and (employee is None or employee.department != department):
        return False
    return True


def filter_facts(
    facts: Iterable[AttendanceFact],
    *,
    search: str | None = None,
    status: AttendanceStatus | None = None,
    department: str | None = None,
) -> list[AttendanceFact]:
    search = (search or "").strip() or None
    return [f for f in facts if _matches(f, search, status, department)]


def departments_of(employees: Iterable[Employee]) -> list[str]:
    return sorted({e.department for e in employees if e.department})
