"""
Monthly attendance statistics derived from stored facts.

Nothing here touches the database: ``summarize`` is a pure function of the
fact snapshot it is handed, so the same snapshot always yields the same
summary.
"""

from __future__ import annotations

import calendar
import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date

from app.core.exceptions import ValidationError
from app.models.attendance import AttendanceFact, AttendanceStatus

_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")


@dataclass(frozen=True)
class MonthlySummary:
    employee_id: int
    month: str
    total_records: int
    present_days: int
    late_days: int
    absent_days: int
    leave_days: int
    permission_days: int  # on_permission + on_assignment
    status_counts: dict[str, int]
    total_late_minutes: int
    total_early_leave_minutes: int
    total_overtime_minutes: int
    total_worked_hours: float
    revision: int = 0


def month_bounds(month: str) -> tuple[date, date]:
    """``"2024-03"`` -> (2024-03-01, 2024-03-31)."""
    match = _MONTH_RE.match(month or "")
    if not match:
        raise ValidationError(f"Month must be formatted as YYYY-MM, got {month!r}")
    year, mon = int(match.group(1)), int(match.group(2))
    if not 1 <= mon <= 12:
        raise ValidationError("Month must be 01-12")
    _, days_in_month = calendar.monthrange(year, mon)
    return date(year, mon, 1), date(year, mon, days_in_month)


def summarize(
    facts: Iterable[AttendanceFact],
    employee_id: int,
    month: str,
    *,
    revision: int = 0,
) -> MonthlySummary:
    start, end = month_bounds(month)
    month_facts = sorted(
        (f for f in facts if f.employee_id == employee_id and start <= f.date <= end),
        key=lambda f: f.date,
    )

    counts = {status.value: 0 for status in AttendanceStatus}
    for fact in month_facts:
        counts[AttendanceStatus(fact.status).value] += 1

    return MonthlySummary(
        employee_id=employee_id,
        month=month,
        total_records=len(month_facts),
        present_days=counts[AttendanceStatus.PRESENT.value],
        late_days=counts[AttendanceStatus.LATE.value],
        absent_days=counts[AttendanceStatus.ABSENT.value],
        leave_days=counts[AttendanceStatus.ON_LEAVE.value],
        permission_days=(
            counts[AttendanceStatus.ON_PERMISSION.value]
            + counts[AttendanceStatus.ON_ASSIGNMENT.value]
        ),
        status_counts=counts,
        total_late_minutes=sum(f.late_minutes or 0 for f in month_facts),
        total_early_leave_minutes=sum(f.early_leave_minutes or 0 for f in month_facts),
        total_overtime_minutes=sum(f.overtime_minutes or 0 for f in month_facts),
        total_worked_hours=round(sum(f.worked_hours or 0.0 for f in month_facts), 2),
        revision=revision,
    )
