"""
Schedule resolution and check-in/check-out classification.

An employee's working day comes from their assigned shift, then the
tenant's attendance policy. Given that schedule, a check-in/check-out pair
is classified into a status and the minute/hour figures stored on the fact.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime, time, timedelta
from decimal import ROUND_HALF_UP, Decimal

from app.core.exceptions import ValidationError
from app.models.attendance import AttendanceStatus
from app.models.attendance_policy import AttendancePolicy
from app.models.employee import Employee

_CENTS = Decimal("0.01")


@dataclass(frozen=True)
class Schedule:
    start: time
    end: time
    grace_minutes: int
    source: str  # shift | policy


@dataclass(frozen=True)
class CheckOutFigures:
    worked_hours: float
    early_leave_minutes: int
    overtime_minutes: int


@dataclass(frozen=True)
class Timesheet:
    status: AttendanceStatus
    late_minutes: int
    early_leave_minutes: int
    overtime_minutes: int
    worked_hours: float


def resolve_schedule(employee: Employee, policy: AttendancePolicy) -> Schedule:
    shift = employee.shift
    if shift is not None:
        return Schedule(shift.start_time, shift.end_time, shift.grace_minutes, "shift")
    return Schedule(policy.official_start, policy.official_end, policy.grace_minutes, "policy")


def _whole_minutes(delta: timedelta) -> int:
    return int(delta.total_seconds() // 60)


def checkout_figures(
    work_date: date, check_in: time, check_out: time, scheduled_end: time
) -> CheckOutFigures:
    """Worked hours plus early-leave / overtime minutes for one day."""
    started = datetime.combine(work_date, check_in)
    finished = datetime.combine(work_date, check_out)
    if finished < started:
        raise ValidationError("Check-out time cannot be earlier than check-in time")

    scheduled = datetime.combine(work_date, scheduled_end)
    return CheckOutFigures(
        worked_hours=round((finished - started).total_seconds() / 3600, 2),
        early_leave_minutes=max(0, _whole_minutes(scheduled - finished)),
        overtime_minutes=max(0, _whole_minutes(finished - scheduled)),
    )


def classify(
    work_date: date,
    check_in: time | None,
    check_out: time | None,
    schedule: Schedule,
) -> Timesheet:
    """Classify a day's punches against the schedule.

    No check-in means absent. Arriving within the grace period counts as
    present; after it the employee is late by the full minutes since the
    scheduled start, not since the end of the grace period.
    """
    if check_in is None:
        return Timesheet(AttendanceStatus.ABSENT, 0, 0, 0, 0.0)

    arrived = datetime.combine(work_date, check_in)
    scheduled = datetime.combine(work_date, schedule.start)
    if arrived <= scheduled + timedelta(minutes=schedule.grace_minutes):
        status, late_minutes = AttendanceStatus.PRESENT, 0
    else:
        status, late_minutes = AttendanceStatus.LATE, _whole_minutes(arrived - scheduled)

    if check_out is None:
        return Timesheet(status, late_minutes, 0, 0, 0.0)

    figures = checkout_figures(work_date, check_in, check_out, schedule.end)
    return Timesheet(
        status,
        late_minutes,
        figures.early_leave_minutes,
        figures.overtime_minutes,
        figures.worked_hours,
    )


def with_status(sheet: Timesheet, status: AttendanceStatus | None) -> Timesheet:
    """Apply a manual status override; late minutes only survive on a late day."""
    if status is None or status is sheet.status:
        return sheet
    late_minutes = sheet.late_minutes if status is AttendanceStatus.LATE else 0
    return replace(sheet, status=status, late_minutes=late_minutes)


def lateness_deduction(sheet: Timesheet, penalty_rate: Decimal) -> Decimal:
    if sheet.status is not AttendanceStatus.LATE:
        return Decimal("0.00")
    return (Decimal(sheet.late_minutes) * penalty_rate).quantize(_CENTS, rounding=ROUND_HALF_UP)
