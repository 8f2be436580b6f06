"""
Payroll figures derived from a monthly attendance summary.

Absent days earn nothing simply because they are not counted as present;
``absent_deductions`` is reported for the payslip but is not subtracted a
second time from ``amount_due``.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from app.core.exceptions import ValidationError
from app.services.aggregation import MonthlySummary

_CENTS = Decimal("0.01")


@dataclass(frozen=True)
class PayrollDerivation:
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
    revision: int = 0


def _rate(value: Decimal | float | int | str, name: str) -> Decimal:
    try:
        rate = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"{name} must be a number") from exc
    if not rate.is_finite():
        raise ValidationError(f"{name} must be a finite number")
    if rate < 0:
        raise ValidationError(f"{name} must not be negative")
    return rate


def _money(value: Decimal) -> Decimal:
    return value.quantize(_CENTS, rounding=ROUND_HALF_UP)


def derive(
    summary: MonthlySummary,
    daily_rate: Decimal | float | int | str,
    late_rate_per_minute: Decimal | float | int | str,
) -> PayrollDerivation:
    daily = _rate(daily_rate, "daily_rate")
    per_minute = _rate(late_rate_per_minute, "late_rate_per_minute")

    present_days = summary.present_days + summary.late_days
    absent_days = summary.absent_days
    late_minutes = summary.total_late_minutes

    late_deductions = Decimal(late_minutes) * per_minute
    absent_deductions = Decimal(absent_days) * daily
    amount_due = Decimal(present_days) * daily - late_deductions

    return PayrollDerivation(
        employee_id=summary.employee_id,
        month=summary.month,
        daily_rate=daily,
        late_rate_per_minute=per_minute,
        present_days=present_days,
        absent_days=absent_days,
        total_late_minutes=late_minutes,
        total_work_days=summary.total_records,
        late_deductions=_money(late_deductions),
        absent_deductions=_money(absent_deductions),
        total_deductions=_money(late_deductions + absent_deductions),
        amount_due=_money(amount_due),
        revision=summary.revision,
    )
