"""Tests for attendance listings: date windows, filters and headline stats."""

from datetime import date, time

import pytest

from app.core.exceptions import ValidationError
from app.models.attendance import AttendanceStatus
from app.services.queries import RangeType, date_window


@pytest.mark.parametrize(
    "anchor, expected",
    [
        (date(2024, 3, 13), (date(2024, 3, 10), date(2024, 3, 16))),  # Wednesday
        (date(2024, 3, 10), (date(2024, 3, 10), date(2024, 3, 16))),  # Sunday
        (date(2024, 3, 16), (date(2024, 3, 10), date(2024, 3, 16))),  # Saturday
        (date(2024, 3, 1), (date(2024, 2, 25), date(2024, 3, 2))),
    ],
)
def test_week_runs_sunday_to_saturday(anchor, expected):
    assert date_window(anchor, RangeType.WEEK) == expected


def test_day_and_month_windows():
    assert date_window(date(2024, 2, 10), "day") == (date(2024, 2, 10), date(2024, 2, 10))
    assert date_window(date(2024, 2, 10), "month") == (date(2024, 2, 1), date(2024, 2, 29))


@pytest.mark.asyncio
async def test_listing_stats_and_departments(ledger, employee, colleague):
    await ledger.create_attendance_record(employee.id, date(2024, 3, 13), time(8, 0))
    await ledger.create_attendance_record(colleague.id, date(2024, 3, 13), time(8, 40))
    await ledger.create_attendance_record(employee.id, date(2024, 3, 12))

    listing = await ledger.list_attendance(date(2024, 3, 13), RangeType.DAY)

    assert (listing.start, listing.end) == (date(2024, 3, 13), date(2024, 3, 13))
    assert listing.stats.total == 2
    assert listing.stats.present == 1
    assert listing.stats.late == 1
    assert listing.stats.absent == 0
    assert listing.departments == ["Mathematics", "Science"]
    assert listing.revision == 3


@pytest.mark.asyncio
async def test_listing_filters(ledger, employee, colleague):
    await ledger.create_attendance_record(employee.id, date(2024, 3, 11), time(8, 0))
    await ledger.create_attendance_record(employee.id, date(2024, 3, 12), time(9, 0))
    await ledger.create_attendance_record(colleague.id, date(2024, 3, 12), time(8, 0))
    await ledger.create_attendance_record(
        colleague.id, date(2024, 3, 13), status=AttendanceStatus.ON_ASSIGNMENT
    )

    week = await ledger.list_attendance(date(2024, 3, 12), RangeType.WEEK)
    assert week.stats.total == 4
    assert week.stats.on_permission == 1

    by_name = await ledger.list_attendance(date(2024, 3, 12), RangeType.WEEK, search="amina")
    assert {f.employee_id for f in by_name.records} == {employee.id}

    by_code = await ledger.list_attendance(date(2024, 3, 12), RangeType.WEEK, search="t-002")
    assert {f.employee_id for f in by_code.records} == {colleague.id}

    late = await ledger.list_attendance(date(2024, 3, 12), RangeType.WEEK, status=AttendanceStatus.LATE)
    assert [(f.employee_id, f.date) for f in late.records] == [(employee.id, date(2024, 3, 12))]

    maths = await ledger.list_attendance(date(2024, 3, 12), RangeType.WEEK, department="Mathematics")
    assert len(maths.records) == 2
    # stats describe the whole window, not the filtered rows
    assert maths.stats.total == 4


@pytest.mark.asyncio
async def test_listing_for_one_employee(ledger, employee, colleague):
    await ledger.create_attendance_record(employee.id, date(2024, 3, 12), time(8, 0))
    await ledger.create_attendance_record(colleague.id, date(2024, 3, 12), time(8, 0))

    listing = await ledger.list_attendance(date(2024, 3, 1), "month", employee_id=colleague.id)
    assert [f.employee_id for f in listing.records] == [colleague.id]


@pytest.mark.asyncio
async def test_unknown_range_rejected(ledger):
    with pytest.raises(ValidationError):
        await ledger.list_attendance(date(2024, 3, 12), "year")


@pytest.mark.asyncio
async def test_unprovisioned_listing_is_empty(db_session, bus):
    from app.services.ledger import AttendanceLedger

    ledger = AttendanceLedger(db_session, "default", events=bus, provisioned=False)
    listing = await ledger.list_attendance(date(2024, 3, 12), RangeType.MONTH)

    assert listing.records == []
    assert listing.stats.total == 0
    assert listing.revision == 0
