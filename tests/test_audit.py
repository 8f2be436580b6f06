"""Tests for audited corrections and modification history."""

from datetime import date, time
from decimal import Decimal

import pytest
from sqlalchemy import func, select, text

from app.core.exceptions import (AuditWriteError, BackendUnavailableError,
                                 ConcurrencyConflictError, NotFoundError,
                                 ValidationError)
from app.models.attendance import AttendanceFact, AttendanceStatus, AuditEntry
from app.services.audit import stringify


async def _audit_count(db_session) -> int:
    result = await db_session.execute(select(func.count()).select_from(AuditEntry))
    return result.scalar()


@pytest.mark.asyncio
async def test_one_entry_per_changed_field(ledger, employee, hr):
    fact = await ledger.create_attendance_record(employee.id, date(2024, 3, 4), time(8, 30))

    await ledger.update_attendance_record(
        fact.id,
        {"status": "present", "late_minutes": 0, "notes": "Bus strike"},
        hr,
        "Transport disruption excused",
    )

    history = await ledger.get_modification_history(fact.id)
    assert sorted(e.field_changed for e in history) == ["late_minutes", "notes", "status"]
    by_field = {e.field_changed: e for e in history}
    assert by_field["status"].old_value == "late"
    assert by_field["status"].new_value == "present"
    assert by_field["late_minutes"].old_value == "30"
    assert by_field["late_minutes"].new_value == "0"
    assert by_field["notes"].old_value == ""
    assert by_field["notes"].new_value == "Bus strike"
    for entry in history:
        assert entry.modified_by == "hr-1"
        assert entry.modified_by_role == "hr_admin"
        assert entry.reason == "Transport disruption excused"


@pytest.mark.asyncio
async def test_unchanged_fields_are_not_audited(ledger, db_session, employee, hr, published):
    fact = await ledger.create_attendance_record(employee.id, date(2024, 3, 4), time(8, 0))
    published.clear()

    updated = await ledger.update_attendance_record(
        fact.id, {"status": "present", "check_in_time": time(8, 0)}, hr, "No-op"
    )

    assert updated.version == 1
    assert await _audit_count(db_session) == 0
    assert published == []


@pytest.mark.asyncio
async def test_update_bumps_version_and_publishes(ledger, employee, hr, published):
    fact = await ledger.create_attendance_record(employee.id, date(2024, 3, 4), time(8, 0))

    updated = await ledger.update_attendance_record(
        fact.id, {"deduction_amount": Decimal("12.50")}, hr, "Manual penalty"
    )

    assert updated.version == 2
    assert [e.kind for e in published] == ["created", "updated"]
    assert published[-1].revision == 2


@pytest.mark.asyncio
async def test_history_is_newest_first(ledger, employee, hr):
    fact = await ledger.create_attendance_record(employee.id, date(2024, 3, 4), time(8, 0))

    await ledger.update_attendance_record(fact.id, {"notes": "first"}, hr, "one")
    await ledger.update_attendance_record(fact.id, {"notes": "second"}, hr, "two")
    await ledger.update_attendance_record(fact.id, {"notes": "third"}, hr, "three")

    history = await ledger.get_modification_history(fact.id)
    assert [e.new_value for e in history] == ["third", "second", "first"]
    assert [e.sequence for e in history] == [3, 2, 1]


@pytest.mark.asyncio
async def test_history_of_unknown_fact(ledger):
    with pytest.raises(NotFoundError):
        await ledger.get_modification_history(4242)


@pytest.mark.asyncio
async def test_blank_reason_rejected(ledger, employee, hr):
    fact = await ledger.create_attendance_record(employee.id, date(2024, 3, 4), time(8, 0))
    with pytest.raises(ValidationError):
        await ledger.update_attendance_record(fact.id, {"notes": "x"}, hr, "   ")


@pytest.mark.asyncio
async def test_unknown_patch_field_rejected(ledger, employee, hr):
    fact = await ledger.create_attendance_record(employee.id, date(2024, 3, 4), time(8, 0))
    with pytest.raises(ValidationError):
        await ledger.update_attendance_record(fact.id, {"employee_id": 7}, hr, "Reassign")


@pytest.mark.asyncio
async def test_required_field_cannot_be_cleared(ledger, employee, hr):
    fact = await ledger.create_attendance_record(employee.id, date(2024, 3, 4), time(8, 0))
    with pytest.raises(ValidationError):
        await ledger.update_attendance_record(fact.id, {"status": None}, hr, "Clear")


@pytest.mark.asyncio
async def test_stale_expected_version_rejected(ledger, employee, hr):
    fact = await ledger.create_attendance_record(employee.id, date(2024, 3, 4), time(8, 0))
    await ledger.update_attendance_record(fact.id, {"notes": "a"}, hr, "first")

    with pytest.raises(ConcurrencyConflictError):
        await ledger.update_attendance_record(
            fact.id, {"notes": "b"}, hr, "second", expected_version=1
        )


@pytest.mark.asyncio
async def test_failed_audit_write_rolls_back_the_fact(ledger, db_session, employee, hr):
    fact = await ledger.create_attendance_record(employee.id, date(2024, 3, 4), time(8, 0))
    await db_session.execute(text("DROP TABLE attendance_audit_entries"))
    await db_session.commit()

    with pytest.raises(AuditWriteError) as exc_info:
        await ledger.update_attendance_record(
            fact.id, {"notes": "late bus", "late_minutes": 5}, hr, "Correction"
        )
    assert exc_info.value.fields == ["late_minutes", "notes"]

    result = await db_session.execute(
        select(AttendanceFact.notes, AttendanceFact.late_minutes, AttendanceFact.version).where(
            AttendanceFact.id == fact.id
        )
    )
    assert result.one() == (None, 0, 1)


@pytest.mark.asyncio
async def test_check_out_goes_through_audit(ledger, employee, kiosk):
    fact = await ledger.create_attendance_record(employee.id, date(2024, 3, 4), time(8, 0))

    closed = await ledger.record_check_out(fact.id, time(14, 30), kiosk)

    assert closed.check_out_time == time(14, 30)
    assert closed.worked_hours == pytest.approx(6.5)
    assert closed.early_leave_minutes == 30
    assert closed.overtime_minutes == 0
    history = await ledger.get_modification_history(fact.id)
    assert {e.reason for e in history} == {"check-out"}
    assert {e.modified_by for e in history} == {"kiosk-1"}


@pytest.mark.asyncio
async def test_check_out_without_check_in_rejected(ledger, employee, kiosk):
    fact = await ledger.create_attendance_record(employee.id, date(2024, 3, 4))
    with pytest.raises(ValidationError):
        await ledger.record_check_out(fact.id, time(15, 0), kiosk)


@pytest.mark.asyncio
async def test_patched_check_out_must_follow_check_in(ledger, employee, hr):
    fact = await ledger.create_attendance_record(employee.id, date(2024, 3, 4), time(9, 0))
    with pytest.raises(ValidationError):
        await ledger.update_attendance_record(fact.id, {"check_out_time": time(8, 0)}, hr, "Typo")


def test_stringify_renders_audit_values():
    assert stringify(None) == ""
    assert stringify(True) == "true"
    assert stringify(AttendanceStatus.ON_LEAVE) == "on_leave"
    assert stringify(time(8, 5)) == "08:05:00"
    assert stringify(date(2024, 3, 4)) == "2024-03-04"
    assert stringify(Decimal("12.50")) == "12.50"


@pytest.mark.asyncio
async def test_blank_note_over_empty_note_is_not_a_change(ledger, db_session, employee, hr, published):
    fact = await ledger.create_attendance_record(employee.id, date(2024, 3, 4), time(8, 0))
    published.clear()

    updated = await ledger.update_attendance_record(fact.id, {"notes": ""}, hr, "Clear note")

    assert updated.notes is None
    assert updated.version == 1
    assert await _audit_count(db_session) == 0
    assert published == []


@pytest.mark.asyncio
async def test_history_with_broken_store_is_unavailable(ledger, db_session, employee):
    fact = await ledger.create_attendance_record(employee.id, date(2024, 3, 4), time(8, 0))
    await db_session.execute(text("DROP TABLE attendance_audit_entries"))
    await db_session.commit()

    with pytest.raises(BackendUnavailableError):
        await ledger.get_modification_history(fact.id)
