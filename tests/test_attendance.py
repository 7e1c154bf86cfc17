"""Attendance module tests — worked-hours accounting, clock-in/out rules,
manual record creation, monthly totals and the HTTP surface.

Tests exercise both the service layer (direct DB) and the HTTP API (via router).
Uses the shared conftest.py pattern with in-memory SQLite.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, time
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select

from hrms.attendance.models import AttendanceRecord
from hrms.attendance.repository import AttendanceRepository
from hrms.attendance.schemas import AttendanceCreate
from hrms.attendance.service import AttendanceService
from hrms.common.audit import AuditTrail
from hrms.common.exceptions import (
    AlreadyClockedInException,
    EmployeeNotFoundException,
    InvalidOperationException,
    NotClockedInException,
)
from hrms.core_hr.models import Employee
from tests.conftest import _make_employee, bearer

MONDAY = date(2024, 3, 4)


def _at(hour: int, minute: int = 0, day: date = MONDAY) -> datetime:
    return datetime.combine(day, time(hour, minute))


def _record(clock_in=None, clock_out=None, break_minutes=None) -> AttendanceRecord:
    return AttendanceRecord(
        employee_id=uuid.uuid4(),
        date=MONDAY,
        clock_in=clock_in,
        clock_out=clock_out,
        break_minutes=break_minutes,
    )


# ═════════════════════════════════════════════════════════════════════
# 1. WORKED HOURS — pure computation
# ═════════════════════════════════════════════════════════════════════


def test_exactly_eight_hours_has_no_overtime():
    record = _record(time(9, 0), time(17, 0))
    AttendanceService.calculate_worked_hours(record)

    assert record.worked_hours == Decimal("8.00")
    assert record.overtime_hours == Decimal("0.00")


def test_eight_and_a_half_hours_splits_overtime():
    record = _record(time(9, 0), time(17, 30))
    AttendanceService.calculate_worked_hours(record)

    assert record.worked_hours == Decimal("8.00")
    assert record.overtime_hours == Decimal("0.50")


def test_break_is_subtracted_before_threshold():
    """9h on site with a 60 minute break is a plain 8h day."""
    record = _record(time(8, 0), time(17, 0), break_minutes=60)
    AttendanceService.calculate_worked_hours(record)

    assert record.worked_hours == Decimal("8.00")
    assert record.overtime_hours == Decimal("0.00")


def test_break_longer_than_shift_floors_at_zero():
    record = _record(time(9, 0), time(10, 0), break_minutes=90)
    AttendanceService.calculate_worked_hours(record)

    assert record.worked_hours == Decimal("0.00")
    assert record.overtime_hours == Decimal("0.00")


def test_missing_clock_out_is_a_noop():
    record = _record(time(9, 0), None)
    AttendanceService.calculate_worked_hours(record)

    assert record.worked_hours is None
    assert record.overtime_hours is None


@pytest.mark.parametrize(
    ("clock_in", "clock_out", "break_minutes"),
    [
        (time(9, 0), time(12, 20), None),
        (time(7, 45), time(19, 10), 30),
        (time(6, 0), time(23, 59), 45),
        (time(10, 15), time(18, 16), 1),
    ],
)
def test_worked_plus_overtime_equals_net_duration(clock_in, clock_out, break_minutes):
    record = _record(clock_in, clock_out, break_minutes)
    AttendanceService.calculate_worked_hours(record)

    net_minutes = (
        (clock_out.hour * 60 + clock_out.minute)
        - (clock_in.hour * 60 + clock_in.minute)
        - (break_minutes or 0)
    )
    expected = Decimal(net_minutes) / Decimal(60)
    total = record.worked_hours + record.overtime_hours
    assert abs(total - expected) <= Decimal("0.01")
    assert record.worked_hours <= Decimal(8)


# ═════════════════════════════════════════════════════════════════════
# 2. CLOCK-IN / CLOCK-OUT — Service Layer
# ═════════════════════════════════════════════════════════════════════


async def test_clock_in_creates_record_with_only_clock_in(db, test_employee):
    record = await AttendanceService.clock_in(
        db, test_employee["id"], _at(9), "on site",
    )

    assert record.date == MONDAY
    assert record.clock_in == time(9, 0)
    assert record.clock_out is None
    assert record.worked_hours is None
    assert record.notes == "on site"


async def test_clock_in_twice_raises_already_clocked_in(db, test_employee):
    await AttendanceService.clock_in(db, test_employee["id"], _at(9))

    with pytest.raises(AlreadyClockedInException):
        await AttendanceService.clock_in(db, test_employee["id"], _at(10))


async def test_clock_in_fills_record_created_without_clock_in(db, test_employee):
    """A pre-existing row for the day gets its clock-in set and notes joined."""
    db.add(AttendanceRecord(
        employee_id=test_employee["id"],
        date=MONDAY,
        notes="remote day",
    ))
    await db.flush()

    record = await AttendanceService.clock_in(
        db, test_employee["id"], _at(9, 15), "vpn issues",
    )

    assert record.clock_in == time(9, 15)
    assert record.notes == "remote day; vpn issues"
    rows = (await db.execute(
        select(AttendanceRecord).where(AttendanceRecord.employee_id == test_employee["id"])
    )).scalars().all()
    assert len(rows) == 1


async def test_clock_in_unknown_employee(db):
    with pytest.raises(EmployeeNotFoundException):
        await AttendanceService.clock_in(db, uuid.uuid4(), _at(9))


async def test_concurrent_clock_in_insert_maps_to_already_clocked_in(db, test_employee):
    """Unique (employee, date) constraint catches a row inserted by a racing request."""
    db.add(AttendanceRecord(
        employee_id=test_employee["id"],
        date=MONDAY,
        clock_in=time(8, 59),
    ))
    await db.commit()

    with patch.object(
        AttendanceRepository, "get_for_day", new=AsyncMock(return_value=None),
    ):
        with pytest.raises(AlreadyClockedInException):
            await AttendanceService.clock_in(db, test_employee["id"], _at(9))


async def test_clock_out_computes_hours_and_joins_notes(db, test_employee):
    await AttendanceService.clock_in(db, test_employee["id"], _at(9), "in")
    record = await AttendanceService.clock_out(
        db, test_employee["id"], _at(18), "out",
    )

    assert record.clock_out == time(18, 0)
    assert record.worked_hours == Decimal("8.00")
    assert record.overtime_hours == Decimal("1.00")
    assert record.notes == "in; out"


async def test_clock_out_without_record_raises_invalid_operation(db, test_employee):
    with pytest.raises(InvalidOperationException) as exc_info:
        await AttendanceService.clock_out(db, test_employee["id"], _at(17))

    assert exc_info.value.detail == "No clock-in record found for today"


async def test_clock_out_without_clock_in_raises_not_clocked_in(db, test_employee):
    db.add(AttendanceRecord(employee_id=test_employee["id"], date=MONDAY))
    await db.flush()

    with pytest.raises(NotClockedInException):
        await AttendanceService.clock_out(db, test_employee["id"], _at(17))


async def test_clock_out_twice_raises_invalid_operation(db, test_employee):
    await AttendanceService.clock_in(db, test_employee["id"], _at(9))
    await AttendanceService.clock_out(db, test_employee["id"], _at(17))

    with pytest.raises(InvalidOperationException) as exc_info:
        await AttendanceService.clock_out(db, test_employee["id"], _at(18))

    assert exc_info.value.detail == "Employee has already clocked out today"


async def test_clock_events_are_audited(db, test_employee):
    record = await AttendanceService.clock_in(db, test_employee["id"], _at(9))
    await AttendanceService.clock_out(db, test_employee["id"], _at(17))

    actions = (await db.execute(
        select(AuditTrail.action).where(AuditTrail.entity_id == record.id)
    )).scalars().all()
    assert sorted(actions) == ["clock_in", "clock_out"]


# ═════════════════════════════════════════════════════════════════════
# 3. MANUAL CREATION & QUERIES
# ═════════════════════════════════════════════════════════════════════


async def test_create_attendance_computes_hours_from_break_hours(db, test_employee):
    record = await AttendanceService.create_attendance(
        db,
        AttendanceCreate(
            employee_id=test_employee["id"],
            date=MONDAY,
            clock_in=time(9, 0),
            clock_out=time(16, 0),
            break_hours=Decimal("0.5"),
        ),
    )

    assert record.break_minutes == 30
    assert record.worked_hours == Decimal("6.50")
    assert record.overtime_hours == Decimal("0.00")


async def test_create_attendance_refuses_existing_day(db, test_employee):
    await AttendanceService.clock_in(db, test_employee["id"], _at(9))

    with pytest.raises(InvalidOperationException) as exc_info:
        await AttendanceService.create_attendance(
            db,
            AttendanceCreate(employee_id=test_employee["id"], date=MONDAY),
        )

    assert exc_info.value.detail == "Attendance record already exists for 2024-03-04"


async def test_monthly_total_ignores_overtime_and_other_months(db, test_employee):
    emp_id = test_employee["id"]
    for day, start, end in [
        (date(2024, 3, 4), time(9, 0), time(17, 30)),   # 8.0 + 0.5 overtime
        (date(2024, 3, 5), time(9, 0), time(15, 30)),   # 6.5
        (date(2024, 4, 1), time(9, 0), time(17, 0)),    # next month
    ]:
        await AttendanceService.create_attendance(
            db,
            AttendanceCreate(employee_id=emp_id, date=day, clock_in=start, clock_out=end),
        )

    total = await AttendanceService.get_monthly_worked_hours(db, emp_id, 2024, 3)
    assert total == Decimal("14.50")


async def test_attendances_by_employee_range_is_inclusive(db, test_employee):
    emp_id = test_employee["id"]
    for day in (date(2024, 3, 4), date(2024, 3, 5), date(2024, 3, 6)):
        await AttendanceService.create_attendance(
            db, AttendanceCreate(employee_id=emp_id, date=day),
        )

    both = await AttendanceService.get_attendances_by_employee(
        db, emp_id, date(2024, 3, 5), date(2024, 3, 6),
    )
    assert [r.date for r in both] == [date(2024, 3, 5), date(2024, 3, 6)]

    from_only = await AttendanceService.get_attendances_by_employee(
        db, emp_id, start=date(2024, 3, 6),
    )
    assert [r.date for r in from_only] == [date(2024, 3, 6)]


async def test_today_attendance_is_scoped_to_employee(db, test_employee):
    from hrms.core_hr.models import Employee
    from tests.conftest import _make_employee

    other = Employee(**_make_employee(email="other@example.com"))
    db.add(other)
    await db.flush()
    await AttendanceService.clock_in(db, other.id, _at(9))

    assert await AttendanceService.get_today_attendance(
        db, test_employee["id"], today=MONDAY,
    ) is None
    mine = await AttendanceService.get_today_attendance(db, other.id, today=MONDAY)
    assert mine is not None and mine.employee_id == other.id


# ═════════════════════════════════════════════════════════════════════
# 4. HTTP API
# ═════════════════════════════════════════════════════════════════════


async def test_api_clock_in_defaults_to_linked_employee(client, auth_headers, test_employee):
    resp = await client.post(
        "/api/v1/attendance/clock-in",
        json={"timestamp": "2024-03-04T09:00:00", "notes": "hello"},
        headers=auth_headers,
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["employee_id"] == str(test_employee["id"])
    assert body["clock_in"] == "09:00:00"
    assert body["notes"] == "hello"


async def test_api_second_clock_in_is_400(client, auth_headers):
    payload = {"timestamp": "2024-03-04T09:00:00"}
    await client.post("/api/v1/attendance/clock-in", json=payload, headers=auth_headers)
    resp = await client.post("/api/v1/attendance/clock-in", json=payload, headers=auth_headers)

    assert resp.status_code == 400
    assert resp.headers["content-type"].startswith("application/problem+json")
    assert resp.json()["type"].endswith("/already-clocked-in")


async def test_api_clock_out_without_record_is_400(client, auth_headers):
    resp = await client.post(
        "/api/v1/attendance/clock-out",
        json={"timestamp": "2024-03-04T17:00:00"},
        headers=auth_headers,
    )

    assert resp.status_code == 400
    assert resp.json()["detail"] == "No clock-in record found for today"


async def test_api_clock_in_requires_auth(client):
    resp = await client.post("/api/v1/attendance/clock-in", json={})
    assert resp.status_code == 401


async def test_api_employee_cannot_clock_in_for_colleague(
    client, auth_headers, db, test_employee,
):
    colleague = _make_employee(email="colleague@example.com")
    db.add(Employee(**colleague))
    await db.commit()

    for path in ("clock-in", "clock-out"):
        resp = await client.post(
            f"/api/v1/attendance/{path}",
            json={"employee_id": str(colleague["id"]), "timestamp": "2024-03-04T09:00:00"},
            headers=auth_headers,
        )
        assert resp.status_code == 403
        assert resp.headers["content-type"].startswith("application/problem+json")

    stored = await db.execute(
        select(AttendanceRecord).where(AttendanceRecord.employee_id == colleague["id"])
    )
    assert stored.scalars().all() == []


async def test_api_employee_may_name_themselves(client, auth_headers, test_employee):
    resp = await client.post(
        "/api/v1/attendance/clock-in",
        json={"employee_id": str(test_employee["id"]), "timestamp": "2024-03-04T09:00:00"},
        headers=auth_headers,
    )
    assert resp.status_code == 200


async def test_api_hr_admin_clocks_in_for_employee(client, hr_headers, test_employee):
    resp = await client.post(
        "/api/v1/attendance/clock-in",
        json={"employee_id": str(test_employee["id"]), "timestamp": "2024-03-04T09:00:00"},
        headers=hr_headers,
    )

    assert resp.status_code == 200
    assert resp.json()["employee_id"] == str(test_employee["id"])


async def test_api_unlinked_account_must_name_employee(client, make_user):
    user = await make_user()
    resp = await client.post(
        "/api/v1/attendance/clock-in",
        json={"timestamp": "2024-03-04T09:00:00"},
        headers=bearer(user),
    )

    assert resp.status_code == 400
    assert "employee_id" in resp.json()["errors"]


async def test_api_manual_create_requires_hr(client, auth_headers, hr_headers, test_employee):
    payload = {
        "employee_id": str(test_employee["id"]),
        "date": "2024-03-04",
        "clock_in": "09:00:00",
        "clock_out": "17:30:00",
    }
    forbidden = await client.post("/api/v1/attendance", json=payload, headers=auth_headers)
    assert forbidden.status_code == 403

    created = await client.post("/api/v1/attendance", json=payload, headers=hr_headers)
    assert created.status_code == 201
    assert Decimal(created.json()["overtime_hours"]) == Decimal("0.5")


async def test_api_unknown_record_is_404(client, auth_headers):
    resp = await client.get(f"/api/v1/attendance/{uuid.uuid4()}", headers=auth_headers)
    assert resp.status_code == 404


async def test_api_monthly_hours(client, hr_headers, test_employee):
    await client.post(
        "/api/v1/attendance",
        json={
            "employee_id": str(test_employee["id"]),
            "date": "2024-03-04",
            "clock_in": "09:00:00",
            "clock_out": "19:00:00",
        },
        headers=hr_headers,
    )
    resp = await client.get(
        f"/api/v1/attendance/employee/{test_employee['id']}/monthly-hours",
        params={"year": 2024, "month": 3},
        headers=hr_headers,
    )

    assert resp.status_code == 200
    assert Decimal(resp.json()["total_worked_hours"]) == Decimal("8")
