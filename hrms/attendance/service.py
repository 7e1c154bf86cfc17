"""Attendance service — clock in/out, worked-hours accounting, record queries.

Overtime policy is a fixed threshold: the first ``STANDARD_WORKDAY_HOURS`` of a
day count as worked hours, everything beyond counts as overtime.
"""

from __future__ import annotations

import calendar
import logging
import uuid
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.attendance.models import AttendanceRecord
from hrms.attendance.repository import AttendanceRepository
from hrms.attendance.schemas import AttendanceCreate, AttendanceResponse
from hrms.common.audit import create_audit_entry
from hrms.common.constants import DATE_FORMAT, STANDARD_WORKDAY_HOURS
from hrms.common.exceptions import (
    AlreadyClockedInException,
    EmployeeNotFoundException,
    InvalidOperationException,
    NotClockedInException,
    NotFoundException,
)
from hrms.core_hr.models import Employee
from hrms.core_hr.repository import EmployeeRepository

logger = logging.getLogger(__name__)

_TWO_PLACES = Decimal("0.01")
_SECONDS_PER_HOUR = Decimal(3600)
NOTES_SEPARATOR = "; "


def _quantize(value: Decimal) -> Decimal:
    return value.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)


def _append_notes(existing: Optional[str], new: Optional[str]) -> Optional[str]:
    if not new:
        return existing
    if existing:
        return f"{existing}{NOTES_SEPARATOR}{new}"
    return new


class AttendanceService:
    """Clock events, manual records and hour totals."""

    # ── Projection ──────────────────────────────────────────────────

    @staticmethod
    def build_response(record: AttendanceRecord) -> AttendanceResponse:
        return AttendanceResponse.model_validate(record)

    # ── Worked hours ────────────────────────────────────────────────

    @staticmethod
    def calculate_worked_hours(record: AttendanceRecord) -> None:
        """Derive ``worked_hours`` / ``overtime_hours`` in place.

        No-op unless both clock-in and clock-out are set.
        """
        if record.clock_in is None or record.clock_out is None:
            return

        day = record.date or date.min
        raw = datetime.combine(day, record.clock_out) - datetime.combine(day, record.clock_in)
        seconds = Decimal(int(raw.total_seconds()))
        if record.break_minutes:
            seconds -= Decimal(record.break_minutes * 60)
        hours = seconds / _SECONDS_PER_HOUR

        threshold = Decimal(STANDARD_WORKDAY_HOURS)
        if hours <= threshold:
            record.worked_hours = _quantize(max(Decimal(0), hours))
            record.overtime_hours = _quantize(Decimal(0))
        else:
            record.worked_hours = _quantize(threshold)
            record.overtime_hours = _quantize(hours - threshold)

    # ── Clock in ────────────────────────────────────────────────────

    @staticmethod
    async def clock_in(
        db: AsyncSession,
        employee_id: uuid.UUID,
        timestamp: datetime,
        notes: Optional[str] = None,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> AttendanceRecord:
        """Record a clock-in; fills a pre-existing record that has none."""

        await AttendanceService._ensure_employee(db, employee_id)
        repo = AttendanceRepository(db)
        day, at = timestamp.date(), timestamp.time().replace(tzinfo=None)

        record = await repo.get_for_day(employee_id, day)
        if record is not None and record.clock_in is not None:
            logger.warning("Employee %s already clocked in on %s", employee_id, day)
            raise AlreadyClockedInException(employee_id)

        if record is None:
            record = AttendanceRecord(
                employee_id=employee_id,
                date=day,
                clock_in=at,
                notes=notes or None,
            )
            try:
                await repo.add(record)
            except IntegrityError:
                # A concurrent clock-in created the row first
                await db.rollback()
                logger.warning("Concurrent clock-in for employee %s on %s", employee_id, day)
                raise AlreadyClockedInException(employee_id)
        else:
            record.clock_in = at
            record.notes = _append_notes(record.notes, notes)
            await repo.update(record)

        await create_audit_entry(
            db,
            action="clock_in",
            entity_type="attendance_record",
            entity_id=record.id,
            actor_id=actor_id,
            new_values={"date": day.isoformat(), "clock_in": at.isoformat()},
        )
        logger.info("Employee %s clocked in at %s on %s", employee_id, at, day)
        return record

    # ── Clock out ───────────────────────────────────────────────────

    @staticmethod
    async def clock_out(
        db: AsyncSession,
        employee_id: uuid.UUID,
        timestamp: datetime,
        notes: Optional[str] = None,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> AttendanceRecord:
        """Record a clock-out and compute the day's worked / overtime hours."""

        await AttendanceService._ensure_employee(db, employee_id)
        repo = AttendanceRepository(db)
        day, at = timestamp.date(), timestamp.time().replace(tzinfo=None)

        record = await repo.get_for_day(employee_id, day)
        if record is None:
            logger.warning("Clock-out without a record: employee %s on %s", employee_id, day)
            raise InvalidOperationException("No clock-in record found for today")
        if record.clock_in is None:
            raise NotClockedInException(employee_id)
        if record.clock_out is not None:
            raise InvalidOperationException("Employee has already clocked out today")

        record.clock_out = at
        record.notes = _append_notes(record.notes, notes)
        AttendanceService.calculate_worked_hours(record)
        await repo.update(record)

        await create_audit_entry(
            db,
            action="clock_out",
            entity_type="attendance_record",
            entity_id=record.id,
            actor_id=actor_id,
            new_values={
                "date": day.isoformat(),
                "clock_out": at.isoformat(),
                "worked_hours": str(record.worked_hours),
                "overtime_hours": str(record.overtime_hours),
            },
        )
        logger.info(
            "Employee %s clocked out at %s on %s (worked=%s overtime=%s)",
            employee_id, at, day, record.worked_hours, record.overtime_hours,
        )
        return record

    # ── Manual creation ─────────────────────────────────────────────

    @staticmethod
    async def create_attendance(
        db: AsyncSession,
        data: AttendanceCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> AttendanceRecord:
        """Create a complete record; refuses to overwrite an existing day."""

        await AttendanceService._ensure_employee(db, data.employee_id)
        repo = AttendanceRepository(db)
        duplicate_msg = (
            f"Attendance record already exists for {data.date.strftime(DATE_FORMAT)}"
        )

        if await repo.get_for_day(data.employee_id, data.date) is not None:
            logger.warning(
                "Duplicate attendance for employee %s on %s", data.employee_id, data.date,
            )
            raise InvalidOperationException(duplicate_msg)

        record = AttendanceRecord(
            employee_id=data.employee_id,
            date=data.date,
            clock_in=data.clock_in,
            clock_out=data.clock_out,
            break_minutes=(
                int((data.break_hours * 60).to_integral_value(rounding=ROUND_HALF_UP))
                if data.break_hours is not None
                else None
            ),
            notes=data.notes,
        )
        AttendanceService.calculate_worked_hours(record)

        try:
            await repo.add(record)
        except IntegrityError:
            await db.rollback()
            raise InvalidOperationException(duplicate_msg)

        await create_audit_entry(
            db,
            action="create",
            entity_type="attendance_record",
            entity_id=record.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json"),
        )
        logger.info("Created attendance %s for employee %s", record.id, data.employee_id)
        return record

    # ── Queries ─────────────────────────────────────────────────────

    @staticmethod
    async def get_attendance(db: AsyncSession, record_id: uuid.UUID) -> AttendanceRecord:
        record = await AttendanceRepository(db).get_by_id(record_id)
        if record is None:
            raise NotFoundException("AttendanceRecord", str(record_id))
        return record

    @staticmethod
    async def get_attendances_by_employee(
        db: AsyncSession,
        employee_id: uuid.UUID,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[AttendanceRecord]:
        """Inclusive ``[start, end]``; either bound may be omitted."""
        await AttendanceService._ensure_employee(db, employee_id)
        return await AttendanceRepository(db).in_range(employee_id, start, end)

    @staticmethod
    async def get_attendances_by_date(
        db: AsyncSession,
        day: date,
    ) -> Sequence[AttendanceRecord]:
        return await AttendanceRepository(db).on_date(day)

    @staticmethod
    async def get_today_attendance(
        db: AsyncSession,
        employee_id: uuid.UUID,
        today: Optional[date] = None,
    ) -> Optional[AttendanceRecord]:
        await AttendanceService._ensure_employee(db, employee_id)
        day = today or datetime.now(timezone.utc).date()
        return await AttendanceRepository(db).get_for_day(employee_id, day)

    @staticmethod
    async def get_monthly_worked_hours(
        db: AsyncSession,
        employee_id: uuid.UUID,
        year: int,
        month: int,
    ) -> Decimal:
        """Sum of ``worked_hours`` (overtime excluded) within the calendar month."""
        await AttendanceService._ensure_employee(db, employee_id)
        last_day = calendar.monthrange(year, month)[1]
        total = await AttendanceRepository(db).sum_worked_hours(
            employee_id, date(year, month, 1), date(year, month, last_day),
        )
        return _quantize(total)

    # ── Internal ────────────────────────────────────────────────────

    @staticmethod
    async def _ensure_employee(db: AsyncSession, employee_id: uuid.UUID) -> None:
        if not await EmployeeRepository(db).exists(Employee.id == employee_id):
            raise EmployeeNotFoundException(employee_id)
