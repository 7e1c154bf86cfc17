"""Attendance router — clock in/out, manual records, per-employee and per-day views.

All endpoints require authentication. Manual record creation, and clocking in
or out on behalf of another employee, require hr_admin.
"""


import uuid
from datetime import date, datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.attendance.schemas import (
    AttendanceCreate,
    AttendanceResponse,
    ClockRequest,
    MonthlyHoursResponse,
)
from hrms.attendance.service import AttendanceService
from hrms.auth.dependencies import (
    get_current_user,
    require_role,
    resolve_acting_employee,
)
from hrms.auth.models import UserAccount
from hrms.common.constants import UserRole
from hrms.database import get_db

router = APIRouter(prefix="", tags=["attendance"])


# ── POST /clock-in ──────────────────────────────────────────────────

@router.post("/clock-in", response_model=AttendanceResponse)
async def clock_in(
    request: Request,
    body: ClockRequest,
    user: UserAccount = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Record a clock-in event."""
    record = await AttendanceService.clock_in(
        db,
        resolve_acting_employee(request, user, body.employee_id),
        body.timestamp or datetime.now(timezone.utc),
        body.notes,
        actor_id=user.id,
    )
    return AttendanceService.build_response(record)


# ── POST /clock-out ─────────────────────────────────────────────────

@router.post("/clock-out", response_model=AttendanceResponse)
async def clock_out(
    request: Request,
    body: ClockRequest,
    user: UserAccount = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Record a clock-out event and compute the day's hours."""
    record = await AttendanceService.clock_out(
        db,
        resolve_acting_employee(request, user, body.employee_id),
        body.timestamp or datetime.now(timezone.utc),
        body.notes,
        actor_id=user.id,
    )
    return AttendanceService.build_response(record)


# ── POST / — Manual record (HR) ─────────────────────────────────────

@router.post(
    "",
    response_model=AttendanceResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_attendance(
    body: AttendanceCreate,
    user: UserAccount = Depends(require_role(UserRole.hr_admin)),
    db: AsyncSession = Depends(get_db),
):
    record = await AttendanceService.create_attendance(db, body, actor_id=user.id)
    return AttendanceService.build_response(record)


# ── GET /employee/{employee_id} ─────────────────────────────────────

@router.get("/employee/{employee_id}", response_model=list[AttendanceResponse])
async def list_employee_attendance(
    employee_id: uuid.UUID,
    start_date: Optional[date] = Query(None, description="Inclusive lower bound"),
    end_date: Optional[date] = Query(None, description="Inclusive upper bound"),
    user: UserAccount = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    records = await AttendanceService.get_attendances_by_employee(
        db, employee_id, start_date, end_date,
    )
    return [AttendanceService.build_response(r) for r in records]


# ── GET /employee/{employee_id}/today ───────────────────────────────

@router.get(
    "/employee/{employee_id}/today",
    response_model=Optional[AttendanceResponse],
)
async def get_today_attendance(
    employee_id: uuid.UUID,
    user: UserAccount = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    record = await AttendanceService.get_today_attendance(db, employee_id)
    return AttendanceService.build_response(record) if record else None


# ── GET /employee/{employee_id}/monthly-hours ───────────────────────

@router.get(
    "/employee/{employee_id}/monthly-hours",
    response_model=MonthlyHoursResponse,
)
async def get_monthly_hours(
    employee_id: uuid.UUID,
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
    user: UserAccount = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    total = await AttendanceService.get_monthly_worked_hours(db, employee_id, year, month)
    return MonthlyHoursResponse(
        employee_id=employee_id,
        year=year,
        month=month,
        total_worked_hours=total,
    )


# ── GET /date/{day} ─────────────────────────────────────────────────

@router.get("/date/{day}", response_model=list[AttendanceResponse])
async def list_attendance_for_date(
    day: date,
    user: UserAccount = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    records = await AttendanceService.get_attendances_by_date(db, day)
    return [AttendanceService.build_response(r) for r in records]


# ── GET /{record_id} ────────────────────────────────────────────────

@router.get("/{record_id}", response_model=AttendanceResponse)
async def get_attendance(
    record_id: uuid.UUID,
    user: UserAccount = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    record = await AttendanceService.get_attendance(db, record_id)
    return AttendanceService.build_response(record)
