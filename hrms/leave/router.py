"""Leave router — submit, review and query leave requests.

Static paths (/pending, /conflict-check, /status/..., /employee/...) are
declared before /{request_id} so they are not captured as an id.
"""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import (
    get_current_user,
    require_role,
    resolve_acting_employee,
)
from hrms.auth.models import UserAccount
from hrms.common.constants import ANNUAL_LEAVE_ALLOWANCE, LeaveStatus, UserRole
from hrms.common.exceptions import ValidationException
from hrms.database import get_db
from hrms.leave.schemas import (
    ConflictCheckResponse,
    LeaveRequestCreate,
    LeaveRequestResponse,
    LeaveStatusUpdate,
    RemainingLeaveResponse,
)
from hrms.leave.service import LeaveService

router = APIRouter(prefix="", tags=["leave"])


# ── POST / — Submit ─────────────────────────────────────────────────

@router.post(
    "",
    response_model=LeaveRequestResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_leave_request(
    request: Request,
    body: LeaveRequestCreate,
    user: UserAccount = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Submit a request; employees may only submit for themselves."""
    resolve_acting_employee(request, user, body.employee_id)
    leave = await LeaveService.create_leave_request(db, body, actor_id=user.id)
    return LeaveService.build_response(leave)


# ── GET /pending ────────────────────────────────────────────────────

@router.get("/pending", response_model=list[LeaveRequestResponse])
async def list_pending(
    user: UserAccount = Depends(require_role(UserRole.manager)),
    db: AsyncSession = Depends(get_db),
):
    return [LeaveService.build_response(r) for r in await LeaveService.get_pending(db)]


# ── GET /conflict-check ─────────────────────────────────────────────

@router.get("/conflict-check", response_model=ConflictCheckResponse)
async def conflict_check(
    employee_id: uuid.UUID = Query(...),
    start_date: date = Query(...),
    end_date: date = Query(...),
    exclude_request_id: Optional[uuid.UUID] = Query(None),
    user: UserAccount = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if end_date < start_date:
        raise ValidationException("end_date", "End date must be on or after start date.")
    has_conflict = await LeaveService.has_conflicting_leave(
        db, employee_id, start_date, end_date, exclude_request_id,
    )
    return ConflictCheckResponse(
        employee_id=employee_id,
        start_date=start_date,
        end_date=end_date,
        has_conflict=has_conflict,
    )


# ── GET /status/{leave_status} ──────────────────────────────────────

@router.get("/status/{leave_status}", response_model=list[LeaveRequestResponse])
async def list_by_status(
    leave_status: LeaveStatus,
    user: UserAccount = Depends(require_role(UserRole.manager)),
    db: AsyncSession = Depends(get_db),
):
    requests = await LeaveService.get_by_status(db, leave_status)
    return [LeaveService.build_response(r) for r in requests]


# ── GET /employee/{employee_id} ─────────────────────────────────────

@router.get("/employee/{employee_id}", response_model=list[LeaveRequestResponse])
async def list_by_employee(
    employee_id: uuid.UUID,
    user: UserAccount = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    requests = await LeaveService.get_by_employee(db, employee_id)
    return [LeaveService.build_response(r) for r in requests]


# ── GET /employee/{employee_id}/remaining/{year} ────────────────────

@router.get(
    "/employee/{employee_id}/remaining/{year}",
    response_model=RemainingLeaveResponse,
)
async def remaining_leave(
    employee_id: uuid.UUID,
    year: int = Path(..., ge=1, le=9999),
    user: UserAccount = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    remaining = await LeaveService.remaining_leave_days(db, employee_id, year)
    return RemainingLeaveResponse(
        employee_id=employee_id,
        year=year,
        allowance=ANNUAL_LEAVE_ALLOWANCE,
        remaining_days=remaining,
    )


# ── GET /{request_id} ───────────────────────────────────────────────

@router.get("/{request_id}", response_model=LeaveRequestResponse)
async def get_leave_request(
    request_id: uuid.UUID,
    user: UserAccount = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    leave = await LeaveService.get_leave_request(db, request_id)
    return LeaveService.build_response(leave)


# ── PUT /{request_id}/status — Decide ───────────────────────────────

@router.put("/{request_id}/status", status_code=status.HTTP_204_NO_CONTENT)
async def update_leave_status(
    request_id: uuid.UUID,
    body: LeaveStatusUpdate,
    user: UserAccount = Depends(require_role(UserRole.manager)),
    db: AsyncSession = Depends(get_db),
):
    await LeaveService.update_status(
        db, request_id, body.status, body.manager_comments, actor_id=user.id,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
