"""Leave service — request submission, conflict detection, decisions, balance.

Business days are Monday to Friday; public holidays are not excluded.
Conflicts are only checked against *approved* requests of the same employee.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from hrms.common.audit import create_audit_entry
from hrms.common.constants import ANNUAL_LEAVE_ALLOWANCE, LeaveStatus
from hrms.common.exceptions import (
    ConflictingLeaveRequestException,
    EmployeeNotFoundException,
    LeaveRequestNotFoundException,
    ValidationException,
)
from hrms.core_hr.models import Employee
from hrms.core_hr.repository import EmployeeRepository
from hrms.leave.models import LeaveRequest
from hrms.leave.repository import LeaveRequestRepository
from hrms.leave.schemas import LeaveRequestCreate, LeaveRequestResponse

logger = logging.getLogger(__name__)

# date.weekday(): Monday == 0 … Sunday == 6
_FIRST_WEEKEND_DAY = 5


class LeaveService:
    """Leave-request workflow."""

    # ── Projection ──────────────────────────────────────────────────

    @staticmethod
    def build_response(leave: LeaveRequest) -> LeaveRequestResponse:
        return LeaveRequestResponse.model_validate(leave)

    # ── Business days ───────────────────────────────────────────────

    @staticmethod
    def calculate_business_days(start: date, end: date) -> int:
        """Count Mon–Fri dates in ``[start, end]``; 0 when end < start."""
        days = 0
        current = start
        while current <= end:
            if current.weekday() < _FIRST_WEEKEND_DAY:
                days += 1
            current += timedelta(days=1)
        return days

    # ── Create ──────────────────────────────────────────────────────

    @staticmethod
    async def create_leave_request(
        db: AsyncSession,
        data: LeaveRequestCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
        today: Optional[date] = None,
    ) -> LeaveRequest:
        """Validate and persist a new request in ``pending`` state."""

        if not await EmployeeRepository(db).exists(Employee.id == data.employee_id):
            raise EmployeeNotFoundException(data.employee_id)

        if data.end_date < data.start_date:
            raise ValidationException("end_date", "End date must be on or after start date.")

        today = today or datetime.now(timezone.utc).date()
        if data.start_date < today:
            raise ValidationException("start_date", "Start date cannot be in the past.")

        days = LeaveService.calculate_business_days(data.start_date, data.end_date)

        if await LeaveService.has_conflicting_leave(
            db, data.employee_id, data.start_date, data.end_date,
        ):
            logger.warning(
                "Leave request for employee %s overlaps approved leave (%s – %s)",
                data.employee_id, data.start_date, data.end_date,
            )
            raise ConflictingLeaveRequestException(data.start_date, data.end_date)

        leave = LeaveRequest(
            employee_id=data.employee_id,
            leave_type=data.leave_type,
            start_date=data.start_date,
            end_date=data.end_date,
            days_requested=days,
            reason=data.reason,
            status=LeaveStatus.pending,
        )
        await LeaveRequestRepository(db).add(leave)

        await create_audit_entry(
            db,
            action="create",
            entity_type="leave_request",
            entity_id=leave.id,
            actor_id=actor_id,
            new_values={**data.model_dump(mode="json"), "days_requested": days},
        )
        logger.info(
            "Leave request %s created for employee %s (%d business days)",
            leave.id, data.employee_id, days,
        )
        return leave

    # ── Conflict detection ──────────────────────────────────────────

    @staticmethod
    async def has_conflicting_leave(
        db: AsyncSession,
        employee_id: uuid.UUID,
        start: date,
        end: date,
        exclude_request_id: Optional[uuid.UUID] = None,
    ) -> bool:
        """True iff an approved request of the employee overlaps ``[start, end]``."""
        overlapping = await LeaveRequestRepository(db).approved_overlapping(
            employee_id, start, end, exclude_request_id,
        )
        return len(overlapping) > 0

    # ── Status update ───────────────────────────────────────────────

    @staticmethod
    async def update_status(
        db: AsyncSession,
        request_id: uuid.UUID,
        new_status: LeaveStatus,
        comments: Optional[str] = None,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> LeaveRequest:
        """Overwrite status and comments and stamp ``reviewed_at``.

        Requests already in a terminal state are overwritten as well.
        """
        repo = LeaveRequestRepository(db)
        leave = await repo.get_by_id(request_id)
        if leave is None:
            raise LeaveRequestNotFoundException(request_id)

        old_status = leave.status
        if old_status != LeaveStatus.pending:
            # TODO: reject transitions out of approved / rejected / cancelled once
            # clients stop relying on re-deciding requests.
            logger.warning(
                "Leave request %s re-decided: %s -> %s",
                request_id, old_status.value, new_status.value,
            )

        leave.status = new_status
        leave.manager_comments = comments
        leave.reviewed_at = datetime.now(timezone.utc)
        await repo.update(leave)

        await create_audit_entry(
            db,
            action="status_change",
            entity_type="leave_request",
            entity_id=leave.id,
            actor_id=actor_id,
            old_values={"status": old_status.value},
            new_values={"status": new_status.value, "manager_comments": comments},
        )
        logger.info(
            "Leave request %s: %s -> %s", request_id, old_status.value, new_status.value,
        )
        return leave

    # ── Balance ─────────────────────────────────────────────────────

    @staticmethod
    async def remaining_leave_days(
        db: AsyncSession,
        employee_id: uuid.UUID,
        year: int,
    ) -> int:
        """Annual allowance minus approved annual days starting in *year*, floored at 0."""
        if not await EmployeeRepository(db).exists(Employee.id == employee_id):
            raise EmployeeNotFoundException(employee_id)

        approved = await LeaveRequestRepository(db).approved_annual_in_year(employee_id, year)
        used = sum(leave.days_requested for leave in approved)
        return max(0, ANNUAL_LEAVE_ALLOWANCE - used)

    # ── Queries ─────────────────────────────────────────────────────

    @staticmethod
    async def get_leave_request(db: AsyncSession, request_id: uuid.UUID) -> LeaveRequest:
        leave = await LeaveRequestRepository(db).get_by_id(request_id)
        if leave is None:
            raise LeaveRequestNotFoundException(request_id)
        return leave

    @staticmethod
    async def get_by_employee(
        db: AsyncSession,
        employee_id: uuid.UUID,
    ) -> Sequence[LeaveRequest]:
        return await LeaveRequestRepository(db).by_employee(employee_id)

    @staticmethod
    async def get_by_status(
        db: AsyncSession,
        status: LeaveStatus,
    ) -> Sequence[LeaveRequest]:
        return await LeaveRequestRepository(db).by_status(status)

    @staticmethod
    async def get_pending(db: AsyncSession) -> Sequence[LeaveRequest]:
        return await LeaveService.get_by_status(db, LeaveStatus.pending)
