"""Named queries for leave requests."""

from __future__ import annotations

import uuid
from datetime import date
from typing import Optional, Sequence

from hrms.common.constants import LeaveStatus, LeaveType
from hrms.common.repository import Repository
from hrms.leave.models import LeaveRequest


class LeaveRequestRepository(Repository[LeaveRequest]):
    model = LeaveRequest

    async def by_employee(self, employee_id: uuid.UUID) -> Sequence[LeaveRequest]:
        return await self.find(
            LeaveRequest.employee_id == employee_id,
            order_by=LeaveRequest.start_date.desc(),
        )

    async def by_status(self, status: LeaveStatus) -> Sequence[LeaveRequest]:
        return await self.find(
            LeaveRequest.status == status,
            order_by=LeaveRequest.start_date,
        )

    async def approved_overlapping(
        self,
        employee_id: uuid.UUID,
        start: date,
        end: date,
        exclude_request_id: Optional[uuid.UUID] = None,
    ) -> Sequence[LeaveRequest]:
        """Approved requests of the employee intersecting ``[start, end]`` inclusively."""
        criteria = [
            LeaveRequest.employee_id == employee_id,
            LeaveRequest.status == LeaveStatus.approved,
            LeaveRequest.start_date <= end,
            LeaveRequest.end_date >= start,
        ]
        if exclude_request_id is not None:
            criteria.append(LeaveRequest.id != exclude_request_id)
        return await self.find(*criteria)

    async def approved_annual_in_year(
        self,
        employee_id: uuid.UUID,
        year: int,
    ) -> Sequence[LeaveRequest]:
        """Approved annual-type requests whose start date falls in *year*."""
        return await self.find(
            LeaveRequest.employee_id == employee_id,
            LeaveRequest.status == LeaveStatus.approved,
            LeaveRequest.leave_type == LeaveType.annual,
            LeaveRequest.start_date >= date(year, 1, 1),
            LeaveRequest.start_date <= date(year, 12, 31),
        )
