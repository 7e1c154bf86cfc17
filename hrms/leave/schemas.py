"""Leave Pydantic v2 schemas — request / response validation."""


import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from hrms.common.constants import LeaveStatus, LeaveType


# ═════════════════════════════════════════════════════════════════════
# Requests
# ═════════════════════════════════════════════════════════════════════


class LeaveRequestCreate(BaseModel):
    """Payload for submitting a leave request."""

    employee_id: uuid.UUID
    leave_type: LeaveType
    start_date: date
    end_date: date
    reason: Optional[str] = Field(None, max_length=2000)


class LeaveStatusUpdate(BaseModel):
    """Payload for a manager / HR decision on a request."""

    status: LeaveStatus
    manager_comments: Optional[str] = Field(None, max_length=2000)


# ═════════════════════════════════════════════════════════════════════
# Responses
# ═════════════════════════════════════════════════════════════════════


class LeaveRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    leave_type: LeaveType
    start_date: date
    end_date: date
    days_requested: int
    reason: Optional[str] = None
    status: LeaveStatus
    manager_comments: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class RemainingLeaveResponse(BaseModel):
    employee_id: uuid.UUID
    year: int
    allowance: int
    remaining_days: int


class ConflictCheckResponse(BaseModel):
    employee_id: uuid.UUID
    start_date: date
    end_date: date
    has_conflict: bool
