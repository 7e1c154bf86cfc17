"""Attendance Pydantic v2 schemas — request / response validation.

Naming conventions:
  - *Create / *Request  → request bodies (write)
  - *Response           → response bodies (read)
"""


import uuid
from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ═════════════════════════════════════════════════════════════════════
# Clock in / out
# ═════════════════════════════════════════════════════════════════════


class ClockRequest(BaseModel):
    """Payload for clocking in or out.

    ``employee_id`` defaults to the employee linked to the caller's account and
    may name someone else only for hr_admin callers;
    ``timestamp`` defaults to the current UTC time.
    """

    employee_id: Optional[uuid.UUID] = None
    timestamp: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=1000)


# ═════════════════════════════════════════════════════════════════════
# Manual record creation
# ═════════════════════════════════════════════════════════════════════


class AttendanceCreate(BaseModel):
    """Payload for creating a full attendance record (HR back-office)."""

    employee_id: uuid.UUID
    date: date
    clock_in: Optional[time] = None
    clock_out: Optional[time] = None
    break_hours: Optional[Decimal] = Field(
        None, ge=0, le=24, description="Break duration in hours",
    )
    notes: Optional[str] = Field(None, max_length=1000)

    @model_validator(mode="after")
    def _clock_out_needs_clock_in(self) -> "AttendanceCreate":
        if self.clock_out is not None and self.clock_in is None:
            raise ValueError("clock_out requires clock_in")
        return self


# ═════════════════════════════════════════════════════════════════════
# Responses
# ═════════════════════════════════════════════════════════════════════


class AttendanceResponse(BaseModel):
    """Full attendance record."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    date: date
    clock_in: Optional[time] = None
    clock_out: Optional[time] = None
    break_minutes: Optional[int] = None
    worked_hours: Optional[Decimal] = None
    overtime_hours: Optional[Decimal] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class MonthlyHoursResponse(BaseModel):
    employee_id: uuid.UUID
    year: int
    month: int
    total_worked_hours: Decimal
