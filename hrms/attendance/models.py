"""Attendance ORM model: one AttendanceRecord per employee per calendar day."""

from __future__ import annotations

import uuid
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrms.database import Base

if TYPE_CHECKING:
    from hrms.core_hr.models import Employee


class AttendanceRecord(Base):
    __tablename__ = "attendance_records"
    __table_args__ = (
        sa.UniqueConstraint("employee_id", "date", name="uq_attendance_emp_date"),
        sa.Index("ix_attendance_records_date", "date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employees.id"), nullable=False
    )
    date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    clock_in: Mapped[Optional[time]] = mapped_column(sa.Time)
    clock_out: Mapped[Optional[time]] = mapped_column(sa.Time)
    break_minutes: Mapped[Optional[int]] = mapped_column(sa.Integer)
    # Derived by AttendanceService.calculate_worked_hours, never set by callers
    worked_hours: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(5, 2))
    overtime_hours: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(5, 2))
    notes: Mapped[Optional[str]] = mapped_column(sa.Text)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    employee: Mapped["Employee"] = relationship(
        back_populates="attendance_records", lazy="raise",
    )

    def __repr__(self) -> str:
        return f"<AttendanceRecord {self.employee_id} {self.date}>"
