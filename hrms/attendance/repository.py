"""Named queries for attendance records."""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

from sqlalchemy import func, select

from hrms.attendance.models import AttendanceRecord
from hrms.common.repository import Repository


class AttendanceRepository(Repository[AttendanceRecord]):
    model = AttendanceRecord

    async def get_for_day(
        self,
        employee_id: uuid.UUID,
        day: date,
    ) -> Optional[AttendanceRecord]:
        return await self.first_or_default(
            AttendanceRecord.employee_id == employee_id,
            AttendanceRecord.date == day,
        )

    async def in_range(
        self,
        employee_id: uuid.UUID,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[AttendanceRecord]:
        """Records of one employee with ``start <= date <= end``; bounds optional."""
        criteria = [AttendanceRecord.employee_id == employee_id]
        if start is not None:
            criteria.append(AttendanceRecord.date >= start)
        if end is not None:
            criteria.append(AttendanceRecord.date <= end)
        return await self.find(*criteria, order_by=AttendanceRecord.date)

    async def on_date(self, day: date) -> Sequence[AttendanceRecord]:
        return await self.find(
            AttendanceRecord.date == day,
            order_by=AttendanceRecord.employee_id,
        )

    async def sum_worked_hours(
        self,
        employee_id: uuid.UUID,
        start: date,
        end: date,
    ) -> Decimal:
        result = await self.db.execute(
            select(func.coalesce(func.sum(AttendanceRecord.worked_hours), 0)).where(
                AttendanceRecord.employee_id == employee_id,
                AttendanceRecord.date >= start,
                AttendanceRecord.date <= end,
            )
        )
        return Decimal(str(result.scalar_one()))
