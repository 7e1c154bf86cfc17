"""Named queries for employees and departments."""

from __future__ import annotations

import uuid
from typing import Optional

from hrms.common.repository import Repository
from hrms.core_hr.models import Department, Employee


class EmployeeRepository(Repository[Employee]):
    model = Employee

    async def get_by_email(self, email: str) -> Optional[Employee]:
        return await self.first_or_default(Employee.email == email)

    async def count_in_department(self, department_id: uuid.UUID) -> int:
        return await self.count(Employee.department_id == department_id)


class DepartmentRepository(Repository[Department]):
    model = Department

    async def get_by_name(self, name: str) -> Optional[Department]:
        return await self.first_or_default(Department.name == name)
