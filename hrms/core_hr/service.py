"""Core HR service layer — async CRUD for employees and departments.

Uses:
  - ``paginate()`` from hrms.common.pagination
  - ``apply_filters / apply_search`` from hrms.common.filters
  - ``NotFoundException / ConflictError`` from hrms.common.exceptions
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.common.exceptions import (
    ConflictError,
    EmployeeNotFoundException,
    InvalidOperationException,
    NotFoundException,
)
from hrms.common.filters import apply_filters, apply_search
from hrms.common.pagination import PaginatedResponse, PaginationParams, paginate
from hrms.core_hr.models import Department, Employee
from hrms.core_hr.repository import DepartmentRepository, EmployeeRepository
from hrms.core_hr.schemas import (
    DepartmentCreate,
    DepartmentResponse,
    DepartmentUpdate,
    EmployeeCreate,
    EmployeeResponse,
    EmployeeUpdate,
)

logger = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════
# EmployeeService
# ═════════════════════════════════════════════════════════════════════


class EmployeeService:
    """Async CRUD operations for employees."""

    # ── Projection ──────────────────────────────────────────────────

    @staticmethod
    def build_response(employee: Employee) -> EmployeeResponse:
        resp = EmployeeResponse.model_validate(employee)
        if employee.department is not None:
            resp.department_name = employee.department.name
        return resp

    # ── List (paginated, searchable, filterable) ────────────────────

    @staticmethod
    async def list_employees(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        search: Optional[str] = None,
        department_id: Optional[uuid.UUID] = None,
        is_active: Optional[bool] = None,
    ) -> PaginatedResponse:
        """Return a paginated, filtered, searchable employee list."""

        query = select(Employee).order_by(Employee.last_name, Employee.first_name)
        query = apply_filters(
            query,
            Employee,
            {"department_id": department_id, "is_active": is_active},
        )
        query = apply_search(
            query,
            Employee,
            search,
            ["first_name", "last_name", "email", "employee_code"],
        )
        return await paginate(db, query, pagination, model=Employee)

    # ── Get single ──────────────────────────────────────────────────

    @staticmethod
    async def get_employee(
        db: AsyncSession,
        employee_id: uuid.UUID,
    ) -> Employee:
        employee = await EmployeeRepository(db).get_by_id(employee_id)
        if employee is None:
            raise EmployeeNotFoundException(employee_id)
        return employee

    # ── Create ──────────────────────────────────────────────────────

    @staticmethod
    async def create_employee(
        db: AsyncSession,
        data: EmployeeCreate,
    ) -> Employee:
        """Create a new employee record."""

        if data.department_id is not None:
            await DepartmentService.get_department_entity(db, data.department_id)

        employee = Employee(**data.model_dump())
        db.add(employee)
        try:
            await db.flush()
        except IntegrityError as exc:
            await db.rollback()
            err = str(exc.orig)
            if "employee_code" in err:
                raise ConflictError("employee_code", data.employee_code)
            if "email" in err:
                raise ConflictError("email", data.email)
            raise

        await db.refresh(employee, attribute_names=["department"])
        logger.info("Created employee %s (%s)", employee.employee_code, employee.id)
        return employee

    # ── Update ──────────────────────────────────────────────────────

    @staticmethod
    async def update_employee(
        db: AsyncSession,
        employee_id: uuid.UUID,
        data: EmployeeUpdate,
    ) -> Employee:
        """Partial-update an existing employee; ``None`` fields are ignored."""

        employee = await EmployeeService.get_employee(db, employee_id)

        changes: dict[str, Any] = data.model_dump(exclude_none=True)
        if not changes:
            return employee

        if "department_id" in changes:
            await DepartmentService.get_department_entity(db, changes["department_id"])

        for field, value in changes.items():
            setattr(employee, field, value)

        try:
            await db.flush()
        except IntegrityError as exc:
            await db.rollback()
            if "email" in str(exc.orig):
                raise ConflictError("email", changes.get("email", ""))
            raise

        await db.refresh(employee, attribute_names=["department"])
        logger.info("Updated employee %s fields=%s", employee.id, sorted(changes))
        return employee

    # ── Delete ──────────────────────────────────────────────────────

    @staticmethod
    async def delete_employee(
        db: AsyncSession,
        employee_id: uuid.UUID,
    ) -> None:
        repo = EmployeeRepository(db)
        employee = await repo.get_by_id(employee_id)
        if employee is None:
            raise EmployeeNotFoundException(employee_id)
        try:
            await repo.delete(employee)
        except IntegrityError:
            await db.rollback()
            raise InvalidOperationException(
                "Employee has attendance or leave records and cannot be deleted",
            )
        logger.info("Deleted employee %s", employee_id)


# ═════════════════════════════════════════════════════════════════════
# DepartmentService
# ═════════════════════════════════════════════════════════════════════


class DepartmentService:
    """Async CRUD operations for departments."""

    @staticmethod
    async def get_department_entity(
        db: AsyncSession,
        department_id: uuid.UUID,
    ) -> Department:
        dept = await DepartmentRepository(db).get_by_id(department_id)
        if dept is None:
            raise NotFoundException("Department", str(department_id))
        return dept

    @staticmethod
    async def list_departments(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        is_active: Optional[bool] = None,
    ) -> tuple[list[DepartmentResponse], Any]:
        """Return one page of departments with employee counts."""

        query = apply_filters(
            select(Department).order_by(Department.name),
            Department,
            {"is_active": is_active},
        )
        page = await paginate(db, query, pagination, model=Department)

        # Batch-fetch employee counts
        count_result = await db.execute(
            select(
                Employee.department_id,
                func.count(Employee.id).label("cnt"),
            )
            .where(Employee.department_id.is_not(None))
            .group_by(Employee.department_id)
        )
        emp_counts = {row[0]: row[1] for row in count_result.all()}

        responses: list[DepartmentResponse] = []
        for dept in page.data:
            resp = DepartmentResponse.model_validate(dept)
            resp.employee_count = emp_counts.get(dept.id, 0)
            responses.append(resp)
        return responses, page.meta

    @staticmethod
    async def get_department(
        db: AsyncSession,
        department_id: uuid.UUID,
    ) -> DepartmentResponse:
        """Load a single department with its employee count."""

        dept = await DepartmentService.get_department_entity(db, department_id)
        resp = DepartmentResponse.model_validate(dept)
        resp.employee_count = await EmployeeRepository(db).count_in_department(dept.id)
        return resp

    @staticmethod
    async def create_department(
        db: AsyncSession,
        data: DepartmentCreate,
    ) -> DepartmentResponse:
        repo = DepartmentRepository(db)
        if await repo.get_by_name(data.name) is not None:
            raise ConflictError("name", data.name)

        dept = Department(**data.model_dump())
        try:
            await repo.add(dept)
        except IntegrityError:
            await db.rollback()
            raise ConflictError("name", data.name)

        logger.info("Created department %r (%s)", dept.name, dept.id)
        return DepartmentResponse.model_validate(dept)

    @staticmethod
    async def update_department(
        db: AsyncSession,
        department_id: uuid.UUID,
        data: DepartmentUpdate,
    ) -> DepartmentResponse:
        """Partial update; ``None`` fields are ignored."""

        repo = DepartmentRepository(db)
        dept = await DepartmentService.get_department_entity(db, department_id)

        changes = data.model_dump(exclude_none=True)
        if "name" in changes and changes["name"] != dept.name:
            if await repo.get_by_name(changes["name"]) is not None:
                raise ConflictError("name", changes["name"])

        for field, value in changes.items():
            setattr(dept, field, value)
        await repo.update(dept)

        resp = DepartmentResponse.model_validate(dept)
        resp.employee_count = await EmployeeRepository(db).count_in_department(dept.id)
        return resp

    @staticmethod
    async def delete_department(
        db: AsyncSession,
        department_id: uuid.UUID,
    ) -> None:
        """Delete a department that no employee references."""

        dept = await DepartmentService.get_department_entity(db, department_id)
        if await EmployeeRepository(db).count_in_department(dept.id):
            logger.warning("Refused to delete department %s: employees assigned", dept.id)
            raise InvalidOperationException(
                "Cannot delete a department that still has employees",
            )
        await DepartmentRepository(db).delete(dept)
        logger.info("Deleted department %s", department_id)
