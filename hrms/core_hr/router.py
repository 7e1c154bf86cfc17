"""Core HR router — Employee and Department API endpoints.

Reads require an authenticated user; writes require hr_admin.

Routes:
    /employees          — List, create employees
    /employees/{id}     — Get, update, delete employee
    /departments        — List, create departments
    /departments/{id}   — Get, update, delete department
"""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import get_current_user, require_role
from hrms.auth.models import UserAccount
from hrms.common.constants import UserRole
from hrms.common.pagination import PaginationParams
from hrms.core_hr.schemas import (
    DepartmentCreate,
    DepartmentResponse,
    DepartmentUpdate,
    EmployeeCreate,
    EmployeeResponse,
    EmployeeUpdate,
)
from hrms.core_hr.service import DepartmentService, EmployeeService
from hrms.database import get_db


# ═════════════════════════════════════════════════════════════════════
# Routers
# ═════════════════════════════════════════════════════════════════════

employees_router = APIRouter(prefix="", tags=["employees"])
departments_router = APIRouter(prefix="", tags=["departments"])


# ═════════════════════════════════════════════════════════════════════
# Employee Endpoints
# ═════════════════════════════════════════════════════════════════════


# ── GET /employees — List employees ─────────────────────────────────

@employees_router.get("")
async def list_employees(
    db: AsyncSession = Depends(get_db),
    current_user: UserAccount = Depends(get_current_user),
    pagination: PaginationParams = Depends(),
    search: Optional[str] = Query(None, description="Search by name, email, or employee code"),
    department_id: Optional[uuid.UUID] = Query(None, description="Filter by department"),
    is_active: Optional[bool] = Query(None, description="Filter by active flag"),
):
    """List employees with pagination, search, and filtering."""
    result = await EmployeeService.list_employees(
        db,
        pagination,
        search=search,
        department_id=department_id,
        is_active=is_active,
    )
    return {
        "data": [
            EmployeeService.build_response(emp).model_dump(mode="json")
            for emp in result.data
        ],
        "meta": result.meta.model_dump(),
    }


# ── POST /employees — Create employee ───────────────────────────────

@employees_router.post(
    "",
    response_model=EmployeeResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_employee(
    body: EmployeeCreate,
    db: AsyncSession = Depends(get_db),
    current_user: UserAccount = Depends(require_role(UserRole.hr_admin)),
):
    employee = await EmployeeService.create_employee(db, body)
    return EmployeeService.build_response(employee)


# ── GET /employees/{employee_id} ────────────────────────────────────

@employees_router.get("/{employee_id}", response_model=EmployeeResponse)
async def get_employee(
    employee_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: UserAccount = Depends(get_current_user),
):
    employee = await EmployeeService.get_employee(db, employee_id)
    return EmployeeService.build_response(employee)


# ── PATCH /employees/{employee_id} ──────────────────────────────────

@employees_router.patch("/{employee_id}", response_model=EmployeeResponse)
async def update_employee(
    employee_id: uuid.UUID,
    body: EmployeeUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: UserAccount = Depends(require_role(UserRole.hr_admin)),
):
    employee = await EmployeeService.update_employee(db, employee_id, body)
    return EmployeeService.build_response(employee)


# ── DELETE /employees/{employee_id} ─────────────────────────────────

@employees_router.delete("/{employee_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_employee(
    employee_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: UserAccount = Depends(require_role(UserRole.hr_admin)),
):
    await EmployeeService.delete_employee(db, employee_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ═════════════════════════════════════════════════════════════════════
# Department Endpoints
# ═════════════════════════════════════════════════════════════════════


# ── GET /departments ────────────────────────────────────────────────

@departments_router.get("")
async def list_departments(
    db: AsyncSession = Depends(get_db),
    current_user: UserAccount = Depends(get_current_user),
    pagination: PaginationParams = Depends(),
    is_active: Optional[bool] = Query(None, description="Filter by active status"),
):
    """List departments with employee counts."""
    items, meta = await DepartmentService.list_departments(
        db, pagination, is_active=is_active,
    )
    return {
        "data": [d.model_dump(mode="json") for d in items],
        "meta": meta.model_dump(),
    }


# ── POST /departments ───────────────────────────────────────────────

@departments_router.post(
    "",
    response_model=DepartmentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_department(
    body: DepartmentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: UserAccount = Depends(require_role(UserRole.hr_admin)),
):
    return await DepartmentService.create_department(db, body)


# ── GET /departments/{department_id} ────────────────────────────────

@departments_router.get("/{department_id}", response_model=DepartmentResponse)
async def get_department(
    department_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: UserAccount = Depends(get_current_user),
):
    return await DepartmentService.get_department(db, department_id)


# ── PATCH /departments/{department_id} ──────────────────────────────

@departments_router.patch("/{department_id}", response_model=DepartmentResponse)
async def update_department(
    department_id: uuid.UUID,
    body: DepartmentUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: UserAccount = Depends(require_role(UserRole.hr_admin)),
):
    return await DepartmentService.update_department(db, department_id, body)


# ── DELETE /departments/{department_id} ─────────────────────────────

@departments_router.delete("/{department_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_department(
    department_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: UserAccount = Depends(require_role(UserRole.hr_admin)),
):
    await DepartmentService.delete_department(db, department_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
