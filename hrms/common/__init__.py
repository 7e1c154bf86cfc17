"""Common module — shared utilities for the HRMS backend."""

from hrms.common.audit import AuditTrail, create_audit_entry
from hrms.common.constants import (
    ANNUAL_LEAVE_ALLOWANCE,
    DATE_FORMAT,
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    STANDARD_WORKDAY_HOURS,
    LeaveStatus,
    LeaveType,
    UserRole,
)
from hrms.common.exceptions import (
    AlreadyClockedInException,
    AppException,
    ConflictError,
    ConflictingLeaveRequestException,
    EmployeeNotFoundException,
    ForbiddenException,
    InvalidOperationException,
    LeaveRequestNotFoundException,
    NotClockedInException,
    NotFoundException,
    UnauthorizedException,
    ValidationException,
    register_exception_handlers,
)
from hrms.common.filters import apply_filters, apply_search, apply_sorting
from hrms.common.pagination import (
    PaginatedResponse,
    PaginationMeta,
    PaginationParams,
    paginate,
)
from hrms.common.repository import Repository

__all__ = [
    # Audit
    "AuditTrail",
    "create_audit_entry",
    # Constants / Enums
    "LeaveStatus",
    "LeaveType",
    "UserRole",
    "ANNUAL_LEAVE_ALLOWANCE",
    "STANDARD_WORKDAY_HOURS",
    "DATE_FORMAT",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    # Exceptions
    "AlreadyClockedInException",
    "AppException",
    "ConflictError",
    "ConflictingLeaveRequestException",
    "EmployeeNotFoundException",
    "ForbiddenException",
    "InvalidOperationException",
    "LeaveRequestNotFoundException",
    "NotClockedInException",
    "NotFoundException",
    "UnauthorizedException",
    "ValidationException",
    "register_exception_handlers",
    # Filters
    "apply_filters",
    "apply_search",
    "apply_sorting",
    # Pagination
    "PaginatedResponse",
    "PaginationMeta",
    "PaginationParams",
    "paginate",
    # Persistence
    "Repository",
]
