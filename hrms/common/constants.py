"""Enums and constants for the HRMS backend — matching PostgreSQL ENUM types."""

from __future__ import annotations

import enum


# ── Auth / Roles ────────────────────────────────────────────────────

class UserRole(str, enum.Enum):
    employee = "employee"
    manager = "manager"
    hr_admin = "hr_admin"
    admin = "admin"


# ── Leave ───────────────────────────────────────────────────────────

class LeaveType(str, enum.Enum):
    annual = "annual"
    sick = "sick"
    unpaid = "unpaid"
    maternity = "maternity"
    paternity = "paternity"
    other = "other"


class LeaveStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    cancelled = "cancelled"


# ── Business rules ──────────────────────────────────────────────────

# Fixed daily threshold: anything beyond it is overtime.
STANDARD_WORKDAY_HOURS = 8

# Annual leave allotment per employee per calendar year.
ANNUAL_LEAVE_ALLOWANCE = 25

# ── Misc constants ──────────────────────────────────────────────────

DATE_FORMAT = "%Y-%m-%d"
MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 50
