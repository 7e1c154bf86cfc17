"""Auth dependencies — JWT validation, RBAC enforcement."""

from __future__ import annotations

import uuid
from typing import Callable, Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.models import UserAccount
from hrms.auth.service import get_user
from hrms.auth.tokens import decode_access_token
from hrms.common.constants import UserRole
from hrms.common.exceptions import (
    ForbiddenException,
    UnauthorizedException,
    ValidationException,
)
from hrms.database import get_db

# Role hierarchy: each role implicitly includes lower roles
_ROLE_HIERARCHY: dict[UserRole, set[UserRole]] = {
    UserRole.admin: {UserRole.admin, UserRole.hr_admin, UserRole.manager, UserRole.employee},
    UserRole.hr_admin: {UserRole.hr_admin, UserRole.manager, UserRole.employee},
    UserRole.manager: {UserRole.manager, UserRole.employee},
    UserRole.employee: {UserRole.employee},
}


def effective_roles(roles: set[UserRole]) -> set[UserRole]:
    """Expand *roles* through the hierarchy."""
    expanded: set[UserRole] = set()
    for role in roles:
        expanded |= _ROLE_HIERARCHY.get(role, {role})
    return expanded


def _extract_bearer(request: Request) -> str:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise UnauthorizedException("Missing or invalid Authorization header.")
    return auth_header[7:]


# ── Core dependency ─────────────────────────────────────────────────

async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> UserAccount:
    """Validate the access token and return the authenticated UserAccount."""
    payload = decode_access_token(_extract_bearer(request))

    try:
        user_id = uuid.UUID(payload["sub"])
    except (KeyError, ValueError):
        raise UnauthorizedException("Invalid token.")

    user = await get_user(db, user_id)
    if user is None or not user.is_active:
        raise UnauthorizedException("User account is inactive or not found.")

    # Roles come from the token so a role change takes effect on next login
    roles: set[UserRole] = set()
    for value in payload.get("roles", []):
        try:
            roles.add(UserRole(value))
        except ValueError:
            continue
    request.state.user_roles = roles or {UserRole.employee}

    return user


# ── Role-based dependency ───────────────────────────────────────────

def require_role(*allowed_roles: UserRole) -> Callable:
    """Return a FastAPI dependency that enforces role membership.

    Respects hierarchy — e.g. admin can access manager endpoints.
    """

    async def _check(
        request: Request,
        user: UserAccount = Depends(get_current_user),
    ) -> UserAccount:
        user_roles: set[UserRole] = request.state.user_roles
        if not effective_roles(user_roles).intersection(allowed_roles):
            raise ForbiddenException(
                detail=(
                    f"Roles {sorted(r.value for r in user_roles)} are not permitted. "
                    f"Required: {[r.value for r in allowed_roles]}."
                ),
            )
        return user

    return _check


# ── Acting-employee resolution ──────────────────────────────────────

def resolve_acting_employee(
    request: Request,
    user: UserAccount,
    employee_id: Optional[uuid.UUID],
) -> uuid.UUID:
    """Employee an action applies to.

    Defaults to the employee linked to *user*. Naming a different employee
    requires hr_admin or higher.
    """
    if employee_id is not None and employee_id != user.employee_id:
        if UserRole.hr_admin not in effective_roles(request.state.user_roles):
            raise ForbiddenException(
                detail="Only HR administrators may act on behalf of another employee.",
            )
        return employee_id

    if user.employee_id is None:
        raise ValidationException(
            "employee_id",
            "employee_id is required when the account is not linked to an employee.",
        )
    return user.employee_id
