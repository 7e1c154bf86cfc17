"""Auth service — registration, password login, token refresh, logout.

Refresh tokens are opaque random strings persisted in ``refresh_tokens``.
Refreshing requires the caller's (possibly expired) access token together
with one of that user's active refresh tokens; the used refresh token is
revoked and a fresh pair is issued.
"""

from __future__ import annotations

import logging
import re
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.models import RefreshToken, RoleAssignment, UserAccount
from hrms.auth.repository import RefreshTokenRepository, UserAccountRepository
from hrms.auth.schemas import RegisterRequest, TokenResponse, UserInfo
from hrms.auth.tokens import (
    create_access_token,
    generate_refresh_token,
    get_claims_from_expired_token,
    hash_password,
    refresh_token_expiry,
    verify_password,
)
from hrms.common.constants import UserRole
from hrms.common.exceptions import ConflictError, UnauthorizedException

logger = logging.getLogger(__name__)

# Matches "user_accounts.email" (SQLite) and "user_accounts_email_key" (PostgreSQL)
_EMAIL_CONSTRAINT = re.compile(r"user_accounts[._]email")


# ── Projection ──────────────────────────────────────────────────────

def build_user_info(user: UserAccount) -> UserInfo:
    return UserInfo(
        id=user.id,
        username=user.username,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        employee_id=user.employee_id,
        roles=[role.value for role in user.roles],
    )


# ── Refresh-token lifecycle ─────────────────────────────────────────

async def create_refresh_token(db: AsyncSession, user_id: uuid.UUID) -> RefreshToken:
    """Persist a new refresh token for *user_id*."""
    token = RefreshToken(
        token=generate_refresh_token(),
        user_id=user_id,
        expires_at=refresh_token_expiry(),
    )
    return await RefreshTokenRepository(db).add(token)


async def validate_refresh_token(
    db: AsyncSession,
    user_id: uuid.UUID,
    token: str,
) -> RefreshToken:
    """Return the stored token if it belongs to *user_id* and is still active."""
    stored = await RefreshTokenRepository(db).get_by_token(token)
    if stored is None or stored.user_id != user_id:
        raise UnauthorizedException("Invalid refresh token.")
    if stored.is_revoked:
        raise UnauthorizedException("Refresh token has been revoked.")
    if stored.is_expired:
        raise UnauthorizedException("Refresh token has expired.")
    return stored


async def revoke_refresh_token(
    db: AsyncSession,
    token: RefreshToken,
    reason: str,
) -> None:
    token.revoked_at = datetime.now(timezone.utc)
    token.reason_revoked = reason
    await RefreshTokenRepository(db).update(token)


async def revoke_all_refresh_tokens(
    db: AsyncSession,
    user_id: uuid.UUID,
    reason: str,
) -> int:
    """Revoke every active refresh token of *user_id*; returns the count."""
    repo = RefreshTokenRepository(db)
    active = await repo.active_for_user(user_id)
    now = datetime.now(timezone.utc)
    for token in active:
        token.revoked_at = now
        token.reason_revoked = reason
    await db.flush()
    return len(active)


# ── Token pair ──────────────────────────────────────────────────────

async def issue_tokens(db: AsyncSession, user: UserAccount) -> TokenResponse:
    access_token, expires_in = create_access_token(user, user.roles)
    refresh = await create_refresh_token(db, user.id)
    return TokenResponse(
        access_token=access_token,
        refresh_token=refresh.token,
        expires_in=expires_in,
        user=build_user_info(user),
    )


# ── Operations ──────────────────────────────────────────────────────

async def register(db: AsyncSession, data: RegisterRequest) -> TokenResponse:
    """Create an unlinked user account with the ``employee`` role and sign it in.

    Linking an account to an employee record is an administrative step.
    """
    repo = UserAccountRepository(db)
    clash = await repo.username_or_email_taken(data.username, data.email)
    if clash is not None:
        raise ConflictError(clash, getattr(data, clash))

    user = UserAccount(
        username=data.username,
        email=data.email,
        first_name=data.first_name,
        last_name=data.last_name,
        password_hash=hash_password(data.password),
        role_assignments=[RoleAssignment(role=UserRole.employee)],
    )
    try:
        await repo.add(user)
    except IntegrityError as exc:
        # Lost a race with a concurrent registration
        await db.rollback()
        field = "email" if _EMAIL_CONSTRAINT.search(str(exc.orig)) else "username"
        raise ConflictError(field, getattr(data, field))

    logger.info("Registered user %s (%s)", user.username, user.id)
    return await issue_tokens(db, user)


async def login(db: AsyncSession, username: str, password: str) -> TokenResponse:
    user = await UserAccountRepository(db).get_by_username(username)
    if user is None or not verify_password(password, user.password_hash):
        logger.warning("Failed login for username %r", username)
        raise UnauthorizedException("Invalid username or password.")
    if not user.is_active:
        logger.warning("Login attempt for inactive user %s", user.id)
        raise UnauthorizedException("User account is inactive.")

    user.last_login_at = datetime.now(timezone.utc)
    await db.flush()
    logger.info("User %s logged in", user.id)
    return await issue_tokens(db, user)


async def refresh(
    db: AsyncSession,
    access_token: str,
    refresh_token: str,
) -> TokenResponse:
    """Exchange an expired access token + active refresh token for a new pair."""
    claims = get_claims_from_expired_token(access_token)
    try:
        user_id = uuid.UUID(claims["sub"])
    except ValueError:
        raise UnauthorizedException("Invalid token.")

    stored = await validate_refresh_token(db, user_id, refresh_token)

    user = await UserAccountRepository(db).get_by_id(user_id)
    if user is None or not user.is_active:
        raise UnauthorizedException("User account is inactive or not found.")

    await revoke_refresh_token(db, stored, "Replaced by new token")
    return await issue_tokens(db, user)


async def logout(db: AsyncSession, user: UserAccount) -> int:
    revoked = await revoke_all_refresh_tokens(db, user.id, "Logged out")
    logger.info("User %s logged out, %d refresh token(s) revoked", user.id, revoked)
    return revoked


async def get_user(db: AsyncSession, user_id: uuid.UUID) -> Optional[UserAccount]:
    return await UserAccountRepository(db).get_by_id(user_id)
