"""Auth router — register, password login, token refresh, logout, profile."""


from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth import service as auth_service
from hrms.auth.dependencies import get_current_user
from hrms.auth.models import UserAccount
from hrms.auth.schemas import (
    LoginRequest,
    MessageResponse,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
    UserInfo,
)
from hrms.common.rate_limit import AUTH_RATE_LIMIT, limiter
from hrms.database import get_db

router = APIRouter(prefix="", tags=["auth"])


# ── POST /register ──────────────────────────────────────────────────

@router.post(
    "/register",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(AUTH_RATE_LIMIT)
async def register(
    request: Request,
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db),
):
    return await auth_service.register(db, body)


# ── POST /login ─────────────────────────────────────────────────────

@router.post("/login", response_model=TokenResponse)
@limiter.limit(AUTH_RATE_LIMIT)
async def login(
    request: Request,
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    return await auth_service.login(db, body.username, body.password)


# ── POST /refresh — Rotate token pair ───────────────────────────────

@router.post("/refresh", response_model=TokenResponse)
@limiter.limit(AUTH_RATE_LIMIT)
async def refresh_token(
    request: Request,
    body: RefreshRequest,
    db: AsyncSession = Depends(get_db),
):
    return await auth_service.refresh(db, body.access_token, body.refresh_token)


# ── POST /logout — Revoke all refresh tokens ────────────────────────

@router.post("/logout", response_model=MessageResponse)
async def logout(
    user: UserAccount = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await auth_service.logout(db, user)
    return MessageResponse(message="Logged out successfully")


# ── GET /me — Current user profile ─────────────────────────────────

@router.get("/me", response_model=UserInfo)
async def me(user: UserAccount = Depends(get_current_user)):
    return auth_service.build_user_info(user)
