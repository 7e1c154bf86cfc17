"""Token and password primitives — JWT claim assembly, signing, hashing.

Signing and verification are delegated to python-jose; password hashing to
passlib's bcrypt scheme.
"""

from __future__ import annotations

import base64
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from hrms.common.constants import UserRole
from hrms.common.exceptions import UnauthorizedException
from hrms.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

REFRESH_TOKEN_BYTES = 64


# ── Passwords ───────────────────────────────────────────────────────

def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    return pwd_context.verify(plain_password, password_hash)


# ── Access tokens ───────────────────────────────────────────────────

def build_access_claims(
    user: Any,
    roles: Iterable[UserRole],
    *,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    """Return the claim set for *user*; nothing is signed here.

    *user* needs ``id``, ``username``, ``email``, ``first_name`` and
    ``last_name`` attributes.
    """
    issued_at = now or datetime.now(timezone.utc)
    expires_at = issued_at + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRY_MINUTES)
    return {
        "sub": str(user.id),
        "name": user.username,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "roles": [UserRole(r).value for r in roles],
        "jti": uuid.uuid4().hex,
        "iat": int(issued_at.timestamp()),
        "exp": int(expires_at.timestamp()),
        "iss": settings.JWT_ISSUER,
        "aud": settings.JWT_AUDIENCE,
        "type": "access",
    }


def create_access_token(user: Any, roles: Iterable[UserRole]) -> tuple[str, int]:
    """Return (encoded_jwt, expires_in_seconds)."""
    claims = build_access_claims(user, roles)
    token = jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    return token, settings.ACCESS_TOKEN_EXPIRY_MINUTES * 60


def _decode(token: str, *, verify_exp: bool) -> dict[str, Any]:
    return jwt.decode(
        token,
        settings.JWT_SECRET,
        algorithms=[settings.JWT_ALGORITHM],
        audience=settings.JWT_AUDIENCE,
        issuer=settings.JWT_ISSUER,
        options={"verify_exp": verify_exp},
    )


def decode_access_token(token: str) -> dict[str, Any]:
    """Fully validate an access token, expiry included."""
    try:
        payload = _decode(token, verify_exp=True)
    except ExpiredSignatureError:
        raise UnauthorizedException("Token has expired.")
    except JWTError:
        raise UnauthorizedException("Invalid token.")

    if payload.get("type") != "access":
        raise UnauthorizedException("Invalid token type.")
    return payload


def get_claims_from_expired_token(token: str) -> dict[str, Any]:
    """Validate signature, issuer, audience and algorithm but not lifetime.

    Used by the refresh flow, where the presented access token has usually
    already expired.
    """
    try:
        payload = _decode(token, verify_exp=False)
    except JWTError:
        raise UnauthorizedException("Invalid token.")

    if payload.get("type") != "access" or "sub" not in payload:
        raise UnauthorizedException("Invalid token.")
    return payload


# ── Refresh tokens ──────────────────────────────────────────────────

def generate_refresh_token() -> str:
    """Opaque refresh token: 64 random bytes, base64-encoded."""
    return base64.b64encode(secrets.token_bytes(REFRESH_TOKEN_BYTES)).decode("ascii")


def refresh_token_expiry(now: Optional[datetime] = None) -> datetime:
    return (now or datetime.now(timezone.utc)) + timedelta(
        days=settings.REFRESH_TOKEN_EXPIRY_DAYS,
    )
