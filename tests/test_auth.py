"""Auth module tests — token claims, password login, refresh rotation,
logout revocation and role enforcement.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest
from jose import jwt
from sqlalchemy import select

from hrms.auth import service as auth_service
from hrms.auth.dependencies import effective_roles
from hrms.auth.models import RefreshToken
from hrms.auth.repository import UserAccountRepository
from hrms.auth.schemas import RegisterRequest
from hrms.auth.tokens import (
    build_access_claims,
    create_access_token,
    decode_access_token,
    generate_refresh_token,
    get_claims_from_expired_token,
)
from hrms.common.constants import UserRole
from hrms.common.exceptions import ConflictError, UnauthorizedException
from hrms.config import settings
from tests.conftest import TEST_PASSWORD, bearer

_USER = SimpleNamespace(
    id=uuid.uuid4(),
    username="jdoe",
    email="jdoe@example.com",
    first_name="Jane",
    last_name="Doe",
)


def _sign(claims: dict, secret: str | None = None) -> str:
    return jwt.encode(
        claims, secret or settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM,
    )


# ═════════════════════════════════════════════════════════════════════
# 1. TOKENS
# ═════════════════════════════════════════════════════════════════════


def test_access_claims_carry_identity_and_roles():
    now = datetime(2024, 3, 4, 9, 0, tzinfo=timezone.utc)
    claims = build_access_claims(_USER, [UserRole.manager, UserRole.employee], now=now)

    assert claims["sub"] == str(_USER.id)
    assert claims["name"] == "jdoe"
    assert claims["email"] == "jdoe@example.com"
    assert claims["first_name"] == "Jane"
    assert claims["last_name"] == "Doe"
    assert claims["roles"] == ["manager", "employee"]
    assert claims["iss"] == settings.JWT_ISSUER
    assert claims["aud"] == settings.JWT_AUDIENCE
    assert claims["exp"] - claims["iat"] == settings.ACCESS_TOKEN_EXPIRY_MINUTES * 60


def test_each_token_gets_a_unique_jti():
    a = build_access_claims(_USER, [UserRole.employee])
    b = build_access_claims(_USER, [UserRole.employee])
    assert a["jti"] != b["jti"]


def test_create_and_decode_round_trip():
    token, expires_in = create_access_token(_USER, [UserRole.hr_admin])
    payload = decode_access_token(token)

    assert payload["sub"] == str(_USER.id)
    assert payload["roles"] == ["hr_admin"]
    assert expires_in == settings.ACCESS_TOKEN_EXPIRY_MINUTES * 60


def test_expired_token_is_rejected_but_claims_are_readable():
    issued = datetime.now(timezone.utc) - timedelta(days=1)
    token = _sign(build_access_claims(_USER, [UserRole.employee], now=issued))

    with pytest.raises(UnauthorizedException) as exc_info:
        decode_access_token(token)
    assert exc_info.value.detail == "Token has expired."

    claims = get_claims_from_expired_token(token)
    assert claims["sub"] == str(_USER.id)


def test_wrong_signature_is_rejected_even_without_expiry_check():
    token = _sign(build_access_claims(_USER, [UserRole.employee]), secret="not-the-secret")

    with pytest.raises(UnauthorizedException):
        decode_access_token(token)
    with pytest.raises(UnauthorizedException):
        get_claims_from_expired_token(token)


def test_wrong_audience_is_rejected():
    claims = build_access_claims(_USER, [UserRole.employee])
    claims["aud"] = "someone-else"

    with pytest.raises(UnauthorizedException):
        decode_access_token(_sign(claims))


def test_refresh_tokens_are_random_and_opaque():
    first, second = generate_refresh_token(), generate_refresh_token()
    assert first != second
    assert len(first) == 88  # base64 of 64 bytes


def test_role_hierarchy_expansion():
    assert effective_roles({UserRole.hr_admin}) == {
        UserRole.hr_admin, UserRole.manager, UserRole.employee,
    }
    assert effective_roles({UserRole.employee}) == {UserRole.employee}


# ═════════════════════════════════════════════════════════════════════
# 2. SERVICE — register / login / refresh / logout
# ═════════════════════════════════════════════════════════════════════


async def test_login_issues_token_pair(db, make_user):
    user = await make_user(UserRole.manager, username="mgr")

    tokens = await auth_service.login(db, "mgr", TEST_PASSWORD)

    assert decode_access_token(tokens.access_token)["roles"] == ["manager"]
    assert tokens.user.id == user.id
    assert user.last_login_at is not None
    stored = (await db.execute(
        select(RefreshToken).where(RefreshToken.token == tokens.refresh_token)
    )).scalar_one()
    assert stored.user_id == user.id
    assert stored.is_active


async def test_login_wrong_password(db, make_user):
    await make_user(username="alice")

    with pytest.raises(UnauthorizedException) as exc_info:
        await auth_service.login(db, "alice", "wrong-password")
    assert exc_info.value.detail == "Invalid username or password."


async def test_login_unknown_user_gets_same_message(db):
    with pytest.raises(UnauthorizedException) as exc_info:
        await auth_service.login(db, "ghost", TEST_PASSWORD)
    assert exc_info.value.detail == "Invalid username or password."


async def test_login_inactive_user(db, make_user):
    await make_user(username="gone", is_active=False)

    with pytest.raises(UnauthorizedException) as exc_info:
        await auth_service.login(db, "gone", TEST_PASSWORD)
    assert exc_info.value.detail == "User account is inactive."


async def test_refresh_rotates_and_revokes_old_token(db, make_user):
    await make_user(username="rot")
    first = await auth_service.login(db, "rot", TEST_PASSWORD)

    second = await auth_service.refresh(db, first.access_token, first.refresh_token)

    assert second.refresh_token != first.refresh_token
    old = (await db.execute(
        select(RefreshToken).where(RefreshToken.token == first.refresh_token)
    )).scalar_one()
    assert old.is_revoked
    assert old.reason_revoked == "Replaced by new token"

    with pytest.raises(UnauthorizedException) as exc_info:
        await auth_service.refresh(db, first.access_token, first.refresh_token)
    assert exc_info.value.detail == "Refresh token has been revoked."


async def test_refresh_rejects_token_of_another_user(db, make_user):
    await make_user(username="one")
    await make_user(username="two")
    one = await auth_service.login(db, "one", TEST_PASSWORD)
    two = await auth_service.login(db, "two", TEST_PASSWORD)

    with pytest.raises(UnauthorizedException):
        await auth_service.refresh(db, one.access_token, two.refresh_token)


async def test_refresh_rejects_expired_refresh_token(db, make_user):
    user = await make_user(username="old")
    tokens = await auth_service.login(db, "old", TEST_PASSWORD)
    stored = (await db.execute(
        select(RefreshToken).where(RefreshToken.token == tokens.refresh_token)
    )).scalar_one()
    stored.expires_at = datetime.now(timezone.utc) - timedelta(minutes=1)
    await db.flush()

    with pytest.raises(UnauthorizedException) as exc_info:
        await auth_service.refresh(db, tokens.access_token, tokens.refresh_token)
    assert exc_info.value.detail == "Refresh token has expired."
    assert user.id == stored.user_id


async def test_refresh_accepts_expired_access_token(db, make_user):
    user = await make_user(username="late")
    tokens = await auth_service.login(db, "late", TEST_PASSWORD)
    stale = _sign(build_access_claims(
        user, user.roles, now=datetime.now(timezone.utc) - timedelta(days=1),
    ))

    renewed = await auth_service.refresh(db, stale, tokens.refresh_token)
    assert decode_access_token(renewed.access_token)["sub"] == str(user.id)


async def test_logout_revokes_all_active_tokens(db, make_user):
    user = await make_user(username="multi")
    a = await auth_service.login(db, "multi", TEST_PASSWORD)
    await auth_service.login(db, "multi", TEST_PASSWORD)

    assert await auth_service.logout(db, user) == 2

    with pytest.raises(UnauthorizedException):
        await auth_service.refresh(db, a.access_token, a.refresh_token)
    rows = (await db.execute(
        select(RefreshToken).where(RefreshToken.user_id == user.id)
    )).scalars().all()
    assert all(t.reason_revoked == "Logged out" for t in rows)


def _registration(username: str, email: str) -> RegisterRequest:
    return RegisterRequest(
        username=username,
        email=email,
        password="s3cure-passw0rd",
        first_name="New",
        last_name="Hire",
    )


@pytest.mark.parametrize(
    "username, email, field",
    [
        ("fresh", "taken@example.com", "email"),
        ("taken", "fresh@example.com", "username"),
    ],
)
async def test_register_race_reports_the_clashing_field(db, make_user, username, email, field):
    await make_user(username="taken")

    # Both requests pass the up-front check; the unique constraint decides.
    with patch.object(
        UserAccountRepository, "username_or_email_taken", AsyncMock(return_value=None),
    ):
        with pytest.raises(ConflictError) as exc_info:
            await auth_service.register(db, _registration(username, email))

    assert list(exc_info.value.errors) == [field]


# ═════════════════════════════════════════════════════════════════════
# 3. HTTP API
# ═════════════════════════════════════════════════════════════════════


_REGISTRATION = {
    "username": "newhire",
    "email": "newhire@example.com",
    "password": "s3cure-passw0rd",
    "first_name": "New",
    "last_name": "Hire",
}


async def test_api_register_then_me(client):
    resp = await client.post("/api/v1/auth/register", json=_REGISTRATION)

    assert resp.status_code == 201
    body = resp.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["roles"] == ["employee"]

    me = await client.get(
        "/api/v1/auth/me",
        headers={"Authorization": f"Bearer {body['access_token']}"},
    )
    assert me.status_code == 200
    assert me.json()["username"] == "newhire"


async def test_api_register_never_links_an_employee(client, test_employee):
    resp = await client.post(
        "/api/v1/auth/register",
        json={**_REGISTRATION, "employee_id": str(test_employee["id"])},
    )

    assert resp.status_code == 201
    assert resp.json()["user"]["employee_id"] is None

    me = await client.get(
        "/api/v1/auth/me",
        headers={"Authorization": f"Bearer {resp.json()['access_token']}"},
    )
    assert me.json()["employee_id"] is None


async def test_api_register_duplicate_is_409(client):
    await client.post("/api/v1/auth/register", json=_REGISTRATION)
    resp = await client.post(
        "/api/v1/auth/register", json={**_REGISTRATION, "email": "other@example.com"},
    )

    assert resp.status_code == 409
    assert "username" in resp.json()["errors"]


async def test_api_register_short_password_is_422(client):
    resp = await client.post(
        "/api/v1/auth/register", json={**_REGISTRATION, "password": "short"},
    )

    assert resp.status_code == 422
    assert "password" in resp.json()["errors"]


async def test_api_login_refresh_logout(client):
    await client.post("/api/v1/auth/register", json=_REGISTRATION)
    login = await client.post(
        "/api/v1/auth/login",
        json={"username": "newhire", "password": _REGISTRATION["password"]},
    )
    assert login.status_code == 200
    tokens = login.json()

    refreshed = await client.post(
        "/api/v1/auth/refresh",
        json={"access_token": tokens["access_token"], "refresh_token": tokens["refresh_token"]},
    )
    assert refreshed.status_code == 200
    new_tokens = refreshed.json()

    logout = await client.post(
        "/api/v1/auth/logout",
        headers={"Authorization": f"Bearer {new_tokens['access_token']}"},
    )
    assert logout.status_code == 200

    again = await client.post(
        "/api/v1/auth/refresh",
        json={
            "access_token": new_tokens["access_token"],
            "refresh_token": new_tokens["refresh_token"],
        },
    )
    assert again.status_code == 401


async def test_api_bad_login_is_401_problem(client):
    resp = await client.post(
        "/api/v1/auth/login", json={"username": "nobody", "password": "whatever"},
    )

    assert resp.status_code == 401
    assert resp.headers["content-type"].startswith("application/problem+json")
    assert resp.json()["detail"] == "Invalid username or password."


async def test_api_missing_token_is_401(client):
    resp = await client.get("/api/v1/employees")
    assert resp.status_code == 401


async def test_api_garbage_token_is_401(client):
    resp = await client.get(
        "/api/v1/employees", headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert resp.status_code == 401


async def test_api_inactive_user_token_is_401(client, make_user):
    user = await make_user(is_active=False)
    resp = await client.get("/api/v1/auth/me", headers=bearer(user))
    assert resp.status_code == 401


async def test_api_roles_come_from_token(client, make_user):
    """An employee account presenting an hr_admin token is treated as hr_admin."""
    user = await make_user(UserRole.employee)

    as_employee = await client.post(
        "/api/v1/departments", json={"name": "Ops", "code": "OPS"}, headers=bearer(user),
    )
    assert as_employee.status_code == 403

    as_hr = await client.post(
        "/api/v1/departments",
        json={"name": "Ops", "code": "OPS"},
        headers=bearer(user, [UserRole.hr_admin]),
    )
    assert as_hr.status_code == 201


async def test_api_admin_inherits_lower_roles(client, make_user):
    admin = await make_user(UserRole.admin)
    resp = await client.get("/api/v1/leave-requests/pending", headers=bearer(admin))
    assert resp.status_code == 200
