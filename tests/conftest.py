"""Shared test fixtures — async DB, client, auth helpers, factories.

Reusable across all test modules (auth, core_hr, attendance, leave).
Uses SQLite + aiosqlite for fast isolated tests without PostgreSQL.
"""

from __future__ import annotations

import os

# Set test JWT_SECRET before any other import touches pydantic-settings
os.environ.setdefault("JWT_SECRET", "test-secret-for-ci-do-not-use-in-production")

import uuid
from datetime import date, datetime, timezone
from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from hrms.auth.tokens import create_access_token, hash_password
from hrms.common.constants import UserRole
from hrms.database import Base, get_db
from hrms.main import create_app

# Import ALL model modules so SQLAlchemy can resolve cross-module relationships
# (e.g. Employee → AttendanceRecord, LeaveRequest)
import hrms.attendance.models  # noqa: F401
import hrms.auth.models  # noqa: F401
import hrms.common.audit  # noqa: F401
import hrms.core_hr.models  # noqa: F401
import hrms.leave.models  # noqa: F401

# ── SQLite compat: compile PG-specific types ────────────────────────

from sqlalchemy.dialects.postgresql import JSONB, UUID as PG_UUID
from sqlalchemy.ext.compiler import compiles


@compiles(JSONB, "sqlite")
def _jsonb_sqlite(element, compiler, **kw):
    return "TEXT"


@compiles(PG_UUID, "sqlite")
def _uuid_sqlite(element, compiler, **kw):
    return "CHAR(36)"


# ── Test database (SQLite in-memory) ────────────────────────────────

TEST_DATABASE_URL = "sqlite+aiosqlite://"

engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestSessionFactory = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False,
)


@pytest.fixture(autouse=True)
async def _setup_db():
    """Create all tables before each test, drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """Reset rate limiter storage between tests to prevent cross-test interference."""
    from hrms.common.rate_limit import limiter

    limiter.reset()
    yield


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── FastAPI test client ─────────────────────────────────────────────

@pytest.fixture
async def app():
    """Create a fresh app instance with DB dependency overridden."""
    application = create_app()
    application.dependency_overrides[get_db] = _override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the test app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ── Database session (for direct DB operations in tests) ────────────

@pytest.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        yield session
        await session.commit()


# ── Model factories ─────────────────────────────────────────────────

def _make_department(
    *,
    name: str = "Engineering",
    code: str = "ENG",
) -> dict:
    return dict(
        id=uuid.uuid4(),
        name=name,
        code=code,
        is_active=True,
        created_at=datetime.now(timezone.utc),
        updated_at=datetime.now(timezone.utc),
    )


def _make_employee(
    *,
    email: str = "test.user@example.com",
    first_name: str = "Test",
    last_name: str = "User",
    department_id: uuid.UUID | None = None,
) -> dict:
    return dict(
        id=uuid.uuid4(),
        employee_code=f"EMP-{uuid.uuid4().hex[:6].upper()}",
        first_name=first_name,
        last_name=last_name,
        email=email,
        hire_date=date(2024, 1, 15),
        department_id=department_id,
        is_active=True,
        created_at=datetime.now(timezone.utc),
        updated_at=datetime.now(timezone.utc),
    )


@pytest.fixture
async def test_department(db) -> dict:
    """Insert a test department and return its data dict."""
    from hrms.core_hr.models import Department

    data = _make_department()
    db.add(Department(**data))
    await db.commit()
    return data


@pytest.fixture
async def test_employee(db, test_department) -> dict:
    """Insert an active employee in test_department."""
    from hrms.core_hr.models import Employee

    data = _make_employee(department_id=test_department["id"])
    db.add(Employee(**data))
    await db.commit()
    return data


# ── Auth helpers ────────────────────────────────────────────────────

TEST_PASSWORD = "correct-horse-battery"


@pytest.fixture
def make_user(db):
    """Factory inserting a UserAccount with the given role."""
    from hrms.auth.models import RoleAssignment, UserAccount

    async def _make(
        role: UserRole = UserRole.employee,
        *,
        username: str | None = None,
        employee_id: uuid.UUID | None = None,
        is_active: bool = True,
    ) -> UserAccount:
        username = username or f"user_{uuid.uuid4().hex[:8]}"
        user = UserAccount(
            username=username,
            email=f"{username}@example.com",
            first_name="Test",
            last_name=role.value.title(),
            password_hash=hash_password(TEST_PASSWORD),
            employee_id=employee_id,
            is_active=is_active,
            role_assignments=[RoleAssignment(role=role)],
        )
        db.add(user)
        await db.commit()
        return user

    return _make


def bearer(user, roles: list[UserRole] | None = None) -> dict[str, str]:
    """Authorization header with a freshly signed access token for *user*."""
    token, _ = create_access_token(user, roles if roles is not None else user.roles)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def employee_user(make_user, test_employee):
    """Plain employee account linked to test_employee."""
    return await make_user(UserRole.employee, employee_id=test_employee["id"])


@pytest.fixture
async def hr_user(make_user):
    return await make_user(UserRole.hr_admin)


@pytest.fixture
async def manager_user(make_user):
    return await make_user(UserRole.manager)


@pytest.fixture
async def auth_headers(employee_user) -> dict[str, str]:
    return bearer(employee_user)


@pytest.fixture
async def hr_headers(hr_user) -> dict[str, str]:
    return bearer(hr_user)


@pytest.fixture
async def manager_headers(manager_user) -> dict[str, str]:
    return bearer(manager_user)
