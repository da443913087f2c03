"""Shared test fixtures — async DB, client, auth helpers, factories.

Uses SQLite + aiosqlite for fast isolated tests without PostgreSQL.
Every test gets its own in-memory database.
"""

from __future__ import annotations

import os

# Settings are read at import time; pin test values before anything loads them.
os.environ.setdefault("JWT_SECRET", "test-secret-for-ci-do-not-use-in-production")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import uuid
from datetime import date, datetime, timedelta, timezone
from typing import AsyncGenerator, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from leave_management.auth.security import hash_password
from leave_management.common.constants import AccountStatus, UserRole
from leave_management.common.dates import to_utc_midnight
from leave_management.config import settings
from leave_management.database import Base, get_db
from leave_management.employees.models import ACCOUNT_CLASSES, Account
from leave_management.leave.service import LeaveService, get_leave_service
from leave_management.main import create_app

# Import ALL model modules so every table is registered on Base.metadata
import leave_management.common.audit  # noqa: F401
import leave_management.employees.models  # noqa: F401
import leave_management.leave.models  # noqa: F401

TEST_DATABASE_URL = "sqlite+aiosqlite://"
TEST_PASSWORD = "secret123"

# 2024-05-01 09:00 UTC: before the June leave used throughout the suites.
DEFAULT_NOW = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Callable clock that tests can move explicitly."""

    def __init__(self, now: datetime = DEFAULT_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now


# ── Test database (SQLite in-memory) ────────────────────────────────

@pytest.fixture
async def engine():
    """Fresh in-memory database with all tables, disposed after the test."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """Reset rate limiter storage between tests to prevent cross-test interference."""
    from leave_management.common.rate_limit import limiter

    limiter.reset()
    yield


# ── Leave engine ────────────────────────────────────────────────────

@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def leave_service(clock) -> LeaveService:
    return LeaveService(settings.ANNUAL_LEAVE_LIMIT, clock)


# ── FastAPI test client ─────────────────────────────────────────────

@pytest.fixture
async def app(session_factory, leave_service):
    """Create a fresh app instance with DB and clock dependencies overridden."""

    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    application = create_app()
    application.dependency_overrides[get_db] = _override_get_db
    application.dependency_overrides[get_leave_service] = lambda: leave_service
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
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session
        await session.commit()


# ── Model factories ─────────────────────────────────────────────────

def _make_account(
    *,
    role: UserRole = UserRole.employee,
    name: str = "Test Employee",
    email: Optional[str] = None,
    joining_date: date = date(2024, 1, 1),
    leave_balance: Optional[int] = None,
    status: AccountStatus = AccountStatus.active,
) -> dict:
    data = dict(
        id=uuid.uuid4(),
        name=name,
        email=email or f"user.{uuid.uuid4().hex[:8]}@example.com",
        password_hash=hash_password(TEST_PASSWORD),
        status=status.value,
    )
    if role == UserRole.employee:
        data.update(
            joining_date=to_utc_midnight(joining_date),
            leave_balance=(
                settings.ANNUAL_LEAVE_LIMIT if leave_balance is None else leave_balance
            ),
        )
    return data


async def _seed_account(
    db: AsyncSession,
    *,
    role: UserRole = UserRole.employee,
    **kwargs,
) -> Account:
    """Insert an account and commit so app sessions can see it."""
    account = ACCOUNT_CLASSES[role](**_make_account(role=role, **kwargs))
    db.add(account)
    await db.commit()
    return account


@pytest.fixture
def seed_account(db):
    """Factory fixture: ``await seed_account(role=..., leave_balance=...)``."""

    async def _seed(**kwargs) -> Account:
        return await _seed_account(db, **kwargs)

    return _seed


@pytest.fixture
async def admin(db) -> Account:
    return await _seed_account(
        db, role=UserRole.admin, name="Admin User", email="admin@example.com",
    )


@pytest.fixture
async def employee(db) -> Account:
    """Employee joined 2024-01-01 holding the full annual balance."""
    return await _seed_account(db, name="Jane Doe", email="jane@example.com")


@pytest.fixture
async def other_employee(db) -> Account:
    return await _seed_account(db, name="John Roe", email="john@example.com")


# ── Auth helpers ────────────────────────────────────────────────────

def create_access_token(
    account_id: uuid.UUID,
    role: UserRole = UserRole.employee,
    expired: bool = False,
    token_type: str = "access",
) -> str:
    """Generate a JWT access token for testing."""
    if expired:
        exp = datetime.now(timezone.utc) - timedelta(hours=1)
    else:
        exp = datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRY_HOURS)
    payload = {
        "sub": str(account_id),
        "role": role.value,
        "type": token_type,
        "exp": exp,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def auth_header(account: Account) -> dict[str, str]:
    token = create_access_token(account.id, UserRole(account.role))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(admin) -> dict[str, str]:
    return auth_header(admin)


@pytest.fixture
def employee_headers(employee) -> dict[str, str]:
    return auth_header(employee)


@pytest.fixture
def headers_for():
    """Factory fixture: Bearer headers for any seeded account."""
    return auth_header


@pytest.fixture
def make_token():
    """Factory fixture exposing ``create_access_token`` (expired / wrong type)."""
    return create_access_token
