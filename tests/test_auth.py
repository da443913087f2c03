"""Auth module test suite — registration, login, JWT validation, RBAC."""

from __future__ import annotations

import uuid

import pytest
from sqlalchemy import select

from leave_management.auth.policy import ensure_admin, ensure_authenticated, ensure_self_or_admin
from leave_management.auth.security import decode_access_token, hash_password, verify_password
from leave_management.common.audit import AuditTrail
from leave_management.common.constants import AccountStatus, UserRole
from leave_management.common.exceptions import ForbiddenException, UnauthenticatedException
from leave_management.config import settings
from leave_management.employees.models import Account, EmployeeAccount


REGISTER_EMPLOYEE = {
    "name": "  New Hire ",
    "email": "New.Hire@Example.com",
    "password": "secret123",
    "role": "Employee",
    "joiningDate": "2024-03-01",
}


# ── Registration ────────────────────────────────────────────────────


async def test_register_employee_starts_at_annual_limit(client, db):
    """Employee registration → 201, token, balance = limit, normalised email."""
    resp = await client.post(
        "/api/auth/register", json={**REGISTER_EMPLOYEE, "leaveBalance": 999},
    )
    assert resp.status_code == 201
    data = resp.json()
    assert data["message"] == "User registered successfully"
    assert data["token"]
    user = data["user"]
    assert user["email"] == "new.hire@example.com"
    assert user["name"] == "New Hire"
    assert user["role"] == "Employee"
    assert user["leaveBalance"] == settings.ANNUAL_LEAVE_LIMIT
    assert user["joiningDate"].startswith("2024-03-01")
    assert "passwordHash" not in user and "password_hash" not in user

    payload = decode_access_token(data["token"])
    assert payload["sub"] == user["id"]
    assert payload["role"] == "Employee"
    assert payload["type"] == "access"

    audit = (
        await db.execute(select(AuditTrail).where(AuditTrail.action == "register"))
    ).scalars().all()
    assert len(audit) == 1


async def test_register_admin_without_joining_date(client):
    resp = await client.post(
        "/api/auth/register",
        json={"name": "Boss", "email": "boss@example.com", "password": "secret123", "role": "Admin"},
    )
    assert resp.status_code == 201
    user = resp.json()["user"]
    assert user["role"] == "Admin"
    assert user["leaveBalance"] is None


async def test_register_employee_requires_joining_date(client):
    body = {k: v for k, v in REGISTER_EMPLOYEE.items() if k != "joiningDate"}
    resp = await client.post("/api/auth/register", json=body)
    assert resp.status_code == 400
    assert resp.json()["type"].endswith("/invalid-input")


async def test_register_rejects_unknown_role(client):
    resp = await client.post("/api/auth/register", json={**REGISTER_EMPLOYEE, "role": "Manager"})
    assert resp.status_code == 400


async def test_register_duplicate_email_is_409(client, employee):
    resp = await client.post(
        "/api/auth/register", json={**REGISTER_EMPLOYEE, "email": "JANE@example.com"},
    )
    assert resp.status_code == 409
    assert resp.json()["type"].endswith("/duplicate")


# ── Login ───────────────────────────────────────────────────────────


async def test_login_success(client, employee):
    resp = await client.post(
        "/api/auth/login", json={"email": "jane@example.com", "password": "secret123"},
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["message"] == "Login successful"
    assert data["tokenType"] == "bearer"
    assert data["expiresIn"] == settings.JWT_EXPIRY_HOURS * 3600
    assert data["user"]["id"] == str(employee.id)


async def test_login_unknown_email(client):
    resp = await client.post(
        "/api/auth/login", json={"email": "ghost@example.com", "password": "secret123"},
    )
    assert resp.status_code == 401
    assert resp.json()["detail"] == "You are not an employee. Please contact Admin"


async def test_login_wrong_password(client, employee):
    resp = await client.post(
        "/api/auth/login", json={"email": "jane@example.com", "password": "wrong-pass"},
    )
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid email or password"


async def test_login_inactive_account(client, seed_account):
    await seed_account(email="gone@example.com", status=AccountStatus.inactive)
    resp = await client.post(
        "/api/auth/login", json={"email": "gone@example.com", "password": "secret123"},
    )
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Account inactive"


async def test_login_is_rate_limited(client, employee):
    body = {"email": "jane@example.com", "password": "wrong-pass"}
    limit = int(settings.LOGIN_RATE_LIMIT.split("/")[0])
    for _ in range(limit):
        resp = await client.post("/api/auth/login", json=body)
        assert resp.status_code == 401
    resp = await client.post("/api/auth/login", json=body)
    assert resp.status_code == 429


# ── Token validation ────────────────────────────────────────────────


async def test_me_returns_current_account(client, employee, employee_headers):
    resp = await client.get("/api/auth/me", headers=employee_headers)
    assert resp.status_code == 200
    assert resp.json()["email"] == "jane@example.com"


async def test_me_without_token(client):
    resp = await client.get("/api/auth/me")
    assert resp.status_code == 401
    assert resp.json()["type"].endswith("/unauthenticated")


async def test_me_with_expired_token(client, employee, make_token):
    token = make_token(employee.id, expired=True)
    resp = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Token has expired."


async def test_me_with_garbage_token(client):
    resp = await client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401


async def test_me_with_wrong_token_type(client, employee, make_token):
    token = make_token(employee.id, token_type="refresh")
    resp = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid token type."


async def test_me_for_inactive_account(client, seed_account, headers_for):
    account = await seed_account(status=AccountStatus.inactive)
    resp = await client.get("/api/auth/me", headers=headers_for(account))
    assert resp.status_code == 401


async def test_me_for_unknown_subject(client, make_token):
    token = make_token(uuid.uuid4())
    resp = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


async def test_role_comes_from_database_not_token(client, employee, make_token):
    """A token claiming Admin does not grant admin access to an Employee."""
    token = make_token(employee.id, role=UserRole.admin)
    resp = await client.get("/api/employees", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 403


# ── Policy helpers / hashing ────────────────────────────────────────


class TestPolicy:

    async def test_ensure_authenticated(self, employee, seed_account):
        assert ensure_authenticated(employee) is employee
        with pytest.raises(UnauthenticatedException):
            ensure_authenticated(None)
        inactive = await seed_account(status=AccountStatus.inactive)
        with pytest.raises(UnauthenticatedException):
            ensure_authenticated(inactive)

    async def test_ensure_admin(self, admin, employee):
        assert ensure_admin(admin) is admin
        with pytest.raises(ForbiddenException) as exc_info:
            ensure_admin(employee, "approve leave")
        assert "Admin role required to approve leave" in str(exc_info.value)

    async def test_ensure_self_or_admin(self, admin, employee, other_employee):
        assert ensure_self_or_admin(employee, employee.id) is employee
        assert ensure_self_or_admin(admin, employee.id) is admin
        with pytest.raises(ForbiddenException):
            ensure_self_or_admin(other_employee, employee.id)


def test_password_hashing():
    hashed = hash_password("secret123")
    assert hashed != "secret123"
    assert verify_password("secret123", hashed)
    assert not verify_password("secret124", hashed)


async def test_registered_account_is_employee_variant(client, db):
    resp = await client.post("/api/auth/register", json=REGISTER_EMPLOYEE)
    account_id = uuid.UUID(resp.json()["user"]["id"])

    account = (
        await db.execute(select(Account).where(Account.id == account_id))
    ).scalars().one()
    assert isinstance(account, EmployeeAccount)
    assert account.status == AccountStatus.active.value
