"""Auth dependencies — JWT validation, RBAC enforcement."""

from __future__ import annotations

import uuid
from typing import Callable

from fastapi import Depends, Request
from jose import ExpiredSignatureError, JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leave_management.auth.security import decode_access_token
from leave_management.common.constants import AccountStatus, UserRole
from leave_management.common.exceptions import ForbiddenException, UnauthenticatedException
from leave_management.database import get_db
from leave_management.employees.models import Account


def _extract_bearer(request: Request) -> str:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise UnauthenticatedException("Missing or invalid Authorization header.")
    return auth_header[7:]


# ── Core dependency ─────────────────────────────────────────────────

async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Account:
    """Validate JWT and return the authenticated, active account."""
    token = _extract_bearer(request)

    try:
        payload = decode_access_token(token)
    except ExpiredSignatureError:
        raise UnauthenticatedException("Token has expired.")
    except JWTError:
        raise UnauthenticatedException("Invalid token.")

    if payload.get("type") != "access":
        raise UnauthenticatedException("Invalid token type.")

    try:
        account_id = uuid.UUID(payload["sub"])
    except (KeyError, ValueError):
        raise UnauthenticatedException("Invalid token subject.")

    result = await db.execute(
        select(Account).where(
            Account.id == account_id,
            Account.status == AccountStatus.active.value,
        ),
    )
    account = result.scalars().first()
    if account is None:
        raise UnauthenticatedException("User account is inactive or not found.")

    return account


# ── Role-based dependency ───────────────────────────────────────────

def require_role(*allowed_roles: UserRole) -> Callable:
    """Return a FastAPI dependency that enforces role membership."""

    async def _check(account: Account = Depends(get_current_user)) -> Account:
        if account.role not in {r.value for r in allowed_roles}:
            raise ForbiddenException(
                detail=f"Access denied. {' or '.join(r.value for r in allowed_roles)} role required.",
            )
        return account

    return _check
