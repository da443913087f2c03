"""Auth service — registration, credential check, token issue."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leave_management.auth.schemas import LoginRequest, RegisterRequest, TokenResponse
from leave_management.auth.security import create_access_token, verify_password
from leave_management.common.exceptions import ForbiddenException, UnauthenticatedException
from leave_management.employees.models import Account
from leave_management.employees.schemas import AccountOut
from leave_management.employees.service import AccountService

logger = logging.getLogger(__name__)


def issue_token(account: Account, message: str) -> TokenResponse:
    token, expires_in = create_access_token(account.id, account.role, account.email)
    return TokenResponse(
        message=message,
        token=token,
        expires_in=expires_in,
        user=AccountOut.model_validate(account),
    )


# ── Registration ────────────────────────────────────────────────────

async def register_account(
    db: AsyncSession,
    data: RegisterRequest,
    *,
    annual_leave_limit: int,
) -> TokenResponse:
    account = await AccountService.create_account(
        db,
        name=data.name,
        email=data.email,
        password=data.password,
        role=data.role,
        joining_date=data.joining_date,
        annual_leave_limit=annual_leave_limit,
        audit_action="register",
    )
    return issue_token(account, "User registered successfully")


# ── Login ───────────────────────────────────────────────────────────

async def authenticate(db: AsyncSession, data: LoginRequest) -> TokenResponse:
    """Check credentials; inactive accounts are refused even with a valid password."""
    email = data.email.strip().lower()

    result = await db.execute(select(Account).where(Account.email == email))
    account = result.scalars().first()

    if account is None:
        logger.debug("Login attempt for unknown email %s", email)
        raise UnauthenticatedException("You are not an employee. Please contact Admin")

    if not account.is_active:
        raise ForbiddenException("Account inactive")

    if not verify_password(data.password, account.password_hash):
        logger.debug("Bad password for account %s", account.id)
        raise UnauthenticatedException("Invalid email or password")

    logger.info("Account %s logged in", account.id)
    return issue_token(account, "Login successful")
