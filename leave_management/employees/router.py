"""Employee router — admin provisioning, listing and account lookup."""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from leave_management.auth.dependencies import require_role
from leave_management.common.constants import UserRole
from leave_management.common.pagination import PaginationParams
from leave_management.config import settings
from leave_management.database import get_db
from leave_management.employees.models import Account
from leave_management.employees.schemas import (
    AccountOut,
    EmployeeCreate,
    EmployeeCreateResponse,
    EmployeeListResponse,
)
from leave_management.employees.service import AccountService, EmployeeService

employees_router = APIRouter(prefix="", tags=["employees"])
users_router = APIRouter(prefix="", tags=["users"])


# ── POST /employees ─────────────────────────────────────────────────

@employees_router.post(
    "",
    response_model=EmployeeCreateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_employee(
    body: EmployeeCreate,
    admin: Account = Depends(require_role(UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    """Add an employee. Role and starting balance are set server-side."""
    employee = await EmployeeService.create_employee(
        db, admin, body, annual_leave_limit=settings.ANNUAL_LEAVE_LIMIT,
    )
    return EmployeeCreateResponse(employee=employee)


# ── GET /employees ──────────────────────────────────────────────────

@employees_router.get("", response_model=EmployeeListResponse)
async def list_employees(
    search: Optional[str] = Query(None, max_length=150),
    pagination: PaginationParams = Depends(),
    admin: Account = Depends(require_role(UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    """Paginated employee directory with optional name/email search."""
    return await EmployeeService.list_employees(db, admin, pagination, search=search)


# ── GET /users/{user_id} ────────────────────────────────────────────

@users_router.get("/{user_id}", response_model=AccountOut)
async def get_user(
    user_id: uuid.UUID,
    admin: Account = Depends(require_role(UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    """Look up any account by id."""
    return await AccountService.get_account(db, admin, user_id)
