"""Leave router — apply, list, approve/reject/cancel, balances.

All endpoints require authentication. Approve, reject and balance
verification are admin-only.
"""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from leave_management.auth.dependencies import get_current_user, require_role
from leave_management.common.constants import UserRole
from leave_management.common.pagination import PaginationParams
from leave_management.database import get_db
from leave_management.employees.models import Account
from leave_management.leave.schemas import (
    BalanceVerificationResponse,
    LeaveActionResponse,
    LeaveApplyRequest,
    LeaveBalanceChangeResponse,
    LeaveBalanceResponse,
    LeaveListResponse,
)
from leave_management.leave.service import LeaveService, get_leave_service

router = APIRouter(prefix="", tags=["leave"])


# ── POST / ──────────────────────────────────────────────────────────

@router.post(
    "",
    response_model=LeaveActionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def apply_leave(
    body: LeaveApplyRequest,
    account: Account = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    service: LeaveService = Depends(get_leave_service),
):
    """Apply for leave. Validates dates, joining date, balance and overlap."""
    leave_request = await service.apply_leave(db, account, body)
    return LeaveActionResponse(
        message="Leave request submitted successfully",
        leave_request=leave_request,
    )


# ── GET / ───────────────────────────────────────────────────────────

@router.get("", response_model=LeaveListResponse)
async def list_leaves(
    status: Optional[str] = Query(None),
    employee_id: Optional[str] = Query(None, alias="employeeId"),
    pagination: PaginationParams = Depends(),
    account: Account = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    service: LeaveService = Depends(get_leave_service),
):
    """Own requests for employees; all requests (optionally per employee) for admins."""
    return await service.list_leaves(
        db, account, pagination, status=status, employee_id=employee_id,
    )


# ── PATCH /{id}/approve ─────────────────────────────────────────────

@router.patch("/{request_id}/approve", response_model=LeaveBalanceChangeResponse)
async def approve_leave(
    request_id: uuid.UUID,
    admin: Account = Depends(require_role(UserRole.admin)),
    db: AsyncSession = Depends(get_db),
    service: LeaveService = Depends(get_leave_service),
):
    """Approve a pending request and debit the employee's balance."""
    leave_request, new_balance = await service.approve_leave(db, admin, request_id)
    return LeaveBalanceChangeResponse(
        message="Leave approved successfully",
        leave_request=leave_request,
        new_balance=new_balance,
    )


# ── PATCH /{id}/reject ──────────────────────────────────────────────

@router.patch("/{request_id}/reject", response_model=LeaveActionResponse)
async def reject_leave(
    request_id: uuid.UUID,
    admin: Account = Depends(require_role(UserRole.admin)),
    db: AsyncSession = Depends(get_db),
    service: LeaveService = Depends(get_leave_service),
):
    """Reject a pending request."""
    leave_request = await service.reject_leave(db, admin, request_id)
    return LeaveActionResponse(
        message="Leave rejected successfully",
        leave_request=leave_request,
    )


# ── PATCH /{id}/cancel ──────────────────────────────────────────────

@router.patch("/{request_id}/cancel", response_model=LeaveBalanceChangeResponse)
async def cancel_leave(
    request_id: uuid.UUID,
    account: Account = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    service: LeaveService = Depends(get_leave_service),
):
    """Cancel an approved request that has not started yet."""
    leave_request, new_balance = await service.cancel_leave(db, account, request_id)
    return LeaveBalanceChangeResponse(
        message="Leave cancelled successfully",
        leave_request=leave_request,
        new_balance=new_balance,
    )


# ── GET /balance/{employee_id} ──────────────────────────────────────

@router.get("/balance/{employee_id}", response_model=LeaveBalanceResponse)
async def get_balance(
    employee_id: uuid.UUID,
    account: Account = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    service: LeaveService = Depends(get_leave_service),
):
    return await service.get_leave_balance(db, account, employee_id)


# ── GET /verify-balance/{employee_id} ───────────────────────────────

@router.get(
    "/verify-balance/{employee_id}",
    response_model=BalanceVerificationResponse,
)
async def verify_balance(
    employee_id: uuid.UUID,
    admin: Account = Depends(require_role(UserRole.admin)),
    db: AsyncSession = Depends(get_db),
    service: LeaveService = Depends(get_leave_service),
):
    """Recompute the balance from approved leave and correct it if it drifted."""
    return await service.verify_leave_balance(db, admin, employee_id)
