"""Leave Pydantic v2 schemas — request / response validation.

Naming conventions:
  - *Request  → request bodies (write)
  - *Out      → response bodies (read)
  - *Response → message envelopes returned by the router
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field

from leave_management.common.constants import LeaveStatus
from leave_management.common.pagination import PaginationMeta
from leave_management.common.schemas import CamelModel
from leave_management.employees.schemas import AccountBrief


# ═════════════════════════════════════════════════════════════════════
# Leave Request
# ═════════════════════════════════════════════════════════════════════


class LeaveApplyRequest(CamelModel):
    """Payload for applying for leave.

    Dates stay plain strings here so that missing and malformed values
    are reported by the engine with its own messages. ``employeeId`` is
    only honoured for admins applying on an employee's behalf.
    """

    employee_id: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    reason: Optional[str] = Field(None, max_length=2000)


class LeaveRequestOut(CamelModel):
    """Leave request joined with the display fields of related accounts."""

    id: uuid.UUID
    employee_id: uuid.UUID
    start_date: datetime
    end_date: datetime
    days_requested: int
    reason: str
    status: LeaveStatus
    applied_at: datetime
    decision_at: Optional[datetime] = None
    reviewer_id: Optional[uuid.UUID] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime

    # Enriched by service
    employee: Optional[AccountBrief] = None
    employee_name: Optional[str] = None
    reviewer: Optional[AccountBrief] = None
    canceller: Optional[AccountBrief] = None


# ═════════════════════════════════════════════════════════════════════
# Envelopes
# ═════════════════════════════════════════════════════════════════════


class LeaveActionResponse(CamelModel):
    message: str
    leave_request: LeaveRequestOut


class LeaveBalanceChangeResponse(LeaveActionResponse):
    new_balance: int


class LeaveListResponse(CamelModel):
    message: str = "Leaves retrieved successfully"
    leaves: list[LeaveRequestOut]
    pagination: PaginationMeta


# ═════════════════════════════════════════════════════════════════════
# Balance reports
# ═════════════════════════════════════════════════════════════════════


class LeaveBalanceOut(CamelModel):
    available: int
    total_taken: int
    total_pending: int
    pending_requests: list[LeaveRequestOut]


class LeaveBalanceResponse(CamelModel):
    message: str = "Leave balance retrieved successfully"
    employee: AccountBrief
    leave_balance: LeaveBalanceOut


class VerifiedEmployee(CamelModel):
    id: uuid.UUID
    name: str
    email: str
    old_balance: int
    new_balance: int
    corrected: bool


class VerifiedLeaves(CamelModel):
    total_approved: int
    total_days_taken: int
    expected_balance: int


class BalanceVerificationResponse(CamelModel):
    """Reconciliation of a stored balance against approved leave history."""

    message: str = "Leave balance verified"
    employee: VerifiedEmployee
    leaves: VerifiedLeaves
