"""Account / employee Pydantic v2 schemas — request / response validation.

Naming conventions:
  - *Create / *Request  → request bodies (write)
  - *Out                → response bodies (read)
  - *Brief              → compact embedded representations
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from leave_management.common.pagination import EmployeePaginationMeta
from leave_management.common.schemas import CamelModel


# ═════════════════════════════════════════════════════════════════════
# Embedded / shared
# ═════════════════════════════════════════════════════════════════════


class AccountBrief(CamelModel):
    """Display fields embedded in leave responses."""

    id: uuid.UUID
    name: str
    email: str


class AccountOut(CamelModel):
    """Full account representation (never includes the password hash)."""

    id: uuid.UUID
    name: str
    email: str
    role: str
    status: str
    joining_date: Optional[datetime] = None
    leave_balance: Optional[int] = None
    created_at: datetime
    updated_at: datetime


# ═════════════════════════════════════════════════════════════════════
# Employee provisioning
# ═════════════════════════════════════════════════════════════════════


class EmployeeCreate(CamelModel):
    """Payload for an admin adding an employee.

    Any ``leaveBalance`` sent by the client is ignored; new employees
    always start at the annual limit.
    """

    name: str = Field(..., min_length=1, max_length=150)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=72)
    joining_date: date

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be blank.")
        return v


class EmployeeCreateResponse(CamelModel):
    message: str = "Employee added successfully"
    employee: AccountOut


class EmployeeListResponse(CamelModel):
    message: str = "Employees retrieved successfully"
    employees: list[AccountOut]
    pagination: EmployeePaginationMeta
