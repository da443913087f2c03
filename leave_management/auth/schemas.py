"""Auth Pydantic schemas for request / response validation."""

from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import EmailStr, Field, field_validator, model_validator

from leave_management.common.constants import UserRole
from leave_management.common.schemas import CamelModel
from leave_management.employees.schemas import AccountOut


# ── Requests ────────────────────────────────────────────────────────

class RegisterRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=150)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=72)
    role: UserRole
    joining_date: Optional[date] = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be blank.")
        return v

    @model_validator(mode="after")
    def _employee_needs_joining_date(self) -> "RegisterRequest":
        if self.role == UserRole.employee and self.joining_date is None:
            raise ValueError("joiningDate is required for employees.")
        return self


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


# ── Responses ───────────────────────────────────────────────────────

class TokenResponse(CamelModel):
    message: str
    token: str
    token_type: str = "bearer"
    expires_in: int
    user: AccountOut
