"""Enums and constants for the leave management service."""

from __future__ import annotations

import enum


# ── Accounts / Roles ────────────────────────────────────────────────

class UserRole(str, enum.Enum):
    admin = "Admin"
    employee = "Employee"


class AccountStatus(str, enum.Enum):
    active = "active"
    inactive = "inactive"


# ── Leave ───────────────────────────────────────────────────────────

class LeaveStatus(str, enum.Enum):
    pending = "Pending"
    approved = "Approved"
    rejected = "Rejected"
    cancelled = "Cancelled"

    @classmethod
    def parse(cls, raw: str) -> "LeaveStatus":
        """Case-insensitive lookup: ``"pending"`` / ``"PENDING"`` → ``Pending``."""
        normalized = raw.strip().capitalize()
        return cls(normalized)


# Statuses that block a date range for the same employee.
BLOCKING_LEAVE_STATUSES: tuple[LeaveStatus, ...] = (
    LeaveStatus.pending,
    LeaveStatus.approved,
)


# ── Misc constants ──────────────────────────────────────────────────

CALENDAR_DATE_FORMAT = "%Y-%m-%d"
MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 10
