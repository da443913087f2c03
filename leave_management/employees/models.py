"""Account ORM models: Account, AdminAccount, EmployeeAccount.

Both variants live in the ``accounts`` table (single-table inheritance on
``role``). Employee-only columns are nullable at the database level and
populated only for ``EmployeeAccount`` rows. They load inline with every
``select(Account)`` so an async session never lazy-loads them.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from leave_management.common.constants import AccountStatus, UserRole
from leave_management.common.dates import utc_now
from leave_management.config import settings
from leave_management.database import Base, UTCDateTime

if TYPE_CHECKING:
    from leave_management.leave.models import LeaveRequest


def clamp_balance(value: int, limit: int) -> int:
    """Force a leave balance into ``[0, limit]``."""
    return max(0, min(limit, value))


class Account(Base):
    """Identity and credentials shared by every account variant."""

    __tablename__ = "accounts"
    __table_args__ = (
        sa.CheckConstraint(
            "leave_balance IS NULL OR leave_balance >= 0",
            name="ck_accounts_leave_balance_non_negative",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, primary_key=True, default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(sa.String(150), nullable=False)
    email: Mapped[str] = mapped_column(sa.String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    role: Mapped[str] = mapped_column(sa.String(20), nullable=False)
    status: Mapped[str] = mapped_column(
        sa.String(20), nullable=False, default=AccountStatus.active.value,
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utc_now,
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utc_now, onupdate=utc_now,
    )

    __mapper_args__ = {
        "polymorphic_on": "role",
    }

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.active

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.email!r}>"


class AdminAccount(Account):
    """Administrator: reviews leave, provisions employees. No leave balance."""

    __mapper_args__ = {
        "polymorphic_identity": UserRole.admin.value,
    }


class EmployeeAccount(Account):
    """Employee with a joining date and a leave balance."""

    joining_date: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    leave_balance: Mapped[Optional[int]] = mapped_column(sa.Integer, nullable=True)

    __mapper_args__ = {
        "polymorphic_identity": UserRole.employee.value,
        "polymorphic_load": "inline",
    }

    @validates("leave_balance")
    def _clamp_leave_balance(self, key: str, value: Optional[int]) -> Optional[int]:
        if value is None:
            return None
        return clamp_balance(value, settings.ANNUAL_LEAVE_LIMIT)

    # ── Relationships ───────────────────────────────────────────────
    leave_requests: Mapped[list[LeaveRequest]] = relationship(
        back_populates="employee",
        foreign_keys="LeaveRequest.employee_id",
    )


ACCOUNT_CLASSES: dict[UserRole, type[Account]] = {
    UserRole.admin: AdminAccount,
    UserRole.employee: EmployeeAccount,
}
