"""Leave ORM model: LeaveRequest."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from leave_management.common.constants import LeaveStatus
from leave_management.common.dates import utc_now
from leave_management.database import Base, UTCDateTime
from leave_management.employees.models import Account, EmployeeAccount


class LeaveRequest(Base):
    __tablename__ = "leave_requests"
    __table_args__ = (
        sa.CheckConstraint("end_date >= start_date", name="ck_leave_requests_range"),
        sa.CheckConstraint("days_requested >= 1", name="ck_leave_requests_days"),
        sa.Index("ix_leave_requests_employee_status", "employee_id", "status"),
        sa.Index("ix_leave_requests_status_created", "status", "created_at"),
        sa.Index("ix_leave_requests_range", "start_date", "end_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, primary_key=True, default=uuid.uuid4,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("accounts.id"), nullable=False,
    )
    # Inclusive range, stored as midnight UTC of each calendar day.
    start_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    end_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    # Snapshot taken at creation; never recomputed.
    days_requested: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    reason: Mapped[str] = mapped_column(sa.Text, nullable=False)
    status: Mapped[LeaveStatus] = mapped_column(
        sa.Enum(
            LeaveStatus,
            name="leave_status",
            values_callable=lambda statuses: [s.value for s in statuses],
            validate_strings=True,
        ),
        nullable=False,
        default=LeaveStatus.pending,
    )
    applied_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utc_now,
    )
    decision_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime)
    reviewer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        sa.Uuid, sa.ForeignKey("accounts.id"),
    )
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime)
    cancelled_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        sa.Uuid, sa.ForeignKey("accounts.id"),
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utc_now,
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utc_now, onupdate=utc_now,
    )

    # Relationships
    employee: Mapped[EmployeeAccount] = relationship(
        back_populates="leave_requests", foreign_keys=[employee_id],
    )
    reviewer: Mapped[Optional[Account]] = relationship(foreign_keys=[reviewer_id])
    canceller: Mapped[Optional[Account]] = relationship(foreign_keys=[cancelled_by])

    def __repr__(self) -> str:
        return f"<LeaveRequest {self.id} {self.status.value}>"
