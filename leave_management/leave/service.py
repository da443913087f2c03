"""Leave service layer — balance accounting and the leave request lifecycle.

Business logic:
  - Leave application with pending-aware availability and overlap checks
  - Approval with a compare-and-set balance debit
  - Rejection (no balance effect)
  - Cancellation of future approved leave with a capped balance credit
  - Balance summary and reconciliation against approved history

State machine::

    Pending --approve--> Approved --cancel--> Cancelled
    Pending --reject---> Rejected
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Callable, Optional

import sqlalchemy as sa
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from leave_management.auth.policy import (
    ensure_admin,
    ensure_authenticated,
    ensure_self_or_admin,
)
from leave_management.common.audit import create_audit_entry
from leave_management.common.constants import BLOCKING_LEAVE_STATUSES, LeaveStatus
from leave_management.common.dates import (
    InvalidDateFormat,
    format_calendar_date,
    inclusive_day_count,
    parse_calendar_date,
    to_utc_midnight,
    utc_now,
)
from leave_management.common.exceptions import (
    ConflictException,
    ForbiddenException,
    InsufficientBalanceException,
    InvalidInputException,
    InvalidRangeException,
    NotFoundException,
)
from leave_management.common.pagination import PaginationParams, paginate
from leave_management.config import settings
from leave_management.employees.models import Account, EmployeeAccount, clamp_balance
from leave_management.employees.schemas import AccountBrief
from leave_management.leave.models import LeaveRequest
from leave_management.leave.schemas import (
    BalanceVerificationResponse,
    LeaveApplyRequest,
    LeaveBalanceOut,
    LeaveBalanceResponse,
    LeaveListResponse,
    LeaveRequestOut,
    VerifiedEmployee,
    VerifiedLeaves,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

_VIEW_OPTIONS = (
    selectinload(LeaveRequest.employee),
    selectinload(LeaveRequest.reviewer),
    selectinload(LeaveRequest.canceller),
)


# ═════════════════════════════════════════════════════════════════════
# LeaveService
# ═════════════════════════════════════════════════════════════════════


class LeaveService:
    """Async leave operations bound to one annual limit and one clock."""

    def __init__(self, annual_leave_limit: int, clock: Clock = utc_now) -> None:
        if annual_leave_limit < 0:
            raise ValueError("annual_leave_limit must be non-negative.")
        self.annual_leave_limit = annual_leave_limit
        self._clock = clock

    # ─────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────

    def _now(self) -> datetime:
        return self._clock()

    @staticmethod
    def _build_request_response(req: LeaveRequest) -> LeaveRequestOut:
        """Build LeaveRequestOut from an ORM row with its accounts loaded."""
        out = LeaveRequestOut.model_validate(req)
        if req.employee is not None:
            out.employee_name = req.employee.name
        return out

    @staticmethod
    async def _load_request(
        db: AsyncSession,
        request_id: uuid.UUID,
        *,
        for_update: bool = False,
    ) -> LeaveRequest:
        query = (
            select(LeaveRequest)
            .where(LeaveRequest.id == request_id)
            .options(*_VIEW_OPTIONS)
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()
        leave_req = (await db.execute(query)).scalars().first()
        if leave_req is None:
            raise NotFoundException("LeaveRequest", str(request_id))
        return leave_req

    @staticmethod
    async def _load_employee(
        db: AsyncSession,
        employee_id: uuid.UUID,
        *,
        for_update: bool = False,
    ) -> EmployeeAccount:
        query = (
            select(Account)
            .where(Account.id == employee_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()
        account = (await db.execute(query)).scalars().first()
        if not isinstance(account, EmployeeAccount):
            raise NotFoundException("Employee", str(employee_id))
        return account

    @staticmethod
    async def _sum_days(
        db: AsyncSession,
        employee_id: uuid.UUID,
        status: LeaveStatus,
    ) -> tuple[int, int]:
        """Return (request count, total days) for one employee and status."""
        result = await db.execute(
            select(
                func.count(LeaveRequest.id),
                func.coalesce(func.sum(LeaveRequest.days_requested), 0),
            ).where(
                LeaveRequest.employee_id == employee_id,
                LeaveRequest.status == status,
            )
        )
        count, days = result.one()
        return int(count), int(days)

    @staticmethod
    def _resolve_target_id(actor: Account, raw: Optional[str]) -> uuid.UUID:
        """Who a new request is for: the actor, or an employee an admin names."""
        if raw is None or not raw.strip():
            return actor.id

        try:
            target_id: Optional[uuid.UUID] = uuid.UUID(raw.strip())
        except ValueError:
            target_id = None

        if not actor.is_admin and target_id != actor.id:
            raise ForbiddenException(
                "Access denied. You can only apply leave for yourself."
            )
        if target_id is None:
            raise NotFoundException("Employee", raw.strip())
        return target_id

    @staticmethod
    def _parse_date_field(field: str, value: str) -> datetime:
        try:
            return parse_calendar_date(value)
        except InvalidDateFormat:
            raise InvalidInputException(field, "Invalid date format. Use YYYY-MM-DD")

    # ─────────────────────────────────────────────────────────────────
    # Apply Leave
    # ─────────────────────────────────────────────────────────────────

    async def apply_leave(
        self,
        db: AsyncSession,
        actor: Account,
        data: LeaveApplyRequest,
    ) -> LeaveRequestOut:
        """Create a Pending request. The balance is untouched until approval."""

        actor = ensure_authenticated(actor)
        target_id = self._resolve_target_id(actor, data.employee_id)

        target = (
            await db.execute(
                select(Account)
                .where(Account.id == target_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
        ).scalars().first()
        if target is None:
            raise NotFoundException("Employee", str(target_id))
        if not isinstance(target, EmployeeAccount):
            raise InvalidInputException(
                "employeeId", "Can only apply leave for employees",
            )

        reason = (data.reason or "").strip()
        if not reason:
            raise InvalidInputException("reason", "Reason for leave is required")

        if not data.start_date or not data.end_date:
            raise InvalidInputException(
                "startDate" if not data.start_date else "endDate",
                "Start date and end date are required",
            )
        start = self._parse_date_field("startDate", data.start_date)
        end = self._parse_date_field("endDate", data.end_date)

        if end < start:
            raise InvalidRangeException(
                "endDate", "End date cannot be before start date",
            )
        if target.joining_date is not None and start < to_utc_midnight(target.joining_date):
            raise InvalidRangeException(
                "startDate", "Leave start date cannot be before joining date",
            )

        days = inclusive_day_count(start, end)
        if days < 1:
            raise InvalidRangeException("endDate", "Leave must be at least 1 day")

        # ── Balance, net of requests still awaiting a decision ─────
        balance = target.leave_balance or 0
        if balance <= 0:
            logger.debug("Apply refused for %s: zero balance", target.id)
            raise InsufficientBalanceException(
                "No available leave balance", available=0, requested=days,
            )

        _, pending_days = await self._sum_days(db, target.id, LeaveStatus.pending)
        available = balance - pending_days
        if available <= 0:
            logger.debug("Apply refused for %s: balance held by pending", target.id)
            raise InsufficientBalanceException(
                "All leave balance is in pending requests",
                available=0,
                requested=days,
            )
        if days > available:
            logger.debug(
                "Apply refused for %s: %d requested, %d available",
                target.id, days, available,
            )
            raise InsufficientBalanceException(
                f"Insufficient leave balance. Available: {available}, Requested: {days}",
                available=available,
                requested=days,
            )

        # ── Overlap with anything still holding the dates ──────────
        overlap = await db.execute(
            select(LeaveRequest.id)
            .where(
                LeaveRequest.employee_id == target.id,
                LeaveRequest.status.in_(BLOCKING_LEAVE_STATUSES),
                LeaveRequest.start_date <= end,
                LeaveRequest.end_date >= start,
            )
            .limit(1)
        )
        clashing_id = overlap.scalar()
        if clashing_id is not None:
            logger.debug("Apply refused for %s: overlaps %s", target.id, clashing_id)
            raise ConflictException(
                "Overlapping leave exists.", conflictingRequestId=str(clashing_id),
            )

        now = self._now()
        leave_req = LeaveRequest(
            employee_id=target.id,
            start_date=start,
            end_date=end,
            days_requested=days,
            reason=reason,
            status=LeaveStatus.pending,
            applied_at=now,
        )
        db.add(leave_req)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="leave_request",
            entity_id=leave_req.id,
            actor_id=actor.id,
            new_values={
                "employee_id": str(target.id),
                "start_date": format_calendar_date(start),
                "end_date": format_calendar_date(end),
                "days_requested": days,
                "status": LeaveStatus.pending.value,
            },
        )
        logger.info(
            "Leave %s created for %s: %s..%s (%d days)",
            leave_req.id, target.id,
            format_calendar_date(start), format_calendar_date(end), days,
        )

        return self._build_request_response(
            await self._load_request(db, leave_req.id),
        )

    # ─────────────────────────────────────────────────────────────────
    # Approve Leave
    # ─────────────────────────────────────────────────────────────────

    async def approve_leave(
        self,
        db: AsyncSession,
        reviewer: Account,
        request_id: uuid.UUID,
    ) -> tuple[LeaveRequestOut, int]:
        """Approve a Pending request and debit the employee's balance.

        The debit is a conditional UPDATE capped at the annual limit; when
        it matches no row the status transition is never attempted.
        """

        reviewer = ensure_admin(reviewer, "approve leave")
        leave_req = await self._load_request(db, request_id, for_update=True)

        if leave_req.status != LeaveStatus.pending:
            raise ConflictException(
                f"Leave already {leave_req.status.value}",
                currentStatus=leave_req.status.value,
            )

        employee = await self._load_employee(db, leave_req.employee_id, for_update=True)
        days = leave_req.days_requested
        balance = employee.leave_balance or 0
        if balance < days:
            raise InsufficientBalanceException(
                f"Insufficient balance. Available: {balance}, Required: {days}",
                available=balance,
                requested=days,
            )

        limit = self.annual_leave_limit
        debited = EmployeeAccount.leave_balance - days
        debit = await db.execute(
            sa.update(EmployeeAccount)
            .where(
                EmployeeAccount.id == employee.id,
                EmployeeAccount.leave_balance >= days,
            )
            .values(leave_balance=sa.case((debited > limit, limit), else_=debited))
            .execution_options(synchronize_session=False)
        )
        if debit.rowcount == 0:
            raise InsufficientBalanceException(
                f"Insufficient balance. Available: {balance}, Required: {days}",
                available=balance,
                requested=days,
            )

        now = self._now()
        transition = await db.execute(
            sa.update(LeaveRequest)
            .where(
                LeaveRequest.id == leave_req.id,
                LeaveRequest.status == LeaveStatus.pending,
            )
            .values(
                status=LeaveStatus.approved,
                decision_at=now,
                reviewer_id=reviewer.id,
            )
            .execution_options(synchronize_session=False)
        )
        if transition.rowcount == 0:
            raise ConflictException(
                "Leave request is no longer pending",
                currentStatus=leave_req.status.value,
            )

        await db.refresh(employee, ["leave_balance"])
        new_balance = employee.leave_balance

        await create_audit_entry(
            db,
            action="approve",
            entity_type="leave_request",
            entity_id=leave_req.id,
            actor_id=reviewer.id,
            old_values={"status": LeaveStatus.pending.value, "leave_balance": balance},
            new_values={"status": LeaveStatus.approved.value, "leave_balance": new_balance},
        )
        logger.info(
            "Leave %s approved by %s; balance of %s %d -> %d",
            leave_req.id, reviewer.id, employee.id, balance, new_balance,
        )

        out = self._build_request_response(await self._load_request(db, leave_req.id))
        return out, new_balance

    # ─────────────────────────────────────────────────────────────────
    # Reject Leave
    # ─────────────────────────────────────────────────────────────────

    async def reject_leave(
        self,
        db: AsyncSession,
        reviewer: Account,
        request_id: uuid.UUID,
    ) -> LeaveRequestOut:
        """Reject a Pending request. No balance change."""

        reviewer = ensure_admin(reviewer, "reject leave")
        leave_req = await self._load_request(db, request_id, for_update=True)

        if leave_req.status != LeaveStatus.pending:
            raise ConflictException(
                f"Leave already {leave_req.status.value}",
                currentStatus=leave_req.status.value,
            )

        now = self._now()
        transition = await db.execute(
            sa.update(LeaveRequest)
            .where(
                LeaveRequest.id == leave_req.id,
                LeaveRequest.status == LeaveStatus.pending,
            )
            .values(
                status=LeaveStatus.rejected,
                decision_at=now,
                reviewer_id=reviewer.id,
            )
            .execution_options(synchronize_session=False)
        )
        if transition.rowcount == 0:
            raise ConflictException(
                "Leave request is no longer pending",
                currentStatus=leave_req.status.value,
            )

        await create_audit_entry(
            db,
            action="reject",
            entity_type="leave_request",
            entity_id=leave_req.id,
            actor_id=reviewer.id,
            old_values={"status": LeaveStatus.pending.value},
            new_values={"status": LeaveStatus.rejected.value},
        )
        logger.info("Leave %s rejected by %s", leave_req.id, reviewer.id)

        return self._build_request_response(await self._load_request(db, leave_req.id))

    # ─────────────────────────────────────────────────────────────────
    # Cancel Leave
    # ─────────────────────────────────────────────────────────────────

    async def cancel_leave(
        self,
        db: AsyncSession,
        actor: Account,
        request_id: uuid.UUID,
    ) -> tuple[LeaveRequestOut, int]:
        """Cancel an Approved request that has not started; credit the days back.

        The credit never lifts the balance above the annual limit.
        """

        actor = ensure_authenticated(actor)
        leave_req = await self._load_request(db, request_id, for_update=True)
        ensure_self_or_admin(
            actor,
            leave_req.employee_id,
            "Access denied. You can only cancel your own leave requests.",
        )

        if leave_req.status != LeaveStatus.approved:
            raise ConflictException(
                f"Cannot cancel leave. Status: {leave_req.status.value}",
                currentStatus=leave_req.status.value,
            )

        now = self._now()
        if leave_req.start_date <= now:
            raise ConflictException(
                "Cannot cancel leave that has started or in progress",
                currentStatus=leave_req.status.value,
            )

        employee = await self._load_employee(db, leave_req.employee_id, for_update=True)
        old_balance = employee.leave_balance or 0
        days = leave_req.days_requested
        limit = self.annual_leave_limit

        credited = EmployeeAccount.leave_balance + days
        await db.execute(
            sa.update(EmployeeAccount)
            .where(EmployeeAccount.id == employee.id)
            .values(leave_balance=sa.case((credited > limit, limit), else_=credited))
            .execution_options(synchronize_session=False)
        )

        transition = await db.execute(
            sa.update(LeaveRequest)
            .where(
                LeaveRequest.id == leave_req.id,
                LeaveRequest.status == LeaveStatus.approved,
            )
            .values(
                status=LeaveStatus.cancelled,
                cancelled_at=now,
                cancelled_by=actor.id,
            )
            .execution_options(synchronize_session=False)
        )
        if transition.rowcount == 0:
            raise ConflictException(
                "Leave request is no longer approved",
                currentStatus=leave_req.status.value,
            )

        await db.refresh(employee, ["leave_balance"])
        new_balance = employee.leave_balance

        await create_audit_entry(
            db,
            action="cancel",
            entity_type="leave_request",
            entity_id=leave_req.id,
            actor_id=actor.id,
            old_values={"status": LeaveStatus.approved.value, "leave_balance": old_balance},
            new_values={"status": LeaveStatus.cancelled.value, "leave_balance": new_balance},
        )
        logger.info(
            "Leave %s cancelled by %s; balance of %s %d -> %d",
            leave_req.id, actor.id, employee.id, old_balance, new_balance,
        )

        out = self._build_request_response(await self._load_request(db, leave_req.id))
        return out, new_balance

    # ─────────────────────────────────────────────────────────────────
    # Balance
    # ─────────────────────────────────────────────────────────────────

    async def get_leave_balance(
        self,
        db: AsyncSession,
        requester: Account,
        employee_id: uuid.UUID,
    ) -> LeaveBalanceResponse:
        """Stored balance plus approved and pending totals. Read-only."""

        ensure_self_or_admin(requester, employee_id, "Access denied")
        employee = await self._load_employee(db, employee_id)

        _, total_taken = await self._sum_days(db, employee.id, LeaveStatus.approved)

        pending_rows = (
            await db.execute(
                select(LeaveRequest)
                .where(
                    LeaveRequest.employee_id == employee.id,
                    LeaveRequest.status == LeaveStatus.pending,
                )
                .options(*_VIEW_OPTIONS)
                .order_by(LeaveRequest.applied_at.desc())
            )
        ).scalars().all()

        return LeaveBalanceResponse(
            employee=AccountBrief.model_validate(employee),
            leave_balance=LeaveBalanceOut(
                available=employee.leave_balance or 0,
                total_taken=total_taken,
                total_pending=sum(r.days_requested for r in pending_rows),
                pending_requests=[self._build_request_response(r) for r in pending_rows],
            ),
        )

    async def verify_leave_balance(
        self,
        db: AsyncSession,
        admin: Account,
        employee_id: uuid.UUID,
    ) -> BalanceVerificationResponse:
        """Recompute the balance from approved history and correct drift.

        Pending requests are deliberately left out of the recomputation.
        """

        admin = ensure_admin(admin, "verify leave balances")
        employee = await self._load_employee(db, employee_id, for_update=True)

        total_approved, total_days_taken = await self._sum_days(
            db, employee.id, LeaveStatus.approved,
        )
        expected = clamp_balance(
            self.annual_leave_limit - total_days_taken, self.annual_leave_limit,
        )
        old_balance = employee.leave_balance or 0
        corrected = old_balance != expected

        if corrected:
            employee.leave_balance = expected
            await db.flush()
            await create_audit_entry(
                db,
                action="verify_balance",
                entity_type="account",
                entity_id=employee.id,
                actor_id=admin.id,
                old_values={"leave_balance": old_balance},
                new_values={"leave_balance": expected},
            )
            logger.info(
                "Balance of %s corrected %d -> %d by %s",
                employee.id, old_balance, expected, admin.id,
            )

        return BalanceVerificationResponse(
            employee=VerifiedEmployee(
                id=employee.id,
                name=employee.name,
                email=employee.email,
                old_balance=old_balance,
                new_balance=expected,
                corrected=corrected,
            ),
            leaves=VerifiedLeaves(
                total_approved=total_approved,
                total_days_taken=total_days_taken,
                expected_balance=expected,
            ),
        )

    # ─────────────────────────────────────────────────────────────────
    # List Leave Requests
    # ─────────────────────────────────────────────────────────────────

    async def list_leaves(
        self,
        db: AsyncSession,
        actor: Account,
        pagination: PaginationParams,
        *,
        status: Optional[str] = None,
        employee_id: Optional[str] = None,
    ) -> LeaveListResponse:
        """Newest first. Non-admins only ever see their own requests."""

        actor = ensure_authenticated(actor)
        query = select(LeaveRequest).order_by(LeaveRequest.created_at.desc())

        if not actor.is_admin:
            query = query.where(LeaveRequest.employee_id == actor.id)
        elif employee_id:
            try:
                query = query.where(LeaveRequest.employee_id == uuid.UUID(employee_id))
            except ValueError:
                logger.debug("Ignoring malformed employeeId filter %r", employee_id)

        if status:
            try:
                query = query.where(LeaveRequest.status == LeaveStatus.parse(status))
            except ValueError:
                logger.debug("No leave request can have status %r", status)
                query = query.where(sa.false())

        rows, meta = await paginate(db, query, pagination, options=_VIEW_OPTIONS)

        return LeaveListResponse(
            leaves=[self._build_request_response(r) for r in rows],
            pagination=meta,
        )


# ── FastAPI dependency ──────────────────────────────────────────────

def get_leave_service() -> LeaveService:
    return LeaveService(settings.ANNUAL_LEAVE_LIMIT, utc_now)
