"""Account service layer — creation, provisioning, listing, lookup.

Uses:
  - ``paginate()`` from leave_management.common.pagination
  - ``create_audit_entry`` from leave_management.common.audit
  - ``ensure_admin`` from leave_management.auth.policy
"""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from leave_management.auth.policy import ensure_admin
from leave_management.auth.security import hash_password
from leave_management.common.audit import create_audit_entry
from leave_management.common.constants import UserRole
from leave_management.common.dates import to_utc_midnight
from leave_management.common.exceptions import (
    DuplicateException,
    InvalidInputException,
    NotFoundException,
)
from leave_management.common.pagination import (
    EmployeePaginationMeta,
    PaginationParams,
    paginate,
)
from leave_management.employees.models import (
    ACCOUNT_CLASSES,
    Account,
    EmployeeAccount,
    clamp_balance,
)
from leave_management.employees.schemas import (
    AccountOut,
    EmployeeCreate,
    EmployeeListResponse,
)

logger = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════
# AccountService
# ═════════════════════════════════════════════════════════════════════


class AccountService:
    """Async operations on accounts of either role."""

    @staticmethod
    async def create_account(
        db: AsyncSession,
        *,
        name: str,
        email: str,
        password: str,
        role: UserRole,
        joining_date: Optional[date],
        annual_leave_limit: int,
        actor_id: Optional[uuid.UUID] = None,
        audit_action: str = "create",
    ) -> Account:
        """Create an account of *role*; employees start at the annual limit."""

        email = email.strip().lower()
        name = name.strip()

        if role == UserRole.employee and joining_date is None:
            raise InvalidInputException(
                "joining_date", "Joining date is required for employees.",
            )

        existing = await db.execute(select(Account.id).where(Account.email == email))
        if existing.scalar() is not None:
            raise DuplicateException("email", email)

        fields = dict(
            name=name,
            email=email,
            password_hash=hash_password(password),
        )
        if role == UserRole.employee:
            fields.update(
                joining_date=to_utc_midnight(joining_date),
                leave_balance=clamp_balance(annual_leave_limit, annual_leave_limit),
            )
        account = ACCOUNT_CLASSES[role](**fields)

        db.add(account)
        try:
            await db.flush()
        except IntegrityError:
            raise DuplicateException("email", email)

        await create_audit_entry(
            db,
            action=audit_action,
            entity_type="account",
            entity_id=account.id,
            actor_id=actor_id or account.id,
            new_values={"email": email, "role": role.value},
        )
        logger.info("Created %s account %s", role.value, account.id)

        return account

    @staticmethod
    async def get_account(
        db: AsyncSession,
        actor: Account,
        account_id: uuid.UUID,
    ) -> AccountOut:
        """Admin lookup of any account by id."""

        ensure_admin(actor, "view accounts")

        result = await db.execute(select(Account).where(Account.id == account_id))
        account = result.scalars().first()
        if account is None:
            raise NotFoundException("User", str(account_id))
        return AccountOut.model_validate(account)


# ═════════════════════════════════════════════════════════════════════
# EmployeeService
# ═════════════════════════════════════════════════════════════════════


class EmployeeService:
    """Admin-facing employee provisioning and listing."""

    @staticmethod
    async def create_employee(
        db: AsyncSession,
        actor: Account,
        data: EmployeeCreate,
        *,
        annual_leave_limit: int,
    ) -> AccountOut:
        """Provision a new Employee account (role and balance are not client-controlled)."""

        ensure_admin(actor, "add employees")

        employee = await AccountService.create_account(
            db,
            name=data.name,
            email=data.email,
            password=data.password,
            role=UserRole.employee,
            joining_date=data.joining_date,
            annual_leave_limit=annual_leave_limit,
            actor_id=actor.id,
        )
        return AccountOut.model_validate(employee)

    @staticmethod
    async def list_employees(
        db: AsyncSession,
        actor: Account,
        pagination: PaginationParams,
        *,
        search: Optional[str] = None,
    ) -> EmployeeListResponse:
        """Paginated Employee-role accounts, newest first, optional name/email search."""

        ensure_admin(actor, "list employees")

        query = select(EmployeeAccount).order_by(EmployeeAccount.created_at.desc())

        if search and search.strip():
            pattern = f"%{search.strip()}%"
            query = query.where(
                or_(
                    EmployeeAccount.name.ilike(pattern),
                    EmployeeAccount.email.ilike(pattern),
                )
            )

        rows, meta = await paginate(db, query, pagination)

        return EmployeeListResponse(
            employees=[AccountOut.model_validate(emp) for emp in rows],
            pagination=EmployeePaginationMeta(
                current_page=meta.current_page,
                total_pages=meta.total_pages,
                total_employees=meta.total,
                limit=meta.limit,
                has_next_page=meta.has_next_page,
                has_prev_page=meta.has_prev_page,
            ),
        )
