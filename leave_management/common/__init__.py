"""Common module — shared utilities for the leave management service."""

from leave_management.common.audit import AuditTrail, create_audit_entry
from leave_management.common.constants import (
    BLOCKING_LEAVE_STATUSES,
    CALENDAR_DATE_FORMAT,
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    AccountStatus,
    LeaveStatus,
    UserRole,
)
from leave_management.common.exceptions import (
    AccessPolicyException,
    AppException,
    ConflictException,
    DomainException,
    DuplicateException,
    ForbiddenException,
    InsufficientBalanceException,
    InvalidInputException,
    InvalidRangeException,
    NotFoundException,
    UnauthenticatedException,
    register_exception_handlers,
)
from leave_management.common.pagination import (
    EmployeePaginationMeta,
    PaginationMeta,
    PaginationParams,
    paginate,
)

__all__ = [
    # Audit
    "AuditTrail",
    "create_audit_entry",
    # Constants / Enums
    "AccountStatus",
    "LeaveStatus",
    "UserRole",
    "BLOCKING_LEAVE_STATUSES",
    "CALENDAR_DATE_FORMAT",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    # Exceptions
    "AccessPolicyException",
    "AppException",
    "ConflictException",
    "DomainException",
    "DuplicateException",
    "ForbiddenException",
    "InsufficientBalanceException",
    "InvalidInputException",
    "InvalidRangeException",
    "NotFoundException",
    "UnauthenticatedException",
    "register_exception_handlers",
    # Pagination
    "EmployeePaginationMeta",
    "PaginationMeta",
    "PaginationParams",
    "paginate",
]
