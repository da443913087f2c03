"""Access policy checks applied at the top of every leave operation.

Routers already gate admin-only endpoints with ``require_role``; these
checks make the same guarantees hold when the service layer is called
directly.
"""

from __future__ import annotations

import uuid
from typing import Optional

from leave_management.common.exceptions import ForbiddenException, UnauthenticatedException
from leave_management.employees.models import Account


def ensure_authenticated(actor: Optional[Account]) -> Account:
    if actor is None:
        raise UnauthenticatedException()
    if not actor.is_active:
        raise UnauthenticatedException("Account is inactive.")
    return actor


def ensure_admin(actor: Optional[Account], action: str = "perform this action") -> Account:
    actor = ensure_authenticated(actor)
    if not actor.is_admin:
        raise ForbiddenException(f"Access denied. Admin role required to {action}.")
    return actor


def ensure_self_or_admin(
    actor: Optional[Account],
    owner_id: uuid.UUID,
    detail: str = "Access denied.",
) -> Account:
    actor = ensure_authenticated(actor)
    if actor.is_admin or actor.id == owner_id:
        return actor
    raise ForbiddenException(detail)
