"""Generic pagination utilities for SQLAlchemy async queries."""


import math
from typing import Any, Optional, Sequence, Union

from fastapi import Query
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from leave_management.common.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from leave_management.common.schemas import CamelModel


# ── FastAPI dependency ──────────────────────────────────────────────

def _positive_int(value: Optional[Union[int, str]], default: int) -> int:
    try:
        parsed = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    return parsed if parsed >= 1 else default


class PaginationParams:
    """Inject via ``Depends(PaginationParams)`` on any list endpoint.

    Missing, non-numeric or non-positive values fall back to the defaults;
    oversized pages are capped at ``MAX_PAGE_SIZE``.
    """

    def __init__(
        self,
        page: Optional[str] = Query(default=None, description="Page number (1-indexed)"),
        limit: Optional[str] = Query(
            default=None,
            description=f"Items per page (max {MAX_PAGE_SIZE})",
        ),
    ) -> None:
        self.page = _positive_int(page, 1)
        self.limit = min(_positive_int(limit, DEFAULT_PAGE_SIZE), MAX_PAGE_SIZE)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


# ── Pydantic response models ───────────────────────────────────────

class PaginationMeta(CamelModel):
    """Metadata block embedded in every paginated leave response."""

    current_page: int
    total_pages: int
    total: int
    limit: int
    has_next_page: bool
    has_prev_page: bool


class EmployeePaginationMeta(CamelModel):
    """Same block for employee listings, where the count is ``totalEmployees``."""

    current_page: int
    total_pages: int
    total_employees: int
    limit: int
    has_next_page: bool
    has_prev_page: bool


def build_pagination_meta(page: int, limit: int, total: int) -> PaginationMeta:
    total_pages = math.ceil(total / limit) if total else 0
    return PaginationMeta(
        current_page=page,
        total_pages=total_pages,
        total=total,
        limit=limit,
        has_next_page=page * limit < total,
        has_prev_page=page > 1,
    )


# ── SQLAlchemy helper ───────────────────────────────────────────────

async def paginate(
    session: AsyncSession,
    query: Select,
    params: PaginationParams,
    *,
    options: Sequence[Any] = (),
) -> tuple[Sequence[Any], PaginationMeta]:
    """
    Execute *query* with LIMIT/OFFSET derived from *params* and return
    the page of rows together with its ``PaginationMeta``.

    The caller is responsible for ordering the query; loader options
    are passed separately so they only apply to the page query.
    """
    # ── total count (strip ORDER BY for efficiency) ─────────────────
    count_q = select(func.count()).select_from(query.order_by(None).subquery())
    total: int = (await session.execute(count_q)).scalar_one()

    # ── paginated rows ──────────────────────────────────────────────
    rows = (
        await session.execute(
            query.options(*options).offset(params.offset).limit(params.limit)
        )
    ).scalars().all()

    return rows, build_pagination_meta(params.page, params.limit, total)
