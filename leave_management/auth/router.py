"""Auth router — register, login, current account."""


from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from leave_management.auth.dependencies import get_current_user
from leave_management.auth.schemas import LoginRequest, RegisterRequest, TokenResponse
from leave_management.auth.service import authenticate, register_account
from leave_management.common.rate_limit import limiter
from leave_management.config import settings
from leave_management.database import get_db
from leave_management.employees.models import Account
from leave_management.employees.schemas import AccountOut

router = APIRouter(prefix="", tags=["auth"])


# ── POST /register ──────────────────────────────────────────────────

@router.post(
    "/register",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db),
):
    """Create an account and return a token for it."""
    return await register_account(
        db, body, annual_leave_limit=settings.ANNUAL_LEAVE_LIMIT,
    )


# ── POST /login ─────────────────────────────────────────────────────

@router.post("/login", response_model=TokenResponse)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login(
    request: Request,
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """Exchange email + password for an access token."""
    return await authenticate(db, body)


# ── GET /me ─────────────────────────────────────────────────────────

@router.get("/me", response_model=AccountOut)
async def me(account: Account = Depends(get_current_user)):
    return account
