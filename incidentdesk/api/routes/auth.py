"""Authentication routes: registration, login and the current account."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field

from ...config import IncidentDeskConfig
from ...dependencies import (
    current_account_id,
    get_account_service,
    get_app_config,
    get_login_limiter,
)
from ...engine.account_service import AccountService
from ...errors import Unauthenticated
from ...schemas import Account
from ...utils.rate_limiter import RateLimiter
from ...utils.security import create_access_token

router = APIRouter(prefix="/auth", tags=["auth"])


def _get_client_ip(request: Request) -> str:
    """Extract client IP from request."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class RegisterRequest(BaseModel):
    full_name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3, max_length=320)
    password: str = Field(min_length=1, max_length=256)
    avatar_url: Optional[str] = Field(default=None, max_length=1024)


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    account: Account


def _issue_token(account: Account, config: IncidentDeskConfig) -> TokenResponse:
    token = create_access_token(
        account.id,
        config.secret_key,
        algorithm=config.jwt_algorithm,
        expires_minutes=config.jwt_expiry_minutes,
        role=account.role,
    )
    return TokenResponse(access_token=token, account=account)


@router.post("/register", response_model=TokenResponse, status_code=201)
async def register(
    body: RegisterRequest,
    accounts: AccountService = Depends(get_account_service),
    config: IncidentDeskConfig = Depends(get_app_config),
):
    """Create an account and sign it in."""
    account = await accounts.register(
        full_name=body.full_name,
        email=body.email,
        password=body.password,
        avatar_url=body.avatar_url,
    )
    return _issue_token(account, config)


@router.post("/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    request: Request,
    accounts: AccountService = Depends(get_account_service),
    limiter: RateLimiter = Depends(get_login_limiter),
    config: IncidentDeskConfig = Depends(get_app_config),
):
    """Exchange email and password for a bearer token."""
    client_ip = _get_client_ip(request)
    if limiter.is_rate_limited(client_ip):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many login attempts. Please try again later.",
        )

    try:
        account = await accounts.authenticate(body.email, body.password)
    except Unauthenticated:
        limiter.record_attempt(client_ip)
        raise

    limiter.reset(client_ip)
    return _issue_token(account, config)


@router.get("/me", response_model=Account)
async def me(
    account_id: str = Depends(current_account_id),
    accounts: AccountService = Depends(get_account_service),
):
    """The authenticated account."""
    return await accounts.get_account(account_id)
