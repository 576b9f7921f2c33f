"""Authentication API routes.

Provides endpoints for:
- User registration
- Login/logout
- Token refresh
- Current user profile
"""

from typing import Any

from fastapi import APIRouter, Request, status
from pydantic import ValidationError as PydanticValidationError

from taskboard.core.auth.dependencies import CurrentUser
from taskboard.core.auth.schemas import TokenPair
from taskboard.core.auth.service import SessionSvc
from taskboard.modules.users.models import User
from taskboard.modules.users.schemas import (
    AuthResponse,
    LoginRequest,
    LogoutResponse,
    RefreshTokenRequest,
    RegisterRequest,
    TokenResponse,
    UserResponse,
)


router = APIRouter(prefix="/auth", tags=["auth"])


def _auth_response(user: User, tokens: TokenPair) -> AuthResponse:
    return AuthResponse(
        user=UserResponse.model_validate(user),
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        expires_in=tokens.expires_in,
    )


async def _read_refresh_token(request: Request) -> str | None:
    """Pull ``refresh_token`` out of the body, tolerating any malformed input."""
    try:
        payload: Any = await request.json()
        return RefreshTokenRequest.model_validate(payload).refresh_token
    except (ValueError, PydanticValidationError):
        return None


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register new user",
    description="Creates a user account and opens a session for it.",
)
async def register(data: RegisterRequest, service: SessionSvc) -> AuthResponse:
    """Register a new user."""
    user, tokens = await service.register(
        email=data.email,
        password=data.password,
        name=data.name,
    )
    return _auth_response(user, tokens)


@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Login with email and password",
    description="Authenticate with email and password to receive access and refresh tokens.",
)
async def login(data: LoginRequest, service: SessionSvc) -> AuthResponse:
    """Login with email and password."""
    user, tokens = await service.login(email=data.email, password=data.password)
    return _auth_response(user, tokens)


@router.post(
    "/refresh",
    response_model=TokenResponse,
    summary="Refresh tokens",
    description="Exchange a refresh token for a new pair. The old refresh token is consumed.",
)
async def refresh_tokens(data: RefreshTokenRequest, service: SessionSvc) -> TokenResponse:
    """Rotate the refresh token."""
    tokens = await service.refresh(data.refresh_token)
    return TokenResponse(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        expires_in=tokens.expires_in,
    )


@router.post(
    "/logout",
    response_model=LogoutResponse,
    summary="Logout",
    description="Forget the refresh token. Succeeds even if the token is unknown or the body is malformed.",
)
async def logout(request: Request, service: SessionSvc) -> LogoutResponse:
    """Logout by removing the refresh token."""
    await service.logout(await _read_refresh_token(request))
    return LogoutResponse()


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get current user",
    description="Returns the currently authenticated user's profile.",
)
async def get_me(current_user: CurrentUser) -> UserResponse:
    """Get current user profile."""
    return UserResponse.model_validate(current_user)
