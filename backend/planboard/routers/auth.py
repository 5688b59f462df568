"""
Authentication endpoints.

Register, login, logout, token refresh, email verification, password reset.
"""

from __future__ import annotations

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, Request, status
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from planboard.core.config import settings
from planboard.core.database import get_db
from planboard.core.dependencies import get_current_user, get_redis, rate_limit
from planboard.core.exceptions import unauthenticated
from planboard.core.security import decode_access_token
from planboard.models.user import User
from planboard.schemas.auth import (
    AuthResponse,
    ForgotPasswordRequest,
    LoginRequest,
    LogoutRequest,
    RefreshRequest,
    RegisterRequest,
    ResendVerificationRequest,
    ResetPasswordRequest,
    TokenPair,
    VerifyEmailRequest,
)
from planboard.schemas.common import ApiResponse
from planboard.services.auth_service import AuthService

router = APIRouter()

login_rate_limit = rate_limit(
    "login",
    lambda: settings.LOGIN_RATE_LIMIT,
    lambda: settings.LOGIN_RATE_WINDOW_SECONDS,
)
password_reset_rate_limit = rate_limit(
    "password-reset",
    lambda: settings.PASSWORD_RESET_RATE_LIMIT,
    lambda: settings.PASSWORD_RESET_RATE_WINDOW_SECONDS,
)


def get_auth_service(
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
) -> AuthService:
    """Dependency that constructs AuthService."""
    return AuthService(db=db, redis=redis)


# ---------------------------------------------------------------------------
# Register
# ---------------------------------------------------------------------------

@router.post(
    "/register",
    response_model=ApiResponse[AuthResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
async def register(
    data: RegisterRequest,
    service: AuthService = Depends(get_auth_service),
) -> ApiResponse[AuthResponse]:
    """
    Create a new user account.

    - Email must be unique (case-insensitive)
    - Password must be min 8 chars and contain at least 1 number
    - A verification email is queued
    """
    return ApiResponse(data=await service.register(data), message="Registration successful")


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------

@router.post(
    "/login",
    response_model=ApiResponse[AuthResponse],
    summary="Login with email and password",
    dependencies=[Depends(login_rate_limit)],
)
async def login(
    data: LoginRequest,
    service: AuthService = Depends(get_auth_service),
) -> ApiResponse[AuthResponse]:
    return ApiResponse(data=await service.login(data))


# ---------------------------------------------------------------------------
# Refresh
# ---------------------------------------------------------------------------

@router.post(
    "/refresh",
    response_model=ApiResponse[TokenPair],
    summary="Refresh access token",
)
async def refresh(
    data: RefreshRequest,
    service: AuthService = Depends(get_auth_service),
) -> ApiResponse[TokenPair]:
    """
    Exchange a valid refresh token for a new access + refresh token pair.

    Refresh tokens are rotated on every use.
    """
    return ApiResponse(data=await service.refresh(data.refresh_token))


# ---------------------------------------------------------------------------
# Logout
# ---------------------------------------------------------------------------

@router.post(
    "/logout",
    response_model=ApiResponse[None],
    summary="Logout and revoke tokens",
)
async def logout(
    data: LogoutRequest,
    request: Request,
    current_user: User = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
) -> ApiResponse[None]:
    """
    Logout the current user.

    - Blacklists the current access token JTI in Redis
    - Deletes the stored refresh token
    """
    auth_header = request.headers.get("Authorization", "")
    access_token = auth_header.removeprefix("Bearer ").strip()

    try:
        jti: str = decode_access_token(access_token).get("jti", "")
    except JWTError:
        raise unauthenticated("Could not decode access token", "INVALID_TOKEN")

    await service.logout(access_token_jti=jti, refresh_token=data.refresh_token)
    return ApiResponse(message="Logged out")


# ---------------------------------------------------------------------------
# Email verification
# ---------------------------------------------------------------------------

@router.post(
    "/verify-email",
    response_model=ApiResponse[None],
    summary="Verify email address",
)
async def verify_email(
    data: VerifyEmailRequest,
    service: AuthService = Depends(get_auth_service),
) -> ApiResponse[None]:
    await service.verify_email(data.token)
    return ApiResponse(message="Email verified")


@router.post(
    "/resend-verification",
    response_model=ApiResponse[None],
    summary="Resend the verification email",
    dependencies=[Depends(password_reset_rate_limit)],
)
async def resend_verification(
    data: ResendVerificationRequest,
    service: AuthService = Depends(get_auth_service),
) -> ApiResponse[None]:
    """Always succeeds to prevent user enumeration."""
    await service.resend_verification(data.email)
    return ApiResponse(message="If the account exists and is unverified, an email has been sent")


# ---------------------------------------------------------------------------
# Password Reset
# ---------------------------------------------------------------------------

@router.post(
    "/forgot-password",
    response_model=ApiResponse[None],
    summary="Request a password reset email",
    dependencies=[Depends(password_reset_rate_limit)],
)
async def forgot_password(
    data: ForgotPasswordRequest,
    service: AuthService = Depends(get_auth_service),
) -> ApiResponse[None]:
    """Always succeeds to prevent user enumeration."""
    await service.forgot_password(data.email)
    return ApiResponse(message="If the account exists, a reset email has been sent")


@router.post(
    "/reset-password",
    response_model=ApiResponse[None],
    summary="Reset password with a token",
    dependencies=[Depends(password_reset_rate_limit)],
)
async def reset_password(
    data: ResetPasswordRequest,
    service: AuthService = Depends(get_auth_service),
) -> ApiResponse[None]:
    await service.reset_password(data.token, data.password)
    return ApiResponse(message="Password has been reset")
