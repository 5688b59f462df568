"""
Authentication schemas.

Request/response models for all auth endpoints.
"""

from __future__ import annotations

from pydantic import EmailStr, Field, field_validator

from planboard.schemas.common import CamelModel
from planboard.schemas.user import UserResponse


def _password_must_contain_number(v: str) -> str:
    if not any(c.isdigit() for c in v):
        raise ValueError("Password must contain at least one number")
    return v


# ---------------------------------------------------------------------------
# Register
# ---------------------------------------------------------------------------

class RegisterRequest(CamelModel):
    """Request body for POST /auth/register."""

    name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)

    @field_validator("password")
    @classmethod
    def password_must_contain_number(cls, v: str) -> str:
        return _password_must_contain_number(v)


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------

class LoginRequest(CamelModel):
    """Request body for POST /auth/login."""

    email: EmailStr
    password: str = Field(min_length=1)


class TokenPair(CamelModel):
    """Access + refresh token pair."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int = Field(description="Access token TTL in seconds")


class AuthResponse(TokenPair):
    """Response for register and login: tokens plus the user profile."""

    user: UserResponse


# ---------------------------------------------------------------------------
# Refresh / Logout
# ---------------------------------------------------------------------------

class RefreshRequest(CamelModel):
    """Request body for POST /auth/refresh."""

    refresh_token: str


class LogoutRequest(CamelModel):
    """Request body for POST /auth/logout."""

    refresh_token: str


# ---------------------------------------------------------------------------
# Email verification
# ---------------------------------------------------------------------------

class VerifyEmailRequest(CamelModel):
    """Request body for POST /auth/verify-email."""

    token: str = Field(min_length=1)


class ResendVerificationRequest(CamelModel):
    """Request body for POST /auth/resend-verification."""

    email: EmailStr


# ---------------------------------------------------------------------------
# Password Reset
# ---------------------------------------------------------------------------

class ForgotPasswordRequest(CamelModel):
    """Request body for POST /auth/forgot-password."""

    email: EmailStr


class ResetPasswordRequest(CamelModel):
    """Request body for POST /auth/reset-password."""

    token: str = Field(min_length=1)
    password: str = Field(min_length=8, max_length=128)

    @field_validator("password")
    @classmethod
    def password_must_contain_number(cls, v: str) -> str:
        return _password_must_contain_number(v)
