"""
Authentication business logic.

Handles user registration, login, token refresh, logout, email verification
and password reset. Routers only handle HTTP concerns.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from functools import partial
from uuid import UUID

import redis.asyncio as aioredis
from jose import JWTError
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from planboard.core.config import settings
from planboard.core.database import after_commit
from planboard.core.exceptions import (
    access_denied,
    conflict,
    unauthenticated,
    validation_error,
)
from planboard.core.security import (
    blacklist_redis_key,
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    generate_token,
    hash_password,
    hash_token,
    verify_password,
)
from planboard.models.base import as_utc, utcnow
from planboard.models.user import RefreshToken, User
from planboard.schemas.auth import AuthResponse, LoginRequest, RegisterRequest, TokenPair
from planboard.schemas.user import UserResponse

logger = logging.getLogger(__name__)


def _queue_verification_email(to_email: str, name: str, token: str) -> None:
    """Import is deferred to avoid circular imports at module load."""
    from planboard.workers.email_tasks import send_verification_email
    send_verification_email.delay(
        to_email=to_email,
        name=name,
        token=token,
        frontend_url=settings.FRONTEND_URL,
    )


def _queue_password_reset_email(to_email: str, name: str, token: str) -> None:
    from planboard.workers.email_tasks import send_password_reset_email
    send_password_reset_email.delay(
        to_email=to_email,
        name=name,
        token=token,
        frontend_url=settings.FRONTEND_URL,
    )


def set_verification_token(user: User) -> str:
    token = generate_token()
    user.email_verification_token_hash = hash_token(token)
    user.email_verification_expires = utcnow() + timedelta(hours=settings.EMAIL_VERIFICATION_EXPIRE_HOURS)
    return token


def send_verification(db: AsyncSession, user: User, token: str) -> None:
    """
    Queue the verification email once the token is committed.

    Queue failures are logged by the commit; the account exists regardless.
    """
    after_commit(db, partial(_queue_verification_email, user.email, user.name, token))


class AuthService:
    """Handles all authentication operations."""

    def __init__(self, db: AsyncSession, redis: aioredis.Redis) -> None:
        self.db = db
        self.redis = redis

    # -----------------------------------------------------------------------
    # Register
    # -----------------------------------------------------------------------

    async def register(self, data: RegisterRequest) -> AuthResponse:
        """
        Register a new user.

        - Validates email uniqueness (case-insensitive)
        - Hashes password
        - Creates user record with a pending verification token
        - Queues the verification email
        - Issues JWT tokens
        """
        email = data.email.lower()
        existing = await self.db.scalar(select(User.id).where(User.email == email))
        if existing is not None:
            raise conflict("User with this email already exists", "EMAIL_TAKEN")

        user = User(
            email=email,
            password_hash=hash_password(data.password),
            name=data.name,
            email_verified=False,
        )
        token = set_verification_token(user)
        self.db.add(user)
        await self.db.flush()  # Get user.id without committing

        send_verification(self.db, user, token)
        return await self._issue_tokens(user)

    # -----------------------------------------------------------------------
    # Login
    # -----------------------------------------------------------------------

    async def login(self, data: LoginRequest) -> AuthResponse:
        """
        Authenticate user with email + password.

        Raises 401 for invalid credentials (never reveals which field is wrong)
        and 403 while the email is unverified.
        """
        user = await self.db.scalar(select(User).where(User.email == data.email.lower()))

        if user is None or not verify_password(data.password, user.password_hash):
            raise unauthenticated("Invalid email or password", "INVALID_CREDENTIALS")

        if settings.REQUIRE_EMAIL_VERIFICATION and not user.email_verified:
            raise access_denied("Please verify your email before logging in", "EMAIL_NOT_VERIFIED")

        return await self._issue_tokens(user)

    # -----------------------------------------------------------------------
    # Refresh
    # -----------------------------------------------------------------------

    async def refresh(self, refresh_token: str) -> TokenPair:
        """
        Exchange a valid refresh token for a new token pair.

        - Validates refresh token JWT
        - Checks the token is still stored and unexpired
        - Rotates: deletes the old row, issues a new pair
        """
        try:
            payload = decode_refresh_token(refresh_token)
            user_id = UUID(payload.get("sub", ""))
        except (JWTError, ValueError):
            raise unauthenticated("Invalid or expired refresh token", "INVALID_TOKEN")

        stored = await self.db.scalar(
            select(RefreshToken).where(RefreshToken.token_hash == hash_token(refresh_token))
        )
        if stored is None or stored.user_id != user_id or as_utc(stored.expires_at) <= utcnow():
            raise unauthenticated("Invalid or expired refresh token", "TOKEN_REVOKED")

        user = await self.db.scalar(select(User).where(User.id == user_id))
        if user is None:
            raise unauthenticated("User not found", "USER_NOT_FOUND")

        await self.db.delete(stored)
        await self.db.flush()

        tokens = await self._issue_tokens(user)
        return TokenPair(
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            expires_in=tokens.expires_in,
        )

    # -----------------------------------------------------------------------
    # Logout
    # -----------------------------------------------------------------------

    async def logout(self, access_token_jti: str, refresh_token: str) -> None:
        """
        Logout user by:
        - Blacklisting the access token JTI until it would have expired
        - Deleting the stored refresh token
        """
        await self.redis.setex(
            blacklist_redis_key(access_token_jti),
            settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            "1",
        )
        await self.db.execute(
            delete(RefreshToken).where(RefreshToken.token_hash == hash_token(refresh_token))
        )

    # -----------------------------------------------------------------------
    # Email verification
    # -----------------------------------------------------------------------

    async def verify_email(self, token: str) -> None:
        user = await self.db.scalar(
            select(User).where(User.email_verification_token_hash == hash_token(token))
        )
        if user is None or as_utc(user.email_verification_expires) <= utcnow():
            raise validation_error("Invalid or expired verification token", "INVALID_TOKEN")
        if user.email_verified:
            raise validation_error("Email already verified", "ALREADY_VERIFIED")

        user.email_verified = True
        user.email_verification_token_hash = None
        user.email_verification_expires = None
        await self.db.flush()

    async def resend_verification(self, email: str) -> None:
        """Silent for unknown or already verified addresses."""
        user = await self.db.scalar(select(User).where(User.email == email.lower()))
        if user is None or user.email_verified:
            return

        token = set_verification_token(user)
        await self.db.flush()
        send_verification(self.db, user, token)

    # -----------------------------------------------------------------------
    # Forgot Password
    # -----------------------------------------------------------------------

    async def forgot_password(self, email: str) -> None:
        """
        Initiate password reset flow.

        Always returns successfully to prevent user enumeration.
        Queues the reset email via Celery after commit if the user exists.
        """
        user = await self.db.scalar(select(User).where(User.email == email.lower()))
        if user is None:
            # Silent success, no user enumeration
            return

        token = generate_token()
        user.password_reset_token_hash = hash_token(token)
        user.password_reset_expires = utcnow() + timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES)
        await self.db.flush()

        after_commit(self.db, partial(_queue_password_reset_email, user.email, user.name, token))

    # -----------------------------------------------------------------------
    # Reset Password
    # -----------------------------------------------------------------------

    async def reset_password(self, token: str, new_password: str) -> None:
        """
        Complete password reset.

        - Validates the token hash and expiry
        - Updates user password and clears the token
        - Revokes every refresh token of the user
        """
        user = await self.db.scalar(
            select(User).where(User.password_reset_token_hash == hash_token(token))
        )
        if user is None or as_utc(user.password_reset_expires) <= utcnow():
            raise validation_error("Invalid or expired reset token", "INVALID_TOKEN")

        user.password_hash = hash_password(new_password)
        user.password_reset_token_hash = None
        user.password_reset_expires = None
        await self.db.flush()

        await self.db.execute(delete(RefreshToken).where(RefreshToken.user_id == user.id))
        logger.info("Password reset: user=%s, refresh tokens revoked", user.id)

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    async def _issue_tokens(self, user: User) -> AuthResponse:
        """
        Create an access + refresh token pair for a user.

        Only the SHA-256 of the refresh token is stored.
        """
        user_id = str(user.id)

        refresh_token, expires_at = create_refresh_token(user_id)
        access_token = create_access_token(user_id, user.email)

        self.db.add(
            RefreshToken(
                token_hash=hash_token(refresh_token),
                user_id=user.id,
                expires_at=expires_at,
            )
        )
        await self.db.flush()

        return AuthResponse(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            user=UserResponse.model_validate(user),
        )
