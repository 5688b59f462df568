"""
FastAPI dependency injection functions.

Provides Redis connections, current user, real-time sink, pagination and
rate limiting. Database sessions come from planboard.core.database.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from uuid import UUID

import redis.asyncio as aioredis
from fastapi import Depends, Query, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from planboard.core.config import settings
from planboard.core.database import get_db
from planboard.core.exceptions import rate_limited, unauthenticated
from planboard.core.security import blacklist_redis_key, decode_access_token, rate_limit_redis_key
from planboard.core.websocket import RealtimeSink, manager
from planboard.models.user import User
from planboard.schemas.common import DEFAULT_PAGE_SIZE, MAX_PAGE, MAX_PAGE_SIZE, PageParams

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# HTTP Bearer scheme (auto_error=False so we can return custom 401)
# ---------------------------------------------------------------------------

bearer_scheme = HTTPBearer(auto_error=False)

# ---------------------------------------------------------------------------
# Redis
# ---------------------------------------------------------------------------

_redis_pool: aioredis.Redis | None = None


async def get_redis() -> aioredis.Redis:
    """
    Return a shared async Redis client.

    Uses a module-level pool so connections are reused across requests.
    """
    global _redis_pool
    if _redis_pool is None:
        _redis_pool = aioredis.from_url(
            str(settings.REDIS_URL),
            encoding="utf-8",
            decode_responses=True,
        )
    return _redis_pool


# ---------------------------------------------------------------------------
# Current user
# ---------------------------------------------------------------------------

async def authenticate_token(token: str, db: AsyncSession, redis: aioredis.Redis) -> User:
    """
    Resolve an access token to its User.

    Raises AppError(UNAUTHENTICATED) if the token is invalid or expired,
    its JTI is blacklisted, or the user no longer exists.
    """
    try:
        payload = decode_access_token(token)
        user_id = UUID(payload.get("sub", ""))
    except (JWTError, ValueError):
        raise unauthenticated("Token is invalid or expired", "INVALID_TOKEN")

    jti: str = payload.get("jti", "")
    if await redis.exists(blacklist_redis_key(jti)):
        raise unauthenticated("Token has been revoked", "TOKEN_REVOKED")

    user = await db.scalar(select(User).where(User.id == user_id))
    if user is None:
        raise unauthenticated("User not found", "USER_NOT_FOUND")
    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
) -> User:
    """Validate the Bearer JWT and return the authenticated User."""
    if credentials is None:
        raise unauthenticated("Authorization header required", "MISSING_TOKEN")
    return await authenticate_token(credentials.credentials, db, redis)


# ---------------------------------------------------------------------------
# Real-time sink
# ---------------------------------------------------------------------------

def get_realtime_sink() -> RealtimeSink | None:
    """The process-wide WebSocket manager, or None when push is disabled."""
    return manager if settings.REALTIME_ENABLED else None


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------

def get_page_params(
    page: int = Query(default=1, ge=1, le=MAX_PAGE),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1),
) -> PageParams:
    """page/limit query params; limit is capped rather than rejected."""
    return PageParams(page=page, limit=min(limit, MAX_PAGE_SIZE))


# ---------------------------------------------------------------------------
# Rate limiting
# ---------------------------------------------------------------------------

def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def rate_limit(
    scope: str,
    limit: Callable[[], int],
    window_seconds: Callable[[], int],
) -> Callable[..., Awaitable[None]]:
    """
    Dependency factory for a fixed-window limit per client IP.

    limit/window are read lazily so tests can override settings.

    Usage:
        @router.post("/login", dependencies=[Depends(rate_limit("login", ...))])
    """
    async def checker(
        request: Request,
        redis: aioredis.Redis = Depends(get_redis),
    ) -> None:
        key = rate_limit_redis_key(scope, client_ip(request))
        count = await redis.incr(key)
        if count == 1:
            await redis.expire(key, window_seconds())
        if count > limit():
            logger.info("Rate limit exceeded: scope=%s key=%s", scope, key)
            raise rate_limited("Too many requests, please try again later", "RATE_LIMITED")

    return checker
