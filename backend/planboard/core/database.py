"""
Async database engine and session factory.

One session per request: committed when the handler returns,
rolled back if it raises. Side effects that must not outlive a rollback
(queued emails) are registered with after_commit and run by commit().
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, Callable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from planboard.core.config import settings

logger = logging.getLogger(__name__)

async_engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
)

AsyncSessionLocal = async_sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

_AFTER_COMMIT_KEY = "after_commit"


def after_commit(session: AsyncSession, callback: Callable[[], None]) -> None:
    """Queue a callback to run once the session's transaction has committed."""
    session.info.setdefault(_AFTER_COMMIT_KEY, []).append(callback)


def discard_after_commit(session: AsyncSession) -> None:
    session.info.pop(_AFTER_COMMIT_KEY, None)


async def commit(session: AsyncSession) -> None:
    """
    Commit, then run the queued after_commit callbacks.

    Callback failures are logged; the data is already committed.
    """
    await session.commit()
    for callback in session.info.pop(_AFTER_COMMIT_KEY, []):
        try:
            callback()
        except Exception:
            logger.exception("Post-commit callback failed: %r", callback)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Yield a request-scoped session.

    Service methods only flush; the commit happens here so the mutation,
    its activity entry and its notifications land in one transaction.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await commit(session)
        except Exception:
            discard_after_commit(session)
            await session.rollback()
            raise


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory for long-lived handlers (WebSockets) that open short sessions on demand."""
    return AsyncSessionLocal
