"""
Due-date reminder tasks.

Hourly sweep over assigned, unfinished tasks: overdue tasks and tasks due
within DUE_SOON_HOURS notify their assignee (in-app plus email), at most
once per task, type and UTC day.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta

import redis.asyncio as aioredis
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from planboard.workers.celery_app import celery_app

logger = logging.getLogger(__name__)

REMINDER_KEY_TTL_SECONDS = 60 * 60 * 24


def reminder_redis_key(task_id: object, notification_type: str, day: str) -> str:
    return f"reminder:{task_id}:{notification_type}:{day}"


@celery_app.task(
    name="planboard.workers.reminder_tasks.send_due_date_reminders",
    bind=True,
    max_retries=3,
    default_retry_delay=60,
)
def send_due_date_reminders(self) -> dict[str, int]:  # type: ignore[no-untyped-def]
    """Celery entry point; runs the async sweep on a fresh event loop."""
    try:
        # Forked workers inherit pooled connections bound to the parent's loop
        from planboard.core.database import async_engine
        async_engine.sync_engine.dispose()

        return asyncio.run(_sweep())
    except Exception as exc:
        logger.error("send_due_date_reminders failed: %s", exc)
        raise self.retry(exc=exc)


async def _sweep() -> dict[str, int]:
    from planboard.core.config import settings
    from planboard.core.database import AsyncSessionLocal, commit

    redis = aioredis.from_url(str(settings.REDIS_URL), encoding="utf-8", decode_responses=True)
    try:
        async with AsyncSessionLocal() as session:
            counts = await run_due_date_reminders(session, redis)
            await commit(session)
    finally:
        await redis.aclose()
    return counts


async def run_due_date_reminders(
    db: AsyncSession,
    redis: aioredis.Redis,
    now: datetime | None = None,
) -> dict[str, int]:
    """
    Notify assignees of overdue and soon-due tasks.

    Returns the number of reminders sent per notification type. The caller
    owns the transaction.
    """
    from planboard.core.config import settings
    from planboard.models.base import as_utc, utcnow
    from planboard.models.notification import NotificationType
    from planboard.models.task import Task, TaskStatus
    from planboard.services.notification_service import NotificationService

    now = as_utc(now) if now is not None else utcnow()
    horizon = now + timedelta(hours=settings.DUE_SOON_HOURS)
    day = now.date().isoformat()

    result = await db.execute(
        select(Task)
        .where(
            Task.assignee_id.is_not(None),
            Task.due_date.is_not(None),
            Task.due_date <= horizon,
            Task.status.not_in([TaskStatus.DONE, TaskStatus.CANCELLED]),
        )
        .order_by(Task.due_date)
    )
    tasks = result.scalars().all()

    notifications = NotificationService(db)
    counts = {NotificationType.TASK_OVERDUE.value: 0, NotificationType.TASK_DUE_SOON.value: 0}

    for task in tasks:
        due = as_utc(task.due_date)
        if due < now:
            notification_type = NotificationType.TASK_OVERDUE
            message = f'Task "{task.title}" is overdue'
        else:
            notification_type = NotificationType.TASK_DUE_SOON
            message = f'Task "{task.title}" is due {due:%Y-%m-%d %H:%M} UTC'

        key = reminder_redis_key(task.id, notification_type.value, day)
        if not await redis.set(key, "1", nx=True, ex=REMINDER_KEY_TTL_SECONDS):
            continue

        sent = await notifications.notify(
            task.assignee_id,
            notification_type,
            message,
            related_id=task.id,
            send_email=True,
        )
        if sent is None:
            # Let the next sweep retry
            await redis.delete(key)
            continue
        counts[notification_type.value] += 1

    logger.info(
        "Due-date reminders sent: overdue=%d due_soon=%d",
        counts[NotificationType.TASK_OVERDUE.value],
        counts[NotificationType.TASK_DUE_SOON.value],
    )
    return counts
