"""
Business logic for notifications.
Handles creation, dispatch, and read-state management.
All queries scoped by user_id.
"""

from __future__ import annotations

import logging
import uuid
from functools import partial

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from planboard.core.database import after_commit
from planboard.core.exceptions import access_denied, not_found
from planboard.core.websocket import RealtimeSink, push_best_effort
from planboard.models.notification import Notification, NotificationType
from planboard.models.user import User
from planboard.schemas.common import PageParams, Pagination, build_pagination
from planboard.schemas.notification import NotificationResponse

logger = logging.getLogger(__name__)

_EMAIL_SUBJECTS: dict[NotificationType, str] = {
    NotificationType.TASK_ASSIGNED: "You have been assigned a task",
    NotificationType.TASK_DUE_SOON: "A task is due soon",
    NotificationType.TASK_OVERDUE: "A task is overdue",
    NotificationType.PROJECT_INVITE: "You have been added to a project",
    NotificationType.COMMENT_ADDED: "New comment on your task",
}


def notification_path(user_id: uuid.UUID) -> str:
    return f"users/{user_id}/notifications"


def _queue_email(to_email: str, subject: str, message: str) -> None:
    """
    Fire-and-forget: enqueue the Celery email task.
    Import is deferred to avoid circular imports at module load.
    """
    from planboard.workers.email_tasks import send_notification_email
    send_notification_email.delay(to_email=to_email, subject=subject, message=message)


class NotificationService:
    def __init__(self, db: AsyncSession, sink: RealtimeSink | None = None) -> None:
        self._db = db
        self._sink = sink

    # ------------------------------------------------------------------
    # Dispatch
    # Called from project/task/comment services and the reminder task
    # ------------------------------------------------------------------

    async def notify(
        self,
        user_id: uuid.UUID,
        type: NotificationType,
        message: str,
        related_id: uuid.UUID | None = None,
        send_email: bool = False,
    ) -> Notification | None:
        """
        Persist, push and optionally email a notification.

        The row is written inside a savepoint: a failure rolls back only the
        notification, is logged, and returns None. Never raises.
        """
        notification = Notification(
            user_id=user_id,
            type=type,
            message=message,
            read=False,
            related_id=related_id,
        )
        try:
            async with self._db.begin_nested():
                self._db.add(notification)
                await self._db.flush()
        except SQLAlchemyError:
            logger.exception("Failed to persist notification: user=%s type=%s", user_id, type.value)
            return None

        payload = NotificationResponse.model_validate(notification).model_dump(mode="json", by_alias=True)
        await push_best_effort(self._sink, notification_path(user_id), payload)

        if send_email:
            await self._send_email(user_id, type, message)

        return notification

    async def _send_email(self, user_id: uuid.UUID, type: NotificationType, message: str) -> None:
        try:
            email = await self._db.scalar(select(User.email).where(User.id == user_id))
            if email is None:
                return
            # Queued only once the row is committed
            after_commit(self._db, partial(_queue_email, email, _EMAIL_SUBJECTS[type], message))
        except Exception:
            logger.exception("Failed to queue notification email: user=%s type=%s", user_id, type.value)

    # ------------------------------------------------------------------
    # GET /notifications
    # ------------------------------------------------------------------

    async def list_notifications(
        self,
        user_id: uuid.UUID,
        params: PageParams,
        read: bool | None = None,
    ) -> tuple[list[NotificationResponse], Pagination]:
        """
        List notifications for the current user, newest first.
        Optionally filter by read state.
        """
        base_stmt = select(Notification).where(Notification.user_id == user_id)
        if read is not None:
            base_stmt = base_stmt.where(Notification.read.is_(read))

        count_stmt = select(func.count()).select_from(base_stmt.subquery())
        total = await self._db.scalar(count_stmt) or 0

        rows_stmt = (
            base_stmt
            .order_by(Notification.created_at.desc(), Notification.id)
            .offset(params.offset)
            .limit(params.limit)
        )
        result = await self._db.execute(rows_stmt)
        notifications = result.scalars().all()

        return (
            [NotificationResponse.model_validate(n) for n in notifications],
            build_pagination(params, total),
        )

    # ------------------------------------------------------------------
    # PATCH /notifications/{id}/read
    # ------------------------------------------------------------------

    async def mark_read(
        self,
        notification_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> NotificationResponse:
        """Mark a single notification as read. Only its recipient may do so."""
        notification = await self._db.scalar(
            select(Notification).where(Notification.id == notification_id)
        )
        if notification is None:
            raise not_found("Notification not found", "NOTIFICATION_NOT_FOUND")
        if notification.user_id != user_id:
            raise access_denied("Not your notification", "NOT_NOTIFICATION_OWNER")

        notification.read = True
        await self._db.flush()
        return NotificationResponse.model_validate(notification)

    # ------------------------------------------------------------------
    # POST /notifications/mark-all-read
    # ------------------------------------------------------------------

    async def mark_all_read(self, user_id: uuid.UUID) -> int:
        """Mark all unread notifications as read. Returns count of updated rows."""
        result = await self._db.execute(
            update(Notification)
            .where(
                Notification.user_id == user_id,
                Notification.read.is_(False),
            )
            .values(read=True)
        )
        return result.rowcount
