"""
Comment business logic.

Any project member may read; members and up may comment. Only the author
may edit a comment; the author or a project admin may delete it.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from planboard.core.exceptions import access_denied, not_found
from planboard.core.websocket import RealtimeSink, push_best_effort
from planboard.models.activity_log import ActivityAction
from planboard.models.comment import Comment
from planboard.models.notification import NotificationType
from planboard.models.project import ProjectRole
from planboard.models.task import Task
from planboard.models.user import User
from planboard.schemas.activity import CommentDetails
from planboard.schemas.comment import CommentCreateRequest, CommentResponse, CommentUpdateRequest
from planboard.schemas.common import PageParams, Pagination, build_pagination
from planboard.schemas.user import UserSummary
from planboard.services.activity_service import ActivityService
from planboard.services.authorization import ProjectAccess, require_task_access
from planboard.services.notification_service import NotificationService


def comments_path(project_id: UUID, task_id: UUID) -> str:
    return f"projects/{project_id}/tasks/{task_id}/comments"


class CommentService:

    def __init__(self, db: AsyncSession, sink: RealtimeSink | None = None) -> None:
        self.db = db
        self.sink = sink
        self.activity = ActivityService(db, sink)
        self.notifications = NotificationService(db, sink)

    async def list_comments(
        self, task_id: UUID, user: User, params: PageParams
    ) -> tuple[list[CommentResponse], Pagination]:
        """Oldest first, paginated. Viewer+."""
        await require_task_access(self.db, task_id, user.id)

        total = await self.db.scalar(
            select(func.count(Comment.id)).where(Comment.task_id == task_id)
        ) or 0
        result = await self.db.execute(
            select(Comment, User)
            .join(User, Comment.user_id == User.id)
            .where(Comment.task_id == task_id)
            .order_by(Comment.created_at, Comment.id)
            .offset(params.offset)
            .limit(params.limit)
        )
        items = [self._to_response(c, author) for c, author in result.all()]
        return items, build_pagination(params, total)

    async def create_comment(
        self, task_id: UUID, user: User, data: CommentCreateRequest
    ) -> CommentResponse:
        """
        Create a comment on a task. Member+.
        Notifies the task's assignee and creator, except the author.
        """
        task, _ = await require_task_access(self.db, task_id, user.id, ProjectRole.member)

        comment = Comment(task_id=task.id, user_id=user.id, content=data.content, is_edited=False)
        self.db.add(comment)
        await self.db.flush()

        await self.activity.log(
            project_id=task.project_id,
            task_id=task.id,
            user_id=user.id,
            action=ActivityAction.COMMENT_ADDED,
            details=CommentDetails(comment_id=comment.id),
        )

        response = self._to_response(comment, user)
        await self._push(task, response)

        recipients = {task.assignee_id, task.created_by} - {None, user.id}
        for recipient_id in recipients:
            await self.notifications.notify(
                user_id=recipient_id,
                type=NotificationType.COMMENT_ADDED,
                message=f'{user.name} commented on "{task.title}"',
                related_id=task.id,
            )
        return response

    async def update_comment(
        self, comment_id: UUID, user: User, data: CommentUpdateRequest
    ) -> CommentResponse:
        """Edit a comment. Only the author can edit."""
        comment, task, _ = await self._get_comment(comment_id, user)

        if comment.user_id != user.id:
            raise access_denied("You can only edit your own comments", "NOT_COMMENT_AUTHOR")

        if data.content != comment.content:
            comment.content = data.content
            comment.is_edited = True
            await self.db.flush()
            await self.activity.log(
                project_id=task.project_id,
                task_id=task.id,
                user_id=user.id,
                action=ActivityAction.COMMENT_UPDATED,
                details=CommentDetails(comment_id=comment.id),
            )

        response = self._to_response(comment, user)
        await self._push(task, response)
        return response

    async def delete_comment(self, comment_id: UUID, user: User) -> None:
        """Delete a comment. Only the author or a project admin can delete."""
        comment, task, access = await self._get_comment(comment_id, user)

        if comment.user_id != user.id and not access.role.at_least(ProjectRole.admin):
            raise access_denied("You can only delete your own comments", "NOT_COMMENT_AUTHOR")

        await self.db.delete(comment)
        await self.db.flush()

        await self.activity.log(
            project_id=task.project_id,
            task_id=task.id,
            user_id=user.id,
            action=ActivityAction.COMMENT_DELETED,
            details=CommentDetails(comment_id=comment_id),
        )

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    async def _get_comment(self, comment_id: UUID, user: User) -> tuple[Comment, Task, ProjectAccess]:
        """Load a comment and check the requester can see its task."""
        comment = await self.db.scalar(select(Comment).where(Comment.id == comment_id))
        if comment is None:
            raise not_found("Comment not found", "COMMENT_NOT_FOUND")
        task, access = await require_task_access(self.db, comment.task_id, user.id)
        return comment, task, access

    async def _push(self, task: Task, response: CommentResponse) -> None:
        await push_best_effort(
            self.sink,
            comments_path(task.project_id, task.id),
            response.model_dump(mode="json", by_alias=True),
        )

    @staticmethod
    def _to_response(comment: Comment, author: User | None) -> CommentResponse:
        return CommentResponse(
            id=comment.id,
            task_id=comment.task_id,
            user_id=comment.user_id,
            content=comment.content,
            is_edited=comment.is_edited,
            created_at=comment.created_at,
            updated_at=comment.updated_at,
            user=UserSummary.model_validate(author) if author else None,
        )
