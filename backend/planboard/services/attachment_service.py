"""
Attachment business logic.

Only metadata is stored; the file itself lives at ``file_url``.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from planboard.core.exceptions import access_denied, not_found
from planboard.core.websocket import RealtimeSink
from planboard.models.activity_log import ActivityAction
from planboard.models.attachment import Attachment
from planboard.models.project import ProjectRole
from planboard.models.user import User
from planboard.schemas.activity import AttachmentDetails
from planboard.schemas.attachment import AttachmentCreateRequest, AttachmentResponse
from planboard.schemas.user import UserSummary
from planboard.services.activity_service import ActivityService
from planboard.services.authorization import require_task_access


class AttachmentService:

    def __init__(self, db: AsyncSession, sink: RealtimeSink | None = None) -> None:
        self.db = db
        self.activity = ActivityService(db, sink)

    async def list_attachments(self, task_id: UUID, user: User) -> list[AttachmentResponse]:
        """Newest first. Viewer+."""
        await require_task_access(self.db, task_id, user.id)

        result = await self.db.execute(
            select(Attachment, User)
            .join(User, Attachment.uploaded_by == User.id)
            .where(Attachment.task_id == task_id)
            .order_by(Attachment.created_at.desc(), Attachment.id)
        )
        return [self._to_response(a, uploader) for a, uploader in result.all()]

    async def create_attachment(
        self, task_id: UUID, user: User, data: AttachmentCreateRequest
    ) -> AttachmentResponse:
        """Record an uploaded file against a task. Member+."""
        task, _ = await require_task_access(self.db, task_id, user.id, ProjectRole.member)

        attachment = Attachment(
            task_id=task.id,
            file_name=data.file_name,
            file_url=data.file_url,
            file_type=data.file_type,
            file_size=data.file_size,
            uploaded_by=user.id,
        )
        self.db.add(attachment)
        await self.db.flush()

        await self.activity.log(
            project_id=task.project_id,
            task_id=task.id,
            user_id=user.id,
            action=ActivityAction.ATTACHMENT_ADDED,
            details=AttachmentDetails(attachment_id=attachment.id, file_name=attachment.file_name),
        )
        return self._to_response(attachment, user)

    async def delete_attachment(self, attachment_id: UUID, user: User) -> None:
        """The uploader or a project admin can delete."""
        attachment = await self.db.scalar(select(Attachment).where(Attachment.id == attachment_id))
        if attachment is None:
            raise not_found("Attachment not found", "ATTACHMENT_NOT_FOUND")

        task, access = await require_task_access(self.db, attachment.task_id, user.id)
        if attachment.uploaded_by != user.id and not access.role.at_least(ProjectRole.admin):
            raise access_denied("You can only delete your own attachments", "NOT_ATTACHMENT_OWNER")

        file_name = attachment.file_name
        await self.db.delete(attachment)
        await self.db.flush()

        await self.activity.log(
            project_id=task.project_id,
            task_id=task.id,
            user_id=user.id,
            action=ActivityAction.ATTACHMENT_DELETED,
            details=AttachmentDetails(attachment_id=attachment_id, file_name=file_name),
        )

    @staticmethod
    def _to_response(attachment: Attachment, uploader: User | None) -> AttachmentResponse:
        return AttachmentResponse(
            id=attachment.id,
            task_id=attachment.task_id,
            file_name=attachment.file_name,
            file_url=attachment.file_url,
            file_type=attachment.file_type,
            file_size=attachment.file_size,
            uploaded_by=attachment.uploaded_by,
            created_at=attachment.created_at,
            uploader=UserSummary.model_validate(uploader) if uploader else None,
        )
