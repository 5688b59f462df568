"""
Label business logic.

Labels are project-scoped; any member may manage them, viewers may list.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from planboard.core.exceptions import not_found
from planboard.models.label import Label, TaskLabel
from planboard.models.project import ProjectRole
from planboard.models.user import User
from planboard.schemas.label import LabelCreateRequest, LabelResponse, LabelUpdateRequest
from planboard.services.authorization import require_project_role


class LabelService:

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_labels(self, project_id: UUID, user: User) -> list[LabelResponse]:
        await require_project_role(self.db, project_id, user.id)

        result = await self.db.execute(
            select(Label, func.count(TaskLabel.task_id))
            .outerjoin(TaskLabel, TaskLabel.label_id == Label.id)
            .where(Label.project_id == project_id)
            .group_by(Label.id)
            .order_by(Label.name)
        )
        return [self._to_response(label, count) for label, count in result.all()]

    async def create_label(
        self, project_id: UUID, user: User, data: LabelCreateRequest
    ) -> LabelResponse:
        await require_project_role(self.db, project_id, user.id, ProjectRole.member)

        label = Label(project_id=project_id, name=data.name, color=data.color)
        self.db.add(label)
        await self.db.flush()
        return self._to_response(label, 0)

    async def update_label(
        self, label_id: UUID, user: User, data: LabelUpdateRequest
    ) -> LabelResponse:
        label = await self._get_label(label_id, user, ProjectRole.member)

        if data.name is not None:
            label.name = data.name
        if data.color is not None:
            label.color = data.color
        await self.db.flush()

        count = await self.db.scalar(
            select(func.count(TaskLabel.task_id)).where(TaskLabel.label_id == label.id)
        )
        return self._to_response(label, count or 0)

    async def delete_label(self, label_id: UUID, user: User) -> None:
        """Deletes the label and detaches it from every task."""
        label = await self._get_label(label_id, user, ProjectRole.member)

        await self.db.execute(delete(TaskLabel).where(TaskLabel.label_id == label.id))
        await self.db.delete(label)
        await self.db.flush()

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    async def _get_label(self, label_id: UUID, user: User, minimum: ProjectRole) -> Label:
        label = await self.db.scalar(select(Label).where(Label.id == label_id))
        if label is None:
            raise not_found("Label not found", "LABEL_NOT_FOUND")
        await require_project_role(self.db, label.project_id, user.id, minimum)
        return label

    @staticmethod
    def _to_response(label: Label, task_count: int) -> LabelResponse:
        return LabelResponse(
            id=label.id,
            project_id=label.project_id,
            name=label.name,
            color=label.color,
            created_at=label.created_at,
            task_count=task_count,
        )
