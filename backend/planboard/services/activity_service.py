"""
Activity log writer and reader.

Entries are added to the caller's session, so they commit or roll back
together with the mutation they describe.
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from planboard.core.websocket import RealtimeSink, push_best_effort
from planboard.models.activity_log import ActivityAction, ActivityLog
from planboard.models.user import User
from planboard.schemas.activity import ActivityDetails, ActivityResponse, activity_details_adapter
from planboard.schemas.common import PageParams, Pagination, build_pagination
from planboard.schemas.user import UserSummary
from planboard.services.authorization import require_project_role

logger = logging.getLogger(__name__)


def activity_path(project_id: UUID) -> str:
    return f"projects/{project_id}/activity"


class ActivityService:
    """Append-only writer plus paginated listing."""

    def __init__(self, db: AsyncSession, sink: RealtimeSink | None = None) -> None:
        self.db = db
        self.sink = sink

    async def log(
        self,
        project_id: UUID,
        user_id: UUID,
        action: ActivityAction,
        details: ActivityDetails,
        task_id: UUID | None = None,
    ) -> ActivityLog:
        """
        Append one entry and push it to the project's activity path.

        Errors while writing propagate; only the push is best effort.
        """
        entry = ActivityLog(
            project_id=project_id,
            task_id=task_id,
            user_id=user_id,
            action=action.value,
            details=activity_details_adapter.dump_python(details, mode="json"),
        )
        self.db.add(entry)
        await self.db.flush()

        payload = ActivityResponse.model_validate(entry).model_dump(mode="json", by_alias=True)
        await push_best_effort(self.sink, activity_path(project_id), payload)
        return entry

    async def list_activity(
        self,
        project_id: UUID,
        user: User,
        params: PageParams,
        task_id: UUID | None = None,
        user_id: UUID | None = None,
    ) -> tuple[list[ActivityResponse], Pagination]:
        """Newest first. Viewer+."""
        await require_project_role(self.db, project_id, user.id)

        stmt = select(ActivityLog).where(ActivityLog.project_id == project_id)
        if task_id is not None:
            stmt = stmt.where(ActivityLog.task_id == task_id)
        if user_id is not None:
            stmt = stmt.where(ActivityLog.user_id == user_id)

        total = await self.db.scalar(select(func.count()).select_from(stmt.subquery())) or 0

        result = await self.db.execute(
            stmt.order_by(ActivityLog.created_at.desc(), ActivityLog.id)
            .offset(params.offset)
            .limit(params.limit)
        )
        logs = list(result.scalars().all())

        actor_ids = list({log.user_id for log in logs})
        actors: dict[UUID, User] = {}
        if actor_ids:
            actors_result = await self.db.execute(select(User).where(User.id.in_(actor_ids)))
            for u in actors_result.scalars().all():
                actors[u.id] = u

        items = [
            ActivityResponse(
                id=log.id,
                project_id=log.project_id,
                task_id=log.task_id,
                user_id=log.user_id,
                action=log.action,
                details=log.details,
                created_at=log.created_at,
                user=UserSummary.model_validate(actors[log.user_id]) if log.user_id in actors else None,
            )
            for log in logs
        ]
        return items, build_pagination(params, total)
