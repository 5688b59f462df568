"""
Activity log endpoint.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from planboard.core.database import get_db
from planboard.core.dependencies import get_current_user, get_page_params
from planboard.models.user import User
from planboard.schemas.activity import ActivityResponse
from planboard.schemas.common import ApiResponse, PageParams
from planboard.services.activity_service import ActivityService

router = APIRouter()


def get_activity_service(db: AsyncSession = Depends(get_db)) -> ActivityService:
    return ActivityService(db=db)


@router.get(
    "/projects/{project_id}/activity",
    response_model=ApiResponse[list[ActivityResponse]],
    summary="Project activity, newest first",
)
async def list_activity(
    project_id: UUID,
    task_id: UUID | None = Query(default=None, alias="taskId"),
    user_id: UUID | None = Query(default=None, alias="userId"),
    params: PageParams = Depends(get_page_params),
    current_user: User = Depends(get_current_user),
    service: ActivityService = Depends(get_activity_service),
) -> ApiResponse[list[ActivityResponse]]:
    items, pagination = await service.list_activity(
        project_id, current_user, params, task_id=task_id, user_id=user_id
    )
    return ApiResponse(data=items, pagination=pagination)
