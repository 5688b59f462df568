"""
Comment endpoints.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from planboard.core.database import get_db
from planboard.core.dependencies import get_current_user, get_page_params, get_realtime_sink
from planboard.core.websocket import RealtimeSink
from planboard.models.user import User
from planboard.schemas.comment import CommentCreateRequest, CommentResponse, CommentUpdateRequest
from planboard.schemas.common import ApiResponse, PageParams
from planboard.services.comment_service import CommentService

router = APIRouter()


def get_comment_service(
    db: AsyncSession = Depends(get_db),
    sink: RealtimeSink | None = Depends(get_realtime_sink),
) -> CommentService:
    return CommentService(db=db, sink=sink)


@router.get(
    "/tasks/{task_id}/comments",
    response_model=ApiResponse[list[CommentResponse]],
    summary="List comments on a task",
)
async def list_comments(
    task_id: UUID,
    params: PageParams = Depends(get_page_params),
    current_user: User = Depends(get_current_user),
    service: CommentService = Depends(get_comment_service),
) -> ApiResponse[list[CommentResponse]]:
    items, pagination = await service.list_comments(task_id, current_user, params)
    return ApiResponse(data=items, pagination=pagination)


@router.post(
    "/tasks/{task_id}/comments",
    response_model=ApiResponse[CommentResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Comment on a task",
)
async def create_comment(
    task_id: UUID,
    data: CommentCreateRequest,
    current_user: User = Depends(get_current_user),
    service: CommentService = Depends(get_comment_service),
) -> ApiResponse[CommentResponse]:
    return ApiResponse(data=await service.create_comment(task_id, current_user, data))


@router.put("/comments/{comment_id}", response_model=ApiResponse[CommentResponse], summary="Edit a comment")
async def update_comment(
    comment_id: UUID,
    data: CommentUpdateRequest,
    current_user: User = Depends(get_current_user),
    service: CommentService = Depends(get_comment_service),
) -> ApiResponse[CommentResponse]:
    return ApiResponse(data=await service.update_comment(comment_id, current_user, data))


@router.delete("/comments/{comment_id}", response_model=ApiResponse[None], summary="Delete a comment")
async def delete_comment(
    comment_id: UUID,
    current_user: User = Depends(get_current_user),
    service: CommentService = Depends(get_comment_service),
) -> ApiResponse[None]:
    await service.delete_comment(comment_id, current_user)
    return ApiResponse(message="Comment deleted")
