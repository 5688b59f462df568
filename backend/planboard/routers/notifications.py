"""
Notification endpoints.

GET    /notifications               list user notifications (paginated)
PATCH  /notifications/{id}/read     mark single notification as read
POST   /notifications/mark-all-read mark all notifications as read
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from planboard.core.database import get_db
from planboard.core.dependencies import get_current_user, get_page_params
from planboard.models.user import User
from planboard.schemas.common import ApiResponse, PageParams
from planboard.schemas.notification import MarkAllReadResponse, NotificationResponse
from planboard.services.notification_service import NotificationService

router = APIRouter()


def get_notification_service(
    db: AsyncSession = Depends(get_db),
) -> NotificationService:
    return NotificationService(db=db)


# ---------------------------------------------------------------------------
# GET /notifications
# ---------------------------------------------------------------------------

@router.get(
    "/notifications",
    response_model=ApiResponse[list[NotificationResponse]],
    summary="List notifications for current user",
)
async def list_notifications(
    read: bool | None = Query(default=None, description="Filter by read state"),
    params: PageParams = Depends(get_page_params),
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
) -> ApiResponse[list[NotificationResponse]]:
    items, pagination = await service.list_notifications(current_user.id, params, read=read)
    return ApiResponse(data=items, pagination=pagination)


# ---------------------------------------------------------------------------
# PATCH /notifications/{notification_id}/read
# ---------------------------------------------------------------------------

@router.patch(
    "/notifications/{notification_id}/read",
    response_model=ApiResponse[NotificationResponse],
    summary="Mark a single notification as read",
)
async def mark_notification_read(
    notification_id: UUID,
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
) -> ApiResponse[NotificationResponse]:
    return ApiResponse(data=await service.mark_read(notification_id, current_user.id))


# ---------------------------------------------------------------------------
# POST /notifications/mark-all-read
# ---------------------------------------------------------------------------

@router.post(
    "/notifications/mark-all-read",
    response_model=ApiResponse[MarkAllReadResponse],
    status_code=status.HTTP_200_OK,
    summary="Mark all notifications as read",
)
async def mark_all_notifications_read(
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
) -> ApiResponse[MarkAllReadResponse]:
    updated = await service.mark_all_read(current_user.id)
    return ApiResponse(data=MarkAllReadResponse(updated=updated))
