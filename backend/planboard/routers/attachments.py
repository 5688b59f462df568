"""
Attachment endpoints.

Files are uploaded to external storage by the client; these endpoints
record and remove the metadata.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from planboard.core.database import get_db
from planboard.core.dependencies import get_current_user, get_realtime_sink
from planboard.core.websocket import RealtimeSink
from planboard.models.user import User
from planboard.schemas.attachment import AttachmentCreateRequest, AttachmentResponse
from planboard.schemas.common import ApiResponse
from planboard.services.attachment_service import AttachmentService

router = APIRouter()


def get_attachment_service(
    db: AsyncSession = Depends(get_db),
    sink: RealtimeSink | None = Depends(get_realtime_sink),
) -> AttachmentService:
    return AttachmentService(db=db, sink=sink)


@router.get(
    "/tasks/{task_id}/attachments",
    response_model=ApiResponse[list[AttachmentResponse]],
    summary="List attachments on a task",
)
async def list_attachments(
    task_id: UUID,
    current_user: User = Depends(get_current_user),
    service: AttachmentService = Depends(get_attachment_service),
) -> ApiResponse[list[AttachmentResponse]]:
    return ApiResponse(data=await service.list_attachments(task_id, current_user))


@router.post(
    "/tasks/{task_id}/attachments",
    response_model=ApiResponse[AttachmentResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Attach an uploaded file to a task",
)
async def create_attachment(
    task_id: UUID,
    data: AttachmentCreateRequest,
    current_user: User = Depends(get_current_user),
    service: AttachmentService = Depends(get_attachment_service),
) -> ApiResponse[AttachmentResponse]:
    return ApiResponse(data=await service.create_attachment(task_id, current_user, data))


@router.delete(
    "/attachments/{attachment_id}",
    response_model=ApiResponse[None],
    summary="Delete an attachment",
)
async def delete_attachment(
    attachment_id: UUID,
    current_user: User = Depends(get_current_user),
    service: AttachmentService = Depends(get_attachment_service),
) -> ApiResponse[None]:
    await service.delete_attachment(attachment_id, current_user)
    return ApiResponse(message="Attachment deleted")
