"""
Label endpoints.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from planboard.core.database import get_db
from planboard.core.dependencies import get_current_user
from planboard.models.user import User
from planboard.schemas.common import ApiResponse
from planboard.schemas.label import LabelCreateRequest, LabelResponse, LabelUpdateRequest
from planboard.services.label_service import LabelService

router = APIRouter()


def get_label_service(db: AsyncSession = Depends(get_db)) -> LabelService:
    return LabelService(db=db)


@router.get(
    "/projects/{project_id}/labels",
    response_model=ApiResponse[list[LabelResponse]],
    summary="List project labels",
)
async def list_labels(
    project_id: UUID,
    current_user: User = Depends(get_current_user),
    service: LabelService = Depends(get_label_service),
) -> ApiResponse[list[LabelResponse]]:
    return ApiResponse(data=await service.list_labels(project_id, current_user))


@router.post(
    "/projects/{project_id}/labels",
    response_model=ApiResponse[LabelResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create a label",
)
async def create_label(
    project_id: UUID,
    data: LabelCreateRequest,
    current_user: User = Depends(get_current_user),
    service: LabelService = Depends(get_label_service),
) -> ApiResponse[LabelResponse]:
    return ApiResponse(data=await service.create_label(project_id, current_user, data))


@router.put("/labels/{label_id}", response_model=ApiResponse[LabelResponse], summary="Update a label")
async def update_label(
    label_id: UUID,
    data: LabelUpdateRequest,
    current_user: User = Depends(get_current_user),
    service: LabelService = Depends(get_label_service),
) -> ApiResponse[LabelResponse]:
    return ApiResponse(data=await service.update_label(label_id, current_user, data))


@router.delete("/labels/{label_id}", response_model=ApiResponse[None], summary="Delete a label")
async def delete_label(
    label_id: UUID,
    current_user: User = Depends(get_current_user),
    service: LabelService = Depends(get_label_service),
) -> ApiResponse[None]:
    await service.delete_label(label_id, current_user)
    return ApiResponse(message="Label deleted")
