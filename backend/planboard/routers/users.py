"""
User profile endpoints.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from planboard.core.database import get_db
from planboard.core.dependencies import get_current_user
from planboard.models.user import User
from planboard.schemas.common import ApiResponse
from planboard.schemas.user import UserResponse, UserSummary, UserUpdateRequest
from planboard.services.user_service import UserService

router = APIRouter()


def get_user_service(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db=db)


@router.get("/me", response_model=ApiResponse[UserResponse], summary="Current user profile")
async def get_me(
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
) -> ApiResponse[UserResponse]:
    return ApiResponse(data=await service.get_me(current_user))


@router.patch("/me", response_model=ApiResponse[UserResponse], summary="Update current user profile")
async def update_me(
    data: UserUpdateRequest,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
) -> ApiResponse[UserResponse]:
    return ApiResponse(data=await service.update_me(current_user, data))


@router.get("/{user_id}", response_model=ApiResponse[UserSummary], summary="Public user info")
async def get_user(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
) -> ApiResponse[UserSummary]:
    return ApiResponse(data=await service.get_user(user_id))
