"""
Project management endpoints.

CRUD operations for projects, membership and stats.
"""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from planboard.core.database import get_db
from planboard.core.dependencies import get_current_user, get_page_params, get_realtime_sink
from planboard.core.websocket import RealtimeSink
from planboard.models.user import User
from planboard.schemas.common import ApiResponse, PageParams
from planboard.schemas.project import (
    MemberAddRequest,
    MemberResponse,
    MemberRoleUpdateRequest,
    ProjectCreateRequest,
    ProjectDetailResponse,
    ProjectResponse,
    ProjectStatsResponse,
    ProjectUpdateRequest,
)
from planboard.services.project_service import ProjectService

router = APIRouter()


def get_project_service(
    db: AsyncSession = Depends(get_db),
    sink: RealtimeSink | None = Depends(get_realtime_sink),
) -> ProjectService:
    return ProjectService(db=db, sink=sink)


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------

@router.get(
    "/projects",
    response_model=ApiResponse[list[ProjectResponse]],
    summary="List projects the current user owns or belongs to",
)
async def list_projects(
    search: str | None = Query(default=None, max_length=200),
    params: PageParams = Depends(get_page_params),
    current_user: User = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service),
) -> ApiResponse[list[ProjectResponse]]:
    items, pagination = await service.list_projects(current_user, params, search=search)
    return ApiResponse(data=items, pagination=pagination)


@router.post(
    "/projects",
    response_model=ApiResponse[ProjectDetailResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create a new project",
)
async def create_project(
    data: ProjectCreateRequest,
    current_user: User = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service),
) -> ApiResponse[ProjectDetailResponse]:
    return ApiResponse(data=await service.create_project(data, current_user))


@router.get(
    "/projects/{project_id}",
    response_model=ApiResponse[ProjectDetailResponse],
    summary="Get project detail",
)
async def get_project(
    project_id: UUID,
    current_user: User = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service),
) -> ApiResponse[ProjectDetailResponse]:
    return ApiResponse(data=await service.get_project(project_id, current_user))


@router.put(
    "/projects/{project_id}",
    response_model=ApiResponse[ProjectDetailResponse],
    summary="Update a project",
)
async def update_project(
    project_id: UUID,
    data: ProjectUpdateRequest,
    current_user: User = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service),
) -> ApiResponse[ProjectDetailResponse]:
    return ApiResponse(data=await service.update_project(project_id, current_user, data))


@router.delete(
    "/projects/{project_id}",
    response_model=ApiResponse[None],
    summary="Delete a project (owner only)",
)
async def delete_project(
    project_id: UUID,
    current_user: User = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service),
) -> ApiResponse[None]:
    await service.delete_project(project_id, current_user)
    return ApiResponse(message="Project deleted")


@router.get(
    "/projects/{project_id}/stats",
    response_model=ApiResponse[ProjectStatsResponse],
    summary="Task counts and progress",
)
async def get_project_stats(
    project_id: UUID,
    current_user: User = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service),
) -> ApiResponse[ProjectStatsResponse]:
    return ApiResponse(data=await service.get_project_stats(project_id, current_user))


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------

@router.get(
    "/projects/{project_id}/members",
    response_model=ApiResponse[list[MemberResponse]],
    summary="List project members",
)
async def list_members(
    project_id: UUID,
    current_user: User = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service),
) -> ApiResponse[list[MemberResponse]]:
    return ApiResponse(data=await service.list_members(project_id, current_user))


@router.post(
    "/projects/{project_id}/members",
    response_model=ApiResponse[MemberResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Add a member",
)
async def add_member(
    project_id: UUID,
    data: MemberAddRequest,
    current_user: User = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service),
) -> ApiResponse[MemberResponse]:
    return ApiResponse(data=await service.add_member(project_id, current_user, data))


@router.put(
    "/projects/{project_id}/members/{user_id}",
    response_model=ApiResponse[MemberResponse],
    summary="Change a member's role (owner only)",
)
async def update_member_role(
    project_id: UUID,
    user_id: UUID,
    data: MemberRoleUpdateRequest,
    current_user: User = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service),
) -> ApiResponse[MemberResponse]:
    member = await service.update_member_role(project_id, current_user, user_id, data.role)
    return ApiResponse(data=member)


@router.delete(
    "/projects/{project_id}/members/{user_id}",
    response_model=ApiResponse[None],
    summary="Remove a member",
)
async def remove_member(
    project_id: UUID,
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service),
) -> ApiResponse[None]:
    await service.remove_member(project_id, current_user, user_id)
    return ApiResponse(message="Member removed")
