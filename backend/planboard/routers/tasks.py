"""
Task management endpoints.

CRUD operations for tasks and subtasks.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from planboard.core.database import get_db
from planboard.core.dependencies import get_current_user, get_page_params, get_realtime_sink
from planboard.core.websocket import RealtimeSink
from planboard.models.task import TaskPriority, TaskStatus
from planboard.models.user import User
from planboard.schemas.common import ApiResponse, PageParams
from planboard.schemas.task import (
    SubtaskCreateRequest,
    SubtaskResponse,
    SubtaskUpdateRequest,
    TaskCreateRequest,
    TaskDetailResponse,
    TaskListItem,
    TaskUpdateRequest,
)
from planboard.services.task_service import TaskService

router = APIRouter()


def get_task_service(
    db: AsyncSession = Depends(get_db),
    sink: RealtimeSink | None = Depends(get_realtime_sink),
) -> TaskService:
    return TaskService(db=db, sink=sink)


# ---------------------------------------------------------------------------
# List Tasks
# ---------------------------------------------------------------------------

@router.get(
    "/projects/{project_id}/tasks",
    response_model=ApiResponse[list[TaskListItem]],
    summary="List tasks in a project",
)
async def list_tasks(
    project_id: UUID,
    status_filter: TaskStatus | None = Query(default=None, alias="status"),
    assignee_id: UUID | None = Query(default=None, alias="assigneeId"),
    priority: TaskPriority | None = Query(default=None),
    search: str | None = Query(default=None, max_length=200),
    params: PageParams = Depends(get_page_params),
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> ApiResponse[list[TaskListItem]]:
    items, pagination = await service.get_tasks(
        project_id=project_id,
        user=current_user,
        params=params,
        status=status_filter,
        assignee_id=assignee_id,
        priority=priority,
        search=search,
    )
    return ApiResponse(data=items, pagination=pagination)


# ---------------------------------------------------------------------------
# Create Task
# ---------------------------------------------------------------------------

@router.post(
    "/projects/{project_id}/tasks",
    response_model=ApiResponse[TaskDetailResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create a new task",
)
async def create_task(
    project_id: UUID,
    data: TaskCreateRequest,
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> ApiResponse[TaskDetailResponse]:
    return ApiResponse(data=await service.create_task(project_id, current_user, data))


# ---------------------------------------------------------------------------
# Get / Update / Delete Task
# ---------------------------------------------------------------------------

@router.get(
    "/tasks/{task_id}",
    response_model=ApiResponse[TaskDetailResponse],
    summary="Get task detail",
)
async def get_task(
    task_id: UUID,
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> ApiResponse[TaskDetailResponse]:
    return ApiResponse(data=await service.get_task(task_id, current_user))


@router.put(
    "/tasks/{task_id}",
    response_model=ApiResponse[TaskDetailResponse],
    summary="Update a task",
)
async def update_task(
    task_id: UUID,
    data: TaskUpdateRequest,
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> ApiResponse[TaskDetailResponse]:
    return ApiResponse(data=await service.update_task(task_id, current_user, data))


@router.delete(
    "/tasks/{task_id}",
    response_model=ApiResponse[None],
    summary="Delete a task",
)
async def delete_task(
    task_id: UUID,
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> ApiResponse[None]:
    await service.delete_task(task_id, current_user)
    return ApiResponse(message="Task deleted")


# ---------------------------------------------------------------------------
# Subtasks
# ---------------------------------------------------------------------------

@router.post(
    "/tasks/{task_id}/subtasks",
    response_model=ApiResponse[SubtaskResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Add a subtask",
)
async def add_subtask(
    task_id: UUID,
    data: SubtaskCreateRequest,
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> ApiResponse[SubtaskResponse]:
    return ApiResponse(data=await service.add_subtask(task_id, current_user, data))


@router.put(
    "/tasks/{task_id}/subtasks/{subtask_id}",
    response_model=ApiResponse[SubtaskResponse],
    summary="Update a subtask",
)
async def update_subtask(
    task_id: UUID,
    subtask_id: UUID,
    data: SubtaskUpdateRequest,
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> ApiResponse[SubtaskResponse]:
    return ApiResponse(data=await service.update_subtask(task_id, subtask_id, current_user, data))


@router.delete(
    "/tasks/{task_id}/subtasks/{subtask_id}",
    response_model=ApiResponse[None],
    summary="Delete a subtask",
)
async def delete_subtask(
    task_id: UUID,
    subtask_id: UUID,
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> ApiResponse[None]:
    await service.delete_subtask(task_id, subtask_id, current_user)
    return ApiResponse(message="Subtask deleted")
