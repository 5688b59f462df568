"""
Task schemas.

Request/response models for task CRUD and subtask endpoints.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import Field

from planboard.models.task import TaskPriority, TaskStatus
from planboard.schemas.attachment import AttachmentResponse
from planboard.schemas.comment import CommentResponse
from planboard.schemas.common import CamelModel
from planboard.schemas.label import LabelSummary
from planboard.schemas.user import UserSummary


# ---------------------------------------------------------------------------
# Task Create
# ---------------------------------------------------------------------------

class TaskCreateRequest(CamelModel):
    """Request body for POST /projects/{project_id}/tasks."""

    title: str = Field(min_length=1, max_length=500)
    description: str | None = Field(default=None, max_length=10000)
    assignee_id: UUID | None = None
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.TODO
    due_date: datetime | None = None
    label_ids: list[UUID] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Task Update
# ---------------------------------------------------------------------------

class TaskUpdateRequest(CamelModel):
    """
    Request body for PUT /tasks/{task_id}.

    Partial: a field absent from the body is left untouched, an explicit
    null clears it. ``label_ids`` replaces the whole label set.
    ``version`` is the value the client last read; a mismatch is a conflict.
    """

    title: str | None = Field(default=None, min_length=1, max_length=500)
    description: str | None = Field(default=None, max_length=10000)
    assignee_id: UUID | None = None
    priority: TaskPriority | None = None
    status: TaskStatus | None = None
    due_date: datetime | None = None
    label_ids: list[UUID] | None = None
    version: int | None = Field(default=None, ge=1)


# ---------------------------------------------------------------------------
# Subtasks
# ---------------------------------------------------------------------------

class SubtaskCreateRequest(CamelModel):
    """Request body for POST /tasks/{task_id}/subtasks."""

    title: str = Field(min_length=1, max_length=500)


class SubtaskUpdateRequest(CamelModel):
    """Request body for PUT /tasks/{task_id}/subtasks/{subtask_id}."""

    title: str | None = Field(default=None, min_length=1, max_length=500)
    completed: bool | None = None


class SubtaskResponse(CamelModel):
    id: UUID
    task_id: UUID
    title: str
    completed: bool
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Task list item (lightweight, for list and board views)
# ---------------------------------------------------------------------------

class TaskCounts(CamelModel):
    comments: int = 0
    attachments: int = 0
    subtasks: int = 0


class TaskListItem(CamelModel):
    id: UUID
    project_id: UUID
    title: str
    description: str | None
    assignee_id: UUID | None
    created_by: UUID
    priority: TaskPriority
    status: TaskStatus
    due_date: datetime | None
    version: int
    created_at: datetime
    updated_at: datetime
    assignee: UserSummary | None = None
    labels: list[LabelSummary] = Field(default_factory=list)
    counts: TaskCounts = Field(default_factory=TaskCounts)


# ---------------------------------------------------------------------------
# Task detail (full, for the task page)
# ---------------------------------------------------------------------------

class TaskDetailResponse(TaskListItem):
    creator: UserSummary | None = None
    subtasks: list[SubtaskResponse] = Field(default_factory=list)
    comments: list[CommentResponse] = Field(default_factory=list)
    attachments: list[AttachmentResponse] = Field(default_factory=list)
