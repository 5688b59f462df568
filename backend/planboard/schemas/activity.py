"""
Activity log schemas.

``ActivityDetails`` is a tagged union keyed by ``type``; the chosen variant
is dumped to JSON in ``activity_log.details``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal, Union
from uuid import UUID

from pydantic import BaseModel, Field, TypeAdapter

from planboard.schemas.common import CamelModel
from planboard.schemas.user import UserSummary


class FieldChange(BaseModel):
    old: Any = None
    new: Any = None


# ---------------------------------------------------------------------------
# Detail variants
# ---------------------------------------------------------------------------

class ProjectCreatedDetails(BaseModel):
    type: Literal["project_created"] = "project_created"
    name: str


class ProjectUpdatedDetails(BaseModel):
    type: Literal["project_updated"] = "project_updated"
    changes: dict[str, FieldChange]


class MemberAddedDetails(BaseModel):
    type: Literal["member_added"] = "member_added"
    member_id: UUID
    role: str


class MemberRemovedDetails(BaseModel):
    type: Literal["member_removed"] = "member_removed"
    member_id: UUID
    role: str


class RoleChangedDetails(BaseModel):
    type: Literal["role_changed"] = "role_changed"
    member_id: UUID
    old_role: str
    new_role: str


class TaskCreatedDetails(BaseModel):
    type: Literal["task_created"] = "task_created"
    title: str
    status: str
    priority: str
    assignee_id: UUID | None = None


class TaskUpdatedDetails(BaseModel):
    type: Literal["task_updated"] = "task_updated"
    changes: dict[str, FieldChange]


class TaskDeletedDetails(BaseModel):
    type: Literal["task_deleted"] = "task_deleted"
    title: str


class SubtaskDetails(BaseModel):
    type: Literal["subtask"] = "subtask"
    operation: Literal["added", "updated", "deleted"]
    subtask_id: UUID
    title: str
    completed: bool | None = None


class CommentDetails(BaseModel):
    type: Literal["comment"] = "comment"
    comment_id: UUID


class AttachmentDetails(BaseModel):
    type: Literal["attachment"] = "attachment"
    attachment_id: UUID
    file_name: str


ActivityDetails = Annotated[
    Union[
        ProjectCreatedDetails,
        ProjectUpdatedDetails,
        MemberAddedDetails,
        MemberRemovedDetails,
        RoleChangedDetails,
        TaskCreatedDetails,
        TaskUpdatedDetails,
        TaskDeletedDetails,
        SubtaskDetails,
        CommentDetails,
        AttachmentDetails,
    ],
    Field(discriminator="type"),
]

activity_details_adapter: TypeAdapter[ActivityDetails] = TypeAdapter(ActivityDetails)


# ---------------------------------------------------------------------------
# Response
# ---------------------------------------------------------------------------

class ActivityResponse(CamelModel):
    id: UUID
    project_id: UUID
    task_id: UUID | None
    user_id: UUID
    action: str
    details: dict[str, Any] | None
    created_at: datetime
    user: UserSummary | None = None
