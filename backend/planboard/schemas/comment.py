"""
Comment schemas.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import Field

from planboard.schemas.common import CamelModel
from planboard.schemas.user import UserSummary


class CommentCreateRequest(CamelModel):
    """Request body for POST /tasks/{task_id}/comments."""

    content: str = Field(min_length=1, max_length=5000)


class CommentUpdateRequest(CamelModel):
    """Request body for PUT /comments/{comment_id}."""

    content: str = Field(min_length=1, max_length=5000)


class CommentResponse(CamelModel):
    id: UUID
    task_id: UUID
    user_id: UUID
    content: str
    is_edited: bool
    created_at: datetime
    updated_at: datetime
    user: UserSummary | None = None
