"""
Attachment schemas.

Files are stored elsewhere; the API only records their metadata and URL.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import Field

from planboard.schemas.common import CamelModel
from planboard.schemas.user import UserSummary

MAX_ATTACHMENT_SIZE = 10 * 1024 * 1024


class AttachmentCreateRequest(CamelModel):
    """Request body for POST /tasks/{task_id}/attachments."""

    file_name: str = Field(min_length=1, max_length=255)
    file_url: str = Field(min_length=1, max_length=1000)
    file_type: str = Field(min_length=1, max_length=100)
    file_size: int = Field(gt=0, le=MAX_ATTACHMENT_SIZE)


class AttachmentResponse(CamelModel):
    id: UUID
    task_id: UUID
    file_name: str
    file_url: str
    file_type: str
    file_size: int
    uploaded_by: UUID
    created_at: datetime
    uploader: UserSummary | None = None
