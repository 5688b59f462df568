"""
Label schemas.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import Field

from planboard.schemas.common import CamelModel

HEX_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


class LabelCreateRequest(CamelModel):
    """Request body for POST /projects/{project_id}/labels."""

    name: str = Field(min_length=1, max_length=50)
    color: str = Field(default="#6366f1", pattern=HEX_COLOR_PATTERN)


class LabelUpdateRequest(CamelModel):
    """Request body for PUT /labels/{label_id}."""

    name: str | None = Field(default=None, min_length=1, max_length=50)
    color: str | None = Field(default=None, pattern=HEX_COLOR_PATTERN)


class LabelSummary(CamelModel):
    id: UUID
    name: str
    color: str


class LabelResponse(LabelSummary):
    project_id: UUID
    created_at: datetime
    task_count: int = 0
