"""
Project schemas.

Request/response models for project CRUD, membership and stats endpoints.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import Field

from planboard.models.project import ProjectRole
from planboard.schemas.common import CamelModel
from planboard.schemas.user import UserSummary


# ---------------------------------------------------------------------------
# Project Create / Update
# ---------------------------------------------------------------------------

class ProjectCreateRequest(CamelModel):
    """Request body for POST /projects."""

    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)


class ProjectUpdateRequest(CamelModel):
    """
    Request body for PUT /projects/{project_id}.

    Only fields present in the body are applied. ``progress`` is not
    accepted here; unknown fields are ignored.
    """

    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------

class MemberAddRequest(CamelModel):
    """Request body for POST /projects/{project_id}/members."""

    user_id: UUID
    role: ProjectRole = ProjectRole.member


class MemberRoleUpdateRequest(CamelModel):
    """Request body for PUT /projects/{project_id}/members/{user_id}."""

    role: ProjectRole


class MemberResponse(CamelModel):
    id: UUID
    project_id: UUID
    user_id: UUID
    role: ProjectRole
    joined_at: datetime
    user: UserSummary | None = None


# ---------------------------------------------------------------------------
# Project responses
# ---------------------------------------------------------------------------

class ProjectCounts(CamelModel):
    tasks: int = 0
    labels: int = 0


class ProjectResponse(CamelModel):
    id: UUID
    name: str
    description: str | None
    owner_id: UUID
    progress: float
    created_at: datetime
    updated_at: datetime
    owner: UserSummary | None = None
    members: list[MemberResponse] = Field(default_factory=list)


class ProjectDetailResponse(ProjectResponse):
    """Project with member list and child counts."""

    role: ProjectRole
    counts: ProjectCounts = Field(default_factory=ProjectCounts)


class ProjectStatsResponse(CamelModel):
    total_tasks: int
    completed_tasks: int
    in_progress_tasks: int
    overdue_tasks: int
    progress: float
