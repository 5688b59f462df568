"""
Project and ProjectMember ORM models.
"""

from __future__ import annotations

import enum
from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, Enum, Float, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from planboard.models.base import Base, TimestampMixin, UUIDMixin, utcnow


class ProjectRole(str, enum.Enum):
    """Project member role, totally ordered: owner > admin > member > viewer."""

    owner = "owner"
    admin = "admin"
    member = "member"
    viewer = "viewer"

    @property
    def level(self) -> int:
        return ROLE_LEVELS[self]

    def at_least(self, required: ProjectRole) -> bool:
        return self.level >= required.level


ROLE_LEVELS: dict[ProjectRole, int] = {
    ProjectRole.owner: 4,
    ProjectRole.admin: 3,
    ProjectRole.member: 2,
    ProjectRole.viewer: 1,
}


class Project(Base, UUIDMixin, TimestampMixin):
    """A project owned by exactly one user."""

    __tablename__ = "projects"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    owner_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    # Derived from task statuses; written only by ProjectService.calculate_progress
    progress: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    def __repr__(self) -> str:
        return f"<Project id={self.id} name={self.name!r} owner_id={self.owner_id}>"


class ProjectMember(Base, UUIDMixin):
    """Join table linking users to projects with a role."""

    __tablename__ = "project_members"
    __table_args__ = (
        UniqueConstraint("project_id", "user_id", name="uq_project_members_project_user"),
    )

    project_id: Mapped[UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role: Mapped[ProjectRole] = mapped_column(
        Enum(ProjectRole, name="project_role"), nullable=False, default=ProjectRole.member
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<ProjectMember project_id={self.project_id} user_id={self.user_id} role={self.role}>"
