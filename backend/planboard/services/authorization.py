"""
Project-scoped authorization.

Resolves a requester's effective role in a project and enforces a minimum.
A requester who is not a member gets the same 404 as for a missing project,
so project existence is never leaked; 403 is only ever returned to members.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from planboard.core.exceptions import AppError, access_denied, not_found
from planboard.models.project import Project, ProjectMember, ProjectRole
from planboard.models.task import Task

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProjectAccess:
    project: Project
    role: ProjectRole

    @property
    def is_owner(self) -> bool:
        return self.role == ProjectRole.owner


def project_not_found() -> AppError:
    return not_found("Project not found", "PROJECT_NOT_FOUND")


async def resolve_role(db: AsyncSession, project_id: UUID, user_id: UUID) -> ProjectAccess:
    """
    Return the requester's access to a project.

    The owner is recognised by ``Project.owner_id`` even if the owner
    membership row is missing.
    """
    project = await db.scalar(select(Project).where(Project.id == project_id))
    if project is None:
        raise project_not_found()

    if project.owner_id == user_id:
        return ProjectAccess(project=project, role=ProjectRole.owner)

    member = await db.scalar(
        select(ProjectMember).where(
            ProjectMember.project_id == project_id,
            ProjectMember.user_id == user_id,
        )
    )
    if member is None:
        raise project_not_found()

    # A stray owner row on a non-owner is treated as admin
    role = ProjectRole.admin if member.role == ProjectRole.owner else member.role
    return ProjectAccess(project=project, role=role)


async def require_project_role(
    db: AsyncSession,
    project_id: UUID,
    user_id: UUID,
    minimum: ProjectRole = ProjectRole.viewer,
) -> ProjectAccess:
    """Resolve access and raise 403 if the role is below ``minimum``."""
    access = await resolve_role(db, project_id, user_id)
    if not access.role.at_least(minimum):
        logger.info(
            "Access denied: user=%s project=%s role=%s required=%s",
            user_id, project_id, access.role.value, minimum.value,
        )
        raise access_denied(
            f"Requires {minimum.value} role or higher",
            "INSUFFICIENT_ROLE",
        )
    return access


def require_owner(access: ProjectAccess, message: str = "Only the project owner can do this") -> None:
    """Owner-only guard, compared against ``Project.owner_id``."""
    if not access.is_owner:
        raise access_denied(message, "OWNER_ONLY")


async def require_task_access(
    db: AsyncSession,
    task_id: UUID,
    user_id: UUID,
    minimum: ProjectRole = ProjectRole.viewer,
) -> tuple[Task, ProjectAccess]:
    """
    Load a task and authorize against its project.

    A task in a project the requester cannot see is reported as missing.
    """
    task = await db.scalar(select(Task).where(Task.id == task_id))
    if task is None:
        raise not_found("Task not found", "TASK_NOT_FOUND")
    try:
        access = await resolve_role(db, task.project_id, user_id)
    except AppError as exc:
        if exc.code == "PROJECT_NOT_FOUND":
            raise not_found("Task not found", "TASK_NOT_FOUND") from exc
        raise
    if not access.role.at_least(minimum):
        logger.info(
            "Access denied: user=%s task=%s role=%s required=%s",
            user_id, task_id, access.role.value, minimum.value,
        )
        raise access_denied(
            f"Requires {minimum.value} role or higher",
            "INSUFFICIENT_ROLE",
        )
    return task, access
