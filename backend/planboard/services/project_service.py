"""
Project business logic.

Handles project CRUD, membership, progress and stats.
Every operation authorizes through services.authorization first.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import case, delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from planboard.core.exceptions import conflict, not_found, validation_error
from planboard.core.websocket import RealtimeSink, revoke_best_effort
from planboard.models.activity_log import ActivityAction, ActivityLog
from planboard.models.base import LIKE_ESCAPE, as_utc, contains_pattern
from planboard.models.attachment import Attachment
from planboard.models.comment import Comment
from planboard.models.label import Label, TaskLabel
from planboard.models.notification import NotificationType
from planboard.models.project import Project, ProjectMember, ProjectRole
from planboard.models.task import Subtask, Task, TaskStatus
from planboard.models.user import User
from planboard.schemas.activity import (
    FieldChange,
    MemberAddedDetails,
    MemberRemovedDetails,
    ProjectCreatedDetails,
    ProjectUpdatedDetails,
    RoleChangedDetails,
)
from planboard.schemas.common import PageParams, Pagination, build_pagination
from planboard.schemas.project import (
    MemberAddRequest,
    MemberResponse,
    ProjectCounts,
    ProjectCreateRequest,
    ProjectDetailResponse,
    ProjectResponse,
    ProjectStatsResponse,
    ProjectUpdateRequest,
)
from planboard.schemas.user import UserSummary
from planboard.services.activity_service import ActivityService
from planboard.services.authorization import require_owner, require_project_role
from planboard.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


def project_path(project_id: UUID) -> str:
    """Root of every real-time path for a project."""
    return f"projects/{project_id}"


async def calculate_progress(db: AsyncSession, project_id: UUID) -> float:
    """
    Recompute and persist a project's completion percentage.

    round(100 * done / total, 2), or 0 for a project with no tasks.
    """
    row = (
        await db.execute(
            select(
                func.count(Task.id),
                func.coalesce(func.sum(case((Task.status == TaskStatus.DONE, 1), else_=0)), 0),
            ).where(Task.project_id == project_id)
        )
    ).one()
    total, done = int(row[0]), int(row[1])
    progress = round(100 * done / total, 2) if total else 0.0

    project = await db.get(Project, project_id)
    if project is not None and project.progress != progress:
        project.progress = progress
        await db.flush()
    return progress


class ProjectService:

    def __init__(self, db: AsyncSession, sink: RealtimeSink | None = None) -> None:
        self.db = db
        self.sink = sink
        self.activity = ActivityService(db, sink)
        self.notifications = NotificationService(db, sink)

    # -----------------------------------------------------------------------
    # List Projects
    # -----------------------------------------------------------------------

    async def list_projects(
        self,
        user: User,
        params: PageParams,
        search: str | None = None,
    ) -> tuple[list[ProjectResponse], Pagination]:
        """Projects the user owns or belongs to, most recently updated first."""
        member_of = select(ProjectMember.project_id).where(ProjectMember.user_id == user.id)
        stmt = select(Project).where(
            or_(Project.owner_id == user.id, Project.id.in_(member_of))
        )
        if search:
            pattern = contains_pattern(search)
            stmt = stmt.where(
                or_(
                    Project.name.ilike(pattern, escape=LIKE_ESCAPE),
                    Project.description.ilike(pattern, escape=LIKE_ESCAPE),
                )
            )

        count_stmt = select(func.count()).select_from(stmt.subquery())
        total = (await self.db.execute(count_stmt)).scalar_one()

        stmt = stmt.order_by(Project.updated_at.desc(), Project.id).offset(params.offset).limit(params.limit)
        result = await self.db.execute(stmt)
        projects = list(result.scalars().all())

        members_by_project = await self._load_members([p.id for p in projects])
        owners = await self._load_users([p.owner_id for p in projects])

        items = [
            self._to_response(p, members_by_project.get(p.id, []), owners.get(p.owner_id))
            for p in projects
        ]
        return items, build_pagination(params, total)

    # -----------------------------------------------------------------------
    # Create Project
    # -----------------------------------------------------------------------

    async def create_project(self, data: ProjectCreateRequest, owner: User) -> ProjectDetailResponse:
        """Create a project with its owner membership row."""
        project = Project(
            name=data.name,
            description=data.description,
            owner_id=owner.id,
            progress=0.0,
        )
        self.db.add(project)
        await self.db.flush()

        self.db.add(ProjectMember(project_id=project.id, user_id=owner.id, role=ProjectRole.owner))
        await self.db.flush()

        await self.activity.log(
            project_id=project.id,
            user_id=owner.id,
            action=ActivityAction.CREATED,
            details=ProjectCreatedDetails(name=project.name),
        )
        return await self._detail(project, ProjectRole.owner)

    # -----------------------------------------------------------------------
    # Get Project
    # -----------------------------------------------------------------------

    async def get_project(self, project_id: UUID, user: User) -> ProjectDetailResponse:
        access = await require_project_role(self.db, project_id, user.id)
        return await self._detail(access.project, access.role)

    # -----------------------------------------------------------------------
    # Update Project
    # -----------------------------------------------------------------------

    async def update_project(
        self, project_id: UUID, user: User, data: ProjectUpdateRequest
    ) -> ProjectDetailResponse:
        """Admin+. Logs a field diff; a patch that changes nothing logs nothing."""
        access = await require_project_role(self.db, project_id, user.id, ProjectRole.admin)
        project = access.project

        changes: dict[str, FieldChange] = {}
        for field in ("name", "description"):
            if field not in data.model_fields_set:
                continue
            new = getattr(data, field)
            if field == "name" and new is None:
                raise validation_error("Project name cannot be empty", "INVALID_NAME")
            old = getattr(project, field)
            if new != old:
                changes[field] = FieldChange(old=old, new=new)
                setattr(project, field, new)

        if changes:
            await self.db.flush()
            await self.activity.log(
                project_id=project.id,
                user_id=user.id,
                action=ActivityAction.UPDATED,
                details=ProjectUpdatedDetails(changes=changes),
            )
        return await self._detail(project, access.role)

    # -----------------------------------------------------------------------
    # Delete Project
    # -----------------------------------------------------------------------

    async def delete_project(self, project_id: UUID, user: User) -> None:
        """Owner only. Children are deleted explicitly, leaves first."""
        access = await require_project_role(self.db, project_id, user.id)
        require_owner(access, "Only the project owner can delete the project")

        task_ids = select(Task.id).where(Task.project_id == project_id)
        await self.db.execute(delete(Subtask).where(Subtask.task_id.in_(task_ids)))
        await self.db.execute(delete(TaskLabel).where(TaskLabel.task_id.in_(task_ids)))
        await self.db.execute(delete(Comment).where(Comment.task_id.in_(task_ids)))
        await self.db.execute(delete(Attachment).where(Attachment.task_id.in_(task_ids)))
        await self.db.execute(delete(Task).where(Task.project_id == project_id))
        await self.db.execute(delete(Label).where(Label.project_id == project_id))
        await self.db.execute(delete(ProjectMember).where(ProjectMember.project_id == project_id))
        await self.db.execute(delete(ActivityLog).where(ActivityLog.project_id == project_id))
        await self.db.execute(delete(Project).where(Project.id == project_id))
        await self.db.flush()
        logger.info("Project deleted: project=%s by user=%s", project_id, user.id)

    # -----------------------------------------------------------------------
    # Members
    # -----------------------------------------------------------------------

    async def list_members(self, project_id: UUID, user: User) -> list[MemberResponse]:
        await require_project_role(self.db, project_id, user.id)
        members = await self._load_members([project_id])
        return members.get(project_id, [])

    async def add_member(
        self, project_id: UUID, user: User, data: MemberAddRequest
    ) -> MemberResponse:
        """Admin+ may add a member with any role except owner."""
        access = await require_project_role(self.db, project_id, user.id, ProjectRole.admin)
        project = access.project

        if data.role == ProjectRole.owner:
            raise validation_error("Cannot grant the owner role", "INVALID_ROLE")

        target = await self.db.scalar(select(User).where(User.id == data.user_id))
        if target is None:
            raise not_found("User not found", "USER_NOT_FOUND")

        existing = await self._get_member_row(project_id, data.user_id)
        if existing is not None or data.user_id == project.owner_id:
            raise conflict("User is already a member of this project", "ALREADY_MEMBER")

        member = ProjectMember(project_id=project_id, user_id=data.user_id, role=data.role)
        self.db.add(member)
        await self.db.flush()

        await self.activity.log(
            project_id=project_id,
            user_id=user.id,
            action=ActivityAction.MEMBER_ADDED,
            details=MemberAddedDetails(member_id=data.user_id, role=data.role.value),
        )
        await self.notifications.notify(
            user_id=data.user_id,
            type=NotificationType.PROJECT_INVITE,
            message=f'{user.name} added you to the project "{project.name}"',
            related_id=project_id,
            send_email=True,
        )
        return self._member_response(member, target)

    async def update_member_role(
        self,
        project_id: UUID,
        user: User,
        member_user_id: UUID,
        role: ProjectRole,
    ) -> MemberResponse:
        """Owner only. The owner's own row and the owner role are immutable."""
        access = await require_project_role(self.db, project_id, user.id)
        require_owner(access, "Only the project owner can change roles")

        if member_user_id == access.project.owner_id:
            raise validation_error("Cannot change the owner's role", "CANNOT_CHANGE_OWNER")
        if role == ProjectRole.owner:
            raise validation_error("Cannot grant the owner role", "INVALID_ROLE")

        member = await self._get_member_row(project_id, member_user_id)
        if member is None:
            raise not_found("Member not found", "MEMBER_NOT_FOUND")

        old_role = member.role
        if old_role != role:
            member.role = role
            await self.db.flush()
            await self.activity.log(
                project_id=project_id,
                user_id=user.id,
                action=ActivityAction.ROLE_CHANGED,
                details=RoleChangedDetails(
                    member_id=member_user_id,
                    old_role=old_role.value,
                    new_role=role.value,
                ),
            )

        target = await self.db.scalar(select(User).where(User.id == member_user_id))
        return self._member_response(member, target)

    async def remove_member(self, project_id: UUID, user: User, member_user_id: UUID) -> None:
        """Admin+. The owner cannot be removed."""
        access = await require_project_role(self.db, project_id, user.id, ProjectRole.admin)

        if member_user_id == access.project.owner_id:
            raise validation_error("Cannot remove the project owner", "CANNOT_REMOVE_OWNER")

        member = await self._get_member_row(project_id, member_user_id)
        if member is None:
            raise not_found("Member not found", "MEMBER_NOT_FOUND")

        removed_role = member.role
        await self.db.delete(member)
        await self.db.flush()
        await revoke_best_effort(self.sink, project_path(project_id), member_user_id)

        await self.activity.log(
            project_id=project_id,
            user_id=user.id,
            action=ActivityAction.MEMBER_REMOVED,
            details=MemberRemovedDetails(member_id=member_user_id, role=removed_role.value),
        )

    # -----------------------------------------------------------------------
    # Progress / Stats
    # -----------------------------------------------------------------------

    async def calculate_progress(self, project_id: UUID) -> float:
        return await calculate_progress(self.db, project_id)

    async def get_project_stats(self, project_id: UUID, user: User) -> ProjectStatsResponse:
        """Viewer+. Overdue means past due and not DONE."""
        access = await require_project_role(self.db, project_id, user.id)
        now = datetime.now(UTC)

        result = await self.db.execute(
            select(Task.status, Task.due_date).where(Task.project_id == project_id)
        )
        rows = result.all()

        overdue = 0
        for status, due_date in rows:
            if due_date is None or status == TaskStatus.DONE:
                continue
            if as_utc(due_date) < now:
                overdue += 1

        return ProjectStatsResponse(
            total_tasks=len(rows),
            completed_tasks=sum(1 for s, _ in rows if s == TaskStatus.DONE),
            in_progress_tasks=sum(1 for s, _ in rows if s == TaskStatus.IN_PROGRESS),
            overdue_tasks=overdue,
            progress=access.project.progress,
        )

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    async def _detail(self, project: Project, role: ProjectRole) -> ProjectDetailResponse:
        members = await self._load_members([project.id])
        owners = await self._load_users([project.owner_id])

        task_count = await self.db.scalar(
            select(func.count(Task.id)).where(Task.project_id == project.id)
        )
        label_count = await self.db.scalar(
            select(func.count(Label.id)).where(Label.project_id == project.id)
        )

        base = self._to_response(project, members.get(project.id, []), owners.get(project.owner_id))
        return ProjectDetailResponse(
            **base.model_dump(),
            role=role,
            counts=ProjectCounts(tasks=task_count or 0, labels=label_count or 0),
        )

    @staticmethod
    def _to_response(
        project: Project,
        members: list[MemberResponse],
        owner: UserSummary | None,
    ) -> ProjectResponse:
        return ProjectResponse(
            id=project.id,
            name=project.name,
            description=project.description,
            owner_id=project.owner_id,
            progress=project.progress,
            created_at=project.created_at,
            updated_at=project.updated_at,
            owner=owner,
            members=members,
        )

    @staticmethod
    def _member_response(member: ProjectMember, user: User | None) -> MemberResponse:
        return MemberResponse(
            id=member.id,
            project_id=member.project_id,
            user_id=member.user_id,
            role=member.role,
            joined_at=member.joined_at,
            user=UserSummary.model_validate(user) if user else None,
        )

    async def _get_member_row(self, project_id: UUID, user_id: UUID) -> ProjectMember | None:
        return await self.db.scalar(
            select(ProjectMember).where(
                ProjectMember.project_id == project_id,
                ProjectMember.user_id == user_id,
            )
        )

    async def _load_members(self, project_ids: list[UUID]) -> dict[UUID, list[MemberResponse]]:
        """Load members of many projects in a single query."""
        if not project_ids:
            return {}

        result = await self.db.execute(
            select(ProjectMember, User)
            .join(User, ProjectMember.user_id == User.id)
            .where(ProjectMember.project_id.in_(project_ids))
            .order_by(ProjectMember.joined_at, ProjectMember.id)
        )

        members_by_project: dict[UUID, list[MemberResponse]] = {}
        for member, member_user in result.all():
            members_by_project.setdefault(member.project_id, []).append(
                self._member_response(member, member_user)
            )
        return members_by_project

    async def _load_users(self, user_ids: list[UUID]) -> dict[UUID, UserSummary]:
        if not user_ids:
            return {}
        result = await self.db.execute(select(User).where(User.id.in_(set(user_ids))))
        return {u.id: UserSummary.model_validate(u) for u in result.scalars().all()}

