"""
Task business logic.

Handles task CRUD, subtasks, label assignment, activity logging, progress
recomputation and assignment notifications.

Every mutation runs in the same order: authorize, mutate, log activity,
recompute progress, notify.
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import case, delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from planboard.core.exceptions import conflict, not_found, validation_error
from planboard.core.websocket import RealtimeSink
from planboard.models.activity_log import ActivityAction
from planboard.models.base import LIKE_ESCAPE, as_utc, contains_pattern
from planboard.models.attachment import Attachment
from planboard.models.comment import Comment
from planboard.models.label import Label, TaskLabel
from planboard.models.notification import NotificationType
from planboard.models.project import Project, ProjectMember, ProjectRole
from planboard.models.task import Subtask, Task, TaskPriority, TaskStatus
from planboard.models.user import User
from planboard.schemas.activity import (
    FieldChange,
    SubtaskDetails,
    TaskCreatedDetails,
    TaskDeletedDetails,
    TaskUpdatedDetails,
)
from planboard.schemas.attachment import AttachmentResponse
from planboard.schemas.comment import CommentResponse
from planboard.schemas.common import PageParams, Pagination, build_pagination
from planboard.schemas.label import LabelSummary
from planboard.schemas.task import (
    SubtaskCreateRequest,
    SubtaskResponse,
    SubtaskUpdateRequest,
    TaskCounts,
    TaskCreateRequest,
    TaskDetailResponse,
    TaskListItem,
    TaskUpdateRequest,
)
from planboard.schemas.user import UserSummary
from planboard.services.activity_service import ActivityService
from planboard.services.authorization import require_project_role, require_task_access
from planboard.services.notification_service import NotificationService
from planboard.services.project_service import calculate_progress

logger = logging.getLogger(__name__)

# URGENT first; used as the leading sort key of task lists
PRIORITY_ORDER = case(
    *[(Task.priority == p, p.rank) for p in TaskPriority],
    else_=0,
)

# Fields a patch may clear with an explicit null
NULLABLE_FIELDS = frozenset({"description", "assignee_id", "due_date"})
PATCHABLE_FIELDS = ("title", "description", "assignee_id", "priority", "status", "due_date")


def _comparable(field: str, value: Any) -> Any:
    return as_utc(value) if field == "due_date" else value


class TaskService:
    """Handles all task operations."""

    def __init__(self, db: AsyncSession, sink: RealtimeSink | None = None) -> None:
        self.db = db
        self.activity = ActivityService(db, sink)
        self.notifications = NotificationService(db, sink)

    # -----------------------------------------------------------------------
    # List Tasks
    # -----------------------------------------------------------------------

    async def get_tasks(
        self,
        project_id: UUID,
        user: User,
        params: PageParams,
        status: TaskStatus | None = None,
        assignee_id: UUID | None = None,
        priority: TaskPriority | None = None,
        search: str | None = None,
    ) -> tuple[list[TaskListItem], Pagination]:
        """
        List tasks for a project with optional filters. Viewer+.

        Sorted by priority (URGENT first), then due date (none last), then
        newest first.
        """
        await require_project_role(self.db, project_id, user.id)

        stmt = select(Task).where(Task.project_id == project_id)
        if status is not None:
            stmt = stmt.where(Task.status == status)
        if assignee_id is not None:
            stmt = stmt.where(Task.assignee_id == assignee_id)
        if priority is not None:
            stmt = stmt.where(Task.priority == priority)
        if search:
            pattern = contains_pattern(search)
            stmt = stmt.where(
                or_(
                    Task.title.ilike(pattern, escape=LIKE_ESCAPE),
                    Task.description.ilike(pattern, escape=LIKE_ESCAPE),
                )
            )

        count_stmt = select(func.count()).select_from(stmt.subquery())
        total = (await self.db.execute(count_stmt)).scalar_one()

        stmt = (
            stmt.order_by(
                PRIORITY_ORDER.desc(),
                case((Task.due_date.is_(None), 1), else_=0),
                Task.due_date.asc(),
                Task.created_at.desc(),
                Task.id,
            )
            .offset(params.offset)
            .limit(params.limit)
        )
        result = await self.db.execute(stmt)
        tasks = list(result.scalars().all())

        items = await self._build_list_items(tasks)
        return items, build_pagination(params, total)

    # -----------------------------------------------------------------------
    # Create Task
    # -----------------------------------------------------------------------

    async def create_task(
        self,
        project_id: UUID,
        user: User,
        data: TaskCreateRequest,
    ) -> TaskDetailResponse:
        """
        Create a new task. Member+.

        The assignee must belong to the project and every label to the
        project. Notifies the assignee unless they created the task.
        """
        access = await require_project_role(self.db, project_id, user.id, ProjectRole.member)

        if data.assignee_id is not None:
            await self._verify_assignee(access.project, data.assignee_id)
        label_ids = await self._validate_labels(data.label_ids, project_id)

        task = Task(
            project_id=project_id,
            title=data.title,
            description=data.description,
            assignee_id=data.assignee_id,
            created_by=user.id,
            priority=data.priority,
            status=data.status,
            due_date=as_utc(data.due_date),
        )
        self.db.add(task)
        await self.db.flush()

        for label_id in label_ids:
            self.db.add(TaskLabel(task_id=task.id, label_id=label_id))
        await self.db.flush()

        await self.activity.log(
            project_id=project_id,
            task_id=task.id,
            user_id=user.id,
            action=ActivityAction.CREATED,
            details=TaskCreatedDetails(
                title=task.title,
                status=task.status.value,
                priority=task.priority.value,
                assignee_id=task.assignee_id,
            ),
        )

        await calculate_progress(self.db, project_id)

        if task.assignee_id is not None and task.assignee_id != user.id:
            await self._notify_assignee(task, user)

        return await self._build_detail(task)

    # -----------------------------------------------------------------------
    # Get Task Detail
    # -----------------------------------------------------------------------

    async def get_task(self, task_id: UUID, user: User) -> TaskDetailResponse:
        """Full task detail with subtasks, labels, comments and attachments. Viewer+."""
        task, _ = await require_task_access(self.db, task_id, user.id)
        return await self._build_detail(task)

    # -----------------------------------------------------------------------
    # Update Task
    # -----------------------------------------------------------------------

    async def update_task(
        self,
        task_id: UUID,
        user: User,
        data: TaskUpdateRequest,
    ) -> TaskDetailResponse:
        """
        Partially update a task. Member+.

        Logs STATUS_CHANGED when the status moved, UPDATED otherwise, with
        the old/new value of every changed field. A patch that changes
        nothing logs nothing.
        """
        task, access = await require_task_access(self.db, task_id, user.id, ProjectRole.member)

        if data.version is not None and data.version != task.version:
            raise conflict(
                "Task was modified by someone else; reload and retry",
                "VERSION_CONFLICT",
            )

        changes: dict[str, FieldChange] = {}
        for field in PATCHABLE_FIELDS:
            if field not in data.model_fields_set:
                continue
            new = getattr(data, field)
            if new is None and field not in NULLABLE_FIELDS:
                raise validation_error(f"{field} cannot be null", "INVALID_FIELD")
            if field == "assignee_id" and new is not None and new != task.assignee_id:
                await self._verify_assignee(access.project, new)

            old = _comparable(field, getattr(task, field))
            new = _comparable(field, new)
            if new != old:
                changes[field] = FieldChange(old=old, new=new)
                setattr(task, field, new)

        if "label_ids" in data.model_fields_set:
            label_changes = await self._replace_labels(task, data.label_ids or [])
            if label_changes is not None:
                changes["label_ids"] = label_changes

        if changes:
            await self.db.flush()
            action = ActivityAction.STATUS_CHANGED if "status" in changes else ActivityAction.UPDATED
            await self.activity.log(
                project_id=task.project_id,
                task_id=task.id,
                user_id=user.id,
                action=action,
                details=TaskUpdatedDetails(changes=changes),
            )

        if "status" in changes:
            await calculate_progress(self.db, task.project_id)

        if (
            "assignee_id" in changes
            and task.assignee_id is not None
            and task.assignee_id != user.id
        ):
            await self._notify_assignee(task, user)

        return await self._build_detail(task)

    # -----------------------------------------------------------------------
    # Delete Task
    # -----------------------------------------------------------------------

    async def delete_task(self, task_id: UUID, user: User) -> None:
        """Delete a task and its children. Member+. The activity trail is kept."""
        task, _ = await require_task_access(self.db, task_id, user.id, ProjectRole.member)
        project_id, title = task.project_id, task.title

        await self.db.execute(delete(Subtask).where(Subtask.task_id == task.id))
        await self.db.execute(delete(TaskLabel).where(TaskLabel.task_id == task.id))
        await self.db.execute(delete(Comment).where(Comment.task_id == task.id))
        await self.db.execute(delete(Attachment).where(Attachment.task_id == task.id))
        await self.db.delete(task)
        await self.db.flush()

        await self.activity.log(
            project_id=project_id,
            task_id=task_id,
            user_id=user.id,
            action=ActivityAction.DELETED,
            details=TaskDeletedDetails(title=title),
        )
        await calculate_progress(self.db, project_id)

    # -----------------------------------------------------------------------
    # Subtasks
    # -----------------------------------------------------------------------

    async def add_subtask(
        self, task_id: UUID, user: User, data: SubtaskCreateRequest
    ) -> SubtaskResponse:
        task, _ = await require_task_access(self.db, task_id, user.id, ProjectRole.member)

        subtask = Subtask(task_id=task.id, title=data.title, completed=False)
        self.db.add(subtask)
        await self.db.flush()

        await self._log_subtask(task, user, subtask, "added")
        return SubtaskResponse.model_validate(subtask)

    async def update_subtask(
        self,
        task_id: UUID,
        subtask_id: UUID,
        user: User,
        data: SubtaskUpdateRequest,
    ) -> SubtaskResponse:
        task, _ = await require_task_access(self.db, task_id, user.id, ProjectRole.member)
        subtask = await self._get_subtask(task.id, subtask_id)

        changed = False
        if data.title is not None and data.title != subtask.title:
            subtask.title = data.title
            changed = True
        if data.completed is not None and data.completed != subtask.completed:
            subtask.completed = data.completed
            changed = True

        if changed:
            await self.db.flush()
            await self._log_subtask(task, user, subtask, "updated")
        return SubtaskResponse.model_validate(subtask)

    async def delete_subtask(self, task_id: UUID, subtask_id: UUID, user: User) -> None:
        task, _ = await require_task_access(self.db, task_id, user.id, ProjectRole.member)
        subtask = await self._get_subtask(task.id, subtask_id)

        await self.db.delete(subtask)
        await self.db.flush()
        await self._log_subtask(task, user, subtask, "deleted")

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    async def _get_subtask(self, task_id: UUID, subtask_id: UUID) -> Subtask:
        subtask = await self.db.scalar(
            select(Subtask).where(Subtask.id == subtask_id, Subtask.task_id == task_id)
        )
        if subtask is None:
            raise not_found("Subtask not found", "SUBTASK_NOT_FOUND")
        return subtask

    async def _log_subtask(self, task: Task, user: User, subtask: Subtask, operation: str) -> None:
        await self.activity.log(
            project_id=task.project_id,
            task_id=task.id,
            user_id=user.id,
            action=ActivityAction.UPDATED,
            details=SubtaskDetails(
                operation=operation,
                subtask_id=subtask.id,
                title=subtask.title,
                completed=subtask.completed,
            ),
        )

    async def _notify_assignee(self, task: Task, actor: User) -> None:
        await self.notifications.notify(
            user_id=task.assignee_id,
            type=NotificationType.TASK_ASSIGNED,
            message=f'{actor.name} assigned you to "{task.title}"',
            related_id=task.id,
            send_email=True,
        )

    async def _verify_assignee(self, project: Project, user_id: UUID) -> None:
        """The assignee must be the owner or a member of the project."""
        if user_id == project.owner_id:
            return
        member = await self.db.scalar(
            select(ProjectMember.id).where(
                ProjectMember.project_id == project.id,
                ProjectMember.user_id == user_id,
            )
        )
        if member is None:
            raise validation_error(
                "Assignee is not a member of this project",
                "ASSIGNEE_NOT_MEMBER",
            )

    async def _validate_labels(self, label_ids: list[UUID], project_id: UUID) -> list[UUID]:
        """De-duplicate and check every label belongs to the project."""
        unique_ids = list(dict.fromkeys(label_ids))
        if not unique_ids:
            return []
        result = await self.db.execute(
            select(Label.id).where(Label.id.in_(unique_ids), Label.project_id == project_id)
        )
        found = set(result.scalars().all())
        missing = [str(i) for i in unique_ids if i not in found]
        if missing:
            raise validation_error(
                f"Labels not found in this project: {', '.join(missing)}",
                "LABEL_NOT_FOUND",
            )
        return unique_ids

    async def _replace_labels(self, task: Task, label_ids: list[UUID]) -> FieldChange | None:
        """Replace the task's whole label set. Returns the change, or None if identical."""
        new_ids = await self._validate_labels(label_ids, task.project_id)

        result = await self.db.execute(select(TaskLabel.label_id).where(TaskLabel.task_id == task.id))
        old_ids = list(result.scalars().all())
        if set(old_ids) == set(new_ids):
            return None

        await self.db.execute(delete(TaskLabel).where(TaskLabel.task_id == task.id))
        for label_id in new_ids:
            self.db.add(TaskLabel(task_id=task.id, label_id=label_id))
        await self.db.flush()

        return FieldChange(
            old=sorted(str(i) for i in old_ids),
            new=sorted(str(i) for i in new_ids),
        )

    async def _load_labels_for_tasks(self, task_ids: list[UUID]) -> dict[UUID, list[LabelSummary]]:
        """Load all labels for a list of task IDs in a single query."""
        if not task_ids:
            return {}

        result = await self.db.execute(
            select(TaskLabel.task_id, Label)
            .join(Label, TaskLabel.label_id == Label.id)
            .where(TaskLabel.task_id.in_(task_ids))
            .order_by(Label.name)
        )

        labels_by_task: dict[UUID, list[LabelSummary]] = {}
        for task_id, label in result.all():
            labels_by_task.setdefault(task_id, []).append(
                LabelSummary(id=label.id, name=label.name, color=label.color)
            )
        return labels_by_task

    async def _count_by_task(self, model: Any, task_ids: list[UUID]) -> dict[UUID, int]:
        if not task_ids:
            return {}
        result = await self.db.execute(
            select(model.task_id, func.count(model.id))
            .where(model.task_id.in_(task_ids))
            .group_by(model.task_id)
        )
        return {task_id: count for task_id, count in result.all()}

    async def _load_users(self, user_ids: set[UUID]) -> dict[UUID, UserSummary]:
        user_ids.discard(None)
        if not user_ids:
            return {}
        result = await self.db.execute(select(User).where(User.id.in_(user_ids)))
        return {u.id: UserSummary.model_validate(u) for u in result.scalars().all()}

    async def _build_list_items(self, tasks: list[Task]) -> list[TaskListItem]:
        task_ids = [t.id for t in tasks]
        labels_by_task = await self._load_labels_for_tasks(task_ids)
        comment_counts = await self._count_by_task(Comment, task_ids)
        attachment_counts = await self._count_by_task(Attachment, task_ids)
        subtask_counts = await self._count_by_task(Subtask, task_ids)
        assignees = await self._load_users({t.assignee_id for t in tasks})

        return [
            TaskListItem(
                id=t.id,
                project_id=t.project_id,
                title=t.title,
                description=t.description,
                assignee_id=t.assignee_id,
                created_by=t.created_by,
                priority=t.priority,
                status=t.status,
                due_date=t.due_date,
                version=t.version,
                created_at=t.created_at,
                updated_at=t.updated_at,
                assignee=assignees.get(t.assignee_id) if t.assignee_id else None,
                labels=labels_by_task.get(t.id, []),
                counts=TaskCounts(
                    comments=comment_counts.get(t.id, 0),
                    attachments=attachment_counts.get(t.id, 0),
                    subtasks=subtask_counts.get(t.id, 0),
                ),
            )
            for t in tasks
        ]

    async def _build_detail(self, task: Task) -> TaskDetailResponse:
        [item] = await self._build_list_items([task])

        subtasks = (
            await self.db.execute(
                select(Subtask).where(Subtask.task_id == task.id).order_by(Subtask.created_at, Subtask.id)
            )
        ).scalars().all()
        comments = (
            await self.db.execute(
                select(Comment).where(Comment.task_id == task.id).order_by(Comment.created_at, Comment.id)
            )
        ).scalars().all()
        attachments = (
            await self.db.execute(
                select(Attachment)
                .where(Attachment.task_id == task.id)
                .order_by(Attachment.created_at.desc(), Attachment.id)
            )
        ).scalars().all()

        users = await self._load_users(
            {task.created_by}
            | {c.user_id for c in comments}
            | {a.uploaded_by for a in attachments}
        )

        return TaskDetailResponse(
            **item.model_dump(),
            creator=users.get(task.created_by),
            subtasks=[SubtaskResponse.model_validate(s) for s in subtasks],
            comments=[
                CommentResponse(
                    id=c.id,
                    task_id=c.task_id,
                    user_id=c.user_id,
                    content=c.content,
                    is_edited=c.is_edited,
                    created_at=c.created_at,
                    updated_at=c.updated_at,
                    user=users.get(c.user_id),
                )
                for c in comments
            ],
            attachments=[
                AttachmentResponse(
                    id=a.id,
                    task_id=a.task_id,
                    file_name=a.file_name,
                    file_url=a.file_url,
                    file_type=a.file_type,
                    file_size=a.file_size,
                    uploaded_by=a.uploaded_by,
                    created_at=a.created_at,
                    uploader=users.get(a.uploaded_by),
                )
                for a in attachments
            ],
        )
