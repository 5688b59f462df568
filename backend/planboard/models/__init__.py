"""
SQLAlchemy ORM models.

All models imported here to ensure they are registered with Base.metadata.
Import order matters: base models before dependent models.
"""

from planboard.models.base import Base, TimestampMixin, UUIDMixin
from planboard.models.user import RefreshToken, User
from planboard.models.project import Project, ProjectMember, ProjectRole
from planboard.models.task import Subtask, Task, TaskPriority, TaskStatus
from planboard.models.label import Label, TaskLabel
from planboard.models.comment import Comment
from planboard.models.attachment import Attachment
from planboard.models.activity_log import ActivityAction, ActivityLog
from planboard.models.notification import Notification, NotificationType

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "User",
    "RefreshToken",
    "Project",
    "ProjectMember",
    "ProjectRole",
    "Task",
    "Subtask",
    "TaskPriority",
    "TaskStatus",
    "Label",
    "TaskLabel",
    "Comment",
    "Attachment",
    "ActivityAction",
    "ActivityLog",
    "Notification",
    "NotificationType",
]
