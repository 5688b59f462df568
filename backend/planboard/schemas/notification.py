"""
Pydantic schemas for notifications.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from planboard.models.notification import NotificationType
from planboard.schemas.common import CamelModel


class NotificationResponse(CamelModel):
    id: uuid.UUID
    user_id: uuid.UUID
    type: NotificationType
    message: str
    read: bool
    related_id: uuid.UUID | None
    created_at: datetime


class MarkAllReadResponse(CamelModel):
    updated: int
