"""
User schemas.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import EmailStr, Field, field_validator

from planboard.schemas.common import CamelModel


class UserSummary(CamelModel):
    """Compact user info embedded in project, task and comment responses."""

    id: UUID
    name: str
    email: str
    avatar: str | None = None


class UserResponse(CamelModel):
    """Full profile of the current user."""

    id: UUID
    email: str
    name: str
    avatar: str | None
    email_verified: bool
    created_at: datetime
    updated_at: datetime


class UserUpdateRequest(CamelModel):
    """Request body for PATCH /users/me. Changing email resets verification."""

    name: str | None = Field(default=None, min_length=2, max_length=100)
    email: EmailStr | None = None
    password: str | None = Field(default=None, min_length=8, max_length=128)
    avatar: str | None = Field(default=None, max_length=500)

    @field_validator("password")
    @classmethod
    def password_must_contain_number(cls, v: str | None) -> str | None:
        if v is not None and not any(c.isdigit() for c in v):
            raise ValueError("Password must contain at least one number")
        return v
