"""
User profile business logic.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from planboard.core.exceptions import conflict, not_found
from planboard.core.security import hash_password
from planboard.models.user import User
from planboard.schemas.user import UserResponse, UserSummary, UserUpdateRequest
from planboard.services.auth_service import send_verification, set_verification_token


class UserService:

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_me(self, user: User) -> UserResponse:
        return UserResponse.model_validate(user)

    async def update_me(self, user: User, data: UserUpdateRequest) -> UserResponse:
        """
        Update the current user's profile.

        A new email must be unused and resets verification; a fresh
        verification email is queued.
        """
        if data.name is not None:
            user.name = data.name
        if "avatar" in data.model_fields_set:
            user.avatar = data.avatar
        if data.password is not None:
            user.password_hash = hash_password(data.password)

        verification_token: str | None = None
        if data.email is not None and data.email.lower() != user.email:
            email = data.email.lower()
            taken = await self.db.scalar(select(User.id).where(User.email == email))
            if taken is not None:
                raise conflict("Email already in use", "EMAIL_TAKEN")
            user.email = email
            user.email_verified = False
            verification_token = set_verification_token(user)

        await self.db.flush()

        if verification_token is not None:
            send_verification(self.db, user, verification_token)
        return UserResponse.model_validate(user)

    async def get_user(self, user_id: UUID) -> UserSummary:
        user = await self.db.scalar(select(User).where(User.id == user_id))
        if user is None:
            raise not_found("User not found", "USER_NOT_FOUND")
        return UserSummary.model_validate(user)
