"""
LinkMe Backend - Account Service
==================================

What:  Read and edit the authenticated caller's own account row.
Who:   Called by the /api/users/me route handlers.
"""

import logging
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from linkme.exceptions import ConflictError, DatabaseError, NotFoundError
from linkme.models.user import User
from linkme.schemas.user import UserResponse, UserUpdate

logger = logging.getLogger(__name__)


class UserService:

    async def _load(self, db: AsyncSession, user_id: UUID) -> User:
        try:
            user = await db.get(User, user_id)
        except SQLAlchemyError as e:
            logger.error("Failed to load user %s: %s", user_id, str(e))
            raise DatabaseError(
                message="Could not load the account. Please try again.",
                context={"original_error": str(e)},
            )
        # A valid token for a deleted account
        if user is None:
            raise NotFoundError(resource="user")
        return user

    async def get_me(self, db: AsyncSession, user_id: UUID) -> UserResponse:
        return UserResponse.model_validate(await self._load(db, user_id))

    async def update_me(self, db: AsyncSession, user_id: UUID, data: UserUpdate) -> UserResponse:
        """
        Update name and/or email.

        Raises:
            ConflictError: the email belongs to another account (→ 409)
        """
        user = await self._load(db, user_id)
        try:
            if data.email is not None:
                email = str(data.email).lower()
                taken = await db.execute(
                    select(User.id).where(func.lower(User.email) == email, User.id != user_id)
                )
                if taken.first() is not None:
                    raise ConflictError(
                        message="Email is already in use",
                        context={"field": "email"},
                    )
                user.email = email
            if data.name is not None:
                user.name = data.name.strip()
            await db.flush()
            await db.refresh(user)
        except ConflictError:
            raise
        except SQLAlchemyError as e:
            logger.error("Failed to update user %s: %s", user_id, str(e))
            raise DatabaseError(
                message="Could not update the account. Please try again.",
                context={"original_error": str(e)},
            )
        logger.info("Account %s updated", user_id)
        return UserResponse.model_validate(user)


# ── Singleton Instance ────────────────────────────────────────────────────
user_service = UserService()
