"""
LinkMe Backend - Ownership Guard
==================================

What:  Resolves a profile by primary key AND owner in a single query.
Who:   Every owner-only operation: analytics reads, retention sweeps,
       profile edits, social link management.

Information-hiding policy:
    "Does not exist" and "exists but belongs to someone else" are the same
    outcome: a single filtered lookup raising NotFoundError with a fixed
    message. No code path answers 403.

Query plan:
    SELECT * FROM profiles WHERE id = :profile_id AND user_id = :user_id
    → primary key lookup plus a filter on the fetched row
"""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from linkme.exceptions import DatabaseError, NotFoundError
from linkme.models.profile import Profile

logger = logging.getLogger(__name__)

PROFILE_NOT_FOUND_MESSAGE = "Profile not found or you don't have permission"


def profile_not_found() -> NotFoundError:
    """The single error returned for missing and foreign profiles alike."""
    return NotFoundError(resource="profile", message=PROFILE_NOT_FOUND_MESSAGE)


async def get_owned_profile(db: AsyncSession, profile_id: UUID, user_id: UUID) -> Profile:
    """
    Return the profile if `user_id` owns it.

    Raises:
        NotFoundError: no profile with this id is owned by this user (→ 404)
        DatabaseError: the lookup itself failed (→ 500)
    """
    try:
        result = await db.execute(
            select(Profile).where(
                Profile.id == profile_id,
                Profile.user_id == user_id,
            )
        )
        profile = result.scalar_one_or_none()
    except SQLAlchemyError as e:
        logger.error("Ownership lookup failed for profile %s: %s", profile_id, str(e))
        raise DatabaseError(
            message="Could not load the profile. Please try again.",
            context={"original_error": str(e)},
        )

    if profile is None:
        logger.debug("Profile %s not visible to user %s", profile_id, user_id)
        raise profile_not_found()
    return profile
