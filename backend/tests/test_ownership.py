"""
LinkMe Backend - Ownership Guard Unit Tests
"""

from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from linkme.exceptions import DatabaseError, NotFoundError
from linkme.services.ownership import PROFILE_NOT_FOUND_MESSAGE, get_owned_profile


class TestGetOwnedProfile:

    @pytest.mark.asyncio
    async def test_owner_gets_profile(self, db_session, make_user, make_profile):
        user = await make_user()
        profile = await make_profile(user, slug="jane")

        found = await get_owned_profile(db_session, profile.id, user.id)

        assert found.id == profile.id
        assert found.slug == "jane"

    @pytest.mark.asyncio
    async def test_missing_and_foreign_are_indistinguishable(self, db_session, make_user, make_profile):
        owner = await make_user()
        stranger = await make_user()
        profile = await make_profile(owner)

        with pytest.raises(NotFoundError) as foreign:
            await get_owned_profile(db_session, profile.id, stranger.id)
        with pytest.raises(NotFoundError) as missing:
            await get_owned_profile(db_session, uuid4(), stranger.id)

        assert foreign.value.message == missing.value.message == PROFILE_NOT_FOUND_MESSAGE
        assert foreign.value.context == missing.value.context

    @pytest.mark.asyncio
    async def test_database_failure_is_wrapped(self):
        db = AsyncMock()
        db.execute.side_effect = OperationalError("SELECT", {}, Exception("connection lost"))

        with pytest.raises(DatabaseError) as exc_info:
            await get_owned_profile(db, uuid4(), uuid4())
        assert "connection lost" in exc_info.value.context["original_error"]
