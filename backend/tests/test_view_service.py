"""
LinkMe Backend - View Service Unit Tests
==========================================

What:  Tests for ViewService (record_view, get_recent_views, delete_old_views).
How:   Runs against the in-memory SQLite database from conftest.py.

What we test:
    ✅ One recorded view = one event row and view_count + 1
    ✅ Enrichment fields and source are stored as given
    ✅ Unknown and inactive slugs write nothing
    ✅ Recent views are newest-first, paginated, and omit IP / user agent
    ✅ Retention sweep deletes only rows older than the cutoff
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from linkme.exceptions import NotFoundError
from linkme.models import Profile, ViewEvent
from linkme.services.enrichment import ViewerContext
from linkme.services.ownership import PROFILE_NOT_FOUND_MESSAGE
from linkme.services.view_service import ViewService


def viewer(**overrides) -> ViewerContext:
    fields = dict(
        ip="81.2.69.142",
        user_agent="Mozilla/5.0 (iPhone)",
        referrer="https://news.example.com/",
        device="iPhone",
        browser="Mobile Safari 17",
        country="DE",
        city="Berlin",
    )
    fields.update(overrides)
    return ViewerContext(**fields)


async def stored_view_count(db, profile_id) -> int:
    result = await db.execute(select(Profile.view_count).where(Profile.id == profile_id))
    return result.scalar_one()


async def event_count(db, profile_id) -> int:
    result = await db.execute(
        select(func.count(ViewEvent.id)).where(ViewEvent.profile_id == profile_id)
    )
    return result.scalar_one()


class TestRecordView:
    """Tests for the public view recorder."""

    def setup_method(self):
        self.service = ViewService()

    @pytest.mark.asyncio
    async def test_record_increments_counter_by_one(self, db_session, make_user, make_profile):
        user = await make_user()
        profile = await make_profile(user, slug="jane", view_count=4)

        result = await self.service.record_view(db_session, "jane", "qr", viewer())

        assert result.message == "View tracked successfully"
        assert result.profile_id == profile.id
        assert result.view_count == 5
        assert await stored_view_count(db_session, profile.id) == 5
        assert await event_count(db_session, profile.id) == 1

    @pytest.mark.asyncio
    async def test_record_stores_enrichment(self, db_session, make_user, make_profile):
        user = await make_user()
        profile = await make_profile(user, slug="jane")

        result = await self.service.record_view(db_session, "jane", "nfc", viewer())
        event = await db_session.get(ViewEvent, result.view_id)

        assert event.profile_id == profile.id
        assert event.view_source == "nfc"
        assert event.viewer_ip == "81.2.69.142"
        assert event.viewer_country == "DE"
        assert event.viewer_city == "Berlin"
        assert event.device == "iPhone"
        assert event.referrer == "https://news.example.com/"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("source", [None, "", "billboard", 5, ["qr"]])
    async def test_unknown_source_is_direct(self, db_session, make_user, make_profile, source):
        user = await make_user()
        await make_profile(user, slug="jane")

        result = await self.service.record_view(db_session, "jane", source, viewer())
        event = await db_session.get(ViewEvent, result.view_id)

        assert event.view_source == "direct"

    @pytest.mark.asyncio
    async def test_source_is_case_insensitive(self, db_session, make_user, make_profile):
        user = await make_user()
        await make_profile(user, slug="jane")

        result = await self.service.record_view(db_session, "jane", " QR ", viewer())
        event = await db_session.get(ViewEvent, result.view_id)

        assert event.view_source == "qr"

    @pytest.mark.asyncio
    async def test_unknown_slug_raises_not_found(self, db_session):
        with pytest.raises(NotFoundError):
            await self.service.record_view(db_session, "nobody", "direct", viewer())

        total = (await db_session.execute(select(func.count(ViewEvent.id)))).scalar_one()
        assert total == 0

    @pytest.mark.asyncio
    async def test_inactive_profile_writes_nothing(self, db_session, make_user, make_profile):
        user = await make_user()
        profile = await make_profile(user, slug="jane", is_active=False, view_count=7)

        with pytest.raises(NotFoundError):
            await self.service.record_view(db_session, "jane", "qr", viewer())

        assert await stored_view_count(db_session, profile.id) == 7
        assert await event_count(db_session, profile.id) == 0

    @pytest.mark.asyncio
    async def test_missing_geography_is_stored_as_null(self, db_session, make_user, make_profile):
        user = await make_user()
        await make_profile(user, slug="jane")

        context = viewer(ip="127.0.0.1", country=None, city=None, user_agent="", referrer=None)
        result = await self.service.record_view(db_session, "jane", "direct", context)
        event = await db_session.get(ViewEvent, result.view_id)

        assert event.viewer_country is None
        assert event.viewer_city is None
        assert event.user_agent is None

    @pytest.mark.asyncio
    async def test_repeated_views_accumulate(self, db_session, make_user, make_profile):
        user = await make_user()
        profile = await make_profile(user, slug="jane")

        for _ in range(3):
            await self.service.record_view(db_session, "jane", "link", viewer())

        assert await stored_view_count(db_session, profile.id) == 3
        assert await event_count(db_session, profile.id) == 3


class TestRecentViews:
    """Tests for the owner's paginated event list."""

    def setup_method(self):
        self.service = ViewService()

    @pytest.mark.asyncio
    async def test_newest_first_with_pagination(self, db_session, make_user, make_profile, make_view):
        user = await make_user()
        profile = await make_profile(user)
        now = datetime.now(timezone.utc)
        for hours_ago, source in [(3, "qr"), (2, "nfc"), (1, "link")]:
            await make_view(profile, source=source, viewed_at=now - timedelta(hours=hours_ago))

        page = await self.service.get_recent_views(db_session, profile.id, user.id, limit=2, offset=0)
        assert page.total == 3
        assert page.limit == 2
        assert [v.view_source for v in page.views] == ["link", "nfc"]

        rest = await self.service.get_recent_views(db_session, profile.id, user.id, limit=2, offset=2)
        assert [v.view_source for v in rest.views] == ["qr"]

    @pytest.mark.asyncio
    async def test_items_omit_ip_and_user_agent(self, db_session, make_user, make_profile, make_view):
        user = await make_user()
        profile = await make_profile(user)
        await make_view(profile, viewer_ip="81.2.69.142", user_agent="Mozilla/5.0")

        page = await self.service.get_recent_views(db_session, profile.id, user.id)
        item = page.views[0].model_dump()

        assert "viewer_ip" not in item
        assert "user_agent" not in item

    @pytest.mark.asyncio
    async def test_malformed_paging_falls_back(self, db_session, make_user, make_profile):
        user = await make_user()
        profile = await make_profile(user)

        page = await self.service.get_recent_views(db_session, profile.id, user.id, limit="lots", offset="-4")

        assert page.limit == 20
        assert page.offset == 0

    @pytest.mark.asyncio
    async def test_limit_is_capped(self, db_session, make_user, make_profile):
        user = await make_user()
        profile = await make_profile(user)

        page = await self.service.get_recent_views(db_session, profile.id, user.id, limit=100000)

        assert page.limit == 100

    @pytest.mark.asyncio
    async def test_foreign_profile_is_not_found(self, db_session, make_user, make_profile, make_view):
        owner = await make_user()
        stranger = await make_user()
        profile = await make_profile(owner)
        await make_view(profile)

        with pytest.raises(NotFoundError) as exc_info:
            await self.service.get_recent_views(db_session, profile.id, stranger.id)
        assert exc_info.value.message == PROFILE_NOT_FOUND_MESSAGE


class TestDeleteOldViews:
    """Tests for the retention sweeper."""

    def setup_method(self):
        self.service = ViewService()

    @pytest.mark.asyncio
    async def test_only_older_rows_are_deleted(self, db_session, make_user, make_profile, make_view):
        user = await make_user()
        profile = await make_profile(user, view_count=3)
        now = datetime.now(timezone.utc)
        await make_view(profile, viewed_at=now - timedelta(days=120))
        await make_view(profile, viewed_at=now - timedelta(days=95))
        await make_view(profile, viewed_at=now - timedelta(days=10))

        result = await self.service.delete_old_views(db_session, profile.id, user.id, 90, now=now)

        assert result.deleted_count == 2
        assert result.message == "Deleted 2 view(s) older than 90 day(s)"
        assert await event_count(db_session, profile.id) == 1
        # Lifetime counter is not rewritten by the sweep
        assert await stored_view_count(db_session, profile.id) == 3

    @pytest.mark.asyncio
    async def test_zero_days_deletes_everything(self, db_session, make_user, make_profile, make_view):
        user = await make_user()
        profile = await make_profile(user)
        for _ in range(4):
            await make_view(profile)

        result = await self.service.delete_old_views(db_session, profile.id, user.id, 0)

        assert result.deleted_count == 4
        assert await event_count(db_session, profile.id) == 0

    @pytest.mark.asyncio
    async def test_long_horizon_deletes_nothing(self, db_session, make_user, make_profile, make_view):
        user = await make_user()
        profile = await make_profile(user)
        await make_view(profile)

        result = await self.service.delete_old_views(db_session, profile.id, user.id, 3650)

        assert result.deleted_count == 0
        assert await event_count(db_session, profile.id) == 1

    @pytest.mark.asyncio
    async def test_huge_horizon_deletes_nothing(self, db_session, make_user, make_profile, make_view):
        user = await make_user()
        profile = await make_profile(user)
        await make_view(profile, viewed_at=datetime.now(timezone.utc) - timedelta(days=400))

        result = await self.service.delete_old_views(db_session, profile.id, user.id, 1000000)

        assert result.deleted_count == 0
        assert result.message == "Deleted 0 view(s) older than 36500 day(s)"
        assert await event_count(db_session, profile.id) == 1

    @pytest.mark.asyncio
    async def test_default_horizon_is_ninety_days(self, db_session, make_user, make_profile):
        user = await make_user()
        profile = await make_profile(user)
        now = datetime(2024, 6, 1, tzinfo=timezone.utc)

        result = await self.service.delete_old_views(db_session, profile.id, user.id, None, now=now)

        assert result.cutoff == now - timedelta(days=90)

    @pytest.mark.asyncio
    async def test_other_profiles_untouched(self, db_session, make_user, make_profile, make_view):
        user = await make_user()
        mine = await make_profile(user)
        other = await make_profile(user)
        await make_view(mine)
        await make_view(other)

        await self.service.delete_old_views(db_session, mine.id, user.id, 0)

        assert await event_count(db_session, other.id) == 1

    @pytest.mark.asyncio
    async def test_non_owner_deletes_nothing(self, db_session, make_user, make_profile, make_view):
        owner = await make_user()
        stranger = await make_user()
        profile = await make_profile(owner)
        await make_view(profile)

        with pytest.raises(NotFoundError):
            await self.service.delete_old_views(db_session, profile.id, stranger.id, 0)

        assert await event_count(db_session, profile.id) == 1

    @pytest.mark.asyncio
    async def test_unknown_profile_is_not_found(self, db_session, make_user):
        user = await make_user()
        with pytest.raises(NotFoundError):
            await self.service.delete_old_views(db_session, uuid4(), user.id, 0)
