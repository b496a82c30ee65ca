"""
LinkMe Backend - Analytics Service Unit Tests
===============================================

What:  Tests for AnalyticsService aggregates against real rows in SQLite.

What we test:
    ✅ Source breakdown counts and percentages
    ✅ Daily series has exactly `days` buckets, zero days included
    ✅ Location rankings skip unresolved views
    ✅ Device / browser breakdowns are stable across repeated reads
    ✅ Summary window parsing (explicit dates, reversed range, bad input, min-date floor)
    ✅ Per-account rollup across several profiles
"""

from datetime import datetime, timedelta, timezone

import pytest

from linkme.exceptions import NotFoundError
from linkme.services.analytics_service import AnalyticsService, percentage
from linkme.services.ownership import PROFILE_NOT_FOUND_MESSAGE


class TestPercentage:

    def test_rounded_to_two_places(self):
        assert percentage(1, 3) == 33.33
        assert percentage(2, 3) == 66.67

    def test_zero_total(self):
        assert percentage(0, 0) == 0.0


class TestSourceBreakdown:

    def setup_method(self):
        self.service = AnalyticsService()

    @pytest.mark.asyncio
    async def test_counts_and_percentages(self, db_session, make_user, make_profile, make_view):
        user = await make_user()
        profile = await make_profile(user)
        for source in ["qr", "qr", "qr", "direct", "direct"]:
            await make_view(profile, source=source)

        result = await self.service.get_views_by_source(db_session, profile.id, user.id, days=30)

        assert result.total == 5
        assert [(b.source, b.count, b.percentage) for b in result.breakdown] == [
            ("qr", 3, 60.0),
            ("direct", 2, 40.0),
        ]

    @pytest.mark.asyncio
    async def test_ties_ordered_by_label(self, db_session, make_user, make_profile, make_view):
        user = await make_user()
        profile = await make_profile(user)
        for source in ["nfc", "link", "qr"]:
            await make_view(profile, source=source)

        result = await self.service.get_views_by_source(db_session, profile.id, user.id)

        assert [b.source for b in result.breakdown] == ["link", "nfc", "qr"]

    @pytest.mark.asyncio
    async def test_views_outside_window_excluded(self, db_session, make_user, make_profile, make_view):
        user = await make_user()
        profile = await make_profile(user)
        now = datetime.now(timezone.utc)
        await make_view(profile, source="qr", viewed_at=now - timedelta(days=2))
        await make_view(profile, source="qr", viewed_at=now - timedelta(days=40))

        result = await self.service.get_views_by_source(db_session, profile.id, user.id, days=7)

        assert result.days == 7
        assert result.total == 1

    @pytest.mark.asyncio
    async def test_empty_profile(self, db_session, make_user, make_profile):
        user = await make_user()
        profile = await make_profile(user)

        result = await self.service.get_views_by_source(db_session, profile.id, user.id)

        assert result.total == 0
        assert result.breakdown == []


class TestViewsOverTime:

    def setup_method(self):
        self.service = AnalyticsService()

    @pytest.mark.asyncio
    async def test_one_bucket_per_day(self, db_session, make_user, make_profile, make_view):
        user = await make_user()
        profile = await make_profile(user)
        now = datetime.now(timezone.utc)
        await make_view(profile, viewed_at=now - timedelta(days=2))
        await make_view(profile, viewed_at=now - timedelta(days=2))
        await make_view(profile, viewed_at=now - timedelta(days=8))

        result = await self.service.get_views_over_time(db_session, profile.id, user.id, days=7, now=now)

        assert len(result.views) == 7
        assert result.views[-1].date == now.date()
        assert result.views[0].date == now.date() - timedelta(days=6)
        by_day = {bucket.date: bucket.count for bucket in result.views}
        assert by_day[(now - timedelta(days=2)).date()] == 2
        assert sum(by_day.values()) == 2

    @pytest.mark.asyncio
    async def test_zero_days_are_filled(self, db_session, make_user, make_profile):
        user = await make_user()
        profile = await make_profile(user)

        result = await self.service.get_views_over_time(db_session, profile.id, user.id, days=3)

        assert [bucket.count for bucket in result.views] == [0, 0, 0]

    @pytest.mark.asyncio
    async def test_days_clamped_to_maximum(self, db_session, make_user, make_profile):
        user = await make_user()
        profile = await make_profile(user)

        result = await self.service.get_views_over_time(db_session, profile.id, user.id, days="9999")

        assert result.days == 365
        assert len(result.views) == 365


class TestLocationAndDevice:

    def setup_method(self):
        self.service = AnalyticsService()

    @pytest.mark.asyncio
    async def test_unresolved_locations_excluded(self, db_session, make_user, make_profile, make_view):
        user = await make_user()
        profile = await make_profile(user)
        await make_view(profile, viewer_country="DE", viewer_city="Berlin")
        await make_view(profile, viewer_country="DE", viewer_city="Berlin")
        await make_view(profile, viewer_country="FR", viewer_city=None)
        await make_view(profile, viewer_country=None, viewer_city=None)

        result = await self.service.get_views_by_location(db_session, profile.id, user.id)

        assert [(c.country, c.count) for c in result.countries] == [("DE", 2), ("FR", 1)]
        assert [(c.city, c.country, c.count) for c in result.cities] == [("Berlin", "DE", 2)]

    @pytest.mark.asyncio
    async def test_location_limit(self, db_session, make_user, make_profile, make_view):
        user = await make_user()
        profile = await make_profile(user)
        for country in ["AT", "BE", "CH", "DE"]:
            await make_view(profile, viewer_country=country)

        result = await self.service.get_views_by_location(db_session, profile.id, user.id, limit=2)

        assert [c.country for c in result.countries] == ["AT", "BE"]

    @pytest.mark.asyncio
    async def test_device_breakdown_is_idempotent(self, db_session, make_user, make_profile, make_view):
        user = await make_user()
        profile = await make_profile(user)
        await make_view(profile, device="Desktop", browser="Chrome 120")
        await make_view(profile, device="iPhone", browser="Mobile Safari 17")
        await make_view(profile, device="Desktop", browser="Firefox 121")
        await make_view(profile, device="Desktop", browser="Chrome 120")

        first = await self.service.get_views_by_device(db_session, profile.id, user.id)
        second = await self.service.get_views_by_device(db_session, profile.id, user.id)

        assert first == second
        assert first.total_views == 4
        assert [(d.device, d.count, d.percentage) for d in first.devices] == [
            ("Desktop", 3, 75.0),
            ("iPhone", 1, 25.0),
        ]
        assert [b.browser for b in first.browsers] == ["Chrome 120", "Firefox 121", "Mobile Safari 17"]


class TestProfileAnalytics:

    def setup_method(self):
        self.service = AnalyticsService()

    @pytest.mark.asyncio
    async def test_full_summary(self, db_session, make_user, make_profile, make_view):
        user = await make_user()
        profile = await make_profile(user, slug="jane", view_count=12)
        await make_view(profile, source="qr", viewer_ip="1.1.1.1", viewer_country="DE", device="Desktop")
        await make_view(profile, source="qr", viewer_ip="1.1.1.1", viewer_country="DE", device="Desktop")
        await make_view(profile, source="nfc", viewer_ip="2.2.2.2", viewer_country="US", device="iPhone")

        result = await self.service.get_profile_analytics(db_session, profile.id, user.id, days=7)

        assert result.profile_info.slug == "jane"
        assert result.profile_info.total_view_count == 12
        assert result.period.days == 7
        assert result.analytics.total_views == 3
        assert result.analytics.unique_visitors == 2
        assert [s.source for s in result.analytics.by_source] == ["qr", "nfc"]
        assert result.analytics.top_countries[0].country == "DE"
        assert len(result.views_over_time) == 7

    @pytest.mark.asyncio
    async def test_explicit_range(self, db_session, make_user, make_profile, make_view):
        user = await make_user()
        profile = await make_profile(user)
        await make_view(profile, viewed_at=datetime(2024, 1, 5, 12, tzinfo=timezone.utc))
        await make_view(profile, viewed_at=datetime(2024, 2, 5, 12, tzinfo=timezone.utc))

        result = await self.service.get_profile_analytics(
            db_session, profile.id, user.id, start_date="2024-01-01", end_date="2024-01-31",
        )

        assert result.period.start == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert result.analytics.total_views == 1

    @pytest.mark.asyncio
    async def test_reversed_range_is_swapped(self, db_session, make_user, make_profile):
        user = await make_user()
        profile = await make_profile(user)

        result = await self.service.get_profile_analytics(
            db_session, profile.id, user.id, start_date="2024-01-31", end_date="2024-01-01",
        )

        assert result.period.start < result.period.end
        assert result.period.start == datetime(2024, 1, 1, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_bad_input_uses_defaults(self, db_session, make_user, make_profile):
        user = await make_user()
        profile = await make_profile(user)
        now = datetime(2024, 6, 1, tzinfo=timezone.utc)

        result = await self.service.get_profile_analytics(
            db_session, profile.id, user.id, start_date="soon", end_date="later", days="abc", now=now,
        )

        assert result.period.days == 30
        assert result.period.end == now
        assert result.period.start == now - timedelta(days=30)

    @pytest.mark.asyncio
    async def test_window_near_min_date_is_floored(self, db_session, make_user, make_profile):
        user = await make_user()
        profile = await make_profile(user)

        result = await self.service.get_profile_analytics(
            db_session, profile.id, user.id, end_date="0001-01-05", days=30,
        )

        assert result.period.start == datetime.min.replace(tzinfo=timezone.utc)
        assert result.period.end == datetime(1, 1, 5, tzinfo=timezone.utc)
        assert result.analytics.total_views == 0

    @pytest.mark.asyncio
    async def test_foreign_profile(self, db_session, make_user, make_profile):
        owner = await make_user()
        stranger = await make_user()
        profile = await make_profile(owner)

        with pytest.raises(NotFoundError) as exc_info:
            await self.service.get_profile_analytics(db_session, profile.id, stranger.id)
        assert exc_info.value.message == PROFILE_NOT_FOUND_MESSAGE


class TestUserAnalytics:

    def setup_method(self):
        self.service = AnalyticsService()

    @pytest.mark.asyncio
    async def test_rollup_across_profiles(self, db_session, make_user, make_profile, make_view):
        user = await make_user()
        work = await make_profile(user, slug="work", view_count=10, profile_type="business")
        home = await make_profile(user, slug="home", view_count=5)
        await make_view(work, source="qr")
        await make_view(work, source="qr")
        await make_view(home, source="direct")
        await make_view(home, source="direct", viewed_at=datetime.now(timezone.utc) - timedelta(days=90))

        result = await self.service.get_user_analytics(db_session, user.id, days=30)

        assert result.total_profiles == 2
        assert result.total_views == 15
        assert result.total_views_in_period == 3
        assert [(s.source, s.count) for s in result.views_by_source] == [("qr", 2), ("direct", 1)]
        by_slug = {p.slug: p for p in result.profiles}
        assert by_slug["work"].views_in_period == 2
        assert by_slug["work"].type == "business"
        assert by_slug["home"].views_in_period == 1

    @pytest.mark.asyncio
    async def test_other_accounts_excluded(self, db_session, make_user, make_profile, make_view):
        user = await make_user()
        other = await make_user()
        foreign = await make_profile(other, view_count=50)
        await make_view(foreign)

        result = await self.service.get_user_analytics(db_session, user.id)

        assert result.total_profiles == 0
        assert result.total_views == 0
        assert result.profiles == []
