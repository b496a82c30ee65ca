"""
LinkMe Backend - Analytics Service (Aggregator)
=================================================

What:  Read-only aggregates over a profile's view events.
How:   Ownership guard first, then independent GROUP BY queries on the
       request session, each filtered by profile_id and a viewed_at window.
Who:   Called by the /api/analytics route handlers.

Windows:
    - Summary: [start, end] with end = end_date or now and
      start = start_date or end - days
    - Single-dimension endpoints: viewed_at >= now - days
    - Daily series: the last `days` calendar days in UTC, today included,
      one bucket per day (zero-view days included)

Percentages are round(count / total * 100, 2); a zero total yields 0.
Ties in every ranking are broken by label so repeated reads with no
intervening writes return identical results.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import asc, desc, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from linkme.config import settings
from linkme.exceptions import DatabaseError
from linkme.models.profile import Profile
from linkme.models.view_event import ViewEvent
from linkme.schemas.analytics import (
    AnalyticsPeriod,
    AnalyticsSummary,
    BrowserCount,
    CityCount,
    CountryCount,
    DailyViewCount,
    DeviceCount,
    ProfileAnalyticsResponse,
    ProfileInfo,
    SourceBreakdownItem,
    SourceCount,
    UserAnalyticsResponse,
    UserProfileSummary,
    ViewsByDeviceResponse,
    ViewsByLocationResponse,
    ViewsBySourceResponse,
    ViewsOverTimeResponse,
)
from linkme.services.ownership import get_owned_profile
from linkme.services.params import coerce_int, parse_datetime, utcnow

logger = logging.getLogger(__name__)


def percentage(count: int, total: int) -> float:
    if not total:
        return 0.0
    return round(count / total * 100, 2)


def _as_date(value) -> Optional[date]:
    """Normalize a DATE() result: drivers return date, datetime or 'YYYY-MM-DD'."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _shift_back(moment: datetime, days: int) -> datetime:
    """moment - days, floored at the earliest representable UTC datetime."""
    try:
        return moment - timedelta(days=days)
    except OverflowError:
        return datetime.min.replace(tzinfo=timezone.utc)


class AnalyticsService:
    """
    Aggregation over ProfileView events for profile owners.

    Every public method runs the ownership guard before touching the event
    table; a foreign or unknown profile raises the shared NotFoundError.
    """

    def coerce_days(self, days) -> int:
        return coerce_int(days, settings.analytics_default_days, 1, settings.analytics_max_days)

    # ══════════════════════════════════════════════════════════════════════
    # Public Operations
    # ══════════════════════════════════════════════════════════════════════

    async def get_profile_analytics(
        self,
        db: AsyncSession,
        profile_id: UUID,
        user_id: UUID,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        days=None,
        now: Optional[datetime] = None,
    ) -> ProfileAnalyticsResponse:
        """
        Full dashboard summary for one owned profile.

        Invalid start_date / end_date strings are ignored. A reversed range
        is swapped rather than rejected.
        """
        days = self.coerce_days(days)
        now = now or utcnow()
        end = parse_datetime(end_date) or now
        start = parse_datetime(start_date) or _shift_back(end, days)
        if start > end:
            start, end = end, start

        profile = await get_owned_profile(db, profile_id, user_id)
        filters = self._window(profile_id, start, end)

        try:
            total = await self._count(db, filters)
            unique_visitors = (
                await db.execute(
                    select(func.count(func.distinct(ViewEvent.viewer_ip))).where(*filters)
                )
            ).scalar() or 0
            summary = AnalyticsSummary(
                total_views=total,
                unique_visitors=unique_visitors,
                by_source=await self._source_breakdown(db, filters, total),
                top_countries=await self._top_countries(db, filters, settings.analytics_location_limit),
                top_cities=await self._top_cities(db, filters, settings.analytics_location_limit),
                devices=await self._device_breakdown(db, filters, total),
                browsers=await self._browser_breakdown(db, filters, total),
            )
            series = await self._daily_series(db, profile_id, days, now)
        except SQLAlchemyError as e:
            raise self._wrap(e, profile_id)

        return ProfileAnalyticsResponse(
            period=AnalyticsPeriod(start=start, end=end, days=days),
            profile_info=ProfileInfo(
                id=profile.id,
                name=profile.name,
                slug=profile.slug,
                total_view_count=profile.view_count,
            ),
            analytics=summary,
            views_over_time=series,
        )

    async def get_views_by_source(
        self, db: AsyncSession, profile_id: UUID, user_id: UUID, days=None,
    ) -> ViewsBySourceResponse:
        days = self.coerce_days(days)
        await get_owned_profile(db, profile_id, user_id)
        filters = self._since(profile_id, days)
        try:
            total = await self._count(db, filters)
            breakdown = await self._source_breakdown(db, filters, total)
        except SQLAlchemyError as e:
            raise self._wrap(e, profile_id)
        return ViewsBySourceResponse(days=days, total=total, breakdown=breakdown)

    async def get_views_by_location(
        self, db: AsyncSession, profile_id: UUID, user_id: UUID, days=None, limit=None,
    ) -> ViewsByLocationResponse:
        """Top countries and top (city, country) pairs; unresolved views are excluded."""
        days = self.coerce_days(days)
        limit = coerce_int(limit, settings.analytics_location_limit, 1, 100)
        await get_owned_profile(db, profile_id, user_id)
        filters = self._since(profile_id, days)
        try:
            countries = await self._top_countries(db, filters, limit)
            cities = await self._top_cities(db, filters, limit)
        except SQLAlchemyError as e:
            raise self._wrap(e, profile_id)
        return ViewsByLocationResponse(days=days, countries=countries, cities=cities)

    async def get_views_by_device(
        self, db: AsyncSession, profile_id: UUID, user_id: UUID, days=None,
    ) -> ViewsByDeviceResponse:
        days = self.coerce_days(days)
        await get_owned_profile(db, profile_id, user_id)
        filters = self._since(profile_id, days)
        try:
            total = await self._count(db, filters)
            devices = await self._device_breakdown(db, filters, total)
            browsers = await self._browser_breakdown(db, filters, total)
        except SQLAlchemyError as e:
            raise self._wrap(e, profile_id)
        return ViewsByDeviceResponse(
            days=days, total_views=total, devices=devices, browsers=browsers,
        )

    async def get_views_over_time(
        self,
        db: AsyncSession,
        profile_id: UUID,
        user_id: UUID,
        days=None,
        now: Optional[datetime] = None,
    ) -> ViewsOverTimeResponse:
        days = self.coerce_days(days)
        await get_owned_profile(db, profile_id, user_id)
        try:
            series = await self._daily_series(db, profile_id, days, now or utcnow())
        except SQLAlchemyError as e:
            raise self._wrap(e, profile_id)
        return ViewsOverTimeResponse(days=days, views=series)

    async def get_user_analytics(
        self, db: AsyncSession, user_id: UUID, days=None,
    ) -> UserAnalyticsResponse:
        """
        Rollup across every profile the caller owns.

        total_views sums the denormalized counters (lifetime); the
        *_in_period figures count events in the last `days` days.
        """
        days = self.coerce_days(days)
        since = utcnow() - timedelta(days=days)

        try:
            result = await db.execute(
                select(Profile)
                .where(Profile.user_id == user_id)
                .order_by(desc(Profile.created_at), asc(Profile.slug))
            )
            profiles = list(result.scalars().all())
            if not profiles:
                return UserAnalyticsResponse(
                    days=days,
                    total_profiles=0,
                    total_views=0,
                    total_views_in_period=0,
                    views_by_source=[],
                    profiles=[],
                )

            profile_ids = [p.id for p in profiles]
            filters = (ViewEvent.profile_id.in_(profile_ids), ViewEvent.viewed_at >= since)

            per_profile_rows = await db.execute(
                select(ViewEvent.profile_id, func.count(ViewEvent.id))
                .where(*filters)
                .group_by(ViewEvent.profile_id)
            )
            per_profile: Dict[UUID, int] = {pid: count for pid, count in per_profile_rows.all()}

            source_rows = await db.execute(
                select(ViewEvent.view_source, func.count(ViewEvent.id).label("count"))
                .where(*filters)
                .group_by(ViewEvent.view_source)
                .order_by(desc("count"), asc(ViewEvent.view_source))
            )
            by_source = [SourceCount(source=s, count=c) for s, c in source_rows.all()]
        except SQLAlchemyError as e:
            logger.error("User analytics failed for %s: %s", user_id, str(e))
            raise DatabaseError(
                message="Could not load analytics. Please try again.",
                context={"original_error": str(e)},
            )

        return UserAnalyticsResponse(
            days=days,
            total_profiles=len(profiles),
            total_views=sum(p.view_count for p in profiles),
            total_views_in_period=sum(per_profile.values()),
            views_by_source=by_source,
            profiles=[
                UserProfileSummary(
                    id=p.id,
                    name=p.name,
                    slug=p.slug,
                    type=p.profile_type,
                    is_active=p.is_active,
                    total_views=p.view_count,
                    views_in_period=per_profile.get(p.id, 0),
                )
                for p in profiles
            ],
        )

    # ══════════════════════════════════════════════════════════════════════
    # Query Building Blocks
    # ══════════════════════════════════════════════════════════════════════

    @staticmethod
    def _window(profile_id: UUID, start: datetime, end: datetime) -> tuple:
        return (
            ViewEvent.profile_id == profile_id,
            ViewEvent.viewed_at >= start,
            ViewEvent.viewed_at <= end,
        )

    @staticmethod
    def _since(profile_id: UUID, days: int) -> tuple:
        return (
            ViewEvent.profile_id == profile_id,
            ViewEvent.viewed_at >= utcnow() - timedelta(days=days),
        )

    @staticmethod
    def _wrap(error: SQLAlchemyError, profile_id: UUID) -> DatabaseError:
        logger.error("Analytics query failed for profile %s: %s", profile_id, str(error))
        return DatabaseError(
            message="Could not load analytics. Please try again.",
            context={"original_error": str(error)},
        )

    async def _count(self, db: AsyncSession, filters: Sequence) -> int:
        result = await db.execute(select(func.count(ViewEvent.id)).where(*filters))
        return result.scalar() or 0

    async def _grouped(self, db: AsyncSession, column, filters: Sequence, limit: Optional[int] = None):
        count = func.count(ViewEvent.id).label("count")
        query = (
            select(column, count)
            .where(*filters)
            .group_by(column)
            .order_by(desc("count"), asc(column))
        )
        if limit is not None:
            query = query.limit(limit)
        result = await db.execute(query)
        return result.all()

    async def _source_breakdown(
        self, db: AsyncSession, filters: Sequence, total: int,
    ) -> List[SourceBreakdownItem]:
        rows = await self._grouped(db, ViewEvent.view_source, filters)
        return [
            SourceBreakdownItem(source=source, count=count, percentage=percentage(count, total))
            for source, count in rows
        ]

    async def _top_countries(
        self, db: AsyncSession, filters: Sequence, limit: int,
    ) -> List[CountryCount]:
        rows = await self._grouped(
            db, ViewEvent.viewer_country, (*filters, ViewEvent.viewer_country.is_not(None)), limit,
        )
        return [CountryCount(country=country, count=count) for country, count in rows]

    async def _top_cities(
        self, db: AsyncSession, filters: Sequence, limit: int,
    ) -> List[CityCount]:
        count = func.count(ViewEvent.id).label("count")
        result = await db.execute(
            select(ViewEvent.viewer_city, ViewEvent.viewer_country, count)
            .where(*filters, ViewEvent.viewer_city.is_not(None))
            .group_by(ViewEvent.viewer_city, ViewEvent.viewer_country)
            .order_by(desc("count"), asc(ViewEvent.viewer_city), asc(ViewEvent.viewer_country))
            .limit(limit)
        )
        return [
            CityCount(city=city, country=country, count=n)
            for city, country, n in result.all()
        ]

    async def _device_breakdown(
        self, db: AsyncSession, filters: Sequence, total: int,
    ) -> List[DeviceCount]:
        rows = await self._grouped(db, ViewEvent.device, (*filters, ViewEvent.device.is_not(None)))
        return [
            DeviceCount(device=device, count=count, percentage=percentage(count, total))
            for device, count in rows
        ]

    async def _browser_breakdown(
        self, db: AsyncSession, filters: Sequence, total: int,
    ) -> List[BrowserCount]:
        # Capped list, but percentages are relative to the uncapped total
        rows = await self._grouped(
            db,
            ViewEvent.browser,
            (*filters, ViewEvent.browser.is_not(None)),
            settings.analytics_browser_limit,
        )
        return [
            BrowserCount(browser=browser, count=count, percentage=percentage(count, total))
            for browser, count in rows
        ]

    async def _daily_series(
        self, db: AsyncSession, profile_id: UUID, days: int, now: datetime,
    ) -> List[DailyViewCount]:
        """One bucket per UTC calendar day from today-(days-1) through today."""
        today = now.astimezone(timezone.utc).date()
        first_day = today - timedelta(days=days - 1)
        window_start = datetime.combine(first_day, time.min, tzinfo=timezone.utc)

        day = func.date(ViewEvent.viewed_at).label("day")
        result = await db.execute(
            select(day, func.count(ViewEvent.id))
            .where(
                ViewEvent.profile_id == profile_id,
                ViewEvent.viewed_at >= window_start,
            )
            .group_by(day)
        )
        counts: Dict[date, int] = {}
        for raw_day, count in result.all():
            key = _as_date(raw_day)
            if key is not None:
                counts[key] = counts.get(key, 0) + count

        buckets = [first_day + timedelta(days=offset) for offset in range(days)]
        return [DailyViewCount(date=d, count=counts.get(d, 0)) for d in buckets]


# ── Singleton Instance ────────────────────────────────────────────────────
analytics_service = AnalyticsService()
