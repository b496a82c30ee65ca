"""
LinkMe Backend - View Service (Recorder + Retention Sweeper)
==============================================================

What:  Writes view events and removes expired ones.
How:   One INSERT plus one relative counter UPDATE per recorded view;
       one bulk DELETE per retention sweep.
Who:   Called by the analytics route handlers.

Recording Flow (POST /api/analytics/track-view/{slug}):
    ┌──────────────┐    ┌──────────────┐    ┌──────────────┐    ┌──────────────┐
    │ Active slug  │───▶│ Enrichment   │───▶│ INSERT       │───▶│ UPDATE       │
    │ lookup       │    │ (route layer)│    │ profile_views│    │ view_count+1 │
    └──────────────┘    └──────────────┘    └──────────────┘    └──────────────┘

    Both writes are flushed on the request session and committed together by
    get_db_session(); a failure in either rolls back both.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import delete, desc, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from linkme.config import settings
from linkme.exceptions import DatabaseError, NotFoundError
from linkme.models.profile import Profile
from linkme.models.view_event import ViewEvent, ViewSource
from linkme.schemas.analytics import (
    CleanupResponse,
    RecentViewItem,
    RecentViewsResponse,
    TrackViewResponse,
)
from linkme.services.enrichment import ViewerContext
from linkme.services.ownership import get_owned_profile
from linkme.services.params import coerce_int, utcnow

logger = logging.getLogger(__name__)

DEFAULT_RECENT_LIMIT = 20


class ViewService:
    """
    Persistence of ProfileView events.

    Responsibilities:
        - record_view(): public, slug-addressed; stores one enriched event
        - get_recent_views(): owner-only paginated event list (no IP, no UA)
        - delete_old_views(): owner-only retention sweep
    """

    async def record_view(
        self,
        db: AsyncSession,
        slug: str,
        source: Any,
        context: ViewerContext,
    ) -> TrackViewResponse:
        """
        Record one visit to the active profile addressed by `slug`.

        Raises:
            NotFoundError: slug unknown or profile inactive; nothing is written
            DatabaseError: insert or counter update failed
        """
        view_source = ViewSource.coerce(source)

        try:
            result = await db.execute(
                select(Profile.id).where(
                    Profile.slug == slug,
                    Profile.is_active.is_(True),
                )
            )
            profile_id = result.scalar_one_or_none()
            if profile_id is None:
                raise NotFoundError(resource="profile")

            event = ViewEvent(
                profile_id=profile_id,
                viewer_ip=context.ip,
                viewer_country=context.country,
                viewer_city=context.city,
                user_agent=context.user_agent or None,
                device=context.device,
                browser=context.browser,
                referrer=context.referrer,
                view_source=view_source.value,
                viewed_at=utcnow(),
            )
            db.add(event)
            await db.flush()

            # Relative update: concurrent views never lose an increment
            counter = await db.execute(
                update(Profile)
                .where(Profile.id == profile_id)
                .values(view_count=Profile.view_count + 1)
                .returning(Profile.view_count)
                .execution_options(synchronize_session=False)
            )
            view_count = counter.scalar_one()

        except NotFoundError:
            raise
        except SQLAlchemyError as e:
            logger.error("Failed to record view for slug '%s': %s", slug, str(e))
            raise DatabaseError(
                message="Could not record the view. Please try again.",
                context={"original_error": str(e)},
            )

        logger.info(
            "View recorded: profile=%s source=%s country=%s device=%s",
            profile_id, view_source.value, context.country, context.device,
        )
        return TrackViewResponse(
            view_id=event.id,
            profile_id=profile_id,
            view_count=view_count,
        )

    async def get_recent_views(
        self,
        db: AsyncSession,
        profile_id: UUID,
        user_id: UUID,
        limit=None,
        offset=None,
    ) -> RecentViewsResponse:
        """
        Newest-first page of raw view events for an owned profile.

        `limit` is clamped to 1..analytics_recent_views_max (default 20) and
        `offset` to >= 0; malformed values fall back to the defaults.
        """
        limit = coerce_int(limit, DEFAULT_RECENT_LIMIT, 1, settings.analytics_recent_views_max)
        offset = coerce_int(offset, 0, 0)

        await get_owned_profile(db, profile_id, user_id)

        try:
            total = (
                await db.execute(
                    select(func.count(ViewEvent.id)).where(ViewEvent.profile_id == profile_id)
                )
            ).scalar() or 0

            result = await db.execute(
                select(ViewEvent)
                .where(ViewEvent.profile_id == profile_id)
                .order_by(desc(ViewEvent.viewed_at), desc(ViewEvent.id))
                .offset(offset)
                .limit(limit)
            )
            events = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Failed to list views for profile %s: %s", profile_id, str(e))
            raise DatabaseError(
                message="Could not load recent views. Please try again.",
                context={"original_error": str(e)},
            )

        return RecentViewsResponse(
            total=total,
            limit=limit,
            offset=offset,
            views=[RecentViewItem.model_validate(event) for event in events],
        )

    async def delete_old_views(
        self,
        db: AsyncSession,
        profile_id: UUID,
        user_id: UUID,
        days_to_keep=None,
        now: Optional[datetime] = None,
    ) -> CleanupResponse:
        """
        Delete the profile's view events older than `days_to_keep` days.

        cutoff = now - days_to_keep; rows with viewed_at < cutoff are removed.
        days_to_keep = 0 removes everything recorded before this call.
        Values above analytics_max_retention_days (100 years) are clamped.
        Irreversible. The profile's view_count is left untouched.
        """
        days_to_keep = coerce_int(
            days_to_keep,
            settings.analytics_default_retention_days,
            0,
            settings.analytics_max_retention_days,
        )

        await get_owned_profile(db, profile_id, user_id)

        cutoff = (now or utcnow()) - timedelta(days=days_to_keep)
        try:
            result = await db.execute(
                delete(ViewEvent)
                .where(
                    ViewEvent.profile_id == profile_id,
                    ViewEvent.viewed_at < cutoff,
                )
                .execution_options(synchronize_session=False)
            )
            deleted = result.rowcount or 0
        except SQLAlchemyError as e:
            logger.error("Retention sweep failed for profile %s: %s", profile_id, str(e))
            raise DatabaseError(
                message="Could not delete old views. Please try again.",
                context={"original_error": str(e)},
            )

        logger.info(
            "Retention sweep: profile=%s kept_days=%d deleted=%d",
            profile_id, days_to_keep, deleted,
        )
        return CleanupResponse(
            message=f"Deleted {deleted} view(s) older than {days_to_keep} day(s)",
            deleted_count=deleted,
            cutoff=cutoff,
        )


# ── Singleton Instance ────────────────────────────────────────────────────
view_service = ViewService()
