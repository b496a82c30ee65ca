"""
LinkMe Backend - Analytics Route Handlers
===========================================

What:  View tracking (public) and owner dashboards under /api/analytics.
How:   Thin handlers: enrich the request, pick the authenticated user,
       delegate to ViewService / AnalyticsService.

Query parameters on the dashboard routes are taken as raw strings and
coerced by the services (days 1..365, limits 1..100, offset >= 0), so a
malformed filter value yields the default window instead of a 422.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from linkme.database import get_db_session
from linkme.dependencies import AuthUser, get_current_user, get_geo_locator
from linkme.schemas.analytics import (
    CleanupRequest,
    CleanupResponse,
    ProfileAnalyticsResponse,
    RecentViewsResponse,
    TrackViewRequest,
    TrackViewResponse,
    UserAnalyticsResponse,
    ViewsByDeviceResponse,
    ViewsByLocationResponse,
    ViewsBySourceResponse,
    ViewsOverTimeResponse,
)
from linkme.schemas.common import ErrorResponse
from linkme.services.analytics_service import analytics_service
from linkme.services.enrichment import GeoLocator, build_viewer_context
from linkme.services.view_service import view_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/analytics", tags=["Analytics"])

OWNER_RESPONSES = {
    401: {"description": "Missing or invalid token", "model": ErrorResponse},
    404: {"description": "Profile not found or not owned by the caller", "model": ErrorResponse},
    500: {"description": "Server error", "model": ErrorResponse},
}

DAYS_DESCRIPTION = "Window length in days (1-365, default 30)"


@router.post(
    "/track-view/{slug}",
    response_model=TrackViewResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"description": "Unknown or inactive profile", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Record a profile view",
    description=(
        "Public endpoint hit by the card page on load. Stores one view event "
        "enriched with device, browser and coarse location, and increments "
        "the profile's view counter."
    ),
)
async def track_view(
    slug: str,
    request: Request,
    payload: Optional[TrackViewRequest] = Body(default=None),
    db: AsyncSession = Depends(get_db_session),
    geo_locator: GeoLocator = Depends(get_geo_locator),
) -> TrackViewResponse:
    context = build_viewer_context(request, geo_locator)
    source = payload.source if payload else None
    return await view_service.record_view(db=db, slug=slug, source=source, context=context)


@router.get(
    "/profile/{profile_id}",
    response_model=ProfileAnalyticsResponse,
    responses=OWNER_RESPONSES,
    summary="Analytics summary for one profile",
)
async def get_profile_analytics(
    profile_id: UUID,
    start_date: Optional[str] = Query(default=None, description="ISO 8601 start (default end - days)"),
    end_date: Optional[str] = Query(default=None, description="ISO 8601 end (default now)"),
    days: Optional[str] = Query(default=None, description=DAYS_DESCRIPTION),
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProfileAnalyticsResponse:
    return await analytics_service.get_profile_analytics(
        db=db,
        profile_id=profile_id,
        user_id=user.id,
        start_date=start_date,
        end_date=end_date,
        days=days,
    )


@router.get(
    "/profile/{profile_id}/recent-views",
    response_model=RecentViewsResponse,
    responses=OWNER_RESPONSES,
    summary="Newest view events for one profile",
    description="Paginated raw events. Viewer IP and user agent are never included.",
)
async def get_recent_views(
    profile_id: UUID,
    limit: Optional[str] = Query(default=None, description="Page size (1-100, default 20)"),
    offset: Optional[str] = Query(default=None, description="Events to skip (default 0)"),
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> RecentViewsResponse:
    return await view_service.get_recent_views(
        db=db, profile_id=profile_id, user_id=user.id, limit=limit, offset=offset,
    )


@router.get(
    "/profile/{profile_id}/views-by-source",
    response_model=ViewsBySourceResponse,
    responses=OWNER_RESPONSES,
    summary="View counts per source (qr, nfc, link, direct)",
)
async def get_views_by_source(
    profile_id: UUID,
    days: Optional[str] = Query(default=None, description=DAYS_DESCRIPTION),
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ViewsBySourceResponse:
    return await analytics_service.get_views_by_source(
        db=db, profile_id=profile_id, user_id=user.id, days=days,
    )


@router.get(
    "/profile/{profile_id}/views-by-location",
    response_model=ViewsByLocationResponse,
    responses=OWNER_RESPONSES,
    summary="Top countries and cities",
)
async def get_views_by_location(
    profile_id: UUID,
    days: Optional[str] = Query(default=None, description=DAYS_DESCRIPTION),
    limit: Optional[str] = Query(default=None, description="Entries per list (1-100, default 10)"),
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ViewsByLocationResponse:
    return await analytics_service.get_views_by_location(
        db=db, profile_id=profile_id, user_id=user.id, days=days, limit=limit,
    )


@router.get(
    "/profile/{profile_id}/views-by-device",
    response_model=ViewsByDeviceResponse,
    responses=OWNER_RESPONSES,
    summary="Device and browser breakdown",
)
async def get_views_by_device(
    profile_id: UUID,
    days: Optional[str] = Query(default=None, description=DAYS_DESCRIPTION),
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ViewsByDeviceResponse:
    return await analytics_service.get_views_by_device(
        db=db, profile_id=profile_id, user_id=user.id, days=days,
    )


@router.get(
    "/profile/{profile_id}/views-over-time",
    response_model=ViewsOverTimeResponse,
    responses=OWNER_RESPONSES,
    summary="Daily view counts, zero days included",
)
async def get_views_over_time(
    profile_id: UUID,
    days: Optional[str] = Query(default=None, description=DAYS_DESCRIPTION),
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ViewsOverTimeResponse:
    return await analytics_service.get_views_over_time(
        db=db, profile_id=profile_id, user_id=user.id, days=days,
    )


@router.delete(
    "/profile/{profile_id}/cleanup",
    response_model=CleanupResponse,
    responses=OWNER_RESPONSES,
    summary="Delete view history older than N days",
    description="Irreversible. days_to_keep defaults to 90; 0 deletes all recorded views.",
)
async def cleanup_old_views(
    profile_id: UUID,
    payload: Optional[CleanupRequest] = Body(default=None),
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> CleanupResponse:
    days_to_keep = payload.days_to_keep if payload else None
    return await view_service.delete_old_views(
        db=db, profile_id=profile_id, user_id=user.id, days_to_keep=days_to_keep,
    )


@router.get(
    "/user",
    response_model=UserAnalyticsResponse,
    responses={
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Rollup across all of the caller's profiles",
)
async def get_user_analytics(
    days: Optional[str] = Query(default=None, description=DAYS_DESCRIPTION),
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> UserAnalyticsResponse:
    return await analytics_service.get_user_analytics(db=db, user_id=user.id, days=days)
