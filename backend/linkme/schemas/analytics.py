"""
LinkMe Backend - Analytics Request/Response Schemas
=====================================================

What:  Pydantic models for the track-view and analytics endpoints.
Who:   Returned by AnalyticsService / ViewService and used as FastAPI
       response_model declarations.

Privacy:
    No schema in this module exposes viewer_ip or the raw user agent.
    RecentViewItem lists the exact fields an owner may see.
"""

import uuid
from datetime import date, datetime
from typing import Any, List, Optional, Union

from pydantic import BaseModel, Field


# ══════════════════════════════════════════════════════════════════════════
# Track View
# ══════════════════════════════════════════════════════════════════════════


class TrackViewRequest(BaseModel):
    """
    Body of POST /api/analytics/track-view/{slug}.

    Unknown or non-string source tags are accepted and stored as "direct".
    """
    source: Optional[Any] = Field(
        default="direct",
        description="How the visitor arrived: qr, nfc, link or direct",
    )


class TrackViewResponse(BaseModel):
    message: str = Field(default="View tracked successfully")
    view_id: uuid.UUID = Field(description="Identifier of the stored view event")
    profile_id: uuid.UUID = Field(description="Profile that was viewed")
    view_count: int = Field(description="Profile view counter after this view")


# ══════════════════════════════════════════════════════════════════════════
# Breakdown Items
# ══════════════════════════════════════════════════════════════════════════


class SourceCount(BaseModel):
    source: str
    count: int


class SourceBreakdownItem(SourceCount):
    percentage: float = Field(description="Share of the period total, two decimals")


class CountryCount(BaseModel):
    country: str
    count: int


class CityCount(BaseModel):
    city: str
    country: Optional[str] = None
    count: int


class DeviceCount(BaseModel):
    device: str
    count: int
    percentage: float


class BrowserCount(BaseModel):
    browser: str
    count: int
    percentage: float = Field(description="Share of ALL views in the period, not only the top 10")


class DailyViewCount(BaseModel):
    date: date
    count: int


# ══════════════════════════════════════════════════════════════════════════
# Profile Analytics (summary endpoint)
# ══════════════════════════════════════════════════════════════════════════


class AnalyticsPeriod(BaseModel):
    start: datetime
    end: datetime
    days: int


class ProfileInfo(BaseModel):
    id: uuid.UUID
    name: str
    slug: str
    total_view_count: int = Field(description="Denormalized lifetime counter on the profile")


class AnalyticsSummary(BaseModel):
    total_views: int
    unique_visitors: int = Field(description="Distinct viewer IPs in the period")
    by_source: List[SourceBreakdownItem]
    top_countries: List[CountryCount]
    top_cities: List[CityCount]
    devices: List[DeviceCount]
    browsers: List[BrowserCount]


class ProfileAnalyticsResponse(BaseModel):
    """
    Returned by GET /api/analytics/profile/{profile_id}.

    `analytics` covers [period.start, period.end]; `views_over_time` always
    covers the last `period.days` calendar days (UTC) ending today.
    """
    period: AnalyticsPeriod
    profile_info: ProfileInfo
    analytics: AnalyticsSummary
    views_over_time: List[DailyViewCount]


# ══════════════════════════════════════════════════════════════════════════
# Single-Dimension Endpoints
# ══════════════════════════════════════════════════════════════════════════


class RecentViewItem(BaseModel):
    id: uuid.UUID
    viewed_at: datetime
    viewer_country: Optional[str] = None
    viewer_city: Optional[str] = None
    device: Optional[str] = None
    browser: Optional[str] = None
    view_source: str
    referrer: Optional[str] = None

    model_config = {"from_attributes": True}


class RecentViewsResponse(BaseModel):
    total: int
    limit: int
    offset: int
    views: List[RecentViewItem]


class ViewsBySourceResponse(BaseModel):
    days: int
    total: int
    breakdown: List[SourceBreakdownItem]


class ViewsByLocationResponse(BaseModel):
    days: int
    countries: List[CountryCount]
    cities: List[CityCount]


class ViewsByDeviceResponse(BaseModel):
    days: int
    total_views: int
    devices: List[DeviceCount]
    browsers: List[BrowserCount]


class ViewsOverTimeResponse(BaseModel):
    days: int
    views: List[DailyViewCount]


# ══════════════════════════════════════════════════════════════════════════
# Retention
# ══════════════════════════════════════════════════════════════════════════


class CleanupRequest(BaseModel):
    """Body of DELETE /api/analytics/profile/{profile_id}/cleanup."""
    days_to_keep: Optional[Union[int, float, str]] = Field(
        default=None,
        description="Keep this many days of history (default 90, 0 deletes everything)",
    )


class CleanupResponse(BaseModel):
    message: str
    deleted_count: int
    cutoff: datetime


# ══════════════════════════════════════════════════════════════════════════
# Account Rollup
# ══════════════════════════════════════════════════════════════════════════


class UserProfileSummary(BaseModel):
    id: uuid.UUID
    name: str
    slug: str
    type: str
    is_active: bool
    total_views: int
    views_in_period: int


class UserAnalyticsResponse(BaseModel):
    days: int
    total_profiles: int
    total_views: int
    total_views_in_period: int
    views_by_source: List[SourceCount]
    profiles: List[UserProfileSummary]
