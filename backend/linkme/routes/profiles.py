"""
LinkMe Backend - Profile Route Handlers
=========================================

What:  /api/profiles: owner CRUD, the public card lookup by slug, QR codes,
       and dashboard shortcuts onto the analytics aggregator.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from linkme.database import get_db_session
from linkme.dependencies import AuthUser, get_current_user
from linkme.schemas.analytics import ProfileAnalyticsResponse, UserAnalyticsResponse
from linkme.schemas.common import ErrorResponse, MessageResponse
from linkme.schemas.profile import (
    ProfileCreate,
    ProfileListResponse,
    ProfileResponse,
    ProfileUpdate,
    PublicProfileResponse,
    QRCodeResponse,
    QRFormat,
)
from linkme.services.analytics_service import analytics_service
from linkme.services.profile_service import profile_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/profiles", tags=["Profiles"])

OWNER_RESPONSES = {
    401: {"description": "Missing or invalid token", "model": ErrorResponse},
    404: {"description": "Profile not found or not owned by the caller", "model": ErrorResponse},
}


@router.post(
    "",
    response_model=ProfileResponse,
    status_code=status.HTTP_201_CREATED,
    responses={401: OWNER_RESPONSES[401]},
    summary="Create a profile",
)
async def create_profile(
    data: ProfileCreate,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProfileResponse:
    return await profile_service.create_profile(db=db, user_id=user.id, data=data)


@router.get(
    "",
    response_model=ProfileListResponse,
    responses={401: OWNER_RESPONSES[401]},
    summary="List the caller's profiles",
)
async def list_profiles(
    response: Response,
    include_inactive: bool = Query(default=True, description="Include deactivated profiles"),
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProfileListResponse:
    result = await profile_service.list_profiles(
        db=db, user_id=user.id, include_inactive=include_inactive,
    )
    response.headers["X-Total-Count"] = str(result.total)
    return result


@router.get(
    "/dashboard/summary",
    response_model=UserAnalyticsResponse,
    responses={401: OWNER_RESPONSES[401]},
    summary="Dashboard summary across the caller's profiles",
    description="Same rollup as GET /api/analytics/user.",
)
async def get_dashboard_summary(
    days: Optional[str] = Query(default=None, description="Window length in days (1-365, default 30)"),
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> UserAnalyticsResponse:
    return await analytics_service.get_user_analytics(db=db, user_id=user.id, days=days)


@router.get(
    "/public/{slug}",
    response_model=PublicProfileResponse,
    responses={404: {"description": "Unknown or inactive profile", "model": ErrorResponse}},
    summary="Public card view",
    description="No authentication. Only active profiles and visible links are returned.",
)
async def get_public_profile(
    slug: str,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> PublicProfileResponse:
    result = await profile_service.get_public_profile(db=db, slug=slug)
    # Owners expect edits to show up on the card immediately
    response.headers["Cache-Control"] = "public, max-age=60"
    return result


@router.get(
    "/{profile_id}",
    response_model=ProfileResponse,
    responses=OWNER_RESPONSES,
    summary="Get one of the caller's profiles",
)
async def get_profile(
    profile_id: UUID,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProfileResponse:
    return await profile_service.get_profile(db=db, profile_id=profile_id, user_id=user.id)


@router.put(
    "/{profile_id}",
    response_model=ProfileResponse,
    responses=OWNER_RESPONSES,
    summary="Update a profile (partial)",
)
async def update_profile(
    profile_id: UUID,
    data: ProfileUpdate,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProfileResponse:
    return await profile_service.update_profile(
        db=db, profile_id=profile_id, user_id=user.id, data=data,
    )


@router.patch(
    "/{profile_id}/toggle-status",
    response_model=ProfileResponse,
    responses=OWNER_RESPONSES,
    summary="Activate or deactivate a profile",
)
async def toggle_profile_status(
    profile_id: UUID,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProfileResponse:
    return await profile_service.toggle_status(db=db, profile_id=profile_id, user_id=user.id)


@router.delete(
    "/{profile_id}",
    response_model=MessageResponse,
    responses=OWNER_RESPONSES,
    summary="Delete a profile with its links and view history",
)
async def delete_profile(
    profile_id: UUID,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await profile_service.delete_profile(db=db, profile_id=profile_id, user_id=user.id)
    return MessageResponse(message="Profile deleted successfully")


@router.get(
    "/{profile_id}/analytics",
    response_model=ProfileAnalyticsResponse,
    responses=OWNER_RESPONSES,
    summary="Analytics summary for one profile",
    description="Same summary as GET /api/analytics/profile/{profile_id}.",
)
async def get_profile_analytics(
    profile_id: UUID,
    days: Optional[str] = Query(default=None, description="Window length in days (1-365, default 30)"),
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProfileAnalyticsResponse:
    return await analytics_service.get_profile_analytics(
        db=db, profile_id=profile_id, user_id=user.id, days=days,
    )


@router.post(
    "/{profile_id}/regenerate-qr",
    response_model=QRCodeResponse,
    responses=OWNER_RESPONSES,
    summary="QR code for the public card",
    description="Encodes the public card URL with source=qr. format is svg (default) or png.",
)
async def regenerate_qr_code(
    profile_id: UUID,
    format: QRFormat = Query(default="svg", description="Image format: svg or png"),
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> QRCodeResponse:
    return await profile_service.build_qr_code(
        db=db, profile_id=profile_id, user_id=user.id, fmt=format,
    )
