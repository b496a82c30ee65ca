"""
LinkMe Backend - Social Link Route Handlers
=============================================

What:  /api/social-links: link management for profile owners, plus the
       public click counter used by the card page.

Route order matters: the fixed-prefix routes (/bulk, /profile/...) are
declared before /{link_id} so they are not captured by the UUID path.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from linkme.database import get_db_session
from linkme.dependencies import AuthUser, get_current_user
from linkme.schemas.common import ErrorResponse, MessageResponse
from linkme.schemas.social_link import (
    BulkDeleteRequest,
    BulkDeleteResponse,
    ClickResponse,
    LinkStatisticsResponse,
    ReorderRequest,
    SocialLinkBulkCreate,
    SocialLinkCreate,
    SocialLinkListResponse,
    SocialLinkResponse,
    SocialLinkUpdate,
)
from linkme.services.social_link_service import social_link_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/social-links", tags=["Social Links"])

OWNER_RESPONSES = {
    400: {"description": "Unsupported URL scheme", "model": ErrorResponse},
    401: {"description": "Missing or invalid token", "model": ErrorResponse},
    404: {"description": "Not found or not owned by the caller", "model": ErrorResponse},
}


@router.post(
    "",
    response_model=SocialLinkResponse,
    status_code=status.HTTP_201_CREATED,
    responses=OWNER_RESPONSES,
    summary="Add a link to a profile",
)
async def create_link(
    data: SocialLinkCreate,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SocialLinkResponse:
    return await social_link_service.create_link(db=db, user_id=user.id, data=data)


@router.post(
    "/bulk",
    response_model=SocialLinkListResponse,
    status_code=status.HTTP_201_CREATED,
    responses=OWNER_RESPONSES,
    summary="Add several links to a profile",
)
async def bulk_create_links(
    data: SocialLinkBulkCreate,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SocialLinkListResponse:
    return await social_link_service.bulk_create_links(
        db=db, user_id=user.id, profile_id=data.profile_id, items=data.links,
    )


@router.get(
    "/profile/{profile_id}",
    response_model=SocialLinkListResponse,
    responses=OWNER_RESPONSES,
    summary="List a profile's links in display order",
)
async def list_links(
    profile_id: UUID,
    include_hidden: bool = Query(default=True),
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SocialLinkListResponse:
    return await social_link_service.list_links(
        db=db, profile_id=profile_id, user_id=user.id, include_hidden=include_hidden,
    )


@router.get(
    "/profile/{profile_id}/statistics",
    response_model=LinkStatisticsResponse,
    responses=OWNER_RESPONSES,
    summary="Click statistics for a profile's links",
)
async def get_link_statistics(
    profile_id: UUID,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> LinkStatisticsResponse:
    return await social_link_service.get_statistics(db=db, profile_id=profile_id, user_id=user.id)


@router.put(
    "/profile/{profile_id}/reorder",
    response_model=SocialLinkListResponse,
    responses=OWNER_RESPONSES,
    summary="Set display order for a profile's links",
)
async def reorder_links(
    profile_id: UUID,
    data: ReorderRequest,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SocialLinkListResponse:
    return await social_link_service.reorder_links(
        db=db, profile_id=profile_id, user_id=user.id, orders=data.links,
    )


@router.delete(
    "/profile/{profile_id}/bulk-delete",
    response_model=BulkDeleteResponse,
    responses=OWNER_RESPONSES,
    summary="Delete several links of a profile",
)
async def bulk_delete_links(
    profile_id: UUID,
    data: BulkDeleteRequest,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> BulkDeleteResponse:
    return await social_link_service.bulk_delete_links(
        db=db, profile_id=profile_id, user_id=user.id, link_ids=data.link_ids,
    )


@router.post(
    "/{link_id}/click",
    response_model=ClickResponse,
    responses={404: {"description": "Unknown or hidden link", "model": ErrorResponse}},
    summary="Count a click on a public card link",
)
async def track_click(
    link_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> ClickResponse:
    return await social_link_service.track_click(db=db, link_id=link_id)


@router.get(
    "/{link_id}",
    response_model=SocialLinkResponse,
    responses=OWNER_RESPONSES,
    summary="Get one link",
)
async def get_link(
    link_id: UUID,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SocialLinkResponse:
    return await social_link_service.get_link(db=db, link_id=link_id, user_id=user.id)


@router.put(
    "/{link_id}",
    response_model=SocialLinkResponse,
    responses=OWNER_RESPONSES,
    summary="Update a link (partial)",
)
async def update_link(
    link_id: UUID,
    data: SocialLinkUpdate,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SocialLinkResponse:
    return await social_link_service.update_link(db=db, link_id=link_id, user_id=user.id, data=data)


@router.patch(
    "/{link_id}/toggle-visibility",
    response_model=SocialLinkResponse,
    responses=OWNER_RESPONSES,
    summary="Show or hide a link on the public card",
)
async def toggle_link_visibility(
    link_id: UUID,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SocialLinkResponse:
    return await social_link_service.toggle_visibility(db=db, link_id=link_id, user_id=user.id)


@router.delete(
    "/{link_id}",
    response_model=MessageResponse,
    responses=OWNER_RESPONSES,
    summary="Delete a link",
)
async def delete_link(
    link_id: UUID,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await social_link_service.delete_link(db=db, link_id=link_id, user_id=user.id)
    return MessageResponse(message="Social link deleted successfully")
