"""
LinkMe Backend - Social Link Service
======================================

What:  Manage the links shown on a profile card and count their clicks.
Who:   Called by the /api/social-links route handlers.

Ownership:
    Profile-addressed operations use get_owned_profile(). Link-addressed
    operations resolve the link through a JOIN on its profile's owner, so a
    foreign link id and an unknown link id raise the same NotFoundError.

Ordering:
    New links are appended after the current highest display_order. Reorder
    only touches links that belong to the given profile; unknown ids in the
    request are ignored.
"""

import logging
from typing import Iterable, List
from uuid import UUID

from sqlalchemy import asc, delete, desc, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from linkme.exceptions import DatabaseError, NotFoundError, ValidationError
from linkme.models.profile import Profile
from linkme.models.social_link import SocialLink
from linkme.schemas.social_link import (
    BulkDeleteResponse,
    ClickResponse,
    LinkClickStat,
    LinkOrder,
    LinkStatisticsResponse,
    SocialLinkCreate,
    SocialLinkFields,
    SocialLinkListResponse,
    SocialLinkResponse,
    SocialLinkUpdate,
)
from linkme.services.ownership import get_owned_profile

logger = logging.getLogger(__name__)

LINK_NOT_FOUND_MESSAGE = "Social link not found or you don't have permission"

# javascript:, data: and similar would be rendered as clickable links on a public page
ALLOWED_URL_PREFIXES = ("http://", "https://", "mailto:", "tel:")


def validate_link_url(url: str) -> str:
    """Strip a link target and reject schemes other than http(s), mailto and tel."""
    url = url.strip()
    if not url.lower().startswith(ALLOWED_URL_PREFIXES):
        raise ValidationError(
            message="URL must start with http://, https://, mailto: or tel:",
            field="url",
        )
    return url


def _db_error(action: str, e: SQLAlchemyError) -> DatabaseError:
    logger.error("Social link %s failed: %s", action, str(e))
    return DatabaseError(
        message=f"Could not {action}. Please try again.",
        context={"original_error": str(e)},
    )


class SocialLinkService:

    async def _next_order(self, db: AsyncSession, profile_id: UUID) -> int:
        result = await db.execute(
            select(func.max(SocialLink.display_order)).where(SocialLink.profile_id == profile_id)
        )
        current = result.scalar()
        return 0 if current is None else current + 1

    async def _get_owned_link(self, db: AsyncSession, link_id: UUID, user_id: UUID) -> SocialLink:
        try:
            result = await db.execute(
                select(SocialLink)
                .join(Profile, Profile.id == SocialLink.profile_id)
                .where(SocialLink.id == link_id, Profile.user_id == user_id)
            )
            link = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise _db_error("load the social link", e)
        if link is None:
            raise NotFoundError(resource="social link", message=LINK_NOT_FOUND_MESSAGE)
        return link

    # ══════════════════════════════════════════════════════════════════════
    # Create
    # ══════════════════════════════════════════════════════════════════════

    async def create_link(
        self, db: AsyncSession, user_id: UUID, data: SocialLinkCreate,
    ) -> SocialLinkResponse:
        await get_owned_profile(db, data.profile_id, user_id)
        try:
            link = SocialLink(
                profile_id=data.profile_id,
                platform=data.platform,
                url=validate_link_url(data.url),
                label=data.label,
                is_visible=data.is_visible,
                display_order=await self._next_order(db, data.profile_id),
            )
            db.add(link)
            await db.flush()
            await db.refresh(link)
        except SQLAlchemyError as e:
            raise _db_error("create the social link", e)
        logger.info("Social link %s added to profile %s", link.id, data.profile_id)
        return SocialLinkResponse.model_validate(link)

    async def bulk_create_links(
        self,
        db: AsyncSession,
        user_id: UUID,
        profile_id: UUID,
        items: Iterable[SocialLinkFields],
    ) -> SocialLinkListResponse:
        await get_owned_profile(db, profile_id, user_id)
        try:
            order = await self._next_order(db, profile_id)
            links: List[SocialLink] = []
            for item in items:
                link = SocialLink(
                    profile_id=profile_id,
                    platform=item.platform,
                    url=validate_link_url(item.url),
                    label=item.label,
                    is_visible=item.is_visible,
                    display_order=order,
                )
                db.add(link)
                links.append(link)
                order += 1
            await db.flush()
            for link in links:
                await db.refresh(link)
        except SQLAlchemyError as e:
            raise _db_error("create the social links", e)
        logger.info("%d social links added to profile %s", len(links), profile_id)
        return SocialLinkListResponse(
            links=[SocialLinkResponse.model_validate(link) for link in links],
            total=len(links),
        )

    # ══════════════════════════════════════════════════════════════════════
    # Read
    # ══════════════════════════════════════════════════════════════════════

    async def list_links(
        self, db: AsyncSession, profile_id: UUID, user_id: UUID, include_hidden: bool = True,
    ) -> SocialLinkListResponse:
        await get_owned_profile(db, profile_id, user_id)
        query = select(SocialLink).where(SocialLink.profile_id == profile_id)
        if not include_hidden:
            query = query.where(SocialLink.is_visible.is_(True))
        query = query.order_by(asc(SocialLink.display_order), asc(SocialLink.created_at))
        try:
            result = await db.execute(query)
            links = list(result.scalars().all())
        except SQLAlchemyError as e:
            raise _db_error("load the social links", e)
        return SocialLinkListResponse(
            links=[SocialLinkResponse.model_validate(link) for link in links],
            total=len(links),
        )

    async def get_link(self, db: AsyncSession, link_id: UUID, user_id: UUID) -> SocialLinkResponse:
        link = await self._get_owned_link(db, link_id, user_id)
        return SocialLinkResponse.model_validate(link)

    async def get_statistics(
        self, db: AsyncSession, profile_id: UUID, user_id: UUID,
    ) -> LinkStatisticsResponse:
        await get_owned_profile(db, profile_id, user_id)
        try:
            result = await db.execute(
                select(SocialLink)
                .where(SocialLink.profile_id == profile_id)
                .order_by(desc(SocialLink.click_count), asc(SocialLink.display_order))
            )
            links = list(result.scalars().all())
        except SQLAlchemyError as e:
            raise _db_error("load link statistics", e)
        return LinkStatisticsResponse(
            total_links=len(links),
            visible_links=sum(1 for link in links if link.is_visible),
            total_clicks=sum(link.click_count for link in links),
            links=[
                LinkClickStat(
                    id=link.id,
                    platform=link.platform,
                    label=link.label,
                    click_count=link.click_count,
                    is_visible=link.is_visible,
                )
                for link in links
            ],
        )

    # ══════════════════════════════════════════════════════════════════════
    # Update
    # ══════════════════════════════════════════════════════════════════════

    async def update_link(
        self, db: AsyncSession, link_id: UUID, user_id: UUID, data: SocialLinkUpdate,
    ) -> SocialLinkResponse:
        link = await self._get_owned_link(db, link_id, user_id)
        changes = {
            field: value
            for field, value in data.model_dump(exclude_unset=True).items()
            if value is not None or field == "label"
        }
        if "url" in changes:
            changes["url"] = validate_link_url(changes["url"])
        try:
            for field, value in changes.items():
                setattr(link, field, value)
            await db.flush()
            await db.refresh(link)
        except SQLAlchemyError as e:
            raise _db_error("update the social link", e)
        return SocialLinkResponse.model_validate(link)

    async def toggle_visibility(self, db: AsyncSession, link_id: UUID, user_id: UUID) -> SocialLinkResponse:
        link = await self._get_owned_link(db, link_id, user_id)
        try:
            link.is_visible = not link.is_visible
            await db.flush()
            await db.refresh(link)
        except SQLAlchemyError as e:
            raise _db_error("update the social link", e)
        return SocialLinkResponse.model_validate(link)

    async def reorder_links(
        self, db: AsyncSession, profile_id: UUID, user_id: UUID, orders: List[LinkOrder],
    ) -> SocialLinkListResponse:
        await get_owned_profile(db, profile_id, user_id)
        try:
            for item in orders:
                await db.execute(
                    update(SocialLink)
                    .where(SocialLink.id == item.id, SocialLink.profile_id == profile_id)
                    .values(display_order=item.order)
                    .execution_options(synchronize_session=False)
                )
            # Bulk UPDATEs bypass the identity map
            db.expire_all()
        except SQLAlchemyError as e:
            raise _db_error("reorder the social links", e)
        return await self.list_links(db, profile_id, user_id)

    # ══════════════════════════════════════════════════════════════════════
    # Delete
    # ══════════════════════════════════════════════════════════════════════

    async def delete_link(self, db: AsyncSession, link_id: UUID, user_id: UUID) -> None:
        link = await self._get_owned_link(db, link_id, user_id)
        try:
            await db.delete(link)
            await db.flush()
        except SQLAlchemyError as e:
            raise _db_error("delete the social link", e)
        logger.info("Social link %s deleted", link_id)

    async def bulk_delete_links(
        self, db: AsyncSession, profile_id: UUID, user_id: UUID, link_ids: List[UUID],
    ) -> BulkDeleteResponse:
        await get_owned_profile(db, profile_id, user_id)
        try:
            result = await db.execute(
                delete(SocialLink)
                .where(SocialLink.profile_id == profile_id, SocialLink.id.in_(link_ids))
                .execution_options(synchronize_session=False)
            )
            deleted = result.rowcount or 0
        except SQLAlchemyError as e:
            raise _db_error("delete the social links", e)
        logger.info("%d social links deleted from profile %s", deleted, profile_id)
        return BulkDeleteResponse(
            message=f"Deleted {deleted} link(s)",
            deleted_count=deleted,
        )

    # ══════════════════════════════════════════════════════════════════════
    # Public
    # ══════════════════════════════════════════════════════════════════════

    async def track_click(self, db: AsyncSession, link_id: UUID) -> ClickResponse:
        """Count one click on a visible link of an active profile; anything else is 404."""
        try:
            result = await db.execute(
                select(SocialLink.id)
                .join(Profile, Profile.id == SocialLink.profile_id)
                .where(
                    SocialLink.id == link_id,
                    SocialLink.is_visible.is_(True),
                    Profile.is_active.is_(True),
                )
            )
            if result.scalar_one_or_none() is None:
                raise NotFoundError(resource="social link")

            counter = await db.execute(
                update(SocialLink)
                .where(SocialLink.id == link_id)
                .values(click_count=SocialLink.click_count + 1)
                .returning(SocialLink.click_count)
                .execution_options(synchronize_session=False)
            )
            click_count = counter.scalar_one()
        except NotFoundError:
            raise
        except SQLAlchemyError as e:
            raise _db_error("record the click", e)
        return ClickResponse(click_count=click_count)


# ── Singleton Instance ────────────────────────────────────────────────────
social_link_service = SocialLinkService()
