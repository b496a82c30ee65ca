"""
LinkMe Backend - Profile Service
==================================

What:  CRUD for business-card profiles, the public slug lookup and QR codes
       pointing at the public card.
Who:   Called by the /api/profiles route handlers.

Slugs:
    Derived from the profile name ("Jane Doe" → "jane-doe"). On collision a
    short random suffix is appended ("jane-doe-4f9a1c"). Slugs are fixed at
    creation; renaming a profile does not break printed QR codes.
"""

import logging
import re
import secrets
from typing import List
from urllib.parse import quote
from uuid import UUID

import segno
from sqlalchemy import asc, delete, desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from linkme.config import settings
from linkme.exceptions import DatabaseError, NotFoundError
from linkme.models.profile import Profile
from linkme.models.social_link import SocialLink
from linkme.models.view_event import ViewEvent
from linkme.schemas.profile import (
    ProfileCreate,
    ProfileListResponse,
    ProfileResponse,
    ProfileUpdate,
    PublicProfileResponse,
    PublicSocialLink,
    QRCodeResponse,
    QRFormat,
)
from linkme.services.ownership import get_owned_profile

logger = logging.getLogger(__name__)

SLUG_MAX_LENGTH = 100
SLUG_ATTEMPTS = 5


def slugify(text: str) -> str:
    """URL-safe slug: lowercase ASCII letters, digits and single hyphens."""
    slug = text.lower().strip()
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"[^a-z0-9-]", "", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")[:SLUG_MAX_LENGTH].rstrip("-") or "profile"


def public_card_url(slug: str) -> str:
    """Public card address encoded in QR codes; visits through it count as source=qr."""
    base = settings.public_profile_base_url.rstrip("/")
    return f"{base}/{quote(slug)}?source=qr"


class ProfileService:
    """Owner-side profile management. Every mutating call goes through the ownership guard."""

    async def _slug_taken(self, db: AsyncSession, slug: str) -> bool:
        result = await db.execute(select(Profile.id).where(Profile.slug == slug))
        return result.first() is not None

    async def _unique_slug(self, db: AsyncSession, name: str) -> str:
        base = slugify(name)
        if not await self._slug_taken(db, base):
            return base
        for _ in range(SLUG_ATTEMPTS):
            candidate = f"{base}-{secrets.token_hex(3)}"
            if not await self._slug_taken(db, candidate):
                return candidate
        # Eight hex chars; a further collision surfaces as an IntegrityError
        return f"{base}-{secrets.token_hex(4)}"

    async def create_profile(
        self, db: AsyncSession, user_id: UUID, data: ProfileCreate,
    ) -> ProfileResponse:
        try:
            slug = await self._unique_slug(db, data.name)
            profile = Profile(user_id=user_id, slug=slug, **data.model_dump())
            db.add(profile)
            await db.flush()
            await db.refresh(profile)
        except SQLAlchemyError as e:
            logger.error("Failed to create profile for user %s: %s", user_id, str(e))
            raise DatabaseError(
                message="Could not create the profile. Please try again.",
                context={"original_error": str(e)},
            )
        logger.info("Profile created: %s (slug=%s)", profile.id, profile.slug)
        return ProfileResponse.model_validate(profile)

    async def list_profiles(
        self, db: AsyncSession, user_id: UUID, include_inactive: bool = True,
    ) -> ProfileListResponse:
        query = select(Profile).where(Profile.user_id == user_id)
        if not include_inactive:
            query = query.where(Profile.is_active.is_(True))
        query = query.order_by(desc(Profile.created_at), asc(Profile.slug))
        try:
            result = await db.execute(query)
            profiles = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Failed to list profiles for user %s: %s", user_id, str(e))
            raise DatabaseError(
                message="Could not load profiles. Please try again.",
                context={"original_error": str(e)},
            )
        return ProfileListResponse(
            profiles=[ProfileResponse.model_validate(p) for p in profiles],
            total=len(profiles),
        )

    async def get_profile(self, db: AsyncSession, profile_id: UUID, user_id: UUID) -> ProfileResponse:
        profile = await get_owned_profile(db, profile_id, user_id)
        return ProfileResponse.model_validate(profile)

    async def get_public_profile(self, db: AsyncSession, slug: str) -> PublicProfileResponse:
        """
        Visitor view of an active profile and its visible links, in display order.

        Inactive and unknown slugs raise the same NotFoundError.
        """
        try:
            result = await db.execute(
                select(Profile).where(Profile.slug == slug, Profile.is_active.is_(True))
            )
            profile = result.scalar_one_or_none()
            if profile is None:
                raise NotFoundError(resource="profile")

            links_result = await db.execute(
                select(SocialLink)
                .where(SocialLink.profile_id == profile.id, SocialLink.is_visible.is_(True))
                .order_by(asc(SocialLink.display_order), asc(SocialLink.created_at))
            )
            links: List[SocialLink] = list(links_result.scalars().all())
        except NotFoundError:
            raise
        except SQLAlchemyError as e:
            logger.error("Failed to load public profile '%s': %s", slug, str(e))
            raise DatabaseError(
                message="Could not load the profile. Please try again.",
                context={"original_error": str(e)},
            )

        return PublicProfileResponse(
            id=profile.id,
            slug=profile.slug,
            profile_type=profile.profile_type,
            name=profile.name,
            title=profile.title,
            bio=profile.bio,
            color=profile.color,
            design_mode=profile.design_mode,
            template=profile.template,
            avatar_url=profile.avatar_url,
            social_links=[PublicSocialLink.model_validate(link) for link in links],
        )

    async def update_profile(
        self, db: AsyncSession, profile_id: UUID, user_id: UUID, data: ProfileUpdate,
    ) -> ProfileResponse:
        profile = await get_owned_profile(db, profile_id, user_id)
        changes = data.model_dump(exclude_unset=True)
        # name is NOT NULL; an explicit null leaves it unchanged
        if changes.get("name") is None:
            changes.pop("name", None)
        if changes.get("profile_type") is None:
            changes.pop("profile_type", None)
        if changes.get("is_active") is None:
            changes.pop("is_active", None)

        try:
            for field, value in changes.items():
                setattr(profile, field, value)
            await db.flush()
            await db.refresh(profile)
        except SQLAlchemyError as e:
            logger.error("Failed to update profile %s: %s", profile_id, str(e))
            raise DatabaseError(
                message="Could not update the profile. Please try again.",
                context={"original_error": str(e)},
            )
        logger.info("Profile %s updated: %s", profile_id, sorted(changes))
        return ProfileResponse.model_validate(profile)

    async def toggle_status(self, db: AsyncSession, profile_id: UUID, user_id: UUID) -> ProfileResponse:
        profile = await get_owned_profile(db, profile_id, user_id)
        try:
            profile.is_active = not profile.is_active
            await db.flush()
            await db.refresh(profile)
        except SQLAlchemyError as e:
            logger.error("Failed to toggle profile %s: %s", profile_id, str(e))
            raise DatabaseError(
                message="Could not update the profile. Please try again.",
                context={"original_error": str(e)},
            )
        logger.info("Profile %s is_active=%s", profile_id, profile.is_active)
        return ProfileResponse.model_validate(profile)

    async def build_qr_code(
        self, db: AsyncSession, profile_id: UUID, user_id: UUID, fmt: QRFormat = "svg",
    ) -> QRCodeResponse:
        """
        Render a QR code for the owned profile's public card.

        Codes are derived from the slug, so regenerating yields the same
        image; they stay valid across renames and deactivation.
        """
        profile = await get_owned_profile(db, profile_id, user_id)
        url = public_card_url(profile.slug)
        # make_qr(): full-size QR only, never Micro QR
        qr = segno.make_qr(url, error="m")
        if fmt == "png":
            data_uri = qr.png_data_uri(scale=settings.qr_scale)
        else:
            data_uri = qr.svg_data_uri(scale=settings.qr_scale)
        logger.info("QR code (%s) generated for profile %s", fmt, profile_id)
        return QRCodeResponse(
            profile_id=profile.id,
            slug=profile.slug,
            url=url,
            format=fmt,
            data_uri=data_uri,
        )

    async def delete_profile(self, db: AsyncSession, profile_id: UUID, user_id: UUID) -> None:
        """
        Delete the profile with its view events and social links.

        Children are deleted explicitly so the result does not depend on the
        backend enforcing ON DELETE CASCADE (SQLite does not by default).
        """
        await get_owned_profile(db, profile_id, user_id)
        try:
            await db.execute(delete(ViewEvent).where(ViewEvent.profile_id == profile_id))
            await db.execute(delete(SocialLink).where(SocialLink.profile_id == profile_id))
            await db.execute(
                delete(Profile)
                .where(Profile.id == profile_id)
                .execution_options(synchronize_session="fetch")
            )
        except SQLAlchemyError as e:
            logger.error("Failed to delete profile %s: %s", profile_id, str(e))
            raise DatabaseError(
                message="Could not delete the profile. Please try again.",
                context={"original_error": str(e)},
            )
        logger.info("Profile %s deleted", profile_id)


# ── Singleton Instance ────────────────────────────────────────────────────
profile_service = ProfileService()
