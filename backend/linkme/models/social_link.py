"""
LinkMe Backend - SocialLink SQLAlchemy Model
==============================================

What:  ORM model for the `social_links` table (links shown on a profile card).
Who:   Used by SocialLinkService; read by the public profile route.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from linkme.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SocialLink(Base):
    """
    One outbound link on a profile (LinkedIn, website, phone, ...).

    display_order controls rendering order on the public card; click_count is
    incremented by the public click-tracking route with a relative UPDATE.
    """

    __tablename__ = "social_links"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    profile_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
    )

    platform: Mapped[str] = mapped_column(String(50), nullable=False)
    url: Mapped[str] = mapped_column(String(500), nullable=False)
    label: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)

    is_visible: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default="1",
    )

    display_order: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
    )

    click_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
        server_default=func.now(),
    )

    __table_args__ = (
        Index("idx_social_links_profile_order", "profile_id", "display_order"),
    )

    def __repr__(self) -> str:
        return f"<SocialLink(id={self.id}, platform='{self.platform}')>"
