"""
LinkMe Backend - Profile SQLAlchemy Model
===========================================

What:  ORM model for the `profiles` table: one digital business card.
Who:   Used by ProfileService for CRUD, by the ownership guard, and by the
       view recorder (slug lookup + counter increment).

Table Design:
    - slug: public, URL-safe identifier used by QR codes and NFC tags;
      distinct from the internal UUID so ids never appear in printed cards
    - view_count: denormalized cache of the number of recorded views.
      Incremented with a relative UPDATE and never recomputed, so it can
      drift from COUNT(profile_views) if an increment is lost
    - is_active: inactive profiles are invisible on every public route

Query Patterns:
    - Public lookup: WHERE slug = :slug AND is_active → unique index on slug
    - Ownership guard: WHERE id = :id AND user_id = :uid → primary key
    - Owner listing: WHERE user_id = :uid ORDER BY created_at DESC
      → idx_profiles_user_id
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
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from linkme.database import Base

PROFILE_TYPES = ("personal", "business")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Profile(Base):
    """
    A public business card owned by exactly one user account.

    Lifecycle:
        1. Created by the owner (slug derived from the name)
        2. Updated by the owner; may be deactivated / reactivated
        3. Deleted by the owner, together with its view events and links
    """

    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    slug: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)

    # personal | business
    profile_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="personal",
        server_default="personal",
    )

    name: Mapped[str] = mapped_column(String(120), nullable=False)
    title: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # ── Presentation ──────────────────────────────────────────────────────
    color: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    design_mode: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    template: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    avatar_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # ── Visibility & Counters ─────────────────────────────────────────────
    view_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default="1",
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
        Index("idx_profiles_user_id", "user_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Profile(id={self.id}, slug='{self.slug}', "
            f"active={self.is_active}, views={self.view_count})>"
        )
