"""
LinkMe Backend - ViewEvent SQLAlchemy Model
=============================================

What:  ORM model for the `profile_views` table: one row per recorded visit.
How:   Written once by ViewService.record_view(); never updated. Removed only
       by the retention sweeper or when the owning profile is deleted.
Who:   Queried by AnalyticsService for every aggregate.

Column Notes:
    - viewer_ip: best effort (proxy headers can be spoofed); never returned
      by any API response
    - viewer_country / viewer_city: NULL for private, loopback or
      unresolvable addresses
    - device / browser: derived from user_agent; "Unknown" when unparseable
    - view_source: how the visitor arrived (see ViewSource)

Index on (profile_id, viewed_at):
    Every analytics query filters by one profile and a time window, and the
    retention sweeper deletes by the same pair.
"""

import enum
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from linkme.database import Base


class ViewSource(str, enum.Enum):
    """How a visitor reached the profile."""

    DIRECT = "direct"
    QR = "qr"
    NFC = "nfc"
    LINK = "link"

    @classmethod
    def coerce(cls, value: Any) -> "ViewSource":
        """Map a client-supplied tag to a known source; anything else is DIRECT."""
        if isinstance(value, str) and value:
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.DIRECT


class ViewEvent(Base):
    """Immutable record of one profile visit."""

    __tablename__ = "profile_views"

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

    # ── Request Context ───────────────────────────────────────────────────
    # 45 chars fits the longest textual IPv6 form (IPv4-mapped)
    viewer_ip: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)
    viewer_country: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    viewer_city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    device: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    browser: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    referrer: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    view_source: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ViewSource.DIRECT.value,
        server_default=ViewSource.DIRECT.value,
    )

    viewed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("idx_profile_views_profile_viewed_at", "profile_id", "viewed_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<ViewEvent(id={self.id}, profile_id={self.profile_id}, "
            f"source='{self.view_source}', viewed_at='{self.viewed_at}')>"
        )
