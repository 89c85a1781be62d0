"""Shareable content models and their distributor allow-list tables.

Every content item is global by default. Rows in the matching
``*_distributors`` table restrict it to exactly the listed distributors;
no rows means every distributor may see it.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, validates
from uuid_utils.compat import uuid7

from .base import Base, PortableUUID, TimestampMixin, normalize_choice, utc_now


class ContentStatus(str, Enum):
    """Publication state of shareable content."""

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


# =============================================================================
# Content
# =============================================================================


class TrainingMaterial(Base, TimestampMixin):
    """Training course, video or handout offered to distributors."""

    __tablename__ = "training_materials"

    training_id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    training_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    format: Mapped[str | None] = mapped_column(String(50), nullable=True)
    level: Mapped[str | None] = mapped_column(String(50), nullable=True)
    duration: Mapped[str | None] = mapped_column(String(50), nullable=True)
    modules: Mapped[int | None] = mapped_column(Integer, nullable=True)
    product: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    video_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    file_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    internal_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ContentStatus.DRAFT.value
    )
    created_by: Mapped[UUID | None] = mapped_column(PortableUUID(), nullable=True)

    __table_args__ = (Index("idx_training_status", "status"),)

    @validates("status")
    def _normalize_status(self, key: str, value: str) -> str:
        return normalize_choice(value, ContentStatus, key)


class MarketingAsset(Base, TimestampMixin):
    """Brochure, image or presentation distributors can reuse."""

    __tablename__ = "marketing_assets"

    asset_id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    asset_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    product: Mapped[str | None] = mapped_column(String(255), nullable=True)
    language: Mapped[str | None] = mapped_column(String(10), nullable=True)
    format: Mapped[str | None] = mapped_column(String(50), nullable=True)
    size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    file_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    downloads: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    internal_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ContentStatus.DRAFT.value
    )
    created_by: Mapped[UUID | None] = mapped_column(PortableUUID(), nullable=True)

    __table_args__ = (Index("idx_marketing_status", "status"),)

    @validates("status")
    def _normalize_status(self, key: str, value: str) -> str:
        return normalize_choice(value, ContentStatus, key)


class Documentation(Base, TimestampMixin):
    """Technical documentation page or file for a product."""

    __tablename__ = "documentation"

    documentation_id: Mapped[UUID] = mapped_column(
        PortableUUID(), primary_key=True, default=uuid7
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    product: Mapped[str | None] = mapped_column(String(255), nullable=True)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    version: Mapped[str | None] = mapped_column(String(50), nullable=True)
    language: Mapped[str | None] = mapped_column(String(10), nullable=True)
    file_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    file_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    format: Mapped[str | None] = mapped_column(String(50), nullable=True)
    downloads: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    internal_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ContentStatus.DRAFT.value
    )
    created_by: Mapped[UUID | None] = mapped_column(PortableUUID(), nullable=True)

    __table_args__ = (Index("idx_documentation_status", "status"),)

    @validates("status")
    def _normalize_status(self, key: str, value: str) -> str:
        return normalize_choice(value, ContentStatus, key)


class Announcement(Base, TimestampMixin):
    """News item shown on the distributor dashboard."""

    __tablename__ = "announcements"

    announcement_id: Mapped[UUID] = mapped_column(
        PortableUUID(), primary_key=True, default=uuid7
    )
    category: Mapped[str] = mapped_column(String(50), nullable=False, default="general")
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    link_text: Mapped[str | None] = mapped_column(String(255), nullable=True)
    link_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    clicks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    send_notification: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    internal_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ContentStatus.DRAFT.value
    )
    created_by: Mapped[UUID | None] = mapped_column(PortableUUID(), nullable=True)

    __table_args__ = (Index("idx_announcements_status", "status"),)

    @validates("status")
    def _normalize_status(self, key: str, value: str) -> str:
        return normalize_choice(value, ContentStatus, key)


# =============================================================================
# Distributor allow-lists
# =============================================================================


class TrainingMaterialDistributor(Base):
    """Restricts a training material to one distributor."""

    __tablename__ = "training_material_distributors"

    training_id: Mapped[UUID] = mapped_column(
        PortableUUID(),
        ForeignKey("training_materials.training_id", ondelete="CASCADE"),
        primary_key=True,
    )
    distributor_id: Mapped[UUID] = mapped_column(
        PortableUUID(),
        ForeignKey("distributors.distributor_id", ondelete="CASCADE"),
        primary_key=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )


class MarketingAssetDistributor(Base):
    """Restricts a marketing asset to one distributor."""

    __tablename__ = "marketing_asset_distributors"

    asset_id: Mapped[UUID] = mapped_column(
        PortableUUID(),
        ForeignKey("marketing_assets.asset_id", ondelete="CASCADE"),
        primary_key=True,
    )
    distributor_id: Mapped[UUID] = mapped_column(
        PortableUUID(),
        ForeignKey("distributors.distributor_id", ondelete="CASCADE"),
        primary_key=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )


class DocumentationDistributor(Base):
    """Restricts a documentation entry to one distributor."""

    __tablename__ = "documentation_distributors"

    documentation_id: Mapped[UUID] = mapped_column(
        PortableUUID(),
        ForeignKey("documentation.documentation_id", ondelete="CASCADE"),
        primary_key=True,
    )
    distributor_id: Mapped[UUID] = mapped_column(
        PortableUUID(),
        ForeignKey("distributors.distributor_id", ondelete="CASCADE"),
        primary_key=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )


class AnnouncementDistributor(Base):
    """Restricts an announcement to one distributor."""

    __tablename__ = "announcement_distributors"

    announcement_id: Mapped[UUID] = mapped_column(
        PortableUUID(),
        ForeignKey("announcements.announcement_id", ondelete="CASCADE"),
        primary_key=True,
    )
    distributor_id: Mapped[UUID] = mapped_column(
        PortableUUID(),
        ForeignKey("distributors.distributor_id", ondelete="CASCADE"),
        primary_key=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )


# =============================================================================
# Publication notifications
# =============================================================================


class ContentNotification(Base):
    """Per-recipient marker for a "new content published" email.

    One row per (content kind, item, user). ``content_kind`` names the table
    the item lives in, so ``content_id`` carries no foreign key. Like release
    markers, ``notified_at`` moves from NULL to a timestamp once and is never
    cleared.
    """

    __tablename__ = "content_notifications"

    notification_id: Mapped[UUID] = mapped_column(
        PortableUUID(), primary_key=True, default=uuid7
    )
    content_kind: Mapped[str] = mapped_column(String(30), nullable=False)
    content_id: Mapped[UUID] = mapped_column(PortableUUID(), nullable=False)
    recipient_id: Mapped[UUID] = mapped_column(PortableUUID(), nullable=False)
    recipient_email: Mapped[str] = mapped_column(String(255), nullable=False)
    distributor_id: Mapped[UUID | None] = mapped_column(PortableUUID(), nullable=True)

    notified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    __table_args__ = (
        UniqueConstraint(
            "content_kind",
            "content_id",
            "recipient_id",
            name="uq_content_notification_recipient",
        ),
        Index("idx_content_notifications_pending", "content_kind", "content_id", "notified_at"),
    )

    @property
    def is_sent(self) -> bool:
        return self.notified_at is not None

    def __repr__(self) -> str:
        return (
            f"<ContentNotification({self.content_kind}={self.content_id}, "
            f"recipient={self.recipient_id}, sent={self.is_sent})>"
        )
