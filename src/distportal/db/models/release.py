"""Software release models: releases, targeting, notification markers."""

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


class ReleaseType(str, Enum):
    """What a release installs on a device."""

    FIRMWARE = "firmware"
    SOFTWARE = "software"
    PATCH = "patch"
    HOTFIX = "hotfix"
    DRIVER = "driver"


class ReleaseStatus(str, Enum):
    """Lifecycle state of a release."""

    DRAFT = "draft"
    PUBLISHED = "published"
    DEPRECATED = "deprecated"
    RECALLED = "recalled"


class TargetType(str, Enum):
    """Declared audience of a release."""

    ALL = "all"
    DISTRIBUTORS = "distributors"
    DEVICES = "devices"


class UpdateOutcome(str, Enum):
    """Result of installing a release on a device."""

    SUCCESS = "success"
    FAILED = "failed"
    ROLLED_BACK = "rolled_back"


class SoftwareRelease(Base, TimestampMixin):
    """Firmware or software release offered to devices in the field."""

    __tablename__ = "software_releases"

    release_id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    version: Mapped[str] = mapped_column(String(50), nullable=False)
    release_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ReleaseType.SOFTWARE.value
    )

    product_id: Mapped[UUID | None] = mapped_column(
        PortableUUID(),
        ForeignKey("products.product_id", ondelete="SET NULL"),
        nullable=True,
    )
    product_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Artifact
    file_url: Mapped[str] = mapped_column(Text, nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    checksum: Mapped[str | None] = mapped_column(String(128), nullable=True)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    release_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    changelog: Mapped[str | None] = mapped_column(Text, nullable=True)
    min_previous_version: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Audience and lifecycle
    target_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TargetType.ALL.value
    )
    is_mandatory: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ReleaseStatus.DRAFT.value
    )
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    release_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    notify_on_publish: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_by: Mapped[UUID | None] = mapped_column(PortableUUID(), nullable=True)

    __table_args__ = (
        Index("idx_releases_status", "status"),
        Index("idx_releases_product", "product_id"),
        Index("idx_releases_release_date", "release_date"),
    )

    @validates("status")
    def _normalize_status(self, key: str, value: str) -> str:
        return normalize_choice(value, ReleaseStatus, key)

    @validates("release_type")
    def _normalize_release_type(self, key: str, value: str) -> str:
        return normalize_choice(value, ReleaseType, key)

    @validates("target_type")
    def _normalize_target_type(self, key: str, value: str) -> str:
        return normalize_choice(value, TargetType, key)

    def __repr__(self) -> str:
        return f"<SoftwareRelease(id={self.release_id}, name={self.name}, v={self.version})>"


class SoftwareReleaseDistributor(Base):
    """Allow-lists a release for one distributor."""

    __tablename__ = "software_release_distributors"

    release_id: Mapped[UUID] = mapped_column(
        PortableUUID(),
        ForeignKey("software_releases.release_id", ondelete="CASCADE"),
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


class SoftwareReleaseDevice(Base):
    """Allow-lists a release for one device."""

    __tablename__ = "software_release_devices"

    release_id: Mapped[UUID] = mapped_column(
        PortableUUID(),
        ForeignKey("software_releases.release_id", ondelete="CASCADE"),
        primary_key=True,
    )
    device_id: Mapped[UUID] = mapped_column(
        PortableUUID(),
        ForeignKey("devices.device_id", ondelete="CASCADE"),
        primary_key=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    __table_args__ = (Index("idx_release_devices_device", "device_id"),)


class ReleaseNotification(Base):
    """Per-recipient notification marker for a release.

    One row per (release, user). ``notified_at`` moves from NULL to a
    timestamp exactly once and is never cleared. The recipient id is not
    foreign-keyed so markers survive user deletion; the email and
    distributor are snapshots taken when the row was created.
    """

    __tablename__ = "release_notifications"

    notification_id: Mapped[UUID] = mapped_column(
        PortableUUID(), primary_key=True, default=uuid7
    )
    release_id: Mapped[UUID] = mapped_column(
        PortableUUID(),
        ForeignKey("software_releases.release_id", ondelete="CASCADE"),
        nullable=False,
    )
    recipient_id: Mapped[UUID] = mapped_column(PortableUUID(), nullable=False)
    recipient_email: Mapped[str] = mapped_column(String(255), nullable=False)
    distributor_id: Mapped[UUID | None] = mapped_column(PortableUUID(), nullable=True)

    notified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("release_id", "recipient_id", name="uq_release_notification_recipient"),
        Index("idx_release_notifications_pending", "release_id", "notified_at"),
    )

    @property
    def is_sent(self) -> bool:
        return self.notified_at is not None

    def __repr__(self) -> str:
        return (
            f"<ReleaseNotification(release={self.release_id}, recipient={self.recipient_id}, "
            f"notified_at={self.notified_at})>"
        )


class DeviceUpdateHistory(Base):
    """Record of a release being installed on a device."""

    __tablename__ = "device_update_history"

    update_id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    device_id: Mapped[UUID] = mapped_column(
        PortableUUID(),
        ForeignKey("devices.device_id", ondelete="CASCADE"),
        nullable=False,
    )
    release_id: Mapped[UUID | None] = mapped_column(
        PortableUUID(),
        ForeignKey("software_releases.release_id", ondelete="SET NULL"),
        nullable=True,
    )
    version_installed: Mapped[str] = mapped_column(String(50), nullable=False)
    release_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    release_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    previous_version: Mapped[str | None] = mapped_column(String(50), nullable=True)
    installed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    installed_by: Mapped[UUID | None] = mapped_column(PortableUUID(), nullable=True)
    installation_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=UpdateOutcome.SUCCESS.value
    )

    __table_args__ = (Index("idx_device_updates_device", "device_id"),)

    @validates("status")
    def _normalize_status(self, key: str, value: str) -> str:
        return normalize_choice(value, UpdateOutcome, key)


class ReleaseDownload(Base):
    """One download of a release file by a portal user.

    Rows are append-only. ``user_id`` and ``distributor_id`` are snapshots
    without foreign keys so the log survives account deletion.
    """

    __tablename__ = "release_downloads"

    download_id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    release_id: Mapped[UUID] = mapped_column(
        PortableUUID(),
        ForeignKey("software_releases.release_id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[UUID | None] = mapped_column(PortableUUID(), nullable=True)
    distributor_id: Mapped[UUID | None] = mapped_column(PortableUUID(), nullable=True)
    downloaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    __table_args__ = (Index("idx_release_downloads_release", "release_id"),)

    def __repr__(self) -> str:
        return f"<ReleaseDownload(release={self.release_id}, user={self.user_id})>"
