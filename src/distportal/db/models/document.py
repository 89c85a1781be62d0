"""Device document models with version lineage and history."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, validates
from uuid_utils.compat import uuid7

from .base import Base, PortableJSON, PortableUUID, TimestampMixin, normalize_choice, utc_now


class DocumentType(str, Enum):
    """Kinds of documents attached to a device."""

    MANUAL = "manual"
    DATASHEET = "datasheet"
    CERTIFICATE = "certificate"
    CALIBRATION = "calibration"
    MAINTENANCE_REPORT = "maintenance_report"
    INSTALLATION_GUIDE = "installation_guide"
    CUSTOM = "custom"
    OTHER = "other"


class DocumentStatus(str, Enum):
    """Lifecycle state of a document version."""

    ACTIVE = "active"
    ARCHIVED = "archived"
    SUPERSEDED = "superseded"


class DocumentAction(str, Enum):
    """Actions recorded in the document history trail."""

    CREATED = "created"
    UPDATED = "updated"
    SHARED = "shared"
    UNSHARED = "unshared"
    VERSIONED = "versioned"
    ARCHIVED = "archived"
    DELETED = "deleted"


class DeviceDocument(Base, TimestampMixin):
    """A single version of a document attached to a device.

    Versions of the same document form a chain through
    ``previous_version_id``; only the head of the chain has
    ``is_latest = True``.
    """

    __tablename__ = "device_documents"

    document_id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    device_id: Mapped[UUID] = mapped_column(
        PortableUUID(),
        ForeignKey("devices.device_id", ondelete="CASCADE"),
        nullable=False,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    document_type: Mapped[str] = mapped_column(
        String(30), nullable=False, default=DocumentType.OTHER.value
    )

    # Versioning
    version: Mapped[str] = mapped_column(String(50), nullable=False, default="1.0")
    is_latest: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    previous_version_id: Mapped[UUID | None] = mapped_column(
        PortableUUID(),
        ForeignKey("device_documents.document_id", ondelete="SET NULL"),
        nullable=True,
    )

    # File location (bytes live in external object storage)
    file_url: Mapped[str] = mapped_column(Text, nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    file_type: Mapped[str | None] = mapped_column(String(100), nullable=True)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=DocumentStatus.ACTIVE.value
    )
    shared_with_customer: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    shared_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_by: Mapped[UUID | None] = mapped_column(PortableUUID(), nullable=True)

    __table_args__ = (
        Index("idx_documents_device", "device_id"),
        Index("idx_documents_lineage", "device_id", "title", "document_type", "is_latest"),
    )

    @validates("document_type")
    def _normalize_type(self, key: str, value: str) -> str:
        return normalize_choice(value, DocumentType, key)

    @validates("status")
    def _normalize_status(self, key: str, value: str) -> str:
        return normalize_choice(value, DocumentStatus, key)

    def snapshot(self) -> dict:
        """Metadata snapshot used for history entries."""
        return {
            "title": self.title,
            "description": self.description,
            "document_type": self.document_type,
            "version": self.version,
            "status": self.status,
            "shared_with_customer": self.shared_with_customer,
        }

    def __repr__(self) -> str:
        return f"<DeviceDocument(id={self.document_id}, title={self.title}, v={self.version})>"


class DocumentHistoryEntry(Base):
    """Append-only record of an action taken on a device document.

    Not foreign-keyed to ``device_documents``: entries
    outlive the documents they describe.
    """

    __tablename__ = "document_history"

    history_id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    document_id: Mapped[UUID] = mapped_column(PortableUUID(), nullable=False)
    device_id: Mapped[UUID] = mapped_column(PortableUUID(), nullable=False)

    action_type: Mapped[str] = mapped_column(String(20), nullable=False)
    action_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    old_value: Mapped[dict | None] = mapped_column(PortableJSON(), nullable=True)
    new_value: Mapped[dict | None] = mapped_column(PortableJSON(), nullable=True)

    performed_by: Mapped[UUID | None] = mapped_column(PortableUUID(), nullable=True)
    performed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("idx_document_history_document", "document_id"),
        Index("idx_document_history_device", "device_id"),
    )

    def __repr__(self) -> str:
        return f"<DocumentHistoryEntry(document={self.document_id}, action={self.action_type})>"
