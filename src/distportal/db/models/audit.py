"""Audit event models for administrative accountability."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import DateTime, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column
from uuid_utils.compat import uuid7

from .base import Base, PortableJSON, PortableUUID, utc_now


class AuditEventType(str, Enum):
    """Types of audit events tracked in the portal."""

    # Accounts
    DISTRIBUTOR_CREATED = "distributor.created"
    DISTRIBUTOR_UPDATED = "distributor.updated"
    DISTRIBUTOR_DELETED = "distributor.deleted"
    USER_INVITED = "user.invited"
    USER_UPDATED = "user.updated"
    USER_DELETED = "user.deleted"
    USER_LOGIN = "user.login"

    # Inventory
    DEVICE_CREATED = "device.created"
    DEVICE_DELETED = "device.deleted"
    CUSTOMER_DELETED = "customer.deleted"

    # Content and releases
    SHARING_CHANGED = "content.sharing_changed"
    RELEASE_PUBLISHED = "release.published"
    RELEASE_DEPRECATED = "release.deprecated"
    RELEASE_TARGETS_CHANGED = "release.targets_changed"
    NOTIFICATIONS_DISPATCHED = "release.notifications_dispatched"
    CONTENT_NOTIFICATIONS_DISPATCHED = "content.notifications_dispatched"


class AuditSeverity(str, Enum):
    """Severity levels for audit events."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(Base):
    """Immutable audit log entry.

    Audit events are append-only and capture administrative operations:
    account provisioning, sharing changes, release publication and
    notification batches.
    """

    __tablename__ = "audit_events"

    # UUIDv7 is time-ordered, making audit events naturally sortable by ID
    audit_id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    severity: Mapped[str] = mapped_column(String(20), nullable=False, default="info")

    # Context
    distributor_id: Mapped[UUID | None] = mapped_column(
        PortableUUID(), nullable=True
    )  # null for global events
    actor_id: Mapped[UUID | None] = mapped_column(PortableUUID(), nullable=True)
    correlation_id: Mapped[UUID] = mapped_column(PortableUUID(), nullable=False)

    resource_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    resource_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    event_data: Mapped[dict] = mapped_column(PortableJSON(), nullable=False)

    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("idx_audit_distributor", "distributor_id"),
        Index("idx_audit_correlation", "correlation_id"),
        Index("idx_audit_event_type", "event_type"),
        Index("idx_audit_created", "created_at"),
        Index("idx_audit_resource", "resource_type", "resource_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<AuditEvent(id={self.audit_id}, type={self.event_type}, "
            f"severity={self.severity})>"
        )
