"""Customer and installed device models."""

from datetime import date, datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import Date, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, validates
from uuid_utils.compat import uuid7

from .base import Base, PortableUUID, TimestampMixin, normalize_choice


class CustomerStatus(str, Enum):
    """Relationship state of an end customer."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    PROSPECT = "prospect"


class DeviceStatus(str, Enum):
    """Operational state of an installed device."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    MAINTENANCE = "maintenance"
    DECOMMISSIONED = "decommissioned"


class Customer(Base, TimestampMixin):
    """End customer of a distributor."""

    __tablename__ = "customers"

    customer_id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    distributor_id: Mapped[UUID] = mapped_column(
        PortableUUID(),
        ForeignKey("distributors.distributor_id", ondelete="CASCADE"),
        nullable=False,
    )
    company_name: Mapped[str] = mapped_column(String(255), nullable=False)

    contact_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    country: Mapped[str | None] = mapped_column(String(100), nullable=True)
    postal_code: Mapped[str | None] = mapped_column(String(20), nullable=True)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=CustomerStatus.ACTIVE.value
    )
    internal_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[UUID | None] = mapped_column(PortableUUID(), nullable=True)

    __table_args__ = (
        Index("idx_customers_distributor", "distributor_id"),
        Index("idx_customers_status", "status"),
    )

    @validates("status")
    def _normalize_status(self, key: str, value: str) -> str:
        return normalize_choice(value, CustomerStatus, key)

    def __repr__(self) -> str:
        return f"<Customer(id={self.customer_id}, name={self.company_name})>"


class Device(Base, TimestampMixin):
    """Device installed at a customer site.

    Serial numbers are unique across the whole system, not just per
    customer. The warranty-after-installation rule is checked by the input
    schemas only; the table accepts any pair of dates.
    """

    __tablename__ = "devices"

    device_id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    customer_id: Mapped[UUID] = mapped_column(
        PortableUUID(),
        ForeignKey("customers.customer_id", ondelete="CASCADE"),
        nullable=False,
    )
    product_id: Mapped[UUID | None] = mapped_column(
        PortableUUID(),
        ForeignKey("products.product_id", ondelete="SET NULL"),
        nullable=True,
    )

    serial_number: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    device_name: Mapped[str] = mapped_column(String(255), nullable=False)
    device_model: Mapped[str | None] = mapped_column(String(255), nullable=True)
    product_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=DeviceStatus.ACTIVE.value
    )

    installation_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    warranty_expiry: Mapped[date | None] = mapped_column(Date, nullable=True)
    location_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    internal_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Installed versions, advanced when a release is marked installed
    current_firmware_version: Mapped[str | None] = mapped_column(String(50), nullable=True)
    current_software_version: Mapped[str | None] = mapped_column(String(50), nullable=True)
    last_update_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_by: Mapped[UUID | None] = mapped_column(PortableUUID(), nullable=True)

    __table_args__ = (
        Index("idx_devices_customer", "customer_id"),
        Index("idx_devices_product", "product_id"),
        Index("idx_devices_warranty", "warranty_expiry"),
    )

    @validates("status")
    def _normalize_status(self, key: str, value: str) -> str:
        return normalize_choice(value, DeviceStatus, key)

    def __repr__(self) -> str:
        return f"<Device(id={self.device_id}, serial={self.serial_number})>"
