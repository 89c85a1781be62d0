"""Product catalog model."""

from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, validates
from uuid_utils.compat import uuid7

from .base import Base, PortableJSON, PortableUUID, TimestampMixin, normalize_choice


class ProductStatus(str, Enum):
    """Publication state of a catalog product."""

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class Product(Base, TimestampMixin):
    """Catalog product that devices and releases can reference."""

    __tablename__ = "products"

    product_id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    sku: Mapped[str | None] = mapped_column(String(100), nullable=True)
    hs_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    product_line: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ProductStatus.DRAFT.value
    )
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    specifications: Mapped[dict | None] = mapped_column(PortableJSON(), nullable=True)
    features: Mapped[list | None] = mapped_column(PortableJSON(), nullable=True)
    views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    downloads: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index("idx_products_status", "status"),
        Index("idx_products_line", "product_line"),
    )

    @validates("status")
    def _normalize_status(self, key: str, value: str) -> str:
        return normalize_choice(value, ProductStatus, key)

    @validates("currency")
    def _normalize_currency(self, key: str, value: str) -> str:
        return value.strip().upper()

    def __repr__(self) -> str:
        return f"<Product(id={self.product_id}, name={self.name})>"
