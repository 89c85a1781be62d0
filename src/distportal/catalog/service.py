"""Product catalog management."""

from typing import Any
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from distportal.db.models.product import Product
from distportal.db.repositories.catalog import ProductRepository

logger = structlog.get_logger()

_PRODUCT_FIELDS = {
    "name",
    "sku",
    "hs_code",
    "product_line",
    "description",
    "price",
    "currency",
    "status",
    "image_url",
    "specifications",
    "features",
}


class ProductService:
    """Catalog products referenced by devices and releases."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.products = ProductRepository(db)

    async def get(self, product_id: UUID) -> Product:
        return await self.products.get_or_raise(product_id)

    async def list_published(self, *, product_line: str | None = None) -> list[Product]:
        """Published products grouped by product line, then name."""
        return await self.products.published(product_line=product_line)

    async def create(self, fields: dict[str, Any]) -> Product:
        product = Product(**{k: v for k, v in fields.items() if k in _PRODUCT_FIELDS})
        await self.products.create(product)
        logger.info(
            "product_created",
            product_id=str(product.product_id),
            product_line=product.product_line,
        )
        return product

    async def update(self, product_id: UUID, updates: dict[str, Any]) -> Product:
        """Apply attribute changes; unknown and unset fields are ignored."""
        product = await self.products.get_or_raise(product_id)
        changes = {k: v for k, v in updates.items() if k in _PRODUCT_FIELDS and v is not None}
        return await self.products.update(product, changes)
