"""Repository for catalog products."""

from uuid import UUID

from sqlalchemy import select

from distportal.core.exceptions import ProductNotFoundError
from distportal.db.models.product import Product, ProductStatus
from distportal.db.repositories.base import BaseRepository


class ProductRepository(BaseRepository[Product, UUID]):
    """Repository for catalog products."""

    model = Product
    not_found_error = ProductNotFoundError

    async def published(self, *, product_line: str | None = None) -> list[Product]:
        stmt = select(Product).where(Product.status == ProductStatus.PUBLISHED.value)
        if product_line is not None:
            stmt = stmt.where(Product.product_line == product_line)
        result = await self.db.execute(stmt.order_by(Product.product_line, Product.name))
        return list(result.scalars().all())
