"""Product catalog."""

from .service import ProductService

__all__ = ["ProductService"]
