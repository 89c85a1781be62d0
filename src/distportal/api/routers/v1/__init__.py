"""API v1 routers."""

from fastapi import APIRouter

from .admin import router as admin_router
from .content import router as content_router
from .devices import router as devices_router
from .releases import router as releases_router

# Create v1 router that includes all v1 endpoints
router = APIRouter(prefix="/v1")

router.include_router(content_router)
router.include_router(releases_router)
router.include_router(devices_router)
router.include_router(admin_router)

__all__ = ["admin_router", "content_router", "devices_router", "releases_router", "router"]
