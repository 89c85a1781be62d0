"""FastAPI dependencies for API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from distportal.config.settings import Settings, get_settings
from distportal.core.context import ActorType, RequestContext, get_current_context
from distportal.core.exceptions import PermissionDeniedError
from distportal.core.tenant import TenantResolver
from distportal.db.config import get_db
from distportal.notifications.email import EmailClient, build_email_client

__all__ = [
    "get_app_settings",
    "get_current_distributor_id",
    "get_db",
    "get_email_client",
    "get_request_context",
    "require_service_actor",
]


def get_request_context() -> RequestContext:
    """Get the current request context from ContextVar.

    This dependency requires RequestContextMiddleware to be active.

    Raises:
        ContextNotSetError: If middleware hasn't set the context
    """
    return get_current_context()


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return getattr(request.app.state, "settings", None) or get_settings()


def get_email_client(request: Request) -> EmailClient:
    """Email client shared by the application.

    Falls back to a client built from settings when the app was assembled
    without one.
    """
    client = getattr(request.app.state, "email_client", None)
    if client is None:
        client = build_email_client(get_app_settings(request))
        request.app.state.email_client = client
    return client


async def get_current_distributor_id(
    ctx: Annotated[RequestContext, Depends(get_request_context)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> UUID | None:
    """Distributor owning the calling user, or None.

    Service calls without an ``X-User-ID`` and users without a profile both
    resolve to None, which downstream visibility treats as "sees nothing".
    """
    if ctx.actor_type != ActorType.HUMAN:
        return None
    return await TenantResolver(db).resolve_distributor_id(ctx.actor_id)


def require_service_actor(
    ctx: Annotated[RequestContext, Depends(get_request_context)],
) -> RequestContext:
    """Restrict an endpoint to internal (API key only) callers.

    Raises:
        PermissionDeniedError: If the call is made on behalf of a portal user
    """
    if ctx.actor_type != ActorType.SERVICE:
        raise PermissionDeniedError("Administrative endpoint requires a service credential")
    return ctx
