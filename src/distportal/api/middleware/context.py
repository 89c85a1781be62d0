"""Request context middleware for propagating context through the request lifecycle."""

from collections.abc import Callable
from uuid import UUID

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from uuid_utils.compat import uuid7

from distportal.core.context import ActorType, create_context, request_context

# Paths that don't require request context
SKIP_CONTEXT_PATHS = {
    "/health",
    "/docs",
    "/redoc",
    "/openapi.json",
}


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Middleware that sets up RequestContext for each request.

    Requires:
        request.state.actor_id: Set by AuthenticationMiddleware
        request.state.actor_type: Set by AuthenticationMiddleware

    Sets:
        request.state.request_id: The generated request ID (UUIDv7)
        X-Request-ID response header: For client correlation
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = uuid7()
        request.state.request_id = request_id

        if self._should_skip_context(request.url.path):
            response = await call_next(request)
            response.headers["X-Request-ID"] = str(request_id)
            return response

        ctx = create_context(
            actor_id=getattr(request.state, "actor_id", None),
            actor_type=getattr(request.state, "actor_type", ActorType.SYSTEM),
            request_id=request_id,
            correlation_id=self._parse_correlation_id(request.headers.get("X-Correlation-ID")),
        )

        with request_context(ctx):
            response = await call_next(request)

        response.headers["X-Request-ID"] = str(request_id)
        response.headers["X-Correlation-ID"] = str(ctx.correlation_id)
        return response

    def _should_skip_context(self, path: str) -> bool:
        return path in SKIP_CONTEXT_PATHS or path.startswith(("/docs", "/redoc"))

    def _parse_correlation_id(self, value: str | None) -> UUID | None:
        """Reuse a caller-supplied correlation id when it is a valid UUID."""
        if not value:
            return None
        try:
            return UUID(value)
        except ValueError:
            return None
