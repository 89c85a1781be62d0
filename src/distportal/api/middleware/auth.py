"""Authentication middleware for API key validation."""

import hmac
import re
from collections.abc import Callable
from datetime import UTC, datetime
from uuid import UUID

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from distportal.api.schemas.errors import APIError, ErrorCode
from distportal.config.settings import Settings, get_settings
from distportal.core.context import ActorType

# Paths that don't require authentication
SKIP_AUTH_PATHS = {
    "/health",
    "/health/db",
    "/docs",
    "/redoc",
    "/openapi.json",
}

SKIP_AUTH_PREFIXES = ("/docs", "/redoc")

USER_HEADER = "X-User-ID"


class AuthenticationMiddleware(BaseHTTPMiddleware):
    """Middleware that validates Bearer token authentication.

    The portal front end calls the API with the shared API key and names the
    signed-in user in ``X-User-ID``. Calls without that header are internal
    service calls.

    Sets:
        request.state.actor_id: UUID of the calling user, or None for services
        request.state.actor_type: HUMAN when a user is named, otherwise SERVICE
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if self._should_skip_auth(request.url.path):
            request.state.actor_id = None
            request.state.actor_type = ActorType.SYSTEM
            return await call_next(request)

        auth_header = request.headers.get("Authorization")
        if not auth_header:
            return self._unauthorized_response("Missing Authorization header")

        match = re.match(r"^Bearer\s+(.+)$", auth_header, re.IGNORECASE)
        if not match:
            return self._unauthorized_response("Invalid Authorization header format")

        if not self._validate_token(match.group(1), self._settings(request)):
            return self._unauthorized_response("Invalid API key")

        user_header = request.headers.get(USER_HEADER)
        if user_header:
            try:
                request.state.actor_id = UUID(user_header)
            except ValueError:
                return self._unauthorized_response(f"Invalid {USER_HEADER} header")
            request.state.actor_type = ActorType.HUMAN
        else:
            request.state.actor_id = None
            request.state.actor_type = ActorType.SERVICE

        return await call_next(request)

    def _should_skip_auth(self, path: str) -> bool:
        return path in SKIP_AUTH_PATHS or path.startswith(SKIP_AUTH_PREFIXES)

    def _settings(self, request: Request) -> Settings:
        return getattr(request.app.state, "settings", None) or get_settings()

    def _validate_token(self, token: str, settings: Settings) -> bool:
        """Compare the token with the configured API key.

        Without a configured key, any non-empty token is accepted in debug
        mode and rejected otherwise.
        """
        if settings.API_SECRET_KEY is None:
            return bool(token) and settings.DEBUG
        return hmac.compare_digest(token, settings.API_SECRET_KEY.get_secret_value())

    def _unauthorized_response(self, message: str) -> JSONResponse:
        error = APIError(
            error_code=ErrorCode.UNAUTHORIZED.value,
            message=message,
            details=None,
            request_id="unknown",  # Request ID not yet assigned
            timestamp=datetime.now(UTC),
        )
        return JSONResponse(
            status_code=401,
            content=error.model_dump(mode="json"),
            headers={"WWW-Authenticate": "Bearer"},
        )
