"""Error handling middleware for mapping exceptions to HTTP responses."""

from collections.abc import Callable
from datetime import UTC, datetime
from uuid import UUID

import structlog
from fastapi import Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.middleware.base import BaseHTTPMiddleware

from distportal.api.schemas.errors import APIError, ErrorCode
from distportal.config.settings import get_settings
from distportal.core.exceptions import (
    AuthenticationError,
    ContextNotSetError,
    DuplicateEmailError,
    DuplicateSerialNumberError,
    InvalidStateTransitionError,
    PermissionDeniedError,
    ResourceNotFoundError,
)

logger = structlog.get_logger()


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Middleware that catches exceptions and returns standardized error responses.

    Maps domain exceptions to appropriate HTTP status codes and formats
    all errors using the APIError schema.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            return self._handle_exception(request, exc)

    def _handle_exception(self, request: Request, exc: Exception) -> JSONResponse:
        request_id = self._get_request_id(request)
        status_code, error_code, message, details = self._map_exception(exc)

        if status_code >= 500:
            logger.error(
                "request_failed",
                path=request.url.path,
                error_type=type(exc).__name__,
                error=str(exc),
                exc_info=exc,
            )

        error = APIError(
            error_code=error_code,
            message=message,
            details=details,
            request_id=request_id,
            timestamp=datetime.now(UTC),
        )
        return JSONResponse(
            status_code=status_code,
            content=error.model_dump(mode="json"),
            headers={"X-Request-ID": request_id},
        )

    def _get_request_id(self, request: Request) -> str:
        if hasattr(request.state, "request_id"):
            rid = request.state.request_id
            return str(rid) if isinstance(rid, UUID) else rid
        return "unknown"

    def _map_exception(self, exc: Exception) -> tuple[int, str, str, dict | None]:
        """Map exception to (status_code, error_code, message, details)."""
        if isinstance(exc, AuthenticationError):
            return 401, ErrorCode.UNAUTHORIZED.value, exc.reason, None

        if isinstance(exc, PermissionDeniedError):
            return 403, ErrorCode.FORBIDDEN.value, exc.reason, None

        if isinstance(exc, ResourceNotFoundError):
            return (
                404,
                ErrorCode.NOT_FOUND.value,
                exc.args[0],
                {"resource": exc.resource, "id": str(exc.resource_id)},
            )

        if isinstance(exc, DuplicateSerialNumberError):
            return (
                409,
                ErrorCode.DUPLICATE_SERIAL_NUMBER.value,
                exc.args[0],
                {"serial_number": exc.serial_number},
            )

        if isinstance(exc, DuplicateEmailError):
            return 409, ErrorCode.DUPLICATE_EMAIL.value, exc.args[0], {"email": exc.email}

        if isinstance(exc, InvalidStateTransitionError):
            return (
                409,
                ErrorCode.INVALID_STATE_TRANSITION.value,
                exc.args[0],
                {"current": exc.current, "target": exc.target},
            )

        # Validation errors raised while building domain objects
        if isinstance(exc, ValidationError):
            return (
                422,
                ErrorCode.VALIDATION_ERROR.value,
                "Request validation failed",
                {"errors": exc.errors(include_url=False, include_context=False)},
            )

        if isinstance(exc, ValueError):
            return 422, ErrorCode.VALIDATION_ERROR.value, str(exc), None

        if isinstance(exc, ContextNotSetError):
            return (
                500,
                ErrorCode.INTERNAL_ERROR.value,
                "Internal server error: context not initialized",
                None,
            )

        return (
            500,
            ErrorCode.INTERNAL_ERROR.value,
            "Internal server error",
            {"type": type(exc).__name__} if get_settings().DEBUG else None,
        )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render FastAPI request validation failures in the APIError format."""
    rid = getattr(request.state, "request_id", "unknown")
    errors = [{k: v for k, v in e.items() if k not in ("ctx", "url")} for e in exc.errors()]
    error = APIError(
        error_code=ErrorCode.VALIDATION_ERROR.value,
        message="Request validation failed",
        details={"errors": jsonable_encoder(errors)},
        request_id=str(rid),
        timestamp=datetime.now(UTC),
    )
    return JSONResponse(
        status_code=422,
        content=error.model_dump(mode="json"),
        headers={"X-Request-ID": str(rid)},
    )
