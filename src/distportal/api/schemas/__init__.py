"""API request/response schemas."""

from .errors import APIError, ErrorCode
from .health import ComponentHealth, HealthDetailResponse, HealthResponse, HealthStatus

__all__ = [
    "APIError",
    "ComponentHealth",
    "ErrorCode",
    "HealthDetailResponse",
    "HealthResponse",
    "HealthStatus",
]
