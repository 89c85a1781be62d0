"""Core services and utilities for the distributor portal."""

from .audit import AuditLogger
from .context import (
    ActorType,
    RequestContext,
    create_context,
    get_current_context,
    get_current_context_or_none,
    request_context,
    reset_context,
    set_context,
)
from .exceptions import (
    AuthenticationError,
    ContentNotFoundError,
    ContextNotSetError,
    CustomerNotFoundError,
    DeviceNotFoundError,
    DistributorNotFoundError,
    DocumentNotFoundError,
    DuplicateEmailError,
    DuplicateSerialNumberError,
    InvalidStateTransitionError,
    PermissionDeniedError,
    ProductNotFoundError,
    ReleaseNotFoundError,
    ResourceNotFoundError,
    UserNotFoundError,
)
from .tenant import TenantResolver

__all__ = [
    # Audit
    "AuditLogger",
    # Context
    "ActorType",
    "RequestContext",
    "create_context",
    "get_current_context",
    "get_current_context_or_none",
    "request_context",
    "reset_context",
    "set_context",
    # Exceptions
    "AuthenticationError",
    "ContentNotFoundError",
    "ContextNotSetError",
    "CustomerNotFoundError",
    "DeviceNotFoundError",
    "DistributorNotFoundError",
    "DocumentNotFoundError",
    "DuplicateEmailError",
    "DuplicateSerialNumberError",
    "InvalidStateTransitionError",
    "PermissionDeniedError",
    "ProductNotFoundError",
    "ReleaseNotFoundError",
    "ResourceNotFoundError",
    "UserNotFoundError",
    # Tenant
    "TenantResolver",
]
