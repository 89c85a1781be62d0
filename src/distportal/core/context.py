"""Request context for async-safe request correlation.

This module provides request context propagation using Python's contextvars
so that log entries and audit events can be correlated across one request.

The context deliberately carries no tenant. The owning distributor of the
caller is resolved per call by ``TenantResolver`` and passed explicitly into
visibility and notification operations.

Usage:
    from distportal.core.context import create_context, request_context

    ctx = create_context(actor_id=user_uuid)

    with request_context(ctx):
        current = get_current_context()
"""

from contextlib import contextmanager
from contextvars import ContextVar, Token
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field
from uuid_utils.compat import uuid7

from distportal.core.exceptions import ContextNotSetError


class ActorType(str, Enum):
    """Type of actor performing the operation."""

    HUMAN = "human"  # Portal user acting through the UI
    SERVICE = "service"  # Internal service call with an API key only
    SYSTEM = "system"  # System-initiated operation (e.g., re-trigger job)


class RequestContext(BaseModel):
    """Context for a single request/operation."""

    request_id: UUID = Field(default_factory=uuid7)
    actor_id: UUID | None = None
    actor_type: ActorType = ActorType.SERVICE

    correlation_id: UUID = Field(default_factory=uuid7)
    initiated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    model_config = {"frozen": True}

    def to_audit_dict(self) -> dict[str, Any]:
        """Convert context to a dictionary for audit logging."""
        return {
            "request_id": str(self.request_id),
            "actor_id": str(self.actor_id) if self.actor_id else None,
            "actor_type": self.actor_type.value,
            "correlation_id": str(self.correlation_id),
            "initiated_at": self.initiated_at.isoformat(),
        }


# =============================================================================
# Context Variable Management
# =============================================================================

_request_context: ContextVar[RequestContext | None] = ContextVar("request_context", default=None)


def get_current_context() -> RequestContext:
    """Get the current request context.

    Raises:
        ContextNotSetError: If no context is set in the current execution context
    """
    ctx = _request_context.get()
    if ctx is None:
        raise ContextNotSetError(
            "No request context is set. Use request_context() context manager."
        )
    return ctx


def get_current_context_or_none() -> RequestContext | None:
    """Get the current request context, or None if not set."""
    return _request_context.get()


def set_context(ctx: RequestContext) -> Token[RequestContext | None]:
    """Set the request context and return a token for restoration.

    This is a low-level API. Prefer using the request_context() context manager.
    """
    return _request_context.set(ctx)


def reset_context(token: Token[RequestContext | None]) -> None:
    """Reset the context to its previous value using a token."""
    _request_context.reset(token)


@contextmanager
def request_context(ctx: RequestContext):
    """Context manager for setting request context.

    Works for both sync and async code because contextvars are
    automatically propagated to async tasks.

    Args:
        ctx: The context to set for the duration of the block

    Yields:
        The context that was set
    """
    token = set_context(ctx)
    try:
        yield ctx
    finally:
        reset_context(token)


def create_context(
    *,
    actor_id: UUID | None = None,
    actor_type: ActorType = ActorType.SERVICE,
    request_id: UUID | None = None,
    correlation_id: UUID | None = None,
) -> RequestContext:
    """Factory function to create a RequestContext with defaults.

    Args:
        actor_id: Calling principal (portal user id), if known
        actor_type: Type of actor (default: SERVICE)
        request_id: Optional request ID (auto-generated if not provided)
        correlation_id: Optional correlation ID (auto-generated if not provided)

    Returns:
        A new RequestContext instance
    """
    return RequestContext(
        request_id=request_id or uuid7(),
        actor_id=actor_id,
        actor_type=actor_type,
        correlation_id=correlation_id or uuid7(),
    )
