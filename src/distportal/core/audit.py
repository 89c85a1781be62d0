"""Audit logging service for administrative accountability."""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from uuid_utils.compat import uuid7

from distportal.core.context import get_current_context_or_none
from distportal.db.models.audit import AuditEvent, AuditEventType, AuditSeverity


class AuditLogger:
    """Service for creating and querying audit events.

    Audit events are immutable, append-only records of administrative
    operations such as distributor provisioning, sharing changes and
    release notification batches.
    """

    def __init__(self, db: AsyncSession):
        """Initialize audit logger with database session.

        Args:
            db: Async SQLAlchemy session for database operations
        """
        self.db = db

    async def log_event(
        self,
        event_type: AuditEventType | str,
        event_data: dict[str, Any],
        *,
        correlation_id: UUID | None = None,
        severity: AuditSeverity | str = AuditSeverity.INFO,
        distributor_id: UUID | None = None,
        actor_id: UUID | None = None,
        resource_type: str | None = None,
        resource_id: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AuditEvent:
        """Create an immutable audit log entry.

        Correlation and actor ids default to the current request context
        when one is set.

        Args:
            event_type: Type of event (release.published, user.invited, etc.)
            event_data: Structured event details (must be JSON serializable)
            correlation_id: Request correlation ID for tracing related events
            severity: Event severity level (default: INFO)
            distributor_id: Distributor the event concerns (null for global events)
            actor_id: User who triggered the event
            resource_type: Optional resource type (release, distributor, etc.)
            resource_id: Optional resource ID
            ip_address: Client IP address
            user_agent: Client user agent string

        Returns:
            Created AuditEvent instance
        """
        if isinstance(event_type, AuditEventType):
            event_type = event_type.value
        if isinstance(severity, AuditSeverity):
            severity = severity.value

        ctx = get_current_context_or_none()
        if correlation_id is None:
            correlation_id = ctx.correlation_id if ctx is not None else uuid7()
        if actor_id is None and ctx is not None:
            actor_id = ctx.actor_id

        event = AuditEvent(
            event_type=event_type,
            severity=severity,
            distributor_id=distributor_id,
            actor_id=actor_id,
            correlation_id=correlation_id,
            resource_type=resource_type,
            resource_id=resource_id,
            event_data=event_data,
            ip_address=ip_address,
            user_agent=user_agent,
        )

        self.db.add(event)
        await self.db.flush()

        return event

    async def query_events(
        self,
        distributor_id: UUID | None = None,
        event_type: AuditEventType | str | None = None,
        resource_id: str | None = None,
        correlation_id: UUID | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[AuditEvent]:
        """Query audit events with filters.

        Args:
            distributor_id: Filter by distributor
            event_type: Filter by event type
            resource_id: Filter by affected resource
            correlation_id: Filter by request correlation ID
            start_date: Filter events after this date
            end_date: Filter events before this date
            limit: Max results (max 1000)
            offset: Pagination offset

        Returns:
            List of matching audit events, newest first
        """
        if isinstance(event_type, AuditEventType):
            event_type = event_type.value

        query = select(AuditEvent).order_by(
            AuditEvent.created_at.desc(),
            AuditEvent.audit_id.desc(),  # Secondary sort for equal timestamps
        )

        if distributor_id is not None:
            query = query.where(AuditEvent.distributor_id == distributor_id)
        if event_type is not None:
            query = query.where(AuditEvent.event_type == event_type)
        if resource_id is not None:
            query = query.where(AuditEvent.resource_id == resource_id)
        if correlation_id is not None:
            query = query.where(AuditEvent.correlation_id == correlation_id)
        if start_date is not None:
            query = query.where(AuditEvent.created_at >= start_date)
        if end_date is not None:
            query = query.where(AuditEvent.created_at <= end_date)

        query = query.limit(min(limit, 1000)).offset(offset)

        result = await self.db.execute(query)
        return list(result.scalars().all())
