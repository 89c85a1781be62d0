"""Unit tests for AuditLogger service."""

from datetime import UTC, datetime, timedelta

import pytest
from uuid_utils.compat import uuid7

from distportal.core.audit import AuditLogger
from distportal.core.context import create_context, request_context
from distportal.db.models.audit import AuditEventType, AuditSeverity


@pytest.mark.asyncio
class TestAuditLogEvent:
    """Tests for creating audit events."""

    async def test_log_event_basic(self, db_session):
        """Test logging a basic audit event."""
        audit = AuditLogger(db_session)
        distributor_id = uuid7()

        event = await audit.log_event(
            AuditEventType.DISTRIBUTOR_CREATED,
            {"company_name": "Acme"},
            distributor_id=distributor_id,
            resource_type="distributor",
            resource_id=str(distributor_id),
        )

        assert event.audit_id is not None
        assert event.event_type == "distributor.created"
        assert event.severity == AuditSeverity.INFO.value
        assert event.event_data == {"company_name": "Acme"}
        assert event.correlation_id is not None

    async def test_log_event_uses_request_context(self, db_session):
        """Correlation and actor ids come from the active context."""
        ctx = create_context(actor_id=uuid7())

        with request_context(ctx):
            event = await AuditLogger(db_session).log_event(
                AuditEventType.SHARING_CHANGED, {"allowed": []}
            )

        assert event.correlation_id == ctx.correlation_id
        assert event.actor_id == ctx.actor_id

    async def test_explicit_ids_override_context(self, db_session):
        correlation_id = uuid7()
        actor_id = uuid7()

        with request_context(create_context(actor_id=uuid7())):
            event = await AuditLogger(db_session).log_event(
                "release.published",
                {},
                correlation_id=correlation_id,
                actor_id=actor_id,
                severity="warning",
            )

        assert event.correlation_id == correlation_id
        assert event.actor_id == actor_id
        assert event.severity == "warning"


@pytest.mark.asyncio
class TestAuditQueryEvents:
    """Tests for querying audit events."""

    async def test_filters(self, db_session):
        audit = AuditLogger(db_session)
        north, south = uuid7(), uuid7()
        await audit.log_event(AuditEventType.USER_INVITED, {}, distributor_id=north)
        await audit.log_event(AuditEventType.USER_INVITED, {}, distributor_id=south)
        await audit.log_event(AuditEventType.DISTRIBUTOR_UPDATED, {}, distributor_id=north)

        by_distributor = await audit.query_events(distributor_id=north)
        by_type = await audit.query_events(event_type=AuditEventType.USER_INVITED)
        combined = await audit.query_events(
            distributor_id=north, event_type=AuditEventType.USER_INVITED
        )

        assert len(by_distributor) == 2
        assert len(by_type) == 2
        assert len(combined) == 1

    async def test_correlation_and_resource_filters(self, db_session):
        audit = AuditLogger(db_session)
        correlation_id = uuid7()
        await audit.log_event("release.published", {}, correlation_id=correlation_id)
        await audit.log_event("release.published", {}, resource_id="r-1")

        assert len(await audit.query_events(correlation_id=correlation_id)) == 1
        assert len(await audit.query_events(resource_id="r-1")) == 1

    async def test_date_range_and_pagination(self, db_session):
        audit = AuditLogger(db_session)
        for i in range(5):
            await audit.log_event(AuditEventType.USER_LOGIN, {"n": i})

        now = datetime.now(UTC)
        assert await audit.query_events(start_date=now + timedelta(hours=1)) == []
        assert len(await audit.query_events(end_date=now + timedelta(hours=1))) == 5

        page = await audit.query_events(limit=2, offset=1)
        assert len(page) == 2
