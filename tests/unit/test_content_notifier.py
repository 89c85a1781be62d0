"""Unit tests for product and content publication emails."""

import pytest
from sqlalchemy import select
from uuid_utils.compat import uuid7

from distportal.core.audit import AuditLogger
from distportal.core.exceptions import ContentNotFoundError, ProductNotFoundError
from distportal.db.models import (
    AccountStatus,
    AuditEventType,
    ContentNotification,
    ContentStatus,
    Product,
    ProductStatus,
)
from distportal.notifications import ContentNotifier, NotifiableKind


async def _product(db_session, status=ProductStatus.PUBLISHED.value, **fields):
    fields.setdefault("name", "Analyzer X2")
    fields.setdefault("product_line", "Analyzers")
    product = Product(status=status, **fields)
    db_session.add(product)
    await db_session.flush()
    return product


async def _stamped(db_session, kind, content_id):
    result = await db_session.execute(
        select(ContentNotification).where(
            ContentNotification.content_kind == kind,
            ContentNotification.content_id == content_id,
        )
    )
    return {m.recipient_email: m.notified_at is not None for m in result.scalars().all()}


@pytest.mark.asyncio
class TestResolveRecipients:
    """Who hears about a published item."""

    async def test_allow_list_limits_recipients(
        self, db_session, factory, email_client, test_settings
    ):
        north = await factory.distributor("North")
        south = await factory.distributor("South")
        await factory.user(north, "ops@north.example")
        await factory.user(south, "ops@south.example")
        item = await factory.content("training_materials", allowed=[south])

        notifier = ContentNotifier(db_session, email_client, test_settings)
        recipients = await notifier.resolve_recipients(
            await notifier.load("training_materials", item.training_id)
        )

        assert [r.email for r in recipients] == ["ops@south.example"]

    async def test_empty_allow_list_reaches_every_active_distributor(
        self, db_session, factory, email_client, test_settings
    ):
        north = await factory.distributor("North")
        south = await factory.distributor("South")
        dormant = await factory.distributor("Dormant", status=AccountStatus.INACTIVE)
        await factory.user(north, "ops@north.example")
        await factory.user(south, "ops@south.example")
        await factory.user(dormant, "ops@dormant.example")
        item = await factory.content("marketing_assets")

        notifier = ContentNotifier(db_session, email_client, test_settings)
        recipients = await notifier.resolve_recipients(
            await notifier.load("marketing_assets", item.asset_id)
        )

        assert sorted(r.email for r in recipients) == ["ops@north.example", "ops@south.example"]

    async def test_inactive_listed_distributor_is_skipped(
        self, db_session, factory, email_client, test_settings
    ):
        dormant = await factory.distributor("Dormant", status=AccountStatus.INACTIVE)
        await factory.user(dormant, "ops@dormant.example")
        item = await factory.content("documentation", allowed=[dormant])

        notifier = ContentNotifier(db_session, email_client, test_settings)
        recipients = await notifier.resolve_recipients(
            await notifier.load("documentation", item.documentation_id)
        )

        assert recipients == []

    async def test_draft_has_no_recipients(
        self, db_session, factory, email_client, test_settings
    ):
        north = await factory.distributor()
        await factory.user(north, "ops@north.example")
        item = await factory.content("announcements", status=ContentStatus.DRAFT)

        summary = await ContentNotifier(db_session, email_client, test_settings).notify(
            "announcements", item.announcement_id
        )

        assert summary.sent_count == 0
        assert summary.message == "No new recipients to notify"
        assert email_client.sent == []


@pytest.mark.asyncio
class TestNotify:
    """Delivery and per-recipient markers."""

    async def test_second_call_only_reaches_new_recipients(
        self, db_session, factory, email_client, test_settings
    ):
        north = await factory.distributor("North")
        await factory.user(north, "a@north.example")
        item = await factory.content("documentation", title="Service Manual")
        notifier = ContentNotifier(db_session, email_client, test_settings)

        first = await notifier.notify("documentation", item.documentation_id)
        await factory.user(north, "b@north.example")
        second = await notifier.notify("documentation", item.documentation_id)

        assert first.sent_count == 1
        assert second.sent_count == 1
        assert email_client.recipients == ["a@north.example", "b@north.example"]
        assert await _stamped(db_session, "documentation", item.documentation_id) == {
            "a@north.example": True,
            "b@north.example": True,
        }

    async def test_failed_delivery_stays_pending(
        self, db_session, factory, email_client, test_settings
    ):
        north = await factory.distributor()
        await factory.user(north, "ok@north.example")
        await factory.user(north, "bounce@north.example")
        email_client.rejected.add("bounce@north.example")
        item = await factory.content("training_materials")

        summary = await ContentNotifier(db_session, email_client, test_settings).notify(
            "training_materials", item.training_id
        )

        assert summary.sent_count == 1
        assert summary.total_recipients == 2
        assert len(summary.errors) == 1
        assert await _stamped(db_session, "training_materials", item.training_id) == {
            "ok@north.example": True,
            "bounce@north.example": False,
        }

    async def test_resend_all_ignores_markers(
        self, db_session, factory, email_client, test_settings
    ):
        north = await factory.distributor()
        await factory.user(north, "ops@north.example")
        item = await factory.content("marketing_assets")
        notifier = ContentNotifier(db_session, email_client, test_settings)

        await notifier.notify("marketing_assets", item.asset_id)
        again = await notifier.notify("marketing_assets", item.asset_id, only_unnotified=False)

        assert again.sent_count == 1
        assert email_client.recipients == ["ops@north.example", "ops@north.example"]

    async def test_announcement_email_uses_its_own_link(
        self, db_session, factory, email_client, test_settings
    ):
        north = await factory.distributor()
        await factory.user(north, "ops@north.example", full_name="Dana Ops")
        item = await factory.content(
            "announcements",
            title="Price list <2026>",
            link_url="https://news.example.com/prices",
            link_text="Read more",
        )

        await ContentNotifier(db_session, email_client, test_settings).notify(
            "announcements", item.announcement_id
        )

        message = email_client.sent[0]
        assert message["subject"] == "New Announcement: Price list <2026>"
        assert "Price list &lt;2026&gt;" in message["html"]
        assert 'href="https://news.example.com/prices"' in message["html"]
        assert "Hello Dana Ops" in message["html"]

    async def test_published_product_goes_to_all_active_distributors(
        self, db_session, factory, email_client, test_settings
    ):
        north = await factory.distributor("North")
        south = await factory.distributor("South")
        await factory.user(north, "ops@north.example")
        await factory.user(south, "ops@south.example")
        product = await _product(db_session)

        summary = await ContentNotifier(db_session, email_client, test_settings).notify(
            NotifiableKind.PRODUCTS, product.product_id
        )

        assert summary.sent_count == 2
        assert email_client.sent[0]["subject"] == "New Product: Analyzer X2"
        assert (
            f"https://portal.example.com/portal/products/{product.product_id}"
            in email_client.sent[0]["html"]
        )

    async def test_unknown_product_raises(self, db_session, email_client, test_settings):
        with pytest.raises(ProductNotFoundError):
            await ContentNotifier(db_session, email_client, test_settings).notify(
                "products", uuid7()
            )

    async def test_unknown_kind_is_rejected(self, db_session, email_client, test_settings):
        with pytest.raises(ValueError):
            await ContentNotifier(db_session, email_client, test_settings).notify(
                "brochures", uuid7()
            )

    async def test_dispatch_is_audited(self, db_session, factory, email_client, test_settings):
        north = await factory.distributor()
        await factory.user(north, "ops@north.example")
        item = await factory.content("documentation")

        await ContentNotifier(db_session, email_client, test_settings).notify(
            "documentation", item.documentation_id
        )

        events = await AuditLogger(db_session).query_events(
            event_type=AuditEventType.CONTENT_NOTIFICATIONS_DISPATCHED
        )
        assert len(events) == 1
        assert events[0].resource_id == str(item.documentation_id)
        assert events[0].event_data["sent_count"] == 1


@pytest.mark.asyncio
class TestNotifyMany:
    """Announcing several items of one kind."""

    async def test_counts_sent_and_failed_items(
        self, db_session, factory, email_client, test_settings
    ):
        north = await factory.distributor()
        await factory.user(north, "ops@north.example")
        first = await factory.content("training_materials", title="Basics")
        second = await factory.content("training_materials", title="Advanced")

        batch = await ContentNotifier(db_session, email_client, test_settings).notify_many(
            "training_materials", [first.training_id, uuid7(), second.training_id]
        )

        assert batch.sent == 2
        assert batch.failed == 1
        assert len(email_client.sent) == 2

    async def test_item_with_failed_delivery_counts_as_failed(
        self, db_session, factory, email_client, test_settings
    ):
        north = await factory.distributor()
        await factory.user(north, "bounce@north.example")
        email_client.rejected.add("bounce@north.example")
        item = await factory.content("announcements")

        batch = await ContentNotifier(db_session, email_client, test_settings).notify_many(
            "announcements", [item.announcement_id]
        )

        assert batch.sent == 0
        assert batch.failed == 1

    async def test_missing_content_item_is_not_fatal(
        self, db_session, email_client, test_settings
    ):
        notifier = ContentNotifier(db_session, email_client, test_settings)
        with pytest.raises(ContentNotFoundError):
            await notifier.notify("documentation", uuid7())

        batch = await notifier.notify_many("documentation", [uuid7()])
        assert batch.failed == 1
