"""Publication emails for catalog products and shareable content.

Recipients follow the same allow-list rule as the portal listings: an item
with no allow-list rows goes to every active distributor, otherwise only to
the listed ones that are still active. Markers live in
``content_notifications`` and are stamped per recipient exactly like
release markers.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from distportal.config.settings import Settings
from distportal.core.exceptions import ContentNotFoundError, ProductNotFoundError
from distportal.core.logging import LogContext
from distportal.db.models.audit import AuditEventType, AuditSeverity
from distportal.db.models.base import Base
from distportal.db.models.content import ContentStatus
from distportal.db.models.product import ProductStatus
from distportal.db.repositories.catalog import ProductRepository
from distportal.db.repositories.content import ContentNotificationRepository
from distportal.notifications.dispatcher import BatchNotifier, NotificationSummary, Recipient
from distportal.notifications.email import EmailClient
from distportal.notifications.templates import content_html, content_subject
from distportal.sharing.service import ContentSharingService
from distportal.sharing.types import ContentKind, binding_for
from distportal.sharing.visibility import is_visible

logger = structlog.get_logger()


class NotifiableKind(str, Enum):
    """Everything that can be announced by email besides releases."""

    PRODUCTS = "products"
    TRAINING_MATERIALS = ContentKind.TRAINING_MATERIALS.value
    MARKETING_ASSETS = ContentKind.MARKETING_ASSETS.value
    DOCUMENTATION = ContentKind.DOCUMENTATION.value
    ANNOUNCEMENTS = ContentKind.ANNOUNCEMENTS.value


@dataclass(frozen=True)
class PublishedItem:
    """The parts of a product or content item an announcement email shows."""

    kind: NotifiableKind
    item_id: UUID
    title: str
    published: bool
    description: str | None = None
    category: str | None = None
    link_url: str | None = None
    link_label: str | None = None


@dataclass
class BatchSummary:
    """Outcome of announcing several items of one kind."""

    sent: int = 0
    failed: int = 0


def _describe(kind: NotifiableKind, item: Base) -> PublishedItem:
    if kind is NotifiableKind.PRODUCTS:
        return PublishedItem(
            kind=kind,
            item_id=item.product_id,
            title=item.name,
            published=item.status == ProductStatus.PUBLISHED.value,
            description=item.description,
            category=item.product_line,
        )

    binding = binding_for(kind.value)
    published = item.status == ContentStatus.PUBLISHED.value
    item_id = binding.identify(item)
    if kind is NotifiableKind.TRAINING_MATERIALS:
        return PublishedItem(
            kind, item_id, item.title, published, item.description, item.training_type
        )
    if kind is NotifiableKind.MARKETING_ASSETS:
        return PublishedItem(kind, item_id, item.name, published, item.description, item.asset_type)
    if kind is NotifiableKind.DOCUMENTATION:
        return PublishedItem(kind, item_id, item.title, published, None, item.category)
    return PublishedItem(
        kind,
        item_id,
        item.title,
        published,
        item.content,
        item.category,
        link_url=item.link_url,
        link_label=item.link_text,
    )


class ContentNotifier(BatchNotifier):
    """Sends publication emails for products and shareable content."""

    def __init__(
        self,
        db: AsyncSession,
        email_client: EmailClient,
        settings: Settings | None = None,
    ):
        super().__init__(db, email_client, settings)
        self.products = ProductRepository(db)
        self.content = ContentSharingService(db)
        self.notifications = ContentNotificationRepository(db)

    async def load(self, kind: NotifiableKind | str, content_id: UUID) -> PublishedItem:
        """Fetch an item and reduce it to what the email needs.

        Raises:
            ProductNotFoundError: If a product does not exist
            ContentNotFoundError: If a content item does not exist
        """
        kind = NotifiableKind(kind)
        if kind is NotifiableKind.PRODUCTS:
            item = await self.products.get_or_raise(content_id)
        else:
            item = await self.content.get_content(kind.value, content_id)
        return _describe(kind, item)

    async def resolve_recipients(self, item: PublishedItem) -> list[Recipient]:
        """Users of active distributors that can see the item.

        Unpublished items have no recipients. Products carry no allow-list
        and go to every active distributor.
        """
        if not item.published:
            return []

        allowed: set[UUID] = set()
        if item.kind is not NotifiableKind.PRODUCTS:
            binding = binding_for(item.kind.value)
            result = await self.db.execute(
                select(binding.junction_distributor_id).where(
                    binding.junction_content_id == item.item_id
                )
            )
            allowed = set(result.scalars().all())

        entitled = [d for d in await self.distributors.active_ids() if is_visible(allowed, d)]
        return await self._recipients_for(entitled)

    async def notify(
        self,
        kind: NotifiableKind | str,
        content_id: UUID,
        only_unnotified: bool = True,
    ) -> NotificationSummary:
        """Announce one published item to everyone entitled to see it.

        Raises:
            ProductNotFoundError: If a product does not exist (nothing is sent)
            ContentNotFoundError: If a content item does not exist
        """
        item = await self.load(kind, content_id)
        kind_value = item.kind.value

        with LogContext(content_kind=kind_value, content_id=str(content_id)):
            recipients = await self.resolve_recipients(item)

            await self.notifications.ensure_pending(
                kind_value, content_id, [r.marker() for r in recipients], commit=True
            )
            markers = await self.notifications.for_content(kind_value, content_id)

            pending = [
                r
                for r in recipients
                if not (only_unnotified and markers[r.user_id].notified_at is not None)
            ]
            logger.info(
                "content_notification_started",
                only_unnotified=only_unnotified,
                entitled=len(recipients),
                pending=len(pending),
            )

            if not pending:
                return NotificationSummary(message="No new recipients to notify")

            async def stamp(recipient: Recipient) -> bool:
                return await self.notifications.mark_sent(
                    kind_value, content_id, recipient.user_id, datetime.now(UTC), commit=True
                )

            summary = await self._send_batch(
                pending,
                content_subject(item),
                lambda r: content_html(item, r.name, self.settings.portal_base_url),
                stamp,
            )

            await self.audit.log_event(
                AuditEventType.CONTENT_NOTIFICATIONS_DISPATCHED,
                {
                    "kind": kind_value,
                    "only_unnotified": only_unnotified,
                    "sent_count": summary.sent_count,
                    "total_recipients": summary.total_recipients,
                    "failed": len(summary.errors),
                },
                severity=AuditSeverity.WARNING if summary.errors else AuditSeverity.INFO,
                resource_type=kind_value,
                resource_id=str(content_id),
            )
            logger.info(
                "content_notification_completed",
                sent_count=summary.sent_count,
                total_recipients=summary.total_recipients,
                failed=len(summary.errors),
            )
            return summary

    async def notify_many(
        self, kind: NotifiableKind | str, content_ids: list[UUID]
    ) -> BatchSummary:
        """Announce several items one after another.

        An item counts as failed when it does not exist or when any of its
        deliveries failed; the remaining items are still processed.
        """
        batch = BatchSummary()
        for content_id in content_ids:
            try:
                summary = await self.notify(kind, content_id)
            except (ContentNotFoundError, ProductNotFoundError) as exc:
                logger.warning(
                    "content_notification_skipped", content_id=str(content_id), error=str(exc)
                )
                batch.failed += 1
                continue
            if summary.errors:
                batch.failed += 1
            else:
                batch.sent += 1

        logger.info("content_batch_notification_completed", sent=batch.sent, failed=batch.failed)
        return batch
