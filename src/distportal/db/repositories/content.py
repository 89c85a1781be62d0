"""Repository for content publication notification markers."""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select, update

from distportal.db.models.content import ContentNotification
from distportal.db.repositories.base import BaseRepository


class ContentNotificationRepository(BaseRepository[ContentNotification, UUID]):
    """Per-recipient markers keyed by (content kind, item, recipient)."""

    model = ContentNotification

    async def for_content(self, kind: str, content_id: UUID) -> dict[UUID, ContentNotification]:
        """Existing markers for one item keyed by recipient id."""
        result = await self.db.execute(
            select(ContentNotification)
            .where(
                ContentNotification.content_kind == kind,
                ContentNotification.content_id == content_id,
            )
            .execution_options(populate_existing=True)
        )
        return {record.recipient_id: record for record in result.scalars().all()}

    async def ensure_pending(
        self,
        kind: str,
        content_id: UUID,
        recipients: list[dict[str, Any]],
        *,
        commit: bool = False,
    ) -> None:
        """Create a pending marker for every recipient that has none yet."""
        if not recipients:
            return

        await self.insert_ignoring_duplicates(
            [
                {"content_kind": kind, "content_id": content_id, **recipient}
                for recipient in recipients
            ],
            ["content_kind", "content_id", "recipient_id"],
        )
        if commit:
            await self.db.commit()

    async def mark_sent(
        self,
        kind: str,
        content_id: UUID,
        recipient_id: UUID,
        sent_at: datetime,
        *,
        commit: bool = False,
    ) -> bool:
        """Stamp one marker if it is still pending.

        Returns:
            True if this call performed the transition
        """
        result = await self.db.execute(
            update(ContentNotification)
            .where(
                ContentNotification.content_kind == kind,
                ContentNotification.content_id == content_id,
                ContentNotification.recipient_id == recipient_id,
                ContentNotification.notified_at.is_(None),
            )
            .values(notified_at=sent_at)
            .execution_options(synchronize_session="fetch")
        )
        if commit:
            await self.db.commit()
        return result.rowcount == 1
