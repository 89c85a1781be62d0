"""Notification dispatch with per-recipient idempotency.

Each (item, user) pair has one marker row. A marker starts pending
(``notified_at`` is NULL) and is stamped once, only after the email
provider confirms delivery to that user. Re-running with
``only_unnotified=True`` therefore contacts only recipients that were never
reached, including those whose earlier delivery failed.

Markers are committed as soon as they are written and each stamp is
committed on its own, so a failure later in the request (or a crash halfway
through a batch) never forgets a delivery that already happened. Callers
should expect ``notify`` to commit their session.
"""

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable, Collection
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from distportal.config.settings import Settings, get_settings
from distportal.core.audit import AuditLogger
from distportal.core.logging import LogContext
from distportal.db.models.audit import AuditEventType, AuditSeverity
from distportal.db.models.customer import Customer, Device
from distportal.db.models.distributor import Distributor
from distportal.db.models.release import ReleaseStatus, SoftwareRelease, TargetType
from distportal.db.repositories.accounts import DistributorRepository, UserRepository
from distportal.db.repositories.releases import NotificationRepository, ReleaseRepository
from distportal.notifications.email import EmailClient
from distportal.notifications.templates import release_html, release_subject
from distportal.sharing.visibility import entitled_distributors

logger = structlog.get_logger()


@dataclass(frozen=True)
class Recipient:
    """A user entitled to hear about a release or content item."""

    user_id: UUID
    email: str
    name: str
    distributor_id: UUID

    def marker(self) -> dict:
        """Column values for this recipient's notification marker."""
        return {
            "recipient_id": self.user_id,
            "recipient_email": self.email,
            "distributor_id": self.distributor_id,
        }


@dataclass
class NotificationSummary:
    """Outcome of one notify call.

    ``success`` reports that the batch ran; individual delivery failures
    are listed in ``errors`` and do not flip it.
    """

    success: bool = True
    sent_count: int = 0
    total_recipients: int = 0
    errors: list[str] = field(default_factory=list)
    message: str | None = None


class BatchNotifier:
    """Bounded concurrent email fan-out shared by the release and content notifiers.

    Subclasses resolve recipients and own their marker table; this class
    delivers to a pending list and calls back to stamp each success.
    """

    def __init__(
        self,
        db: AsyncSession,
        email_client: EmailClient,
        settings: Settings | None = None,
    ):
        self.db = db
        self.email = email_client
        self.settings = settings or get_settings()
        self.distributors = DistributorRepository(db)
        self.users = UserRepository(db)
        self.audit = AuditLogger(db)

    async def _recipients_for(self, distributor_ids: Collection[UUID]) -> list[Recipient]:
        """Reachable users of the given distributors, one entry per user."""
        if not distributor_ids:
            return []

        result = await self.db.execute(
            select(Distributor.distributor_id, Distributor.company_name).where(
                Distributor.distributor_id.in_(distributor_ids)
            )
        )
        company_names = {distributor_id: name for distributor_id, name in result.all()}

        recipients: dict[UUID, Recipient] = {}
        for user in await self.users.reachable_for_distributors(set(distributor_ids)):
            recipients.setdefault(
                user.user_id,
                Recipient(
                    user_id=user.user_id,
                    email=user.email,
                    name=user.full_name or company_names.get(user.distributor_id, ""),
                    distributor_id=user.distributor_id,
                ),
            )
        return list(recipients.values())

    async def _send_batch(
        self,
        pending: list[Recipient],
        subject: str,
        render: Callable[[Recipient], str],
        stamp: Callable[[Recipient], Awaitable[bool]],
    ) -> NotificationSummary:
        """Deliver to every pending recipient and stamp each confirmed delivery.

        Stamps happen one at a time as deliveries settle, so the session is
        only ever used from this coroutine.
        """
        summary = NotificationSummary(total_recipients=len(pending))
        async for recipient, error in self._deliver_all(pending, subject, render):
            if error is None:
                await stamp(recipient)
                summary.sent_count += 1
            else:
                summary.errors.append(error)
                logger.warning(
                    "notification_delivery_failed",
                    recipient_id=str(recipient.user_id),
                    recipient_email=recipient.email,
                    error=error,
                )
        return summary

    async def _deliver_all(
        self,
        recipients: list[Recipient],
        subject: str,
        render: Callable[[Recipient], str],
    ) -> AsyncIterator[tuple[Recipient, str | None]]:
        """Yield each recipient with its outcome as soon as its delivery settles."""
        semaphore = asyncio.Semaphore(max(1, self.settings.notifications.max_concurrency))
        for settled in asyncio.as_completed(
            [self._deliver(semaphore, subject, render(r), r) for r in recipients]
        ):
            yield await settled

    async def _deliver(
        self,
        semaphore: asyncio.Semaphore,
        subject: str,
        html: str,
        recipient: Recipient,
    ) -> tuple[Recipient, str | None]:
        """Attempt one delivery in isolation.

        Returns:
            The recipient with None on confirmed delivery, otherwise with an
            error description
        """
        timeout = self.settings.notifications.send_timeout_seconds
        async with semaphore:
            try:
                result = await asyncio.wait_for(
                    self.email.send(recipient.email, subject, html), timeout=timeout
                )
            except TimeoutError:
                return recipient, f"Timed out sending to {recipient.email} after {timeout:g}s"
            except Exception as exc:  # one bad delivery must not abort the batch
                return recipient, f"Error sending to {recipient.email}: {exc}"

        if not result.ok:
            return recipient, f"Failed to send to {recipient.email}: {result.error or 'rejected'}"
        return recipient, None


class ReleaseNotifier(BatchNotifier):
    """Sends release emails to entitled users, at most once per user."""

    def __init__(
        self,
        db: AsyncSession,
        email_client: EmailClient,
        settings: Settings | None = None,
    ):
        super().__init__(db, email_client, settings)
        self.releases = ReleaseRepository(db)
        self.notifications = NotificationRepository(db)

    # =========================================================================
    # Recipient resolution
    # =========================================================================

    async def resolve_recipients(self, release: SoftwareRelease) -> list[Recipient]:
        """Entitled users for a release, one entry per user.

        A user whose distributor is entitled both directly and through a
        device appears once. Unpublished releases have no recipients.
        """
        if release.status != ReleaseStatus.PUBLISHED.value:
            return []

        distributor_ids = await self.releases.distributor_targets(release.release_id)
        device_ids = await self.releases.device_targets(release.release_id)
        device_owner_ids = await self._device_owners(device_ids)

        active_ids: list[UUID] = []
        if (
            not distributor_ids
            and not device_ids
            and release.target_type == TargetType.ALL.value
        ):
            active_ids = await self.distributors.active_ids()

        entitled = entitled_distributors(
            release.target_type, distributor_ids, device_owner_ids, active_ids
        )
        return await self._recipients_for(entitled)

    async def _device_owners(self, device_ids: set[UUID]) -> set[UUID]:
        if not device_ids:
            return set()
        result = await self.db.execute(
            select(Customer.distributor_id)
            .join(Device, Device.customer_id == Customer.customer_id)
            .where(Device.device_id.in_(device_ids))
        )
        return set(result.scalars().all())

    # =========================================================================
    # Dispatch
    # =========================================================================

    async def notify(self, release_id: UUID, only_unnotified: bool = True) -> NotificationSummary:
        """Send the release email to entitled users.

        Args:
            release_id: Release to announce
            only_unnotified: Skip users whose marker is already stamped

        Returns:
            NotificationSummary with per-recipient failures in ``errors``

        Raises:
            ReleaseNotFoundError: If the release does not exist (nothing is sent)
        """
        with LogContext(release_id=str(release_id)):
            release = await self.releases.get_or_raise(release_id)
            recipients = await self.resolve_recipients(release)

            await self.notifications.ensure_pending(
                release.release_id, [r.marker() for r in recipients], commit=True
            )
            markers = await self.notifications.for_release(release.release_id)

            pending = [
                r
                for r in recipients
                if not (only_unnotified and markers[r.user_id].notified_at is not None)
            ]
            logger.info(
                "release_notification_started",
                only_unnotified=only_unnotified,
                entitled=len(recipients),
                pending=len(pending),
            )

            if not pending:
                return NotificationSummary(message="No new recipients to notify")

            async def stamp(recipient: Recipient) -> bool:
                return await self.notifications.mark_sent(
                    release.release_id, recipient.user_id, datetime.now(UTC), commit=True
                )

            summary = await self._send_batch(
                pending,
                release_subject(release),
                lambda r: release_html(release, r.name, self.settings.portal_base_url),
                stamp,
            )

            await self.audit.log_event(
                AuditEventType.NOTIFICATIONS_DISPATCHED,
                {
                    "only_unnotified": only_unnotified,
                    "sent_count": summary.sent_count,
                    "total_recipients": summary.total_recipients,
                    "failed": len(summary.errors),
                },
                severity=AuditSeverity.WARNING if summary.errors else AuditSeverity.INFO,
                resource_type="software_release",
                resource_id=str(release.release_id),
            )
            logger.info(
                "release_notification_completed",
                sent_count=summary.sent_count,
                total_recipients=summary.total_recipients,
                failed=len(summary.errors),
            )
            return summary


async def notify_release(
    db: AsyncSession,
    email_client: EmailClient,
    release_id: UUID,
    only_unnotified: bool = True,
) -> NotificationSummary:
    """Convenience wrapper around ReleaseNotifier.notify."""
    return await ReleaseNotifier(db, email_client).notify(release_id, only_unnotified)
