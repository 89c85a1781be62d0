"""Software release lifecycle and targeting."""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import delete, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from distportal.config.settings import Settings
from distportal.core.audit import AuditLogger
from distportal.core.exceptions import (
    DeviceNotFoundError,
    InvalidStateTransitionError,
    ReleaseNotFoundError,
)
from distportal.db.models.audit import AuditEventType
from distportal.db.models.customer import Customer, Device, DeviceStatus
from distportal.db.models.release import (
    ReleaseDownload,
    ReleaseNotification,
    ReleaseStatus,
    SoftwareRelease,
    SoftwareReleaseDevice,
    SoftwareReleaseDistributor,
    TargetType,
    UpdateOutcome,
)
from distportal.db.repositories.inventory import DeviceRepository
from distportal.db.repositories.releases import (
    DeviceUpdateRepository,
    DownloadRepository,
    ReleaseRepository,
)
from distportal.notifications.dispatcher import NotificationSummary, ReleaseNotifier
from distportal.notifications.email import EmailClient
from distportal.sharing.service import ensure_distributors_exist
from distportal.sharing.visibility import is_release_visible, is_update_applicable

logger = structlog.get_logger()

_RELEASE_FIELDS = {
    "name",
    "version",
    "release_type",
    "product_id",
    "product_name",
    "file_url",
    "file_name",
    "file_size",
    "checksum",
    "description",
    "release_notes",
    "changelog",
    "min_previous_version",
    "target_type",
    "is_mandatory",
    "release_date",
    "notify_on_publish",
}

# Allowed source states for each lifecycle target
_TRANSITIONS = {
    ReleaseStatus.PUBLISHED: {ReleaseStatus.DRAFT.value},
    ReleaseStatus.DEPRECATED: {ReleaseStatus.PUBLISHED.value},
    ReleaseStatus.RECALLED: {ReleaseStatus.PUBLISHED.value, ReleaseStatus.DEPRECATED.value},
}


@dataclass
class PublishResult:
    release: SoftwareRelease
    notification: NotificationSummary | None = None


@dataclass
class ReleaseStats:
    """Download and installation figures for one release.

    ``target_count`` is the size of the allow-list the release targets and
    is 0 for releases open to everyone, which also keeps
    ``install_percentage`` at 0 for them.
    """

    total_downloads: int = 0
    unique_downloads: int = 0
    successful_installs: int = 0
    failed_installs: int = 0
    rolled_back_installs: int = 0
    target_count: int = 0

    @property
    def install_percentage(self) -> int:
        if not self.target_count:
            return 0
        return round(self.successful_installs / self.target_count * 100)


class ReleaseService:
    """Admin operations on software releases."""

    def __init__(
        self,
        db: AsyncSession,
        email_client: EmailClient | None = None,
        settings: Settings | None = None,
    ):
        self.db = db
        self.email_client = email_client
        self.settings = settings
        self.releases = ReleaseRepository(db)
        self.downloads = DownloadRepository(db)
        self.updates = DeviceUpdateRepository(db)
        self.devices = DeviceRepository(db)
        self.audit = AuditLogger(db)

    async def get(self, release_id: UUID) -> SoftwareRelease:
        return await self.releases.get_or_raise(release_id)

    async def list_all(self, *, status: str | None = None) -> list[SoftwareRelease]:
        """Every release regardless of audience (admin view), newest first."""
        filters = []
        if status is not None:
            filters.append(SoftwareRelease.status == status)
        return await self.releases.list(
            *filters, order_by="release_date", descending=True, limit=1000
        )

    async def create(
        self, fields: dict[str, Any], *, created_by: UUID | None = None
    ) -> SoftwareRelease:
        """Create a draft release. New releases have no allow-list rows."""
        release = SoftwareRelease(
            created_by=created_by,
            **{k: v for k, v in fields.items() if k in _RELEASE_FIELDS and v is not None},
        )
        await self.releases.create(release)
        logger.info(
            "release_created",
            release_id=str(release.release_id),
            version=release.version,
            release_type=release.release_type,
        )
        return release

    async def update(self, release_id: UUID, updates: dict[str, Any]) -> SoftwareRelease:
        release = await self.releases.get_or_raise(release_id)
        changes = {k: v for k, v in updates.items() if k in _RELEASE_FIELDS and v is not None}
        return await self.releases.update(release, changes)

    def _transition(self, release: SoftwareRelease, target: ReleaseStatus) -> None:
        if release.status not in _TRANSITIONS[target]:
            raise InvalidStateTransitionError(release.release_id, release.status, target.value)
        release.status = target

    async def publish(self, release_id: UUID, *, notify: bool | None = None) -> PublishResult:
        """Publish a draft release.

        When ``notify`` is None the release's own ``notify_on_publish`` flag
        decides whether entitled users are emailed right away.

        Raises:
            ReleaseNotFoundError: If the release does not exist
            InvalidStateTransitionError: If the release is not a draft
        """
        release = await self.releases.get_or_raise(release_id)
        self._transition(release, ReleaseStatus.PUBLISHED)
        release.published_at = datetime.now(UTC)
        await self.db.flush()

        await self.audit.log_event(
            AuditEventType.RELEASE_PUBLISHED,
            {"version": release.version, "target_type": release.target_type},
            resource_type="software_release",
            resource_id=str(release_id),
        )
        logger.info("release_published", release_id=str(release_id), version=release.version)

        should_notify = release.notify_on_publish if notify is None else notify
        if not should_notify:
            return PublishResult(release=release)
        if self.email_client is None:
            logger.warning("release_publish_notification_skipped", release_id=str(release_id))
            return PublishResult(release=release)

        summary = await ReleaseNotifier(self.db, self.email_client, self.settings).notify(
            release_id
        )
        return PublishResult(release=release, notification=summary)

    async def deprecate(self, release_id: UUID) -> SoftwareRelease:
        release = await self.releases.get_or_raise(release_id)
        self._transition(release, ReleaseStatus.DEPRECATED)
        await self.db.flush()

        await self.audit.log_event(
            AuditEventType.RELEASE_DEPRECATED,
            {"version": release.version},
            resource_type="software_release",
            resource_id=str(release_id),
        )
        return release

    async def recall(self, release_id: UUID) -> SoftwareRelease:
        release = await self.releases.get_or_raise(release_id)
        self._transition(release, ReleaseStatus.RECALLED)
        await self.db.flush()
        logger.warning("release_recalled", release_id=str(release_id), version=release.version)
        return release

    async def set_target_distributors(
        self, release_id: UUID, distributor_ids: Sequence[UUID]
    ) -> list[UUID]:
        """Replace the distributor allow-list of a release.

        Raises:
            ReleaseNotFoundError: If the release does not exist
            DistributorNotFoundError: If any listed distributor does not exist
        """
        release = await self.releases.get_or_raise(release_id)
        wanted = list(dict.fromkeys(distributor_ids))
        await ensure_distributors_exist(self.db, wanted)

        await self.db.execute(
            delete(SoftwareReleaseDistributor).where(
                SoftwareReleaseDistributor.release_id == release_id
            )
        )
        if wanted:
            await self.db.execute(
                insert(SoftwareReleaseDistributor),
                [{"release_id": release_id, "distributor_id": d} for d in wanted],
            )

        await self._retarget(release, "distributors", wanted)
        return wanted

    async def set_target_devices(
        self, release_id: UUID, device_ids: Sequence[UUID]
    ) -> list[UUID]:
        """Replace the device allow-list of a release.

        Raises:
            ReleaseNotFoundError: If the release does not exist
            DeviceNotFoundError: If any listed device does not exist
        """
        release = await self.releases.get_or_raise(release_id)
        wanted = list(dict.fromkeys(device_ids))
        if wanted:
            result = await self.db.execute(
                select(Device.device_id).where(Device.device_id.in_(wanted))
            )
            found = set(result.scalars().all())
            for device_id in wanted:
                if device_id not in found:
                    raise DeviceNotFoundError(device_id)

        await self.db.execute(
            delete(SoftwareReleaseDevice).where(SoftwareReleaseDevice.release_id == release_id)
        )
        if wanted:
            await self.db.execute(
                insert(SoftwareReleaseDevice),
                [{"release_id": release_id, "device_id": d} for d in wanted],
            )

        await self._retarget(release, "devices", wanted)
        return wanted

    async def _retarget(self, release: SoftwareRelease, changed: str, ids: list[UUID]) -> None:
        """Derive target_type from whichever allow-lists still have rows."""
        distributors = await self.releases.distributor_targets(release.release_id)
        devices = await self.releases.device_targets(release.release_id)
        if distributors:
            release.target_type = TargetType.DISTRIBUTORS
        elif devices:
            release.target_type = TargetType.DEVICES
        else:
            release.target_type = TargetType.ALL
        await self.db.flush()

        await self.audit.log_event(
            AuditEventType.RELEASE_TARGETS_CHANGED,
            {"list": changed, "ids": [str(i) for i in ids], "target_type": release.target_type},
            resource_type="software_release",
            resource_id=str(release.release_id),
        )
        logger.info(
            "release_targets_saved",
            release_id=str(release.release_id),
            list=changed,
            count=len(ids),
            target_type=release.target_type,
        )

    async def delete(self, release_id: UUID) -> None:
        """Delete a release with its allow-lists, notification markers and download log."""
        release = await self.releases.get_or_raise(release_id)
        for model in (
            SoftwareReleaseDistributor,
            SoftwareReleaseDevice,
            ReleaseNotification,
            ReleaseDownload,
        ):
            await self.db.execute(delete(model).where(model.release_id == release_id))
        await self.releases.delete(release)
        logger.info("release_deleted", release_id=str(release_id))

    async def outdated_devices(self, release_id: UUID) -> list[Device]:
        """Active entitled devices still running an older version than the release."""
        release = await self.releases.get_or_raise(release_id)
        distributor_ids = await self.releases.distributor_targets(release_id)
        device_ids = await self.releases.device_targets(release_id)

        stmt = (
            select(Device, Customer.distributor_id)
            .join(Customer, Device.customer_id == Customer.customer_id)
            .where(Device.status == DeviceStatus.ACTIVE.value)
        )
        if release.product_id is not None:
            stmt = stmt.where(Device.product_id == release.product_id)
        result = await self.db.execute(stmt.order_by(Device.device_name))

        return [
            device
            for device, owner_id in result.all()
            if is_release_visible(
                release.target_type, distributor_ids, device_ids, owner_id, {device.device_id}
            )
            and is_update_applicable(
                release_type=release.release_type,
                release_version=release.version,
                release_product_id=release.product_id,
                device_product_id=device.product_id,
                firmware_version=device.current_firmware_version,
                software_version=device.current_software_version,
            )
        ]

    # =========================================================================
    # Downloads and statistics
    # =========================================================================

    async def record_download(
        self,
        release_id: UUID,
        *,
        user_id: UUID | None,
        distributor_id: UUID | None,
    ) -> ReleaseDownload:
        """Log one download of a release file.

        Only published releases can be downloaded, and only by distributors
        that can see them.

        Raises:
            ReleaseNotFoundError: If the release does not exist or is not
                available to the distributor
        """
        release = await self.releases.get_or_raise(release_id)
        if release.status != ReleaseStatus.PUBLISHED.value:
            raise ReleaseNotFoundError(release_id)

        visible = distributor_id is not None and is_release_visible(
            release.target_type,
            await self.releases.distributor_targets(release_id),
            await self.releases.device_targets(release_id),
            distributor_id,
            await self.devices.ids_for_distributor(distributor_id),
        )
        if not visible:
            raise ReleaseNotFoundError(release_id)

        download = ReleaseDownload(
            release_id=release_id, user_id=user_id, distributor_id=distributor_id
        )
        await self.downloads.create(download)
        logger.info(
            "release_downloaded",
            release_id=str(release_id),
            user_id=str(user_id) if user_id else None,
            distributor_id=str(distributor_id),
        )
        return download

    async def stats(self, release_id: UUID) -> ReleaseStats:
        """Download counts, install outcomes and reach of one release.

        Raises:
            ReleaseNotFoundError: If the release does not exist
        """
        release = await self.releases.get_or_raise(release_id)
        total, unique = await self.downloads.totals(release_id)
        outcomes = await self.updates.outcome_counts(release_id)

        if release.target_type == TargetType.DISTRIBUTORS.value:
            target_count = len(await self.releases.distributor_targets(release_id))
        elif release.target_type == TargetType.DEVICES.value:
            target_count = len(await self.releases.device_targets(release_id))
        else:
            target_count = 0

        return ReleaseStats(
            total_downloads=total,
            unique_downloads=unique,
            successful_installs=outcomes.get(UpdateOutcome.SUCCESS.value, 0),
            failed_installs=outcomes.get(UpdateOutcome.FAILED.value, 0),
            rolled_back_installs=outcomes.get(UpdateOutcome.ROLLED_BACK.value, 0),
            target_count=target_count,
        )
