"""Repositories for software releases and notification markers."""

from collections import defaultdict
from collections.abc import Iterable
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import distinct, func, select, update

from distportal.core.exceptions import ReleaseNotFoundError
from distportal.db.models.release import (
    DeviceUpdateHistory,
    ReleaseDownload,
    ReleaseNotification,
    ReleaseStatus,
    SoftwareRelease,
    SoftwareReleaseDevice,
    SoftwareReleaseDistributor,
)
from distportal.db.repositories.base import BaseRepository


class ReleaseRepository(BaseRepository[SoftwareRelease, UUID]):
    """Repository for releases and their allow-list rows."""

    model = SoftwareRelease
    not_found_error = ReleaseNotFoundError

    async def published(self) -> list[SoftwareRelease]:
        """Published releases, newest release date first."""
        result = await self.db.execute(
            select(SoftwareRelease)
            .where(SoftwareRelease.status == ReleaseStatus.PUBLISHED.value)
            .order_by(SoftwareRelease.release_date.desc(), SoftwareRelease.release_id.desc())
        )
        return list(result.scalars().all())

    async def distributor_targets(self, release_id: UUID) -> set[UUID]:
        result = await self.db.execute(
            select(SoftwareReleaseDistributor.distributor_id).where(
                SoftwareReleaseDistributor.release_id == release_id
            )
        )
        return set(result.scalars().all())

    async def device_targets(self, release_id: UUID) -> set[UUID]:
        result = await self.db.execute(
            select(SoftwareReleaseDevice.device_id).where(
                SoftwareReleaseDevice.release_id == release_id
            )
        )
        return set(result.scalars().all())

    async def distributor_targets_for(
        self, release_ids: Iterable[UUID]
    ) -> dict[UUID, set[UUID]]:
        """Distributor allow-lists keyed by release id (missing key = no rows)."""
        ids = list(release_ids)
        targets: dict[UUID, set[UUID]] = defaultdict(set)
        if not ids:
            return targets
        result = await self.db.execute(
            select(SoftwareReleaseDistributor.release_id, SoftwareReleaseDistributor.distributor_id)
            .where(SoftwareReleaseDistributor.release_id.in_(ids))
        )
        for release_id, distributor_id in result.all():
            targets[release_id].add(distributor_id)
        return targets

    async def device_targets_for(self, release_ids: Iterable[UUID]) -> dict[UUID, set[UUID]]:
        """Device allow-lists keyed by release id (missing key = no rows)."""
        ids = list(release_ids)
        targets: dict[UUID, set[UUID]] = defaultdict(set)
        if not ids:
            return targets
        result = await self.db.execute(
            select(SoftwareReleaseDevice.release_id, SoftwareReleaseDevice.device_id)
            .where(SoftwareReleaseDevice.release_id.in_(ids))
        )
        for release_id, device_id in result.all():
            targets[release_id].add(device_id)
        return targets


class NotificationRepository(BaseRepository[ReleaseNotification, UUID]):
    """Repository for per-recipient release notification markers."""

    model = ReleaseNotification

    async def for_release(self, release_id: UUID) -> dict[UUID, ReleaseNotification]:
        """Existing markers for a release keyed by recipient id."""
        result = await self.db.execute(
            select(ReleaseNotification)
            .where(ReleaseNotification.release_id == release_id)
            .execution_options(populate_existing=True)
        )
        return {record.recipient_id: record for record in result.scalars().all()}

    async def mark_sent(
        self,
        release_id: UUID,
        recipient_id: UUID,
        sent_at: datetime,
        *,
        commit: bool = False,
    ) -> bool:
        """Stamp one (release, recipient) marker if it is still pending.

        The update only matches a NULL ``notified_at``, so a concurrent
        invocation that already stamped the pair leaves it untouched. With
        ``commit`` the stamp is durable on return, independent of whatever
        the caller does with the session afterwards.

        Returns:
            True if this call performed the transition
        """
        result = await self.db.execute(
            update(ReleaseNotification)
            .where(
                ReleaseNotification.release_id == release_id,
                ReleaseNotification.recipient_id == recipient_id,
                ReleaseNotification.notified_at.is_(None),
            )
            .values(notified_at=sent_at)
            .execution_options(synchronize_session="fetch")
        )
        if commit:
            await self.db.commit()
        return result.rowcount == 1

    async def ensure_pending(
        self, release_id: UUID, recipients: list[dict[str, Any]], *, commit: bool = False
    ) -> None:
        """Create a pending marker for every recipient that has none yet.

        Existing markers, sent or not, are left untouched. Concurrent
        callers inserting the same pair do not conflict.

        Args:
            release_id: Release being notified
            recipients: Dicts with ``recipient_id``, ``recipient_email`` and
                ``distributor_id``
            commit: Commit the session once the markers are written
        """
        if not recipients:
            return

        await self.insert_ignoring_duplicates(
            [{"release_id": release_id, **recipient} for recipient in recipients],
            ["release_id", "recipient_id"],
        )
        if commit:
            await self.db.commit()


class DeviceUpdateRepository(BaseRepository[DeviceUpdateHistory, UUID]):
    """Install records of releases on devices."""

    model = DeviceUpdateHistory

    async def for_device(self, device_id: UUID) -> list[DeviceUpdateHistory]:
        result = await self.db.execute(
            select(DeviceUpdateHistory)
            .where(DeviceUpdateHistory.device_id == device_id)
            .order_by(DeviceUpdateHistory.installed_at.desc())
        )
        return list(result.scalars().all())

    async def outcome_counts(self, release_id: UUID) -> dict[str, int]:
        """Install records of a release counted by outcome."""
        return await self.count_by("status", DeviceUpdateHistory.release_id == release_id)


class DownloadRepository(BaseRepository[ReleaseDownload, UUID]):
    """Append-only log of release file downloads."""

    model = ReleaseDownload

    async def totals(self, release_id: UUID) -> tuple[int, int]:
        """Total downloads of a release and the number of distinct users."""
        result = await self.db.execute(
            select(
                func.count(ReleaseDownload.download_id),
                func.count(distinct(ReleaseDownload.user_id)),
            ).where(ReleaseDownload.release_id == release_id)
        )
        total, unique = result.one()
        return total, unique
