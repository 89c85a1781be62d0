"""Database-backed content sharing and visibility services."""

from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import delete, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from distportal.core.audit import AuditLogger
from distportal.core.exceptions import ContentNotFoundError, DistributorNotFoundError
from distportal.db.models.audit import AuditEventType
from distportal.db.models.base import Base
from distportal.db.models.content import ContentStatus
from distportal.db.models.customer import Device, DeviceStatus
from distportal.db.models.distributor import Distributor
from distportal.db.models.release import SoftwareRelease
from distportal.db.repositories.inventory import DeviceRepository
from distportal.db.repositories.releases import ReleaseRepository
from distportal.sharing.types import ContentBinding, ContentKind, binding_for
from distportal.sharing.visibility import (
    is_release_visible,
    is_update_applicable,
    resolve_visible,
)

logger = structlog.get_logger()


@dataclass(frozen=True)
class SharingSummary:
    """Display summary of an allow-list ("All" or "N Distributors")."""

    label: str
    count: int
    is_all: bool


def summarize_sharing(distributor_ids: Sequence[UUID]) -> SharingSummary:
    count = len(distributor_ids)
    if count == 0:
        return SharingSummary(label="All", count=0, is_all=True)
    return SharingSummary(
        label=f"{count} Distributor{'' if count == 1 else 's'}",
        count=count,
        is_all=False,
    )


class ContentSharingService:
    """Admin operations on shareable content and its allow-lists."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditLogger(db)

    # =========================================================================
    # Content CRUD
    # =========================================================================

    async def get_content(self, kind: ContentKind | str, content_id: UUID) -> Base:
        """Fetch one content item.

        Raises:
            ContentNotFoundError: If the item does not exist
        """
        binding = binding_for(kind)
        item = await self.db.get(binding.model, content_id)
        if item is None:
            raise ContentNotFoundError(content_id, kind=binding.kind.value)
        return item

    async def list_content(
        self, kind: ContentKind | str, *, status: str | None = None
    ) -> list[Base]:
        """Every item of a kind regardless of audience (admin view)."""
        binding = binding_for(kind)
        stmt = select(binding.model)
        if status is not None:
            stmt = stmt.where(binding.model.status == status)
        stmt = stmt.order_by(binding.model.created_at.desc())
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def create_content(
        self,
        kind: ContentKind | str,
        fields: dict[str, Any],
        *,
        created_by: UUID | None = None,
    ) -> Base:
        """Create a content item. New items have no allow-list (shared with all)."""
        binding = binding_for(kind)
        item = binding.model(**fields, created_by=created_by)
        self.db.add(item)
        await self.db.flush()

        logger.info(
            "content_created",
            kind=binding.kind.value,
            content_id=str(binding.identify(item)),
            status=item.status,
        )
        return item

    async def update_content(
        self, kind: ContentKind | str, content_id: UUID, updates: dict[str, Any]
    ) -> Base:
        item = await self.get_content(kind, content_id)
        for field, value in updates.items():
            if hasattr(item, field):
                setattr(item, field, value)
        await self.db.flush()
        return item

    async def delete_content(self, kind: ContentKind | str, content_id: UUID) -> None:
        """Delete a content item and its allow-list rows."""
        binding = binding_for(kind)
        item = await self.get_content(kind, content_id)
        await self.db.execute(
            delete(binding.junction).where(binding.junction_content_id == content_id)
        )
        await self.db.delete(item)
        await self.db.flush()
        logger.info("content_deleted", kind=binding.kind.value, content_id=str(content_id))

    # =========================================================================
    # Allow-lists
    # =========================================================================

    async def get_sharing(self, kind: ContentKind | str, content_id: UUID) -> list[UUID]:
        """Allow-listed distributor ids; empty means shared with every distributor."""
        binding = binding_for(kind)
        await self.get_content(kind, content_id)
        return await self._allowed(binding, content_id)

    async def set_sharing(
        self,
        kind: ContentKind | str,
        content_id: UUID,
        distributor_ids: Sequence[UUID],
    ) -> list[UUID]:
        """Replace the allow-list of a content item.

        An empty sequence clears every row, sharing the item with all
        distributors.

        Raises:
            ContentNotFoundError: If the item does not exist
            DistributorNotFoundError: If any listed distributor does not exist
        """
        binding = binding_for(kind)
        await self.get_content(kind, content_id)

        wanted = list(dict.fromkeys(distributor_ids))
        await ensure_distributors_exist(self.db, wanted)
        previous = await self._allowed(binding, content_id)

        await self.db.execute(
            delete(binding.junction).where(binding.junction_content_id == content_id)
        )
        if wanted:
            await self.db.execute(
                insert(binding.junction),
                [{binding.key: content_id, "distributor_id": d} for d in wanted],
            )

        await self.audit.log_event(
            AuditEventType.SHARING_CHANGED,
            {
                "kind": binding.kind.value,
                "previous": [str(d) for d in previous],
                "current": [str(d) for d in wanted],
            },
            resource_type=binding.kind.value,
            resource_id=str(content_id),
        )
        logger.info(
            "content_sharing_saved",
            kind=binding.kind.value,
            content_id=str(content_id),
            distributor_count=len(wanted),
            shared_with_all=not wanted,
        )
        return wanted

    async def sharing_summary(self, kind: ContentKind | str, content_id: UUID) -> SharingSummary:
        return summarize_sharing(await self.get_sharing(kind, content_id))

    async def _allowed(self, binding: ContentBinding, content_id: UUID) -> list[UUID]:
        result = await self.db.execute(
            select(binding.junction_distributor_id)
            .where(binding.junction_content_id == content_id)
            .order_by(binding.junction_distributor_id)
        )
        return list(result.scalars().all())


class VisibilityService:
    """Resolves what a distributor (or a device) is entitled to see.

    The tenant is always an explicit argument; ``None`` yields empty results.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.releases = ReleaseRepository(db)
        self.devices = DeviceRepository(db)

    async def list_visible(self, kind: ContentKind | str, tenant_id: UUID | None) -> list[Base]:
        """Published items of a kind visible to ``tenant_id``, newest first."""
        if tenant_id is None:
            return []

        binding = binding_for(kind)
        result = await self.db.execute(
            select(binding.model)
            .where(binding.model.status == ContentStatus.PUBLISHED.value)
            .order_by(binding.model.created_at.desc())
        )
        items = list(result.scalars().all())
        if not items:
            return []

        restrictions: dict[UUID, set[UUID]] = defaultdict(set)
        rows = await self.db.execute(
            select(binding.junction_content_id, binding.junction_distributor_id).where(
                binding.junction_content_id.in_([binding.identify(i) for i in items])
            )
        )
        for content_id, distributor_id in rows.all():
            restrictions[content_id].add(distributor_id)

        return resolve_visible(items, restrictions, tenant_id, key=binding.identify)

    async def list_visible_releases(self, tenant_id: UUID | None) -> list[SoftwareRelease]:
        """Published releases visible to ``tenant_id``, newest release date first."""
        if tenant_id is None:
            return []

        releases = await self.releases.published()
        if not releases:
            return []

        ids = [r.release_id for r in releases]
        by_distributor = await self.releases.distributor_targets_for(ids)
        by_device = await self.releases.device_targets_for(ids)
        tenant_devices = await self.devices.ids_for_distributor(tenant_id)

        return [
            release
            for release in releases
            if is_release_visible(
                release.target_type,
                by_distributor.get(release.release_id, set()),
                by_device.get(release.release_id, set()),
                tenant_id,
                tenant_devices,
            )
        ]

    async def list_releases_for_device(self, device_id: UUID) -> list[SoftwareRelease]:
        """Published releases that are pending updates for one device.

        A release applies if it is visible to the device's owning
        distributor through the distributor list, through this device's own
        allow-list row, or through an open "all" target; it must match the
        device's product (when both name one) and be newer than the
        installed version of the matching kind.

        Raises:
            DeviceNotFoundError: If the device does not exist
        """
        device = await self.devices.get_or_raise(device_id)
        owner_id = await self.devices.owner_distributor_id(device_id)

        releases = await self.releases.published()
        if not releases:
            return []

        ids = [r.release_id for r in releases]
        by_distributor = await self.releases.distributor_targets_for(ids)
        by_device = await self.releases.device_targets_for(ids)

        applicable = []
        for release in releases:
            visible = is_release_visible(
                release.target_type,
                by_distributor.get(release.release_id, set()),
                by_device.get(release.release_id, set()),
                owner_id,
                {device_id},
            )
            if visible and is_update_applicable(
                release_type=release.release_type,
                release_version=release.version,
                release_product_id=release.product_id,
                device_product_id=device.product_id,
                firmware_version=device.current_firmware_version,
                software_version=device.current_software_version,
            ):
                applicable.append(release)
        return applicable

    async def pending_updates_count(self, tenant_id: UUID | None) -> int:
        """Number of a distributor's active devices with at least one pending update.

        Each device counts once however many releases apply to it, using the
        same per-device rules as ``list_releases_for_device``.
        """
        if tenant_id is None:
            return 0

        devices = [
            d
            for d in await self.devices.for_distributor(tenant_id)
            if d.status == DeviceStatus.ACTIVE.value
        ]
        releases = await self.releases.published()
        if not devices or not releases:
            return 0

        ids = [r.release_id for r in releases]
        by_distributor = await self.releases.distributor_targets_for(ids)
        by_device = await self.releases.device_targets_for(ids)

        def has_update(device: Device) -> bool:
            return any(
                is_release_visible(
                    release.target_type,
                    by_distributor.get(release.release_id, set()),
                    by_device.get(release.release_id, set()),
                    tenant_id,
                    {device.device_id},
                )
                and is_update_applicable(
                    release_type=release.release_type,
                    release_version=release.version,
                    release_product_id=release.product_id,
                    device_product_id=device.product_id,
                    firmware_version=device.current_firmware_version,
                    software_version=device.current_software_version,
                )
                for release in releases
            )

        return sum(1 for device in devices if has_update(device))


async def ensure_distributors_exist(db: AsyncSession, distributor_ids: Sequence[UUID]) -> None:
    """Raise DistributorNotFoundError for the first id that does not exist."""
    if not distributor_ids:
        return
    result = await db.execute(
        select(Distributor.distributor_id).where(Distributor.distributor_id.in_(distributor_ids))
    )
    found = set(result.scalars().all())
    for distributor_id in distributor_ids:
        if distributor_id not in found:
            raise DistributorNotFoundError(distributor_id)
