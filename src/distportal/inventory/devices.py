"""Installed device management."""

from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from distportal.core.audit import AuditLogger
from distportal.core.exceptions import DuplicateSerialNumberError
from distportal.db.models.audit import AuditEventType
from distportal.db.models.customer import Device, DeviceStatus
from distportal.db.models.document import DeviceDocument
from distportal.db.models.release import DeviceUpdateHistory, ReleaseType, UpdateOutcome
from distportal.db.repositories.inventory import CustomerRepository, DeviceRepository
from distportal.db.repositories.releases import DeviceUpdateRepository, ReleaseRepository

logger = structlog.get_logger()

WARRANTY_WARNING_DAYS = 90

_DEVICE_FIELDS = {
    "serial_number",
    "device_name",
    "device_model",
    "product_id",
    "product_name",
    "status",
    "installation_date",
    "warranty_expiry",
    "location_description",
    "internal_notes",
    "current_firmware_version",
    "current_software_version",
}


@dataclass
class DeviceStats:
    total: int = 0
    active: int = 0
    inactive: int = 0
    maintenance: int = 0
    decommissioned: int = 0
    by_model: dict[str, int] = field(default_factory=dict)
    warranty_expiring_soon: int = 0


class DeviceService:
    """Devices installed at customer sites."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.devices = DeviceRepository(db)
        self.customers = CustomerRepository(db)
        self.releases = ReleaseRepository(db)
        self.history = DeviceUpdateRepository(db)
        self.audit = AuditLogger(db)

    async def get(self, device_id: UUID) -> Device:
        return await self.devices.get_or_raise(device_id)

    async def get_by_serial(self, serial_number: str) -> Device | None:
        return await self.devices.get_by_serial(serial_number.strip())

    async def list_for_customer(self, customer_id: UUID) -> list[Device]:
        await self.customers.get_or_raise(customer_id)
        return await self.devices.list(
            Device.customer_id == customer_id, order_by="device_name", limit=1000
        )

    async def list_for_distributor(self, distributor_id: UUID | None) -> list[Device]:
        """Devices of every customer of a distributor; no tenant sees none."""
        if distributor_id is None:
            return []
        return await self.devices.for_distributor(distributor_id)

    async def create(
        self,
        customer_id: UUID,
        fields: dict[str, Any],
        *,
        created_by: UUID | None = None,
    ) -> Device:
        """Register a device for a customer.

        The serial number is checked before anything is added to the
        session, so a duplicate leaves no partial write behind.

        Raises:
            CustomerNotFoundError: If the customer does not exist
            DuplicateSerialNumberError: If the serial number is already registered
        """
        serial_number = fields["serial_number"].strip()
        if await self.devices.serial_exists(serial_number):
            logger.info("device_serial_conflict", serial_number=serial_number)
            raise DuplicateSerialNumberError(serial_number)

        customer = await self.customers.get_or_raise(customer_id)
        values = {k: v for k, v in fields.items() if k in _DEVICE_FIELDS}
        values["serial_number"] = serial_number
        device = Device(customer_id=customer_id, created_by=created_by, **values)
        await self.devices.create(device)

        await self.audit.log_event(
            AuditEventType.DEVICE_CREATED,
            {"serial_number": serial_number, "customer_id": str(customer_id)},
            distributor_id=customer.distributor_id,
            resource_type="device",
            resource_id=str(device.device_id),
        )
        logger.info(
            "device_created",
            device_id=str(device.device_id),
            customer_id=str(customer_id),
        )
        return device

    async def update(self, device_id: UUID, updates: dict[str, Any]) -> Device:
        """Update device attributes.

        Raises:
            DuplicateSerialNumberError: If the serial number changes to one in use
        """
        device = await self.devices.get_or_raise(device_id)
        changes = {k: v for k, v in updates.items() if k in _DEVICE_FIELDS and v is not None}

        new_serial = changes.get("serial_number")
        if new_serial is not None:
            new_serial = changes["serial_number"] = new_serial.strip()
            if new_serial != device.serial_number and await self.devices.serial_exists(
                new_serial, exclude_id=device_id
            ):
                raise DuplicateSerialNumberError(new_serial)

        return await self.devices.update(device, changes)

    async def delete(self, device_id: UUID) -> None:
        """Delete a device and its documents."""
        device = await self.devices.get_or_raise(device_id)
        owner_id = await self.devices.owner_distributor_id(device_id)

        await self.db.execute(delete(DeviceDocument).where(DeviceDocument.device_id == device_id))
        await self.devices.delete(device)

        await self.audit.log_event(
            AuditEventType.DEVICE_DELETED,
            {"serial_number": device.serial_number},
            distributor_id=owner_id,
            resource_type="device",
            resource_id=str(device_id),
        )
        logger.info("device_deleted", device_id=str(device_id))

    async def search(
        self,
        term: str,
        *,
        customer_id: UUID | None = None,
        distributor_id: UUID | None = None,
    ) -> list[Device]:
        return await self.devices.search(
            term, customer_id=customer_id, distributor_id=distributor_id
        )

    async def expiring_warranty(
        self,
        days: int = WARRANTY_WARNING_DAYS,
        *,
        customer_id: UUID | None = None,
        today: date | None = None,
    ) -> list[Device]:
        """Devices whose warranty ends within ``days`` from today (inclusive)."""
        start = today or date.today()
        return await self.devices.warranty_expiring_between(
            start, start + timedelta(days=days), customer_id=customer_id
        )

    async def stats(
        self, customer_id: UUID | None = None, *, today: date | None = None
    ) -> DeviceStats:
        filters = []
        if customer_id is not None:
            filters.append(Device.customer_id == customer_id)
        result = await self.db.execute(
            select(Device.status, Device.device_model, Device.warranty_expiry).where(*filters)
        )
        rows = result.all()

        now = today or date.today()
        horizon = now + timedelta(days=WARRANTY_WARNING_DAYS)
        statuses = Counter(status for status, _, _ in rows)

        return DeviceStats(
            total=len(rows),
            active=statuses[DeviceStatus.ACTIVE.value],
            inactive=statuses[DeviceStatus.INACTIVE.value],
            maintenance=statuses[DeviceStatus.MAINTENANCE.value],
            decommissioned=statuses[DeviceStatus.DECOMMISSIONED.value],
            by_model=dict(Counter(model for _, model, _ in rows if model)),
            warranty_expiring_soon=sum(
                1 for _, _, expiry in rows if expiry is not None and now < expiry <= horizon
            ),
        )

    async def link_product(
        self, device_id: UUID, product_id: UUID, product_name: str | None = None
    ) -> Device:
        device = await self.devices.get_or_raise(device_id)
        return await self.devices.update(
            device, {"product_id": product_id, "product_name": product_name}
        )

    async def unlink_product(self, device_id: UUID) -> Device:
        device = await self.devices.get_or_raise(device_id)
        device.product_id = None
        device.product_name = None
        await self.db.flush()
        return device

    async def mark_updated(
        self,
        device_id: UUID,
        release_id: UUID,
        *,
        installed_by: UUID | None = None,
        notes: str | None = None,
        outcome: UpdateOutcome | str = UpdateOutcome.SUCCESS,
    ) -> DeviceUpdateHistory:
        """Record that a release was installed on a device.

        A successful install advances the device's firmware version for
        firmware releases and its software version for every other type.
        Failed or rolled back installs are recorded without touching the
        installed versions.

        Raises:
            DeviceNotFoundError: If the device does not exist
            ReleaseNotFoundError: If the release does not exist
        """
        device = await self.devices.get_or_raise(device_id)
        release = await self.releases.get_or_raise(release_id)
        is_firmware = release.release_type == ReleaseType.FIRMWARE.value
        previous = (
            device.current_firmware_version if is_firmware else device.current_software_version
        )

        entry = DeviceUpdateHistory(
            device_id=device_id,
            release_id=release_id,
            version_installed=release.version,
            release_type=release.release_type,
            release_name=release.name,
            previous_version=previous,
            installed_by=installed_by,
            installation_notes=notes,
            status=outcome,
        )
        await self.history.create(entry)

        if entry.status == UpdateOutcome.SUCCESS.value:
            if is_firmware:
                device.current_firmware_version = release.version
            else:
                device.current_software_version = release.version
            device.last_update_date = datetime.now(UTC)
            await self.db.flush()

        logger.info(
            "device_update_recorded",
            device_id=str(device_id),
            release_id=str(release_id),
            version=release.version,
            outcome=entry.status,
        )
        return entry

    async def update_history(self, device_id: UUID) -> list[DeviceUpdateHistory]:
        await self.devices.get_or_raise(device_id)
        return await self.history.for_device(device_id)
