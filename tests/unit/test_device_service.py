"""Unit tests for device registration and update tracking."""

from datetime import date

import pytest
from sqlalchemy import func, select
from uuid_utils.compat import uuid7

from distportal.core.exceptions import (
    CustomerNotFoundError,
    DeviceNotFoundError,
    DuplicateSerialNumberError,
)
from distportal.db.models import Device, DeviceStatus, ReleaseType, UpdateOutcome
from distportal.inventory import DeviceService
from distportal.sharing import VisibilityService


async def _device_count(db_session) -> int:
    return (await db_session.execute(select(func.count(Device.device_id)))).scalar()


@pytest.mark.asyncio
class TestDeviceCreate:
    async def test_create_device(self, db_session, factory):
        customer = await factory.customer(await factory.distributor())

        device = await DeviceService(db_session).create(
            customer.customer_id,
            {"serial_number": "  SN-100 ", "device_name": "Analyzer", "status": "Active"},
        )

        assert device.serial_number == "SN-100"
        assert device.status == DeviceStatus.ACTIVE.value

    async def test_duplicate_serial_rejected_before_write(self, db_session, factory):
        """A second device with an existing serial number fails and nothing is written."""
        d1 = await factory.distributor("North")
        d2 = await factory.distributor("South")
        await factory.device(await factory.customer(d1), serial_number="SN-1")
        other_customer = await factory.customer(d2)
        before = await _device_count(db_session)

        with pytest.raises(DuplicateSerialNumberError) as exc_info:
            await DeviceService(db_session).create(
                other_customer.customer_id,
                {"serial_number": "SN-1", "device_name": "Second"},
            )

        assert exc_info.value.serial_number == "SN-1"
        assert await _device_count(db_session) == before

    async def test_unknown_customer(self, db_session):
        with pytest.raises(CustomerNotFoundError):
            await DeviceService(db_session).create(
                uuid7(), {"serial_number": "SN-9", "device_name": "Orphan"}
            )

    async def test_update_to_taken_serial(self, db_session, factory):
        customer = await factory.customer(await factory.distributor())
        await factory.device(customer, serial_number="SN-A")
        second = await factory.device(customer, serial_number="SN-B")

        with pytest.raises(DuplicateSerialNumberError):
            await DeviceService(db_session).update(second.device_id, {"serial_number": "SN-A"})

    async def test_update_keeping_own_serial(self, db_session, factory):
        device = await factory.device(
            await factory.customer(await factory.distributor()), serial_number="SN-A"
        )

        updated = await DeviceService(db_session).update(
            device.device_id, {"serial_number": "SN-A", "device_name": "Renamed"}
        )

        assert updated.device_name == "Renamed"


@pytest.mark.asyncio
class TestDeviceQueries:
    async def test_list_for_distributor_is_scoped(self, db_session, factory):
        d1 = await factory.distributor("North")
        d2 = await factory.distributor("South")
        mine = await factory.device(await factory.customer(d1))
        await factory.device(await factory.customer(d2))

        service = DeviceService(db_session)

        assert [d.device_id for d in await service.list_for_distributor(d1.distributor_id)] == [
            mine.device_id
        ]
        assert await service.list_for_distributor(None) == []

    async def test_expiring_warranty(self, db_session, factory):
        customer = await factory.customer(await factory.distributor())
        soon = await factory.device(customer, warranty_expiry=date(2026, 2, 1))
        await factory.device(customer, warranty_expiry=date(2027, 6, 1))

        expiring = await DeviceService(db_session).expiring_warranty(
            days=30, today=date(2026, 1, 15)
        )

        assert [d.device_id for d in expiring] == [soon.device_id]

    async def test_stats(self, db_session, factory):
        customer = await factory.customer(await factory.distributor())
        await factory.device(customer, device_model="X1")
        await factory.device(customer, device_model="X1", status="maintenance")

        stats = await DeviceService(db_session).stats(customer.customer_id)

        assert stats.total == 2
        assert stats.active == 1
        assert stats.maintenance == 1
        assert stats.by_model == {"X1": 2}


@pytest.mark.asyncio
class TestMarkUpdated:
    async def test_firmware_install_advances_firmware_version(self, db_session, factory):
        device = await factory.device(
            await factory.customer(await factory.distributor()),
            current_firmware_version="1.0",
            current_software_version="4.0",
        )
        release = await factory.release(release_type=ReleaseType.FIRMWARE, version="1.1")

        entry = await DeviceService(db_session).mark_updated(device.device_id, release.release_id)

        assert entry.previous_version == "1.0"
        assert device.current_firmware_version == "1.1"
        assert device.current_software_version == "4.0"
        assert device.last_update_date is not None

    async def test_failed_install_keeps_versions(self, db_session, factory):
        device = await factory.device(
            await factory.customer(await factory.distributor()), current_software_version="1.0"
        )
        release = await factory.release(version="2.0")

        entry = await DeviceService(db_session).mark_updated(
            device.device_id, release.release_id, outcome=UpdateOutcome.FAILED
        )

        assert entry.status == "failed"
        assert device.current_software_version == "1.0"

    async def test_installed_release_no_longer_pending(self, db_session, factory):
        d1 = await factory.distributor()
        device = await factory.device(await factory.customer(d1), current_software_version="1.0")
        release = await factory.release(devices=[device], version="2.0")
        visibility = VisibilityService(db_session)

        pending = await visibility.list_releases_for_device(device.device_id)
        assert [r.release_id for r in pending] == [release.release_id]

        await DeviceService(db_session).mark_updated(device.device_id, release.release_id)

        assert await visibility.list_releases_for_device(device.device_id) == []

    async def test_unknown_device(self, db_session, factory):
        release = await factory.release()

        with pytest.raises(DeviceNotFoundError):
            await DeviceService(db_session).mark_updated(uuid7(), release.release_id)
