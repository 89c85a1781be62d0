"""Integration tests for device endpoints."""

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from uuid_utils.compat import uuid7

from distportal.db.models import Device


def _device_payload(customer, **overrides):
    payload = {
        "customer_id": str(customer.customer_id),
        "serial_number": "SN-1000",
        "device_name": "Bench analyzer",
        "installation_date": "2025-03-01",
        "warranty_expiry": "2027-03-01",
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
class TestCreateDevice:
    """Tests for POST /v1/devices."""

    async def test_user_registers_device(
        self, authenticated_client: AsyncClient, factory, as_user
    ):
        north = await factory.distributor("North")
        user = await factory.user(north, "ops@north.example.com")
        customer = await factory.customer(north)

        response = await authenticated_client.post(
            "/v1/devices", json=_device_payload(customer), headers=as_user(user)
        )

        assert response.status_code == 201
        data = response.json()
        assert data["serial_number"] == "SN-1000"
        assert data["customer_id"] == str(customer.customer_id)
        assert data["status"] == "active"

    async def test_duplicate_serial_returns_409(
        self, authenticated_client: AsyncClient, factory, db_session
    ):
        """A second registration of a serial is rejected and nothing is stored."""
        customer = await factory.customer(await factory.distributor())
        await factory.device(customer, serial_number="SN-1000")

        response = await authenticated_client.post(
            "/v1/devices", json=_device_payload(customer, serial_number=" SN-1000 ")
        )

        assert response.status_code == 409
        data = response.json()
        assert data["error_code"] == "duplicate_serial_number"
        assert data["details"] == {"serial_number": "SN-1000"}
        count = (await db_session.execute(select(func.count(Device.device_id)))).scalar()
        assert count == 1

    async def test_warranty_before_installation_returns_422(
        self, authenticated_client: AsyncClient, factory
    ):
        customer = await factory.customer(await factory.distributor())

        response = await authenticated_client.post(
            "/v1/devices",
            json=_device_payload(
                customer, installation_date="2025-03-01", warranty_expiry="2025-02-28"
            ),
        )

        assert response.status_code == 422
        assert response.json()["error_code"] == "validation_error"

    async def test_other_distributors_customer_returns_404(
        self, authenticated_client: AsyncClient, factory, as_user
    ):
        north = await factory.distributor("North")
        south = await factory.distributor("South")
        user = await factory.user(north, "ops@north.example.com")
        customer = await factory.customer(south)

        response = await authenticated_client.post(
            "/v1/devices", json=_device_payload(customer), headers=as_user(user)
        )

        assert response.status_code == 404
        assert response.json()["details"]["resource"] == "customer"


@pytest.mark.asyncio
class TestReadDevices:
    async def test_list_is_scoped_to_caller(
        self, authenticated_client: AsyncClient, factory, as_user
    ):
        north = await factory.distributor("North")
        south = await factory.distributor("South")
        user = await factory.user(north, "ops@north.example.com")
        mine = await factory.device(await factory.customer(north))
        await factory.device(await factory.customer(south))

        response = await authenticated_client.get("/v1/devices", headers=as_user(user))

        assert [d["device_id"] for d in response.json()] == [str(mine.device_id)]

    async def test_cross_tenant_device_is_not_found(
        self, authenticated_client: AsyncClient, factory, as_user
    ):
        north = await factory.distributor("North")
        south = await factory.distributor("South")
        user = await factory.user(north, "ops@north.example.com")
        theirs = await factory.device(await factory.customer(south))

        response = await authenticated_client.get(
            f"/v1/devices/{theirs.device_id}", headers=as_user(user)
        )

        assert response.status_code == 404

    async def test_service_caller_reads_any_device(
        self, authenticated_client: AsyncClient, factory
    ):
        device = await factory.device(await factory.customer(await factory.distributor()))

        response = await authenticated_client.get(f"/v1/devices/{device.device_id}")

        assert response.status_code == 200
        assert response.json()["serial_number"] == device.serial_number

    async def test_unknown_device_returns_404(self, authenticated_client: AsyncClient):
        response = await authenticated_client.get(f"/v1/devices/{uuid7()}")

        assert response.status_code == 404


@pytest.mark.asyncio
class TestDeviceReleases:
    """Tests for GET /v1/devices/{device_id}/releases."""

    async def test_lists_newer_visible_releases(
        self, authenticated_client: AsyncClient, factory, as_user
    ):
        north = await factory.distributor("North")
        south = await factory.distributor("South")
        user = await factory.user(north, "ops@north.example.com")
        device = await factory.device(
            await factory.customer(north), current_software_version="1.5.0"
        )
        newer = await factory.release(version="2.0.0")
        await factory.release(version="1.0.0")
        await factory.release(version="3.0.0", distributors=[south])

        response = await authenticated_client.get(
            f"/v1/devices/{device.device_id}/releases", headers=as_user(user)
        )

        assert response.status_code == 200
        assert [r["release_id"] for r in response.json()] == [str(newer.release_id)]
