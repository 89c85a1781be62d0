"""Unit tests for end customer management."""

import pytest
from sqlalchemy import func, select
from uuid_utils.compat import uuid7

from distportal.core.exceptions import DistributorNotFoundError
from distportal.db.models import Device
from distportal.inventory import CustomerService, DocumentService


@pytest.mark.asyncio
class TestCustomerService:
    async def test_create_and_search(self, db_session, factory):
        north = await factory.distributor("North")
        south = await factory.distributor("South")
        service = CustomerService(db_session)
        await service.create(north.distributor_id, {"company_name": "Clinic Oslo", "city": "Oslo"})
        await service.create(north.distributor_id, {"company_name": "Hospital Bergen"})
        await service.create(south.distributor_id, {"company_name": "Clinic Madrid"})

        scoped = await service.search(distributor_id=north.distributor_id)
        matched = await service.search(search="CLINIC")

        assert [c.company_name for c in scoped] == ["Clinic Oslo", "Hospital Bergen"]
        assert [c.company_name for c in matched] == ["Clinic Madrid", "Clinic Oslo"]

    async def test_create_for_unknown_distributor(self, db_session):
        with pytest.raises(DistributorNotFoundError):
            await CustomerService(db_session).create(uuid7(), {"company_name": "Clinic"})

    async def test_delete_removes_devices_and_documents(self, db_session, factory):
        customer = await factory.customer(await factory.distributor())
        device = await factory.device(customer)
        await DocumentService(db_session).upload(
            device.device_id, title="Manual", file_url="https://x/m.pdf", file_name="m.pdf"
        )

        await CustomerService(db_session).delete(customer.customer_id)

        count = (await db_session.execute(select(func.count(Device.device_id)))).scalar()
        assert count == 0

    async def test_stats(self, db_session, factory):
        north = await factory.distributor("North")
        first = await factory.customer(north, country="Norway")
        await factory.customer(north, company_name="Prospect AS", status="prospect")
        await factory.device(first)

        stats = await CustomerService(db_session).stats(north.distributor_id)

        assert (stats.total, stats.active, stats.prospect) == (2, 1, 1)
        assert stats.by_country == {"Norway": 1}
        assert stats.total_devices == 1
