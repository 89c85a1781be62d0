"""End customer management."""

from collections import Counter
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from distportal.core.audit import AuditLogger
from distportal.db.models.audit import AuditEventType
from distportal.db.models.customer import Customer, CustomerStatus, Device
from distportal.db.models.document import DeviceDocument
from distportal.db.repositories.accounts import DistributorRepository
from distportal.db.repositories.inventory import CustomerRepository

logger = structlog.get_logger()

_CUSTOMER_FIELDS = {
    "company_name",
    "contact_name",
    "contact_email",
    "contact_phone",
    "address",
    "city",
    "country",
    "postal_code",
    "status",
    "internal_notes",
}


@dataclass
class CustomerStats:
    total: int = 0
    active: int = 0
    inactive: int = 0
    prospect: int = 0
    by_country: dict[str, int] = field(default_factory=dict)
    total_devices: int = 0
    total_documents: int = 0


class CustomerService:
    """CRUD for a distributor's end customers."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.customers = CustomerRepository(db)
        self.distributors = DistributorRepository(db)
        self.audit = AuditLogger(db)

    async def get(self, customer_id: UUID) -> Customer:
        return await self.customers.get_or_raise(customer_id)

    async def search(
        self,
        *,
        distributor_id: UUID | None = None,
        search: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Customer]:
        return await self.customers.search(
            distributor_id=distributor_id, search=search, limit=limit, offset=offset
        )

    async def create(
        self,
        distributor_id: UUID,
        fields: dict[str, Any],
        *,
        created_by: UUID | None = None,
    ) -> Customer:
        """Create a customer for a distributor.

        Raises:
            DistributorNotFoundError: If the distributor does not exist
        """
        await self.distributors.get_or_raise(distributor_id)
        customer = Customer(
            distributor_id=distributor_id,
            created_by=created_by,
            **{k: v for k, v in fields.items() if k in _CUSTOMER_FIELDS},
        )
        await self.customers.create(customer)
        logger.info(
            "customer_created",
            customer_id=str(customer.customer_id),
            distributor_id=str(distributor_id),
        )
        return customer

    async def update(self, customer_id: UUID, updates: dict[str, Any]) -> Customer:
        customer = await self.customers.get_or_raise(customer_id)
        changes = {k: v for k, v in updates.items() if k in _CUSTOMER_FIELDS and v is not None}
        return await self.customers.update(customer, changes)

    async def delete(self, customer_id: UUID) -> None:
        """Delete a customer together with its devices and their documents."""
        customer = await self.customers.get_or_raise(customer_id)
        device_ids = select(Device.device_id).where(Device.customer_id == customer_id)

        await self.db.execute(
            delete(DeviceDocument).where(DeviceDocument.device_id.in_(device_ids))
        )
        await self.db.execute(delete(Device).where(Device.customer_id == customer_id))
        await self.customers.delete(customer)

        await self.audit.log_event(
            AuditEventType.CUSTOMER_DELETED,
            {"company_name": customer.company_name},
            distributor_id=customer.distributor_id,
            resource_type="customer",
            resource_id=str(customer_id),
        )
        logger.info("customer_deleted", customer_id=str(customer_id))

    async def stats(self, distributor_id: UUID | None = None) -> CustomerStats:
        """Customer counts, optionally for one distributor."""
        filters = []
        if distributor_id is not None:
            filters.append(Customer.distributor_id == distributor_id)

        result = await self.db.execute(
            select(Customer.customer_id, Customer.status, Customer.country).where(*filters)
        )
        rows = result.all()
        statuses = Counter(status for _, status, _ in rows)
        countries = Counter(country for _, _, country in rows if country)

        customer_ids = [customer_id for customer_id, _, _ in rows]
        total_devices = total_documents = 0
        if customer_ids:
            device_ids = select(Device.device_id).where(Device.customer_id.in_(customer_ids))
            total_devices = (
                await self.db.execute(
                    select(func.count(Device.device_id)).where(Device.customer_id.in_(customer_ids))
                )
            ).scalar() or 0
            total_documents = (
                await self.db.execute(
                    select(func.count(DeviceDocument.document_id)).where(
                        DeviceDocument.device_id.in_(device_ids)
                    )
                )
            ).scalar() or 0

        return CustomerStats(
            total=len(rows),
            active=statuses[CustomerStatus.ACTIVE.value],
            inactive=statuses[CustomerStatus.INACTIVE.value],
            prospect=statuses[CustomerStatus.PROSPECT.value],
            by_country=dict(countries),
            total_devices=total_devices,
            total_documents=total_documents,
        )
