"""Repositories for customers, devices and device documents."""

from datetime import date
from uuid import UUID

from sqlalchemy import func, or_, select

from distportal.core.exceptions import (
    CustomerNotFoundError,
    DeviceNotFoundError,
    DocumentNotFoundError,
)
from distportal.db.models.customer import Customer, Device
from distportal.db.models.document import DeviceDocument, DocumentHistoryEntry
from distportal.db.repositories.base import BaseRepository


class CustomerRepository(BaseRepository[Customer, UUID]):
    """Repository for end customers."""

    model = Customer
    not_found_error = CustomerNotFoundError

    async def search(
        self,
        *,
        distributor_id: UUID | None = None,
        search: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Customer]:
        """List customers, optionally scoped to one distributor and a search term."""
        stmt = select(Customer)
        if distributor_id is not None:
            stmt = stmt.where(Customer.distributor_id == distributor_id)
        if search:
            pattern = f"%{search.lower()}%"
            stmt = stmt.where(
                or_(
                    Customer.company_name.ilike(pattern),
                    Customer.contact_name.ilike(pattern),
                    Customer.contact_email.ilike(pattern),
                    Customer.city.ilike(pattern),
                )
            )
        stmt = stmt.order_by(Customer.company_name).limit(limit).offset(offset)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def ids_for_distributor(self, distributor_id: UUID) -> list[UUID]:
        result = await self.db.execute(
            select(Customer.customer_id).where(Customer.distributor_id == distributor_id)
        )
        return list(result.scalars().all())


class DeviceRepository(BaseRepository[Device, UUID]):
    """Repository for installed devices."""

    model = Device
    not_found_error = DeviceNotFoundError

    async def get_by_serial(self, serial_number: str) -> Device | None:
        result = await self.db.execute(
            select(Device).where(Device.serial_number == serial_number)
        )
        return result.scalar_one_or_none()

    async def serial_exists(self, serial_number: str, *, exclude_id: UUID | None = None) -> bool:
        """Whether another device already carries this serial number."""
        stmt = select(func.count(Device.device_id)).where(Device.serial_number == serial_number)
        if exclude_id is not None:
            stmt = stmt.where(Device.device_id != exclude_id)
        result = await self.db.execute(stmt)
        return (result.scalar() or 0) > 0

    async def owner_distributor_id(self, device_id: UUID) -> UUID | None:
        """Distributor owning the device through its customer."""
        result = await self.db.execute(
            select(Customer.distributor_id)
            .join(Device, Device.customer_id == Customer.customer_id)
            .where(Device.device_id == device_id)
        )
        return result.scalar_one_or_none()

    async def ids_for_distributor(self, distributor_id: UUID) -> set[UUID]:
        """Ids of every device belonging to any customer of the distributor."""
        result = await self.db.execute(
            select(Device.device_id)
            .join(Customer, Device.customer_id == Customer.customer_id)
            .where(Customer.distributor_id == distributor_id)
        )
        return set(result.scalars().all())

    async def for_distributor(self, distributor_id: UUID) -> list[Device]:
        result = await self.db.execute(
            select(Device)
            .join(Customer, Device.customer_id == Customer.customer_id)
            .where(Customer.distributor_id == distributor_id)
            .order_by(Device.device_name)
        )
        return list(result.scalars().all())

    async def search(
        self,
        term: str,
        *,
        customer_id: UUID | None = None,
        distributor_id: UUID | None = None,
        limit: int = 50,
    ) -> list[Device]:
        """Find devices by serial number, name, model or location."""
        pattern = f"%{term.lower()}%"
        stmt = select(Device).where(
            or_(
                Device.serial_number.ilike(pattern),
                Device.device_name.ilike(pattern),
                Device.device_model.ilike(pattern),
                Device.location_description.ilike(pattern),
            )
        )
        if customer_id is not None:
            stmt = stmt.where(Device.customer_id == customer_id)
        if distributor_id is not None:
            stmt = stmt.join(Customer, Device.customer_id == Customer.customer_id).where(
                Customer.distributor_id == distributor_id
            )
        stmt = stmt.order_by(Device.device_name).limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def warranty_expiring_between(
        self, start: date, end: date, *, customer_id: UUID | None = None
    ) -> list[Device]:
        stmt = select(Device).where(Device.warranty_expiry >= start, Device.warranty_expiry <= end)
        if customer_id is not None:
            stmt = stmt.where(Device.customer_id == customer_id)
        stmt = stmt.order_by(Device.warranty_expiry)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())


class DocumentRepository(BaseRepository[DeviceDocument, UUID]):
    """Repository for device documents and their history trail."""

    model = DeviceDocument
    not_found_error = DocumentNotFoundError

    async def for_device(
        self, device_id: UUID, *, latest_only: bool = True
    ) -> list[DeviceDocument]:
        stmt = select(DeviceDocument).where(DeviceDocument.device_id == device_id)
        if latest_only:
            stmt = stmt.where(DeviceDocument.is_latest.is_(True))
        stmt = stmt.order_by(DeviceDocument.created_at.desc())
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def latest_titled(
        self, device_id: UUID, title: str, document_type: str
    ) -> DeviceDocument | None:
        """The current head among a device's documents sharing title and type."""
        result = await self.db.execute(
            select(DeviceDocument).where(
                DeviceDocument.device_id == device_id,
                DeviceDocument.title == title,
                DeviceDocument.document_type == document_type,
                DeviceDocument.is_latest.is_(True),
            )
        )
        return result.scalars().first()

    async def next_version_of(self, document_id: UUID) -> DeviceDocument | None:
        """The document that names ``document_id`` as its previous version."""
        result = await self.db.execute(
            select(DeviceDocument).where(DeviceDocument.previous_version_id == document_id)
        )
        return result.scalars().first()

    async def history(self, document_id: UUID) -> list[DocumentHistoryEntry]:
        result = await self.db.execute(
            select(DocumentHistoryEntry)
            .where(DocumentHistoryEntry.document_id == document_id)
            .order_by(
                DocumentHistoryEntry.performed_at.desc(), DocumentHistoryEntry.history_id.desc()
            )
        )
        return list(result.scalars().all())

    async def device_history(self, device_id: UUID) -> list[DocumentHistoryEntry]:
        result = await self.db.execute(
            select(DocumentHistoryEntry)
            .where(DocumentHistoryEntry.device_id == device_id)
            .order_by(
                DocumentHistoryEntry.performed_at.desc(), DocumentHistoryEntry.history_id.desc()
            )
        )
        return list(result.scalars().all())
