"""Device documents: version lineage, customer sharing and history trail.

Every mutating operation appends a DocumentHistoryEntry. History rows are
never updated or deleted, including when the document itself is deleted.
"""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from distportal.core.exceptions import InvalidStateTransitionError
from distportal.db.models.base import normalize_choice
from distportal.db.models.document import (
    DeviceDocument,
    DocumentAction,
    DocumentHistoryEntry,
    DocumentStatus,
    DocumentType,
)
from distportal.db.repositories.inventory import DeviceRepository, DocumentRepository
from distportal.inventory.versions import increment_version

logger = structlog.get_logger()

_METADATA_FIELDS = ("title", "description", "document_type", "version", "status")


class DocumentService:
    """Documents attached to devices."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.documents = DocumentRepository(db)
        self.devices = DeviceRepository(db)

    async def _log(
        self,
        document: DeviceDocument,
        action: DocumentAction,
        description: str,
        *,
        old_value: dict | None = None,
        new_value: dict | None = None,
        performed_by: UUID | None = None,
    ) -> DocumentHistoryEntry:
        entry = DocumentHistoryEntry(
            document_id=document.document_id,
            device_id=document.device_id,
            action_type=action.value,
            action_description=description,
            old_value=old_value,
            new_value=new_value,
            performed_by=performed_by,
        )
        self.db.add(entry)
        await self.db.flush()
        return entry

    @staticmethod
    def _supersede(document: DeviceDocument) -> None:
        document.is_latest = False
        document.status = DocumentStatus.SUPERSEDED

    async def get(self, document_id: UUID) -> DeviceDocument:
        return await self.documents.get_or_raise(document_id)

    async def list_for_device(
        self, device_id: UUID, *, latest_only: bool = True
    ) -> list[DeviceDocument]:
        await self.devices.get_or_raise(device_id)
        return await self.documents.for_device(device_id, latest_only=latest_only)

    async def shared_for_device(self, device_id: UUID) -> list[DeviceDocument]:
        """Latest active documents the customer is allowed to see."""
        documents = await self.list_for_device(device_id)
        return [
            d
            for d in documents
            if d.shared_with_customer and d.status == DocumentStatus.ACTIVE.value
        ]

    async def upload(
        self,
        device_id: UUID,
        *,
        title: str,
        file_url: str,
        file_name: str,
        document_type: str = "other",
        description: str | None = None,
        version: str = "1.0",
        file_size: int | None = None,
        file_type: str | None = None,
        shared_with_customer: bool = False,
        created_by: UUID | None = None,
    ) -> DeviceDocument:
        """Create a document record for a file already placed in storage.

        If the device already has a latest document with the same title and
        type, that document is superseded and the upload continues its lineage.

        Raises:
            DeviceNotFoundError: If the device does not exist
        """
        await self.devices.get_or_raise(device_id)

        document_type = normalize_choice(document_type, DocumentType, "document_type")
        head = await self.documents.latest_titled(device_id, title, document_type)
        if head is not None:
            self._supersede(head)

        document = DeviceDocument(
            device_id=device_id,
            title=title,
            description=description,
            document_type=document_type,
            version=version,
            previous_version_id=head.document_id if head is not None else None,
            file_url=file_url,
            file_name=file_name,
            file_size=file_size,
            file_type=file_type,
            shared_with_customer=shared_with_customer,
            shared_at=datetime.now(UTC) if shared_with_customer else None,
            created_by=created_by,
        )
        await self.documents.create(document)
        await self._log(
            document,
            DocumentAction.CREATED,
            f'Document "{title}" (v{version}) uploaded',
            new_value=document.snapshot(),
            performed_by=created_by,
        )
        logger.info(
            "document_uploaded",
            document_id=str(document.document_id),
            device_id=str(device_id),
            version=version,
        )
        return document

    async def create_new_version(
        self,
        document_id: UUID,
        *,
        file_url: str,
        file_name: str,
        version: str | None = None,
        file_size: int | None = None,
        file_type: str | None = None,
        created_by: UUID | None = None,
    ) -> DeviceDocument:
        """Supersede a document with a new file.

        The new version inherits title, type, description and sharing from the
        current one. Without an explicit ``version`` the last component of the
        current version is incremented.

        Raises:
            DocumentNotFoundError: If the document does not exist
            InvalidStateTransitionError: If the document is not the latest
                version of its lineage
        """
        current = await self.documents.get_or_raise(document_id)
        if not current.is_latest:
            raise InvalidStateTransitionError(
                document_id, current.status, DocumentStatus.SUPERSEDED.value
            )
        new_version = version or increment_version(current.version)

        self._supersede(current)

        document = DeviceDocument(
            device_id=current.device_id,
            title=current.title,
            description=current.description,
            document_type=current.document_type,
            version=new_version,
            previous_version_id=current.document_id,
            file_url=file_url,
            file_name=file_name,
            file_size=file_size,
            file_type=file_type,
            shared_with_customer=current.shared_with_customer,
            shared_at=datetime.now(UTC) if current.shared_with_customer else None,
            created_by=created_by,
        )
        await self.documents.create(document)
        await self._log(
            document,
            DocumentAction.VERSIONED,
            f"New version {new_version} created (previous: {current.version})",
            old_value={"version": current.version},
            new_value={"version": new_version},
            performed_by=created_by,
        )
        logger.info(
            "document_versioned",
            document_id=str(document.document_id),
            previous_version_id=str(current.document_id),
            version=new_version,
        )
        return document

    async def update_metadata(
        self,
        document_id: UUID,
        updates: dict[str, Any],
        *,
        performed_by: UUID | None = None,
    ) -> DeviceDocument:
        """Change document metadata (never the file) and record what changed."""
        document = await self.documents.get_or_raise(document_id)
        before = document.snapshot()

        for field in _METADATA_FIELDS:
            value = updates.get(field)
            if value is not None:
                setattr(document, field, value)
        await self.db.flush()

        after = document.snapshot()
        changed = [k for k in _METADATA_FIELDS if before[k] != after[k]]
        if changed:
            await self._log(
                document,
                DocumentAction.UPDATED,
                f"Updated fields: {', '.join(changed)}",
                old_value={k: before[k] for k in changed},
                new_value={k: after[k] for k in changed},
                performed_by=performed_by,
            )
        return document

    async def set_shared(
        self,
        document_id: UUID,
        shared: bool,
        *,
        performed_by: UUID | None = None,
    ) -> DeviceDocument:
        """Share a document with the end customer, or withdraw it."""
        document = await self.documents.get_or_raise(document_id)
        if document.shared_with_customer == shared:
            return document

        document.shared_with_customer = shared
        document.shared_at = datetime.now(UTC) if shared else None
        await self.db.flush()

        await self._log(
            document,
            DocumentAction.SHARED if shared else DocumentAction.UNSHARED,
            "Shared with customer" if shared else "Unshared from customer",
            old_value={"shared_with_customer": not shared},
            new_value={"shared_with_customer": shared},
            performed_by=performed_by,
        )
        return document

    async def bulk_set_shared(
        self,
        document_ids: list[UUID],
        shared: bool,
        *,
        performed_by: UUID | None = None,
    ) -> list[DeviceDocument]:
        """Share or unshare several documents; unknown ids raise before any change."""
        documents = await self.documents.get_many(document_ids)
        found = {d.document_id for d in documents}
        for document_id in document_ids:
            if document_id not in found:
                raise self.documents.not_found_error(document_id)

        return [
            await self.set_shared(d.document_id, shared, performed_by=performed_by)
            for d in documents
        ]

    async def archive(
        self, document_id: UUID, *, performed_by: UUID | None = None
    ) -> DeviceDocument:
        document = await self.documents.get_or_raise(document_id)
        before = {"status": document.status, "is_latest": document.is_latest}
        document.status = DocumentStatus.ARCHIVED
        document.is_latest = False
        await self.db.flush()

        await self._log(
            document,
            DocumentAction.ARCHIVED,
            f'Document "{document.title}" archived',
            old_value=before,
            new_value={"status": document.status, "is_latest": False},
            performed_by=performed_by,
        )
        return document

    async def delete(self, document_id: UUID, *, performed_by: UUID | None = None) -> None:
        """Delete a document version.

        Deleting the latest version restores the previous one as latest.
        A later version that pointed at the deleted one loses its back link.
        """
        document = await self.documents.get_or_raise(document_id)
        await self._log(
            document,
            DocumentAction.DELETED,
            f'Document "{document.title}" (v{document.version}) deleted',
            old_value=document.snapshot(),
            performed_by=performed_by,
        )

        successor = await self.documents.next_version_of(document_id)
        if successor is not None:
            successor.previous_version_id = document.previous_version_id

        if document.is_latest and document.previous_version_id is not None:
            previous = await self.documents.get(document.previous_version_id)
            if previous is not None:
                previous.is_latest = True
                previous.status = DocumentStatus.ACTIVE

        await self.documents.delete(document)
        logger.info("document_deleted", document_id=str(document_id))

    async def version_chain(self, document_id: UUID) -> list[DeviceDocument]:
        """Every version linked to the document through ``previous_version_id``.

        Returns:
            The lineage newest first. Unrelated documents that merely share
            the title are not included.
        """
        document = await self.documents.get_or_raise(document_id)
        seen = {document.document_id}

        newer: list[DeviceDocument] = []
        successor = await self.documents.next_version_of(document.document_id)
        while successor is not None and successor.document_id not in seen:
            seen.add(successor.document_id)
            newer.append(successor)
            successor = await self.documents.next_version_of(successor.document_id)

        older: list[DeviceDocument] = []
        previous_id = document.previous_version_id
        while previous_id is not None and previous_id not in seen:
            previous = await self.documents.get(previous_id)
            if previous is None:
                break
            seen.add(previous_id)
            older.append(previous)
            previous_id = previous.previous_version_id

        return [*reversed(newer), document, *older]

    async def history(self, document_id: UUID) -> list[DocumentHistoryEntry]:
        return await self.documents.history(document_id)

    async def device_history(self, device_id: UUID) -> list[DocumentHistoryEntry]:
        return await self.documents.device_history(device_id)
