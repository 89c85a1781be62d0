"""Unit tests for device documents and their history trail."""

import pytest
import pytest_asyncio
from uuid_utils.compat import uuid7

from distportal.core.exceptions import (
    DeviceNotFoundError,
    DocumentNotFoundError,
    InvalidStateTransitionError,
)
from distportal.db.models import DocumentAction, DocumentStatus
from distportal.inventory import DocumentService


@pytest_asyncio.fixture
async def device(factory):
    return await factory.device(await factory.customer(await factory.distributor()))


async def _upload(db_session, device, **fields):
    fields.setdefault("title", "Service manual")
    fields.setdefault("file_url", "https://files.example.com/manual-v1.pdf")
    fields.setdefault("file_name", "manual-v1.pdf")
    fields.setdefault("document_type", "manual")
    return await DocumentService(db_session).upload(device.device_id, **fields)


@pytest.mark.asyncio
class TestDocumentLifecycle:
    async def test_upload_records_history(self, db_session, device):
        document = await _upload(db_session, device)

        history = await DocumentService(db_session).history(document.document_id)

        assert document.is_latest is True
        assert [h.action_type for h in history] == [DocumentAction.CREATED.value]

    async def test_upload_to_unknown_device(self, db_session):
        with pytest.raises(DeviceNotFoundError):
            await DocumentService(db_session).upload(
                uuid7(), title="Manual", file_url="https://x", file_name="m.pdf"
            )

    async def test_new_version_supersedes_current(self, db_session, device):
        service = DocumentService(db_session)
        first = await _upload(db_session, device, shared_with_customer=True)

        second = await service.create_new_version(
            first.document_id,
            file_url="https://files.example.com/manual-v2.pdf",
            file_name="manual-v2.pdf",
        )

        assert second.version == "1.1"
        assert second.previous_version_id == first.document_id
        assert second.shared_with_customer is True
        assert first.is_latest is False
        assert first.status == DocumentStatus.SUPERSEDED.value
        latest = await service.list_for_device(device.device_id)
        assert [d.document_id for d in latest] == [second.document_id]

    async def test_deleting_latest_restores_previous(self, db_session, device):
        service = DocumentService(db_session)
        first = await _upload(db_session, device)
        second = await service.create_new_version(
            first.document_id, file_url="https://x/2", file_name="m2.pdf"
        )

        await service.delete(second.document_id)

        assert first.is_latest is True
        assert first.status == DocumentStatus.ACTIVE.value
        # history outlives the deleted document
        history = await service.history(second.document_id)
        assert DocumentAction.DELETED.value in [h.action_type for h in history]

    async def test_update_metadata_logs_changed_fields(self, db_session, device):
        service = DocumentService(db_session)
        document = await _upload(db_session, device)

        await service.update_metadata(document.document_id, {"title": "Field manual"})

        entry = (await service.history(document.document_id))[0]
        assert entry.action_type == DocumentAction.UPDATED.value
        assert entry.old_value == {"title": "Service manual"}
        assert entry.new_value == {"title": "Field manual"}

    async def test_sharing_toggle(self, db_session, device):
        service = DocumentService(db_session)
        document = await _upload(db_session, device)

        await service.set_shared(document.document_id, True)
        shared = await service.shared_for_device(device.device_id)
        await service.set_shared(document.document_id, False)

        assert [d.document_id for d in shared] == [document.document_id]
        assert await service.shared_for_device(device.device_id) == []
        actions = [h.action_type for h in await service.history(document.document_id)]
        assert actions.count(DocumentAction.SHARED.value) == 1
        assert actions.count(DocumentAction.UNSHARED.value) == 1

    async def test_bulk_share_checks_every_id_first(self, db_session, device):
        service = DocumentService(db_session)
        document = await _upload(db_session, device)

        with pytest.raises(DocumentNotFoundError):
            await service.bulk_set_shared([document.document_id, uuid7()], True)

        assert document.shared_with_customer is False

    async def test_archive(self, db_session, device):
        service = DocumentService(db_session)
        document = await _upload(db_session, device)

        await service.archive(document.document_id)

        assert document.status == DocumentStatus.ARCHIVED.value
        assert await service.list_for_device(device.device_id) == []


@pytest.mark.asyncio
class TestDocumentLineage:
    """At most one latest document per (device, title, type) lineage."""

    async def test_superseded_version_cannot_be_versioned_again(self, db_session, device):
        service = DocumentService(db_session)
        first = await _upload(db_session, device)
        second = await service.create_new_version(
            first.document_id, file_url="https://x/2", file_name="m2.pdf"
        )

        with pytest.raises(InvalidStateTransitionError):
            await service.create_new_version(
                first.document_id, file_url="https://x/3", file_name="m3.pdf"
            )

        latest = await service.list_for_device(device.device_id)
        assert [d.document_id for d in latest] == [second.document_id]

    async def test_archived_document_cannot_be_versioned(self, db_session, device):
        service = DocumentService(db_session)
        document = await _upload(db_session, device)
        await service.archive(document.document_id)

        with pytest.raises(InvalidStateTransitionError):
            await service.create_new_version(
                document.document_id, file_url="https://x/2", file_name="m2.pdf"
            )

    async def test_upload_with_same_title_supersedes_head(self, db_session, device):
        service = DocumentService(db_session)
        first = await _upload(db_session, device)

        second = await _upload(
            db_session, device, file_url="https://x/2", file_name="m2.pdf", version="2.0"
        )

        assert first.is_latest is False
        assert first.status == DocumentStatus.SUPERSEDED.value
        assert second.previous_version_id == first.document_id
        latest = await service.list_for_device(device.device_id)
        assert [d.document_id for d in latest] == [second.document_id]

    async def test_upload_with_other_type_starts_own_lineage(self, db_session, device):
        service = DocumentService(db_session)
        manual = await _upload(db_session, device)
        certificate = await _upload(db_session, device, document_type="Certificate")

        latest = await service.list_for_device(device.device_id)

        assert manual.is_latest is True
        assert certificate.previous_version_id is None
        assert {d.document_id for d in latest} == {manual.document_id, certificate.document_id}


@pytest.mark.asyncio
class TestVersionChain:
    async def test_chain_follows_links_from_any_version(self, db_session, device):
        service = DocumentService(db_session)
        v1 = await _upload(db_session, device)
        v2 = await service.create_new_version(
            v1.document_id, file_url="https://x/2", file_name="m2.pdf"
        )
        v3 = await service.create_new_version(
            v2.document_id, file_url="https://x/3", file_name="m3.pdf"
        )

        chain = await service.version_chain(v2.document_id)

        assert [d.version for d in chain] == ["1.2", "1.1", "1.0"]
        assert chain[0].document_id == v3.document_id

    async def test_unlinked_document_with_same_title_is_excluded(self, db_session, device):
        """An upload after archiving starts a fresh lineage under the same title."""
        service = DocumentService(db_session)
        old = await _upload(db_session, device)
        await service.archive(old.document_id)
        fresh = await _upload(db_session, device, file_url="https://x/new", file_name="n.pdf")

        chain = await service.version_chain(fresh.document_id)

        assert fresh.previous_version_id is None
        assert [d.document_id for d in chain] == [fresh.document_id]
