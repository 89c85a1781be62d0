"""Integration tests for administrative endpoints."""

import pytest
from httpx import AsyncClient
from uuid_utils.compat import uuid7

RELEASE_BODY = {
    "name": "Analyzer Suite",
    "version": "3.0.0",
    "release_type": "Software",
    "file_url": "https://files.example.com/suite-3.0.0.zip",
    "file_name": "suite-3.0.0.zip",
    "notify_on_publish": False,
}


@pytest.mark.asyncio
class TestAdminAccess:
    async def test_portal_user_is_forbidden(
        self, authenticated_client: AsyncClient, factory, as_user
    ):
        """Admin endpoints reject calls made on behalf of a portal user."""
        user = await factory.user(await factory.distributor(), "ops@north.example.com")

        response = await authenticated_client.get("/v1/admin/distributors", headers=as_user(user))

        assert response.status_code == 403
        assert response.json()["error_code"] == "forbidden"

    async def test_missing_credentials(self, test_client: AsyncClient):
        response = await test_client.get("/v1/admin/distributors")

        assert response.status_code == 401


@pytest.mark.asyncio
class TestDistributorAdmin:
    async def test_create_with_first_user(
        self, authenticated_client: AsyncClient, email_client
    ):
        response = await authenticated_client.post(
            "/v1/admin/distributors",
            json={
                "company_name": "Acme",
                "account_type": "Exclusive",
                "first_user": {"email": "owner@acme.example.com", "full_name": "Owner"},
                "send_invite": True,
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["account_type"] == "exclusive"
        assert data["status"] == "pending"
        assert email_client.recipients == ["owner@acme.example.com"]

    async def test_duplicate_first_user_email(
        self, authenticated_client: AsyncClient, factory
    ):
        await factory.user(await factory.distributor(), "owner@acme.example.com")

        response = await authenticated_client.post(
            "/v1/admin/distributors",
            json={"company_name": "Acme", "first_user": {"email": "owner@acme.example.com"}},
        )

        assert response.status_code == 409
        assert response.json()["error_code"] == "duplicate_email"

    async def test_list_update_delete(self, authenticated_client: AsyncClient, factory):
        distributor = await factory.distributor("Nordic Med", territory="Nordics")
        await factory.distributor("Iberia Health", territory="Iberia")

        listed = await authenticated_client.get(
            "/v1/admin/distributors", params={"territory": "Nordics"}
        )
        updated = await authenticated_client.patch(
            f"/v1/admin/distributors/{distributor.distributor_id}",
            json={"status": "Inactive"},
        )
        deleted = await authenticated_client.delete(
            f"/v1/admin/distributors/{distributor.distributor_id}"
        )
        missing = await authenticated_client.delete(
            f"/v1/admin/distributors/{distributor.distributor_id}"
        )

        assert [d["company_name"] for d in listed.json()] == ["Nordic Med"]
        assert updated.json()["status"] == "inactive"
        assert deleted.status_code == 204
        assert missing.status_code == 404


@pytest.mark.asyncio
class TestSharingAdmin:
    async def test_replace_and_read_allow_list(self, authenticated_client: AsyncClient, factory):
        north = await factory.distributor("North")
        south = await factory.distributor("South")
        item = await factory.content("documentation")
        url = f"/v1/admin/content/documentation/{item.documentation_id}/sharing"

        put = await authenticated_client.put(
            url, json={"distributor_ids": [str(north.distributor_id), str(south.distributor_id)]}
        )
        got = await authenticated_client.get(url)

        assert put.status_code == 200
        assert got.json()["label"] == "2 Distributors"
        assert got.json()["shared_with_all"] is False
        assert set(got.json()["distributor_ids"]) == {
            str(north.distributor_id),
            str(south.distributor_id),
        }

    async def test_empty_list_shares_with_all(self, authenticated_client: AsyncClient, factory):
        north = await factory.distributor("North")
        item = await factory.content("announcements", allowed=[north])

        response = await authenticated_client.put(
            f"/v1/admin/content/announcements/{item.announcement_id}/sharing",
            json={"distributor_ids": []},
        )

        assert response.json()["label"] == "All"
        assert response.json()["shared_with_all"] is True

    async def test_unknown_content(self, authenticated_client: AsyncClient):
        response = await authenticated_client.get(
            f"/v1/admin/content/marketing_assets/{uuid7()}/sharing"
        )

        assert response.status_code == 404


@pytest.mark.asyncio
class TestReleaseAdmin:
    async def test_create_target_and_publish(
        self, authenticated_client: AsyncClient, factory, email_client
    ):
        north = await factory.distributor("North")
        await factory.user(north, "ops@north.example.com")
        await factory.user(await factory.distributor("South"), "ops@south.example.com")

        created = await authenticated_client.post("/v1/admin/releases", json=RELEASE_BODY)
        release_id = created.json()["release_id"]
        targets = await authenticated_client.put(
            f"/v1/admin/releases/{release_id}/targets/distributors",
            json={"ids": [str(north.distributor_id)]},
        )
        published = await authenticated_client.post(
            f"/v1/admin/releases/{release_id}/publish", params={"notify": "true"}
        )

        assert created.status_code == 201
        assert created.json()["status"] == "draft"
        assert targets.json()["target_type"] == "distributors"
        assert published.status_code == 200
        body = published.json()
        assert body["release"]["status"] == "published"
        assert body["notification"]["sent_count"] == 1
        assert email_client.recipients == ["ops@north.example.com"]

    async def test_publish_twice_returns_409(self, authenticated_client: AsyncClient, factory):
        release = await factory.release()

        response = await authenticated_client.post(
            f"/v1/admin/releases/{release.release_id}/publish"
        )

        assert response.status_code == 409
        assert response.json()["error_code"] == "invalid_state_transition"

    async def test_notify_is_idempotent(
        self, authenticated_client: AsyncClient, factory, email_client
    ):
        """A repeated notify call sends nothing to already-notified users."""
        north = await factory.distributor("North")
        await factory.user(north, "a@north.example.com")
        await factory.user(north, "b@north.example.com")
        release = await factory.release()
        url = f"/v1/admin/releases/{release.release_id}/notify"

        first = await authenticated_client.post(url)
        second = await authenticated_client.post(url, json={"only_unnotified": True})

        assert first.json()["sent_count"] == 2
        assert first.json()["total_recipients"] == 2
        assert "errors" not in first.json()
        assert second.json()["sent_count"] == 0
        assert second.json()["success"] is True
        assert len(email_client.sent) == 2

    async def test_notify_reports_failures(
        self, authenticated_client: AsyncClient, factory, email_client
    ):
        north = await factory.distributor("North")
        await factory.user(north, "a@north.example.com")
        await factory.user(north, "b@north.example.com")
        email_client.rejected.add("b@north.example.com")
        release = await factory.release()

        response = await authenticated_client.post(
            f"/v1/admin/releases/{release.release_id}/notify"
        )

        data = response.json()
        assert data["sent_count"] == 1
        assert data["errors"] == ["Failed to send to b@north.example.com: mailbox rejected"]

    async def test_notify_unknown_release(self, authenticated_client: AsyncClient):
        response = await authenticated_client.post(f"/v1/admin/releases/{uuid7()}/notify")

        assert response.status_code == 404
        assert response.json()["details"]["resource"] == "software_release"


@pytest.mark.asyncio
class TestContentNotificationAdmin:
    async def test_notify_content_is_idempotent(
        self, authenticated_client: AsyncClient, factory, email_client
    ):
        north = await factory.distributor("North")
        south = await factory.distributor("South")
        await factory.user(north, "a@north.example.com")
        await factory.user(south, "b@south.example.com")
        item = await factory.content("documentation", title="Service Manual", allowed=[north])
        url = f"/v1/admin/content/documentation/{item.documentation_id}/notify"

        first = await authenticated_client.post(url)
        second = await authenticated_client.post(url)

        assert first.status_code == 200
        assert first.json()["sent_count"] == 1
        assert second.json()["sent_count"] == 0
        assert email_client.recipients == ["a@north.example.com"]

    async def test_notify_unknown_product(self, authenticated_client: AsyncClient):
        response = await authenticated_client.post(f"/v1/admin/content/products/{uuid7()}/notify")

        assert response.status_code == 404
        assert response.json()["details"]["resource"] == "product"

    async def test_unknown_kind_returns_422(self, authenticated_client: AsyncClient):
        response = await authenticated_client.post(f"/v1/admin/content/brochures/{uuid7()}/notify")

        assert response.status_code == 422

    async def test_batch_counts_missing_items_as_failed(
        self, authenticated_client: AsyncClient, factory, email_client
    ):
        north = await factory.distributor("North")
        await factory.user(north, "a@north.example.com")
        item = await factory.content("announcements", title="Trade show")

        response = await authenticated_client.post(
            "/v1/admin/content/announcements/notify-batch",
            json={"ids": [str(item.announcement_id), str(uuid7())]},
        )

        assert response.status_code == 200
        assert response.json() == {"sent": 1, "failed": 1}
        assert email_client.recipients == ["a@north.example.com"]


@pytest.mark.asyncio
class TestReleaseStatsAdmin:
    async def test_stats_for_targeted_release(self, authenticated_client: AsyncClient, factory):
        north = await factory.distributor("North")
        south = await factory.distributor("South")
        release = await factory.release(distributors=[north, south])

        response = await authenticated_client.get(f"/v1/admin/releases/{release.release_id}/stats")

        assert response.status_code == 200
        assert response.json() == {
            "release_id": str(release.release_id),
            "total_downloads": 0,
            "unique_downloads": 0,
            "successful_installs": 0,
            "failed_installs": 0,
            "rolled_back_installs": 0,
            "target_count": 2,
            "install_percentage": 0,
        }

    async def test_stats_unknown_release(self, authenticated_client: AsyncClient):
        response = await authenticated_client.get(f"/v1/admin/releases/{uuid7()}/stats")

        assert response.status_code == 404
