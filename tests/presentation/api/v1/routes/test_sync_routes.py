"""API tests for integration, sync and attachment routes"""

from unittest.mock import AsyncMock

import pytest

from conftest import make_integration
from invoice_sync.application.use_cases.sync import BatchSyncService
from invoice_sync.domain.entities import (
    AttachmentDraft,
    SyncedAttachment,
    SyncOutcome,
    SyncResult,
)
from invoice_sync.domain.enums import IntegrationStatus
from invoice_sync.infrastructure.persistence.repositories import (
    AttachmentRepository,
    IntegrationRepository,
)
from invoice_sync.presentation.api.dependencies import get_batch_sync_service
from main import app


def stored_result() -> SyncResult:
    return SyncResult(
        success=True,
        message="Emails synced successfully",
        data=[
            SyncedAttachment(
                attachment_id="att-1",
                hash_id="h1",
                email_id="msg-1",
                filename="invoice.pdf",
                mime_type="application/pdf",
                sender="billing@vendor.com",
                receiver="owner@example.com",
                file_url="https://bucket/attachments/h1-invoice.pdf",
                file_key="attachments/h1-invoice.pdf",
                provider="gmail",
            )
        ],
        metadata=SyncOutcome(stored_attachments=1, total_messages=1, processed_messages=1),
    )


@pytest.fixture
def batch_service():
    service = BatchSyncService(
        list_active=AsyncMock(return_value=[]),
        run_pass=AsyncMock(return_value=stored_result()),
    )
    app.dependency_overrides[get_batch_sync_service] = lambda: service
    return service


class TestRootAndHealth:
    @pytest.mark.asyncio
    async def test_root(self, client):
        response = await client.get("/")

        assert response.status_code == 200
        assert response.json()["status"] == "running"

    @pytest.mark.asyncio
    async def test_health_check_healthy(self, client):
        """
        GIVEN a reachable database
        WHEN the health endpoint is called
        THEN it reports healthy
        """
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["checks"]["database"] is True


class TestIntegrationRoutes:
    @pytest.mark.asyncio
    async def test_get_integration(self, client, test_integration):
        response = await client.get(f"/api/v1/integrations/{test_integration.id}")

        assert response.status_code == 200
        data = response.json()
        assert data["userId"] == "user-1"
        assert data["provider"] == "gmail"
        assert data["status"] == "success"
        assert data["metadata"]["lastReadAt"] == "2024-01-01T00:00:00Z"
        assert "accessToken" not in data

    @pytest.mark.asyncio
    async def test_get_missing_integration(self, client):
        response = await client.get("/api/v1/integrations/missing")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_manual_sync(self, client, test_integration, batch_service):
        """
        GIVEN an active integration
        WHEN a manual sync is requested
        THEN the pass result is returned in camelCase
        """
        response = await client.post(f"/api/v1/integrations/{test_integration.id}/sync")

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["emailsSynced"] == 1
        assert data["data"][0]["fileKey"] == "attachments/h1-invoice.pdf"
        assert data["metadata"]["storedAttachments"] == 1
        assert data["meta"]["checkpoint"] == "2024-01-01T00:00:00Z"
        batch_service.run_pass.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_manual_sync_while_running_conflicts(self, client, test_integration, batch_service):
        batch_service._running.add(test_integration.id)

        response = await client.post(f"/api/v1/integrations/{test_integration.id}/sync")

        assert response.status_code == 409
        batch_service.run_pass.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_resume_paused_integration(self, client, test_db, test_integration):
        await IntegrationRepository(test_db).update_integration(
            test_integration.id,
            {"status": IntegrationStatus.PAUSED.value},
            metadata={"lastErrorMessage": "Token revoked"},
        )

        response = await client.post(f"/api/v1/integrations/{test_integration.id}/resume")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "success"
        assert data["metadata"]["lastErrorMessage"] is None

    @pytest.mark.asyncio
    async def test_resume_disconnected_integration_is_rejected(self, client, test_db, test_integration):
        await IntegrationRepository(test_db).update_integration(
            test_integration.id, {"status": IntegrationStatus.DISCONNECTED.value}
        )

        response = await client.post(f"/api/v1/integrations/{test_integration.id}/resume")

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_resume_missing_integration(self, client):
        response = await client.post("/api/v1/integrations/missing/resume")

        assert response.status_code == 404


class TestBatchSyncRoutes:
    @pytest.mark.asyncio
    async def test_sync_provider(self, client, batch_service):
        batch_service.list_active.return_value = [make_integration()]

        response = await client.post("/api/v1/sync/gmail")

        assert response.status_code == 200
        data = response.json()
        assert data["provider"] == "gmail"
        assert data["message"] == "Emails synced successfully"
        assert data["metadata"]["totalIntegrations"] == 1
        assert data["metadata"]["totalEmails"] == 1
        assert data["data"][0]["integrationId"] == "int-1"

    @pytest.mark.asyncio
    async def test_unknown_provider(self, client, batch_service):
        response = await client.post("/api/v1/sync/yahoo")

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_sync_all(self, client, batch_service):
        response = await client.post("/api/v1/sync")

        assert response.status_code == 200
        assert {item["provider"] for item in response.json()} == {"gmail", "outlook"}


class TestAttachmentRoutes:
    @pytest.mark.asyncio
    async def test_list_and_delete(self, client, test_db):
        """
        GIVEN a stored attachment
        WHEN it is listed and then deleted
        THEN the list shows it once and a second delete is a 404
        """
        item = AttachmentDraft(
            hash_id="f" * 64,
            user_id="user-1",
            email_id="msg-1",
            filename="invoice.pdf",
            mime_type="application/pdf",
            sender="billing@vendor.com",
            receiver="owner@example.com",
            provider="gmail",
        )
        attachment_id = await AttachmentRepository(test_db).create_attachment(
            item, "https://bucket/key", item.storage_key
        )

        response = await client.get("/api/v1/attachments", params={"userId": "user-1"})
        assert response.status_code == 200
        data = response.json()
        assert data["pagination"]["total"] == 1
        assert data["data"][0]["hashId"] == "f" * 64
        assert data["data"][0]["status"] == "pending"

        response = await client.delete(f"/api/v1/attachments/{attachment_id}", params={"userId": "user-1"})
        assert response.status_code == 204

        response = await client.delete(f"/api/v1/attachments/{attachment_id}", params={"userId": "user-1"})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_list_requires_user(self, client):
        response = await client.get("/api/v1/attachments")

        assert response.status_code == 422
