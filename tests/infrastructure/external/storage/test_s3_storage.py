"""Unit tests for S3StorageService"""

import hashlib
from unittest.mock import AsyncMock, patch

import pytest
from botocore.exceptions import ClientError

from invoice_sync.infrastructure.exceptions import StorageUploadError
from invoice_sync.infrastructure.external.storage.s3_storage import S3StorageService


@pytest.fixture
def s3_service():
    """Provides an S3StorageService instance for testing."""
    return S3StorageService(
        bucket="test-bucket",
        region="us-east-1",
        endpoint_url="http://localhost:9000",  # MinIO
        access_key="test-access-key",
        secret_key="test-secret-key",
    )


@pytest.fixture
def sample_content():
    return b"%PDF-1.4 invoice content"


class TestS3StorageUpload:
    """Tests for S3StorageService upload functionality."""

    @pytest.mark.asyncio
    async def test_upload_success(self, s3_service, sample_content):
        """
        GIVEN attachment bytes and a key
        WHEN uploading to S3
        THEN the object is written encrypted with checksum metadata and its URL returned
        """
        # GIVEN
        key = "attachments/abc123-invoice.pdf"
        mock_s3_client = AsyncMock()

        # WHEN
        with patch.object(s3_service.session, "client") as mock_client:
            mock_client.return_value.__aenter__.return_value = mock_s3_client

            url = await s3_service.upload(sample_content, key, "application/pdf")

        # THEN
        assert url == "http://localhost:9000/test-bucket/attachments/abc123-invoice.pdf"
        mock_client.assert_called_once_with("s3", endpoint_url="http://localhost:9000")
        mock_s3_client.put_object.assert_called_once()
        call_kwargs = mock_s3_client.put_object.call_args.kwargs
        assert call_kwargs["Bucket"] == "test-bucket"
        assert call_kwargs["Key"] == key
        assert call_kwargs["Body"] == sample_content
        assert call_kwargs["ContentType"] == "application/pdf"
        assert call_kwargs["ServerSideEncryption"] == "AES256"
        assert call_kwargs["Metadata"] == {
            "sha256": hashlib.sha256(sample_content).hexdigest(),
            "original-size": str(len(sample_content)),
        }

    @pytest.mark.asyncio
    async def test_upload_client_error(self, s3_service, sample_content):
        """
        GIVEN S3 rejects the write
        WHEN uploading
        THEN StorageUploadError carries the S3 message
        """
        mock_s3_client = AsyncMock()
        mock_s3_client.put_object = AsyncMock(
            side_effect=ClientError(
                {"Error": {"Code": "AccessDenied", "Message": "Access Denied"}}, "put_object"
            )
        )

        with patch.object(s3_service.session, "client") as mock_client:
            mock_client.return_value.__aenter__.return_value = mock_s3_client

            with pytest.raises(StorageUploadError) as exc_info:
                await s3_service.upload(sample_content, "attachments/x-a.pdf", "application/pdf")

        assert exc_info.value.details["reason"] == "Access Denied"
        assert exc_info.value.details["file_path"] == "attachments/x-a.pdf"

    @pytest.mark.asyncio
    async def test_upload_connection_error(self, s3_service, sample_content):
        mock_s3_client = AsyncMock()
        mock_s3_client.put_object = AsyncMock(side_effect=ConnectionError("endpoint unreachable"))

        with patch.object(s3_service.session, "client") as mock_client:
            mock_client.return_value.__aenter__.return_value = mock_s3_client

            with pytest.raises(StorageUploadError) as exc_info:
                await s3_service.upload(sample_content, "attachments/x-a.pdf", "application/pdf")

        assert exc_info.value.details["reason"] == "endpoint unreachable"


class TestObjectUrl:
    def test_aws_virtual_hosted_url(self):
        service = S3StorageService(bucket="invoices", region="eu-west-1")
        assert (
            service.object_url("attachments/abc-my invoice.pdf")
            == "https://invoices.s3.eu-west-1.amazonaws.com/attachments/abc-my%20invoice.pdf"
        )

    def test_custom_endpoint_is_path_style(self, s3_service):
        assert s3_service.object_url("attachments/a.pdf") == (
            "http://localhost:9000/test-bucket/attachments/a.pdf"
        )
