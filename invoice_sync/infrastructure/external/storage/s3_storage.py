"""
S3-compatible attachment storage (AWS S3, MinIO, LocalStack).

Attachments are written with server-side encryption under a deterministic
key, so re-uploading the same attachment overwrites the same object.
"""

import hashlib
from typing import Any
from urllib.parse import quote

import aioboto3
from botocore.exceptions import ClientError

from invoice_sync.infrastructure.exceptions import StorageUploadError
from invoice_sync.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


class S3StorageService:
    """
    Object storage for attachment bytes.

    Object Keys:
    attachments/{hash_id}-{filename}
    """

    def __init__(
        self,
        bucket: str,
        region: str = "us-east-1",
        endpoint_url: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
    ):
        """
        Initialize S3 storage service.

        Args:
            bucket: S3 bucket name
            region: AWS region (default: us-east-1)
            endpoint_url: Custom endpoint for MinIO/LocalStack (optional)
            access_key: AWS access key (optional, uses IAM role if not provided)
            secret_key: AWS secret key (optional, uses IAM role if not provided)
        """
        self.bucket = bucket
        self.region = region
        self.endpoint_url = endpoint_url

        # Session configuration
        self.session = aioboto3.Session(
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=region,
        )

    def _get_client_config(self) -> dict[str, Any]:
        """Get boto3 client configuration"""
        config = {}
        if self.endpoint_url:
            config["endpoint_url"] = self.endpoint_url
        return config

    def object_url(self, key: str) -> str:
        """Public URL of an object (path-style when a custom endpoint is configured)"""
        quoted = quote(key, safe="/")
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket}/{quoted}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{quoted}"

    async def upload(self, content: bytes, key: str, content_type: str) -> str:
        """
        Upload attachment bytes.

        Args:
            content: Raw attachment bytes
            key: Object key (e.g., "attachments/3f2a...-invoice.pdf")
            content_type: MIME type

        Returns:
            str: Object URL

        Raises:
            StorageUploadError: If upload fails
        """
        checksum = hashlib.sha256(content).hexdigest()
        try:
            async with self.session.client("s3", **self._get_client_config()) as s3:
                await s3.put_object(
                    Bucket=self.bucket,
                    Key=key,
                    Body=content,
                    ContentType=content_type,
                    ServerSideEncryption="AES256",
                    Metadata={"sha256": checksum, "original-size": str(len(content))},
                )
        except ClientError as e:
            error = e.response.get("Error", {})
            raise StorageUploadError(
                file_path=key, reason=error.get("Message") or error.get("Code") or str(e)
            ) from e
        except Exception as e:
            raise StorageUploadError(file_path=key, reason=str(e)) from e

        logger.debug("Uploaded %s (%d bytes) to %s", key, len(content), self.bucket)
        return self.object_url(key)
