"""SQS processing queue for stored attachments"""

import json
from typing import Any

import aioboto3
from botocore.exceptions import ClientError

from invoice_sync.infrastructure.exceptions import QueueSendError
from invoice_sync.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


class SqsProcessingQueue:
    """
    Sends ``{"attachment_id": ...}`` messages to the downstream processor.

    Delivery guarantees past ``send_message`` belong to SQS.
    """

    def __init__(
        self,
        queue_url: str | None,
        region: str = "us-east-1",
        endpoint_url: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
    ):
        self.queue_url = queue_url
        self.endpoint_url = endpoint_url
        self.session = aioboto3.Session(
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=region,
        )

    def _get_client_config(self) -> dict[str, Any]:
        config = {}
        if self.endpoint_url:
            config["endpoint_url"] = self.endpoint_url
        return config

    @staticmethod
    def message_body(attachment_id: str) -> str:
        return json.dumps({"attachment_id": attachment_id})

    async def enqueue(self, attachment_id: str) -> None:
        """
        Raises:
            QueueSendError: queue not configured, rejected or no MessageId returned
        """
        if not self.queue_url:
            raise QueueSendError(attachment_id, "SQS_QUEUE_URL is not configured")

        try:
            async with self.session.client("sqs", **self._get_client_config()) as sqs:
                response = await sqs.send_message(
                    QueueUrl=self.queue_url,
                    MessageBody=self.message_body(attachment_id),
                )
        except ClientError as e:
            error = e.response.get("Error", {})
            raise QueueSendError(
                attachment_id, error.get("Message") or error.get("Code") or str(e)
            ) from e
        except Exception as e:
            raise QueueSendError(attachment_id, str(e)) from e

        message_id = response.get("MessageId")
        if not message_id:
            raise QueueSendError(attachment_id, "No MessageId returned")
        logger.info("Queued attachment %s (MessageId: %s)", attachment_id, message_id)
