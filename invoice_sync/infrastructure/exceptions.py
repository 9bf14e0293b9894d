"""
Infrastructure exceptions for the invoice sync service.

This module defines infrastructure-level exceptions related to
object storage, the processing queue, and attachment persistence.
"""

from typing import Any

from invoice_sync.domain.exceptions import InvoiceSyncException


# Storage Exceptions
class StorageException(InvoiceSyncException):
    """Base exception for storage operations."""

    pass


class StorageUploadError(StorageException):
    """File upload failed."""

    def __init__(self, file_path: str, reason: str):
        super().__init__(
            f"Failed to upload file: {file_path}",
            "STORAGE_UPLOAD_ERROR",
            {"file_path": file_path, "reason": reason},
        )


# Queue Exceptions
class QueueSendError(InvoiceSyncException):
    """Processing queue rejected the message."""

    def __init__(self, attachment_id: str, reason: str):
        super().__init__(
            f"Failed to enqueue attachment: {attachment_id}",
            "QUEUE_SEND_ERROR",
            {"attachment_id": attachment_id, "reason": reason},
        )


# Attachment persistence Exceptions
class DuplicateAttachmentError(InvoiceSyncException):
    """An attachment with the same fingerprint already exists for the user."""

    def __init__(self, hash_id: str, user_id: str):
        super().__init__(
            f"Attachment already stored: {hash_id}",
            "DUPLICATE_ATTACHMENT",
            {"hash_id": hash_id, "user_id": user_id},
        )


class AttachmentEnqueueError(InvoiceSyncException):
    """
    Attachment row was written but the processing message was not sent.

    The stored record travels with the error so callers can still count it.
    """

    def __init__(self, stored: Any, reason: str):
        self.stored = stored
        super().__init__(
            f"Attachment stored but not queued for processing: {reason}",
            "ATTACHMENT_ENQUEUE_ERROR",
            {"reason": reason},
        )
