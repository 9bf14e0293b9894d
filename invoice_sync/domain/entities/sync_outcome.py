"""
Sync pass outcome entities.

A ``SyncOutcome`` is accumulated by a single pass and is the only thing the
caller ever receives: failures are recorded on it instead of being raised.
Serialized keys are camelCase because the outcome is persisted verbatim into
integration metadata and returned by the API.
"""

from dataclasses import dataclass, field
from typing import Any

from invoice_sync.shared.enums import ErrorClass, SyncStage

# Best-effort stages: recorded in errors[] but not counted as failures
UNCOUNTED_STAGES = frozenset({SyncStage.MARK_AS_READ, SyncStage.UPDATE_INTEGRATION_METADATA})


@dataclass
class SyncFailure:
    stage: SyncStage
    error: str
    error_class: ErrorClass | None = None
    message_id: str | None = None
    filename: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"stage": self.stage.value, "error": self.error}
        if self.message_id is not None:
            data["messageId"] = self.message_id
        if self.filename is not None:
            data["filename"] = self.filename
        if self.error_class is not None:
            data["errorClass"] = self.error_class.value
        return data


@dataclass
class SyncedAttachment:
    """An attachment stored during this pass"""

    attachment_id: str
    hash_id: str
    email_id: str
    filename: str
    mime_type: str
    sender: str
    receiver: str
    file_url: str
    file_key: str
    provider: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "hashId": self.hash_id,
            "emailId": self.email_id,
            "filename": self.filename,
            "mimeType": self.mime_type,
            "sender": self.sender,
            "receiver": self.receiver,
            "fileUrl": self.file_url,
            "fileKey": self.file_key,
            "provider": self.provider,
        }


@dataclass
class SyncOutcome:
    """Counters and failures of one sync pass"""

    last_read_used: str | None = None
    total_messages: int = 0
    processed_messages: int = 0
    total_attachments: int = 0
    stored_attachments: int = 0
    duplicates_skipped: int = 0
    failures: int = 0
    last_processed_message_id: str | None = None
    token_refreshed: bool = False
    error_message: str | None = None
    integration_status: str | None = None
    errors: list[SyncFailure] = field(default_factory=list)

    def record_failure(
        self,
        stage: SyncStage,
        error: str,
        *,
        error_class: ErrorClass | None = None,
        message_id: str | None = None,
        filename: str | None = None,
    ) -> SyncFailure:
        failure = SyncFailure(
            stage=stage,
            error=error,
            error_class=error_class,
            message_id=message_id,
            filename=filename,
        )
        self.errors.append(failure)
        if stage not in UNCOUNTED_STAGES:
            self.failures += 1
        return failure

    @property
    def has_errors(self) -> bool:
        return bool(self.errors) or bool(self.error_message)

    @property
    def is_paused(self) -> bool:
        return self.integration_status == "paused"

    def to_dict(self) -> dict[str, Any]:
        return {
            "lastReadUsed": self.last_read_used,
            "totalMessages": self.total_messages,
            "processedMessages": self.processed_messages,
            "totalAttachments": self.total_attachments,
            "storedAttachments": self.stored_attachments,
            "duplicatesSkipped": self.duplicates_skipped,
            "failures": self.failures,
            "lastProcessedMessageId": self.last_processed_message_id,
            "tokenRefreshed": self.token_refreshed,
            "errorMessage": self.error_message,
            "integrationStatus": self.integration_status,
            "errors": [failure.to_dict() for failure in self.errors],
        }

    def summary(self) -> dict[str, Any]:
        """Compact form persisted into integration metadata"""
        data = self.to_dict()
        data["errors"] = data["errors"][:20]
        return data


@dataclass
class SyncResult:
    """Caller-facing result of a pass"""

    success: bool
    message: str
    data: list[SyncedAttachment] = field(default_factory=list)
    metadata: SyncOutcome | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "data": [item.to_dict() for item in self.data],
            "metadata": self.metadata.to_dict() if self.metadata else None,
        }
