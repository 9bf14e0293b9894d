"""Attachment domain entity"""

from dataclasses import dataclass

DEFAULT_MIME_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class AttachmentDraft:
    """Everything needed to persist an attachment except its storage location"""

    hash_id: str
    user_id: str
    email_id: str
    filename: str
    mime_type: str | None
    sender: str
    receiver: str
    provider: str

    @property
    def storage_key(self) -> str:
        """Deterministic object key, so a retried upload overwrites the same blob"""
        return f"attachments/{self.hash_id}-{self.filename}"

    @property
    def effective_mime_type(self) -> str:
        return self.mime_type or DEFAULT_MIME_TYPE
