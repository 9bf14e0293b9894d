"""
Service interfaces (ports) for the application layer.

These protocols define the contracts the sync engine consumes.
Following Dependency Inversion Principle (DIP): infrastructure adapters
implement them, tests replace them with in-memory fakes.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from invoice_sync.domain.entities import (
        AttachmentDraft,
        AttachmentPart,
        IntegrationEntity,
        MailMessage,
        MessageListing,
        OAuthTokens,
        RefreshedToken,
    )
    from invoice_sync.domain.enums import MailProvider


class IMailClient(Protocol):
    """Mail API bound to one usable access token"""

    async def list_messages(self, since: datetime, keyword: str | None) -> MessageListing:
        """List candidate messages received at or after ``since``, oldest kept when capped"""
        ...

    async def get_message(self, message_id: str) -> MailMessage:
        """Fetch a message with its file attachment parts"""
        ...

    async def get_attachment_bytes(self, message_id: str, part: AttachmentPart) -> bytes:
        """Download the content of one attachment part"""
        ...

    async def mark_read(self, message_id: str) -> None:
        """Mark a message as read at the provider"""
        ...


class IMailProvider(Protocol):
    """Protocol for mailbox providers (Gmail, Outlook)"""

    @property
    def provider(self) -> MailProvider:
        ...

    @property
    def supports_mark_read(self) -> bool:
        """Whether processed messages should be marked read"""
        ...

    async def refresh_token(self, tokens: OAuthTokens) -> RefreshedToken:
        """Exchange the refresh token for a new access token"""
        ...

    def client(self, access_token: str) -> IMailClient:
        """Bind the mail API to an access token"""
        ...


class ICheckpointStore(Protocol):
    """Integration row access used by the sync engine"""

    async def get_integration(self, integration_id: str) -> IntegrationEntity | None:
        ...

    async def update_integration(
        self,
        integration_id: str,
        changes: dict[str, Any] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> IntegrationEntity:
        """
        Apply column changes and merge ``metadata`` into the stored metadata.

        Keys absent from ``metadata`` are preserved.
        """
        ...


class IAttachmentIndex(Protocol):
    """Attachment rows: the source of truth for what is already stored"""

    async def exists(self, hash_id: str, user_id: str) -> bool:
        """True if a live (not deleted, not skipped) row has this fingerprint"""
        ...

    async def create_attachment(self, draft: AttachmentDraft, file_url: str, file_key: str) -> str:
        """Insert a row and return its id; raises DuplicateAttachmentError on conflict"""
        ...


class IObjectStorage(Protocol):
    async def upload(self, content: bytes, key: str, content_type: str) -> str:
        """Store bytes under ``key`` and return the object URL"""
        ...


class IProcessingQueue(Protocol):
    async def enqueue(self, attachment_id: str) -> None:
        ...
