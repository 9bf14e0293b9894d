"""Domain entities."""

from invoice_sync.domain.entities.attachment import AttachmentDraft
from invoice_sync.domain.entities.integration import IntegrationEntity
from invoice_sync.domain.entities.mail import (
    AttachmentPart,
    MailMessage,
    MessageListing,
    MessageRef,
)
from invoice_sync.domain.entities.sync_outcome import (
    SyncedAttachment,
    SyncFailure,
    SyncOutcome,
    SyncResult,
)
from invoice_sync.domain.entities.tokens import OAuthTokens, RefreshedToken

__all__ = [
    "AttachmentDraft",
    "AttachmentPart",
    "IntegrationEntity",
    "MailMessage",
    "MessageListing",
    "MessageRef",
    "OAuthTokens",
    "RefreshedToken",
    "SyncedAttachment",
    "SyncFailure",
    "SyncOutcome",
    "SyncResult",
]
