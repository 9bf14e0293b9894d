"""Domain enumerations for the invoice sync service."""

from enum import Enum


class IntegrationStatus(str, Enum):
    """
    Integration health.

    Transitions: not_connected -> success -> (paused <-> success) -> disconnected.
    Only the sync engine moves success -> paused; everything else is an
    explicit user or operator action.
    """

    NOT_CONNECTED = "not_connected"
    SUCCESS = "success"
    PAUSED = "paused"
    DISCONNECTED = "disconnected"


class MailProvider(str, Enum):
    """Supported mailbox providers"""

    GMAIL = "gmail"
    OUTLOOK = "outlook"

    @property
    def display_name(self) -> str:
        return {"gmail": "Gmail", "outlook": "Outlook"}[self.value]


class AttachmentStatus(str, Enum):
    """Attachment processing status"""

    PENDING = "pending"
    SKIPPED = "skipped"
