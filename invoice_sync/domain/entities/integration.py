"""
Integration domain entity.

This represents a connected mailbox independent of how it's stored in the
database. The sync engine only ever sees this snapshot; writes go back
through the checkpoint store.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from invoice_sync.domain.entities.tokens import OAuthTokens
from invoice_sync.domain.enums import IntegrationStatus, MailProvider

# Checkpoint keys in precedence order; lastRead is the legacy key
CHECKPOINT_KEYS = ("lastReadAt", "lastRead", "startReading")


@dataclass
class IntegrationEntity:
    """Domain entity for Integration"""

    id: str
    user_id: str
    provider: MailProvider
    status: IntegrationStatus
    access_token: str | None = None
    refresh_token: str | None = None
    token_expiry: datetime | None = None
    email: str | None = None
    provider_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def tokens(self) -> OAuthTokens:
        return OAuthTokens.from_raw(self.access_token, self.refresh_token, self.token_expiry)

    def resolve_checkpoint(self) -> Any:
        """
        Raw checkpoint value the next pass should start from.

        Returned unparsed so the orchestrator can distinguish "absent" from
        "present but invalid".
        """
        for key in CHECKPOINT_KEYS:
            value = self.metadata.get(key)
            if value not in (None, ""):
                return value
        return None

    @property
    def is_paused(self) -> bool:
        return self.status == IntegrationStatus.PAUSED

    @property
    def is_active(self) -> bool:
        return self.status == IntegrationStatus.SUCCESS
