"""OAuth credential value objects"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from invoice_sync.shared.utils import parse_instant


@dataclass
class OAuthTokens:
    """
    Mutable in-memory view of an integration's OAuth credentials.

    The token manager updates this object in place after a refresh so the
    rest of the pass uses the new access token without re-reading the row.
    """

    access_token: str | None
    refresh_token: str | None
    expires_at: datetime | None

    @classmethod
    def from_raw(
        cls,
        access_token: str | None,
        refresh_token: str | None,
        expiry: Any,
    ) -> "OAuthTokens":
        """Build tokens from stored values; expiry may be epoch-ms, ISO text or a datetime"""
        return cls(
            access_token=access_token or None,
            refresh_token=refresh_token or None,
            expires_at=parse_instant(expiry),
        )

    def is_usable(self, now: datetime, leeway_seconds: int) -> bool:
        """Access token present and not expiring within the leeway window"""
        if not self.access_token or self.expires_at is None:
            return False
        return self.expires_at > now + timedelta(seconds=leeway_seconds)


@dataclass(frozen=True)
class RefreshedToken:
    """Result of a successful provider token refresh"""

    access_token: str
    expires_at: datetime | None = None
    # Only set when the provider rotated the refresh token
    refresh_token: str | None = None
