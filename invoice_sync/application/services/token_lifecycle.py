"""
OAuth token lifecycle for a sync pass.

Decides whether the stored access token can be used, refreshes it when it is
missing or about to expire, and reacts to refresh failures. A pass makes at
most one refresh call, and only right before it is about to call the
provider.
"""

from dataclasses import dataclass

from invoice_sync.application.interfaces import ICheckpointStore, IMailClient, IMailProvider
from invoice_sync.application.services.error_classifier import classify, extract_message
from invoice_sync.application.services.health_updater import HealthUpdater
from invoice_sync.domain.entities import OAuthTokens, SyncOutcome
from invoice_sync.shared.enums import ErrorClass, SyncStage
from invoice_sync.shared.telemetry.logging import get_logger
from invoice_sync.shared.utils import utc_now

logger = get_logger(__name__)

DEFAULT_LEEWAY_SECONDS = 60


@dataclass
class TokenCheck:
    """Either a usable mail client or the message explaining why there is none"""

    client: IMailClient | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.client is not None


class TokenLifecycleManager:
    def __init__(
        self,
        provider: IMailProvider,
        store: ICheckpointStore,
        health: HealthUpdater,
        leeway_seconds: int = DEFAULT_LEEWAY_SECONDS,
    ):
        self.provider = provider
        self.store = store
        self.health = health
        self.leeway_seconds = leeway_seconds

    @property
    def provider_name(self) -> str:
        return self.provider.provider.display_name

    async def ensure_usable(
        self, tokens: OAuthTokens, integration_id: str, outcome: SyncOutcome
    ) -> TokenCheck:
        """
        Return a client bound to a usable access token.

        ``tokens`` is updated in place after a successful refresh. A missing
        refresh token is a dead end and pauses the integration; a refresh
        failure pauses only when it is auth-fatal.
        """
        if tokens.is_usable(utc_now(), self.leeway_seconds):
            return TokenCheck(client=self.provider.client(tokens.access_token))

        if not tokens.refresh_token:
            message = f"{self.provider_name} access token expired and refresh token is unavailable"
            outcome.record_failure(
                SyncStage.TOKEN_REFRESH,
                "Missing refresh token; cannot refresh access token",
                error_class=ErrorClass.AUTH_FATAL,
            )
            await self.health.pause(integration_id, message, outcome)
            return TokenCheck(message=message)

        try:
            refreshed = await self.provider.refresh_token(tokens)
        except Exception as e:
            message = extract_message(
                e, f"Failed to refresh {self.provider_name} integration access token"
            )
            error_class = classify(e)
            outcome.record_failure(SyncStage.TOKEN_REFRESH, message, error_class=error_class)
            logger.warning(
                "Token refresh failed for integration %s (%s): %s",
                integration_id,
                error_class.value,
                message,
            )
            if error_class == ErrorClass.AUTH_FATAL:
                await self.health.pause(integration_id, message, outcome)
            return TokenCheck(message=message)

        tokens.access_token = refreshed.access_token
        tokens.expires_at = refreshed.expires_at
        changes = {"access_token": refreshed.access_token, "token_expiry": refreshed.expires_at}
        if refreshed.refresh_token:
            tokens.refresh_token = refreshed.refresh_token
            changes["refresh_token"] = refreshed.refresh_token
        outcome.token_refreshed = True

        try:
            await self.store.update_integration(
                integration_id, changes, metadata={"lastErrorMessage": None}
            )
        except Exception as e:
            # The new token is still usable for this pass
            logger.error("Failed to persist refreshed token for %s: %s", integration_id, e)
            outcome.record_failure(
                SyncStage.TOKEN_REFRESH,
                extract_message(e, "Failed to persist refreshed access token"),
                error_class=ErrorClass.TRANSIENT,
            )

        logger.info("Refreshed %s access token for integration %s", self.provider_name, integration_id)
        return TokenCheck(client=self.provider.client(tokens.access_token))
