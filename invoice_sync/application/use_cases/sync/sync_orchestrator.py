"""
Provider-agnostic sync pass.

One pass walks the messages received since the integration's checkpoint,
stores every new invoice attachment exactly once and reports what happened.
It never raises for provider or persistence failures: each one is
classified and recorded on the outcome. Transient failures are skipped
over; an auth-fatal failure pauses the integration and ends the pass.

The checkpoint only moves as far as work actually completed. Messages that
failed with a retryable error hold it back so the next pass lists them
again; already stored attachments are then skipped by the deduplicator.
When the provider caps the listing, the checkpoint stops just before the
newest message the pass fetched, so the unlisted newer ones come next.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from invoice_sync.application.interfaces import (
    ICheckpointStore,
    IMailClient,
    IMailProvider,
)
from invoice_sync.application.services.attachment_persister import AttachmentPersister
from invoice_sync.application.services.error_classifier import classify, extract_message
from invoice_sync.application.services.fingerprint_service import ContentDeduplicator
from invoice_sync.application.services.health_updater import HealthUpdater
from invoice_sync.application.services.token_lifecycle import (
    DEFAULT_LEEWAY_SECONDS,
    TokenLifecycleManager,
)
from invoice_sync.domain.entities import (
    AttachmentDraft,
    AttachmentPart,
    IntegrationEntity,
    MailMessage,
    MessageRef,
    SyncedAttachment,
    SyncOutcome,
    SyncResult,
)
from invoice_sync.domain.enums import IntegrationStatus
from invoice_sync.infrastructure.exceptions import AttachmentEnqueueError, DuplicateAttachmentError
from invoice_sync.shared.enums import ErrorClass, SyncStage
from invoice_sync.shared.telemetry.logging import get_logger
from invoice_sync.shared.utils import isoformat_z, parse_instant, utc_now

logger = get_logger(__name__)

DEFAULT_KEYWORD = "invoice"

NO_LAST_READ = "No last read date"
INVALID_START = "Invalid start date"
MSG_PAUSED = "Integration paused due to authentication error"
MSG_PARTIAL = "Attachments synced with partial errors"
MSG_SUCCESS = "Emails synced successfully"
MSG_FAILED = "Unable to sync emails"
MSG_EMPTY = "No new emails found"


@dataclass
class _PassState:
    """Mutable bookkeeping for one pass"""

    integration: IntegrationEntity
    user_id: str
    since: datetime
    started_at: datetime
    outcome: SyncOutcome
    results: list[SyncedAttachment] = field(default_factory=list)
    listed: bool = False
    # Refs not yet fully processed; non-empty after a cancellation
    remaining: list[MessageRef] = field(default_factory=list)
    # Earliest received time among messages that must be retried
    retry_floor: datetime | None = None
    # A retryable message has no known received time
    retry_unbounded: bool = False
    # The listing left out newer matches
    truncated: bool = False
    # Latest received time among fetched messages
    newest_seen: datetime | None = None

    def hold_back(self, received_at: datetime | None) -> None:
        if received_at is None:
            self.retry_unbounded = True
        elif self.retry_floor is None or received_at < self.retry_floor:
            self.retry_floor = received_at

    def seen(self, received_at: datetime | None) -> None:
        if received_at is not None and (self.newest_seen is None or received_at > self.newest_seen):
            self.newest_seen = received_at

    def checkpoint_target(self) -> datetime | None:
        """How far lastReadAt may advance, or None to leave it untouched"""
        if not self.listed:
            return None
        for ref in self.remaining:
            self.hold_back(ref.received_at)
        if self.retry_unbounded:
            return None

        limits = []
        if self.retry_floor is not None:
            limits.append(self.retry_floor - timedelta(seconds=1))
        if self.truncated:
            # Unlisted matches are newer than everything listed
            if self.newest_seen is None:
                return None
            limits.append(self.newest_seen - timedelta(seconds=1))
        return min(limits) if limits else self.started_at


class SyncOrchestrator:
    """Drives one sync pass for one integration of one provider"""

    def __init__(
        self,
        provider: IMailProvider,
        store: ICheckpointStore,
        deduplicator: ContentDeduplicator,
        persister: AttachmentPersister,
        *,
        leeway_seconds: int = DEFAULT_LEEWAY_SECONDS,
        keyword: str | None = DEFAULT_KEYWORD,
    ):
        self.provider = provider
        self.store = store
        self.deduplicator = deduplicator
        self.persister = persister
        self.keyword = keyword or None
        self.health = HealthUpdater(store)
        self.tokens = TokenLifecycleManager(provider, store, self.health, leeway_seconds)

    async def run_pass(self, integration_id: str, user_id: str, checkpoint: Any) -> SyncResult:
        """
        Sync one integration starting from ``checkpoint``.

        ``checkpoint`` is the raw stored value (ISO text, epoch-ms or
        datetime). Absent or unparsable checkpoints short-circuit before
        any provider call.
        """
        if checkpoint is None or checkpoint == "":
            return SyncResult(success=False, message=NO_LAST_READ)
        since = parse_instant(checkpoint)
        if since is None:
            return SyncResult(success=False, message=INVALID_START)

        outcome = SyncOutcome(last_read_used=isoformat_z(since))

        integration = await self.store.get_integration(integration_id)
        if integration is None:
            return SyncResult(
                success=False, message=f"Integration not found: {integration_id}", metadata=outcome
            )
        if integration.status != IntegrationStatus.SUCCESS:
            outcome.integration_status = integration.status.value
            outcome.error_message = integration.metadata.get("lastErrorMessage")
            return SyncResult(
                success=False,
                message=outcome.error_message or f"Integration is {integration.status.value}",
                metadata=outcome,
            )

        state = _PassState(
            integration=integration,
            user_id=user_id,
            since=since,
            started_at=utc_now(),
            outcome=outcome,
        )

        try:
            return await self._run(state)
        except asyncio.CancelledError:
            logger.warning("Sync pass for integration %s cancelled", integration_id)
            await asyncio.shield(self.health.record_checkpoint(
                integration_id, outcome, state.checkpoint_target()
            ))
            raise

    async def _run(self, state: _PassState) -> SyncResult:
        outcome = state.outcome
        integration = state.integration

        check = await self.tokens.ensure_usable(integration.tokens(), integration.id, outcome)
        if not check.ok:
            return SyncResult(
                success=False,
                message=check.message
                or f"Unable to authenticate with {self.tokens.provider_name} for this integration",
                metadata=outcome,
            )
        client = check.client

        try:
            listing = await client.list_messages(state.since, self.keyword)
        except Exception as e:
            message = extract_message(e, "Failed to list messages")
            error_class = classify(e)
            outcome.record_failure(SyncStage.LIST_MESSAGES, message, error_class=error_class)
            logger.warning("Listing failed for integration %s: %s", integration.id, message)
            if error_class == ErrorClass.AUTH_FATAL:
                await self.health.pause(integration.id, message, outcome)
            return SyncResult(
                success=False, message=outcome.error_message or message, metadata=outcome
            )

        state.listed = True
        state.truncated = listing.truncated
        state.remaining = list(listing.refs)
        outcome.total_messages = len(listing.refs)
        logger.info(
            "Integration %s: %d candidate messages since %s",
            integration.id,
            len(listing.refs),
            outcome.last_read_used,
        )

        while state.remaining:
            fatal = await self._process_message(client, state.remaining[0], state)
            state.remaining.pop(0)
            if fatal:
                return SyncResult(
                    success=False,
                    message=outcome.error_message or MSG_PAUSED,
                    data=state.results,
                    metadata=outcome,
                )

        await self.health.record_checkpoint(integration.id, outcome, state.checkpoint_target())
        return self._build_result(state)

    async def _process_message(
        self, client: IMailClient, ref: MessageRef, state: _PassState
    ) -> bool:
        """Process every attachment of one message; True means the pass must stop"""
        outcome = state.outcome
        outcome.processed_messages += 1
        outcome.last_processed_message_id = ref.id

        try:
            message = await client.get_message(ref.id)
        except Exception as e:
            return await self._handle_failure(
                state,
                SyncStage.MESSAGE,
                e,
                "Failed to fetch message",
                message_id=ref.id,
                received_at=ref.received_at,
            )

        received_at = message.received_at or ref.received_at
        state.seen(received_at)
        stored_any = False
        for part in message.attachments:
            outcome.total_attachments += 1
            try:
                stored = await self._process_attachment(client, message, part, state)
            except AttachmentEnqueueError as e:
                # The row exists, so the attachment is stored and will not be retried
                outcome.stored_attachments += 1
                state.results.append(e.stored)
                stored_any = True
                outcome.record_failure(
                    SyncStage.ATTACHMENT,
                    e.message,
                    error_class=ErrorClass.TRANSIENT,
                    message_id=message.id,
                    filename=part.filename,
                )
                continue
            except Exception as e:
                if await self._handle_failure(
                    state,
                    SyncStage.ATTACHMENT,
                    e,
                    "Failed to process attachment",
                    message_id=message.id,
                    filename=part.filename,
                    received_at=received_at,
                ):
                    return True
                continue
            stored_any = stored_any or stored

        if stored_any and self.provider.supports_mark_read:
            try:
                await client.mark_read(message.id)
            except Exception as e:
                outcome.record_failure(
                    SyncStage.MARK_AS_READ,
                    extract_message(e, "Failed to mark email as read"),
                    error_class=classify(e),
                    message_id=message.id,
                )
        return False

    async def _process_attachment(
        self,
        client: IMailClient,
        message: MailMessage,
        part: AttachmentPart,
        state: _PassState,
    ) -> bool:
        """Store one attachment; False when it was a duplicate"""
        outcome = state.outcome
        hash_id = self.deduplicator.fingerprint(message.id, part.filename, part.mime_type, part.size)
        if await self.deduplicator.exists(hash_id, state.user_id):
            outcome.duplicates_skipped += 1
            return False

        content = await client.get_attachment_bytes(message.id, part)
        draft = AttachmentDraft(
            hash_id=hash_id,
            user_id=state.user_id,
            email_id=message.id,
            filename=part.filename,
            mime_type=part.mime_type,
            sender=message.sender,
            receiver=message.receiver,
            provider=self.provider.provider.value,
        )
        try:
            stored = await self.persister.persist(content, draft)
        except DuplicateAttachmentError:
            outcome.duplicates_skipped += 1
            return False

        outcome.stored_attachments += 1
        state.results.append(stored)
        return True

    async def _handle_failure(
        self,
        state: _PassState,
        stage: SyncStage,
        error: Exception,
        fallback: str,
        *,
        message_id: str | None = None,
        filename: str | None = None,
        received_at: datetime | None = None,
    ) -> bool:
        """Record a per-item failure; True when it was auth-fatal and the pass must stop"""
        message = extract_message(error, fallback)
        error_class = classify(error)
        state.outcome.record_failure(
            stage,
            message,
            error_class=error_class,
            message_id=message_id,
            filename=filename,
        )
        logger.warning(
            "%s failure for integration %s (message=%s, file=%s, %s): %s",
            stage.value,
            state.integration.id,
            message_id,
            filename,
            error_class.value,
            message,
        )
        if error_class == ErrorClass.AUTH_FATAL:
            await self.health.pause(state.integration.id, message, state.outcome)
            return True
        state.hold_back(received_at)
        return False

    @staticmethod
    def _build_result(state: _PassState) -> SyncResult:
        outcome = state.outcome
        has_errors = outcome.has_errors
        has_success = outcome.stored_attachments > 0

        if outcome.error_message:
            message = outcome.error_message
        elif has_success and has_errors:
            message = MSG_PARTIAL
        elif has_success:
            message = MSG_SUCCESS
        elif has_errors:
            message = MSG_FAILED
        else:
            message = MSG_EMPTY

        return SyncResult(
            success=has_success or (not has_errors and outcome.duplicates_skipped > 0),
            message=message,
            data=state.results,
            metadata=outcome,
        )
