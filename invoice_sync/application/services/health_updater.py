"""
Integration health and checkpoint persistence.

Owns every write the sync engine makes to an integration's status and
metadata besides the token refresh itself. Writes made on behalf of a pass
never raise: their failures are recorded on the pass outcome instead.
"""

from datetime import datetime

from invoice_sync.application.interfaces import ICheckpointStore
from invoice_sync.application.services.error_classifier import classify, extract_message
from invoice_sync.domain.entities import IntegrationEntity, SyncOutcome
from invoice_sync.domain.enums import IntegrationStatus
from invoice_sync.domain.exceptions import IntegrationNotFoundException, ValidationException
from invoice_sync.shared.enums import SyncStage
from invoice_sync.shared.telemetry.logging import get_logger
from invoice_sync.shared.utils import isoformat_z, parse_instant, utc_now

logger = get_logger(__name__)

# Statuses an operator may resume from
RESUMABLE_STATUSES = frozenset({IntegrationStatus.PAUSED, IntegrationStatus.SUCCESS})


class HealthUpdater:
    """Pause/resume integrations and persist pass checkpoints"""

    def __init__(self, store: ICheckpointStore):
        self.store = store

    async def pause(self, integration_id: str, message: str, outcome: SyncOutcome) -> None:
        """
        Move the integration to ``paused`` with ``message`` as the last error.

        Idempotent within a pass: a second call only fills in a missing
        error message. Across passes, pausing an already paused integration
        only refreshes lastErrorMessage/lastErrorAt. ``outcome`` reports
        ``paused`` only once the row is actually paused.
        """
        if outcome.is_paused or outcome.error_message is not None:
            outcome.error_message = outcome.error_message or message
            return

        outcome.error_message = message

        try:
            integration = await self.store.get_integration(integration_id)
            if integration is None:
                raise IntegrationNotFoundException(integration_id)

            changes = {}
            if integration.is_active:
                changes["status"] = IntegrationStatus.PAUSED.value
            elif not integration.is_paused:
                logger.warning(
                    "Not pausing integration %s in status %s",
                    integration_id,
                    integration.status.value,
                )

            await self.store.update_integration(
                integration_id,
                changes,
                metadata={"lastErrorMessage": message, "lastErrorAt": isoformat_z(utc_now())},
            )
        except Exception as e:
            logger.error("Failed to pause integration %s: %s", integration_id, e)
            outcome.record_failure(
                SyncStage.PAUSE_INTEGRATION,
                extract_message(e, "Failed to update integration status to paused"),
                error_class=classify(e),
            )
            return

        if integration.is_active or integration.is_paused:
            outcome.integration_status = IntegrationStatus.PAUSED.value
            logger.warning("Integration %s paused: %s", integration_id, message)
        else:
            outcome.integration_status = integration.status.value

    async def resume(self, integration_id: str) -> IntegrationEntity:
        """Operator action: paused -> success, clearing the last error"""
        integration = await self.store.get_integration(integration_id)
        if integration is None:
            raise IntegrationNotFoundException(integration_id)
        if integration.status not in RESUMABLE_STATUSES:
            raise ValidationException(
                f"Cannot resume integration in status '{integration.status.value}'",
                field="status",
            )

        updated = await self.store.update_integration(
            integration_id,
            {"status": IntegrationStatus.SUCCESS.value},
            metadata={"lastErrorMessage": None, "lastErrorAt": None},
        )
        logger.info("Integration %s resumed", integration_id)
        return updated

    async def record_checkpoint(
        self,
        integration_id: str,
        outcome: SyncOutcome,
        advance_to: datetime | None,
    ) -> None:
        """
        Persist the end-of-pass checkpoint and outcome summary.

        ``lastReadAt`` only ever moves forward: a target at or before the
        stored value is ignored. ``lastProcessedAt`` is stamped when the pass
        stored anything.
        """
        try:
            metadata: dict = {}
            if advance_to is not None:
                integration = await self.store.get_integration(integration_id)
                if integration is None:
                    raise IntegrationNotFoundException(integration_id)
                current = parse_instant(integration.metadata.get("lastReadAt"))
                if current is None or advance_to > current:
                    metadata["lastReadAt"] = isoformat_z(advance_to)
                else:
                    logger.debug(
                        "Checkpoint for %s stays at %s", integration_id, isoformat_z(current)
                    )

            if outcome.stored_attachments > 0:
                metadata["lastProcessedAt"] = isoformat_z(utc_now())
            metadata["lastSyncOutcome"] = outcome.summary()

            await self.store.update_integration(integration_id, metadata=metadata)
        except Exception as e:
            logger.error("Failed to update metadata for integration %s: %s", integration_id, e)
            outcome.record_failure(
                SyncStage.UPDATE_INTEGRATION_METADATA,
                extract_message(e, "Failed to update integration metadata"),
                error_class=classify(e),
            )
