"""
Batch sync across integrations, plus the periodic scheduler.

A batch runs one pass for every active integration of a provider and folds
the per-integration results into an aggregate report. Passes for different
integrations are independent; passes for the same integration are never run
concurrently within this process.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from invoice_sync.application.services.error_classifier import extract_message
from invoice_sync.domain.entities import IntegrationEntity, SyncResult
from invoice_sync.domain.enums import MailProvider
from invoice_sync.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

MISSING_ACCESS_TOKEN = "Missing access token"
ALREADY_RUNNING = "Sync already in progress for this integration"

ListActiveIntegrations = Callable[[MailProvider], Awaitable[list[IntegrationEntity]]]
RunIntegrationPass = Callable[[IntegrationEntity, Any], Awaitable[SyncResult]]


@dataclass
class IntegrationSyncReport:
    integration_id: str
    user_id: str
    success: bool = False
    message: str = ""
    emails_synced: int = 0
    skipped: bool = False
    result: SyncResult | None = None
    checkpoint: Any = None

    def to_dict(self) -> dict[str, Any]:
        metadata = self.result.metadata if self.result else None
        errors = [failure.to_dict() for failure in metadata.errors] if metadata else []
        return {
            "integrationId": self.integration_id,
            "userId": self.user_id,
            "success": self.success,
            "message": self.message,
            "emailsSynced": self.emails_synced,
            "skipped": self.skipped,
            "data": [item.to_dict() for item in self.result.data] if self.result else [],
            "metadata": metadata.to_dict() if metadata else None,
            "errorMessage": metadata.error_message if metadata else None,
            "error": errors or None,
            "meta": {"checkpoint": str(self.checkpoint) if self.checkpoint is not None else None},
        }


@dataclass
class BatchSyncReport:
    provider: MailProvider
    total_integrations: int = 0
    processed_integrations: int = 0
    total_emails: int = 0
    total_success: int = 0
    total_failed: int = 0
    token_refreshes: int = 0
    total_paused: int = 0
    integrations: list[IntegrationSyncReport] = field(default_factory=list)

    @property
    def message(self) -> str:
        if self.total_failed > 0 and self.total_success > 0:
            return "Emails synced with partial errors"
        if self.total_failed > 0:
            return "Unable to sync emails for any integration"
        return "Emails synced successfully"

    def add(self, report: IntegrationSyncReport) -> None:
        self.integrations.append(report)
        if report.skipped:
            return
        self.processed_integrations += 1
        metadata = report.result.metadata if report.result else None
        if metadata is not None:
            if metadata.token_refreshed:
                self.token_refreshes += 1
            if metadata.is_paused:
                self.total_paused += 1
        if report.success:
            self.total_success += 1
            self.total_emails += report.emails_synced
        else:
            self.total_failed += 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider": self.provider.value,
            "message": self.message,
            "metadata": {
                "totalIntegrations": self.total_integrations,
                "processedIntegrations": self.processed_integrations,
                "totalEmails": self.total_emails,
                "totalSuccess": self.total_success,
                "totalFailed": self.total_failed,
                "tokenRefreshes": self.token_refreshes,
                "totalPaused": self.total_paused,
            },
            "data": [item.to_dict() for item in self.integrations],
        }


class BatchSyncService:
    """
    Runs sync passes for every active integration of a provider.

    ``run_pass`` is responsible for giving each pass its own database
    session, so passes can run concurrently up to ``concurrency``.
    """

    def __init__(
        self,
        list_active: ListActiveIntegrations,
        run_pass: RunIntegrationPass,
        concurrency: int = 4,
    ):
        self.list_active = list_active
        self.run_pass = run_pass
        self.concurrency = max(1, concurrency)
        self._running: set[str] = set()

    def is_running(self, integration_id: str) -> bool:
        return integration_id in self._running

    async def sync_integration(self, integration: IntegrationEntity) -> IntegrationSyncReport:
        """Run one guarded pass and turn its result into a report"""
        checkpoint = integration.resolve_checkpoint()
        report = IntegrationSyncReport(
            integration_id=integration.id, user_id=integration.user_id, checkpoint=checkpoint
        )

        if integration.id in self._running:
            report.skipped = True
            report.message = ALREADY_RUNNING
            return report

        if not integration.access_token:
            report.message = MISSING_ACCESS_TOKEN
            return report

        self._running.add(integration.id)
        try:
            result = await self.run_pass(integration, checkpoint)
        except Exception as e:
            logger.exception("Unexpected error syncing integration %s", integration.id)
            report.message = extract_message(e, "Unexpected error during sync")
            return report
        finally:
            self._running.discard(integration.id)

        report.result = result
        report.success = result.success
        report.message = result.message or (
            "Emails synced successfully" if result.success else "Unable to sync emails"
        )
        report.emails_synced = (
            result.metadata.stored_attachments if result.metadata else len(result.data)
        )
        return report

    async def sync_provider(self, provider: MailProvider) -> BatchSyncReport:
        integrations = await self.list_active(provider)
        report = BatchSyncReport(provider=provider, total_integrations=len(integrations))
        logger.info("Syncing %d %s integrations", len(integrations), provider.value)

        semaphore = asyncio.Semaphore(self.concurrency)

        async def guarded(integration: IntegrationEntity) -> IntegrationSyncReport:
            async with semaphore:
                return await self.sync_integration(integration)

        for item in await asyncio.gather(*(guarded(i) for i in integrations)):
            report.add(item)

        logger.info(
            "%s sync finished: %d ok, %d failed, %d paused",
            provider.value,
            report.total_success,
            report.total_failed,
            report.total_paused,
        )
        return report

    async def sync_all(self) -> dict[MailProvider, BatchSyncReport]:
        """Run every provider's batch concurrently"""
        providers = list(MailProvider)
        reports = await asyncio.gather(*(self.sync_provider(p) for p in providers))
        return dict(zip(providers, reports))


class SyncScheduler:
    """Runs ``BatchSyncService.sync_all`` on a fixed interval in the background"""

    def __init__(self, batch: BatchSyncService, interval_seconds: int):
        self.batch = batch
        self.interval_seconds = interval_seconds
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="invoice-sync-scheduler")
        logger.info("Sync scheduler started (every %ds)", self.interval_seconds)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Sync scheduler stopped")

    async def run_once(self) -> dict[MailProvider, BatchSyncReport]:
        return await self.batch.sync_all()

    async def _loop(self) -> None:
        while True:
            try:
                await self.run_once()
            except Exception:
                # A failed tick must not stop the schedule
                logger.exception("Scheduled sync failed")
            await asyncio.sleep(self.interval_seconds)
