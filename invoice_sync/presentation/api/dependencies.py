"""
FastAPI dependencies and sync engine wiring.

The HTTP routes and the background scheduler share one ``BatchSyncService``
so the one-pass-per-integration guard covers both.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from invoice_sync.application.services import (
    AttachmentPersister,
    ContentDeduplicator,
    HealthUpdater,
)
from invoice_sync.application.use_cases.sync import BatchSyncService, SyncOrchestrator
from invoice_sync.domain.entities import IntegrationEntity, SyncResult
from invoice_sync.domain.enums import MailProvider
from invoice_sync.infrastructure.config.settings import get_settings
from invoice_sync.infrastructure.external.mail import MailProviderFactory
from invoice_sync.infrastructure.external.queue import SqsProcessingQueue
from invoice_sync.infrastructure.external.storage import S3StorageService
from invoice_sync.infrastructure.persistence.database import AsyncSessionLocal, get_db
from invoice_sync.infrastructure.persistence.repositories import (
    AttachmentRepository,
    IntegrationRepository,
)

# Global service instances (singletons)
_storage_service: S3StorageService | None = None
_processing_queue: SqsProcessingQueue | None = None
_mail_providers: dict[MailProvider, object] = {}
_batch_sync_service: BatchSyncService | None = None


def get_storage_service() -> S3StorageService:
    global _storage_service
    if _storage_service is None:
        settings = get_settings()
        _storage_service = S3StorageService(
            bucket=settings.s3_bucket,
            region=settings.s3_region,
            endpoint_url=settings.s3_endpoint_url,
            access_key=settings.s3_access_key,
            secret_key=settings.s3_secret_key,
        )
    return _storage_service


def get_processing_queue() -> SqsProcessingQueue:
    global _processing_queue
    if _processing_queue is None:
        settings = get_settings()
        _processing_queue = SqsProcessingQueue(
            queue_url=settings.sqs_queue_url,
            region=settings.sqs_region,
            endpoint_url=settings.sqs_endpoint_url,
            access_key=settings.s3_access_key,
            secret_key=settings.s3_secret_key,
        )
    return _processing_queue


def get_mail_provider(provider: MailProvider):
    if provider not in _mail_providers:
        _mail_providers[provider] = MailProviderFactory.create_provider(provider, get_settings())
    return _mail_providers[provider]


def build_orchestrator(session: AsyncSession, provider: MailProvider) -> SyncOrchestrator:
    """Wire a sync orchestrator whose repositories share ``session``"""
    settings = get_settings()
    integrations = IntegrationRepository(session)
    attachments = AttachmentRepository(session)
    return SyncOrchestrator(
        provider=get_mail_provider(provider),
        store=integrations,
        deduplicator=ContentDeduplicator(attachments),
        persister=AttachmentPersister(
            storage=get_storage_service(),
            index=attachments,
            queue=get_processing_queue(),
        ),
        leeway_seconds=settings.token_refresh_leeway_seconds,
        keyword=settings.invoice_keyword,
    )


async def list_active_integrations(provider: MailProvider) -> list[IntegrationEntity]:
    async with AsyncSessionLocal() as session:
        return await IntegrationRepository(session).list_active(provider)


async def run_integration_pass(integration: IntegrationEntity, checkpoint) -> SyncResult:
    """Run one pass in its own session so passes can run concurrently"""
    async with AsyncSessionLocal() as session:
        orchestrator = build_orchestrator(session, integration.provider)
        return await orchestrator.run_pass(integration.id, integration.user_id, checkpoint)


def get_batch_sync_service() -> BatchSyncService:
    global _batch_sync_service
    if _batch_sync_service is None:
        _batch_sync_service = BatchSyncService(
            list_active=list_active_integrations,
            run_pass=run_integration_pass,
        )
    return _batch_sync_service


async def get_integration_repository(
    db: AsyncSession = Depends(get_db),
) -> IntegrationRepository:
    return IntegrationRepository(db)


async def get_attachment_repository(
    db: AsyncSession = Depends(get_db),
) -> AttachmentRepository:
    return AttachmentRepository(db)


async def get_health_updater(
    integrations: IntegrationRepository = Depends(get_integration_repository),
) -> HealthUpdater:
    return HealthUpdater(integrations)
