from invoice_sync.application.use_cases.sync.batch_sync import (
    BatchSyncReport,
    BatchSyncService,
    IntegrationSyncReport,
    SyncScheduler,
)
from invoice_sync.application.use_cases.sync.sync_orchestrator import SyncOrchestrator

__all__ = [
    "BatchSyncReport",
    "BatchSyncService",
    "IntegrationSyncReport",
    "SyncOrchestrator",
    "SyncScheduler",
]
