from invoice_sync.application.services.attachment_persister import AttachmentPersister
from invoice_sync.application.services.error_classifier import classify, extract_message
from invoice_sync.application.services.fingerprint_service import (
    ContentDeduplicator,
    FingerprintService,
)
from invoice_sync.application.services.health_updater import HealthUpdater
from invoice_sync.application.services.token_lifecycle import TokenCheck, TokenLifecycleManager

__all__ = [
    "AttachmentPersister",
    "ContentDeduplicator",
    "FingerprintService",
    "HealthUpdater",
    "TokenCheck",
    "TokenLifecycleManager",
    "classify",
    "extract_message",
]
