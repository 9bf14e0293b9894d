from invoice_sync.infrastructure.persistence.repositories.attachment_repo import (
    AttachmentRepository,
)
from invoice_sync.infrastructure.persistence.repositories.base import BaseRepository
from invoice_sync.infrastructure.persistence.repositories.integration_repo import (
    IntegrationRepository,
)

__all__ = ["AttachmentRepository", "BaseRepository", "IntegrationRepository"]
