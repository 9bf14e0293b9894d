from invoice_sync.infrastructure.persistence.models.attachment import Attachment
from invoice_sync.infrastructure.persistence.models.integration import Integration

__all__ = ["Attachment", "Integration"]
