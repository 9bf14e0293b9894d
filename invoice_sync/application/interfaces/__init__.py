from invoice_sync.application.interfaces.services import (
    IAttachmentIndex,
    ICheckpointStore,
    IMailClient,
    IMailProvider,
    IObjectStorage,
    IProcessingQueue,
)

__all__ = [
    "IAttachmentIndex",
    "ICheckpointStore",
    "IMailClient",
    "IMailProvider",
    "IObjectStorage",
    "IProcessingQueue",
]
