"""
Attachment persistence: upload, then record, then enqueue.

There is no transaction spanning object storage, the database and the queue,
so the order is fixed and each partial failure has a defined result:

1. upload fails: nothing was written, the error propagates
2. insert fails after upload: the blob is orphaned (logged). The key is
   deterministic, so a retry overwrites the same object
3. enqueue fails after insert: ``AttachmentEnqueueError`` carries the stored
   record, the row stays valid and counts as stored
"""

from invoice_sync.application.interfaces import IAttachmentIndex, IObjectStorage, IProcessingQueue
from invoice_sync.application.services.error_classifier import extract_message
from invoice_sync.domain.entities import AttachmentDraft, SyncedAttachment
from invoice_sync.infrastructure.exceptions import AttachmentEnqueueError, DuplicateAttachmentError
from invoice_sync.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


class AttachmentPersister:
    def __init__(
        self,
        storage: IObjectStorage,
        index: IAttachmentIndex,
        queue: IProcessingQueue,
    ):
        self.storage = storage
        self.index = index
        self.queue = queue

    async def persist(self, content: bytes, draft: AttachmentDraft) -> SyncedAttachment:
        """
        Store one attachment.

        Raises:
            DuplicateAttachmentError: a concurrent writer inserted the same fingerprint
            AttachmentEnqueueError: stored, but the processing message was not sent
        """
        key = draft.storage_key
        file_url = await self.storage.upload(content, key, draft.effective_mime_type)

        try:
            attachment_id = await self.index.create_attachment(draft, file_url, key)
        except DuplicateAttachmentError:
            logger.info("Attachment %s already stored for user %s", draft.hash_id, draft.user_id)
            raise
        except Exception:
            logger.warning("Orphaned object %s: attachment row was not written", key)
            raise

        stored = SyncedAttachment(
            attachment_id=attachment_id,
            hash_id=draft.hash_id,
            email_id=draft.email_id,
            filename=draft.filename,
            mime_type=draft.effective_mime_type,
            sender=draft.sender,
            receiver=draft.receiver,
            file_url=file_url,
            file_key=key,
            provider=draft.provider,
        )

        try:
            await self.queue.enqueue(attachment_id)
        except Exception as e:
            logger.error("Attachment %s stored but not enqueued: %s", attachment_id, e)
            raise AttachmentEnqueueError(
                stored, extract_message(e, "Failed to enqueue attachment")
            ) from e

        logger.debug("Stored attachment %s (%s)", attachment_id, key)
        return stored
