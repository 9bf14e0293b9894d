from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from invoice_sync.domain.entities import AttachmentDraft
from invoice_sync.domain.enums import AttachmentStatus
from invoice_sync.infrastructure.exceptions import DuplicateAttachmentError
from invoice_sync.infrastructure.persistence.models.attachment import Attachment
from invoice_sync.infrastructure.persistence.repositories.base import BaseRepository
from invoice_sync.shared.utils import utc_now


class AttachmentRepository(BaseRepository[Attachment]):
    """Attachment rows: what has already been stored, per user"""

    def __init__(self, db: AsyncSession):
        super().__init__(db, Attachment)

    @staticmethod
    def _live():
        return (
            Attachment.is_deleted.is_(False),
            Attachment.status != AttachmentStatus.SKIPPED.value,
        )

    async def exists(self, hash_id: str, user_id: str) -> bool:
        result = await self.db.execute(
            select(Attachment.id)
            .where(Attachment.hash_id == hash_id, Attachment.user_id == user_id, *self._live())
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def create_attachment(self, draft: AttachmentDraft, file_url: str, file_key: str) -> str:
        """Insert and commit; a unique-constraint conflict becomes DuplicateAttachmentError"""
        attachment = Attachment(
            hash_id=draft.hash_id,
            user_id=draft.user_id,
            email_id=draft.email_id,
            filename=draft.filename,
            mime_type=draft.effective_mime_type,
            sender=draft.sender,
            receiver=draft.receiver,
            provider=draft.provider,
            file_url=file_url,
            file_key=file_key,
            status=AttachmentStatus.PENDING.value,
        )
        try:
            await self.create(attachment)
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise DuplicateAttachmentError(draft.hash_id, draft.user_id) from e
        except Exception:
            await self.db.rollback()
            raise
        return attachment.id

    async def list_for_user(
        self, user_id: str, page: int = 1, limit: int = 20
    ) -> tuple[list[Attachment], int]:
        """Live attachments of a user, newest first, with the total count"""
        filters = (Attachment.user_id == user_id, *self._live())
        total = await self.db.scalar(select(func.count()).select_from(Attachment).where(*filters))
        result = await self.db.execute(
            select(Attachment)
            .where(*filters)
            .order_by(Attachment.created_at.desc(), Attachment.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), int(total or 0)

    async def soft_delete(self, attachment_id: str, user_id: str) -> bool:
        """Tombstone an attachment; its fingerprint becomes storable again"""
        attachment = await self.find_one(
            Attachment.id == attachment_id,
            Attachment.user_id == user_id,
            Attachment.is_deleted.is_(False),
        )
        if attachment is None:
            return False
        attachment.is_deleted = True
        attachment.deleted_at = utc_now()
        await self.update(attachment)
        await self.db.commit()
        return True
