"""Stored attachment model"""

from sqlalchemy import Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from invoice_sync.infrastructure.persistence.database import Base
from invoice_sync.infrastructure.persistence.models.mixins import (
    CuidMixin,
    SoftDeleteMixin,
    TimestampMixin,
)


class Attachment(CuidMixin, TimestampMixin, SoftDeleteMixin, Base):
    """
    One row per uniquely fingerprinted attachment.

    Inherits from:
        - CuidMixin: CUID primary key
        - TimestampMixin: Created/updated timestamps
        - SoftDeleteMixin: is_deleted/deleted_at tombstone

    (hash_id, user_id) is unique among live rows only: a soft-deleted or
    skipped attachment may be stored again. The partial index is the last
    line of defence against two passes storing the same file concurrently.
    """

    __tablename__ = "attachment"
    __table_args__ = (
        Index(
            "uq_attachment_hash_user_live",
            "hash_id",
            "user_id",
            unique=True,
            postgresql_where=text("is_deleted = false AND status <> 'skipped'"),
            sqlite_where=text("is_deleted = 0 AND status <> 'skipped'"),
        ),
    )

    hash_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    email_id: Mapped[str] = mapped_column(String, nullable=False)

    filename: Mapped[str] = mapped_column(String, nullable=False)
    mime_type: Mapped[str] = mapped_column(
        String, nullable=False, default="application/octet-stream"
    )
    sender: Mapped[str | None] = mapped_column(String, nullable=True)
    receiver: Mapped[str | None] = mapped_column(String, nullable=True)
    provider: Mapped[str] = mapped_column(String, nullable=False)  # gmail, outlook

    file_url: Mapped[str] = mapped_column(Text, nullable=False)
    file_key: Mapped[str] = mapped_column(Text, nullable=False)

    status: Mapped[str] = mapped_column(
        String, nullable=False, default="pending", index=True
    )  # pending, skipped

    def __repr__(self) -> str:
        return f"<Attachment(id={self.id}, hash_id={self.hash_id}, filename={self.filename})>"
