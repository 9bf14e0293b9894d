"""Mailbox integration model"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from invoice_sync.infrastructure.persistence.database import Base
from invoice_sync.infrastructure.persistence.models.mixins import CuidMixin, TimestampMixin


class Integration(CuidMixin, TimestampMixin, Base):
    """
    OAuth-connected mailbox, one per (user, provider).

    Inherits from:
        - CuidMixin: CUID primary key
        - TimestampMixin: Created/updated timestamps

    ``sync_metadata`` (column ``metadata``) is free-form JSON owned by the
    sync engine: lastReadAt, lastRead (legacy), startReading,
    lastProcessedAt, lastErrorMessage, lastErrorAt, lastSyncOutcome.
    Unknown keys must survive every update.
    """

    __tablename__ = "integration"
    __table_args__ = (UniqueConstraint("user_id", "provider", name="uq_integration_user_provider"),)

    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    provider: Mapped[str] = mapped_column(String, nullable=False, index=True)  # gmail, outlook
    status: Mapped[str] = mapped_column(
        String, nullable=False, default="not_connected", index=True
    )  # not_connected, success, paused, disconnected

    access_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    refresh_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    token_expiry: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    email: Mapped[str | None] = mapped_column(String, nullable=True)
    provider_id: Mapped[str | None] = mapped_column(String, nullable=True)

    # "metadata" is reserved on declarative classes
    sync_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSON, nullable=False, default=dict
    )

    def __repr__(self) -> str:
        return (
            f"<Integration(id={self.id}, "
            f"user_id={self.user_id}, "
            f"provider={self.provider}, "
            f"status={self.status})>"
        )
