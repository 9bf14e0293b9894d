from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from invoice_sync.domain.entities import IntegrationEntity
from invoice_sync.domain.enums import IntegrationStatus, MailProvider
from invoice_sync.domain.exceptions import IntegrationNotFoundException
from invoice_sync.infrastructure.persistence.models.integration import Integration
from invoice_sync.infrastructure.persistence.repositories.base import BaseRepository
from invoice_sync.shared.utils import ensure_utc

# Columns the sync engine is allowed to change
UPDATABLE_COLUMNS = frozenset({"status", "access_token", "refresh_token", "token_expiry"})


class IntegrationRepository(BaseRepository[Integration]):
    """
    Checkpoint store backed by the integration table.

    Every update is its own unit of work: the row is locked, metadata is
    merged key by key (unknown keys are preserved) and the change is
    committed before returning.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(db, Integration)

    @staticmethod
    def to_entity(row: Integration) -> IntegrationEntity:
        return IntegrationEntity(
            id=row.id,
            user_id=row.user_id,
            provider=MailProvider(row.provider),
            status=IntegrationStatus(row.status),
            access_token=row.access_token,
            refresh_token=row.refresh_token,
            token_expiry=ensure_utc(row.token_expiry) if row.token_expiry else None,
            email=row.email,
            provider_id=row.provider_id,
            metadata=dict(row.sync_metadata or {}),
        )

    async def get_integration(self, integration_id: str) -> IntegrationEntity | None:
        row = await self.get_by_id(integration_id)
        if row is None:
            return None
        # Another session may have committed since this row was loaded
        await self.db.refresh(row)
        return self.to_entity(row)

    async def list_active(self, provider: MailProvider) -> list[IntegrationEntity]:
        """Integrations of ``provider`` eligible for a scheduled pass"""
        result = await self.db.execute(
            select(Integration)
            .where(
                Integration.provider == provider.value,
                Integration.status == IntegrationStatus.SUCCESS.value,
            )
            .order_by(Integration.created_at)
        )
        return [self.to_entity(row) for row in result.scalars().all()]

    async def update_integration(
        self,
        integration_id: str,
        changes: dict[str, Any] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> IntegrationEntity:
        unknown = set(changes or {}) - UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update integration columns: {sorted(unknown)}")

        try:
            result = await self.db.execute(
                select(Integration)
                .where(Integration.id == integration_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            row = result.scalar_one_or_none()
            if row is None:
                raise IntegrationNotFoundException(integration_id)

            for key, value in (changes or {}).items():
                setattr(row, key, value)
            if metadata:
                # Assign a new dict so the JSON column is flagged dirty
                row.sync_metadata = {**(row.sync_metadata or {}), **metadata}

            await self.update(row)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        return self.to_entity(row)
