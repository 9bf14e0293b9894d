from abc import ABC
from typing import Any, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from invoice_sync.infrastructure.persistence.database import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(ABC, Generic[ModelType]):
    """
    Shared row access for the integration and attachment repositories.

    ``create`` and ``update`` only flush. The subclass method that owns the
    write commits, so every public write is durable on return.
    """

    def __init__(self, db: AsyncSession, model: type[ModelType]):
        self.db = db
        self.model = model

    async def get_by_id(self, id: str) -> ModelType | None:
        # id comes from CuidMixin
        model: Any = self.model
        return await self.find_one(model.id == id)

    async def find_one(self, *conditions: Any) -> ModelType | None:
        """First row matching all ``conditions``, or None"""
        result = await self.db.execute(select(self.model).where(*conditions).limit(1))
        return result.scalar_one_or_none()

    async def create(self, obj: ModelType) -> ModelType:
        self.db.add(obj)
        await self.db.flush()
        await self.db.refresh(obj)
        return obj

    async def update(self, obj: ModelType) -> ModelType:
        await self.db.flush()
        await self.db.refresh(obj)
        return obj
