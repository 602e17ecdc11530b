"""
Shared repository operations for the goal, task and dependency tables.
"""

import uuid
from typing import TypeVar, Generic, Optional, Type, Any

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Id-keyed access to one workflow table within a caller-owned session."""

    def __init__(self, session: AsyncSession, model: Type[ModelType]):
        self.session = session
        self.model = model

    async def create(self, **kwargs: Any) -> ModelType:
        """Insert a row and return it with server defaults loaded."""
        instance = self.model(**kwargs)
        self.session.add(instance)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def get_by_id(self, id: uuid.UUID) -> Optional[ModelType]:
        result = await self.session.execute(
            select(self.model).where(self.model.id == id)
        )
        return result.scalar_one_or_none()

    async def update(self, id: uuid.UUID, **kwargs: Any) -> Optional[ModelType]:
        """Update a record by ID. Keys passed explicitly as None are written as NULL."""
        await self.session.execute(
            update(self.model)
            .where(self.model.id == id)
            .values(**kwargs)
            .execution_options(synchronize_session="fetch")
        )
        await self.session.flush()
        return await self.get_by_id(id)

    async def exists(self, id: uuid.UUID) -> bool:
        """Used to decide between insert and update on upsert."""
        result = await self.session.execute(
            select(func.count())
            .select_from(self.model)
            .where(self.model.id == id)
        )
        return (result.scalar() or 0) > 0
