"""
Task repository for database operations.
"""

import uuid
from typing import List

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from .base import BaseRepository
from ..models import TaskModel


class TaskRepository(BaseRepository[TaskModel]):
    """Repository for Task operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, TaskModel)

    async def get_by_goal(self, goal_id: uuid.UUID) -> List[TaskModel]:
        """Get a goal's tasks in insertion order."""
        result = await self.session.execute(
            select(TaskModel)
            .where(TaskModel.goal_id == goal_id)
            .order_by(TaskModel.position.asc(), TaskModel.created_at.asc())
        )
        return list(result.scalars().all())

    async def next_position(self, goal_id: uuid.UUID) -> int:
        """Position for the next task appended to a goal."""
        result = await self.session.execute(
            select(func.max(TaskModel.position)).where(TaskModel.goal_id == goal_id)
        )
        current = result.scalar()
        return 0 if current is None else current + 1
