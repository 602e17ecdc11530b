"""
Task dependency repository for database operations.
"""

import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .base import BaseRepository
from ..models import TaskDependencyModel, TaskModel


class TaskDependencyRepository(BaseRepository[TaskDependencyModel]):
    """Repository for dependency edges."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, TaskDependencyModel)

    async def get_by_goal(self, goal_id: uuid.UUID) -> List[TaskDependencyModel]:
        """Get every edge whose dependent task belongs to the goal."""
        result = await self.session.execute(
            select(TaskDependencyModel)
            .join(TaskModel, TaskModel.id == TaskDependencyModel.task_id)
            .where(TaskModel.goal_id == goal_id)
            .order_by(TaskDependencyModel.created_at.asc())
        )
        return list(result.scalars().all())

    async def find_edge(
        self,
        task_id: uuid.UUID,
        depends_on_task_id: uuid.UUID,
        dependency_type: str,
    ) -> Optional[TaskDependencyModel]:
        result = await self.session.execute(
            select(TaskDependencyModel)
            .where(TaskDependencyModel.task_id == task_id)
            .where(TaskDependencyModel.depends_on_task_id == depends_on_task_id)
            .where(TaskDependencyModel.dependency_type == dependency_type)
        )
        return result.scalar_one_or_none()
