"""
Goal repository for database operations.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from .base import BaseRepository
from ..models import GoalModel


class GoalRepository(BaseRepository[GoalModel]):
    """Repository for Goal operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, GoalModel)
