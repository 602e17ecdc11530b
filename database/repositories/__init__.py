"""
Repository pattern implementations for database access.
"""

from .base import BaseRepository
from .goal_repository import GoalRepository
from .task_repository import TaskRepository
from .dependency_repository import TaskDependencyRepository

__all__ = [
    "BaseRepository",
    "GoalRepository",
    "TaskRepository",
    "TaskDependencyRepository",
]
