"""
Database module for the workflow engine.
Provides async SQLAlchemy persistence for goals, tasks and dependencies.
"""

from .connection import (
    DEFAULT_DATABASE_URL,
    get_database,
    Database,
)
from .models import Base, GoalModel, TaskModel, TaskDependencyModel

__all__ = [
    "DEFAULT_DATABASE_URL",
    "get_database",
    "Database",
    "Base",
    "GoalModel",
    "TaskModel",
    "TaskDependencyModel",
]
