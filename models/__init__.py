from .task import (
    TaskStatus,
    DependencyType,
    Task,
    Dependency,
    Plan,
    utc_now,
)
from .goal import (
    GoalStatus,
    TERMINAL_GOAL_STATUSES,
    Goal,
    WorkflowResult,
)

__all__ = [
    # Task
    "TaskStatus",
    "DependencyType",
    "Task",
    "Dependency",
    "Plan",
    "utc_now",
    # Goal
    "GoalStatus",
    "TERMINAL_GOAL_STATUSES",
    "Goal",
    "WorkflowResult",
]
