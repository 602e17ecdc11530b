"""
Task Graph system for the workflow engine.
Provides dependency-aware, round-based execution of a goal's tasks.
"""

from .dag import (
    DependencyError,
    ExecutionGraph,
    completed_task_ids,
    executable_frontier,
    has_cycle,
    validate_references,
)
from .sanitizer import GraphSanitizer, SanitizeReport
from .remapper import IdentityRemapper, RemapResult
from .review import PlanReviewAdapter
from .executor import ExecutionConfig, RoundScheduler, ScheduleOutcome, ScheduleReport
from .coordinator import GoalCoordinator
from .interfaces import GoalSummarizer, Planner, TaskExecutor, WorkflowStorage
from .logger import EventKind, ExecutionEvent, ExecutionLogger, execution_logger

__all__ = [
    # DAG
    "DependencyError",
    "ExecutionGraph",
    "completed_task_ids",
    "executable_frontier",
    "has_cycle",
    "validate_references",
    # Sanitizer
    "GraphSanitizer",
    "SanitizeReport",
    # Remapper
    "IdentityRemapper",
    "RemapResult",
    # Review
    "PlanReviewAdapter",
    # Executor
    "ExecutionConfig",
    "RoundScheduler",
    "ScheduleOutcome",
    "ScheduleReport",
    # Coordinator
    "GoalCoordinator",
    # Collaborators
    "Planner",
    "TaskExecutor",
    "GoalSummarizer",
    "WorkflowStorage",
    # Events
    "EventKind",
    "ExecutionEvent",
    "ExecutionLogger",
    "execution_logger",
]
