"""
Errors - error handling module

Exception taxonomy and the structured error payload of the workflow engine.
"""

from .exceptions import (
    WorkflowEngineError,
    PlanningError,
    TaskPersistenceError,
    DependencyPersistenceError,
    TaskExecutionError,
    RoundExecutionError,
    GoalNotFoundError,
    TaskNotFoundError,
    LLMError,
    ValidationError,
)

from .error_response import ErrorResponse, ErrorType, ErrorSeverity

__all__ = [
    # Exceptions
    "WorkflowEngineError",
    "PlanningError",
    "TaskPersistenceError",
    "DependencyPersistenceError",
    "TaskExecutionError",
    "RoundExecutionError",
    "GoalNotFoundError",
    "TaskNotFoundError",
    "LLMError",
    "ValidationError",

    # Response
    "ErrorResponse",
    "ErrorType",
    "ErrorSeverity",
]
