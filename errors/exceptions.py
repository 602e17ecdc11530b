"""
Exceptions - custom exception classes

Standardized exceptions raised by the workflow engine. Failures that stop a
goal (planning, task persistence, a failed round) propagate to the goal
coordinator; partial degradations are absorbed where they happen.
"""

from typing import Optional, Dict, Any


class WorkflowEngineError(Exception):
    """Base error for the workflow engine."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Args:
            message: error message
            code: error code
            details: extra details
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


class PlanningError(WorkflowEngineError):
    """Raised when the planner cannot produce an initial plan."""

    def __init__(self, message: str, goal_id: Optional[str] = None):
        super().__init__(
            message=f"Planning failed: {message}",
            code="PLANNING_FAILED",
            details={"goal_id": goal_id} if goal_id else {}
        )


class TaskPersistenceError(WorkflowEngineError):
    """A task could not be durably recorded."""

    def __init__(self, description: str, reason: str, goal_id: Optional[str] = None):
        super().__init__(
            message=f"Failed to persist task '{description}': {reason}",
            code="TASK_PERSISTENCE_FAILED",
            details={"description": description, "reason": reason, "goal_id": goal_id}
        )


class DependencyPersistenceError(WorkflowEngineError):
    """A single dependency edge could not be persisted."""

    def __init__(self, task_id: str, depends_on_task_id: str, reason: str):
        super().__init__(
            message=f"Failed to persist dependency {task_id} -> {depends_on_task_id}: {reason}",
            code="DEPENDENCY_PERSISTENCE_FAILED",
            details={
                "task_id": task_id,
                "depends_on_task_id": depends_on_task_id,
                "reason": reason
            }
        )


class TaskExecutionError(WorkflowEngineError):
    """The executor raised, timed out, or broke its result contract."""

    def __init__(self, task_id: str, reason: str):
        super().__init__(
            message=f"Execution of task {task_id} failed: {reason}",
            code="TASK_EXECUTION_FAILED",
            details={"task_id": task_id, "reason": reason}
        )
        self.task_id = task_id


class RoundExecutionError(WorkflowEngineError):
    """A round was cancelled because one of its units failed."""

    def __init__(self, round_number: int, cause: Exception, cancelled: int = 0):
        super().__init__(
            message=f"Round {round_number} failed: {cause}",
            code="ROUND_EXECUTION_FAILED",
            details={
                "round": round_number,
                "cause": str(cause),
                "cancelled": cancelled
            }
        )
        self.round_number = round_number
        self.cause = cause


class GoalNotFoundError(WorkflowEngineError):
    def __init__(self, goal_id: str):
        super().__init__(
            message=f"Goal '{goal_id}' not found",
            code="GOAL_NOT_FOUND",
            details={"goal_id": goal_id}
        )


class TaskNotFoundError(WorkflowEngineError):
    def __init__(self, task_id: str):
        super().__init__(
            message=f"Task '{task_id}' not found",
            code="TASK_NOT_FOUND",
            details={"task_id": task_id}
        )


class LLMError(WorkflowEngineError):
    """LLM call failure"""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        model: Optional[str] = None,
        status_code: Optional[int] = None
    ):
        super().__init__(
            message=message,
            code="LLM_ERROR",
            details={
                "operation": operation,
                "model": model,
                "status_code": status_code
            }
        )


class ValidationError(WorkflowEngineError):
    """Invalid input or configuration."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            details={"field": field} if field else {}
        )
