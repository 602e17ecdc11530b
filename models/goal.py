from enum import Enum
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from .task import Task, TaskStatus, utc_now


class GoalStatus(str, Enum):
    PLANNING = "planning"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    STALLED = "stalled"  # terminated with PENDING tasks that can never run
    FAILED = "failed"


TERMINAL_GOAL_STATUSES = (GoalStatus.COMPLETED, GoalStatus.STALLED, GoalStatus.FAILED)


class Goal(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    query: str
    tasks: List[Task] = Field(default_factory=list)
    summary: Optional[str] = None
    status: GoalStatus = GoalStatus.PLANNING
    error_message: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    completed_at: Optional[datetime] = None

    @classmethod
    def create(cls, query: str) -> "Goal":
        return cls(query=query)

    def with_tasks(self, tasks: List[Task]) -> "Goal":
        return self.model_copy(update={"tasks": list(tasks), "status": GoalStatus.IN_PROGRESS})

    def with_summary(self, summary: str, status: GoalStatus = GoalStatus.COMPLETED) -> "Goal":
        return self.model_copy(update={
            "summary": summary,
            "status": status,
            "completed_at": utc_now(),
        })

    def with_status(self, status: GoalStatus) -> "Goal":
        update: Dict[str, Any] = {"status": status}
        if status in TERMINAL_GOAL_STATUSES:
            update["completed_at"] = utc_now()
        return self.model_copy(update=update)

    def with_error(self, message: str) -> "Goal":
        """Mark the goal FAILED with the captured error message."""
        return self.model_copy(update={
            "status": GoalStatus.FAILED,
            "error_message": message,
            "completed_at": utc_now(),
        })

    def is_terminal(self) -> bool:
        return self.status in TERMINAL_GOAL_STATUSES

    def count_tasks(self, status: TaskStatus) -> int:
        return sum(1 for task in self.tasks if task.status == status)


class WorkflowResult(BaseModel):
    """Terminal outcome handed back to the caller of the coordinator."""

    goal: Goal
    start_time: datetime
    end_time: datetime
    duration_ms: float
    success: bool
    outcome: str
    rounds: int = 0
    error: Optional[Dict[str, Any]] = None

    @classmethod
    def finished(
        cls,
        goal: Goal,
        start_time: datetime,
        outcome: str,
        rounds: int = 0,
        error: Optional[Dict[str, Any]] = None,
    ) -> "WorkflowResult":
        end_time = utc_now()
        return cls(
            goal=goal,
            start_time=start_time,
            end_time=end_time,
            duration_ms=(end_time - start_time).total_seconds() * 1000,
            success=goal.status == GoalStatus.COMPLETED,
            outcome=outcome,
            rounds=rounds,
            error=error,
        )
