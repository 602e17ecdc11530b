"""
Collaborator contracts consumed by the scheduler.
Planning, execution, summarization and storage live outside the core and
are reached only through these call shapes.
"""

from typing import List, Optional, Protocol, Sequence, runtime_checkable
from uuid import UUID

from models import Dependency, Goal, Plan, Task


@runtime_checkable
class Planner(Protocol):
    async def create_plan(self, goal_text: str) -> Plan:
        """Decompose a goal into tasks and dependencies (ephemeral ids)."""
        ...

    async def review_plan(self, working_tasks: Sequence[Task], completed_task: Task) -> List[Task]:
        """Return the task list, possibly with new id-less tasks appended."""
        ...


@runtime_checkable
class TaskExecutor(Protocol):
    async def execute(self, task: Task, goal_text: str, completed_tasks: Sequence[Task]) -> Task:
        """Return the task COMPLETED (with a result) or FAILED, never PENDING."""
        ...


@runtime_checkable
class GoalSummarizer(Protocol):
    async def summarize(self, goal: Goal) -> str:
        ...


@runtime_checkable
class WorkflowStorage(Protocol):
    async def save_task(self, task: Task, goal_id: UUID) -> Task:
        """Upsert. A task without an id is inserted and receives a durable id."""
        ...

    async def save_dependency(self, dependency: Dependency, goal_id: UUID) -> Dependency:
        ...

    async def find_tasks_by_goal(self, goal_id: UUID) -> List[Task]:
        ...

    async def find_goal(self, goal_id: UUID) -> Optional[Goal]:
        ...

    async def save_goal(self, goal: Goal) -> Goal:
        ...
