from enum import Enum
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional, Tuple
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TaskStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class DependencyType(str, Enum):
    BLOCKING = "blocking"            # task may not start until the dependency is COMPLETED
    INFORMATIONAL = "informational"  # context only, no ordering


def _ordered_unique(ids: Iterable[UUID]) -> Tuple[UUID, ...]:
    seen = set()
    ordered = []
    for task_id in ids:
        if task_id not in seen:
            seen.add(task_id)
            ordered.append(task_id)
    return tuple(ordered)


class Task(BaseModel):
    """
    A unit of work planned for a goal.

    Tasks are immutable values; every transition returns a new instance.
    A task whose ``id`` is ``None`` has not been given a durable id yet.
    """

    model_config = ConfigDict(frozen=True)

    id: Optional[UUID] = Field(default_factory=uuid4)
    description: str
    result: Optional[str] = None
    status: TaskStatus = TaskStatus.PENDING
    blocking_dependencies: Tuple[UUID, ...] = ()
    informational_dependencies: Tuple[UUID, ...] = ()
    created_at: datetime = Field(default_factory=utc_now)
    completed_at: Optional[datetime] = None

    @field_validator("blocking_dependencies", "informational_dependencies", mode="before")
    @classmethod
    def _dedupe_dependencies(cls, value: Any) -> Tuple[UUID, ...]:
        if value is None:
            return ()
        return _ordered_unique(UUID(str(v)) if not isinstance(v, UUID) else v for v in value)

    @model_validator(mode="before")
    @classmethod
    def _stamp_completion(cls, data: Any) -> Any:
        if isinstance(data, dict):
            status = data.get("status")
            if status in (TaskStatus.COMPLETED, TaskStatus.COMPLETED.value) and not data.get("completed_at"):
                data = {**data, "completed_at": utc_now()}
        return data

    @classmethod
    def create(
        cls,
        description: str,
        blocking: Optional[Iterable[UUID]] = None,
        informational: Optional[Iterable[UUID]] = None,
    ) -> "Task":
        """Create a PENDING task with a fresh ephemeral id."""
        return cls(
            description=description,
            blocking_dependencies=tuple(blocking or ()),
            informational_dependencies=tuple(informational or ()),
        )

    def with_result(self, result: str) -> "Task":
        """Mark the task COMPLETED with the given result."""
        return self.model_copy(update={
            "result": result,
            "status": TaskStatus.COMPLETED,
            "completed_at": utc_now(),
        })

    def with_status(self, status: TaskStatus) -> "Task":
        update = {"status": status}
        if status == TaskStatus.COMPLETED:
            update["completed_at"] = utc_now()
        return self.model_copy(update=update)

    def with_failure(self, message: str) -> "Task":
        return self.model_copy(update={"status": TaskStatus.FAILED, "result": message})

    def with_id(self, task_id: Optional[UUID]) -> "Task":
        return self.model_copy(update={"id": task_id})

    def with_dependencies(
        self,
        blocking: Iterable[UUID] = (),
        informational: Iterable[UUID] = (),
    ) -> "Task":
        # model_copy skips validation, so normalize here
        return self.model_copy(update={
            "blocking_dependencies": _ordered_unique(blocking),
            "informational_dependencies": _ordered_unique(informational),
        })

    def without_dependencies(self) -> "Task":
        return self.with_dependencies((), ())

    def has_blocking_dependencies(self) -> bool:
        return bool(self.blocking_dependencies)

    def has_informational_dependencies(self) -> bool:
        return bool(self.informational_dependencies)

    def has_dependencies(self) -> bool:
        return self.has_blocking_dependencies() or self.has_informational_dependencies()

    def all_dependencies(self) -> Tuple[UUID, ...]:
        return _ordered_unique(self.blocking_dependencies + self.informational_dependencies)

    def can_execute(self, completed_task_ids: Iterable[UUID]) -> bool:
        """Check whether every blocking dependency is among the completed ids."""
        completed = set(completed_task_ids)
        return all(dep_id in completed for dep_id in self.blocking_dependencies)

    def is_terminal(self) -> bool:
        return self.status in (TaskStatus.COMPLETED, TaskStatus.FAILED)


class Dependency(BaseModel):
    """An edge: ``task_id`` depends on ``depends_on_task_id``."""

    model_config = ConfigDict(frozen=True)

    id: Optional[UUID] = None
    task_id: UUID
    depends_on_task_id: UUID
    type: DependencyType = DependencyType.BLOCKING
    reason: str = ""
    created_at: datetime = Field(default_factory=utc_now)

    @classmethod
    def blocking(cls, task_id: UUID, depends_on_task_id: UUID, reason: str = "") -> "Dependency":
        return cls(
            task_id=task_id,
            depends_on_task_id=depends_on_task_id,
            type=DependencyType.BLOCKING,
            reason=reason,
        )

    @classmethod
    def informational(cls, task_id: UUID, depends_on_task_id: UUID, reason: str = "") -> "Dependency":
        return cls(
            task_id=task_id,
            depends_on_task_id=depends_on_task_id,
            type=DependencyType.INFORMATIONAL,
            reason=reason,
        )

    def is_self_dependency(self) -> bool:
        return self.task_id == self.depends_on_task_id


class Plan(BaseModel):
    """The unit exchanged between the planner and the scheduler."""

    tasks: List[Task] = Field(default_factory=list)
    dependencies: List[Dependency] = Field(default_factory=list)

    @classmethod
    def of(cls, tasks: List[Task], dependencies: Optional[List[Dependency]] = None) -> "Plan":
        return cls(tasks=list(tasks), dependencies=list(dependencies or []))

    def task_ids(self) -> List[Optional[UUID]]:
        return [task.id for task in self.tasks]
