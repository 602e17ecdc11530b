"""
Workflow Store - persistence of goals, tasks and dependency edges

Two backends share one contract:
- InMemoryWorkflowStore: dict-backed, for tests and local runs
- DatabaseWorkflowStore: SQLAlchemy async ORM through the repositories

save_task is an upsert. A task without an id is inserted and receives a
durable id; a task with an id keeps it. Updating an existing task never
touches its dependency records, so an execution copy with stripped
dependencies cannot erase the persisted edges.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Dict, List, Optional
from uuid import UUID, uuid4

from errors import ValidationError
from models import Dependency, DependencyType, Goal, GoalStatus, Task, TaskStatus
from database import Database, GoalModel, TaskModel, TaskDependencyModel
from database.repositories import GoalRepository, TaskDependencyRepository, TaskRepository

logger = logging.getLogger(__name__)


def dependencies_of(task: Task) -> List[Dependency]:
    """Dependency records for the ids embedded in a task."""
    edges = [Dependency.blocking(task.id, dep_id) for dep_id in task.blocking_dependencies]
    edges.extend(Dependency.informational(task.id, dep_id) for dep_id in task.informational_dependencies)
    return edges


def attach_edges(task: Task, edges: List[Dependency]) -> Task:
    blocking = [e.depends_on_task_id for e in edges if e.task_id == task.id and e.type == DependencyType.BLOCKING]
    informational = [
        e.depends_on_task_id for e in edges
        if e.task_id == task.id and e.type == DependencyType.INFORMATIONAL
    ]
    return task.with_dependencies(blocking, informational)


class WorkflowStore(ABC):
    """Storage contract used by the scheduler and the coordinator."""

    async def initialize(self) -> None:
        """Prepare the backend (connections, schema)."""

    async def close(self) -> None:
        """Release backend resources."""

    @abstractmethod
    async def save_task(self, task: Task, goal_id: UUID) -> Task:
        ...

    @abstractmethod
    async def save_dependency(self, dependency: Dependency, goal_id: UUID) -> Dependency:
        ...

    @abstractmethod
    async def find_tasks_by_goal(self, goal_id: UUID) -> List[Task]:
        ...

    @abstractmethod
    async def find_dependencies_by_goal(self, goal_id: UUID) -> List[Dependency]:
        ...

    @abstractmethod
    async def find_goal(self, goal_id: UUID) -> Optional[Goal]:
        ...

    @abstractmethod
    async def save_goal(self, goal: Goal) -> Goal:
        ...


class InMemoryWorkflowStore(WorkflowStore):
    """Dict-backed store. Not shared across processes."""

    def __init__(self):
        self._goals: Dict[UUID, Goal] = {}
        self._tasks: Dict[UUID, "OrderedDict[UUID, Task]"] = {}
        self._dependencies: Dict[UUID, List[Dependency]] = {}
        self._lock = asyncio.Lock()

    async def save_task(self, task: Task, goal_id: UUID) -> Task:
        async with self._lock:
            tasks = self._tasks.setdefault(goal_id, OrderedDict())

            if task.id is not None and task.id in tasks:
                tasks[task.id] = task
                return task

            saved = task if task.id is not None else task.with_id(uuid4())
            tasks[saved.id] = saved
            for edge in dependencies_of(saved):
                self._add_dependency(edge, goal_id)

            logger.debug(f"Inserted task {saved.id} for goal {goal_id}")
            return saved

    async def save_dependency(self, dependency: Dependency, goal_id: UUID) -> Dependency:
        async with self._lock:
            return self._add_dependency(dependency, goal_id)

    def _add_dependency(self, dependency: Dependency, goal_id: UUID) -> Dependency:
        edges = self._dependencies.setdefault(goal_id, [])
        for existing in edges:
            if (existing.task_id, existing.depends_on_task_id, existing.type) == \
                    (dependency.task_id, dependency.depends_on_task_id, dependency.type):
                return existing

        saved = dependency if dependency.id is not None else dependency.model_copy(update={"id": uuid4()})
        edges.append(saved)
        return saved

    async def find_tasks_by_goal(self, goal_id: UUID) -> List[Task]:
        edges = self._dependencies.get(goal_id, [])
        return [attach_edges(task, edges) for task in self._tasks.get(goal_id, {}).values()]

    async def find_dependencies_by_goal(self, goal_id: UUID) -> List[Dependency]:
        return list(self._dependencies.get(goal_id, []))

    async def find_goal(self, goal_id: UUID) -> Optional[Goal]:
        goal = self._goals.get(goal_id)
        if goal is None:
            return None
        return goal.model_copy(update={"tasks": await self.find_tasks_by_goal(goal_id)})

    async def save_goal(self, goal: Goal) -> Goal:
        self._goals[goal.id] = goal
        return goal


class DatabaseWorkflowStore(WorkflowStore):
    """
    Store backed by the relational schema (goals, tasks, task_dependencies).

    Each operation runs in its own transaction.
    """

    def __init__(self, database: Database, create_tables: bool = True):
        self.database = database
        self._create_tables = create_tables

    async def initialize(self) -> None:
        await self.database.connect()
        if self._create_tables:
            await self.database.create_tables()

    async def close(self) -> None:
        await self.database.disconnect()

    async def save_task(self, task: Task, goal_id: UUID) -> Task:
        async with self.database.session() as session:
            tasks = TaskRepository(session)

            if task.id is not None and await tasks.exists(task.id):
                await tasks.update(
                    task.id,
                    description=task.description,
                    result=task.result,
                    status=task.status.value,
                    completed_at=task.completed_at,
                )
                return task

            saved = task if task.id is not None else task.with_id(uuid4())
            await tasks.create(
                id=saved.id,
                goal_id=goal_id,
                position=await tasks.next_position(goal_id),
                description=saved.description,
                result=saved.result,
                status=saved.status.value,
                created_at=saved.created_at,
                completed_at=saved.completed_at,
            )

            dependencies = TaskDependencyRepository(session)
            for edge in dependencies_of(saved):
                await dependencies.create(
                    task_id=edge.task_id,
                    depends_on_task_id=edge.depends_on_task_id,
                    dependency_type=edge.type.value,
                    reason=edge.reason,
                )

            logger.debug(f"Inserted task {saved.id} for goal {goal_id}")
            return saved

    async def save_dependency(self, dependency: Dependency, goal_id: UUID) -> Dependency:
        async with self.database.session() as session:
            repo = TaskDependencyRepository(session)

            existing = await repo.find_edge(
                dependency.task_id,
                dependency.depends_on_task_id,
                dependency.type.value,
            )
            if existing is not None:
                return _dependency_from_model(existing)

            model = await repo.create(
                id=dependency.id or uuid4(),
                task_id=dependency.task_id,
                depends_on_task_id=dependency.depends_on_task_id,
                dependency_type=dependency.type.value,
                reason=dependency.reason,
                created_at=dependency.created_at,
            )
            return _dependency_from_model(model)

    async def find_tasks_by_goal(self, goal_id: UUID) -> List[Task]:
        async with self.database.session() as session:
            models = await TaskRepository(session).get_by_goal(goal_id)
            edges = [_dependency_from_model(m) for m in await TaskDependencyRepository(session).get_by_goal(goal_id)]
            return [attach_edges(_task_from_model(m), edges) for m in models]

    async def find_dependencies_by_goal(self, goal_id: UUID) -> List[Dependency]:
        async with self.database.session() as session:
            models = await TaskDependencyRepository(session).get_by_goal(goal_id)
            return [_dependency_from_model(m) for m in models]

    async def find_goal(self, goal_id: UUID) -> Optional[Goal]:
        async with self.database.session() as session:
            model = await GoalRepository(session).get_by_id(goal_id)
            if model is None:
                return None
            goal = _goal_from_model(model)

        return goal.model_copy(update={"tasks": await self.find_tasks_by_goal(goal_id)})

    async def save_goal(self, goal: Goal) -> Goal:
        async with self.database.session() as session:
            goals = GoalRepository(session)
            fields = dict(
                query=goal.query,
                summary=goal.summary,
                status=goal.status.value,
                error_message=goal.error_message,
                completed_at=goal.completed_at,
            )
            if await goals.exists(goal.id):
                await goals.update(goal.id, **fields)
            else:
                await goals.create(id=goal.id, created_at=goal.created_at, **fields)
        return goal


def _task_from_model(model: TaskModel) -> Task:
    return Task(
        id=model.id,
        description=model.description,
        result=model.result,
        status=TaskStatus(model.status),
        created_at=model.created_at,
        completed_at=model.completed_at,
    )


def _dependency_from_model(model: TaskDependencyModel) -> Dependency:
    return Dependency(
        id=model.id,
        task_id=model.task_id,
        depends_on_task_id=model.depends_on_task_id,
        type=DependencyType(model.dependency_type),
        reason=model.reason or "",
        created_at=model.created_at,
    )


def _goal_from_model(model: GoalModel) -> Goal:
    return Goal(
        id=model.id,
        query=model.query,
        summary=model.summary,
        status=GoalStatus(model.status),
        error_message=model.error_message,
        created_at=model.created_at,
        completed_at=model.completed_at,
    )


def create_workflow_store(backend: str = "memory", **kwargs) -> WorkflowStore:
    """
    Build a store for the named backend.

    Args:
        backend: "memory" or "database"
        **kwargs: for "database", database_url and echo are passed to Database
    """
    backend = (backend or "memory").lower()

    if backend == "memory":
        return InMemoryWorkflowStore()
    if backend == "database":
        database = Database(
            database_url=kwargs.get("database_url"),
            echo=kwargs.get("echo", False),
        )
        return DatabaseWorkflowStore(database, create_tables=kwargs.get("create_tables", True))

    raise ValidationError(f"Unknown store backend: {backend}", field="ENGINE_STORE_BACKEND")
