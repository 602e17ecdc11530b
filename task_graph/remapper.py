"""
Identity remapper.
Persists a planning-phase plan and rewrites its edges from the planner's
ephemeral task ids to the durable ids assigned by storage.

Two phases: every task is persisted (a failure here is fatal), then every
edge is remapped and persisted on a best-effort basis.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set, Tuple
from uuid import UUID

from errors import DependencyPersistenceError, TaskPersistenceError, WorkflowEngineError
from models import Dependency, DependencyType, Plan, Task
from .interfaces import WorkflowStorage
from .logger import ExecutionLogger

logger = logging.getLogger(__name__)


@dataclass
class RemapResult:
    """Persisted tasks with their dependency sets keyed by durable id."""
    tasks: List[Task]
    dependencies: List[Dependency] = field(default_factory=list)
    id_mapping: Dict[UUID, UUID] = field(default_factory=dict)
    dropped: List[Dependency] = field(default_factory=list)


def plan_edges(plan: Plan) -> List[Dependency]:
    """
    Get every edge of the plan.

    Explicit dependency records come first; dependency ids embedded in the
    tasks that no record covers are added as edges with an empty reason.
    """
    edges = list(plan.dependencies)
    covered: Set[Tuple[UUID, UUID, DependencyType]] = {
        (dep.task_id, dep.depends_on_task_id, dep.type) for dep in edges
    }

    for task in plan.tasks:
        if task.id is None:
            continue
        for dep_type, dep_ids in (
            (DependencyType.BLOCKING, task.blocking_dependencies),
            (DependencyType.INFORMATIONAL, task.informational_dependencies),
        ):
            for dep_id in dep_ids:
                key = (task.id, dep_id, dep_type)
                if key not in covered:
                    covered.add(key)
                    edges.append(Dependency(task_id=task.id, depends_on_task_id=dep_id, type=dep_type))

    return edges


class IdentityRemapper:
    """
    Bridges planning ids and durable ids.

    Example:
        remapper = IdentityRemapper(store)
        result = await remapper.remap(plan, goal.id)
        tasks = result.tasks  # durable ids only
    """

    def __init__(self, store: WorkflowStorage, execution_logger: Optional[ExecutionLogger] = None):
        self._store = store
        self._events = execution_logger

    async def remap(self, plan: Plan, goal_id: UUID) -> RemapResult:
        edges = plan_edges(plan)
        logger.info(
            f"Persisting plan with {len(plan.tasks)} task(s) and "
            f"{len(edges)} dependency edge(s) for goal {goal_id}"
        )

        id_mapping, persisted_tasks = await self._persist_tasks(plan.tasks, goal_id)
        surviving, dropped = await self._persist_dependencies(edges, id_mapping, goal_id)

        final_tasks = [attach_dependencies(task, surviving) for task in persisted_tasks]

        logger.info(
            f"Remapped {len(surviving)} dependency edge(s), dropped {len(dropped)}"
        )
        return RemapResult(
            tasks=final_tasks,
            dependencies=surviving,
            id_mapping=id_mapping,
            dropped=dropped,
        )

    async def _persist_tasks(
        self,
        planning_tasks: Sequence[Task],
        goal_id: UUID,
    ) -> Tuple[Dict[UUID, UUID], List[Task]]:
        id_mapping: Dict[UUID, UUID] = {}
        persisted: List[Task] = []

        for planning_task in planning_tasks:
            # storage assigns the durable id; edges are attached afterwards
            candidate = planning_task.with_id(None).without_dependencies()
            try:
                saved = await self._store.save_task(candidate, goal_id)
            except WorkflowEngineError:
                raise
            except Exception as e:
                raise TaskPersistenceError(planning_task.description, str(e), str(goal_id)) from e

            if saved.id is None:
                raise TaskPersistenceError(planning_task.description, "storage returned no id", str(goal_id))

            if planning_task.id is not None:
                id_mapping[planning_task.id] = saved.id
                logger.debug(f"Id mapping: {planning_task.id} -> {saved.id}")
            persisted.append(saved)

        return id_mapping, persisted

    async def _persist_dependencies(
        self,
        edges: Sequence[Dependency],
        id_mapping: Dict[UUID, UUID],
        goal_id: UUID,
    ) -> Tuple[List[Dependency], List[Dependency]]:
        surviving: List[Dependency] = []
        dropped: List[Dependency] = []

        for edge in edges:
            task_id = id_mapping.get(edge.task_id)
            depends_on_id = id_mapping.get(edge.depends_on_task_id)

            if task_id is None or depends_on_id is None:
                missing = edge.task_id if task_id is None else edge.depends_on_task_id
                logger.warning(f"Could not find mapping for task id {missing}; dropping dependency")
                self._record_drop(goal_id, edge, f"no mapping for {missing}")
                dropped.append(edge)
                continue

            remapped = edge.model_copy(update={
                "id": None,
                "task_id": task_id,
                "depends_on_task_id": depends_on_id,
            })

            try:
                saved = await self._store.save_dependency(remapped, goal_id)
            except Exception as e:
                error = DependencyPersistenceError(str(task_id), str(depends_on_id), str(e))
                logger.warning(f"{error}; dropping dependency")
                self._record_drop(goal_id, remapped, str(e))
                dropped.append(remapped)
                continue

            surviving.append(saved if saved is not None else remapped)

        return surviving, dropped

    def _record_drop(self, goal_id: UUID, edge: Dependency, reason: str) -> None:
        if self._events:
            self._events.dependency_dropped(goal_id, edge.task_id, edge.depends_on_task_id, reason)


def attach_dependencies(task: Task, dependencies: Sequence[Dependency]) -> Task:
    """Populate a task's dependency sets from the edges that start at it."""
    blocking = [
        dep.depends_on_task_id for dep in dependencies
        if dep.task_id == task.id and dep.type == DependencyType.BLOCKING
    ]
    informational = [
        dep.depends_on_task_id for dep in dependencies
        if dep.task_id == task.id and dep.type == DependencyType.INFORMATIONAL
    ]
    return task.with_dependencies(blocking, informational)
