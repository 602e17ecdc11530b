"""
Plan review adapter.
After each completed task, asks the planner whether the remaining plan
should change and folds in any brand-new tasks it proposes.
"""

import logging
from typing import List, Optional
from uuid import UUID

from errors import TaskPersistenceError, WorkflowEngineError
from models import Task, TaskStatus
from .dag import ExecutionGraph
from .interfaces import Planner, WorkflowStorage
from .logger import ExecutionLogger

logger = logging.getLogger(__name__)


class PlanReviewAdapter:
    """
    Applies plan revisions by insertion only.

    Existing tasks are never removed, renumbered or given new dependencies;
    modifications the planner proposes for them are ignored. A planner error
    counts as "no revision".
    """

    def __init__(
        self,
        planner: Planner,
        store: WorkflowStorage,
        execution_logger: Optional[ExecutionLogger] = None,
    ):
        self._planner = planner
        self._store = store
        self._events = execution_logger

    async def review(self, graph: ExecutionGraph, completed_task: Task, goal_id: UUID) -> List[Task]:
        """
        Review the plan after ``completed_task``.

        Returns the tasks appended to the graph (empty when nothing changed).
        """
        if completed_task.status != TaskStatus.COMPLETED:
            return []

        working_tasks = graph.tasks()
        logger.debug(f"Starting plan review after completing task: '{completed_task.description[:80]}'")

        try:
            revised = await self._planner.review_plan(working_tasks, completed_task)
        except Exception as e:
            logger.warning(f"Failed to review plan after task completion: {e}")
            return []

        if revised is None or revised is working_tasks or list(revised) == working_tasks:
            logger.debug("Plan review completed - no changes needed")
            return []

        added: List[Task] = []
        for task in revised:
            if task.id is not None:
                continue
            if task.status != TaskStatus.PENDING:
                logger.debug(f"Ignoring non-pending task from plan review: '{task.description}'")
                continue

            new_task = await self._persist_new_task(self._restrict_dependencies(task, graph), goal_id)
            graph.add(new_task)
            added.append(new_task)
            logger.info(f"New task from plan review: '{new_task.description[:100]}'")

        if added and self._events:
            self._events.plan_revised(goal_id, len(added), completed_task.id)
        elif not added:
            logger.debug("Plan review proposed changes to existing tasks only; ignored")

        return added

    @staticmethod
    def _restrict_dependencies(task: Task, graph: ExecutionGraph) -> Task:
        """Keep only dependencies on tasks already in the graph."""
        if not task.has_dependencies():
            return task
        blocking = [d for d in task.blocking_dependencies if d in graph]
        informational = [d for d in task.informational_dependencies if d in graph]
        if len(blocking) != len(task.blocking_dependencies) or \
                len(informational) != len(task.informational_dependencies):
            logger.warning(f"Dropping unknown dependencies of reviewed task '{task.description}'")
        return task.with_dependencies(blocking, informational)

    async def _persist_new_task(self, task: Task, goal_id: UUID) -> Task:
        try:
            saved = await self._store.save_task(task, goal_id)
        except WorkflowEngineError:
            raise
        except Exception as e:
            raise TaskPersistenceError(task.description, str(e), str(goal_id)) from e

        if saved.id is None:
            raise TaskPersistenceError(task.description, "storage returned no id", str(goal_id))
        return saved
