"""
Goal coordinator.
Drives one goal end to end: plan, remap, sanitize, run rounds, summarize.
"""

import logging
from typing import List, Optional
from uuid import UUID

from errors import ErrorResponse, GoalNotFoundError, PlanningError, WorkflowEngineError
from models import Goal, GoalStatus, Plan, Task, TaskStatus, WorkflowResult, utc_now
from .dag import ExecutionGraph
from .executor import ExecutionConfig, RoundScheduler, ScheduleOutcome
from .interfaces import GoalSummarizer, Planner, TaskExecutor, WorkflowStorage
from .logger import ExecutionLogger
from .remapper import IdentityRemapper
from .review import PlanReviewAdapter
from .sanitizer import GraphSanitizer

logger = logging.getLogger(__name__)


class GoalCoordinator:
    """
    Top-level driver for a goal.

    The goal record is the durable record of the outcome: whatever stage
    fails, the goal is saved as FAILED with the error message before the
    result is returned.

    Example:
        coordinator = GoalCoordinator(planner, executor, summarizer, store)
        result = await coordinator.execute_goal("Plan a trip to Lisbon")
        print(result.goal.summary)
    """

    def __init__(
        self,
        planner: Planner,
        executor: TaskExecutor,
        summarizer: GoalSummarizer,
        store: WorkflowStorage,
        config: Optional[ExecutionConfig] = None,
        execution_logger: Optional[ExecutionLogger] = None,
    ):
        self.planner = planner
        self.executor = executor
        self.summarizer = summarizer
        self.store = store
        self.config = config or ExecutionConfig()
        self._events = execution_logger

        self.remapper = IdentityRemapper(store, execution_logger)
        self.sanitizer = GraphSanitizer(execution_logger)
        self.scheduler = RoundScheduler(
            executor,
            store,
            review=PlanReviewAdapter(planner, store, execution_logger),
            config=self.config,
            execution_logger=execution_logger,
        )

    async def execute_goal(self, query: str) -> WorkflowResult:
        """Create a goal for ``query`` and run it."""
        start_time = utc_now()
        goal = Goal.create(query)
        logger.info(f"Starting goal execution: '{query}'")

        try:
            goal = await self.store.save_goal(goal)
        except Exception as e:
            return await self._fail(goal, e, start_time, rounds=0)

        return await self._run(goal, start_time)

    async def execute_existing_goal(self, goal_id: UUID) -> WorkflowResult:
        """Run a goal that is already stored, resuming its tasks if any."""
        start_time = utc_now()

        try:
            goal = await self.store.find_goal(goal_id)
            if goal is None:
                raise GoalNotFoundError(str(goal_id))
        except Exception as e:
            placeholder = Goal(id=goal_id, query="")
            return await self._fail(placeholder, e, start_time, rounds=0, persist=False)

        return await self._run(goal, start_time)

    async def _run(self, goal: Goal, start_time) -> WorkflowResult:
        rounds = 0
        try:
            tasks = await self._prepare_tasks(goal)

            sanitized = self.sanitizer.sanitize(tasks, goal_id=str(goal.id))
            graph = ExecutionGraph(sanitized.tasks, name=goal.query)

            goal = await self.store.save_goal(goal.with_tasks(graph.tasks()))

            report = await self.scheduler.run(graph, goal)
            rounds = report.rounds

            goal = goal.with_tasks(report.tasks)
            summary = await self.summarizer.summarize(goal)

            if report.outcome == ScheduleOutcome.STALLED:
                goal = goal.with_summary(summary, status=GoalStatus.STALLED)
                logger.warning(
                    f"Goal {goal.id} stalled with {len(report.stalled_task_ids)} unreachable task(s)"
                )
            else:
                goal = goal.with_summary(summary)

            goal = await self.store.save_goal(goal)

        except Exception as e:
            return await self._fail(goal, e, start_time, rounds)

        logger.info(
            f"Goal {goal.id} finished with status {goal.status.value}: "
            f"{goal.count_tasks(TaskStatus.COMPLETED)} of {len(goal.tasks)} task(s) completed"
        )
        if self._events:
            self._events.goal_finished(goal.id, goal.status.value, rounds)

        return WorkflowResult.finished(goal, start_time, outcome=report.outcome.value, rounds=rounds)

    async def _prepare_tasks(self, goal: Goal) -> List[Task]:
        """Stored tasks when resuming, otherwise a freshly planned and persisted plan."""
        existing = await self.store.find_tasks_by_goal(goal.id)
        if existing:
            logger.info(f"Resuming goal {goal.id} with {len(existing)} stored task(s)")
            return list(existing)

        plan = await self._create_plan(goal)
        result = await self.remapper.remap(plan, goal.id)
        return result.tasks

    async def _create_plan(self, goal: Goal) -> Plan:
        try:
            plan = await self.planner.create_plan(goal.query)
        except WorkflowEngineError:
            raise
        except Exception as e:
            raise PlanningError(str(e), str(goal.id)) from e

        if plan is None or not plan.tasks:
            raise PlanningError("Planner returned no tasks", str(goal.id))

        logger.info(
            f"Created plan with {len(plan.tasks)} task(s) and {len(plan.dependencies)} dependency(ies)"
        )
        return plan

    async def _fail(
        self,
        goal: Goal,
        error: Exception,
        start_time,
        rounds: int,
        persist: bool = True,
    ) -> WorkflowResult:
        logger.error(f"Goal execution failed: {error}", exc_info=not isinstance(error, WorkflowEngineError))

        failed = goal.with_error(str(error))
        if persist:
            try:
                failed = await self.store.save_goal(failed)
            except Exception as save_error:
                logger.error(f"Failed to save failed goal {goal.id}: {save_error}")

        if self._events:
            self._events.goal_finished(failed.id, failed.status.value, rounds)

        return WorkflowResult.finished(
            failed,
            start_time,
            outcome="failed",
            rounds=rounds,
            error=ErrorResponse.from_exception(error).to_dict(),
        )
