"""
Round scheduler for executing a goal's task graph.
Runs the executable frontier concurrently, folds results back into the
graph one at a time, and repeats until the frontier is empty.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence
from uuid import UUID

from errors import RoundExecutionError, TaskExecutionError
from models import Goal, Task, TaskStatus
from .dag import ExecutionGraph
from .interfaces import TaskExecutor, WorkflowStorage
from .logger import ExecutionLogger
from .review import PlanReviewAdapter

logger = logging.getLogger(__name__)


class ScheduleOutcome(str, Enum):
    EXHAUSTED = "exhausted"  # no PENDING task left
    STALLED = "stalled"      # PENDING tasks left, none executable


@dataclass
class ExecutionConfig:
    """Configuration for round execution."""
    max_parallel: Optional[int] = None      # None: one unit per frontier task
    timeout_seconds: Optional[float] = None  # per task; a timeout fails the round


@dataclass
class ScheduleReport:
    tasks: List[Task]
    rounds: int
    outcome: ScheduleOutcome
    stalled_task_ids: List[UUID] = field(default_factory=list)
    execution_time_seconds: float = 0.0

    @property
    def completed(self) -> int:
        return sum(1 for t in self.tasks if t.status == TaskStatus.COMPLETED)

    @property
    def failed(self) -> int:
        return sum(1 for t in self.tasks if t.status == TaskStatus.FAILED)


class RoundScheduler:
    """
    Executes a goal's tasks in rounds.

    Each round computes the frontier, fans it out to the executor, waits for
    every unit (or the first exception, which cancels the rest) and then
    folds the results into the graph sequentially: replace by id, persist,
    review the plan. Round n+1 starts only after round n is folded.

    Example:
        scheduler = RoundScheduler(executor, store, review_adapter)
        report = await scheduler.run(ExecutionGraph(tasks), goal)
    """

    def __init__(
        self,
        executor: TaskExecutor,
        store: WorkflowStorage,
        review: Optional[PlanReviewAdapter] = None,
        config: Optional[ExecutionConfig] = None,
        execution_logger: Optional[ExecutionLogger] = None,
    ):
        self.executor = executor
        self.store = store
        self.review = review
        self.config = config or ExecutionConfig()
        self._events = execution_logger

    async def run(self, graph: ExecutionGraph, goal: Goal) -> ScheduleReport:
        """
        Run rounds until the frontier is empty.

        Raises:
            RoundExecutionError: a unit raised, timed out or returned PENDING
        """
        start_time = time.time()
        rounds = 0

        logger.info(f"Starting dependency-aware execution of {len(graph)} task(s) for goal {goal.id}")

        while True:
            frontier = graph.frontier()

            if not frontier:
                pending = graph.pending()
                elapsed = round(time.time() - start_time, 2)

                if pending:
                    if graph.has_completed():
                        logger.warning("Workflow stuck - pending tasks exist but none are executable")
                    if self._events:
                        self._events.stalled(goal.id, rounds, len(pending))
                    return ScheduleReport(
                        tasks=graph.tasks(),
                        rounds=rounds,
                        outcome=ScheduleOutcome.STALLED,
                        stalled_task_ids=[t.id for t in pending],
                        execution_time_seconds=elapsed,
                    )

                logger.info(f"Execution complete after {rounds} round(s) in {elapsed:.2f}s")
                return ScheduleReport(
                    tasks=graph.tasks(),
                    rounds=rounds,
                    outcome=ScheduleOutcome.EXHAUSTED,
                    execution_time_seconds=elapsed,
                )

            rounds += 1
            logger.info(f"Found {len(frontier)} executable task(s) for round {rounds}")
            if self._events:
                self._events.round_started(goal.id, rounds, len(frontier))

            try:
                results = await self.execute_round(frontier, goal.query, graph.completed(), rounds)
            except RoundExecutionError as e:
                if self._events:
                    self._events.round_failed(goal.id, rounds, str(e.cause))
                raise

            await self._fold_results(graph, results, goal)

            if self._events:
                self._events.round_completed(
                    goal.id,
                    rounds,
                    completed=sum(1 for r in results if r.status == TaskStatus.COMPLETED),
                    failed=sum(1 for r in results if r.status == TaskStatus.FAILED),
                )

    async def execute_round(
        self,
        frontier: Sequence[Task],
        goal_text: str,
        completed_tasks: Sequence[Task],
        round_number: int = 1,
    ) -> List[Task]:
        """
        Execute one frontier concurrently with fail-fast semantics.

        Results come back in frontier order. On the first exception the
        remaining units are cancelled and their results discarded.
        """
        context = list(completed_tasks)
        semaphore = asyncio.Semaphore(self.config.max_parallel) if self.config.max_parallel else None

        units: List[asyncio.Task] = []
        for task in frontier:
            logger.debug(f"Forking execution for: '{task.description}'")
            unit = asyncio.create_task(self._execute_single_task(task, goal_text, context, semaphore))
            units.append(unit)

        try:
            done, pending = await asyncio.wait(units, return_when=asyncio.FIRST_EXCEPTION)

            failure = next(
                (u.exception() for u in units if u in done and not u.cancelled() and u.exception()),
                None,
            )
            if failure is None:
                # a unit cancelled from inside the executor while the round itself was not
                failure = next(
                    (
                        TaskExecutionError(str(task.id), "execution was cancelled")
                        for task, u in zip(frontier, units)
                        if u in done and u.cancelled()
                    ),
                    None,
                )
            if failure is not None:
                cancelled = await self._cancel(pending)
                logger.error(f"Round {round_number} failed; cancelled {cancelled} sibling task(s): {failure}")
                raise RoundExecutionError(round_number, failure, cancelled) from failure

            return [u.result() for u in units]

        except asyncio.CancelledError:
            await self._cancel([u for u in units if not u.done()])
            raise

    async def _execute_single_task(
        self,
        task: Task,
        goal_text: str,
        completed_tasks: List[Task],
        semaphore: Optional[asyncio.Semaphore],
    ) -> Task:
        if semaphore is None:
            return await self._call_executor(task, goal_text, completed_tasks)
        async with semaphore:
            return await self._call_executor(task, goal_text, completed_tasks)

    async def _call_executor(self, task: Task, goal_text: str, completed_tasks: List[Task]) -> Task:
        start_time = time.time()

        try:
            call = self.executor.execute(task, goal_text, completed_tasks)
            if self.config.timeout_seconds:
                result = await asyncio.wait_for(call, timeout=self.config.timeout_seconds)
            else:
                result = await call
        except asyncio.TimeoutError as e:
            raise TaskExecutionError(str(task.id), f"Timeout after {self.config.timeout_seconds}s") from e
        except TaskExecutionError:
            raise
        except Exception as e:
            raise TaskExecutionError(str(task.id), f"{type(e).__name__}: {e}") from e

        if result is None or result.status == TaskStatus.PENDING:
            raise TaskExecutionError(str(task.id), "executor returned a task that is still pending")
        if result.id != task.id:
            # executors must not re-key tasks
            result = result.with_id(task.id)

        logger.info(
            f"Task finished: '{task.description[:80]}' with status {result.status.value} "
            f"({(time.time() - start_time) * 1000:.0f}ms)"
        )
        return result

    async def _fold_results(self, graph: ExecutionGraph, results: Sequence[Task], goal: Goal) -> None:
        for result in results:
            graph.replace(result)
            await self.store.save_task(result, goal.id)

            if self.review is not None:
                await self.review.review(graph, result, goal.id)

    async def _cancel(self, units) -> int:
        units = [u for u in units if not u.done()]
        for unit in units:
            unit.cancel()
        if units:
            await asyncio.gather(*units, return_exceptions=True)
        return len(units)

