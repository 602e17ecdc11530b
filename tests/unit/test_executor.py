"""
Round Scheduler Unit Tests

Round fan-out, fail-fast cancellation, stall detection and result folding.
"""

import pytest
import asyncio
from unittest.mock import AsyncMock

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from conftest import ScriptedExecutor, find
from errors import RoundExecutionError, TaskExecutionError
from models import Task, TaskStatus
from task_graph.dag import ExecutionGraph
from task_graph.executor import ExecutionConfig, RoundScheduler, ScheduleOutcome
from task_graph.logger import EventKind
from task_graph.review import PlanReviewAdapter


class TestRoundScheduler:

    @pytest.mark.asyncio
    async def test_independent_tasks_run_in_one_round(self, store, goal):
        """Three independent tasks: one round, all executed concurrently"""
        executor = ScriptedExecutor(delay=0.05)
        graph = ExecutionGraph([Task.create("a"), Task.create("b"), Task.create("c")])

        report = await RoundScheduler(executor, store).run(graph, goal)

        assert report.rounds == 1
        assert report.outcome == ScheduleOutcome.EXHAUSTED
        assert report.completed == 3
        assert executor.max_in_flight == 3

    @pytest.mark.asyncio
    async def test_trip_scenario(self, store, goal, trip_plan, events):
        """T1 and T3 run first, T2 waits for T1"""
        executor = ScriptedExecutor()
        graph = ExecutionGraph(trip_plan.tasks)

        report = await RoundScheduler(executor, store, execution_logger=events).run(graph, goal)

        assert report.rounds == 2
        assert report.completed == 3
        assert report.failed == 0
        assert set(executor.calls[:2]) == {"Pick destination", "Research weather"}
        assert executor.calls[2] == "Book flights"
        assert set(executor.contexts["Book flights"]) == {"Pick destination", "Research weather"}

        started = [e for e in events.events if e.kind == EventKind.ROUND_STARTED]
        assert [e.metadata["frontier_size"] for e in started] == [2, 1]

    @pytest.mark.asyncio
    async def test_executor_exception_fails_the_round(self, store, goal):
        """One unit raising cancels its siblings and discards their results"""
        cancelled = []

        class Executor:
            async def execute(self, task, goal_text, completed_tasks):
                if task.description == "boom":
                    await asyncio.sleep(0.01)
                    raise RuntimeError("executor crashed")
                try:
                    await asyncio.sleep(1)
                except asyncio.CancelledError:
                    cancelled.append(task.description)
                    raise
                return task.with_result("late")

        graph = ExecutionGraph([Task.create("slow-1"), Task.create("boom"), Task.create("slow-2")])

        with pytest.raises(RoundExecutionError) as exc_info:
            await RoundScheduler(Executor(), store).run(graph, goal)

        assert exc_info.value.round_number == 1
        assert isinstance(exc_info.value.cause, TaskExecutionError)
        assert sorted(cancelled) == ["slow-1", "slow-2"]
        assert all(t.status == TaskStatus.PENDING for t in graph.tasks())
        assert await store.find_tasks_by_goal(goal.id) == []

    @pytest.mark.asyncio
    async def test_executor_raising_cancelled_fails_the_round(self, store, goal):
        """CancelledError raised by the executor itself is a hard failure"""

        class Executor:
            async def execute(self, task, goal_text, completed_tasks):
                if task.description == "cancelled":
                    raise asyncio.CancelledError()
                return task.with_result("ok")

        graph = ExecutionGraph([Task.create("ok"), Task.create("cancelled")])

        with pytest.raises(RoundExecutionError) as exc_info:
            await RoundScheduler(Executor(), store).run(graph, goal)

        assert isinstance(exc_info.value.cause, TaskExecutionError)
        assert "cancelled" in str(exc_info.value.cause)
        assert all(t.status == TaskStatus.PENDING for t in graph.tasks())

    @pytest.mark.asyncio
    async def test_cancelling_the_round_propagates(self, store, goal):
        executor = ScriptedExecutor(delay=1)
        scheduler = RoundScheduler(executor, store)

        run = asyncio.create_task(scheduler.run(ExecutionGraph([Task.create("slow")]), goal))
        await asyncio.sleep(0.01)
        run.cancel()

        with pytest.raises(asyncio.CancelledError):
            await run

    @pytest.mark.asyncio
    async def test_failed_result_does_not_fail_the_round(self, store, goal):
        """A FAILED task is a business failure; the round continues"""
        executor = ScriptedExecutor()
        executor.overrides["b"] = lambda task: task.with_failure("no seats")
        graph = ExecutionGraph([Task.create("a"), Task.create("b")])

        report = await RoundScheduler(executor, store).run(graph, goal)

        assert report.outcome == ScheduleOutcome.EXHAUSTED
        assert report.completed == 1
        assert report.failed == 1

    @pytest.mark.asyncio
    async def test_stalled_graph_terminates(self, store, goal, events):
        """A COMPLETED, C FAILED, B PENDING blocked on C"""
        a = Task.create("a").with_result("ok")
        c = Task.create("c").with_failure("broken")
        b = Task.create("b", blocking=[c.id])
        executor = ScriptedExecutor()

        report = await RoundScheduler(executor, store, execution_logger=events).run(
            ExecutionGraph([a, b, c]), goal
        )

        assert report.outcome == ScheduleOutcome.STALLED
        assert report.rounds == 0
        assert report.stalled_task_ids == [b.id]
        assert executor.calls == []
        assert events.events[-1].kind == EventKind.STALLED

    @pytest.mark.asyncio
    async def test_dependent_of_failed_task_stalls_after_rounds(self, store, goal):
        a = Task.create("a")
        b = Task.create("b", blocking=[a.id])
        executor = ScriptedExecutor()
        executor.overrides["a"] = lambda task: task.with_failure("nope")

        report = await RoundScheduler(executor, store).run(ExecutionGraph([a, b]), goal)

        assert report.outcome == ScheduleOutcome.STALLED
        assert report.rounds == 1
        assert report.stalled_task_ids == [b.id]

    @pytest.mark.asyncio
    async def test_timeout_is_a_hard_failure(self, store, goal):
        executor = ScriptedExecutor(delay=1)
        scheduler = RoundScheduler(executor, store, config=ExecutionConfig(timeout_seconds=0.05))

        with pytest.raises(RoundExecutionError) as exc_info:
            await scheduler.run(ExecutionGraph([Task.create("slow")]), goal)

        assert "Timeout" in str(exc_info.value.cause)

    @pytest.mark.asyncio
    async def test_pending_result_is_a_hard_failure(self, store, goal):
        executor = ScriptedExecutor()
        executor.overrides["lazy"] = lambda task: task

        with pytest.raises(RoundExecutionError):
            await RoundScheduler(executor, store).run(ExecutionGraph([Task.create("lazy")]), goal)

    @pytest.mark.asyncio
    async def test_max_parallel_bounds_fan_out(self, store, goal):
        executor = ScriptedExecutor(delay=0.02)
        graph = ExecutionGraph([Task.create(f"t{i}") for i in range(5)])

        report = await RoundScheduler(executor, store, config=ExecutionConfig(max_parallel=2)).run(graph, goal)

        assert report.rounds == 1
        assert report.completed == 5
        assert executor.max_in_flight <= 2

    @pytest.mark.asyncio
    async def test_results_are_persisted_and_reviewed(self, store, goal, planner):
        executor = ScriptedExecutor()
        executor.overrides["b"] = lambda task: task.with_failure("x")
        graph = ExecutionGraph([Task.create("a"), Task.create("b")])
        review = PlanReviewAdapter(planner, store)

        await RoundScheduler(executor, store, review=review).run(graph, goal)

        stored = await store.find_tasks_by_goal(goal.id)
        assert {t.description: t.status for t in stored} == {
            "a": TaskStatus.COMPLETED,
            "b": TaskStatus.FAILED,
        }
        # only the COMPLETED task triggers a review
        assert planner.review_plan.await_count == 1
        assert planner.review_plan.await_args.args[1].description == "a"

    @pytest.mark.asyncio
    async def test_review_insertions_run_in_a_later_round(self, store, goal, planner):
        def revise(tasks, completed):
            if completed.description == "a":
                return list(tasks) + [Task(id=None, description="follow-up")]
            return tasks

        planner.review_plan = AsyncMock(side_effect=revise)
        executor = ScriptedExecutor()
        graph = ExecutionGraph([Task.create("a")])

        report = await RoundScheduler(executor, store, review=PlanReviewAdapter(planner, store)).run(graph, goal)

        assert report.rounds == 2
        assert executor.calls == ["a", "follow-up"]
        assert find(report.tasks, "follow-up").status == TaskStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_executor_cannot_rekey_tasks(self, store, goal):
        executor = ScriptedExecutor()
        executor.overrides["a"] = lambda task: Task.create("a").with_result("other id")
        original = Task.create("a")

        report = await RoundScheduler(executor, store).run(ExecutionGraph([original]), goal)

        assert report.tasks[0].id == original.id
        assert report.tasks[0].result == "other id"
