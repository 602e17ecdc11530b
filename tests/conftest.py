"""
Pytest Configuration and Fixtures

Shared fixtures: in-memory store, event log, and scripted collaborators.
"""

import asyncio
from typing import Callable, Dict, List, Optional, Sequence
from unittest.mock import AsyncMock, MagicMock

import pytest

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from models import Dependency, Goal, Plan, Task
from services.workflow_store import InMemoryWorkflowStore
from task_graph.logger import ExecutionLogger


class ScriptedExecutor:
    """
    Executor that completes every task with "done: <description>".

    Behaviour per description can be overridden with a callable that
    receives the task and returns a Task or raises.
    """

    def __init__(self, delay: float = 0.0):
        self.delay = delay
        self.calls: List[str] = []
        self.contexts: Dict[str, List[str]] = {}
        self.overrides: Dict[str, Callable[[Task], Task]] = {}
        self.in_flight = 0
        self.max_in_flight = 0

    async def execute(self, task: Task, goal_text: str, completed_tasks: Sequence[Task]) -> Task:
        self.calls.append(task.description)
        self.contexts[task.description] = [t.description for t in completed_tasks]
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            override = self.overrides.get(task.description)
            if override is not None:
                return override(task)
            return task.with_result(f"done: {task.description}")
        finally:
            self.in_flight -= 1


@pytest.fixture
def store() -> InMemoryWorkflowStore:
    """Empty in-memory store"""
    return InMemoryWorkflowStore()


@pytest.fixture
def events() -> ExecutionLogger:
    """Fresh structured event log"""
    return ExecutionLogger()


@pytest.fixture
def executor() -> ScriptedExecutor:
    return ScriptedExecutor()


@pytest.fixture
def planner() -> MagicMock:
    """Planner whose review never changes the plan"""
    planner = MagicMock()
    planner.create_plan = AsyncMock(return_value=Plan())
    planner.review_plan = AsyncMock(side_effect=lambda tasks, completed: tasks)
    return planner


@pytest.fixture
def summarizer() -> MagicMock:
    summarizer = MagicMock()
    summarizer.summarize = AsyncMock(return_value="All done")
    return summarizer


@pytest.fixture
def goal() -> Goal:
    return Goal.create("Plan a trip")


@pytest.fixture
def trip_plan() -> Plan:
    """T1 has no deps, T2 is blocked on T1, T3 is informed by T1"""
    t1 = Task.create("Pick destination")
    t2 = Task.create("Book flights", blocking=[t1.id])
    t3 = Task.create("Research weather", informational=[t1.id])
    return Plan.of(
        [t1, t2, t3],
        [
            Dependency.blocking(t2.id, t1.id, "need a destination first"),
            Dependency.informational(t3.id, t1.id, "destination helps"),
        ],
    )


def make_tasks(*descriptions: str) -> List[Task]:
    return [Task.create(d) for d in descriptions]


def find(tasks: Sequence[Task], description: str) -> Optional[Task]:
    return next((t for t in tasks if t.description == description), None)
