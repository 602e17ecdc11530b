"""
Agent Unit Tests

Plan parsing, review, execution prompts and summarization with a mocked
LLM client.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from agents import GoalAgent, LLMClient, TaskAgent, TaskPlanAgent, parse_plan_response
from agents.llm_client import extract_content, retry_after_seconds
from agents.task_plan_agent import limit_text
from errors import LLMError
from models import DependencyType, Goal, Task, TaskStatus


PLAN_RESPONSE = """TASKS:
1. Pick a destination
2. Book flights
3. Research the weather

DEPENDENCIES:
Task 2 depends on Task 1 (blocking) - need to know where to fly
Task 3 depends on Task 1 (informational) - weather depends on place
Task 9 depends on Task 1 (blocking) - out of range
this line is noise
"""


@pytest.fixture
def llm() -> MagicMock:
    llm = MagicMock()
    llm.call = AsyncMock(return_value="result text")
    return llm


class TestParsePlanResponse:

    def test_tasks_and_dependencies(self):
        plan = parse_plan_response(PLAN_RESPONSE)

        assert [t.description for t in plan.tasks] == [
            "Pick a destination",
            "Book flights",
            "Research the weather",
        ]
        pick, book, weather = plan.tasks
        assert len(plan.dependencies) == 2

        blocking = plan.dependencies[0]
        assert (blocking.task_id, blocking.depends_on_task_id) == (book.id, pick.id)
        assert blocking.type == DependencyType.BLOCKING
        assert blocking.reason == "need to know where to fly"

        assert plan.dependencies[1].type == DependencyType.INFORMATIONAL
        assert book.blocking_dependencies == (pick.id,)
        assert weather.informational_dependencies == (pick.id,)
        assert not pick.has_dependencies()

    def test_without_dependency_section(self):
        plan = parse_plan_response("TASKS:\n1. Only task\n")

        assert [t.description for t in plan.tasks] == ["Only task"]
        assert plan.dependencies == []

    def test_dependency_line_without_type_is_skipped(self):
        plan = parse_plan_response("TASKS:\n1. a\n2. b\n\nDEPENDENCIES:\nTask 2 depends on Task 1\n")

        assert plan.dependencies == []

    def test_ids_are_unique(self):
        plan = parse_plan_response(PLAN_RESPONSE)
        assert len({t.id for t in plan.tasks}) == 3


class TestTaskPlanAgent:

    @pytest.mark.asyncio
    async def test_create_plan(self, llm):
        llm.call = AsyncMock(return_value=PLAN_RESPONSE)

        plan = await TaskPlanAgent(llm).create_plan("Plan a trip")

        assert len(plan.tasks) == 3
        operation, prompt = llm.call.await_args.args
        assert operation == "task planning"
        assert "Goal: Plan a trip" in prompt

    @pytest.mark.asyncio
    async def test_review_no_changes(self, llm):
        llm.call = AsyncMock(return_value="  NO_CHANGES\n")
        tasks = [Task.create("a").with_result("ok"), Task.create("b")]

        revised = await TaskPlanAgent(llm).review_plan(tasks, tasks[0])

        assert revised == tasks

    @pytest.mark.asyncio
    async def test_review_with_new_tasks(self, llm):
        llm.call = AsyncMock(return_value="Rent a car\n\nBuy travel insurance\n")
        done = Task.create("a").with_result("ok")
        tasks = [done, Task.create("b")]

        revised = await TaskPlanAgent(llm).review_plan(tasks, done)

        assert revised[0] == done
        assert [t.description for t in revised[1:]] == ["Rent a car", "Buy travel insurance"]
        assert all(t.id is None and t.status == TaskStatus.PENDING for t in revised[1:])

    @pytest.mark.asyncio
    async def test_review_prompt_limits(self, llm):
        llm.call = AsyncMock(return_value="NO_CHANGES")
        done = Task.create("d" * 150).with_result("r" * 300)
        pending = [Task.create(f"pending {i}") for i in range(7)]

        await TaskPlanAgent(llm).review_plan([done] + pending, done)

        prompt = llm.call.await_args.args[1]
        assert "d" * 100 + "..." in prompt
        assert "r" * 200 + "..." in prompt
        assert "Completed: 1 tasks" in prompt
        assert "- pending 4" in prompt
        assert "- pending 5" not in prompt


class TestTaskAgent:

    @pytest.mark.asyncio
    async def test_dependency_context(self, llm):
        pick = Task.create("Pick destination").with_result("Lisbon")
        weather = Task.create("Check weather").with_result("Sunny")
        other = Task.create("Unrelated").with_result("x")
        book = Task.create("Book flights", blocking=[pick.id], informational=[weather.id])

        result = await TaskAgent(llm).execute(book, "Plan a trip", [pick, weather, other])

        prompt = llm.call.await_args.args[1]
        assert "REQUIRED DEPENDENCY: Pick destination\nResult: Lisbon" in prompt
        assert "REFERENCE DEPENDENCY: Check weather\nResult: Sunny" in prompt
        assert "Unrelated" not in prompt
        assert result.status == TaskStatus.COMPLETED
        assert result.result == "result text"
        assert result.id == book.id

    @pytest.mark.asyncio
    async def test_general_context_is_limited(self, llm):
        completed = [Task.create(f"done {i}").with_result(f"r{i}") for i in range(5)]

        await TaskAgent(llm).execute(Task.create("next"), "Goal", completed)

        prompt = llm.call.await_args.args[1]
        assert "- done 2 (r2)" in prompt
        assert "done 3" not in prompt

    @pytest.mark.asyncio
    async def test_llm_failure_is_a_failed_task(self, llm):
        llm.call = AsyncMock(side_effect=LLMError("rate limited", operation="task execution"))

        result = await TaskAgent(llm).execute(Task.create("a"), "Goal", [])

        assert result.status == TaskStatus.FAILED
        assert result.result == "Task execution failed: rate limited"


class TestGoalAgent:

    @pytest.mark.asyncio
    async def test_summary_prompt(self, llm):
        llm.call = AsyncMock(return_value="Trip planned")
        goal = Goal.create("q" * 200).with_tasks([
            Task.create("a" * 70).with_result("b" * 90),
            Task.create("failed one").with_failure("oops"),
            Task.create("never ran"),
        ])

        summary = await GoalAgent(llm).summarize(goal)

        assert summary == "Trip planned"
        prompt = llm.call.await_args.args[1]
        assert "q" * 150 + "..." in prompt
        assert "Results: 1/3 completed, 1 failed" in prompt
        assert f"- {'a' * 60}... [COMPLETED] {'b' * 80}..." in prompt
        assert "- never ran [PENDING] No result" in prompt


class TestLLMClient:

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        client = LLMClient(api_key="")

        with pytest.raises(LLMError) as exc_info:
            await client.call("task planning", "hi")

        assert exc_info.value.details["operation"] == "task planning"

    def test_extract_openai_content(self):
        assert extract_content({"choices": [{"message": {"content": "hello"}}]}) == "hello"

    def test_extract_anthropic_content(self):
        assert extract_content({"content": [{"type": "text", "text": "hi"}]}) == "hi"

    def test_limit_text(self):
        assert limit_text(None, 5) is None
        assert limit_text("short", 10) == "short"
        assert limit_text("abcdef", 3) == "abc..."

    @pytest.mark.parametrize("headers,expected", [
        ({"Retry-After": "3"}, 3.0),
        ({"Retry-After": "Wed, 21 Oct 2026 07:28:00 GMT"}, 2.0),
        ({"Retry-After": "-1"}, 2.0),
        ({}, 2.0),
    ])
    def test_retry_after_seconds(self, headers, expected):
        assert retry_after_seconds(headers, 2.0) == expected

    @pytest.mark.asyncio
    async def test_rate_limit_with_http_date_retries(self):
        rate_limited = MagicMock(status=429, headers={"Retry-After": "Wed, 21 Oct 2026 07:28:00 GMT"})
        ok = MagicMock(status=200, headers={})
        ok.json = AsyncMock(return_value={"choices": [{"message": {"content": "done"}}]})

        def post(*args, **kwargs):
            context = MagicMock()
            context.__aenter__ = AsyncMock(return_value=responses.pop(0))
            context.__aexit__ = AsyncMock(return_value=False)
            return context

        responses = [rate_limited, ok]
        session = MagicMock(closed=False)
        session.post = MagicMock(side_effect=post)

        client = LLMClient(api_key="key", retry_delay=0)
        client._session = session

        assert await client.call("task planning", "hi") == "done"
        assert session.post.call_count == 2
