"""
Goal Agent - LLM-backed goal summarizer
"""

from models import Goal, TaskStatus
from .llm_client import LLMClient
from .task_plan_agent import limit_text

SUMMARY_PROMPT = """Goal: {goal}

Results: {completed}/{total} completed, {failed} failed

Tasks:
{tasks}

Provide concise summary: goal achievement, key results, issues, overall assessment.
"""


class GoalAgent:
    def __init__(self, llm: LLMClient):
        self.llm = llm

    def build_prompt(self, goal: Goal) -> str:
        tasks = "".join(
            f"- {limit_text(task.description, 60)} [{task.status.value.upper()}] "
            f"{limit_text(task.result if task.result is not None else 'No result', 80)}\n"
            for task in goal.tasks
        )
        return SUMMARY_PROMPT.format(
            goal=limit_text(goal.query, 150),
            completed=goal.count_tasks(TaskStatus.COMPLETED),
            total=len(goal.tasks),
            failed=goal.count_tasks(TaskStatus.FAILED),
            tasks=tasks,
        )

    async def summarize(self, goal: Goal) -> str:
        return await self.llm.call("goal summarization", self.build_prompt(goal))
