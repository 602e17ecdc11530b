"""
Task Agent - LLM-backed task executor
"""

import logging
from typing import List, Sequence

from models import Task
from .llm_client import LLMClient

logger = logging.getLogger(__name__)

DEPENDENCY_PROMPT = """Execute: {description}

Overall Goal: {goal}

DEPENDENCY OUTPUTS (use these results to complete your task):
{context}

IMPORTANT: Your task should build upon and reference the dependency outputs above.
Use specific information from the completed dependencies to inform your work.

Provide specific, actionable result:
"""

GENERAL_PROMPT = """Execute: {description}

Goal: {goal}

Previous completed tasks (for context):
{context}

Provide specific, actionable result:
"""


class TaskAgent:
    """
    Executor backed by an LLM.

    A task that depends on completed tasks sees their results, labelled
    REQUIRED (blocking) or REFERENCE (informational). A task without such
    dependencies sees up to three completed tasks as general context.
    """

    GENERAL_CONTEXT_LIMIT = 3

    def __init__(self, llm: LLMClient):
        self.llm = llm

    def build_prompt(self, task: Task, goal_text: str, completed_tasks: Sequence[Task]) -> str:
        related = self._dependency_tasks(task, completed_tasks)

        if related:
            context = "".join(
                f"{'REQUIRED' if dep.id in task.blocking_dependencies else 'REFERENCE'} DEPENDENCY: "
                f"{dep.description}\nResult: {dep.result}\n\n"
                for dep in related
            )
            return DEPENDENCY_PROMPT.format(description=task.description, goal=goal_text, context=context)

        context = "".join(
            f"- {done.description} ({done.result})\n"
            for done in list(completed_tasks)[:self.GENERAL_CONTEXT_LIMIT]
        )
        return GENERAL_PROMPT.format(description=task.description, goal=goal_text, context=context)

    @staticmethod
    def _dependency_tasks(task: Task, completed_tasks: Sequence[Task]) -> List[Task]:
        dependency_ids = set(task.all_dependencies())
        return [done for done in completed_tasks if done.id in dependency_ids]

    async def execute(self, task: Task, goal_text: str, completed_tasks: Sequence[Task]) -> Task:
        prompt = self.build_prompt(task, goal_text, completed_tasks)
        try:
            result = await self.llm.call("task execution", prompt)
        except Exception as e:
            logger.warning(f"Task '{task.description[:80]}' failed: {e}")
            return task.with_failure(f"Task execution failed: {e}")
        return task.with_result(result)
