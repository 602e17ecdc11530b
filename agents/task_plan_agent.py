"""
Task Plan Agent - LLM-backed planner

Decomposes a goal into tasks with dependencies and reviews the remaining
plan after each completed task.
"""

import logging
import re
from typing import Dict, List, Optional, Sequence
from uuid import UUID

from models import Dependency, DependencyType, Plan, Task, TaskStatus
from .llm_client import LLMClient

logger = logging.getLogger(__name__)

NO_CHANGES = "NO_CHANGES"

PLAN_PROMPT = """Break down this goal into 3-6 specific, actionable tasks with dependencies.

Goal: {goal}

Format:
TASKS:
1. Task description
2. Another task

DEPENDENCIES:
Task 2 depends on Task 1 (blocking) - reason

Types: blocking (must wait), informational (can start early)
"""

REVIEW_PROMPT = """Task completed: {description}
Result: {result}
Completed: {completed} tasks

Remaining tasks:
{pending}

Should remaining tasks change? Respond "NO_CHANGES" or list updated tasks (one per line).
"""

_NUMBERING = re.compile(r"^\d+\.\s*")
_NUMBER = re.compile(r"\d+")


def limit_text(text: Optional[str], max_length: int) -> Optional[str]:
    if text is None or len(text) <= max_length:
        return text
    return text[:max_length] + "..."


def _extract_task_number(text: str) -> Optional[int]:
    for word in text.split():
        if _NUMBER.fullmatch(word):
            return int(word)
    return None


def parse_dependency_line(line: str, task_index: Dict[int, UUID]) -> Optional[Dependency]:
    """
    Parse "Task X depends on Task Y (type) - reason".

    Returns None when the line is not a dependency or names an unknown task.
    """
    parts = line.split("depends on")
    if len(parts) != 2:
        return None

    task_number = _extract_task_number(parts[0])
    depends_on_number = _extract_task_number(parts[1])
    if task_number is None or depends_on_number is None:
        return None

    task_id = task_index.get(task_number)
    depends_on_id = task_index.get(depends_on_number)
    if task_id is None or depends_on_id is None:
        return None

    paren = parts[1].find("(")
    if paren == -1:
        return None

    type_and_reason = parts[1][paren:]
    reason = type_and_reason[type_and_reason.find("-") + 1:].strip()

    if "blocking" in type_and_reason:
        return Dependency.blocking(task_id, depends_on_id, reason)
    return Dependency.informational(task_id, depends_on_id, reason)


def parse_plan_response(response: str) -> Plan:
    """Parse the TASKS / DEPENDENCIES text format into a plan with ephemeral ids."""
    sections = response.split("DEPENDENCIES:")
    tasks_section = sections[0].replace("TASKS:", "").strip()
    dependencies_section = sections[1].strip() if len(sections) > 1 else ""

    tasks: List[Task] = []
    for line in tasks_section.split("\n"):
        line = line.strip()
        if not line or line.startswith("TASKS"):
            continue
        description = _NUMBERING.sub("", line).strip()
        if description:
            tasks.append(Task.create(description))

    task_index = {position: task.id for position, task in enumerate(tasks, start=1)}

    dependencies: List[Dependency] = []
    for line in dependencies_section.split("\n"):
        line = line.strip()
        if not line or "depends on" not in line:
            continue
        dependency = parse_dependency_line(line, task_index)
        if dependency is None:
            logger.warning(f"Failed to parse dependency: {line}")
            continue
        dependencies.append(dependency)

    tasks = [
        task.with_dependencies(
            [d.depends_on_task_id for d in dependencies
             if d.task_id == task.id and d.type == DependencyType.BLOCKING],
            [d.depends_on_task_id for d in dependencies
             if d.task_id == task.id and d.type == DependencyType.INFORMATIONAL],
        )
        for task in tasks
    ]

    return Plan.of(tasks, dependencies)


class TaskPlanAgent:
    """Planner backed by an LLM."""

    def __init__(self, llm: LLMClient):
        self.llm = llm

    async def create_plan(self, goal_text: str) -> Plan:
        response = await self.llm.call("task planning", PLAN_PROMPT.format(goal=goal_text))
        plan = parse_plan_response(response)
        logger.info(f"Planned {len(plan.tasks)} task(s) with {len(plan.dependencies)} dependency(ies)")
        return plan

    async def review_plan(self, working_tasks: Sequence[Task], completed_task: Task) -> List[Task]:
        """
        Ask whether the remaining tasks should change.

        Returns ``working_tasks`` unchanged on NO_CHANGES; otherwise the
        non-pending tasks followed by one new id-less task per response line.
        """
        completed = sum(1 for t in working_tasks if t.status == TaskStatus.COMPLETED)
        pending = "".join(
            f"- {t.description}\n"
            for t in [t for t in working_tasks if t.status == TaskStatus.PENDING][:5]
        )

        prompt = REVIEW_PROMPT.format(
            description=limit_text(completed_task.description, 100),
            result=limit_text(completed_task.result, 200),
            completed=completed,
            pending=pending,
        )
        response = await self.llm.call("plan review", prompt)

        if response.strip() == NO_CHANGES:
            return list(working_tasks)

        kept = [t for t in working_tasks if t.status != TaskStatus.PENDING]
        proposed = [
            Task(id=None, description=line.strip())
            for line in response.split("\n")
            if line.strip()
        ]
        return kept + proposed
