"""
Agents - LLM-backed planner, executor and summarizer.
"""

from .llm_client import LLMClient
from .task_plan_agent import TaskPlanAgent, parse_plan_response
from .task_agent import TaskAgent
from .goal_agent import GoalAgent

__all__ = [
    "LLMClient",
    "TaskPlanAgent",
    "parse_plan_response",
    "TaskAgent",
    "GoalAgent",
]
