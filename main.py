#!/usr/bin/env python3
"""
Workflow engine entry point.

    python main.py "Plan a weekend trip to Lisbon"
    python main.py --goal-id <uuid>
"""
import sys

# Environment variables must be loaded before anything reads them
from dotenv import load_dotenv
load_dotenv()

import argparse
import asyncio
import json
import logging
from typing import Optional
from uuid import UUID

from agents import GoalAgent, LLMClient, TaskAgent, TaskPlanAgent
from models import WorkflowResult
from services import create_workflow_store
from startup import EngineConfig, configure_logging
from task_graph import ExecutionConfig, GoalCoordinator, execution_logger

logger = logging.getLogger("main")


def render_result(result: WorkflowResult) -> str:
    goal = result.goal
    return json.dumps(
        {
            "goal_id": str(goal.id),
            "query": goal.query,
            "status": goal.status.value,
            "success": result.success,
            "outcome": result.outcome,
            "rounds": result.rounds,
            "duration_ms": round(result.duration_ms, 1),
            "summary": goal.summary,
            "error": result.error,
            "tasks": [
                {
                    "id": str(task.id),
                    "description": task.description,
                    "status": task.status.value,
                    "result": task.result,
                }
                for task in goal.tasks
            ],
        },
        ensure_ascii=False,
        indent=2,
    )


async def run(query: Optional[str], goal_id: Optional[UUID], config: EngineConfig) -> WorkflowResult:
    store = create_workflow_store(config.store_backend, database_url=config.database_url)
    llm = LLMClient(
        api_url=config.llm_api_url,
        api_key=config.llm_api_key,
        model=config.llm_model,
        temperature=config.llm_temperature,
        max_tokens=config.llm_max_tokens,
    )

    await store.initialize()
    try:
        coordinator = GoalCoordinator(
            planner=TaskPlanAgent(llm),
            executor=TaskAgent(llm),
            summarizer=GoalAgent(llm),
            store=store,
            config=ExecutionConfig(
                max_parallel=config.max_parallel,
                timeout_seconds=config.task_timeout_seconds,
            ),
            execution_logger=execution_logger,
        )
        if goal_id is not None:
            return await coordinator.execute_existing_goal(goal_id)
        return await coordinator.execute_goal(query)
    finally:
        await llm.close()
        await store.close()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Run a goal through the workflow engine")
    parser.add_argument("query", nargs="?", help="goal to plan and execute")
    parser.add_argument("--goal-id", type=UUID, help="resume a stored goal instead")
    args = parser.parse_args(argv)

    if not args.query and args.goal_id is None:
        parser.error("a goal or --goal-id is required")

    config = EngineConfig.from_env(load_env_file=False)
    configure_logging(config.log_level)

    result = asyncio.run(run(args.query, args.goal_id, config))
    print(render_result(result))
    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
