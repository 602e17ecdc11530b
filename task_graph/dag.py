"""
Dependency graph over a goal's tasks.
Computes the executable frontier, detects cycles and dangling references,
and holds the working task set the round scheduler mutates.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set
from uuid import UUID

from errors import TaskNotFoundError
from models import DependencyType, Task, TaskStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DependencyError:
    """A dependency pointing at a task id absent from the task set."""
    task_id: Optional[UUID]
    task_description: str
    missing_id: UUID
    dependency_type: DependencyType

    def __str__(self) -> str:
        return (
            f"Task '{self.task_description}' has invalid "
            f"{self.dependency_type.value} dependency: {self.missing_id}"
        )


def completed_task_ids(tasks: Iterable[Task]) -> Set[UUID]:
    return {task.id for task in tasks if task.status == TaskStatus.COMPLETED}


def executable_frontier(tasks: Sequence[Task]) -> List[Task]:
    """
    Get every PENDING task whose blocking dependencies are all COMPLETED.

    Informational dependencies never hold a task back. The result keeps the
    input order.
    """
    completed = completed_task_ids(tasks)
    return [
        task for task in tasks
        if task.status == TaskStatus.PENDING and task.can_execute(completed)
    ]


def has_cycle(tasks: Sequence[Task]) -> bool:
    """
    Check whether the blocking dependencies contain a directed cycle.

    A self-dependency counts as a cycle. Dependencies on ids that are not in
    the task set are not traversed.
    """
    by_id: Dict[UUID, Task] = {task.id: task for task in tasks if task.id is not None}
    visiting: Set[UUID] = set()
    visited: Set[UUID] = set()

    for root in by_id:
        if root in visited:
            continue

        # Each frame is (task id, iterator over its blocking dependencies)
        visiting.add(root)
        stack = [(root, iter(by_id[root].blocking_dependencies))]

        while stack:
            node_id, deps = stack[-1]
            advanced = False

            for dep_id in deps:
                if dep_id in visiting:
                    logger.debug(f"Cycle detected through {node_id} -> {dep_id}")
                    return True
                if dep_id in visited or dep_id not in by_id:
                    continue
                visiting.add(dep_id)
                stack.append((dep_id, iter(by_id[dep_id].blocking_dependencies)))
                advanced = True
                break

            if not advanced:
                stack.pop()
                visiting.discard(node_id)
                visited.add(node_id)

    return False


def validate_references(tasks: Sequence[Task]) -> List[DependencyError]:
    """Report one error per dependency id that is not among the tasks."""
    task_ids = {task.id for task in tasks}
    errors: List[DependencyError] = []

    for task in tasks:
        for dep_type, dep_ids in (
            (DependencyType.BLOCKING, task.blocking_dependencies),
            (DependencyType.INFORMATIONAL, task.informational_dependencies),
        ):
            for dep_id in dep_ids:
                if dep_id not in task_ids:
                    errors.append(DependencyError(
                        task_id=task.id,
                        task_description=task.description,
                        missing_id=dep_id,
                        dependency_type=dep_type,
                    ))

    return errors


class ExecutionGraph:
    """
    Working task set for one goal, keyed by task id.

    Insertion order is kept for presentation. Only the round scheduler's
    driving coroutine mutates the graph.

    Example:
        graph = ExecutionGraph(tasks)
        for task in graph.frontier():
            ...
        graph.replace(task.with_result("done"))
    """

    def __init__(self, tasks: Optional[Iterable[Task]] = None, name: Optional[str] = None):
        self.name = name or "execution_graph"
        self._nodes: Dict[UUID, Task] = {}
        for task in tasks or ():
            self.add(task)

    def add(self, task: Task) -> None:
        if task.id is None:
            raise ValueError(f"Task '{task.description}' has no durable id")
        if task.id in self._nodes:
            raise ValueError(f"Task already in graph: {task.id}")
        self._nodes[task.id] = task
        logger.debug(f"Added task {task.id}: {task.description}")

    def replace(self, task: Task) -> None:
        if task.id not in self._nodes:
            raise TaskNotFoundError(str(task.id))
        self._nodes[task.id] = task

    def get(self, task_id: UUID) -> Optional[Task]:
        return self._nodes.get(task_id)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def tasks(self) -> List[Task]:
        return list(self._nodes.values())

    def task_ids(self) -> List[UUID]:
        return list(self._nodes.keys())

    def completed(self) -> List[Task]:
        return [t for t in self._nodes.values() if t.status == TaskStatus.COMPLETED]

    def pending(self) -> List[Task]:
        return [t for t in self._nodes.values() if t.status == TaskStatus.PENDING]

    def has_pending(self) -> bool:
        return any(t.status == TaskStatus.PENDING for t in self._nodes.values())

    def has_completed(self) -> bool:
        return any(t.status == TaskStatus.COMPLETED for t in self._nodes.values())

    def frontier(self) -> List[Task]:
        return executable_frontier(self.tasks())

    def has_cycle(self) -> bool:
        return has_cycle(self.tasks())

    def validate_references(self) -> List[DependencyError]:
        return validate_references(self.tasks())

    def get_stats(self) -> Dict[str, Any]:
        status_counts = {status.value: 0 for status in TaskStatus}
        for task in self._nodes.values():
            status_counts[task.status.value] += 1

        return {
            "total_tasks": len(self._nodes),
            "status_counts": status_counts,
            "graph_name": self.name,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "nodes": {
                str(task_id): task.model_dump(mode="json")
                for task_id, task in self._nodes.items()
            },
            "stats": self.get_stats(),
        }

    def visualize_dot(self) -> str:
        """
        Generate DOT format for visualization with Graphviz.

        Blocking edges are solid, informational edges dashed.
        """
        lines = ["digraph ExecutionGraph {"]
        lines.append("  rankdir=TB;")
        lines.append("  node [shape=box];")

        for task in self._nodes.values():
            color = {
                TaskStatus.PENDING: "lightgray",
                TaskStatus.COMPLETED: "lightgreen",
                TaskStatus.FAILED: "red",
            }.get(task.status, "white")

            label = task.description.replace('"', "'")[:40]
            lines.append(
                f'  "{task.id}" [label="{label}\\n({task.status.value})", '
                f'fillcolor="{color}", style=filled];'
            )

        for task in self._nodes.values():
            for dep_id in task.blocking_dependencies:
                lines.append(f'  "{dep_id}" -> "{task.id}";')
            for dep_id in task.informational_dependencies:
                lines.append(f'  "{dep_id}" -> "{task.id}" [style=dashed];')

        lines.append("}")
        return "\n".join(lines)
