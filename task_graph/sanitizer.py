"""
Graph sanitizer.
Repairs a planner-produced task set before the first round so that a
malformed graph degrades to independent tasks instead of failing the goal.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from models import Task
from .dag import DependencyError, has_cycle, validate_references
from .logger import ExecutionLogger

logger = logging.getLogger(__name__)


@dataclass
class SanitizeReport:
    """What the sanitizer found and did."""
    tasks: List[Task]
    reference_errors: List[DependencyError] = field(default_factory=list)
    cycle_detected: bool = False

    @property
    def stripped(self) -> bool:
        return bool(self.reference_errors) or self.cycle_detected


def strip_all_dependencies(tasks: Sequence[Task]) -> List[Task]:
    return [task.without_dependencies() if task.has_dependencies() else task for task in tasks]


class GraphSanitizer:
    """
    Applies the resolver's diagnostics to a task set.

    Any dangling reference strips every dependency from every task, and so
    does a cycle left after that. The tasks are copies; dependency records
    already persisted are left alone.
    """

    def __init__(self, execution_logger: Optional[ExecutionLogger] = None):
        self._events = execution_logger

    def sanitize(self, tasks: Sequence[Task], goal_id: Optional[str] = None) -> SanitizeReport:
        current = list(tasks)

        reference_errors = validate_references(current)
        if reference_errors:
            logger.warning(
                f"Dependency validation found {len(reference_errors)} error(s); "
                f"removing all dependencies and continuing with independent tasks"
            )
            for error in reference_errors:
                logger.debug(str(error))
            current = strip_all_dependencies(current)

        cycle_detected = has_cycle(current)
        if cycle_detected:
            logger.warning("Circular dependencies detected; removing all dependencies")
            current = strip_all_dependencies(current)

        report = SanitizeReport(
            tasks=current,
            reference_errors=reference_errors,
            cycle_detected=cycle_detected,
        )

        if report.stripped and self._events:
            self._events.graph_sanitized(
                goal_id,
                reference_errors=len(reference_errors),
                cycle_detected=cycle_detected,
            )

        return report
