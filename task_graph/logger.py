"""
Execution Logger - structured execution events

Records what the scheduler did for each goal (rounds, stalls, plan
revisions, graph repairs) as structured events, mirrored to the standard
logging module.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional


class EventKind(str, Enum):
    GRAPH_SANITIZED = "graph_sanitized"
    DEPENDENCY_DROPPED = "dependency_dropped"
    ROUND_STARTED = "round_started"
    ROUND_COMPLETED = "round_completed"
    ROUND_FAILED = "round_failed"
    PLAN_REVISED = "plan_revised"
    STALLED = "stalled"
    GOAL_FINISHED = "goal_finished"


_LEVELS = {
    EventKind.GRAPH_SANITIZED: logging.WARNING,
    EventKind.DEPENDENCY_DROPPED: logging.WARNING,
    EventKind.ROUND_FAILED: logging.ERROR,
    EventKind.STALLED: logging.WARNING,
}


@dataclass
class ExecutionEvent:
    """A single structured event"""
    timestamp: str
    kind: EventKind
    message: str
    goal_id: Optional[str] = None
    round_number: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "kind": self.kind.value,
            "message": self.message,
            "goal_id": self.goal_id,
            "round": self.round_number,
            "metadata": self.metadata,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, default=str)


class ExecutionLogger:
    """
    Structured event log for goal execution.

    Responsibilities:
    - build structured events
    - forward them to the "task_graph.execution" logger
    - keep them in memory and hand them to an optional listener
    """

    def __init__(
        self,
        listener: Optional[Callable[[ExecutionEvent], None]] = None,
        max_events: int = 1000
    ):
        """
        Args:
            listener: called with every recorded event
            max_events: oldest events are dropped beyond this many
        """
        self._listener = listener
        self._max_events = max_events
        self._events: List[ExecutionEvent] = []
        self._logger = logging.getLogger("task_graph.execution")

    @property
    def events(self) -> List[ExecutionEvent]:
        return list(self._events)

    def events_for(self, goal_id: str) -> List[ExecutionEvent]:
        return [e for e in self._events if e.goal_id == goal_id]

    def clear(self) -> None:
        self._events.clear()

    def record(
        self,
        kind: EventKind,
        message: str,
        goal_id: Optional[str] = None,
        round_number: Optional[int] = None,
        **metadata
    ) -> ExecutionEvent:
        event = ExecutionEvent(
            timestamp=datetime.now(timezone.utc).isoformat(),
            kind=kind,
            message=message,
            goal_id=str(goal_id) if goal_id is not None else None,
            round_number=round_number,
            metadata=metadata,
        )

        self._events.append(event)
        if len(self._events) > self._max_events:
            del self._events[0]

        self._logger.log(_LEVELS.get(kind, logging.INFO), f"[{kind.value}] {message}")

        if self._listener:
            self._listener(event)

        return event

    # Convenience methods
    def graph_sanitized(self, goal_id, reference_errors: int, cycle_detected: bool) -> ExecutionEvent:
        return self.record(
            EventKind.GRAPH_SANITIZED,
            f"Stripped all dependencies ({reference_errors} invalid reference(s), "
            f"cycle={cycle_detected})",
            goal_id,
            reference_errors=reference_errors,
            cycle_detected=cycle_detected,
        )

    def dependency_dropped(self, goal_id, task_id, depends_on_task_id, reason: str) -> ExecutionEvent:
        return self.record(
            EventKind.DEPENDENCY_DROPPED,
            f"Dropped dependency {task_id} -> {depends_on_task_id}: {reason}",
            goal_id,
            task_id=str(task_id),
            depends_on_task_id=str(depends_on_task_id),
            reason=reason,
        )

    def round_started(self, goal_id, round_number: int, frontier_size: int) -> ExecutionEvent:
        return self.record(
            EventKind.ROUND_STARTED,
            f"Round {round_number}: executing {frontier_size} task(s)",
            goal_id,
            round_number,
            frontier_size=frontier_size,
        )

    def round_completed(self, goal_id, round_number: int, completed: int, failed: int) -> ExecutionEvent:
        return self.record(
            EventKind.ROUND_COMPLETED,
            f"Round {round_number} folded: {completed} completed, {failed} failed",
            goal_id,
            round_number,
            completed=completed,
            failed=failed,
        )

    def round_failed(self, goal_id, round_number: int, error: str) -> ExecutionEvent:
        return self.record(EventKind.ROUND_FAILED, f"Round {round_number} failed: {error}", goal_id, round_number)

    def plan_revised(self, goal_id, added: int, after_task_id) -> ExecutionEvent:
        return self.record(
            EventKind.PLAN_REVISED,
            f"Plan review added {added} task(s) after {after_task_id}",
            goal_id,
            added=added,
            after_task_id=str(after_task_id),
        )

    def stalled(self, goal_id, round_number: int, pending: int) -> ExecutionEvent:
        return self.record(
            EventKind.STALLED,
            f"Workflow stalled: {pending} pending task(s) but none executable",
            goal_id,
            round_number,
            pending=pending,
        )

    def goal_finished(self, goal_id, status: str, rounds: int) -> ExecutionEvent:
        return self.record(
            EventKind.GOAL_FINISHED,
            f"Goal finished with status {status} after {rounds} round(s)",
            goal_id,
            status=status,
            rounds=rounds,
        )


# Shared logger instance
execution_logger = ExecutionLogger()
