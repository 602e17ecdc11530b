"""
Error Handling Unit Tests
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from errors import (
    ErrorResponse,
    ErrorType,
    GoalNotFoundError,
    PlanningError,
    RoundExecutionError,
    TaskExecutionError,
    TaskPersistenceError,
)


class TestExceptions:

    def test_round_error_wraps_cause(self):
        cause = TaskExecutionError("t-1", "boom")
        error = RoundExecutionError(2, cause, cancelled=3)

        assert error.cause is cause
        assert error.round_number == 2
        assert error.to_dict() == {
            "code": "ROUND_EXECUTION_FAILED",
            "message": "Round 2 failed: Execution of task t-1 failed: boom",
            "details": {"round": 2, "cause": str(cause), "cancelled": 3},
        }

    def test_planning_error_message(self):
        error = PlanningError("model unavailable", "g-1")
        assert str(error) == "Planning failed: model unavailable"
        assert error.details == {"goal_id": "g-1"}


class TestErrorResponse:

    def test_from_engine_error(self):
        response = ErrorResponse.from_exception(TaskPersistenceError("a", "disk full"), trace_id="t")

        data = response.to_dict()
        assert data["success"] is False
        assert data["error"]["code"] == "TASK_PERSISTENCE_FAILED"
        assert data["error"]["type"] == ErrorType.PERSISTENCE.value
        assert data["error"]["traceId"] == "t"

    def test_from_generic_exception(self):
        response = ErrorResponse.from_exception(KeyError("x"))

        assert response.error_code == "INTERNAL_ERROR"
        assert response.error_type == ErrorType.SYSTEM
        assert response.details == {"exception_type": "KeyError"}

    def test_not_found(self):
        assert ErrorResponse.from_exception(GoalNotFoundError("g")).error_type == ErrorType.VALIDATION
        assert ErrorResponse.not_found("goal", "g").error_code == "GOAL_NOT_FOUND"
