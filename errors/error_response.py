"""
ErrorResponse - standard error payload

Structured error record attached to failed workflow results.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any
from uuid import uuid4


class ErrorType(str, Enum):
    PLANNING = "planning"
    PERSISTENCE = "persistence"
    EXECUTION = "execution"
    VALIDATION = "validation"
    SYSTEM = "system"


class ErrorSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


_TYPE_BY_CODE = {
    "PLANNING_FAILED": ErrorType.PLANNING,
    "TASK_PERSISTENCE_FAILED": ErrorType.PERSISTENCE,
    "DEPENDENCY_PERSISTENCE_FAILED": ErrorType.PERSISTENCE,
    "TASK_EXECUTION_FAILED": ErrorType.EXECUTION,
    "ROUND_EXECUTION_FAILED": ErrorType.EXECUTION,
    "LLM_ERROR": ErrorType.EXECUTION,
    "VALIDATION_ERROR": ErrorType.VALIDATION,
    "GOAL_NOT_FOUND": ErrorType.VALIDATION,
    "TASK_NOT_FOUND": ErrorType.VALIDATION,
}


@dataclass
class ErrorResponse:
    """Standard error response"""
    error_code: str
    message: str
    error_type: ErrorType = ErrorType.SYSTEM
    severity: ErrorSeverity = ErrorSeverity.ERROR
    details: Optional[Dict[str, Any]] = None
    trace_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "success": False,
            "error": {
                "code": self.error_code,
                "type": self.error_type.value,
                "severity": self.severity.value,
                "message": self.message,
                "details": self.details,
                "traceId": self.trace_id,
                "timestamp": self.timestamp.isoformat()
            }
        }

    @classmethod
    def from_exception(cls, exception: Exception, trace_id: Optional[str] = None):
        """Build an ErrorResponse from an exception."""
        from .exceptions import WorkflowEngineError

        if isinstance(exception, WorkflowEngineError):
            return cls(
                error_code=exception.code,
                message=exception.message,
                error_type=_TYPE_BY_CODE.get(exception.code, ErrorType.SYSTEM),
                details=exception.details,
                trace_id=trace_id or str(uuid4())
            )

        return cls(
            error_code="INTERNAL_ERROR",
            message=str(exception) or type(exception).__name__,
            error_type=ErrorType.SYSTEM,
            severity=ErrorSeverity.ERROR,
            details={"exception_type": type(exception).__name__},
            trace_id=trace_id or str(uuid4())
        )

    @classmethod
    def not_found(cls, resource: str, resource_id: str):
        return cls(
            error_code=f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} '{resource_id}' not found",
            error_type=ErrorType.VALIDATION,
            severity=ErrorSeverity.WARNING,
            details={"resource": resource, "id": resource_id}
        )
