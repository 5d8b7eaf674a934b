"""
Concierge Errors - Centralized failure taxonomy.

These are SYSTEM errors raised by the routing and orchestration layer.
Generation-backend failures are NOT in this list: they are absorbed by
the generation stage and surface as a degraded recommendation instead.

Each error has:
- ERROR_CODE: Unique identifier for logging/monitoring
- message: Human-readable description
- to_dict(): Structured output for tool results and callers
"""

from enum import Enum
from typing import Any, Dict, List, Optional


class ConciergeErrorCode(str, Enum):
    """
    Canonical error codes for routing and orchestration failures.
    """
    # Caller errors
    INVALID_INPUT = "INVALID_INPUT"
    TARGET_NOT_FOUND = "TARGET_NOT_FOUND"

    # Orchestration errors
    DISPATCH_FAILED = "DISPATCH_FAILED"
    ROUTER_ROUNDS_EXCEEDED = "ROUTER_ROUNDS_EXCEEDED"

    # Configuration errors (raised during initialization)
    PIPELINE_CONTRACT = "PIPELINE_CONTRACT"
    REGISTRY_LOCKED = "REGISTRY_LOCKED"


class ConciergeError(Exception):
    """
    Base class for all concierge errors.

    All of these are HARD FAILURES for the immediate caller. None of them
    is retried automatically.
    """

    ERROR_CODE: ConciergeErrorCode = None  # Override in subclasses

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Any = None,
        suggestions: Optional[List[str]] = None,
        metadata: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.field = field
        self.value = value
        self.suggestions = suggestions or []
        self.metadata = metadata or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert error to structured dict.

        Returns:
            {
                "error_code": "TARGET_NOT_FOUND",
                "error_type": "TargetNotFoundError",
                "message": "Pipeline 'travel-workflow' not found",
                "field": "target",
                "value": "travel-workflow",
                "suggestions": ["vehicle-workflow", "booking-workflow"],
                "metadata": {...}
            }
        """
        return {
            "error_code": self.ERROR_CODE.value if self.ERROR_CODE else "CONCIERGE_ERROR",
            "error_type": self.__class__.__name__,
            "message": self.message,
            "field": self.field,
            "value": self.value,
            "suggestions": self.suggestions,
            "metadata": self.metadata
        }


# ============================================================================
# CALLER ERRORS
# ============================================================================

class InvalidInputError(ConciergeError):
    """
    ERROR_CODE: INVALID_INPUT

    Raised when the query is missing, empty or blank. Checked before any
    registry lookup or generation call.
    """
    ERROR_CODE = ConciergeErrorCode.INVALID_INPUT

    def __init__(self, message: str = "Query is required", field: str = "query", value: Any = None):
        super().__init__(message=message, field=field, value=value)


class TargetNotFoundError(ConciergeError):
    """
    ERROR_CODE: TARGET_NOT_FOUND

    Raised when a dispatch target (pipeline, agent or tool) is not
    registered. A missing registration is a configuration defect, so this
    is never retried.
    """
    ERROR_CODE = ConciergeErrorCode.TARGET_NOT_FOUND

    def __init__(self, target: str, kind: str = "target", available: Optional[List[str]] = None):
        message = f"{kind.capitalize()} '{target}' not found"
        if available:
            message += f". Registered: {', '.join(available)}"
        super().__init__(
            message=message,
            field="target",
            value=target,
            suggestions=available,
            metadata={"kind": kind}
        )


# ============================================================================
# ORCHESTRATION ERRORS
# ============================================================================

class DispatchError(ConciergeError):
    """
    ERROR_CODE: DISPATCH_FAILED

    Raised when a pipeline run fails for a reason other than the generation
    backend (those are absorbed by stage 2). Always chained from the
    underlying exception.
    """
    ERROR_CODE = ConciergeErrorCode.DISPATCH_FAILED

    def __init__(self, target: str, cause: BaseException, run_id: Optional[str] = None):
        self.target = target
        self.cause = cause
        super().__init__(
            message=f"Dispatch to '{target}' failed: {type(cause).__name__}: {cause}",
            field="target",
            value=target,
            metadata={"run_id": run_id, "cause_type": type(cause).__name__, "cause": str(cause)}
        )


class RouterRoundsExceededError(ConciergeError):
    """
    ERROR_CODE: ROUTER_ROUNDS_EXCEEDED

    Raised when the router model keeps requesting tools past the configured
    round limit.
    """
    ERROR_CODE = ConciergeErrorCode.ROUTER_ROUNDS_EXCEEDED

    def __init__(self, max_rounds: int):
        super().__init__(
            message=f"Router did not finish within {max_rounds} tool rounds",
            metadata={"max_rounds": max_rounds}
        )


# ============================================================================
# CONFIGURATION ERRORS
# ============================================================================

class PipelineContractError(ConciergeError):
    """
    ERROR_CODE: PIPELINE_CONTRACT

    Raised at pipeline construction when the stages cannot be chained:
    wrong number of stages, or stage 1 output model differs from stage 2
    input model.
    """
    ERROR_CODE = ConciergeErrorCode.PIPELINE_CONTRACT

    def __init__(self, pipeline: str, message: str):
        super().__init__(
            message=f"Pipeline '{pipeline}': {message}",
            field="stages",
            value=pipeline,
        )


class RegistryLockedError(ConciergeError):
    """
    ERROR_CODE: REGISTRY_LOCKED

    Raised when something is registered after the registry has been sealed
    (explicitly, or by the first lookup), or when a name is registered twice.
    """
    ERROR_CODE = ConciergeErrorCode.REGISTRY_LOCKED

    def __init__(self, name: str, reason: str):
        super().__init__(
            message=f"Cannot register '{name}': {reason}",
            field="name",
            value=name,
        )


# ============================================================================
# CONVENIENCE FUNCTION
# ============================================================================

def format_error_response(error: ConciergeError) -> Dict[str, Any]:
    """
    Format a ConciergeError for a tool result or API-style response.

    Example:
        {
            "success": false,
            "error": {
                "error_code": "INVALID_INPUT",
                "error_type": "InvalidInputError",
                "message": "Query is required",
                ...
            }
        }
    """
    return {
        "success": False,
        "error": error.to_dict()
    }
