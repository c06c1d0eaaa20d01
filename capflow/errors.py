"""
Error taxonomy for capability orchestration.

Every failure the orchestrator can report has an ``ErrorKind``. Exceptions
carry their kind so a failed ``CapabilityResult`` can record it, which lets
callers distinguish a throttled call from a broken one.
"""

from enum import Enum


class ErrorKind(str, Enum):
    CAPABILITY_NOT_FOUND = "capability_not_found"
    MISSING_REQUIRED_PARAMETER = "missing_required_parameter"
    INVALID_PARAMETER_VALUE = "invalid_parameter_value"
    HANDLER_ERROR = "handler_error"
    CIRCULAR_DEPENDENCY = "circular_dependency"
    PLAN_NOT_FOUND = "plan_not_found"
    DUPLICATE_SUPPRESSED = "duplicate_suppressed"
    TIMEOUT = "timeout"


# Failures a second attempt may clear
RETRYABLE_KINDS = frozenset({ErrorKind.HANDLER_ERROR, ErrorKind.TIMEOUT})


class CapflowError(Exception):
    """Base class for all orchestration errors."""

    kind: ErrorKind = ErrorKind.HANDLER_ERROR


class CapabilityNotFound(CapflowError):
    kind = ErrorKind.CAPABILITY_NOT_FOUND

    def __init__(self, capability_id: str):
        self.capability_id = capability_id
        super().__init__(f"Capability not found: {capability_id}")


class MissingRequiredParameter(CapflowError):
    kind = ErrorKind.MISSING_REQUIRED_PARAMETER

    def __init__(self, parameter: str):
        self.parameter = parameter
        super().__init__(f"Missing required parameter: {parameter}")


class InvalidParameterValue(CapflowError):
    kind = ErrorKind.INVALID_PARAMETER_VALUE

    def __init__(self, parameter: str, value, allowed):
        self.parameter = parameter
        self.value = value
        self.allowed = list(allowed)
        super().__init__(
            f"Invalid value for parameter {parameter}: {value}. "
            f"Must be one of: {', '.join(str(v) for v in self.allowed)}"
        )


class HandlerExecutionError(CapflowError):
    """Wraps an exception raised inside a capability handler."""

    kind = ErrorKind.HANDLER_ERROR


class CircularDependency(CapflowError):
    kind = ErrorKind.CIRCULAR_DEPENDENCY

    def __init__(self, plan_id: str, pending: list):
        self.plan_id = plan_id
        self.pending = list(pending)
        super().__init__(
            f"Circular dependency detected in plan {plan_id} "
            f"(unrunnable steps: {', '.join(str(p) for p in self.pending)})"
        )


class PlanNotFound(CapflowError):
    kind = ErrorKind.PLAN_NOT_FOUND

    def __init__(self, plan_id: str):
        self.plan_id = plan_id
        super().__init__(f"Plan not found: {plan_id}")


class DuplicateExecutionSuppressed(CapflowError):
    kind = ErrorKind.DUPLICATE_SUPPRESSED

    def __init__(self, capability_id: str):
        self.capability_id = capability_id
        super().__init__(
            f"Duplicate execution suppressed: an identical {capability_id} call is in flight"
        )


class ExecutionTimeout(CapflowError):
    kind = ErrorKind.TIMEOUT

    def __init__(self, timeout: float, message: str = "Capability execution timeout"):
        self.timeout = timeout
        super().__init__(f"{message} after {timeout:g}s")
