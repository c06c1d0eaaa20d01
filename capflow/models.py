"""
Data models for capability orchestration.

This module defines the core data structures shared by the catalog, the plan
builder, the executor and the call layer.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from .errors import CapflowError, ErrorKind


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id(prefix: str) -> str:
    """Generate a short unique identifier such as ``plan_1f0c2a9e4b7d``."""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


# ============================================================================
# Capability descriptors
# ============================================================================


class ParameterProperty(BaseModel):
    """
    Schema for a single capability parameter.

    Attributes:
        type: JSON type name ("string", "number", "array", ...)
        description: Human readable description
        enum: Optional closed set of allowed values
    """

    model_config = ConfigDict(frozen=True)

    type: str = "string"
    description: str = ""
    enum: Optional[List[Any]] = None


class ParameterSchema(BaseModel):
    """
    JSON-schema style description of a capability's parameters.

    Attributes:
        type: Always "object"
        properties: Parameter name to property schema
        required: Names of parameters that must be present and non-null
    """

    model_config = ConfigDict(frozen=True)

    type: str = "object"
    properties: Dict[str, ParameterProperty] = {}
    required: List[str] = []

    def missing(self, parameters: Dict[str, Any]) -> List[str]:
        """Required parameters that are absent or None, in declaration order."""
        return [name for name in self.required if parameters.get(name) is None]


class ReturnSpec(BaseModel):
    """
    Descriptor of what a capability returns.

    ``type`` is "object", "array", or a scalar type name.
    """

    model_config = ConfigDict(frozen=True)

    type: str = "object"
    description: str = ""


# ============================================================================
# Calls and results
# ============================================================================


class CapabilityCall(BaseModel):
    """
    A request to invoke one capability.

    Attributes:
        id: Call identifier
        capability_id: Capability to invoke
        parameters: Parameter values; None marks a value pending resolution
        created_at: Creation time
    """

    id: str = Field(default_factory=lambda: new_id("call"))
    capability_id: str
    parameters: Dict[str, Any] = {}
    created_at: datetime = Field(default_factory=utcnow)


class ResultMetadata(BaseModel):
    elapsed_time: float
    capability_id: str
    parameters: Dict[str, Any] = {}


class CapabilityResult(BaseModel):
    """
    Outcome of one capability invocation.

    Exactly one of ``data`` (on success) or ``error`` (on failure) is set.

    Attributes:
        id: Result identifier
        call_id: Identifier of the originating call
        success: Whether the handler completed
        data: Handler payload
        error: Error message
        error_type: Kind of failure, used to tell throttling from real failures
        metadata: Timing and echoed parameters, when the handler was reached
        timestamp: Completion time
    """

    id: str = Field(default_factory=lambda: new_id("result"))
    call_id: str
    success: bool
    data: Any = None
    error: Optional[str] = None
    error_type: Optional[ErrorKind] = None
    metadata: Optional[ResultMetadata] = None
    timestamp: datetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def _check_payload(self) -> "CapabilityResult":
        if self.success and self.error is not None:
            raise ValueError("successful result cannot carry an error")
        if not self.success and self.data is not None:
            raise ValueError("failed result cannot carry data")
        if not self.success and self.error is None:
            raise ValueError("failed result needs an error message")
        return self

    @classmethod
    def ok(
        cls, call_id: str, data: Any, metadata: Optional[ResultMetadata] = None
    ) -> "CapabilityResult":
        return cls(call_id=call_id, success=True, data=data, metadata=metadata)

    @classmethod
    def failure(
        cls,
        call_id: str,
        error: Any,
        kind: Optional[ErrorKind] = None,
        metadata: Optional[ResultMetadata] = None,
    ) -> "CapabilityResult":
        """Build a failed result from an exception or a message."""
        if kind is None:
            kind = error.kind if isinstance(error, CapflowError) else ErrorKind.HANDLER_ERROR
        message = str(error) or type(error).__name__
        return cls(
            call_id=call_id, success=False, error=message, error_type=kind, metadata=metadata
        )


# ============================================================================
# Execution context
# ============================================================================


class ExecutionContext(BaseModel):
    """
    Snapshot of domain data threaded through a run.

    The record is frozen: every update returns a copy, so a caller's context
    and a running plan's working copy never alias. Collections hold plain
    dict records identified by their ``"id"`` key.

    Accepts camelCase keys (``currentRepository``, ``businessSpecs``) when
    loaded from JSON.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    user_id: Optional[str] = None
    team_id: Optional[str] = None
    current_repository: Optional[Dict[str, Any]] = None
    repositories: List[Dict[str, Any]] = []
    developers: List[Dict[str, Any]] = []
    tasks: List[Dict[str, Any]] = []
    business_specs: List[Dict[str, Any]] = []
    timestamp: datetime = Field(default_factory=utcnow)

    def with_updates(self, **changes: Any) -> "ExecutionContext":
        return self.model_copy(update=changes)

    def snapshot(self) -> "ExecutionContext":
        """Deep copy used as a plan's private working context."""
        return self.model_copy(deep=True)


# ============================================================================
# Plans
# ============================================================================


class PlanStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (PlanStatus.COMPLETED, PlanStatus.FAILED)


class Step(BaseModel):
    """
    One capability invocation within a plan.

    Attributes:
        capability_id: Capability to invoke
        parameters: Parameters as planned (may still hold unresolved values)
        depends_on: Positions of the steps that must run first
        call_id: Originating call, None for steps the builder inserted
        result: Result, set once by the executor
        executed: Whether the executor has run this step
    """

    capability_id: str
    parameters: Dict[str, Any] = {}
    depends_on: List[int] = []
    call_id: Optional[str] = None
    result: Optional[CapabilityResult] = None
    executed: bool = False


class Plan(BaseModel):
    """
    An ordered set of steps built for one orchestration request.

    Attributes:
        id: Plan identifier, the key in the plan store
        steps: Steps in position order
        context: Private copy of the execution context taken at creation
        final_context: Working context after the last executed step
        status: Lifecycle status
        error: Failure message when status is failed
        results: Results in execution order
        started_at: Creation time
        completed_at: Time the plan reached a terminal status
    """

    id: str = Field(default_factory=lambda: new_id("plan"))
    steps: List[Step] = []
    context: ExecutionContext = Field(default_factory=ExecutionContext)
    final_context: Optional[ExecutionContext] = None
    status: PlanStatus = PlanStatus.PENDING
    error: Optional[str] = None
    results: List[CapabilityResult] = []
    started_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None
