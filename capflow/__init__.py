"""
capflow: capability orchestration.

Turns batches of partially specified capability calls into dependency-ordered
plans, fills missing parameters from the execution context or from other
capabilities, and executes the plans with result propagation.
"""

__version__ = "0.1.0"

from .capabilities import (
    Capability,
    CapabilityRegistry,
    FunctionCapability,
    create_default_registry,
)
from .client import CapabilityClient
from .config import ClientConfig
from .context import apply_result, load_context, merge_by_id
from .dispatcher import CapabilityDispatcher
from .errors import (
    CapabilityNotFound,
    CapflowError,
    CircularDependency,
    DuplicateExecutionSuppressed,
    ErrorKind,
    ExecutionTimeout,
    HandlerExecutionError,
    InvalidParameterValue,
    MissingRequiredParameter,
    PlanNotFound,
)
from .models import (
    CapabilityCall,
    CapabilityResult,
    ExecutionContext,
    ParameterProperty,
    ParameterSchema,
    Plan,
    PlanStatus,
    ReturnSpec,
    Step,
)
from .orchestration import PlanBuilder, PlanExecutor, PlanStore

__all__ = [
    "__version__",
    # Catalog
    "Capability",
    "FunctionCapability",
    "CapabilityRegistry",
    "create_default_registry",
    # Models
    "ParameterProperty",
    "ParameterSchema",
    "ReturnSpec",
    "CapabilityCall",
    "CapabilityResult",
    "ExecutionContext",
    "Plan",
    "PlanStatus",
    "Step",
    # Orchestration
    "PlanBuilder",
    "PlanExecutor",
    "PlanStore",
    "CapabilityDispatcher",
    "CapabilityClient",
    "ClientConfig",
    # Context
    "apply_result",
    "load_context",
    "merge_by_id",
    # Errors
    "ErrorKind",
    "CapflowError",
    "CapabilityNotFound",
    "MissingRequiredParameter",
    "InvalidParameterValue",
    "HandlerExecutionError",
    "CircularDependency",
    "PlanNotFound",
    "DuplicateExecutionSuppressed",
    "ExecutionTimeout",
]
