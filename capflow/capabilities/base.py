"""
Base capability interface for the orchestration catalog.

This module provides the abstract base class that all capabilities must implement,
enabling a plugin-like catalog where each capability describes its parameters and
return shape so the orchestrator can chain calls automatically.
"""

import inspect
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, Union

from ..models import ExecutionContext, ParameterSchema, ReturnSpec

Handler = Callable[[Dict[str, Any], ExecutionContext], Union[Any, Awaitable[Any]]]


class Capability(ABC):
    """
    Abstract base class for catalog capabilities.

    A capability represents a discrete operation (e.g., list tasks, create a
    task, generate a PR template) with a parameter schema, a return-type
    descriptor and an async handler.

    Capabilities are immutable once registered; the orchestrator only reads
    their descriptors.
    """

    @property
    @abstractmethod
    def id(self) -> str:
        """Unique identifier for this capability (e.g. "list-tasks")."""
        pass

    @property
    def name(self) -> str:
        """Display name, derived from the id by default."""
        return " ".join(part.capitalize() for part in self.id.split("-"))

    @property
    def description(self) -> str:
        return ""

    @property
    @abstractmethod
    def parameters(self) -> ParameterSchema:
        """Schema describing accepted parameters."""
        pass

    @property
    def returns(self) -> ReturnSpec:
        """
        Descriptor of the handler's payload.

        Returns:
            ReturnSpec (defaults to an object return)
        """
        return ReturnSpec(type="object")

    @property
    def category(self) -> str:
        return "management"

    @abstractmethod
    async def handle(self, parameters: Dict[str, Any], context: ExecutionContext) -> Any:
        """
        Execute the capability.

        Args:
            parameters: Validated parameter values
            context: Current execution context (read-only)

        Returns:
            JSON-serializable payload

        Raises:
            Exception: Any domain error (e.g. "Task not found")
        """
        pass

    def to_schema(self) -> Dict[str, Any]:
        """Export the descriptor in its catalog shape."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters.model_dump(exclude_none=True),
            "returns": self.returns.model_dump(),
            "category": self.category,
        }

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id}>"


class FunctionCapability(Capability):
    """
    Capability backed by a plain function.

    The function receives ``(parameters, context)`` and may be sync or async.

    Example:
        >>> echo = FunctionCapability(
        ...     "echo",
        ...     lambda params, ctx: {"message": params["message"]},
        ...     parameters=ParameterSchema(
        ...         properties={"message": ParameterProperty()}, required=["message"]
        ...     ),
        ... )
    """

    def __init__(
        self,
        capability_id: str,
        handler: Handler,
        parameters: ParameterSchema | None = None,
        returns: ReturnSpec | None = None,
        category: str = "management",
        name: str | None = None,
        description: str = "",
    ):
        self._id = capability_id
        self._handler = handler
        self._parameters = parameters or ParameterSchema()
        self._returns = returns or ReturnSpec()
        self._category = category
        self._name = name
        self._description = description

    @property
    def id(self) -> str:
        return self._id

    @property
    def name(self) -> str:
        return self._name or super().name

    @property
    def description(self) -> str:
        return self._description

    @property
    def parameters(self) -> ParameterSchema:
        return self._parameters

    @property
    def returns(self) -> ReturnSpec:
        return self._returns

    @property
    def category(self) -> str:
        return self._category

    async def handle(self, parameters: Dict[str, Any], context: ExecutionContext) -> Any:
        result = self._handler(parameters, context)
        if inspect.isawaitable(result):
            result = await result
        return result
