"""
Capability client.

Call layer in front of the dispatch facade. Adds what a caller needs around a
single invocation:

- suppression of identical calls already in flight
- a wall-clock timeout per handler call and an overall time limit per plan run
- retries with exponential backoff
- batch execution through one explicit plan, degrading to sequential calls
  when orchestration fails
"""

import asyncio
import json
import logging
from typing import Any, Awaitable, Dict, List, Optional, Set, Union

from .capabilities.registry import CapabilityRegistry, create_default_registry
from .config import ClientConfig
from .context import apply_result
from .dispatcher import CapabilityDispatcher
from .errors import (
    RETRYABLE_KINDS,
    CapflowError,
    DuplicateExecutionSuppressed,
)
from .models import CapabilityCall, CapabilityResult, ExecutionContext
from .orchestration.store import PlanStore

logger = logging.getLogger(__name__)

CallSpec = Union[CapabilityCall, Dict[str, Any]]


def call_key(capability_id: str, parameters: Dict[str, Any]) -> str:
    """Identity of a call: capability id plus canonical JSON of its parameters."""
    return f"{capability_id}:{json.dumps(parameters, sort_keys=True, default=str)}"


def as_call(spec: CallSpec) -> CapabilityCall:
    """
    Normalize a call given as a model or a plain dict.

    Dicts may use ``capability_id`` or ``capabilityId`` and may omit ``id``.
    """
    if isinstance(spec, CapabilityCall):
        return spec

    data = dict(spec)
    if "capabilityId" in data and "capability_id" not in data:
        data["capability_id"] = data.pop("capabilityId")
    if data.get("parameters") is None:
        data["parameters"] = {}
    if data.get("id") is None:
        data.pop("id", None)
    return CapabilityCall.model_validate(data)


class CapabilityClient:
    """
    Entry point for submitting capability calls.

    Example:
        >>> client = CapabilityClient.from_registry()
        >>> result = await client.call("list-tasks", {"status": "backlog"}, context)
    """

    def __init__(self, dispatcher: CapabilityDispatcher, config: Optional[ClientConfig] = None):
        """
        Initialize client.

        Args:
            dispatcher: Facade used to execute calls
            config: Client configuration (defaults apply if omitted)
        """
        self.dispatcher = dispatcher
        self.config = config or ClientConfig()
        self._in_flight: Set[str] = set()

    @classmethod
    def from_registry(
        cls,
        registry: Optional[CapabilityRegistry] = None,
        config: Optional[ClientConfig] = None,
        verbose: int = 0,
    ) -> "CapabilityClient":
        """
        Build a client with its own dispatcher and plan store.

        Args:
            registry: Capability catalog (the workspace catalog if omitted)
            config: Client configuration
            verbose: Verbosity level for plan execution output
        """
        config = config or ClientConfig()
        dispatcher = CapabilityDispatcher(
            registry if registry is not None else create_default_registry(),
            store=PlanStore(ttl=config.plan_ttl),
            resolver_page_size=config.resolver_page_size,
            verbose=verbose,
        )
        return cls(dispatcher, config)

    @property
    def registry(self) -> CapabilityRegistry:
        return self.dispatcher.registry

    @property
    def store(self) -> PlanStore:
        return self.dispatcher.store

    # ------------------------------------------------------------------
    # Single calls
    # ------------------------------------------------------------------

    async def call(
        self,
        capability_id: str,
        parameters: Optional[Dict[str, Any]] = None,
        context: Optional[ExecutionContext] = None,
    ) -> CapabilityResult:
        """
        Submit one capability call.

        Args:
            capability_id: Capability to invoke
            parameters: Parameter values (None values are resolved when possible)
            context: Execution context (an empty one if omitted)

        Returns:
            Result of the call
        """
        call = CapabilityCall(capability_id=capability_id, parameters=parameters or {})
        return await self.submit(call, context or ExecutionContext())

    async def submit(self, call: CapabilityCall, context: ExecutionContext) -> CapabilityResult:
        """Submit a prepared call with duplicate suppression and the call timeout."""
        duplicate = self._claim(call)
        if duplicate is not None:
            return duplicate

        try:
            return await self._dispatch(call, context)
        finally:
            self._release(call)

    def _claim(self, call: CapabilityCall) -> Optional[CapabilityResult]:
        """Mark ``call`` in flight, or return a suppressed result if an identical one is."""
        key = call_key(call.capability_id, call.parameters)
        if key in self._in_flight:
            logger.info("Suppressed duplicate %s call %s", call.capability_id, call.id)
            return CapabilityResult.failure(
                call.id, DuplicateExecutionSuppressed(call.capability_id)
            )
        self._in_flight.add(key)
        return None

    def _release(self, call: CapabilityCall) -> None:
        self._in_flight.discard(call_key(call.capability_id, call.parameters))

    async def _dispatch(self, call: CapabilityCall, context: ExecutionContext) -> CapabilityResult:
        # The call timeout bounds the handler; a smart plan filling missing
        # parameters is bounded by the orchestration timeout instead.
        return await self.dispatcher.execute_one(
            call,
            context,
            timeout=self.config.timeout,
            orchestration_timeout=self.config.orchestration_timeout,
        )

    async def call_with_retry(
        self,
        capability_id: str,
        parameters: Optional[Dict[str, Any]] = None,
        context: Optional[ExecutionContext] = None,
        attempts: Optional[int] = None,
    ) -> CapabilityResult:
        """
        Submit a call, retrying handler failures and timeouts with backoff.

        Validation and not-found failures are returned at once. Between tries
        the client sleeps ``retry_base_delay * 2**attempt`` seconds.

        Args:
            capability_id: Capability to invoke
            parameters: Parameter values
            context: Execution context
            attempts: Total tries (defaults to ``config.retry_attempts``)

        Returns:
            The first successful result, or the last failed one
        """
        attempts = attempts or self.config.retry_attempts
        result = None

        for attempt in range(1, attempts + 1):
            result = await self.call(capability_id, parameters, context)
            if result.success or result.error_type not in RETRYABLE_KINDS:
                return result

            if attempt < attempts:
                delay = self.config.backoff_delay(attempt)
                logger.info(
                    "Attempt %d/%d for %s failed (%s), retrying in %.2fs",
                    attempt,
                    attempts,
                    capability_id,
                    result.error,
                    delay,
                )
                await asyncio.sleep(delay)

        logger.warning("%s failed after %d attempts: %s", capability_id, attempts, result.error)
        return result

    # ------------------------------------------------------------------
    # Orchestrated calls
    # ------------------------------------------------------------------

    async def _bounded(self, awaitable: Awaitable[Any]) -> Any:
        if self.config.orchestration_timeout is None:
            return await awaitable
        return await asyncio.wait_for(awaitable, timeout=self.config.orchestration_timeout)

    async def call_batch(
        self, calls: List[CallSpec], context: Optional[ExecutionContext] = None
    ) -> List[CapabilityResult]:
        """
        Execute a batch of calls as one plan.

        Identical calls in the batch run once; the repeats get a
        duplicate-suppressed result. If building or running the plan fails,
        the unique calls run one after another instead, each seeing the
        entities created by the ones before it.

        Args:
            calls: Calls as ``CapabilityCall`` models or dicts
            context: Execution context shared by the batch

        Returns:
            One result per input call, in input order
        """
        context = context or ExecutionContext()
        normalized = [as_call(spec) for spec in calls]

        # Input position -> position among the unique calls, None for repeats
        slots: List[Optional[int]] = []
        unique: List[CapabilityCall] = []
        seen: Set[str] = set()
        for call in normalized:
            key = call_key(call.capability_id, call.parameters)
            if key in seen:
                slots.append(None)
            else:
                seen.add(key)
                slots.append(len(unique))
                unique.append(call)

        repeats = slots.count(None)
        if repeats:
            logger.info("Suppressed %d duplicate calls in batch", repeats)

        try:
            results = await self._run_plan(unique, context)
        except (CapflowError, asyncio.TimeoutError) as e:
            logger.warning("Batch orchestration failed, running calls sequentially: %s", e)
            results = await self._run_sequential(unique, context)
        finally:
            self.store.reap()

        return [
            CapabilityResult.failure(call.id, DuplicateExecutionSuppressed(call.capability_id))
            if slot is None
            else results[slot]
            for call, slot in zip(normalized, slots)
        ]

    async def _run_plan(
        self, calls: List[CapabilityCall], context: ExecutionContext
    ) -> List[CapabilityResult]:
        plan = self.dispatcher.builder.build_explicit_plan(calls, context)
        try:
            await self._bounded(self.dispatcher.executor.execute(plan.id))
        finally:
            self.store.discard(plan.id)

        # Inserted steps carry no call id; the rest are the calls in order
        return [step.result for step in plan.steps if step.call_id is not None]

    async def _run_sequential(
        self, calls: List[CapabilityCall], context: ExecutionContext
    ) -> List[CapabilityResult]:
        results = []
        for call in calls:
            result = await self.submit(call, context)
            results.append(result)
            if result.success and result.data:
                context = apply_result(context, call.capability_id, result.data)
        return results

    async def call_with_auto_resolve(
        self,
        capability_id: str,
        parameters: Optional[Dict[str, Any]] = None,
        context: Optional[ExecutionContext] = None,
    ) -> CapabilityResult:
        """
        Run a call through a smart plan that fills its missing parameters.

        Identical calls already in flight are suppressed as with ``call``.
        Falls back to a direct call when the plan cannot be built or run.

        Returns:
            Result of the requested capability
        """
        context = context or ExecutionContext()
        call = CapabilityCall(capability_id=capability_id, parameters=parameters or {})

        duplicate = self._claim(call)
        if duplicate is not None:
            return duplicate

        plan = None
        try:
            plan = self.dispatcher.builder.build_smart_plan(call, context)
            results = await self._bounded(self.dispatcher.executor.execute(plan.id))
            return results[-1]
        except (CapflowError, asyncio.TimeoutError) as e:
            logger.warning("Auto-resolve failed for %s, calling directly: %s", capability_id, e)
            return await self._dispatch(call, context)
        finally:
            self._release(call)
            if plan is not None:
                self.store.discard(plan.id)
            self.store.reap()
