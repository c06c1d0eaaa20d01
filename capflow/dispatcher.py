"""
Dispatch facade.

Single entry point for invoking one capability: looks it up, validates the
supplied parameters, fills missing ones through a smart plan when allowed,
and runs the handler. Every outcome, including handler exceptions, comes back
as a ``CapabilityResult``.
"""

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

from .capabilities.base import Capability
from .capabilities.registry import CapabilityRegistry
from .errors import (
    CapabilityNotFound,
    CapflowError,
    ExecutionTimeout,
    HandlerExecutionError,
    InvalidParameterValue,
    MissingRequiredParameter,
)
from .models import CapabilityCall, CapabilityResult, ExecutionContext, ResultMetadata
from .orchestration.builder import DEFAULT_RESOLVER_PAGE_SIZE, PlanBuilder
from .orchestration.executor import PlanExecutor
from .orchestration.matchers import ReturnShapeMatcher
from .orchestration.store import PlanStore

logger = logging.getLogger(__name__)


def validate_parameters(capability: Capability, parameters: Dict[str, Any]) -> None:
    """
    Check supplied values against the capability's enum constraints.

    Unset (None) values are not checked; they are a missing-parameter concern.

    Raises:
        InvalidParameterValue: For the first value outside its allowed set
    """
    for name, prop in capability.parameters.properties.items():
        value = parameters.get(name)
        if value is None or not prop.enum:
            continue
        if value not in prop.enum:
            raise InvalidParameterValue(name, value, prop.enum)


class CapabilityDispatcher:
    """
    Invokes capabilities from a registry.

    Owns the plan builder and executor used to resolve missing parameters;
    the executor calls back into ``execute_one`` for every step.
    """

    def __init__(
        self,
        registry: CapabilityRegistry,
        store: Optional[PlanStore] = None,
        matchers: Optional[List[ReturnShapeMatcher]] = None,
        resolver_page_size: int = DEFAULT_RESOLVER_PAGE_SIZE,
        verbose: int = 0,
    ):
        """
        Initialize dispatcher.

        Args:
            registry: Capability catalog
            store: Plan store shared by builder and executor (a new one if omitted)
            matchers: Dependency matchers for explicit plans
            resolver_page_size: ``limit`` passed to inserted resolver steps
            verbose: Verbosity level for plan execution output
        """
        self.registry = registry
        self.store = store if store is not None else PlanStore()
        self.builder = PlanBuilder(
            registry, self.store, matchers=matchers, resolver_page_size=resolver_page_size
        )
        self.executor = PlanExecutor(self, self.store, verbose=verbose)

    async def execute_one(
        self,
        call: CapabilityCall,
        context: ExecutionContext,
        resolve_missing: bool = True,
        timeout: Optional[float] = None,
        orchestration_timeout: Optional[float] = None,
    ) -> CapabilityResult:
        """
        Execute a single capability call.

        Args:
            call: Call to execute
            context: Execution context passed to the handler
            resolve_missing: Fill missing required parameters with a smart plan
                instead of failing
            timeout: Limit in seconds for the handler itself (None for no limit)
            orchestration_timeout: Limit in seconds for a smart plan run to fill
                missing parameters (None for no limit)

        Returns:
            Result of the call; never raises for call-level failures
        """
        capability = self.registry.get(call.capability_id)
        if capability is None:
            logger.warning("Capability not found: %s", call.capability_id)
            return CapabilityResult.failure(call.id, CapabilityNotFound(call.capability_id))

        try:
            validate_parameters(capability, call.parameters)
        except InvalidParameterValue as e:
            logger.info("Rejected %s call %s: %s", call.capability_id, call.id, e)
            return CapabilityResult.failure(call.id, e)

        missing = capability.parameters.missing(call.parameters)
        if missing:
            if resolve_missing:
                return await self._execute_with_resolution(
                    call, context, missing, orchestration_timeout
                )
            return CapabilityResult.failure(call.id, MissingRequiredParameter(missing[0]))

        return await self._invoke(capability, call, context, timeout)

    async def _execute_with_resolution(
        self,
        call: CapabilityCall,
        context: ExecutionContext,
        missing: List[str],
        orchestration_timeout: Optional[float],
    ) -> CapabilityResult:
        logger.info(
            "Resolving missing parameters for %s: %s", call.capability_id, ", ".join(missing)
        )
        plan = None
        try:
            plan = self.builder.build_smart_plan(call, context)
            execution = self.executor.execute(plan.id)
            if orchestration_timeout is None:
                results = await execution
            else:
                results = await asyncio.wait_for(execution, timeout=orchestration_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "Resolving parameters for %s timed out after %ss",
                call.capability_id,
                orchestration_timeout,
            )
            return CapabilityResult.failure(
                call.id, ExecutionTimeout(orchestration_timeout, "Parameter resolution timeout")
            )
        except CapflowError as e:
            logger.warning("Failed to resolve missing parameters for %s: %s", call.capability_id, e)
            return CapabilityResult.failure(
                call.id, f"Failed to resolve missing parameters: {e}", kind=e.kind
            )
        finally:
            if plan is not None:
                self.store.discard(plan.id)

        return results[-1].model_copy(update={"call_id": call.id})

    async def _invoke(
        self,
        capability: Capability,
        call: CapabilityCall,
        context: ExecutionContext,
        timeout: Optional[float] = None,
    ) -> CapabilityResult:
        parameters = dict(call.parameters)
        start_time = time.time()

        try:
            if timeout is None:
                data = await capability.handle(parameters, context)
            else:
                data = await asyncio.wait_for(
                    capability.handle(parameters, context), timeout=timeout
                )
        except Exception as e:
            elapsed = time.time() - start_time
            if isinstance(e, CapflowError):
                error = e
            elif isinstance(e, asyncio.TimeoutError) and timeout is not None:
                error = ExecutionTimeout(timeout)
            else:
                error = HandlerExecutionError(str(e) or type(e).__name__)
            logger.info("Capability %s failed after %.2fs: %s", capability.id, elapsed, error)
            return CapabilityResult.failure(
                call.id,
                error,
                metadata=ResultMetadata(
                    elapsed_time=elapsed, capability_id=capability.id, parameters=parameters
                ),
            )

        elapsed = time.time() - start_time
        logger.debug("Capability %s completed in %.2fs", capability.id, elapsed)
        return CapabilityResult.ok(
            call.id,
            data,
            metadata=ResultMetadata(
                elapsed_time=elapsed, capability_id=capability.id, parameters=parameters
            ),
        )
