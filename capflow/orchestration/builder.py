"""
Plan builder.

Turns capability calls into plans of ordered steps with positional
dependencies. Two entry points:

- ``build_explicit_plan``: one step per call in a batch, with dependencies
  inferred between calls from return shapes and parameter names;
- ``build_smart_plan``: a single target call whose missing required
  parameters are filled from the context or by inserting resolver steps.
"""

import logging
from typing import Any, Dict, List, Optional

from ..capabilities.registry import CapabilityRegistry
from ..errors import CapabilityNotFound
from ..models import CapabilityCall, ExecutionContext, Plan, Step
from .matchers import ReturnShapeMatcher, can_supply
from .resolution import find_resolver_capability, is_unset, resolve_from_context
from .store import PlanStore

logger = logging.getLogger(__name__)

CREATE_TASK = "create-task"
GENERATE_PR_TEMPLATE = "generate-pr-template"
DEFAULT_RESOLVER_PAGE_SIZE = 5


def needs_task_creation(capability_id: str, parameters: Dict[str, Any]) -> bool:
    """A PR template request that has task details but no task id."""
    return (
        capability_id == GENERATE_PR_TEMPLATE
        and is_unset(parameters, "taskId")
        and bool(parameters.get("title") or parameters.get("description"))
    )


def task_creation_parameters(parameters: Dict[str, Any]) -> Dict[str, Any]:
    """Parameters for the create-task step inserted ahead of a PR template."""
    created = {
        "title": parameters.get("title") or "New Task",
        "description": parameters.get("description") or "Task created for PR generation",
        "type": parameters.get("type") or "feature",
        "priority": parameters.get("priority") or "medium",
        "estimatedEffort": parameters.get("estimatedEffort") or 8,
    }
    if parameters.get("repositoryId") is not None:
        created["repositoryId"] = parameters["repositoryId"]
    return created


def insert_step(steps: List[Step], position: int, step: Step) -> None:
    """Insert ``step`` at ``position``, shifting dependency references that follow it."""
    for existing in steps:
        existing.depends_on = [d + 1 if d >= position else d for d in existing.depends_on]
    steps.insert(position, step)


class PlanBuilder:
    """
    Builds plans and registers them in a plan store.

    Args:
        registry: Capability catalog used to read schemas and return shapes
        store: Store the built plans are registered in
        matchers: Dependency matchers, in order (defaults to the standard set)
        resolver_page_size: ``limit`` passed to inserted resolver steps
    """

    def __init__(
        self,
        registry: CapabilityRegistry,
        store: PlanStore,
        matchers: Optional[List[ReturnShapeMatcher]] = None,
        resolver_page_size: int = DEFAULT_RESOLVER_PAGE_SIZE,
    ):
        self.registry = registry
        self.store = store
        self.matchers = matchers
        self.resolver_page_size = resolver_page_size

    def infer_dependencies(self, index: int, calls: List[CapabilityCall]) -> List[int]:
        """
        Positions of the other calls that ``calls[index]`` should wait for.

        Calls whose capability is unknown get no dependencies; they still get a
        step and fail when dispatched.
        """
        call = calls[index]
        capability = self.registry.get(call.capability_id)
        if capability is None:
            return []

        dependencies: List[int] = []

        def add(position: int) -> None:
            if position not in dependencies:
                dependencies.append(position)

        if needs_task_creation(call.capability_id, call.parameters):
            for position, other in enumerate(calls):
                if position != index and other.capability_id == CREATE_TASK:
                    logger.debug("PR template call %s waits for task creation %s", call.id, other.id)
                    add(position)

        for parameter in capability.parameters.missing(call.parameters):
            for position, other in enumerate(calls):
                if position == index:
                    continue
                provider = self.registry.get(other.capability_id)
                if provider is not None and can_supply(provider, parameter, self.matchers):
                    add(position)

        return dependencies

    def build_explicit_plan(
        self, calls: List[CapabilityCall], context: ExecutionContext
    ) -> Plan:
        """
        Build a plan with one step per call.

        A PR template call that needs a task created first depends on the
        batch's create-task calls; when the batch has none, a create-task step
        is inserted immediately before it.

        Args:
            calls: Calls in caller order
            context: Execution context (copied into the plan)

        Returns:
            Registered plan
        """
        steps = [
            Step(
                capability_id=call.capability_id,
                parameters=dict(call.parameters),
                depends_on=self.infer_dependencies(index, calls),
                call_id=call.id,
            )
            for index, call in enumerate(calls)
        ]

        batch_creates_task = any(call.capability_id == CREATE_TASK for call in calls)
        if not batch_creates_task:
            position = 0
            while position < len(steps):
                step = steps[position]
                if needs_task_creation(step.capability_id, step.parameters):
                    insert_step(
                        steps,
                        position,
                        Step(
                            capability_id=CREATE_TASK,
                            parameters=task_creation_parameters(step.parameters),
                        ),
                    )
                    step.depends_on.append(position)
                    logger.debug("Inserted task creation step before PR template at %d", position)
                    position += 1
                position += 1

        plan = self.store.add(Plan(steps=steps, context=context.snapshot()))
        logger.info("Created plan %s with %d steps for %d calls", plan.id, len(steps), len(calls))
        return plan

    def build_smart_plan(self, primary: CapabilityCall, context: ExecutionContext) -> Plan:
        """
        Build a plan that fills ``primary``'s missing required parameters.

        Parameters are first resolved from the context; each one still missing
        gets a resolver step (one per listing capability). The primary step
        comes last and depends on every earlier step.

        Raises:
            CapabilityNotFound: If the primary capability is not in the catalog
        """
        capability = self.registry.get(primary.capability_id)
        if capability is None:
            raise CapabilityNotFound(primary.capability_id)

        parameters = resolve_from_context(primary.parameters, capability, context)
        steps: List[Step] = []
        covered = set()

        if needs_task_creation(primary.capability_id, parameters):
            steps.append(
                Step(capability_id=CREATE_TASK, parameters=task_creation_parameters(parameters))
            )
            covered.add("taskId")

        for parameter in capability.parameters.missing(parameters):
            if parameter in covered:
                continue

            resolver_id = find_resolver_capability(parameter)
            if resolver_id is None:
                logger.info("No resolver capability for parameter %s", parameter)
                continue
            if resolver_id not in self.registry:
                logger.warning(
                    "Resolver %s for parameter %s is not in the catalog", resolver_id, parameter
                )
                continue
            if any(step.capability_id == resolver_id for step in steps):
                continue

            logger.debug("Resolving %s with %s", parameter, resolver_id)
            steps.append(
                Step(capability_id=resolver_id, parameters={"limit": self.resolver_page_size})
            )

        steps.append(
            Step(
                capability_id=primary.capability_id,
                parameters=parameters,
                depends_on=list(range(len(steps))),
                call_id=primary.id,
            )
        )

        plan = self.store.add(Plan(steps=steps, context=context.snapshot()))
        logger.info(
            "Created smart plan %s with %d steps for %s", plan.id, len(steps), primary.capability_id
        )
        return plan
