"""
Plan executor.

Runs a plan's steps in dependency order, one at a time. Each step's unset
parameters are filled from earlier results and then from the working context,
the step is dispatched, and a successful payload is merged into the
working context before the next step runs.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Dict, List

from rich.console import Console
from tqdm import tqdm

from ..context import apply_result
from ..errors import CircularDependency
from ..models import (
    CapabilityCall,
    CapabilityResult,
    ExecutionContext,
    Plan,
    PlanStatus,
    Step,
    utcnow,
)
from .builder import CREATE_TASK, GENERATE_PR_TEMPLATE
from .resolution import (
    MISSING,
    extract_from_result,
    is_unset,
    resolve_from_context,
    unset_parameters,
)
from .store import PlanStore

if TYPE_CHECKING:
    from ..dispatcher import CapabilityDispatcher

logger = logging.getLogger(__name__)
console = Console(stderr=True)


class PlanExecutor:
    """
    Executes plans held in a plan store.

    Steps never run concurrently: within a scan pass eligible steps run in
    position order, so context merges need no locking.
    """

    def __init__(self, dispatcher: "CapabilityDispatcher", store: PlanStore, verbose: int = 0):
        """
        Initialize executor.

        Args:
            dispatcher: Facade used to invoke each step
            store: Store holding the plans to execute
            verbose: Verbosity level (0=quiet, 1=info, 2=debug)
        """
        self.dispatcher = dispatcher
        self.store = store
        self.verbose = verbose

    async def execute(self, plan_id: str) -> List[CapabilityResult]:
        """
        Execute a stored plan.

        Args:
            plan_id: Id of a plan in the store

        Returns:
            One result per step, in step order

        Raises:
            PlanNotFound: If the plan is not in the store
            CircularDependency: If a scan pass runs no step while steps remain
        """
        plan = self.store.get(plan_id)
        plan.status = PlanStatus.IN_PROGRESS
        context = plan.context.snapshot()
        executed_order: List[int] = []
        total = len(plan.steps)

        if self.verbose > 0:
            console.print(
                f"[cyan]Execution plan {plan.id}: "
                f"{' → '.join(step.capability_id for step in plan.steps)}[/cyan]"
            )

        try:
            with tqdm(
                total=total,
                desc="Steps",
                disable=(self.verbose == 0 or total <= 1),
                bar_format="{desc}: {percentage:3.0f}%|{bar}| {n_fmt}/{total_fmt} [{elapsed}<{remaining}]",
            ) as pbar:
                while len(executed_order) < total:
                    ran_this_pass = 0

                    for position, step in enumerate(plan.steps):
                        if step.executed or not self._dependencies_met(plan, step):
                            continue

                        pbar.set_description(f"Executing {step.capability_id}")
                        context = await self._run_step(plan, position, context, executed_order)
                        plan.final_context = context
                        ran_this_pass += 1
                        pbar.update(1)

                    if ran_this_pass == 0:
                        pending = [i for i, step in enumerate(plan.steps) if not step.executed]
                        raise CircularDependency(plan.id, pending)

        except asyncio.CancelledError:
            self._mark_failed(plan, "Plan execution cancelled")
            raise
        except Exception as e:
            logger.error("Plan %s execution failed: %s", plan.id, e)
            self._mark_failed(plan, str(e))
            raise

        plan.status = PlanStatus.COMPLETED
        plan.completed_at = utcnow()
        plan.final_context = context
        logger.info("Plan %s completed (%d steps)", plan.id, total)

        return [step.result for step in plan.steps]

    @staticmethod
    def _dependencies_met(plan: Plan, step: Step) -> bool:
        # A reference outside the plan can never be met
        return all(
            0 <= dep < len(plan.steps) and plan.steps[dep].executed for dep in step.depends_on
        )

    @staticmethod
    def _mark_failed(plan: Plan, error: str) -> None:
        plan.status = PlanStatus.FAILED
        plan.error = error
        plan.completed_at = utcnow()

    async def _run_step(
        self,
        plan: Plan,
        position: int,
        context: ExecutionContext,
        executed_order: List[int],
    ) -> ExecutionContext:
        step = plan.steps[position]
        parameters = self._resolve_from_previous_steps(plan, step, executed_order)
        capability = self.dispatcher.registry.get(step.capability_id)
        if capability is not None:
            parameters = resolve_from_context(parameters, capability, context)

        if step.capability_id == GENERATE_PR_TEMPLATE and is_unset(parameters, "taskId"):
            created_id = self._created_task_id(plan, position)
            if created_id is not None:
                logger.debug("Using taskId from previous task creation: %s", created_id)
                parameters["taskId"] = created_id

        if self.verbose > 0:
            console.print(f"[cyan]Executing step {position}: {step.capability_id}[/cyan]")
        logger.debug("Executing %s with parameters %s", step.capability_id, parameters)

        call = CapabilityCall(
            id=step.call_id or f"{plan.id}_step_{position}",
            capability_id=step.capability_id,
            parameters=parameters,
        )
        result = await self.dispatcher.execute_one(call, context, resolve_missing=False)

        step.result = result
        step.executed = True
        plan.results.append(result)
        executed_order.append(position)

        if result.success:
            if self.verbose > 0:
                elapsed = result.metadata.elapsed_time if result.metadata else 0.0
                console.print(f"[green]✓ {step.capability_id} complete ({elapsed:.2f}s)[/green]")
            if result.data:
                context = apply_result(context, step.capability_id, result.data)
        else:
            logger.info("Step %d (%s) failed: %s", position, step.capability_id, result.error)
            if self.verbose > 0:
                console.print(f"[red]✗ {step.capability_id} failed: {result.error}[/red]")

        return context

    def _resolve_from_previous_steps(
        self, plan: Plan, step: Step, executed_order: List[int]
    ) -> Dict[str, Any]:
        """Fill unset parameters from successful results, earliest executed first."""
        parameters = dict(step.parameters)
        capability = self.dispatcher.registry.get(step.capability_id)

        for name in unset_parameters(parameters, capability):
            for prior in executed_order:
                prior_step = plan.steps[prior]
                result = prior_step.result
                if result is None or not result.success or not result.data:
                    continue

                value = extract_from_result(name, result.data, prior_step.capability_id)
                if value is not MISSING:
                    logger.debug(
                        "Resolved %s from previous step %s: %s", name, prior_step.capability_id, value
                    )
                    parameters[name] = value
                    break

        return parameters

    @staticmethod
    def _created_task_id(plan: Plan, position: int):
        for prior in plan.steps[:position]:
            result = prior.result
            if (
                prior.capability_id == CREATE_TASK
                and result is not None
                and result.success
                and isinstance(result.data, dict)
                and result.data.get("id") is not None
            ):
                return result.data["id"]
        return None


def get_timing_summary(plan: Plan) -> Dict[str, float]:
    """
    Get timing summary for an executed plan.

    Returns:
        Dict mapping "<position>:<capability id>" to elapsed time in seconds
    """
    timings = {}
    for position, step in enumerate(plan.steps):
        if step.result is not None and step.result.metadata is not None:
            timings[f"{position}:{step.capability_id}"] = step.result.metadata.elapsed_time
    return timings


def format_timing_summary(plan: Plan) -> str:
    """
    Format a plan's timing summary as a readable string.

    Returns:
        Formatted string with timing breakdown and percentages
    """
    timings = get_timing_summary(plan)
    if not timings:
        return "No timing data available"

    lines = []
    total = sum(timings.values())

    # Sort by time (descending)
    for label, elapsed in sorted(timings.items(), key=lambda x: x[1], reverse=True):
        percentage = (elapsed / total * 100) if total > 0 else 0
        lines.append(f"  • {label}: {elapsed:.2f}s ({percentage:.1f}%)")

    lines.append(f"  • Total: {total:.2f}s")
    return "\n".join(lines)
