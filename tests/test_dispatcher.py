import asyncio

from capflow.capabilities import CapabilityRegistry, FunctionCapability
from capflow.dispatcher import CapabilityDispatcher, validate_parameters
from capflow.errors import CircularDependency, ErrorKind
from capflow.models import (
    CapabilityCall,
    ExecutionContext,
    ParameterProperty,
    ParameterSchema,
    ReturnSpec,
)
from capflow.orchestration.store import PlanStore


def counting_capability(calls: list) -> FunctionCapability:
    def handler(params, ctx):
        calls.append(params)
        return {"mode": params["mode"]}

    return FunctionCapability(
        "set-mode",
        handler,
        parameters=ParameterSchema(
            properties={"mode": ParameterProperty(enum=["fast", "safe"])}, required=["mode"]
        ),
    )


def test_unknown_capability(dispatcher) -> None:
    async def run_test() -> None:
        call = CapabilityCall(capability_id="nope")

        result = await dispatcher.execute_one(call, ExecutionContext())

        assert not result.success
        assert result.call_id == call.id
        assert result.error == "Capability not found: nope"
        assert result.error_type == ErrorKind.CAPABILITY_NOT_FOUND

    asyncio.run(run_test())


def test_enum_violation_never_reaches_handler() -> None:
    async def run_test() -> None:
        calls = []
        registry = CapabilityRegistry()
        registry.register(counting_capability(calls))
        dispatcher = CapabilityDispatcher(registry)

        result = await dispatcher.execute_one(
            CapabilityCall(capability_id="set-mode", parameters={"mode": "reckless"}),
            ExecutionContext(),
        )

        assert result.error == "Invalid value for parameter mode: reckless. Must be one of: fast, safe"
        assert result.error_type == ErrorKind.INVALID_PARAMETER_VALUE
        assert calls == []

    asyncio.run(run_test())


def test_success_carries_metadata() -> None:
    async def run_test() -> None:
        calls = []
        registry = CapabilityRegistry()
        registry.register(counting_capability(calls))
        dispatcher = CapabilityDispatcher(registry)

        result = await dispatcher.execute_one(
            CapabilityCall(capability_id="set-mode", parameters={"mode": "safe"}),
            ExecutionContext(),
        )

        assert result.success
        assert result.data == {"mode": "safe"}
        assert result.error is None
        assert result.metadata.capability_id == "set-mode"
        assert result.metadata.parameters == {"mode": "safe"}
        assert result.metadata.elapsed_time >= 0
        assert calls == [{"mode": "safe"}]

    asyncio.run(run_test())


def test_handler_exception_becomes_failed_result() -> None:
    async def explode(params, ctx):
        raise RuntimeError("backend unavailable")

    async def run_test() -> None:
        registry = CapabilityRegistry()
        registry.register(FunctionCapability("explode", explode))
        dispatcher = CapabilityDispatcher(registry)

        result = await dispatcher.execute_one(
            CapabilityCall(capability_id="explode"), ExecutionContext()
        )

        assert not result.success
        assert result.data is None
        assert result.error == "backend unavailable"
        assert result.error_type == ErrorKind.HANDLER_ERROR
        assert result.metadata.capability_id == "explode"

    asyncio.run(run_test())


def test_missing_parameter_without_resolution(dispatcher) -> None:
    async def run_test() -> None:
        result = await dispatcher.execute_one(
            CapabilityCall(capability_id="generate-pr-template", parameters={"taskId": "t1"}),
            ExecutionContext(),
            resolve_missing=False,
        )

        assert result.error == "Missing required parameter: repositoryId"
        assert result.error_type == ErrorKind.MISSING_REQUIRED_PARAMETER

    asyncio.run(run_test())


def test_missing_parameter_resolved_through_smart_plan(dispatcher, store, workspace_context) -> None:
    async def run_test() -> None:
        call = CapabilityCall(
            capability_id="generate-pr-template", parameters={"repositoryId": "r2"}
        )

        result = await dispatcher.execute_one(call, workspace_context)

        assert result.success, result.error
        assert result.call_id == call.id
        assert result.data["task"]["id"] == "t1"
        assert result.data["repository"]["id"] == "r2"
        assert len(store) == 0

    asyncio.run(run_test())


def test_missing_parameter_resolved_from_current_repository(dispatcher, workspace_context) -> None:
    async def run_test() -> None:
        context = workspace_context.with_updates(current_repository={"id": "r2"})

        result = await dispatcher.execute_one(
            CapabilityCall(capability_id="generate-pr-template", parameters={"taskId": "t2"}),
            context,
        )

        assert result.success, result.error
        assert result.data["repository"]["name"] == "web-frontend"
        assert result.data["template"]["branchName"] == "fix/fix-login-redirect"

    asyncio.run(run_test())


def test_unresolvable_parameter_still_fails(dispatcher) -> None:
    async def run_test() -> None:
        call = CapabilityCall(
            capability_id="create-task",
            parameters={"title": "t", "description": "d", "type": "bug"},
        )

        result = await dispatcher.execute_one(call, ExecutionContext())

        assert result.call_id == call.id
        assert result.error == "Missing required parameter: priority"

    asyncio.run(run_test())


def test_plan_failure_during_resolution_becomes_failed_result(
    dispatcher, store, monkeypatch
) -> None:
    async def fail(plan_id):
        raise CircularDependency(plan_id, [0])

    async def run_test() -> None:
        monkeypatch.setattr(dispatcher.executor, "execute", fail)

        result = await dispatcher.execute_one(
            CapabilityCall(capability_id="generate-pr-template"), ExecutionContext()
        )

        assert result.error.startswith("Failed to resolve missing parameters: Circular dependency")
        assert result.error_type == ErrorKind.CIRCULAR_DEPENDENCY
        assert len(store) == 0

    asyncio.run(run_test())


def test_validate_parameters_ignores_unset_values(registry) -> None:
    validate_parameters(registry.get("list-tasks"), {"status": None, "limit": 3})


def slow_developer_listing(delay: float) -> FunctionCapability:
    async def handler(params, ctx):
        await asyncio.sleep(delay)
        return {"developers": [{"id": "d9", "name": "Lee Park"}]}

    return FunctionCapability("list-developers", handler, returns=ReturnSpec(type="object"))


def assign_capability() -> FunctionCapability:
    return FunctionCapability(
        "assign",
        lambda params, ctx: {"assigned": params["developerId"]},
        parameters=ParameterSchema(
            properties={"developerId": ParameterProperty()}, required=["developerId"]
        ),
    )


def test_handler_timeout_applies_to_direct_invocation() -> None:
    async def hang(params, ctx):
        await asyncio.sleep(1)

    async def run_test() -> None:
        registry = CapabilityRegistry()
        registry.register(FunctionCapability("hang", hang))
        dispatcher = CapabilityDispatcher(registry)

        result = await dispatcher.execute_one(
            CapabilityCall(capability_id="hang"), ExecutionContext(), timeout=0.05
        )

        assert result.error == "Capability execution timeout after 0.05s"
        assert result.error_type == ErrorKind.TIMEOUT
        assert result.metadata.capability_id == "hang"

    asyncio.run(run_test())


def test_handler_raising_timeout_without_limit_is_handler_error() -> None:
    def handler(params, ctx):
        raise asyncio.TimeoutError()

    async def run_test() -> None:
        registry = CapabilityRegistry()
        registry.register(FunctionCapability("upstream", handler))
        dispatcher = CapabilityDispatcher(registry)

        result = await dispatcher.execute_one(
            CapabilityCall(capability_id="upstream"), ExecutionContext()
        )

        assert result.error_type == ErrorKind.HANDLER_ERROR

    asyncio.run(run_test())


def test_handler_timeout_does_not_bound_parameter_resolution() -> None:
    async def run_test() -> None:
        registry = CapabilityRegistry()
        registry.register(slow_developer_listing(0.2))
        registry.register(assign_capability())
        dispatcher = CapabilityDispatcher(registry)

        result = await dispatcher.execute_one(
            CapabilityCall(capability_id="assign"),
            ExecutionContext(),
            timeout=0.05,
            orchestration_timeout=5.0,
        )

        assert result.success, result.error
        assert result.data == {"assigned": "d9"}

    asyncio.run(run_test())


def test_orchestration_timeout_bounds_parameter_resolution() -> None:
    async def run_test() -> None:
        registry = CapabilityRegistry()
        registry.register(slow_developer_listing(1.0))
        registry.register(assign_capability())
        store = PlanStore()
        dispatcher = CapabilityDispatcher(registry, store=store)

        result = await dispatcher.execute_one(
            CapabilityCall(capability_id="assign"),
            ExecutionContext(),
            timeout=5.0,
            orchestration_timeout=0.05,
        )

        assert result.error == "Parameter resolution timeout after 0.05s"
        assert result.error_type == ErrorKind.TIMEOUT
        assert len(store) == 0

    asyncio.run(run_test())
