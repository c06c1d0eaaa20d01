"""
Business specification capabilities.
"""

from typing import Any, Dict

from ...models import ExecutionContext, ParameterProperty, ParameterSchema, ReturnSpec, new_id
from ..base import Capability
from .tasks import PRIORITIES, find_by_id


class CreateBusinessSpecCapability(Capability):
    @property
    def id(self) -> str:
        return "create-business-spec"

    @property
    def name(self) -> str:
        return "Create Business Specification"

    @property
    def description(self) -> str:
        return "Create a new business specification"

    @property
    def category(self) -> str:
        return "generation"

    @property
    def parameters(self) -> ParameterSchema:
        return ParameterSchema(
            properties={
                "title": ParameterProperty(description="Specification title"),
                "description": ParameterProperty(description="Specification description"),
                "acceptanceCriteria": ParameterProperty(
                    type="array", description="List of acceptance criteria"
                ),
                "technicalRequirements": ParameterProperty(
                    type="array", description="List of technical requirements"
                ),
                "priority": ParameterProperty(
                    description="Specification priority", enum=PRIORITIES
                ),
            },
            required=["title", "description"],
        )

    @property
    def returns(self) -> ReturnSpec:
        return ReturnSpec(type="object", description="Created business specification")

    async def handle(self, parameters: Dict[str, Any], context: ExecutionContext) -> Any:
        spec = {
            "id": new_id("spec"),
            "title": parameters["title"],
            "description": parameters["description"],
            "acceptanceCriteria": parameters.get("acceptanceCriteria") or [],
            "technicalRequirements": parameters.get("technicalRequirements") or [],
            "priority": parameters.get("priority") or "medium",
            "status": "draft",
        }
        spec["message"] = f'Created business specification "{spec["title"]}" successfully'
        return spec


class GenerateTasksFromSpecCapability(Capability):
    """
    Drafts implementation and test tasks for a business specification.

    The drafted tasks are not persisted; callers create the ones they keep.
    """

    @property
    def id(self) -> str:
        return "generate-tasks-from-specs"

    @property
    def name(self) -> str:
        return "Generate Tasks from Business Specification"

    @property
    def description(self) -> str:
        return "Generate technical tasks from a business specification"

    @property
    def category(self) -> str:
        return "generation"

    @property
    def parameters(self) -> ParameterSchema:
        return ParameterSchema(
            properties={"specId": ParameterProperty(description="ID of the business specification")},
            required=["specId"],
        )

    @property
    def returns(self) -> ReturnSpec:
        return ReturnSpec(type="object", description="Generated tasks with reasoning")

    async def handle(self, parameters: Dict[str, Any], context: ExecutionContext) -> Any:
        spec = find_by_id(context.business_specs, parameters["specId"])
        if spec is None:
            raise LookupError("Business specification not found")

        common = {
            "priority": spec.get("priority") or "medium",
            "status": "backlog",
            "repositoryId": spec.get("repositoryId"),
            "businessSpecId": spec["id"],
        }
        tasks = [
            {
                "title": f"Implement {spec['title']}",
                "description": f"Technical implementation for: {spec.get('description', '')}",
                "type": "feature",
                "estimatedEffort": 8,
                **common,
            },
            {
                "title": f"Test {spec['title']}",
                "description": f"Create comprehensive tests for {spec['title']}",
                "type": "test",
                "estimatedEffort": 4,
                **common,
            },
        ]
        return {
            "tasks": tasks,
            "reasoning": "Generated tasks based on business specification",
            "message": f'Generated {len(tasks)} tasks from business specification "{spec["title"]}"',
        }
