"""
Task capabilities: task creation and PR template generation.
"""

import re
from typing import Any, Dict, List

from ...models import ExecutionContext, ParameterProperty, ParameterSchema, ReturnSpec, new_id
from ..base import Capability

TASK_TYPES = ["feature", "bug", "refactor", "docs", "test", "devops"]
PRIORITIES = ["low", "medium", "high", "critical"]

BRANCH_PREFIXES = {
    "feature": "feature",
    "bug": "fix",
    "refactor": "refactor",
    "docs": "docs",
    "test": "test",
    "devops": "chore",
}


def find_by_id(records: List[Dict[str, Any]], record_id: Any) -> Dict[str, Any] | None:
    return next((r for r in records if r.get("id") == record_id), None)


def slugify(text: str, max_length: int = 40) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")
    return slug[:max_length].rstrip("-") or "task"


class CreateTaskCapability(Capability):
    """Creates a backlog task, assigning it when a known developer id is given."""

    @property
    def id(self) -> str:
        return "create-task"

    @property
    def description(self) -> str:
        return "Create a new development task"

    @property
    def parameters(self) -> ParameterSchema:
        return ParameterSchema(
            properties={
                "title": ParameterProperty(description="Task title"),
                "description": ParameterProperty(description="Task description"),
                "type": ParameterProperty(description="Task type", enum=TASK_TYPES),
                "priority": ParameterProperty(description="Task priority", enum=PRIORITIES),
                "estimatedEffort": ParameterProperty(
                    type="number", description="Estimated effort in hours"
                ),
                "assigneeId": ParameterProperty(
                    description="ID of the developer to assign to (optional)"
                ),
                "repositoryId": ParameterProperty(
                    description="ID of the repository this task belongs to (optional)"
                ),
            },
            required=["title", "description", "type", "priority"],
        )

    @property
    def returns(self) -> ReturnSpec:
        return ReturnSpec(type="object", description="Created task object")

    async def handle(self, parameters: Dict[str, Any], context: ExecutionContext) -> Any:
        assignee_id = parameters.get("assigneeId")
        assignee = find_by_id(context.developers, assignee_id) if assignee_id else None

        task = {
            "id": new_id("task"),
            "title": parameters["title"],
            "description": parameters["description"],
            "type": parameters["type"],
            "priority": parameters["priority"],
            "estimatedEffort": parameters.get("estimatedEffort"),
            "status": "backlog",
            "assignee": assignee,
            "repositoryId": parameters.get("repositoryId"),
        }
        task["message"] = f'Created task "{task["title"]}" successfully'
        return task


class GeneratePRTemplateCapability(Capability):
    """
    Builds a pull request template for a task in a repository.

    Both the task and the repository must already be present in the context.
    """

    @property
    def id(self) -> str:
        return "generate-pr-template"

    @property
    def name(self) -> str:
        return "Generate PR Template"

    @property
    def description(self) -> str:
        return "Generate PR template with branch name, description and checklist"

    @property
    def category(self) -> str:
        return "generation"

    @property
    def parameters(self) -> ParameterSchema:
        return ParameterSchema(
            properties={
                "taskId": ParameterProperty(description="ID of the task to generate PR for"),
                "repositoryId": ParameterProperty(description="ID of the target repository"),
                "includeScaffolds": ParameterProperty(
                    type="boolean", description="Whether to include file scaffolds"
                ),
                "title": ParameterProperty(
                    description="Task title (used when creating a task first)"
                ),
                "description": ParameterProperty(
                    description="Task description (used when creating a task first)"
                ),
                "type": ParameterProperty(
                    description="Task type (used when creating a task first)", enum=TASK_TYPES
                ),
            },
            required=["taskId", "repositoryId"],
        )

    @property
    def returns(self) -> ReturnSpec:
        return ReturnSpec(
            type="object",
            description="Generated PR template with branch name, description, and scaffolds",
        )

    async def handle(self, parameters: Dict[str, Any], context: ExecutionContext) -> Any:
        task = find_by_id(context.tasks, parameters["taskId"])
        repository = find_by_id(context.repositories, parameters["repositoryId"])

        if task is None:
            raise LookupError("Task not found")
        if repository is None:
            raise LookupError("Repository not found")

        prefix = BRANCH_PREFIXES.get(task.get("type"), "feature")
        include_scaffolds = parameters.get("includeScaffolds", True)

        template = {
            "branchName": f"{prefix}/{slugify(task.get('title', ''))}",
            "title": task.get("title", ""),
            "description": "\n".join(
                [
                    "## Summary",
                    task.get("description", ""),
                    "",
                    "## Checklist",
                    "- [ ] Tests added or updated",
                    "- [ ] Documentation updated",
                ]
            ),
            "fileScaffolds": (
                [{"path": f"tests/test_{slugify(task.get('title', ''), 30).replace('-', '_')}.py"}]
                if include_scaffolds
                else []
            ),
        }

        return {
            "template": template,
            "task": task,
            "repository": repository,
            "message": (
                f'Generated PR template for "{task.get("title")}" '
                f'in repository "{repository.get("name")}"'
            ),
        }
