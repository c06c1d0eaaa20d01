import asyncio

import pytest

from capflow.models import ExecutionContext


def run(capability, parameters, context):
    return asyncio.run(capability.handle(parameters, context))


def test_list_tasks_filters_and_limits(registry, workspace_context) -> None:
    list_tasks = registry.get("list-tasks")

    by_assignee = run(list_tasks, {"assigneeId": "d1"}, workspace_context)
    limited = run(list_tasks, {"limit": 1}, workspace_context)

    assert [t["id"] for t in by_assignee["tasks"]] == ["t1"]
    assert limited["count"] == 2
    assert len(limited["tasks"]) == 1
    assert limited["message"] == "Found 2 tasks"


def test_list_on_empty_collection(registry) -> None:
    data = run(registry.get("list-developers"), {}, ExecutionContext())

    assert data == {"developers": [], "count": 0, "message": "No developers found"}


def test_list_business_specs_uses_specs_key(registry, workspace_context) -> None:
    data = run(registry.get("list-business-specs"), {"status": "draft"}, workspace_context)

    assert data["specs"] == []
    assert data["count"] == 0


def test_create_task_assigns_known_developer(registry, workspace_context) -> None:
    task = run(
        registry.get("create-task"),
        {
            "title": "Rate limits",
            "description": "Throttle the API",
            "type": "feature",
            "priority": "high",
            "assigneeId": "d2",
        },
        workspace_context,
    )

    assert task["id"].startswith("task_")
    assert task["status"] == "backlog"
    assert task["assignee"] == {"id": "d2", "name": "Sam Ortiz"}
    assert task["message"] == 'Created task "Rate limits" successfully'


def test_pr_template_requires_known_entities(registry, workspace_context) -> None:
    generate = registry.get("generate-pr-template")

    with pytest.raises(LookupError, match="Task not found"):
        run(generate, {"taskId": "t404", "repositoryId": "r1"}, workspace_context)
    with pytest.raises(LookupError, match="Repository not found"):
        run(generate, {"taskId": "t1", "repositoryId": "r404"}, workspace_context)


def test_pr_template_content(registry, workspace_context) -> None:
    data = run(
        registry.get("generate-pr-template"),
        {"taskId": "t1", "repositoryId": "r1", "includeScaffolds": False},
        workspace_context,
    )

    assert data["template"]["branchName"] == "feature/add-invoice-export"
    assert data["template"]["fileScaffolds"] == []
    assert "Export invoices as CSV" in data["template"]["description"]
    assert data["repository"]["id"] == "r1"


def test_connect_repository(registry) -> None:
    data = run(
        registry.get("connect-repository"),
        {"url": "https://github.com/acme/payments.git"},
        ExecutionContext(),
    )

    assert data["repository"]["name"] == "payments"
    assert data["repository"]["fullName"] == "acme/payments"
    assert data["repository"]["analyzed"] is True


def test_connect_repository_rejects_bare_host(registry) -> None:
    with pytest.raises(ValueError):
        run(registry.get("connect-repository"), {"url": "https://github.com"}, ExecutionContext())


def test_generate_tasks_from_spec(registry, workspace_context) -> None:
    data = run(registry.get("generate-tasks-from-specs"), {"specId": "s1"}, workspace_context)

    assert [t["type"] for t in data["tasks"]] == ["feature", "test"]
    assert all(t["repositoryId"] == "r1" for t in data["tasks"])

    with pytest.raises(LookupError):
        run(registry.get("generate-tasks-from-specs"), {"specId": "s9"}, workspace_context)
