import json

import pytest
from pydantic import ValidationError

from capflow.context import apply_result, load_context, merge_by_id, prepend_record
from capflow.models import ExecutionContext


def test_merge_keeps_order_and_appends_new_records() -> None:
    context = ExecutionContext(repositories=[{"id": "1"}])
    context = apply_result(
        context, "list-repositories", {"repositories": [{"id": "1"}, {"id": "2"}]}
    )
    context = apply_result(
        context, "list-repositories", {"repositories": [{"id": "2"}, {"id": "3"}]}
    )

    assert [r["id"] for r in context.repositories] == ["1", "2", "3"]


def test_merge_first_write_wins() -> None:
    merged = merge_by_id([{"id": "1", "name": "old"}], [{"id": "1", "name": "new"}])

    assert merged == [{"id": "1", "name": "old"}]


def test_merge_drops_incoming_records_without_id() -> None:
    merged = merge_by_id([{"id": "1"}], [{"name": "anonymous"}, {"id": "2"}])

    assert merged == [{"id": "1"}, {"id": "2"}]


def test_merge_keeps_existing_records_intact() -> None:
    existing = [{"name": "local draft"}, {"id": "1"}, {"id": "1", "name": "copy"}]

    merged = merge_by_id(existing, [{"id": "1"}, {"id": "2"}, {"id": "2", "name": "later"}])

    assert merged == [
        {"name": "local draft"},
        {"id": "1"},
        {"id": "1", "name": "copy"},
        {"id": "2"},
    ]
    assert existing == [{"name": "local draft"}, {"id": "1"}, {"id": "1", "name": "copy"}]


def test_prepend_replaces_record_with_same_id() -> None:
    records = prepend_record([{"id": "a", "v": 1}, {"id": "b"}], {"id": "a", "v": 2})

    assert records == [{"id": "a", "v": 2}, {"id": "b"}]


def test_created_task_is_prepended() -> None:
    context = ExecutionContext(tasks=[{"id": "t1"}])
    updated = apply_result(context, "create-task", {"id": "t9", "title": "New"})

    assert [t["id"] for t in updated.tasks] == ["t9", "t1"]
    assert [t["id"] for t in context.tasks] == ["t1"]


def test_connected_repository_is_unwrapped() -> None:
    context = apply_result(
        ExecutionContext(),
        "connect-repository",
        {"message": "ok", "repository": {"id": "repo_1", "name": "api"}},
    )

    assert context.repositories == [{"id": "repo_1", "name": "api"}]


def test_business_specs_listing_uses_specs_key() -> None:
    context = apply_result(
        ExecutionContext(), "list-business-specs", {"specs": [{"id": "s1"}], "count": 1}
    )

    assert context.business_specs == [{"id": "s1"}]


def test_unknown_capability_leaves_context_unchanged() -> None:
    context = ExecutionContext(tasks=[{"id": "t1"}])

    assert apply_result(context, "generate-pr-template", {"template": {}}) is context
    assert apply_result(context, "create-task", None) is context


def test_context_is_frozen() -> None:
    context = ExecutionContext()

    with pytest.raises(ValidationError):
        context.tasks = [{"id": "t1"}]


def test_snapshot_does_not_alias_collections() -> None:
    context = ExecutionContext(tasks=[{"id": "t1", "title": "a"}])
    copy = context.snapshot()
    copy.tasks[0]["title"] = "changed"

    assert context.tasks[0]["title"] == "a"


def test_load_context_accepts_camel_case(tmp_path) -> None:
    path = tmp_path / "context.json"
    path.write_text(
        json.dumps(
            {
                "userId": "u1",
                "currentRepository": {"id": "r1"},
                "businessSpecs": [{"id": "s1"}],
            }
        )
    )

    context = load_context(path)

    assert context.user_id == "u1"
    assert context.current_repository == {"id": "r1"}
    assert context.business_specs == [{"id": "s1"}]


def test_load_context_rejects_non_object(tmp_path) -> None:
    path = tmp_path / "context.json"
    path.write_text("[]")

    with pytest.raises(ValueError):
        load_context(path)
