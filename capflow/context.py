"""
Execution context loading and entity merging.

Successful capability payloads are folded back into the running context so
later steps see the entities earlier steps produced. Listing results are
merged by id (first write wins); single-entity creation results are
prepended as the newest record.
"""

import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .models import ExecutionContext

logger = logging.getLogger(__name__)


def merge_by_id(
    existing: List[Dict[str, Any]], incoming: List[Dict[str, Any]]
) -> List[Dict[str, Any]]:
    """
    Merge incoming records into an existing list, keeping the earliest-seen record per id.

    Existing records are kept exactly as they are. Incoming records are
    appended unless their id is already present; incoming records without an
    id cannot be deduplicated and are dropped.

    Args:
        existing: Records already in the context
        incoming: Records from a capability result

    Returns:
        New merged list
    """
    merged = list(existing or [])
    seen = {record.get("id") for record in merged if isinstance(record, dict)}

    for record in incoming or []:
        if not isinstance(record, dict) or record.get("id") is None:
            logger.debug("Dropping incoming record without id: %r", record)
            continue
        if record["id"] in seen:
            continue
        seen.add(record["id"])
        merged.append(record)

    return merged


def prepend_record(
    existing: List[Dict[str, Any]], record: Dict[str, Any]
) -> List[Dict[str, Any]]:
    """Insert a newly created record first, replacing any older record with its id."""
    record_id = record.get("id")
    rest = [r for r in existing or [] if record_id is None or r.get("id") != record_id]
    return [record] + rest


def _listing(collection: str, payload_key: str):
    def apply(context: ExecutionContext, data: Any) -> Optional[ExecutionContext]:
        records = data.get(payload_key) if isinstance(data, dict) else None
        if records is None and isinstance(data, list):
            records = data
        if not records:
            return None
        logger.debug("Merging %d %s into context", len(records), collection)
        return context.with_updates(
            **{collection: merge_by_id(getattr(context, collection), records)}
        )

    return apply


def _creation(collection: str, payload_key: Optional[str] = None):
    def apply(context: ExecutionContext, data: Any) -> Optional[ExecutionContext]:
        record = data.get(payload_key) if payload_key and isinstance(data, dict) else data
        if not isinstance(record, dict):
            return None
        logger.debug(
            "Adding new %s record to context: %s",
            collection,
            record.get("title") or record.get("name") or record.get("id"),
        )
        return context.with_updates(
            **{collection: prepend_record(getattr(context, collection), record)}
        )

    return apply


ContextUpdater = Callable[[ExecutionContext, Any], Optional[ExecutionContext]]

# Capability id -> how its payload folds into the context
CONTEXT_UPDATERS: Dict[str, ContextUpdater] = {
    "list-repositories": _listing("repositories", "repositories"),
    "list-tasks": _listing("tasks", "tasks"),
    "list-business-specs": _listing("business_specs", "specs"),
    "list-developers": _listing("developers", "developers"),
    "create-task": _creation("tasks"),
    "create-business-spec": _creation("business_specs"),
    "connect-repository": _creation("repositories", "repository"),
}


def apply_result(context: ExecutionContext, capability_id: str, data: Any) -> ExecutionContext:
    """
    Return a context updated with a successful capability payload.

    Capabilities without an entity rule leave the context unchanged.
    """
    if not data:
        return context

    updater = CONTEXT_UPDATERS.get(capability_id)
    if updater is None:
        return context

    updated = updater(context, data)
    return updated if updated is not None else context


def load_context(path: str | Path) -> ExecutionContext:
    """
    Load an execution context from a JSON file.

    Args:
        path: Path to a JSON object with camelCase or snake_case keys

    Returns:
        Validated ExecutionContext
    """
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    if not isinstance(data, dict):
        raise ValueError(f"Context file {path} must contain a JSON object")

    return ExecutionContext.model_validate(data)
