"""
Parameter resolution.

Three sources can fill a parameter the caller left unset:

- the execution context (current repository, entity names matched to ids);
- a resolver capability, found through a static table of entity listings;
- the result of an earlier step in the same plan.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from ..capabilities.base import Capability
from ..models import ExecutionContext

logger = logging.getLogger(__name__)

MISSING = object()

# Parameter name -> listing capability that can produce it
RESOLVER_TABLE: Dict[str, str] = {
    "repositoryId": "list-repositories",
    "repoId": "list-repositories",
    "taskId": "list-tasks",
    "specId": "list-business-specs",
    "businessSpecId": "list-business-specs",
    "developerId": "list-developers",
    "sprintId": "list-sprints",
}

# Lower-cased entity prefix of an "<entity>Id" parameter -> listing capability
ENTITY_RESOLVERS: Dict[str, str] = {
    "repository": "list-repositories",
    "repo": "list-repositories",
    "task": "list-tasks",
    "spec": "list-business-specs",
    "businessspec": "list-business-specs",
    "developer": "list-developers",
    "sprint": "list-sprints",
}

# (id parameter, name companion, context collection, label field)
NAME_COMPANIONS: List[Tuple[str, str, str, str]] = [
    ("repositoryId", "repositoryName", "repositories", "name"),
    ("taskId", "taskName", "tasks", "title"),
    ("developerId", "developerName", "developers", "name"),
    ("specId", "specName", "business_specs", "title"),
    ("businessSpecId", "businessSpecName", "business_specs", "title"),
]


def is_unset(parameters: Dict[str, Any], name: str) -> bool:
    return parameters.get(name) is None


def unset_parameters(parameters: Dict[str, Any], capability: Optional[Capability]) -> List[str]:
    """
    Names still waiting for a value.

    These are keys explicitly holding None plus declared required parameters
    that are absent.
    """
    names = [name for name, value in parameters.items() if value is None]
    if capability is not None:
        names += [
            name
            for name in capability.parameters.required
            if name not in parameters and name not in names
        ]
    return names


def find_resolver_capability(parameter: str) -> Optional[str]:
    """
    Find the listing capability able to produce ``parameter``.

    Exact table entries win; otherwise an ``<entity>Id`` name is matched on its
    entity prefix.
    """
    if parameter in RESOLVER_TABLE:
        return RESOLVER_TABLE[parameter]

    if parameter.endswith("Id") and len(parameter) > 2:
        return ENTITY_RESOLVERS.get(parameter[:-2].lower())

    return None


def _match_by_label(records: List[Dict[str, Any]], label_field: str, wanted: str):
    wanted = wanted.lower()
    labelled = [(r, str(r.get(label_field) or "").lower()) for r in records]

    for record, label in labelled:
        if label == wanted:
            return record
    for record, label in labelled:
        if wanted in label:
            return record
    return None


def resolve_from_context(
    parameters: Dict[str, Any], capability: Capability, context: ExecutionContext
) -> Dict[str, Any]:
    """
    Fill parameters that the execution context can answer directly.

    Args:
        parameters: Parameters as supplied by the caller
        capability: Target capability (its schema decides which ids apply)
        context: Execution context

    Returns:
        New parameter mapping; resolved name companions are removed
    """
    resolved = dict(parameters)
    properties = capability.parameters.properties

    if "repositoryId" in properties and is_unset(resolved, "repositoryId"):
        current = context.current_repository
        if current and current.get("id") is not None:
            logger.debug("Resolved repositoryId from current repository: %s", current["id"])
            resolved["repositoryId"] = current["id"]

    for id_param, name_param, collection, label_field in NAME_COMPANIONS:
        if id_param not in properties or not is_unset(resolved, id_param):
            continue

        wanted = resolved.get(name_param)
        records = getattr(context, collection)
        if not wanted or not records:
            continue

        match = _match_by_label(records, label_field, str(wanted))
        if match is not None and match.get("id") is not None:
            logger.debug("Resolved %s from %s=%r: %s", id_param, name_param, wanted, match["id"])
            resolved[id_param] = match["id"]
            resolved.pop(name_param, None)

    return resolved


def _camel(hyphenated: str) -> str:
    head, *rest = hyphenated.split("-")
    return head + "".join(part.capitalize() for part in rest)


def extract_from_result(parameter: str, data: Any, capability_id: str) -> Any:
    """
    Pull a value for ``parameter`` out of an earlier step's payload.

    Tried in order: an exact key in the payload; for ``list-*`` capabilities,
    the first listed item's id (for ``*Id`` parameters); for ``create-*``
    capabilities, the created record's id when the parameter names that entity.

    Returns:
        The value, or MISSING
    """
    if isinstance(data, dict) and data.get(parameter) is not None:
        return data[parameter]

    if capability_id.startswith("list-"):
        entity = capability_id[len("list-"):]
        items = None

        if isinstance(data, list):
            items = data
        elif isinstance(data, dict):
            for key in (entity, _camel(entity), entity.split("-")[-1]):
                if isinstance(data.get(key), list):
                    items = data[key]
                    break

        if items and parameter.endswith("Id"):
            first = items[0]
            if isinstance(first, dict) and first.get("id") is not None:
                return first["id"]

    if capability_id.startswith("create-") and isinstance(data, dict):
        if parameter == _camel(capability_id[len("create-"):]) + "Id" and data.get("id") is not None:
            return data["id"]

    return MISSING
