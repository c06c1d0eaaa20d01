"""
Listing capabilities over the execution context collections.

These are the capabilities the plan builder inserts as resolver steps when a
call is missing an entity id.
"""

import logging
from typing import Any, Dict, List

from ...models import ExecutionContext, ParameterProperty, ParameterSchema, ReturnSpec
from ..base import Capability

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 10


class ListCapability(Capability):
    """
    Lists records from one context collection.

    Subclasses set the collection to read, the payload key to return it under
    and any extra filter parameters.
    """

    collection: str = ""
    payload_key: str = ""
    noun: str = "records"
    filters: Dict[str, ParameterProperty] = {}

    @property
    def description(self) -> str:
        return f"List {self.noun} with optional filtering"

    @property
    def parameters(self) -> ParameterSchema:
        properties = dict(self.filters)
        properties["limit"] = ParameterProperty(
            type="number", description=f"Maximum number of {self.noun} to return"
        )
        return ParameterSchema(properties=properties)

    @property
    def returns(self) -> ReturnSpec:
        return ReturnSpec(type="array", description=f"List of {self.noun}")

    def filter_records(
        self, records: List[Dict[str, Any]], parameters: Dict[str, Any]
    ) -> List[Dict[str, Any]]:
        return records

    async def handle(self, parameters: Dict[str, Any], context: ExecutionContext) -> Any:
        limit = int(parameters.get("limit") or DEFAULT_LIST_LIMIT)
        records = list(getattr(context, self.collection))

        if not records:
            return {self.payload_key: [], "count": 0, "message": f"No {self.noun} found"}

        filtered = self.filter_records(records, parameters)
        logger.debug("Listing %d of %d %s", min(limit, len(filtered)), len(filtered), self.noun)

        return {
            self.payload_key: filtered[:limit],
            "count": len(filtered),
            "message": f"Found {len(filtered)} {self.noun}",
        }


class ListRepositoriesCapability(ListCapability):
    collection = "repositories"
    payload_key = "repositories"
    noun = "repositories"

    @property
    def id(self) -> str:
        return "list-repositories"


class ListTasksCapability(ListCapability):
    collection = "tasks"
    payload_key = "tasks"
    noun = "tasks"
    filters = {
        "status": ParameterProperty(
            description="Filter by task status",
            enum=["backlog", "todo", "in-progress", "review", "done"],
        ),
        "assigneeId": ParameterProperty(description="Filter by assignee ID"),
    }

    @property
    def id(self) -> str:
        return "list-tasks"

    def filter_records(self, records, parameters):
        status = parameters.get("status")
        assignee_id = parameters.get("assigneeId")

        if status:
            records = [t for t in records if t.get("status") == status]
        if assignee_id:
            records = [
                t
                for t in records
                if (t.get("assignee") or {}).get("id") == assignee_id
                or t.get("assigneeId") == assignee_id
            ]
        return records


class ListBusinessSpecsCapability(ListCapability):
    collection = "business_specs"
    payload_key = "specs"
    noun = "business specifications"
    filters = {
        "status": ParameterProperty(
            description="Filter by specification status",
            enum=["draft", "review", "approved", "implemented"],
        ),
    }

    @property
    def id(self) -> str:
        return "list-business-specs"

    @property
    def name(self) -> str:
        return "List Business Specifications"

    def filter_records(self, records, parameters):
        status = parameters.get("status")
        if status:
            records = [s for s in records if s.get("status") == status]
        return records


class ListDevelopersCapability(ListCapability):
    collection = "developers"
    payload_key = "developers"
    noun = "developers"

    @property
    def id(self) -> str:
        return "list-developers"
