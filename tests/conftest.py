import pytest

from capflow.capabilities import create_default_registry
from capflow.client import CapabilityClient
from capflow.config import ClientConfig
from capflow.dispatcher import CapabilityDispatcher
from capflow.models import ExecutionContext
from capflow.orchestration.store import PlanStore


@pytest.fixture
def registry():
    return create_default_registry()


@pytest.fixture
def store():
    return PlanStore()


@pytest.fixture
def dispatcher(registry, store):
    return CapabilityDispatcher(registry, store=store)


@pytest.fixture
def client(dispatcher):
    return CapabilityClient(dispatcher, ClientConfig(timeout=5.0, retry_base_delay=0.0))


@pytest.fixture
def workspace_context():
    return ExecutionContext(
        user_id="u1",
        team_id="team-1",
        repositories=[
            {"id": "r1", "name": "billing-service", "url": "https://github.com/acme/billing-service"},
            {"id": "r2", "name": "web-frontend", "url": "https://github.com/acme/web-frontend"},
        ],
        developers=[
            {"id": "d1", "name": "Alex Kim"},
            {"id": "d2", "name": "Sam Ortiz"},
        ],
        tasks=[
            {
                "id": "t1",
                "title": "Add invoice export",
                "description": "Export invoices as CSV",
                "type": "feature",
                "priority": "high",
                "status": "todo",
                "assignee": {"id": "d1", "name": "Alex Kim"},
            },
            {
                "id": "t2",
                "title": "Fix login redirect",
                "description": "Redirect loops after login",
                "type": "bug",
                "priority": "critical",
                "status": "backlog",
            },
        ],
        business_specs=[
            {
                "id": "s1",
                "title": "Invoice exports",
                "description": "Customers can export invoices",
                "priority": "high",
                "status": "approved",
                "repositoryId": "r1",
            }
        ],
    )
