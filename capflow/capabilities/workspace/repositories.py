"""
Repository connection capability.
"""

from typing import Any, Dict
from urllib.parse import urlparse

from ...models import ExecutionContext, ParameterProperty, ParameterSchema, new_id
from ..base import Capability


class ConnectRepositoryCapability(Capability):
    """Registers a repository by URL; the new record is returned under ``repository``."""

    @property
    def id(self) -> str:
        return "connect-repository"

    @property
    def description(self) -> str:
        return "Connect a new GitHub repository"

    @property
    def parameters(self) -> ParameterSchema:
        return ParameterSchema(
            properties={
                "url": ParameterProperty(description="GitHub repository URL"),
                "analyze": ParameterProperty(
                    type="boolean", description="Whether to perform initial analysis"
                ),
            },
            required=["url"],
        )

    async def handle(self, parameters: Dict[str, Any], context: ExecutionContext) -> Any:
        url = parameters["url"]
        path = urlparse(url).path.strip("/")
        if not path:
            raise ValueError(f"Not a repository URL: {url}")

        name = path.split("/")[-1].removesuffix(".git")
        return {
            "message": f"Repository {url} connected successfully",
            "repository": {
                "id": new_id("repo"),
                "name": name,
                "fullName": path.removesuffix(".git"),
                "url": url,
                "analyzed": bool(parameters.get("analyze", True)),
            },
        }
