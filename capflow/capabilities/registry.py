"""
Capability registry.

Manages capability registration, lookup, schema export and documentation.
"""

from typing import Any, Dict, List, Optional

from rich.console import Console

from .base import Capability

console = Console(stderr=True)

CATEGORY_ORDER = ["generation", "analysis", "automation", "management"]


class CapabilityRegistry:
    """
    Catalog of capabilities keyed by id.

    Handles registration, lookup by id or category, and export of the catalog
    as function-calling schemas or markdown documentation.
    """

    def __init__(self):
        self._capabilities: Dict[str, Capability] = {}
        self._categories: Dict[str, List[str]] = {}

    def register(self, capability: Capability) -> None:
        """
        Register a new capability.

        Args:
            capability: Capability instance to register
        """
        capability_id = capability.id
        if capability_id in self._capabilities:
            console.print(
                f"[yellow]Warning: Capability '{capability_id}' already registered, replacing...[/yellow]"
            )
            previous = self._capabilities[capability_id]
            self._categories[previous.category].remove(capability_id)

        self._capabilities[capability_id] = capability
        self._categories.setdefault(capability.category, []).append(capability_id)

    def get(self, capability_id: str) -> Optional[Capability]:
        """
        Get a capability by id.

        Args:
            capability_id: Capability id

        Returns:
            Capability instance or None if not found
        """
        return self._capabilities.get(capability_id)

    def __contains__(self, capability_id: str) -> bool:
        return capability_id in self._capabilities

    def __len__(self) -> int:
        return len(self._capabilities)

    def list_capabilities(self) -> List[str]:
        """Get list of registered capability ids."""
        return list(self._capabilities.keys())

    def capabilities(self) -> List[Capability]:
        """Get all registered capabilities in registration order."""
        return list(self._capabilities.values())

    def get_by_category(self, category: str) -> List[Capability]:
        return [self._capabilities[cid] for cid in self._categories.get(category, [])]

    def categories(self) -> List[str]:
        known = [c for c in CATEGORY_ORDER if self._categories.get(c)]
        extra = sorted(c for c in self._categories if c not in CATEGORY_ORDER and self._categories[c])
        return known + extra

    def validate_capabilities(self, capability_ids: List[str]) -> List[str]:
        """
        Validate that all specified capabilities exist.

        Args:
            capability_ids: List of capability ids

        Returns:
            List of error messages (empty if all valid)
        """
        return [
            f"Unknown capability: {capability_id}"
            for capability_id in capability_ids
            if capability_id not in self._capabilities
        ]

    def get_tool_schema(self, capability_id: str) -> Optional[Dict[str, Any]]:
        """Function-calling schema for one capability."""
        capability = self.get(capability_id)
        if capability is None:
            return None

        return {
            "type": "function",
            "function": {
                "name": capability.id,
                "description": capability.description,
                "parameters": capability.parameters.model_dump(exclude_none=True),
            },
        }

    def get_all_tool_schemas(self) -> List[Dict[str, Any]]:
        return [self.get_tool_schema(cid) for cid in self._capabilities]

    def render_documentation(self, title: str = "Capabilities") -> str:
        """
        Render the catalog as markdown, grouped by category.

        Returns:
            Markdown document listing each capability's parameters and return value
        """
        lines = [f"# {title}", ""]

        for category in self.categories():
            lines.append(f"## {category.capitalize()} Capabilities")
            lines.append("")

            for capability in self.get_by_category(category):
                schema = capability.parameters
                lines.append(f"### {capability.name}")
                lines.append(f"**ID**: `{capability.id}`")
                if capability.description:
                    lines.append(f"**Description**: {capability.description}")
                lines.append("")

                if schema.required:
                    lines.append("**Required Parameters**:")
                    for param in schema.required:
                        prop = schema.properties.get(param)
                        ptype = prop.type if prop else "any"
                        pdesc = prop.description if prop else ""
                        lines.append(f"- `{param}` ({ptype}): {pdesc}")
                    lines.append("")

                optional = [p for p in schema.properties if p not in schema.required]
                if optional:
                    lines.append("**Optional Parameters**:")
                    for param in optional:
                        prop = schema.properties[param]
                        lines.append(f"- `{param}` ({prop.type}): {prop.description}")
                    lines.append("")

                lines.append(f"**Returns**: {capability.returns.description or capability.returns.type}")
                lines.append("")
                lines.append("---")
                lines.append("")

        return "\n".join(lines)


def create_default_registry() -> CapabilityRegistry:
    """
    Create a registry with the reference workspace capabilities registered.

    Returns:
        CapabilityRegistry with standard capabilities
    """
    from .workspace import (
        ConnectRepositoryCapability,
        CreateBusinessSpecCapability,
        CreateTaskCapability,
        GeneratePRTemplateCapability,
        GenerateTasksFromSpecCapability,
        ListBusinessSpecsCapability,
        ListDevelopersCapability,
        ListRepositoriesCapability,
        ListTasksCapability,
    )

    registry = CapabilityRegistry()

    registry.register(ListRepositoriesCapability())
    registry.register(ListTasksCapability())
    registry.register(ListBusinessSpecsCapability())
    registry.register(ListDevelopersCapability())
    registry.register(CreateTaskCapability())
    registry.register(CreateBusinessSpecCapability())
    registry.register(ConnectRepositoryCapability())
    registry.register(GeneratePRTemplateCapability())
    registry.register(GenerateTasksFromSpecCapability())

    return registry
