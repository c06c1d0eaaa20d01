"""
Reference workspace capabilities.

Listing and creation capabilities over the execution context's repositories,
developers, tasks and business specifications, plus PR template generation.
"""

from .listing import (
    ListBusinessSpecsCapability,
    ListCapability,
    ListDevelopersCapability,
    ListRepositoriesCapability,
    ListTasksCapability,
)
from .repositories import ConnectRepositoryCapability
from .specs import CreateBusinessSpecCapability, GenerateTasksFromSpecCapability
from .tasks import CreateTaskCapability, GeneratePRTemplateCapability

__all__ = [
    "ListCapability",
    "ListRepositoriesCapability",
    "ListTasksCapability",
    "ListBusinessSpecsCapability",
    "ListDevelopersCapability",
    "CreateTaskCapability",
    "GeneratePRTemplateCapability",
    "ConnectRepositoryCapability",
    "CreateBusinessSpecCapability",
    "GenerateTasksFromSpecCapability",
]
