"""
Capability catalog.

Each capability describes its parameter schema and return shape and exposes an
async handler. The registry is the immutable catalog the orchestrator reads.
"""

from .base import Capability, FunctionCapability, Handler
from .registry import CapabilityRegistry, create_default_registry

__all__ = [
    "Capability",
    "FunctionCapability",
    "Handler",
    "CapabilityRegistry",
    "create_default_registry",
]
