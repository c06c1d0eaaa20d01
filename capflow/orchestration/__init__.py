"""
Orchestration package.

Builds plans from capability calls, fills missing parameters and executes
plans step by step against an execution context.
"""

from .builder import DEFAULT_RESOLVER_PAGE_SIZE, PlanBuilder
from .executor import PlanExecutor, format_timing_summary, get_timing_summary
from .matchers import (
    DEFAULT_MATCHERS,
    ArrayReturnMatcher,
    ObjectReturnMatcher,
    ReturnShapeMatcher,
    ScalarReturnMatcher,
    can_supply,
)
from .resolution import find_resolver_capability, resolve_from_context
from .store import DEFAULT_PLAN_TTL, PlanStore

__all__ = [
    "PlanBuilder",
    "PlanExecutor",
    "PlanStore",
    "ReturnShapeMatcher",
    "ObjectReturnMatcher",
    "ArrayReturnMatcher",
    "ScalarReturnMatcher",
    "DEFAULT_MATCHERS",
    "DEFAULT_PLAN_TTL",
    "DEFAULT_RESOLVER_PAGE_SIZE",
    "can_supply",
    "find_resolver_capability",
    "resolve_from_context",
    "get_timing_summary",
    "format_timing_summary",
]
