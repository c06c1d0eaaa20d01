"""
Dependency inference between calls in the same batch.

Whether one capability can supply another call's missing parameter is guessed
from the provider's return type and the parameter's name. Each rule is a
separate matcher; ``can_supply`` asks them in order and the first matcher that
applies to the provider's return type decides.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..capabilities.base import Capability

OBJECT_FIELD_NAMES = frozenset({"id", "name", "data", "result"})


def is_plural(name: str) -> bool:
    return len(name) > 1 and name.endswith("s")


class ReturnShapeMatcher(ABC):
    """
    Base matcher keyed on a provider's return type.

    ``applies`` selects the providers this matcher judges; ``matches`` gives the
    verdict for a parameter name.
    """

    return_types: tuple = ()

    def applies(self, provider: Capability) -> bool:
        return provider.returns.type in self.return_types

    @abstractmethod
    def matches(self, provider: Capability, parameter: str) -> bool:
        """Whether ``provider`` plausibly supplies ``parameter``."""


class ObjectReturnMatcher(ReturnShapeMatcher):
    """Objects can carry ids, names, generic payload fields, or nested collections."""

    return_types = ("object",)

    def matches(self, provider: Capability, parameter: str) -> bool:
        return parameter in OBJECT_FIELD_NAMES or parameter.endswith("Id") or is_plural(parameter)


class ArrayReturnMatcher(ReturnShapeMatcher):
    return_types = ("array",)

    def matches(self, provider: Capability, parameter: str) -> bool:
        return is_plural(parameter)


class ScalarReturnMatcher(ReturnShapeMatcher):
    """Scalars supply parameters named after the capability's last id segment."""

    def applies(self, provider: Capability) -> bool:
        return provider.returns.type not in ("object", "array")

    def matches(self, provider: Capability, parameter: str) -> bool:
        segment = provider.id.split("-")[-1]
        return bool(segment) and segment in parameter


DEFAULT_MATCHERS: List[ReturnShapeMatcher] = [
    ObjectReturnMatcher(),
    ArrayReturnMatcher(),
    ScalarReturnMatcher(),
]


def can_supply(
    provider: Capability,
    parameter: str,
    matchers: Optional[List[ReturnShapeMatcher]] = None,
) -> bool:
    """
    Check whether ``provider``'s output plausibly supplies ``parameter``.

    Args:
        provider: Capability whose result might hold the value
        parameter: Name of the missing parameter
        matchers: Matchers to consult, in order (defaults to DEFAULT_MATCHERS)

    Returns:
        True if the first applicable matcher accepts the parameter
    """
    for matcher in matchers or DEFAULT_MATCHERS:
        if matcher.applies(provider):
            return matcher.matches(provider, parameter)
    return False
