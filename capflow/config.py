"""
Call layer configuration.

Module-level defaults plus ``ClientConfig``, which validates its values on
construction.
"""

from typing import Optional

from .orchestration.builder import DEFAULT_RESOLVER_PAGE_SIZE
from .orchestration.store import DEFAULT_PLAN_TTL

# Constants
DEFAULT_TIMEOUT = 30.0
DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_RETRY_BASE_DELAY = 1.0
DEFAULT_ORCHESTRATION_TIMEOUT = 120.0

__all__ = [
    "ClientConfig",
    "DEFAULT_TIMEOUT",
    "DEFAULT_RETRY_ATTEMPTS",
    "DEFAULT_RETRY_BASE_DELAY",
    "DEFAULT_ORCHESTRATION_TIMEOUT",
    "DEFAULT_PLAN_TTL",
    "DEFAULT_RESOLVER_PAGE_SIZE",
]


class ClientConfig:
    """Configuration for a capability client."""

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        retry_attempts: int = DEFAULT_RETRY_ATTEMPTS,
        retry_base_delay: float = DEFAULT_RETRY_BASE_DELAY,
        orchestration_timeout: Optional[float] = DEFAULT_ORCHESTRATION_TIMEOUT,
        plan_ttl: Optional[float] = DEFAULT_PLAN_TTL,
        resolver_page_size: int = DEFAULT_RESOLVER_PAGE_SIZE,
    ):
        """
        Initialize client configuration.

        Args:
            timeout: Seconds allowed for the handler of one direct call
            retry_attempts: Total tries made by ``call_with_retry``
            retry_base_delay: Base of the exponential backoff, in seconds
            orchestration_timeout: Seconds allowed for a whole plan run
                (None disables the limit)
            plan_ttl: Seconds a finished plan is kept before being reaped
            resolver_page_size: ``limit`` passed to inserted resolver steps
        """
        self.timeout = timeout
        self.retry_attempts = retry_attempts
        self.retry_base_delay = retry_base_delay
        self.orchestration_timeout = orchestration_timeout
        self.plan_ttl = plan_ttl
        self.resolver_page_size = resolver_page_size

        self._validate()

    def _validate(self):
        """Validate configuration parameters."""
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive (got {self.timeout})")
        if self.retry_attempts < 1:
            raise ValueError(f"retry_attempts must be at least 1 (got {self.retry_attempts})")
        if self.retry_base_delay < 0:
            raise ValueError(
                f"retry_base_delay must be non-negative (got {self.retry_base_delay})"
            )
        if self.orchestration_timeout is not None and self.orchestration_timeout <= 0:
            raise ValueError(
                f"orchestration_timeout must be positive (got {self.orchestration_timeout})"
            )
        if self.plan_ttl is not None and self.plan_ttl < 0:
            raise ValueError(f"plan_ttl must be non-negative (got {self.plan_ttl})")
        if self.resolver_page_size < 1:
            raise ValueError(
                f"resolver_page_size must be at least 1 (got {self.resolver_page_size})"
            )

    def backoff_delay(self, attempt: int) -> float:
        """Delay before the try following ``attempt`` (counted from 1)."""
        return self.retry_base_delay * 2**attempt

    def __repr__(self) -> str:
        return (
            f"ClientConfig(timeout={self.timeout}, retry_attempts={self.retry_attempts}, "
            f"retry_base_delay={self.retry_base_delay}, "
            f"orchestration_timeout={self.orchestration_timeout})"
        )
