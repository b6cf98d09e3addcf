"""Library-level exception types.

This module defines the limiter errors raised across adapters and helpers,
enabling consistent error handling and logging by callers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and callers.

    Fields are optional so each error only carries what is relevant.
    """

    code: str
    message: str
    hint: str
    key_hash: str
    field: str
    value: Any
    retry_after: float
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for slotgate failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


class RateLimiterError(AppError):
    """Raised when a rate limiter operation cannot be carried out."""


class UnconfiguredKeyError(RateLimiterError, KeyError):
    """Raised when an admission operation targets a key with no limit set.

    This is a setup mistake, not a transient condition: register the key
    with ``set_limit`` before admitting against it.
    """


class InvalidConfigError(RateLimiterError, ValueError):
    """Raised when a limit is registered with a non-positive rate or window."""


class RateLimitExceededError(RateLimiterError):
    """Raised by sync ``rate_limited`` wrappers when no slot is free."""
