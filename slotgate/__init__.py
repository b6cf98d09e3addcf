"""Per-key sliding-window rate limiting for asyncio code."""

from slotgate.adapters.rate_limit.base import AbstractRateLimiter, LimitConfig, RateLimitStatus
from slotgate.adapters.rate_limit.clock import MonotonicClock, VirtualClock
from slotgate.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter
from slotgate.core.errors import (
    InvalidConfigError,
    RateLimiterError,
    RateLimitExceededError,
    UnconfiguredKeyError,
)
from slotgate.core.rate_limit import build_rate_limiter, rate_limited

RateLimiter = InMemorySlidingWindowRateLimiter

__all__ = [
    "AbstractRateLimiter",
    "InMemorySlidingWindowRateLimiter",
    "InvalidConfigError",
    "LimitConfig",
    "MonotonicClock",
    "RateLimitExceededError",
    "RateLimitStatus",
    "RateLimiter",
    "RateLimiterError",
    "UnconfiguredKeyError",
    "VirtualClock",
    "build_rate_limiter",
    "rate_limited",
]

__version__ = "0.1.0"
