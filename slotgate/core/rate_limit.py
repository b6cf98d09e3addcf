"""Helpers wiring the rate limiting adapter into calling code.

Design goals:
- Minimal coupling: call sites depend on the abstract limiter and a decorator.
- No hidden globals: every limiter is built and owned by its caller.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import logging
from typing import Any, Callable, TypeVar, Union

from slotgate.adapters.rate_limit.base import AbstractRateLimiter
from slotgate.adapters.rate_limit.clock import Clock, MonotonicClock, Sleep
from slotgate.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter
from slotgate.core.config import Settings, settings as default_settings
from slotgate.core.errors import RateLimitExceededError
from slotgate.core.logging import configure_logging, hash_key

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])
KeySpec = Union[str, Callable[..., str]]


def build_rate_limiter(
    config: Settings | None = None,
    *,
    clock: Clock | None = None,
    sleep: Sleep | None = None,
) -> InMemorySlidingWindowRateLimiter:
    """Build a limiter using the configured polling floor and logging flags.

    When ``log.enabled`` is set, slotgate's log handler is installed too.

    Args:
        config: Settings to read; defaults to the module-level settings.
        clock: Optional time source override (e.g. a VirtualClock).
        sleep: Optional sleep override.

    Returns:
        A new limiter with no keys registered.
    """

    resolved = config or default_settings
    if resolved.log.enabled:
        configure_logging(resolved.log)

    cfg = resolved.limiter
    return InMemorySlidingWindowRateLimiter(
        clock=clock or MonotonicClock,
        sleep=sleep or asyncio.sleep,
        min_poll_interval_seconds=cfg.min_poll_interval_seconds,
        log_admissions=cfg.log_admissions,
    )


def _resolve_key(key: KeySpec, args: tuple[Any, ...], kwargs: dict[str, Any]) -> str:
    if callable(key):
        return key(*args, **kwargs)
    return key


def rate_limited(limiter: AbstractRateLimiter, key: KeySpec) -> Callable[[F], F]:
    """Decorate a function so every call is admitted through ``limiter``.

    Coroutine functions wait for a slot with ``await_admit``. Plain functions
    cannot wait, so they use ``try_admit`` and raise when the window is full.

    Args:
        limiter: Limiter holding the key's limit.
        key: Limiter key, or a callable deriving it from the call arguments.

    Raises:
        RateLimitExceededError: From sync wrappers when no slot is free.
        UnconfiguredKeyError: If the resolved key has no limit registered.
    """

    def decorator(func: F) -> F:
        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                await limiter.await_admit(_resolve_key(key, args, kwargs))
                return await func(*args, **kwargs)

            return async_wrapper  # type: ignore[return-value]

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            resolved = _resolve_key(key, args, kwargs)
            if not limiter.try_admit(resolved):
                status = limiter.status(resolved)
                logger.warning(
                    "rate_limit.exceeded",
                    extra={
                        "key_hash": hash_key(resolved),
                        "function": func.__qualname__,
                        "limit": status.limit,
                        "retry_after_s": status.retry_after_seconds,
                    },
                )
                raise RateLimitExceededError(
                    code="rate_limit.exceeded",
                    message=f"Rate limit exceeded for {func.__qualname__}. Try again later.",
                    details={
                        "key_hash": hash_key(resolved),
                        "retry_after": status.retry_after_seconds or 0.0,
                    },
                )
            return func(*args, **kwargs)

        return sync_wrapper  # type: ignore[return-value]

    return decorator
