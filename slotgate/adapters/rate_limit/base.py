"""Rate limiter interfaces.

Callers should depend on this abstraction (not the concrete implementation)
so the in-memory limiter can be swapped or wrapped without touching call
sites.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class LimitConfig:
    """Limit registered for one key.

    Attributes:
        rate: Max admitted events within any trailing window.
        per: Window length in seconds.
        version: Registration stamp; changes whenever the key is re-registered.
    """

    rate: int
    per: float
    version: int = 0

    @property
    def cadence(self) -> float:
        """Minimum spacing between admissions under this limit, in seconds."""
        return self.per / self.rate


@dataclass(frozen=True)
class RateLimitStatus:
    """Read-only snapshot of a key's window.

    Attributes:
        key: The limiter key.
        limit: Max events per window.
        per: Window length in seconds.
        used: Events currently counted in the window.
        remaining: Slots still free in the window.
        allowed: Whether an admission would succeed right now.
        retry_after_seconds: Time until the oldest event expires when full.
    """

    key: str
    limit: int
    per: float
    used: int
    remaining: int
    allowed: bool
    retry_after_seconds: float | None


class AbstractRateLimiter(ABC):
    """Interface for keyed rate limiters."""

    @abstractmethod
    def set_limit(self, key: str, rate: int, per: float) -> None:
        """Register (or replace) the limit for ``key`` and clear its history."""
        raise NotImplementedError

    @abstractmethod
    def set_if_not_exists(self, key: str, rate: int, per: float) -> bool:
        """Register the limit for ``key`` only if none exists yet."""
        raise NotImplementedError

    @abstractmethod
    def try_admit(self, key: str, record: bool = True) -> bool:
        """Check whether an event for ``key`` may proceed now.

        Args:
            key: Limiter key.
            record: Consume a slot when admitted. Pass False to only probe.

        Returns:
            True if the event fits in the current window.
        """
        raise NotImplementedError

    @abstractmethod
    async def await_admit(self, key: str) -> bool:
        """Wait until an event for ``key`` is admitted, then return True."""
        raise NotImplementedError

    @abstractmethod
    def get_limit(self, key: str) -> LimitConfig | None:
        """Return the limit registered for ``key``, if any."""
        raise NotImplementedError

    @abstractmethod
    def status(self, key: str) -> RateLimitStatus:
        """Report the current window usage for ``key`` without recording."""
        raise NotImplementedError
