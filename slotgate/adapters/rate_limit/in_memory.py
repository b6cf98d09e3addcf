"""In-memory sliding-window rate limiter.

Notes:
- Per-process only: separate processes keep separate windows.
- Thread-safe: uses a lock around shared state. The lock is never held
  across an ``await``.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import math
import threading
from collections import deque
from dataclasses import dataclass, field

from slotgate.adapters.rate_limit.base import AbstractRateLimiter, LimitConfig, RateLimitStatus
from slotgate.adapters.rate_limit.clock import Clock, MonotonicClock, Sleep
from slotgate.core.errors import InvalidConfigError, UnconfiguredKeyError
from slotgate.core.logging import hash_key

logger = logging.getLogger(__name__)


@dataclass
class _KeyState:
    config: LimitConfig
    events: deque[float] = field(default_factory=deque)


class InMemorySlidingWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter counting admissions in a trailing window per key.

    Each key carries its own ``rate``/``per`` limit and a log of admission
    timestamps. Timestamps older than the window are pruned lazily, on the
    next check for that key. An event exactly ``per`` seconds old no longer
    counts.

    ``await_admit`` polls at the key's cadence (``per / rate``) until a slot
    opens. It has no timeout of its own; wrap it with ``asyncio.wait_for``
    or cancel the task to bound the wait. Cancellation never consumes a slot.

    Important:
        Waiters are not queued. When several tasks wait on one key, whichever
        checks first after a slot frees up gets it.
    """

    def __init__(
        self,
        *,
        clock: Clock = MonotonicClock,
        sleep: Sleep = asyncio.sleep,
        min_poll_interval_seconds: float = 0.0,
        log_admissions: bool = False,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            clock: Monotonic time source returning seconds.
            sleep: Coroutine function used to suspend between polls.
            min_poll_interval_seconds: Floor applied to the polling cadence.
            log_admissions: Emit a debug event for every ``try_admit`` call.

        Raises:
            ValueError: If min_poll_interval_seconds is negative.
        """
        if min_poll_interval_seconds < 0:
            raise ValueError("min_poll_interval_seconds must be >= 0")

        self._clock = clock
        self._sleep = sleep
        self._min_poll_interval = min_poll_interval_seconds
        self._log_admissions = log_admissions
        self._lock = threading.RLock()
        self._state_by_key: dict[str, _KeyState] = {}
        self._versions = itertools.count(1)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._state_by_key

    def __len__(self) -> int:
        with self._lock:
            return len(self._state_by_key)

    def keys(self) -> list[str]:
        """Return the registered keys in registration order."""
        with self._lock:
            return list(self._state_by_key)

    @staticmethod
    def _validate_limit(key: str, rate: int, per: float) -> None:
        """Reject limits that would never admit or would break the cadence.

        Raises:
            InvalidConfigError: If key is not a non-empty str, rate is not a
                positive int, or per is not a positive finite number.
        """
        if not isinstance(key, str) or not key:
            raise InvalidConfigError(
                code="rate_limit.invalid_config",
                message="key must be a non-empty string",
                details={"field": "key"},
            )
        if isinstance(rate, bool) or not isinstance(rate, int) or rate < 1:
            raise InvalidConfigError(
                code="rate_limit.invalid_config",
                message="rate must be an integer >= 1",
                details={"field": "rate", "value": rate},
            )
        if (
            isinstance(per, bool)
            or not isinstance(per, (int, float))
            or not math.isfinite(per)
            or per <= 0
        ):
            raise InvalidConfigError(
                code="rate_limit.invalid_config",
                message="per must be a positive number of seconds",
                details={"field": "per", "value": per},
            )

    def _register_locked(self, key: str, rate: int, per: float) -> LimitConfig:
        config = LimitConfig(rate=rate, per=float(per), version=next(self._versions))
        self._state_by_key[key] = _KeyState(config=config)
        return config

    def _require_state(self, key: str) -> _KeyState:
        state = self._state_by_key.get(key)
        if state is None:
            raise UnconfiguredKeyError(
                code="rate_limit.unconfigured_key",
                message=f"Limit not set for key: {key!r}",
                details={
                    "key_hash": hash_key(key),
                    "hint": "Call set_limit() for this key before admitting.",
                },
            )
        return state

    @staticmethod
    def _compact(events: deque[float], threshold: float) -> None:
        while events and events[0] <= threshold:
            events.popleft()

    def _admit_locked(self, state: _KeyState, now: float, record: bool) -> bool:
        """Compact the key's window at ``now`` and admit if a slot is free."""
        config = state.config
        self._compact(state.events, now - config.per)
        if len(state.events) < config.rate:
            if record:
                state.events.append(now)
            return True
        return False

    def _poll_interval(self, config: LimitConfig) -> float:
        return max(config.cadence, self._min_poll_interval)

    def set_limit(self, key: str, rate: int, per: float) -> None:
        """Register or replace the limit for ``key`` and clear its window.

        Tasks already waiting in ``await_admit`` keep waiting; they pick up
        the new limit on their next poll.

        Raises:
            InvalidConfigError: If the limit is invalid.
        """
        self._validate_limit(key, rate, per)
        with self._lock:
            replaced = key in self._state_by_key
            config = self._register_locked(key, rate, per)

        logger.info(
            "rate_limit.registered",
            extra={
                "key_hash": hash_key(key),
                "limit": config.rate,
                "window_s": config.per,
                "config_version": config.version,
                "replaced": replaced,
            },
        )

    def set_if_not_exists(self, key: str, rate: int, per: float) -> bool:
        """Register the limit only when ``key`` has none.

        An existing limit and its window are left untouched, so this is safe
        to call on every startup path.

        Returns:
            True if the limit was registered by this call.

        Raises:
            InvalidConfigError: If registration happens and the limit is invalid.
        """
        with self._lock:
            if key in self._state_by_key:
                return False
            self._validate_limit(key, rate, per)
            config = self._register_locked(key, rate, per)

        logger.info(
            "rate_limit.registered",
            extra={
                "key_hash": hash_key(key),
                "limit": config.rate,
                "window_s": config.per,
                "config_version": config.version,
                "replaced": False,
            },
        )
        return True

    def get_limit(self, key: str) -> LimitConfig | None:
        with self._lock:
            state = self._state_by_key.get(key)
            return state.config if state is not None else None

    def try_admit(self, key: str, record: bool = True) -> bool:
        """Admit an event for ``key`` if its window has room.

        Args:
            key: Limiter key.
            record: Consume a slot when admitted. Pass False to only probe.

        Returns:
            True if the event fits in the current window.

        Raises:
            UnconfiguredKeyError: If no limit is registered for ``key``.
        """
        with self._lock:
            state = self._require_state(key)
            allowed = self._admit_locked(state, self._clock(), record)
            used = len(state.events)
            limit = state.config.rate

        if self._log_admissions:
            logger.debug(
                "rate_limit.admitted" if allowed else "rate_limit.rejected",
                extra={
                    "key_hash": hash_key(key),
                    "limit": limit,
                    "used": used,
                    "recorded": allowed and record,
                },
            )
        return allowed

    async def await_admit(self, key: str) -> bool:
        """Wait for a free slot on ``key``, record the event and return True.

        The key is checked immediately; if its window is full the task sleeps
        ``per / rate`` seconds between checks. The limit is re-read on every
        poll, so a concurrent ``set_limit`` changes both the cadence and the
        admission threshold from the next poll on.

        Raises:
            UnconfiguredKeyError: If no limit is registered for ``key``. Raised
                before any waiting starts.
        """
        if self.try_admit(key):
            return True

        with self._lock:
            config = self._require_state(key).config
            started = self._clock()
        interval = self._poll_interval(config)
        key_hash = hash_key(key)

        logger.info(
            "rate_limit.waiting",
            extra={
                "key_hash": key_hash,
                "limit": config.rate,
                "window_s": config.per,
                "poll_interval_s": interval,
            },
        )

        polls = 0
        while True:
            await self._sleep(interval)
            polls += 1

            with self._lock:
                # Keys are never removed once registered.
                state = self._state_by_key[key]
                now = self._clock()
                changed = state.config.version != config.version
                config = state.config
                admitted = self._admit_locked(state, now, record=True)

            if changed:
                interval = self._poll_interval(config)
                logger.info(
                    "rate_limit.config_changed",
                    extra={
                        "key_hash": key_hash,
                        "limit": config.rate,
                        "window_s": config.per,
                        "config_version": config.version,
                        "poll_interval_s": interval,
                    },
                )

            if admitted:
                logger.info(
                    "rate_limit.wait_admitted",
                    extra={
                        "key_hash": key_hash,
                        "waited_s": now - started,
                        "polls": polls,
                    },
                )
                return True

    def status(self, key: str) -> RateLimitStatus:
        """Report usage of ``key``'s current window without recording.

        Raises:
            UnconfiguredKeyError: If no limit is registered for ``key``.
        """
        with self._lock:
            state = self._require_state(key)
            now = self._clock()
            config = state.config
            self._compact(state.events, now - config.per)
            used = len(state.events)
            oldest = state.events[0] if state.events else None

        allowed = used < config.rate
        retry_after = None
        if not allowed and oldest is not None:
            retry_after = max(0.0, oldest + config.per - now)

        return RateLimitStatus(
            key=key,
            limit=config.rate,
            per=config.per,
            used=used,
            remaining=max(0, config.rate - used),
            allowed=allowed,
            retry_after_seconds=retry_after,
        )
