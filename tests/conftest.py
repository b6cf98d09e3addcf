"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It sets TESTING before slotgate is imported so settings never pick up a
developer's local .env file.
"""

import logging
import os

# CRITICAL: Set this before any imports that might load settings
os.environ["TESTING"] = "true"
os.environ.setdefault("SLOTGATE_ENV", "testing")

import pytest

from slotgate.adapters.rate_limit.clock import VirtualClock
from slotgate.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter


@pytest.fixture
def clock() -> VirtualClock:
    return VirtualClock(start=1_000.0)


@pytest.fixture
def limiter(clock: VirtualClock) -> InMemorySlidingWindowRateLimiter:
    """Limiter driven entirely by virtual time."""
    return InMemorySlidingWindowRateLimiter(clock=clock, sleep=clock.sleep)


@pytest.fixture
def restore_slotgate_logger(monkeypatch):
    """Put the slotgate logger back the way it was after configure_logging()."""
    from slotgate.core import logging as slotgate_logging

    logger = logging.getLogger("slotgate")
    handlers = list(logger.handlers)
    level = logger.level
    propagate = logger.propagate
    monkeypatch.setattr(slotgate_logging, "_installed_handler", None)
    yield logger
    for handler in logger.handlers:
        if handler not in handlers:
            handler.close()
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate
