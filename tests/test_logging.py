"""Tests for rendering of the limiter's rate_limit.* log events."""

from __future__ import annotations

import json
import logging

from slotgate.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter
from slotgate.core.config import LimiterSettings, LogSettings, Settings
from slotgate.core.logging import (
    JsonFormatter,
    PlainFormatter,
    configure_logging,
    event_fields,
    hash_key,
)
from slotgate.core.rate_limit import build_rate_limiter


def _record(msg: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord("slotgate.test", logging.INFO, __file__, 1, msg, None, None)
    record.__dict__.update(extra)
    return record


def test_json_formatter_emits_event_and_known_fields_only():
    record = _record("rate_limit.waiting", key_hash="abc123", limit=2, poll_interval_s=0.5, other="x")

    payload = json.loads(JsonFormatter().format(record))

    assert payload["event"] == "rate_limit.waiting"
    assert payload["level"] == "info"
    assert payload["logger"] == "slotgate.test"
    assert payload["key_hash"] == "abc123"
    assert payload["limit"] == 2
    assert payload["poll_interval_s"] == 0.5
    assert "other" not in payload


def test_plain_formatter_appends_fields():
    line = PlainFormatter().format(_record("rate_limit.admitted", key_hash="abc", used=1))

    assert "rate_limit.admitted" in line
    assert line.endswith("key_hash=abc used=1")


def test_event_fields_keeps_declared_order():
    record = _record("e", polls=3, key_hash="h", limit=1)

    assert list(event_fields(record)) == ["key_hash", "limit", "polls"]


def test_hash_key_is_stable_and_short():
    assert hash_key("k") == hash_key("k")
    assert hash_key("k") != hash_key("k2")
    assert len(hash_key("k")) == 16
    assert hash_key(42) == hash_key("42")


def test_limiter_logs_hashed_key_only(caplog):
    limiter = InMemorySlidingWindowRateLimiter(log_admissions=True)

    with caplog.at_level(logging.DEBUG, logger="slotgate"):
        limiter.set_limit("tenant-secret", 1, 60)
        limiter.try_admit("tenant-secret")
        limiter.try_admit("tenant-secret")

    messages = [record.getMessage() for record in caplog.records]
    assert messages == ["rate_limit.registered", "rate_limit.admitted", "rate_limit.rejected"]
    for record in caplog.records:
        assert record.key_hash == hash_key("tenant-secret")
    assert "tenant-secret" not in caplog.text


def test_configure_logging_renders_limiter_events_as_json(capsys, restore_slotgate_logger):
    configure_logging(LogSettings(level="debug"))
    limiter = InMemorySlidingWindowRateLimiter(log_admissions=True)

    limiter.set_limit("tenant-secret", 1, 60)
    limiter.try_admit("tenant-secret")

    out = capsys.readouterr().out
    events = [json.loads(line) for line in out.splitlines()]
    assert [event["event"] for event in events] == ["rate_limit.registered", "rate_limit.admitted"]
    assert events[0]["limit"] == 1
    assert events[0]["window_s"] == 60.0
    assert events[1]["used"] == 1
    assert "tenant-secret" not in out
    assert restore_slotgate_logger.propagate is False


def test_configure_logging_replaces_previous_handler(restore_slotgate_logger):
    first = configure_logging(LogSettings())
    second = configure_logging(LogSettings(format="plain", level="warning"))

    assert first not in restore_slotgate_logger.handlers
    assert second in restore_slotgate_logger.handlers
    assert isinstance(second.formatter, PlainFormatter)
    assert restore_slotgate_logger.level == logging.WARNING


def test_configure_logging_rotating_file(tmp_path, restore_slotgate_logger):
    log_file = tmp_path / "logs" / "slotgate.log"
    handler = configure_logging(
        LogSettings(output="file", file_path=str(log_file), max_bytes=1024, format="plain")
    )

    InMemorySlidingWindowRateLimiter().set_limit("raw-key", 3, 1.0)
    handler.flush()

    content = log_file.read_text(encoding="utf-8")
    assert "rate_limit.registered" in content
    assert "limit=3" in content
    assert "raw-key" not in content


def test_build_rate_limiter_installs_handler_when_enabled(capsys, restore_slotgate_logger):
    config = Settings(log=LogSettings(enabled=True), limiter=LimiterSettings())

    limiter = build_rate_limiter(config)
    limiter.set_limit("k", 1, 1.0)

    event = json.loads(capsys.readouterr().out.strip())
    assert event["event"] == "rate_limit.registered"
    assert len(restore_slotgate_logger.handlers) == 1


def test_build_rate_limiter_leaves_logging_alone_by_default(restore_slotgate_logger):
    before = list(restore_slotgate_logger.handlers)

    build_rate_limiter(Settings(log=LogSettings(), limiter=LimiterSettings()))

    assert restore_slotgate_logger.handlers == before
