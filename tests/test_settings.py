"""Tests for service_daemon.settings.Settings behavior."""

from typing import Any

import pytest
from pydantic import ValidationError

from service_daemon.settings import Settings, get_settings


def test_settings_defaults(monkeypatch: pytest.MonkeyPatch):
    """Defaults should be stable even if external env or .env sets values.

    We explicitly delete the variables and bypass .env loading by passing
    `_env_file=None`.
    """
    for var in [
        "SERVICE_DAEMON_LOG_LEVEL",
        "SERVICE_DAEMON_QUEUE_CAPACITY",
        "SERVICE_DAEMON_WORKER_QUEUE_CAPACITY",
        "SERVICE_DAEMON_ERROR_POLICY",
        "SERVICE_DAEMON_HOOK_TIMEOUT",
        "SERVICE_DAEMON_SHUTDOWN_GRACE_PERIOD",
    ]:
        monkeypatch.delenv(var, raising=False)
    s = Settings(_env_file=None)  # ignore project .env file if present
    assert s.log_level == "INFO"
    assert s.queue_capacity == 128
    assert s.worker_queue_capacity == 128
    assert s.error_policy == "continue"
    assert s.hook_timeout is None
    assert s.shutdown_grace_period == 5.0


def test_env_overrides(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("SERVICE_DAEMON_QUEUE_CAPACITY", "16")
    monkeypatch.setenv("SERVICE_DAEMON_WORKER_QUEUE_CAPACITY", "8")
    monkeypatch.setenv("SERVICE_DAEMON_ERROR_POLICY", "SHUTDOWN")
    monkeypatch.setenv("SERVICE_DAEMON_HOOK_TIMEOUT", "1.5")
    monkeypatch.setenv("SERVICE_DAEMON_SHUTDOWN_GRACE_PERIOD", "0.5")
    s = Settings(_env_file=None)
    assert s.queue_capacity == 16
    assert s.worker_queue_capacity == 8
    assert s.error_policy == "shutdown"
    assert s.hook_timeout == 1.5
    assert s.shutdown_grace_period == 0.5


def test_case_insensitive_env_name(monkeypatch: pytest.MonkeyPatch):
    # lower-case variable name should still be picked up due to case_sensitive=False
    monkeypatch.setenv("service_daemon_log_level", "debug")  # type: ignore[arg-type]
    s = Settings(_env_file=None)
    assert s.log_level == "DEBUG"


def test_get_settings_singleton():
    a = get_settings()
    b = get_settings()
    assert a is b


@pytest.mark.parametrize(
    "override",
    [
        {"log_level": "verbose"},
        {"queue_capacity": 0},
        {"worker_queue_capacity": -1},
        {"hook_timeout": 0},
        {"shutdown_grace_period": 0},
        {"error_policy": "ignore"},
    ],
)
def test_invalid_values_rejected(override: dict[str, Any]):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **override)


@pytest.mark.parametrize(
    "override,expected",
    [
        ({"queue_capacity": 4}, 4),
        ({"hook_timeout": 0.25}, 0.25),
        ({"log_level": "trace"}, "TRACE"),
    ],
)
def test_direct_instantiation_with_overrides(override: dict[str, Any], expected: Any):
    s = Settings(_env_file=None, **override)
    key = next(iter(override.keys()))
    assert getattr(s, key) == expected
