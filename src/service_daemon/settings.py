"""Daemon configuration using Pydantic Settings.

This module centralizes runtime configuration for the service daemon. Values
can be provided via environment variables (preferred) or fall back to the
defaults below. A ``Settings`` instance is intended to be retrieved via
``get_settings`` which caches the object for reuse across the process.

Environment variable prefix: ``SERVICE_DAEMON_`` (e.g. ``SERVICE_DAEMON_QUEUE_CAPACITY``).
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from service_daemon.constants import DEFAULT_QUEUE_CAPACITY, DEFAULT_SHUTDOWN_GRACE_PERIOD, DEFAULT_WORKER_QUEUE_CAPACITY


class Settings(BaseSettings):
    """Runtime daemon settings.

    Attributes map directly to environment variables using the ``SERVICE_DAEMON_``
    prefix (case-insensitive). For example, ``log_level`` <- ``SERVICE_DAEMON_LOG_LEVEL``.
    """

    log_level: Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Application log level",
    )

    # Event bus settings
    # These settings bound the queues between handles, the router and the workers.
    queue_capacity: int = Field(
        default=DEFAULT_QUEUE_CAPACITY,
        gt=0,
        description="Capacity of the shared inbound event queue",
    )  # fmt: skip
    worker_queue_capacity: int = Field(
        default=DEFAULT_WORKER_QUEUE_CAPACITY,
        gt=0,
        description="Capacity of each per-event-type delivery queue",
    )  # fmt: skip

    # Service failure handling
    error_policy: Literal["continue", "shutdown"] = Field(
        default="continue",
        description="What the daemon does when a service hook fails: log and continue, or shut down",
    )  # fmt: skip
    hook_timeout: float | None = Field(
        default=None,
        gt=0,
        description="Upper bound in seconds for a single init/handle_event/shutdown call. None disables it.",
    )  # fmt: skip
    shutdown_grace_period: float = Field(
        default=DEFAULT_SHUTDOWN_GRACE_PERIOD,
        gt=0,
        description="Seconds shutdown waits for in-flight handle_event calls of a service before cancelling them",
    )  # fmt: skip

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str | None) -> str:
        """Normalize and validate log level."""
        if v is None:
            return "INFO"

        v_upper = str(v).upper()

        allowed = {"TRACE", "DEBUG", "INFO", "WARNING", "ERROR"}
        if v_upper not in allowed:
            raise ValueError(f"Invalid log level: {v}. Must be one of: {', '.join(sorted(allowed))}")

        return v_upper

    @field_validator("error_policy", mode="before")
    @classmethod
    def validate_error_policy(cls, v: str | None) -> str:
        """Normalize error policy to lowercase."""
        if v is None:
            return "continue"
        return str(v).lower()

    model_config = SettingsConfigDict(
        env_prefix="SERVICE_DAEMON_",  # Prefix for env vars
        case_sensitive=False,
        extra="ignore",  # Ignore unexpected env vars
        env_file=".env",  # Optional .env loading (if present)
        env_file_encoding="utf-8",
    )


@lru_cache
def get_settings() -> Settings:
    """Return the cached ``Settings`` instance.

    The first invocation reads environment variables / .env file; subsequent
    calls reuse the same object to ensure consistent config.
    """

    return Settings()


__all__ = ["Settings", "get_settings"]
