"""Configuration errors raised while building a daemon.

All of these are detected before any service runs. ``ServiceDaemonBuilder.start``
raises them synchronously and never returns a partially built daemon.
"""

from collections.abc import Hashable


class ConfigurationError(Exception):
    """Base class for invalid service registrations or dependency graphs."""


class DuplicateServiceError(ConfigurationError):
    """Raised when two services are registered under the same id."""

    def __init__(self, service_id: Hashable):
        self.service_id = service_id
        super().__init__(f"Service already registered: {service_id!r}")


class UnknownDependencyError(ConfigurationError):
    """Raised when a service depends on an id that was never registered.

    ``missing`` maps each offending service id to the unknown ids it declared.
    """

    def __init__(self, missing: dict[Hashable, list[Hashable]]):
        self.missing = missing
        details = "; ".join(f"{sid!r} -> {deps!r}" for sid, deps in missing.items())
        super().__init__(f"Unknown service dependencies: {details}")


class CyclicDependencyError(ConfigurationError):
    """Raised when the service dependency graph is not a DAG.

    ``unresolved`` lists the services that could not be ordered, in registration
    order. It contains every cycle plus the services that depend on one.
    """

    def __init__(self, unresolved: list[Hashable]):
        self.unresolved = unresolved
        super().__init__(f"Service dependency graph is cyclic, unresolved services: {unresolved!r}")


class BuilderConsumedError(Exception):
    """Raised when a builder is used again after ``start()`` succeeded."""

    def __init__(self):
        super().__init__("ServiceDaemonBuilder has already been started")
