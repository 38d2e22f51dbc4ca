"""The service daemon package.

Register services with dependencies and event subscriptions on a
``ServiceDaemonBuilder``, start it, and the daemon initializes them in
dependency order, delivers their events, and shuts them down in reverse.
"""

from .builder import ServiceDaemonBuilder
from .event_bus import Event, Service, ServiceDaemon, ServiceHandle, ServiceProtocol
from .exceptions import (
    BuilderConsumedError,
    ConfigurationError,
    CyclicDependencyError,
    DuplicateServiceError,
    UnknownDependencyError,
)
from .settings import Settings, get_settings

__all__ = [
    "BuilderConsumedError",
    "ConfigurationError",
    "CyclicDependencyError",
    "DuplicateServiceError",
    "Event",
    "Service",
    "ServiceDaemon",
    "ServiceDaemonBuilder",
    "ServiceHandle",
    "ServiceProtocol",
    "Settings",
    "UnknownDependencyError",
    "get_settings",
]
