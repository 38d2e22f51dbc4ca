"""Enums for the event bus and daemon lifecycle.

This module contains basic enums to avoid circular dependencies.
"""

from enum import StrEnum


class DaemonState(StrEnum):
    """Lifecycle state of a running daemon."""

    INITIALIZING = "initializing"
    RUNNING = "running"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


class ErrorPolicy(StrEnum):
    """What the daemon does after a service hook fails."""

    CONTINUE = "continue"  # Log, record and keep going
    SHUTDOWN = "shutdown"  # Log, record and shut the daemon down


class ServiceHook(StrEnum):
    """Service lifecycle hooks invoked by the daemon."""

    INIT = "init"
    HANDLE_EVENT = "handle_event"
    SHUTDOWN = "shutdown"
