"""Global constants for the service daemon.

This module defines constants used throughout the package to avoid
hardcoded values and keep defaults in one place.
"""

# Default bound of the shared inbound event queue
DEFAULT_QUEUE_CAPACITY = 128

# Default bound of each per-event-type delivery queue
DEFAULT_WORKER_QUEUE_CAPACITY = 128

# Seconds shutdown waits for a service to finish handling an event before cancelling it
DEFAULT_SHUTDOWN_GRACE_PERIOD = 5.0

# Event type used by the bundled example services
EXAMPLE_EVENT_TYPE = "ExSomeEvent"
