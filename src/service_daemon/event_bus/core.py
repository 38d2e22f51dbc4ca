"""Core Event Bus Components.

This module contains the fundamental abstractions shared by the solver, the
builder and the running daemon.

## Key Components

- **ServiceProtocol**: The members the daemon requires from a service
- **Service**: Convenient base class implementing them
- **Event**: Immutable value delivered to subscribers
- **EventBusError**: Base exception for all event bus related errors
- **EventEmissionError**: Raised when an event cannot be emitted
- **DaemonStoppedError**: Raised when emitting into a closed bus

## Usage Example

```python
from service_daemon.event_bus import Event, Service, ServiceHandle

class Inventory(Service):
    id = 2

    def dependencies(self) -> list[int]:
        return [0, 1]

    def subscriptions(self) -> list[str]:
        return ["OrderCreated"]

    async def init(self, handle: ServiceHandle) -> None:
        self.handle = handle

    async def handle_event(self, event: Event) -> None:
        await self.handle.emit("StockReserved", {"order": event.data["order_id"]})
```

"""

from abc import ABC, abstractmethod
from collections.abc import Hashable
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import arrow
from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from .handle import ServiceHandle

# Caller-assigned, globally unique service identifier. Only equality and hashing are used.
ServiceId = Hashable

# Routing tag for events
EventType = str


class Event(BaseModel):
    """An event emitted by a service through its handle.

    Events are immutable. The same instance is handed to every subscriber
    of its type.
    """

    model_config = ConfigDict(frozen=True)

    service_id: ServiceId = Field(..., description="Id of the emitting service")
    event_type: EventType = Field(..., description="Routing tag")
    data: Any = Field(default=None, description="Opaque payload")
    emitted_at: str = Field(default_factory=lambda: arrow.utcnow().isoformat())  # ISO 8601 UTC timestamp


@runtime_checkable
class ServiceProtocol(Protocol):
    """What the daemon requires from a service.

    Any object providing these members can be registered. Subclassing
    ``Service`` is the convenient way to get defaults for all of them.
    """

    @property
    def id(self) -> ServiceId: ...
    @property
    def name(self) -> str: ...
    def dependencies(self) -> list[ServiceId]: ...
    def subscriptions(self) -> list[EventType]: ...
    def init(self, handle: "ServiceHandle") -> Any: ...
    def handle_event(self, event: "Event") -> Any: ...
    def shutdown(self) -> Any: ...


class Service(ABC):
    """Base class for services managed by the daemon.

    Subclasses provide an ``id`` and override the hooks they need. Hooks may
    be coroutines or plain methods; the daemon awaits whatever is awaitable.

    Lifecycle guarantees:
    - ``init`` runs after ``init`` of every dependency has returned
    - ``handle_event`` receives events of subscribed types; if a dependency
      subscribes to the same type it receives each event first
    - ``shutdown`` runs after ``shutdown`` of every dependent has returned,
      and no ``handle_event`` call runs during or after it
    """

    @property
    @abstractmethod
    def id(self) -> ServiceId:
        """Globally unique identifier other services use to depend on this one."""

    @property
    def name(self) -> str:
        """Human readable description of the service."""
        return f"{type(self).__name__}{self.id}"

    def dependencies(self) -> list[ServiceId]:
        """Return the ids of upstream services this service depends on."""
        return []

    def subscriptions(self) -> list[EventType]:
        """Return the event types this service wants to receive."""
        return []

    async def init(self, handle: "ServiceHandle") -> None:  # noqa: B027
        """Initialize the service. ``handle`` is the only way to emit events."""

    async def handle_event(self, event: Event) -> Any:  # noqa: B027
        """Handle an event of a subscribed type."""

    async def shutdown(self) -> None:  # noqa: B027
        """Stop the service and any background work it started."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r})"


class EventBusError(Exception):
    """Base exception for all event bus related errors.

    Use this for catching any event bus related error:
        ```python
        try:
            await handle.emit("Tick")
        except EventBusError as e:
            logger.error(f"Event bus error: {e}")
        ```
    """


class EventEmissionError(EventBusError):
    """Raised when event emission fails.

    This occurs when:
    - The event type is empty or not a string
    - The bus no longer accepts events (see ``DaemonStoppedError``)
    """


class DaemonStoppedError(EventEmissionError):
    """Raised when emitting after the daemon closed its inbound queue."""
