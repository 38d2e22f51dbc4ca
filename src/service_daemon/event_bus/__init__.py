"""Event Bus and Daemon Run-Loop.

This package provides the running side of the service daemon:

- **ServiceProtocol**: What a managed service provides (id, name, dependencies, subscriptions, hooks)
- **Service**: Base class implementing ServiceProtocol with defaults
- **Event**: Immutable Pydantic value delivered to subscribers
- **ServiceHandle**: The only way a service emits events into the bus
- **ServiceDaemon**: Initializes services, routes events, shuts everything down
- **DeliveryWorker**: One per subscribed event type, delivers in dependency order

## Quick Start

```python
from service_daemon import ServiceDaemonBuilder
from service_daemon.event_bus import Event, Service

class Ticker(Service):
    id = 0

    async def init(self, handle):
        await handle.emit("Tick", {"n": 1})

class Printer(Service):
    id = 1

    def dependencies(self):
        return [0]

    def subscriptions(self):
        return ["Tick"]

    async def handle_event(self, event: Event) -> None:
        print(event.data)

builder = ServiceDaemonBuilder()
builder.register(Ticker())
builder.register(Printer())
daemon = await builder.start()
await daemon.shutdown()
```

"""

from .core import DaemonStoppedError, Event, EventBusError, EventEmissionError, EventType, Service, ServiceId, ServiceProtocol
from .daemon import ServiceDaemon
from .enums import DaemonState, ErrorPolicy, ServiceHook
from .handle import ServiceHandle
from .models import ServiceFailure
from .worker import DeliveryWorker

__all__ = [
    "DaemonState",
    "DaemonStoppedError",
    "DeliveryWorker",
    "ErrorPolicy",
    "Event",
    "EventBusError",
    "EventEmissionError",
    "EventType",
    "Service",
    "ServiceDaemon",
    "ServiceFailure",
    "ServiceHandle",
    "ServiceHook",
    "ServiceId",
    "ServiceProtocol",
]
