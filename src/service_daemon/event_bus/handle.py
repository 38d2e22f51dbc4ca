"""Service handles.

A handle is the only channel through which a running service may emit
events. It hides the daemon's inbound queue from service code.
"""

import asyncio
from typing import Any

from loguru import logger

from .core import DaemonStoppedError, Event, EventEmissionError, EventType, ServiceId, ServiceProtocol


class ServiceHandle:
    """Per-service emitter bound to the daemon's shared inbound queue.

    Handles are created by ``ServiceDaemonBuilder.register`` and passed to
    ``Service.init``. ``emit`` may be called concurrently from any number of
    tasks owned by the service.
    """

    def __init__(self, service: ServiceProtocol, inbound: asyncio.Queue[Event]):
        self._service = service
        self._inbound = inbound
        self._registered = True

    @property
    def service_id(self) -> ServiceId:
        """Id of the service this handle belongs to."""
        return self._service.id

    @property
    def is_registered(self) -> bool:
        """False once ``unregister`` was called."""
        return self._registered

    async def emit(self, event_type: EventType, data: Any = None) -> Event:
        """Emit an event into the bus.

        Waits while the inbound queue is full; events are never dropped.

        Args:
            event_type: Routing tag of the event
            data: Optional payload, handed to subscribers as is

        Returns:
            The emitted event

        Raises:
            EventEmissionError: If ``event_type`` is not a non-empty string
            DaemonStoppedError: If the daemon stopped accepting events
        """
        if not isinstance(event_type, str) or not event_type:
            raise EventEmissionError(f"Event type must be a non-empty string, got: {event_type!r}")

        event = Event(service_id=self.service_id, event_type=event_type, data=data)
        try:
            await self._inbound.put(event)
        except asyncio.QueueShutDown:
            raise DaemonStoppedError(f"Daemon stopped, cannot emit {event_type} from service {self.service_id!r}") from None

        logger.trace(f"Service {self.service_id!r} emitted {event_type}")
        return event

    def unregister(self) -> None:
        """Remove the service from all future event deliveries.

        The service still gets ``shutdown`` called when the daemon stops.
        Calling this more than once has no further effect.
        """
        if self._registered:
            self._registered = False
            logger.debug(f"Service {self.service_id!r} unregistered from event delivery")

    def __repr__(self) -> str:
        return f"ServiceHandle(service_id={self.service_id!r}, registered={self._registered})"
