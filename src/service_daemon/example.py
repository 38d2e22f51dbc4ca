"""Example services and a demo run of the daemon.

Four services, all subscribed to ``ExSomeEvent``::

    0: no dependencies
    1: depends on 0
    2: depends on 0 and 1
    3: depends on 2, emits ten events 100ms apart after init

They are registered out of order to show that the solver decides the order.
"""

import asyncio

from loguru import logger
from pydantic import BaseModel

from service_daemon.builder import ServiceDaemonBuilder
from service_daemon.constants import EXAMPLE_EVENT_TYPE
from service_daemon.event_bus import Event, Service, ServiceDaemon, ServiceHandle, ServiceId
from service_daemon.settings import Settings


class ExSomeEvent(BaseModel):
    """Payload of the example event."""

    n: int


class ExampleService(Service):
    """Logs its lifecycle and every event it receives.

    An event source additionally starts a background task emitting
    ``event_count`` events, ``interval`` seconds apart.
    """

    def __init__(
        self,
        service_id: ServiceId,
        dependencies: list[ServiceId] | None = None,
        event_source: bool = False,
        event_count: int = 10,
        interval: float = 0.1,
    ):
        self._id = service_id
        self._dependencies = list(dependencies or [])
        self.event_source = event_source
        self.event_count = event_count
        self.interval = interval
        self.received: list[Event] = []
        self._emitter: asyncio.Task[None] | None = None

    @property
    def id(self) -> ServiceId:
        return self._id

    @property
    def name(self) -> str:
        return f"ExService{self._id}"

    def dependencies(self) -> list[ServiceId]:
        return self._dependencies

    def subscriptions(self) -> list[str]:
        return [EXAMPLE_EVENT_TYPE]

    async def init(self, handle: ServiceHandle) -> None:
        logger.info(f"{self.name}.init")
        if self.event_source:
            self._emitter = asyncio.create_task(self._emit_events(handle), name=f"{self.name}-emitter")

    async def handle_event(self, event: Event) -> None:
        self.received.append(event)
        logger.info(f"{self.name}.handle_event [from {event.service_id}, type {event.event_type}]: {event.data}")

    async def shutdown(self) -> None:
        logger.info(f"{self.name}.shutdown")
        if self._emitter is not None:
            self._emitter.cancel()
            await asyncio.gather(self._emitter, return_exceptions=True)
            self._emitter = None

    async def _emit_events(self, handle: ServiceHandle) -> None:
        for i in range(self.event_count):
            await asyncio.sleep(self.interval)
            await handle.emit(EXAMPLE_EVENT_TYPE, ExSomeEvent(n=i))


def build_example(settings: Settings | None = None, interval: float = 0.1) -> ServiceDaemonBuilder:
    """Return a builder with the four example services registered."""
    builder = ServiceDaemonBuilder(settings=settings)
    builder.register(ExampleService(2, [0, 1], interval=interval))
    builder.register(ExampleService(3, [2], event_source=True, interval=interval))
    builder.register(ExampleService(0, [], interval=interval))
    builder.register(ExampleService(1, [0], interval=interval))
    return builder


async def run_example(duration: float = 2.0, settings: Settings | None = None, interval: float = 0.1) -> ServiceDaemon:
    """Run the example system for ``duration`` seconds, then shut it down.

    Returns:
        The stopped daemon, for inspection
    """
    builder = build_example(settings=settings, interval=interval)
    daemon = await builder.start()

    await asyncio.sleep(duration)

    await daemon.shutdown()
    return daemon
