"""Per-event-type delivery workers.

Each subscribed event type gets one DeliveryWorker owning a bounded queue
and the ordered subscriber list for that type. The worker processes its
queue strictly in arrival order and hands each event to every subscriber in
dependency order, one call at a time, before taking the next event.
"""

import asyncio
from collections.abc import Coroutine
from typing import Any

from loguru import logger

from .core import Event, EventType, ServiceProtocol
from .enums import ServiceHook
from .handle import ServiceHandle
from .hook_executor import HookExecutor


class ServiceSlot:
    """Daemon-side bookkeeping for one registered service.

    Tracks whether the service was started and whether it still accepts
    events. Each ``handle_event`` call runs as its own task, so shutdown can
    wait for the calls in flight and cancel them if they never finish.
    """

    def __init__(self, service: ServiceProtocol, handle: ServiceHandle):
        self.service = service
        self.handle = handle
        self.started = False  # init was invoked
        self.stopping = False  # shutdown began, no new deliveries
        self._in_flight: set[asyncio.Task[bool]] = set()
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def accepts_events(self) -> bool:
        """Whether new events may be delivered to the service."""
        return self.started and not self.stopping and self.handle.is_registered

    @property
    def in_flight(self) -> int:
        """Number of ``handle_event`` calls currently running."""
        return len(self._in_flight)

    async def deliver(self, call: Coroutine[Any, Any, bool]) -> bool:
        """Run one ``handle_event`` call and wait for it to finish.

        Returns:
            bool: The result of the call, False if it was cancelled by ``cancel_in_flight``
        """
        task = asyncio.create_task(call, name=f"handle_event:{self.service.name}")
        self._in_flight.add(task)
        self._idle.clear()
        try:
            await asyncio.wait({task})
        finally:
            if not task.done():
                # The worker itself is being cancelled
                task.cancel()
            self._in_flight.discard(task)
            if not self._in_flight:
                self._idle.set()

        if task.cancelled():
            logger.debug(f"{self.service.name}.handle_event was cancelled")
            return False
        return task.result()

    async def wait_idle(self) -> None:
        """Wait until no ``handle_event`` call is in flight."""
        await self._idle.wait()

    def cancel_in_flight(self) -> int:
        """Cancel every running ``handle_event`` call, returning how many there were."""
        for task in self._in_flight:
            task.cancel()
        return len(self._in_flight)

    def __repr__(self) -> str:
        return f"ServiceSlot(service={self.service!r}, started={self.started}, stopping={self.stopping})"


class DeliveryWorker:
    """Serially delivers all events of one type to its subscribers.

    Attributes:
        event_type: The event type this worker owns
        subscribers: Subscribed services in dependency order
        queue: Bounded input queue, fed by the daemon's router
    """

    def __init__(
        self,
        event_type: EventType,
        subscribers: list[ServiceSlot],
        executor: HookExecutor,
        ready: asyncio.Event,
        capacity: int,
    ):
        """Initialize the worker.

        Args:
            event_type: The event type this worker delivers
            subscribers: Slots of the subscribed services, in dependency order
            executor: Runs ``handle_event`` calls and reports failures
            ready: Set once service initialization has finished; delivery waits for it
            capacity: Bound of the input queue
        """
        self.event_type = event_type
        self.subscribers = subscribers
        self.queue: asyncio.Queue[Event] = asyncio.Queue(maxsize=capacity)
        self.delivered = 0
        self._executor = executor
        self._ready = ready

    async def run(self) -> None:
        """Process the queue until it is shut down and drained."""
        await self._ready.wait()
        logger.debug(f"Delivery worker for {self.event_type} started with {len(self.subscribers)} subscribers")

        while True:
            try:
                event = await self.queue.get()
            except asyncio.QueueShutDown:
                break
            await self._deliver(event)

        logger.debug(f"Delivery worker for {self.event_type} stopped after {self.delivered} events")

    async def _deliver(self, event: Event) -> None:
        """Hand one event to every subscriber that still accepts events."""
        logger.trace(f"Delivering {self.event_type} from service {event.service_id!r}")
        for slot in self.subscribers:
            if not slot.accepts_events:
                continue
            await slot.deliver(self._executor.call(slot.service, ServiceHook.HANDLE_EVENT, event, event_type=self.event_type))
        self.delivered += 1

    def __repr__(self) -> str:
        return f"DeliveryWorker(event_type={self.event_type!r}, subscribers={len(self.subscribers)})"
