"""Service Daemon run-loop.

This module provides the ServiceDaemon class, the running system created by
``ServiceDaemonBuilder.start``. The daemon initializes services in dependency
order, routes events from the shared inbound queue to one delivery worker per
event type, and on shutdown stops services in reverse order and drains the bus.

Lifecycle:
    INITIALIZING -> RUNNING -> SHUTTING_DOWN -> STOPPED

Ordering guarantees:
- ``init`` calls are sequential, in dependency order
- events of one type are delivered in enqueue order; each event reaches every
  subscriber, in dependency order, before the next event of that type
- events of different types are delivered concurrently, with no relative order
- ``shutdown`` calls are sequential, in reverse dependency order, and no
  ``handle_event`` call runs for a service during or after its ``shutdown``

Typical Usage:
    builder = ServiceDaemonBuilder()
    builder.register(DatabaseService())
    builder.register(ApiService())

    daemon = await builder.start()
    ...
    await daemon.shutdown()
"""

import asyncio
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING

from loguru import logger

from service_daemon.settings import Settings

from .core import Event, EventType, ServiceId, ServiceProtocol
from .enums import DaemonState, ErrorPolicy, ServiceHook
from .handle import ServiceHandle
from .hook_executor import HookExecutor
from .models import ServiceFailure
from .worker import DeliveryWorker, ServiceSlot

if TYPE_CHECKING:
    from service_daemon.graph import SolvedGraph

ErrorCallback = Callable[[ServiceFailure], None]


class ServiceDaemon:
    """The running service system.

    Instances are created and started by ``ServiceDaemonBuilder.start``; the
    only control operation offered to hosts is ``shutdown``. Service failures
    never propagate out of the daemon. They are logged, collected in
    ``failures`` and passed to the optional ``on_error`` callback, and the
    configured ``ErrorPolicy`` decides whether the daemon keeps running.

    Attributes:
        error_policy: What happens after a service hook fails
    """

    def __init__(
        self,
        graph: "SolvedGraph",
        handles: Mapping[ServiceId, ServiceHandle],
        inbound: asyncio.Queue[Event],
        settings: Settings,
        error_policy: ErrorPolicy = ErrorPolicy.CONTINUE,
        on_error: ErrorCallback | None = None,
    ):
        """Initialize the daemon from a solved dependency graph.

        Args:
            graph: Solved service order and per-type subscriber lists
            handles: Handle of every service, by service id
            inbound: Shared queue every handle emits into
            settings: Queue capacities, hook timeout and shutdown grace period
            error_policy: What happens after a service hook fails
            on_error: Optional callback receiving every ServiceFailure
        """
        self.error_policy = ErrorPolicy(error_policy)
        self._graph = graph
        self._inbound = inbound
        self._on_error = on_error
        self._state = DaemonState.INITIALIZING
        self._failures: list[ServiceFailure] = []
        self._dropped_events = 0
        self._task: asyncio.Task[None] | None = None
        self._grace_period = settings.shutdown_grace_period

        self._initialized = asyncio.Event()
        self._shutdown_requested = asyncio.Event()
        self._executor = HookExecutor(self._record_failure, timeout=settings.hook_timeout)

        # Services in dependency order, roots first
        self._slots = [ServiceSlot(service, handles[service.id]) for service in graph.order]
        slots_by_id = {slot.service.id: slot for slot in self._slots}

        self._workers: dict[EventType, DeliveryWorker] = {
            event_type: DeliveryWorker(
                event_type,
                [slots_by_id[service.id] for service in subscribers],
                self._executor,
                self._initialized,
                settings.worker_queue_capacity,
            )
            for event_type, subscribers in graph.subscribers.items()
        }

    @property
    def state(self) -> DaemonState:
        """Current lifecycle state."""
        return self._state

    @property
    def services(self) -> list[ServiceProtocol]:
        """Services in dependency order, roots first."""
        return list(self._graph.order)

    @property
    def subscribers(self) -> dict[EventType, list[ServiceProtocol]]:
        """Subscribed services per event type, in dependency order."""
        return {event_type: list(services) for event_type, services in self._graph.subscribers.items()}

    @property
    def failures(self) -> list[ServiceFailure]:
        """Every service hook failure recorded so far, oldest first."""
        return list(self._failures)

    @property
    def dropped_events(self) -> int:
        """Number of events discarded because nothing subscribes to their type."""
        return self._dropped_events

    def start(self) -> None:
        """Launch the run-loop as an independent task on the running event loop.

        Raises:
            RuntimeError: If the daemon was already started
        """
        if self._task is not None:
            raise RuntimeError("ServiceDaemon already started")
        self._task = asyncio.create_task(self._run(), name="service-daemon")

    def request_shutdown(self) -> None:
        """Ask the run-loop to shut down without waiting for it.

        Safe to call from service code, including from inside ``handle_event``,
        where awaiting ``shutdown`` would wait on the caller itself.
        """
        if not self._shutdown_requested.is_set():
            logger.info("Daemon shutdown requested")
            self._shutdown_requested.set()

    async def shutdown(self) -> None:
        """Stop all services in reverse dependency order and drain the bus.

        Returns once the daemon reached STOPPED. If initialization is still in
        progress, services not yet initialized are skipped. Calling this on a
        stopped daemon is a no-op.
        """
        if self._state is DaemonState.STOPPED:
            logger.debug("Daemon already stopped, ignoring shutdown")
            return

        self.request_shutdown()
        await self.wait()

    async def wait(self) -> None:
        """Wait until the daemon reached STOPPED."""
        if self._task is None:
            raise RuntimeError("ServiceDaemon was never started")
        await asyncio.shield(self._task)

    async def _run(self) -> None:
        """Run the daemon through its whole lifecycle."""
        worker_tasks = [
            asyncio.create_task(worker.run(), name=f"delivery-worker:{event_type}") for event_type, worker in self._workers.items()
        ]
        router_task = asyncio.create_task(self._route(), name="event-router")

        try:
            try:
                await self._initialize_services()
            finally:
                # Workers hold delivery until every init call returned
                self._initialized.set()

            if not self._shutdown_requested.is_set():
                self._set_state(DaemonState.RUNNING)
            await self._shutdown_requested.wait()

            self._set_state(DaemonState.SHUTTING_DOWN)
            await self._shutdown_services()

            # Close the inbound queue: the router drains it, then closes every worker queue
            self._inbound.shutdown()
            await self._drain(router_task, worker_tasks)
            self._set_state(DaemonState.STOPPED)
        finally:
            for task in (router_task, *worker_tasks):
                task.cancel()

    async def _initialize_services(self) -> None:
        """Call ``init`` on every service in dependency order."""
        for slot in self._slots:
            if self._shutdown_requested.is_set():
                skipped = [s.service.name for s in self._slots if not s.started]
                logger.warning(f"Shutdown requested during initialization, not initializing: {', '.join(skipped)}")
                return

            logger.debug(f"Initializing {slot.service.name}")
            slot.started = True
            await self._executor.call(slot.service, ServiceHook.INIT, slot.handle)

    async def _shutdown_services(self) -> None:
        """Call ``shutdown`` on every started service, leaves first."""
        for slot in reversed(self._slots):
            if not slot.started:
                continue

            await self._stop_deliveries(slot)
            logger.debug(f"Shutting down {slot.service.name}")
            await self._executor.call(slot.service, ServiceHook.SHUTDOWN)

    async def _stop_deliveries(self, slot: ServiceSlot) -> None:
        """Stop new deliveries to ``slot`` and wait for the calls in flight.

        Calls still running after the grace period are cancelled and reported
        as a failed ``handle_event``.
        """
        slot.stopping = True
        if await self._wait_idle(slot):
            return

        cancelled = slot.cancel_in_flight()
        error = TimeoutError(f"{cancelled} handle_event call(s) still running after the {self._grace_period}s shutdown grace period, cancelled")
        self._executor.report_failure(slot.service, ServiceHook.HANDLE_EVENT, error)

        if not await self._wait_idle(slot):
            logger.error(f"{slot.service.name}.handle_event ignored cancellation, shutting it down anyway")

    async def _wait_idle(self, slot: ServiceSlot) -> bool:
        """Wait up to the grace period for ``slot`` to become idle."""
        try:
            async with asyncio.timeout(self._grace_period):
                await slot.wait_idle()
        except TimeoutError:
            return False
        return True

    async def _drain(self, router_task: asyncio.Task[None], worker_tasks: list[asyncio.Task[None]]) -> None:
        """Wait for the router and the workers to empty their queues and exit."""
        done, pending = await asyncio.wait([router_task, *worker_tasks], timeout=self._grace_period)
        if pending:
            logger.warning(f"Event bus did not drain within {self._grace_period}s, cancelling {len(pending)} task(s)")
            for task in pending:
                task.cancel()
            await asyncio.wait(pending, timeout=self._grace_period)

        for task in done:
            task.result()

    async def _route(self) -> None:
        """Forward events from the inbound queue to the worker for their type."""
        while True:
            try:
                event = await self._inbound.get()
            except asyncio.QueueShutDown:
                break

            worker = self._workers.get(event.event_type)
            if worker is None:
                self._dropped_events += 1
                logger.trace(f"No subscribers for {event.event_type}, dropping event from service {event.service_id!r}")
                continue
            await worker.queue.put(event)

        for worker in self._workers.values():
            worker.queue.shutdown()
        logger.debug("Event router stopped")

    def _record_failure(self, failure: ServiceFailure) -> None:
        """Collect a service failure and apply the error policy."""
        self._failures.append(failure)

        if self.error_policy is ErrorPolicy.SHUTDOWN and self._state in (DaemonState.INITIALIZING, DaemonState.RUNNING):
            logger.warning(f"Error policy is '{self.error_policy}', shutting down after failure of {failure.service_name}")
            self.request_shutdown()

        if self._on_error is not None:
            self._on_error(failure)

    def _set_state(self, state: DaemonState) -> None:
        logger.info(f"Daemon state: {self._state.value} -> {state.value}")
        self._state = state

    def __repr__(self) -> str:
        return f"ServiceDaemon(state={self._state.value}, services={[slot.service.id for slot in self._slots]})"
