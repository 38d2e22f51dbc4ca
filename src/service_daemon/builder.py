"""Builder for registering services and starting a daemon."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from loguru import logger

from service_daemon.event_bus import ErrorPolicy, Event, ServiceDaemon, ServiceHandle, ServiceId, ServiceProtocol
from service_daemon.event_bus.daemon import ErrorCallback
from service_daemon.exceptions import BuilderConsumedError, DuplicateServiceError
from service_daemon.graph import SolvedGraph, solve_dependencies
from service_daemon.settings import Settings, get_settings


class ServiceDaemonBuilder:
    """Collects services before start and turns them into a running daemon.

    Each host constructs its own builder; there is no global instance. A
    builder is single-use: after a successful ``start`` it rejects further
    registrations and starts.

    Example:
        ```python
        builder = ServiceDaemonBuilder()
        builder.register(StorageService())
        builder.register(ApiService())

        async with builder.running() as daemon:
            await serve_forever()
        ```
    """

    def __init__(
        self,
        settings: Settings | None = None,
        error_policy: ErrorPolicy | str | None = None,
        on_error: ErrorCallback | None = None,
    ):
        """Initialize the builder.

        Args:
            settings: Queue capacities, hook timeout and default error policy.
                      Defaults to ``get_settings()``.
            error_policy: Overrides ``settings.error_policy``
            on_error: Optional callback receiving every service failure
        """
        self.settings = settings or get_settings()
        self.error_policy = ErrorPolicy(error_policy or self.settings.error_policy)
        self._on_error = on_error
        self._inbound: asyncio.Queue[Event] = asyncio.Queue(maxsize=self.settings.queue_capacity)
        self._services: dict[ServiceId, ServiceProtocol] = {}
        self._handles: dict[ServiceId, ServiceHandle] = {}
        self._consumed = False

    @property
    def services(self) -> list[ServiceProtocol]:
        """Registered services, in registration order."""
        return list(self._services.values())

    def register(self, service: ServiceProtocol) -> ServiceHandle:
        """Register a service and create its handle.

        Args:
            service: The service to register

        Returns:
            The handle bound to the service

        Raises:
            TypeError: If ``service`` lacks a member of ServiceProtocol
            DuplicateServiceError: If a service with the same id is registered
            BuilderConsumedError: If the builder was already started
        """
        self._ensure_not_consumed()
        if not isinstance(service, ServiceProtocol):
            raise TypeError(f"Service must implement ServiceProtocol, got: {type(service).__name__}")

        service_id = service.id
        if service_id in self._services:
            raise DuplicateServiceError(service_id)

        handle = ServiceHandle(service, self._inbound)
        self._services[service_id] = service
        self._handles[service_id] = handle
        logger.debug(f"Registered service {service.name} (id={service_id!r})")
        return handle

    def solve(self) -> SolvedGraph:
        """Solve the dependency graph of the registered services without starting.

        Raises:
            UnknownDependencyError: If a dependency id was never registered
            CyclicDependencyError: If the dependencies do not form a DAG
        """
        return solve_dependencies(self._services)

    async def start(self) -> ServiceDaemon:
        """Solve the dependency graph and start the daemon run-loop.

        Configuration errors are raised before anything runs; in that case no
        daemon exists and the builder can be fixed and started again.

        Returns:
            The running daemon

        Raises:
            UnknownDependencyError: If a dependency id was never registered
            CyclicDependencyError: If the dependencies do not form a DAG
            BuilderConsumedError: If the builder was already started
        """
        self._ensure_not_consumed()
        graph = self.solve()

        daemon = ServiceDaemon(
            graph,
            self._handles,
            self._inbound,
            self.settings,
            error_policy=self.error_policy,
            on_error=self._on_error,
        )
        daemon.start()
        self._consumed = True

        logger.info(f"Service daemon started with {len(graph.order)} services and {len(graph.subscribers)} event types")
        return daemon

    @asynccontextmanager
    async def running(self) -> AsyncIterator[ServiceDaemon]:
        """Start the daemon for the duration of an ``async with`` block.

        The daemon is shut down when the block exits, also on error.
        """
        daemon = await self.start()
        try:
            yield daemon
        finally:
            await daemon.shutdown()

    def _ensure_not_consumed(self) -> None:
        if self._consumed:
            raise BuilderConsumedError()

    def __str__(self) -> str:
        """String representation of the builder."""
        return f"ServiceDaemonBuilder(services={len(self._services)})"
