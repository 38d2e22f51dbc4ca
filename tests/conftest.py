"""Shared fixtures for service daemon tests."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import pytest

from service_daemon.event_bus import Event, Service, ServiceHandle
from service_daemon.settings import Settings


class RecordingService(Service):
    """Service that appends every hook call to a shared journal.

    Journal entries:
        ("init", id)
        ("event", id, event_type, data)
        ("shutdown", id)
    """

    def __init__(
        self,
        service_id: Any,
        journal: list[tuple],
        dependencies: list[Any] | None = None,
        subscriptions: list[str] | None = None,
        fail_on: set[str] | None = None,
        event_delay: float = 0.0,
    ):
        self._id = service_id
        self.journal = journal
        self._dependencies = list(dependencies or [])
        self._subscriptions = list(subscriptions or [])
        self.fail_on = fail_on or set()
        self.event_delay = event_delay
        self.handle: ServiceHandle | None = None
        self.received: list[Event] = []
        self.is_shut_down = False
        self.events_after_shutdown = 0

    @property
    def id(self) -> Any:
        return self._id

    def dependencies(self) -> list[Any]:
        return self._dependencies

    def subscriptions(self) -> list[str]:
        return self._subscriptions

    async def init(self, handle: ServiceHandle) -> None:
        self.handle = handle
        self.journal.append(("init", self._id))
        if "init" in self.fail_on:
            raise RuntimeError(f"init of {self._id} failed")

    async def handle_event(self, event: Event) -> None:
        if self.is_shut_down:
            self.events_after_shutdown += 1
        if self.event_delay:
            await asyncio.sleep(self.event_delay)
        self.received.append(event)
        self.journal.append(("event", self._id, event.event_type, event.data))
        if "handle_event" in self.fail_on:
            raise ValueError(f"handler of {self._id} failed")

    async def shutdown(self) -> None:
        self.is_shut_down = True
        self.journal.append(("shutdown", self._id))
        if "shutdown" in self.fail_on:
            raise RuntimeError(f"shutdown of {self._id} failed")


class Journal(list):
    """Ordered record of hook calls shared by several services."""

    def hooks(self, name: str) -> list[Any]:
        """Service ids of the entries for hook ``name``, in call order."""
        return [entry[1] for entry in self if entry[0] == name]

    def events(self, service_id: Any) -> list[Any]:
        """Payloads delivered to ``service_id``, in delivery order."""
        return [entry[3] for entry in self if entry[0] == "event" and entry[1] == service_id]


@pytest.fixture
def journal() -> Journal:
    """Shared, ordered record of hook calls."""
    return Journal()


@pytest.fixture
def make_service(journal: Journal) -> Callable[..., RecordingService]:
    """Factory for RecordingService instances writing to ``journal``."""

    def factory(service_id: Any, dependencies: list[Any] | None = None, subscriptions: list[str] | None = None, **kwargs: Any):
        return RecordingService(service_id, journal, dependencies, subscriptions, **kwargs)

    return factory


@pytest.fixture
def settings() -> Settings:
    """Settings with defaults, ignoring any .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def eventually() -> Callable[[Callable[[], bool]], Awaitable[None]]:
    """Poll a condition until it holds, failing the test after a timeout."""

    async def wait(predicate: Callable[[], bool], timeout: float = 5.0) -> None:
        async with asyncio.timeout(timeout):
            while not predicate():
                await asyncio.sleep(0.005)

    return wait

