"""Tests for the example services."""

import pytest

from service_daemon.constants import EXAMPLE_EVENT_TYPE
from service_daemon.event_bus import DaemonState
from service_daemon.example import ExampleService, ExSomeEvent, build_example, run_example


def test_example_order(settings):
    """The example services solve to 0, 1, 2, 3 despite registration order."""
    builder = build_example(settings=settings)

    assert [service.id for service in builder.services] == [2, 3, 0, 1]
    graph = builder.solve()
    assert graph.order_ids() == [0, 1, 2, 3]
    assert graph.subscriber_ids(EXAMPLE_EVENT_TYPE) == [0, 1, 2, 3]


def test_example_service_names():
    service = ExampleService(4, [1])

    assert service.name == "ExService4"
    assert service.dependencies() == [1]
    assert service.subscriptions() == [EXAMPLE_EVENT_TYPE]


@pytest.mark.asyncio
async def test_run_example_delivers_all_events(settings):
    """Every service receives the ten events of the source, in order."""
    daemon = await run_example(duration=0.5, settings=settings, interval=0.01)

    assert daemon.state is DaemonState.STOPPED
    assert daemon.failures == []
    for service in daemon.services:
        payloads = [event.data for event in service.received]
        assert payloads == [ExSomeEvent(n=n) for n in range(10)]
        assert all(event.service_id == 3 for event in service.received)


@pytest.mark.asyncio
async def test_shutdown_stops_event_source(settings):
    """Shutting down before the source finished cancels its emitter cleanly."""
    daemon = await run_example(duration=0.05, settings=settings, interval=0.02)

    assert daemon.state is DaemonState.STOPPED
    assert daemon.failures == []
    received = [len(service.received) for service in daemon.services]
    assert all(count < 10 for count in received)
