"""Tests for service handles."""

import asyncio

import pytest
from pydantic import ValidationError

from service_daemon.event_bus import DaemonStoppedError, Event, EventEmissionError, ServiceHandle


@pytest.mark.asyncio
async def test_emit_stamps_service_id(make_service):
    """Emitted events carry the owning service's id."""
    inbound: asyncio.Queue[Event] = asyncio.Queue(maxsize=8)
    handle = ServiceHandle(make_service("svc"), inbound)

    event = await handle.emit("Created", {"key": "value"})

    assert inbound.get_nowait() is event
    assert event.service_id == "svc"
    assert event.event_type == "Created"
    assert event.data == {"key": "value"}
    assert event.emitted_at


@pytest.mark.asyncio
async def test_emit_without_data(make_service):
    """Payload defaults to None."""
    inbound: asyncio.Queue[Event] = asyncio.Queue()
    handle = ServiceHandle(make_service(1), inbound)

    event = await handle.emit("Ping")

    assert event.data is None


def test_events_are_immutable():
    """Events cannot be modified after creation."""
    event = Event(service_id=1, event_type="X", data=1)

    with pytest.raises(ValidationError):
        event.event_type = "Y"


@pytest.mark.asyncio
@pytest.mark.parametrize("event_type", ["", None, 42])
async def test_emit_rejects_invalid_event_type(make_service, event_type):
    """Event types must be non-empty strings."""
    inbound: asyncio.Queue[Event] = asyncio.Queue()
    handle = ServiceHandle(make_service(1), inbound)

    with pytest.raises(EventEmissionError):
        await handle.emit(event_type)

    assert inbound.empty()


@pytest.mark.asyncio
async def test_emit_waits_while_queue_full(make_service):
    """A full queue suspends the emitter until space frees up."""
    inbound: asyncio.Queue[Event] = asyncio.Queue(maxsize=1)
    handle = ServiceHandle(make_service(1), inbound)
    await handle.emit("First")

    pending = asyncio.create_task(handle.emit("Second"))
    await asyncio.sleep(0.01)
    assert not pending.done()

    assert inbound.get_nowait().event_type == "First"
    second = await pending
    assert inbound.get_nowait() is second


@pytest.mark.asyncio
async def test_emit_into_closed_queue(make_service):
    """Emitting after the bus closed raises DaemonStoppedError."""
    inbound: asyncio.Queue[Event] = asyncio.Queue()
    handle = ServiceHandle(make_service(1), inbound)
    inbound.shutdown()

    with pytest.raises(DaemonStoppedError):
        await handle.emit("Late")


@pytest.mark.asyncio
async def test_blocked_emitter_released_on_close(make_service):
    """An emitter waiting on a full queue fails once the queue closes."""
    inbound: asyncio.Queue[Event] = asyncio.Queue(maxsize=1)
    handle = ServiceHandle(make_service(1), inbound)
    await handle.emit("Fill")

    pending = asyncio.create_task(handle.emit("Blocked"))
    await asyncio.sleep(0.01)
    inbound.shutdown()

    with pytest.raises(DaemonStoppedError):
        await pending


def test_unregister_is_idempotent(make_service):
    """Unregistering twice leaves the handle unregistered."""
    handle = ServiceHandle(make_service(1), asyncio.Queue())

    handle.unregister()
    handle.unregister()

    assert handle.is_registered is False
    assert "registered=False" in repr(handle)
