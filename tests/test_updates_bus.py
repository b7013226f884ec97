# tests/test_updates_bus.py
import asyncio

import pytest

from scheduler.core.auth.schemas import Caller
from scheduler.core.errors import UnauthorizedError
from scheduler.core.updates import (
    InMemoryUpdateBus,
    RedisUpdateBus,
    channel_name,
    get_update_bus,
    stream_appointment_updates,
)


def test_channel_name_is_per_email():
    assert channel_name(" Alice@Example.com ") == "APPOINTMENTS_UPDATED_alice@example.com"


def test_registry_selects_backend():
    assert isinstance(get_update_bus("memory"), InMemoryUpdateBus)
    assert isinstance(get_update_bus("redis"), RedisUpdateBus)
    with pytest.raises(ValueError):
        get_update_bus("carrier-pigeon")


@pytest.mark.asyncio
async def test_publish_reaches_only_that_email():
    bus = InMemoryUpdateBus(queue_size=4)
    async with bus.subscribe("alice@example.com") as alice, bus.subscribe("bob@example.com") as bob:
        await bus.publish("alice@example.com", [{"id": "1"}])
        assert await asyncio.wait_for(alice.__anext__(), timeout=1) == [{"id": "1"}]
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(bob.__anext__(), timeout=0.05)


@pytest.mark.asyncio
async def test_publish_without_subscribers_is_dropped():
    bus = InMemoryUpdateBus(queue_size=4)
    await bus.publish("alice@example.com", [{"id": "1"}])
    async with bus.subscribe("alice@example.com") as updates:
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(updates.__anext__(), timeout=0.05)


@pytest.mark.asyncio
async def test_slow_subscriber_keeps_latest_updates():
    bus = InMemoryUpdateBus(queue_size=2)
    async with bus.subscribe("alice@example.com") as updates:
        for n in range(5):
            await bus.publish("alice@example.com", [{"n": n}])
        received = [await updates.__anext__(), await updates.__anext__()]
    assert received == [[{"n": 3}], [{"n": 4}]]


@pytest.mark.asyncio
async def test_unsubscribe_on_exit():
    bus = InMemoryUpdateBus(queue_size=2)
    async with bus.subscribe("alice@example.com"):
        assert bus.subscriber_count("alice@example.com") == 1
    assert bus.subscriber_count("alice@example.com") == 0


@pytest.mark.asyncio
async def test_close_ends_streams():
    bus = InMemoryUpdateBus(queue_size=2)
    async with bus.subscribe("alice@example.com") as updates:
        await bus.close()
        with pytest.raises(StopAsyncIteration):
            await asyncio.wait_for(updates.__anext__(), timeout=1)


@pytest.mark.asyncio
async def test_stream_yields_snapshot_then_live_updates():
    bus = InMemoryUpdateBus(queue_size=4)
    caller = Caller(id="u1", email="alice@example.com")

    async def load_snapshot(email):
        # Публикация во время чтения снимка не должна потеряться
        await bus.publish(email, [{"id": "live"}])
        return [{"id": "snapshot"}]

    stream = stream_appointment_updates(caller, "Alice@example.com", bus, load_snapshot)
    assert await stream.__anext__() == [{"id": "snapshot"}]
    assert await asyncio.wait_for(stream.__anext__(), timeout=1) == [{"id": "live"}]
    await stream.aclose()
    assert bus.subscriber_count("alice@example.com") == 0


@pytest.mark.asyncio
async def test_stream_for_someone_else_is_forbidden():
    bus = InMemoryUpdateBus(queue_size=4)
    caller = Caller(id="u1", email="alice@example.com")

    async def load_snapshot(email):
        return []

    stream = stream_appointment_updates(caller, "bob@example.com", bus, load_snapshot)
    with pytest.raises(UnauthorizedError):
        await stream.__anext__()
    assert bus.subscriber_count("bob@example.com") == 0
