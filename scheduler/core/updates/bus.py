# scheduler/core/updates/bus.py

"""
Fan-out of appointment list updates to live subscribers.

Доставка at-most-once: подписчик получает только то, что было опубликовано
после регистрации подписки, без повторов и без истории.
"""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Set

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from scheduler.config import settings

log = logging.getLogger(__name__)

Payload = List[Dict[str, Any]]

CHANNEL_PREFIX = "APPOINTMENTS_UPDATED_"


def channel_name(email: str) -> str:
    return f"{CHANNEL_PREFIX}{email.strip().lower()}"


class BaseUpdateBus(ABC):
    """Interface for the per-user update channel."""

    name: str

    @abstractmethod
    async def publish(self, email: str, appointments: Payload) -> None:
        """Sends the full appointment list to every subscriber of ``email``."""
        ...

    @abstractmethod
    def subscribe(self, email: str):
        """
        Async context manager: subscription is registered on enter and
        removed on exit; yields an async iterator of payloads.
        """
        ...

    async def close(self) -> None:
        return None


# --------------------------------------------------------------------------- #
#                               in-memory bus                                 #
# --------------------------------------------------------------------------- #
_CLOSED = object()


class InMemoryUpdateBus(BaseUpdateBus):
    """
    Одна ограниченная очередь на подписчика. Если медленный подписчик не
    успевает, из очереди выбрасывается самый старый payload.
    """

    name = "memory"

    def __init__(self, queue_size: int | None = None):
        self.queue_size = queue_size or settings.UPDATE_QUEUE_SIZE
        self._subscribers: Dict[str, Set[asyncio.Queue]] = {}
        self._closed = False

    def subscriber_count(self, email: str) -> int:
        return len(self._subscribers.get(email.strip().lower(), ()))

    async def publish(self, email: str, appointments: Payload) -> None:
        key = email.strip().lower()
        if self._closed:
            return
        for queue in list(self._subscribers.get(key, ())):
            if queue.qsize() >= self.queue_size:
                try:
                    queue.get_nowait()
                    log.warning("Subscriber queue for %s is full, dropped the oldest update", key)
                except asyncio.QueueEmpty:
                    pass
            queue.put_nowait(appointments)

    @staticmethod
    async def _iterate(queue: asyncio.Queue) -> AsyncIterator[Payload]:
        while True:
            item = await queue.get()
            if item is _CLOSED:
                return
            yield item

    @asynccontextmanager
    async def subscribe(self, email: str) -> AsyncIterator[AsyncIterator[Payload]]:
        key = email.strip().lower()
        # +1 место под маркер закрытия
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size + 1)
        self._subscribers.setdefault(key, set()).add(queue)
        if self._closed:
            queue.put_nowait(_CLOSED)
        log.debug("Subscribed to updates for %s", key)
        try:
            yield self._iterate(queue)
        finally:
            subscribers = self._subscribers.get(key)
            if subscribers is not None:
                subscribers.discard(queue)
                if not subscribers:
                    del self._subscribers[key]
            log.debug("Unsubscribed from updates for %s", key)

    async def close(self) -> None:
        self._closed = True
        for queues in self._subscribers.values():
            for queue in queues:
                if queue.full():
                    queue.get_nowait()
                queue.put_nowait(_CLOSED)
        log.info("In-memory update bus closed")


# --------------------------------------------------------------------------- #
#                              redis pub/sub bus                              #
# --------------------------------------------------------------------------- #
class RedisUpdateBus(BaseUpdateBus):
    """Pub/sub через Redis, для нескольких инстансов API."""

    name = "redis"

    def __init__(self, url: str | None = None):
        self.url = url or settings.REDIS_URL
        self._client = aioredis.from_url(self.url, decode_responses=True)

    async def publish(self, email: str, appointments: Payload) -> None:
        channel = channel_name(email)
        receivers = await self._client.publish(channel, json.dumps(appointments))
        log.debug("Published update to %s (%s receivers)", channel, receivers)

    @staticmethod
    async def _iterate(pubsub) -> AsyncIterator[Payload]:
        async for message in pubsub.listen():
            if message.get("type") != "message":
                continue
            try:
                yield json.loads(message["data"])
            except (TypeError, ValueError):
                log.error("Skipping malformed update on %s", message.get("channel"))

    @asynccontextmanager
    async def subscribe(self, email: str) -> AsyncIterator[AsyncIterator[Payload]]:
        channel = channel_name(email)
        pubsub = self._client.pubsub()
        await pubsub.subscribe(channel)
        try:
            yield self._iterate(pubsub)
        finally:
            try:
                await pubsub.unsubscribe(channel)
                await pubsub.aclose()
            except RedisError as exc:
                log.warning("Failed to unsubscribe from %s: %s", channel, exc)

    async def close(self) -> None:
        await self._client.aclose()
        log.info("Redis update bus closed")


_BUS_CLASSES = {
    "memory": InMemoryUpdateBus,
    "redis": RedisUpdateBus,
}


def get_update_bus(name: str | None = None) -> BaseUpdateBus:
    key = (name or settings.UPDATE_BUS_PROVIDER).lower()
    try:
        bus_cls = _BUS_CLASSES[key]
    except KeyError as exc:
        raise ValueError(f"Unknown update bus: {key}") from exc
    log.info("Using update bus: %s", key)
    return bus_cls()


__all__ = [
    "BaseUpdateBus",
    "InMemoryUpdateBus",
    "RedisUpdateBus",
    "channel_name",
    "get_update_bus",
]
