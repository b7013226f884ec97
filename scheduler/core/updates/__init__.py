"""
Live appointment updates: the bus and the per-user subscription stream.
"""
from .bus import BaseUpdateBus, InMemoryUpdateBus, RedisUpdateBus, channel_name, get_update_bus
from .stream import stream_appointment_updates

__all__ = [
    "BaseUpdateBus",
    "InMemoryUpdateBus",
    "RedisUpdateBus",
    "channel_name",
    "get_update_bus",
    "stream_appointment_updates",
]
