# scheduler/core/updates/stream.py

from __future__ import annotations

import logging
from typing import AsyncIterator, Awaitable, Callable

from scheduler.core.auth.schemas import Caller
from scheduler.core.errors import UnauthorizedError

from .bus import BaseUpdateBus, Payload

log = logging.getLogger(__name__)


async def stream_appointment_updates(
    caller: Caller,
    email: str,
    bus: BaseUpdateBus,
    load_snapshot: Callable[[str], Awaitable[Payload]],
) -> AsyncIterator[Payload]:
    """
    Текущий список встреч пользователя, затем каждое обновление.

    Подписка регистрируется до чтения снимка, поэтому публикация, случившаяся
    между снимком и первым ожиданием, не теряется.

    Raises:
        UnauthorizedError: ``email`` не совпадает с email вызывающего.
    """
    normalized = (email or "").strip().lower()
    if normalized != caller.email.strip().lower():
        log.warning("User %s tried to subscribe to updates of %s", caller.id, normalized)
        raise UnauthorizedError("You can only subscribe to your own appointments")

    async with bus.subscribe(normalized) as updates:
        yield await load_snapshot(normalized)
        async for payload in updates:
            yield payload
