# scheduler/core/notifications/logging_notifier.py

from __future__ import annotations

import logging
from typing import Sequence

from .base import BaseNotifier

log = logging.getLogger(__name__)


class LoggingNotifier(BaseNotifier):
    """Notifier для dev-окружения: только пишет в лог."""

    name = "log"

    async def notify(self, recipients: Sequence[str], subject: str, body: str) -> None:
        log.info("[notify] to=%s subject=%r body=%r", ", ".join(recipients), subject, body)
