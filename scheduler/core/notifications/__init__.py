"""
Notification subsystem package.

• ``BaseNotifier`` – абстрактный интерфейс (см. base.py).
• ``get_notifier()`` – фабрика по имени или из ``settings.NOTIFIER_PROVIDER``.
• ``dispatch_notification()`` – запуск уведомления отдельной asyncio-задачей
  после коммита мутации; ошибки только логируются.
"""
from __future__ import annotations

import asyncio
import importlib
import logging
from typing import Dict, Optional, Sequence, Set, Tuple, Type

from scheduler.config import settings
from .base import BaseNotifier

log = logging.getLogger(__name__)

# --------------------------------------------------------------------------- #
#                       registry: name → (module, class)                      #
# --------------------------------------------------------------------------- #
_NOTIFIER_CLASSES: Dict[str, Tuple[str, str]] = {
    "celery": (".email", "CeleryEmailNotifier"),
    "log": (".logging_notifier", "LoggingNotifier"),
}


def _lazy_import(module_suffix: str, class_name: str) -> Type[BaseNotifier]:
    module = importlib.import_module(module_suffix, package=__name__)
    return getattr(module, class_name)


def get_notifier(name: str | None = None) -> BaseNotifier:
    """
    Вернуть экземпляр нотификатора.

    ``name`` – явное имя (case-insensitive); иначе ``settings.NOTIFIER_PROVIDER``.
    """
    key = (name or settings.NOTIFIER_PROVIDER).lower()
    try:
        module_suffix, class_name = _NOTIFIER_CLASSES[key]
    except KeyError as exc:
        raise ValueError(f"Unknown notifier: {key}") from exc
    return _lazy_import(module_suffix, class_name)()


# --------------------------------------------------------------------------- #
#                          fire-and-forget dispatch                           #
# --------------------------------------------------------------------------- #
_pending: Set[asyncio.Task] = set()


async def _deliver(notifier: BaseNotifier, recipients: Sequence[str], subject: str, body: str) -> None:
    try:
        await notifier.notify(recipients, subject, body)
    except Exception:
        log.exception("Notification '%s' to %s failed", subject, ", ".join(recipients))


def dispatch_notification(
    notifier: BaseNotifier,
    recipients: Sequence[str],
    subject: str,
    body: str,
) -> Optional[asyncio.Task]:
    """
    Schedules ``notifier.notify`` as an independent task and returns at once.
    The caller's outcome never depends on the notification.
    """
    recipients = list(recipients)
    if not recipients:
        log.error("Invalid recipients list for '%s': %r", subject, recipients)
        return None
    task = asyncio.create_task(_deliver(notifier, recipients, subject, body))
    _pending.add(task)
    task.add_done_callback(_pending.discard)
    return task


async def drain_notifications(timeout: float | None = None) -> None:
    """Waits for notifications still in flight (shutdown, tests)."""
    loop = asyncio.get_running_loop()
    # Задачи чужих (уже закрытых) циклов ждать нельзя
    tasks = {task for task in _pending if task.get_loop() is loop and not task.done()}
    if tasks:
        log.debug("Waiting for %d pending notifications", len(tasks))
        await asyncio.wait(tasks, timeout=timeout)


__all__: list[str] = [
    "BaseNotifier",
    "get_notifier",
    "dispatch_notification",
    "drain_notifications",
]
