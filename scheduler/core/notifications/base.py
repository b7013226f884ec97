# scheduler/core/notifications/base.py
"""
Abstract notifier interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence


class BaseNotifier(ABC):
    """Best-effort delivery of a short message to a set of email addresses."""

    name: str

    @abstractmethod
    async def notify(self, recipients: Sequence[str], subject: str, body: str) -> None:
        """
        Асинхронно отправляет (или ставит в очередь) уведомление.

        Args:
            recipients (Sequence[str]): Адреса получателей.
            subject (str): Тема письма.
            body (str): Текст сообщения.

        Raises:
            Exception: Любая ошибка доставки; вызывающий код её логирует.
        """
        ...


__all__ = ["BaseNotifier"]
