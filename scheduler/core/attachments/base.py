# scheduler/core/attachments/base.py
"""
Attachment store interface and helpers shared by every backend.
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from typing import FrozenSet, Optional

from pydantic import BaseModel

from scheduler.core.errors import UnsupportedFileTypeError

log = logging.getLogger(__name__)

ALLOWED_EXTENSIONS: FrozenSet[str] = frozenset({".pdf", ".doc", ".docx", ".txt"})
PREVIEW_LIMIT = 1024


class UploadResult(BaseModel):
    url: str


class BaseAttachmentStore(ABC):
    """Хранилище вложений встреч."""

    name: str

    @abstractmethod
    async def upload(self, local_path: str, folder: str, filename: str) -> UploadResult:
        """
        Загружает локальный файл и возвращает его публичный URL.

        Args:
            local_path (str): Путь к временному файлу на диске.
            folder (str): Логическая папка (например, ``appointments``).
            filename (str): Имя файла в хранилище.

        Raises:
            UploadFailedError: Хранилище отказало в загрузке.
        """
        ...


def check_extension(filename: str) -> str:
    """Returns the lower-cased extension or raises ``UnsupportedFileTypeError``."""
    ext = os.path.splitext(filename or "")[1].lower()
    if ext not in ALLOWED_EXTENSIONS:
        raise UnsupportedFileTypeError(
            "Invalid file type",
            {"file": f"Allowed extensions: {', '.join(sorted(ALLOWED_EXTENSIONS))}"},
        )
    return ext


def read_preview(path: str, limit: int = PREVIEW_LIMIT) -> Optional[str]:
    # Превью необязательно: бинарные и нечитаемые файлы просто пропускаем
    try:
        with open(path, "r", encoding="utf-8") as fh:
            return fh.read(limit)
    except (OSError, UnicodeDecodeError) as exc:
        log.info("No text preview for %s: %s", path, exc)
        return None


__all__ = [
    "ALLOWED_EXTENSIONS",
    "BaseAttachmentStore",
    "UploadResult",
    "check_extension",
    "read_preview",
]
