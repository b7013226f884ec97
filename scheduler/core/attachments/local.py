# scheduler/core/attachments/local.py

from __future__ import annotations

import asyncio
import logging
import os
import shutil

from scheduler.config import settings
from scheduler.core.errors import UploadFailedError

from .base import BaseAttachmentStore, UploadResult

log = logging.getLogger(__name__)


class LocalAttachmentStore(BaseAttachmentStore):
    """Кладёт файлы в ``ATTACHMENTS_DIR``; для dev и тестов."""

    name = "local"

    def __init__(self, root_dir: str | None = None, base_url: str | None = None):
        self.root_dir = root_dir or settings.ATTACHMENTS_DIR
        self.base_url = (base_url or settings.ATTACHMENTS_BASE_URL).rstrip("/")

    def _copy(self, local_path: str, target: str) -> None:
        os.makedirs(os.path.dirname(target), exist_ok=True)
        shutil.copyfile(local_path, target)

    async def upload(self, local_path: str, folder: str, filename: str) -> UploadResult:
        target = os.path.join(self.root_dir, folder, filename)
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._copy, local_path, target)
        except OSError as exc:
            log.exception("Local upload of %s failed", filename)
            raise UploadFailedError("Failed to store attachment", {"file": str(exc)}) from exc
        url = f"{self.base_url}/{folder}/{filename}"
        log.info("Stored attachment %s at %s", filename, target)
        return UploadResult(url=url)
