# scheduler/core/attachments/gcs.py

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from google.api_core.exceptions import GoogleAPICallError
from google.auth.exceptions import DefaultCredentialsError
from google.cloud import storage

from scheduler.config import settings
from scheduler.core.errors import UploadFailedError

from .base import BaseAttachmentStore, UploadResult

log = logging.getLogger(__name__)


class GCSAttachmentStore(BaseAttachmentStore):
    """
    Google Cloud Storage. Требует ``GCS_BUCKET_NAME`` и
    GOOGLE_APPLICATION_CREDENTIALS в окружении контейнера.
    """

    name = "gcs"

    def __init__(self, bucket_name: str | None = None, client: Optional[storage.Client] = None):
        self.bucket_name = bucket_name or settings.GCS_BUCKET_NAME
        if not self.bucket_name:
            raise ValueError("GCS_BUCKET_NAME is not configured")
        self._client = client

    def _get_client(self) -> storage.Client:
        if self._client is None:
            try:
                self._client = storage.Client()
            except DefaultCredentialsError as exc:
                log.error("GCS auth error: %s. Check GOOGLE_APPLICATION_CREDENTIALS.", exc)
                raise UploadFailedError("Attachment storage is not available") from exc
        return self._client

    def _upload_blocking(self, local_path: str, blob_name: str) -> str:
        bucket = self._get_client().bucket(self.bucket_name)
        blob = bucket.blob(blob_name)
        blob.upload_from_filename(local_path)
        blob.make_public()
        return blob.public_url

    async def upload(self, local_path: str, folder: str, filename: str) -> UploadResult:
        blob_name = f"{folder}/{filename}"
        loop = asyncio.get_running_loop()
        try:
            url = await loop.run_in_executor(None, self._upload_blocking, local_path, blob_name)
        except GoogleAPICallError as exc:
            log.exception("GCS API error while uploading %s", blob_name)
            raise UploadFailedError("Failed to upload attachment", {"file": type(exc).__name__}) from exc
        log.info("Attachment uploaded to GCS: %s", url)
        return UploadResult(url=url)
