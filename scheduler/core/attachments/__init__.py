"""
Attachment stores.

Провайдер выбирается через ``settings.ATTACHMENT_PROVIDER`` (``local`` | ``gcs``);
google-cloud-storage импортируется только при выборе ``gcs``.
"""
from __future__ import annotations

import importlib
from typing import Dict, Tuple, Type

from scheduler.config import settings
from .base import (
    ALLOWED_EXTENSIONS,
    BaseAttachmentStore,
    UploadResult,
    check_extension,
    read_preview,
)

_STORE_CLASSES: Dict[str, Tuple[str, str]] = {
    "local": (".local", "LocalAttachmentStore"),
    "gcs": (".gcs", "GCSAttachmentStore"),
}


def _lazy_import(module_suffix: str, class_name: str) -> Type[BaseAttachmentStore]:
    module = importlib.import_module(module_suffix, package=__name__)
    return getattr(module, class_name)


def get_attachment_store(name: str | None = None) -> BaseAttachmentStore:
    key = (name or settings.ATTACHMENT_PROVIDER).lower()
    try:
        module_suffix, class_name = _STORE_CLASSES[key]
    except KeyError as exc:
        raise ValueError(f"Unknown attachment store: {key}") from exc
    return _lazy_import(module_suffix, class_name)()


__all__: list[str] = [
    "ALLOWED_EXTENSIONS",
    "BaseAttachmentStore",
    "UploadResult",
    "check_extension",
    "get_attachment_store",
    "read_preview",
]
