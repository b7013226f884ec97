# scheduler/api/deps.py

"""
Shared FastAPI dependencies: collaborators of the services and the services
themselves. Tests swap any of them through ``app.dependency_overrides``.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.requests import HTTPConnection
from sqlalchemy.ext.asyncio import AsyncSession

from scheduler.core.appointments.service import AppointmentsService
from scheduler.core.attachments import BaseAttachmentStore, get_attachment_store
from scheduler.core.notifications import BaseNotifier, get_notifier
from scheduler.core.updates.bus import BaseUpdateBus
from scheduler.core.users.service import UsersService
from scheduler.db.base import get_async_db_session

log = logging.getLogger(__name__)


def provide_update_bus(conn: HTTPConnection) -> BaseUpdateBus:
    """Шина создаётся на старте приложения и живёт в ``app.state``."""
    return conn.app.state.update_bus


def provide_notifier() -> BaseNotifier:
    return get_notifier()


def provide_attachment_store() -> Optional[BaseAttachmentStore]:
    try:
        return get_attachment_store()
    except ValueError as exc:
        # Без хранилища загрузки отклоняются с UploadFailedError
        log.error("Attachment store unavailable: %s", exc)
        return None


def get_appointments_service(
    db: AsyncSession = Depends(get_async_db_session),
    notifier: BaseNotifier = Depends(provide_notifier),
    bus: BaseUpdateBus = Depends(provide_update_bus),
    attachment_store: Optional[BaseAttachmentStore] = Depends(provide_attachment_store),
) -> AppointmentsService:
    return AppointmentsService(db, notifier, bus, attachment_store=attachment_store)


def get_users_service(db: AsyncSession = Depends(get_async_db_session)) -> UsersService:
    return UsersService(db)


def internal_error(exc: Exception) -> HTTPException:
    """500 without internal details; the caller logs the traceback."""
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"An internal error occurred: {type(exc).__name__}",
    )
