# scheduler/core/appointments/repository.py

"""
Appointment store adapter.

Maps ``Appointment`` rows to immutable ``AppointmentRecord`` values and back.
``save`` and ``delete`` commit before returning: callers rely on the state
being durable before they notify anyone about it.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Appointment, AppointmentParticipant
from .schemas import AppointmentRecord, AppointmentStatus, Attachment

log = logging.getLogger(__name__)


def _to_record(row: Appointment) -> AppointmentRecord:
    attachment = None
    if row.attachment_url:
        attachment = Attachment(url=row.attachment_url, filename=row.attachment_filename or "")
    return AppointmentRecord(
        id=row.id,
        title=row.title,
        description=row.description,
        starts_at=row.starts_at,
        time=row.time,
        participants=tuple(p.email for p in row.participants),
        owner_id=row.owner_id,
        status=AppointmentStatus(row.status),
        attachment=attachment,
        content_preview=row.content_preview,
    )


class AppointmentRepository:
    """Асинхронный репозиторий встреч поверх AsyncSession."""

    def __init__(self, db_session: AsyncSession) -> None:
        self.db: AsyncSession = db_session

    async def find(self, participant: str | None = None) -> List[AppointmentRecord]:
        """
        All appointments, or only those whose participants contain
        ``participant``. Ordered by start instant.
        """
        stmt = select(Appointment).order_by(Appointment.starts_at, Appointment.id)
        if participant is not None:
            stmt = stmt.join(Appointment.participants).where(
                AppointmentParticipant.email == participant.strip().lower()
            )
        rows = (await self.db.scalars(stmt)).all()
        log.debug("Found %d appointments (participant=%s)", len(rows), participant)
        return [_to_record(row) for row in rows]

    async def find_by_id(self, appointment_id: str) -> Optional[AppointmentRecord]:
        row = await self.db.get(Appointment, appointment_id)
        return _to_record(row) if row is not None else None

    async def find_one(self, **filters: object) -> Optional[AppointmentRecord]:
        stmt = select(Appointment).filter_by(**filters).limit(1)
        row = (await self.db.scalars(stmt)).first()
        return _to_record(row) if row is not None else None

    async def save(self, record: AppointmentRecord) -> AppointmentRecord:
        """Inserts or fully replaces the stored row with ``record``."""
        row = await self.db.get(Appointment, record.id)
        if row is None:
            log.debug("Inserting appointment id=%s", record.id)
            row = Appointment(id=record.id)
            self.db.add(row)
        row.title = record.title
        row.description = record.description
        row.starts_at = record.starts_at
        row.time = record.time
        row.owner_id = record.owner_id
        row.status = record.status.value
        row.attachment_url = record.attachment.url if record.attachment else None
        row.attachment_filename = record.attachment.filename if record.attachment else None
        row.content_preview = record.content_preview
        row.participants = [
            AppointmentParticipant(email=email, position=position)
            for position, email in enumerate(record.participants)
        ]
        await self._commit("save", record.id)
        log.info("Saved appointment id=%s status=%s", record.id, record.status.value)
        return record

    async def delete(self, appointment_id: str) -> bool:
        row = await self.db.get(Appointment, appointment_id)
        if row is None:
            log.warning("Appointment id=%s not found for deletion.", appointment_id)
            return False
        await self.db.delete(row)
        await self._commit("delete", appointment_id)
        log.info("Deleted appointment id=%s", appointment_id)
        return True

    async def _commit(self, action: str, appointment_id: str) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError:
            log.exception("Store failure during %s of appointment id=%s, rolling back", action, appointment_id)
            await self.db.rollback()
            raise


__all__: list[str] = ["AppointmentRepository"]
