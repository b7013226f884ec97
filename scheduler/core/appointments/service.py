# scheduler/core/appointments/service.py

"""
Appointment lifecycle: create, update, reschedule, cancel and delete.

Порядок каждой мутации фиксирован: проверки → сохранение (коммит) →
уведомление участников → публикация обновлённых списков. Уведомления и
публикация никогда не влияют на результат операции.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from scheduler.core.attachments import BaseAttachmentStore, check_extension, read_preview
from scheduler.core.auth.schemas import Caller
from scheduler.core.errors import (
    AlreadyCanceledError,
    NotFoundError,
    PastDateError,
    UnauthorizedError,
    UploadFailedError,
    ValidationError,
)
from scheduler.core.notifications import BaseNotifier, dispatch_notification
from scheduler.core.updates.bus import BaseUpdateBus
from scheduler.core.users.repository import UserRepository
from scheduler.core.validation import parse_payload

from .repository import AppointmentRepository
from .schemas import (
    AppointmentCreate,
    AppointmentOut,
    AppointmentPatch,
    AppointmentRecord,
    AppointmentStatus,
    Attachment,
    AttachmentUpload,
    RescheduleRequest,
)
from .timezones import local_parts, to_display, to_stored_instant

log = logging.getLogger(__name__)

ATTACHMENTS_FOLDER = "appointments"
DELETED_MESSAGE = "Appointment successfully deleted."


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def with_owner(participants: Iterable[str], owner_email: str) -> Tuple[str, ...]:
    """Owner first if missing; order and de-duplication of the rest are kept."""
    owner = owner_email.strip().lower()
    emails = [str(e).strip().lower() for e in participants]
    if owner not in emails:
        emails.insert(0, owner)
    return tuple(emails)


class AppointmentsService:
    """
    Сервис встреч. Создаётся на каждый запрос.

    Args:
        db_session (AsyncSession): Сессия SQLAlchemy.
        notifier (BaseNotifier): Куда отправлять уведомления участникам.
        bus (BaseUpdateBus): Шина живых обновлений.
        attachment_store (BaseAttachmentStore | None): Хранилище вложений;
            без него загрузка файлов отклоняется.
        clock (Callable[[], datetime] | None): Источник текущего момента (UTC).
    """

    def __init__(
        self,
        db_session: AsyncSession,
        notifier: BaseNotifier,
        bus: BaseUpdateBus,
        attachment_store: Optional[BaseAttachmentStore] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.db = db_session
        self.appointments = AppointmentRepository(db_session)
        self.users = UserRepository(db_session)
        self.notifier = notifier
        self.bus = bus
        self.attachment_store = attachment_store
        self._clock = clock or _utcnow

    # ------------------------------------------------------------------ #
    #                              queries                               #
    # ------------------------------------------------------------------ #
    def present(self, record: AppointmentRecord, tz_name: str | None) -> AppointmentOut:
        date_str, time_str = to_display(record.starts_at, record.time, tz_name)
        return AppointmentOut(
            id=record.id,
            title=record.title,
            description=record.description,
            date=date_str,
            time=time_str,
            participants=list(record.participants),
            status=record.status,
            owner=record.owner_id,
            attachment=record.attachment,
            content_preview=record.content_preview,
        )

    async def list_for_participant(self, email: str) -> List[AppointmentOut]:
        """All appointments ``email`` takes part in, rendered in that user's timezone."""
        tz_name = await self.users.timezone_for(email)
        records = await self.appointments.find(participant=email)
        return [self.present(record, tz_name) for record in records]

    async def get_appointment(self, caller: Caller, appointment_id: str) -> Optional[AppointmentOut]:
        record = await self.appointments.find_by_id(appointment_id)
        if record is None:
            return None
        if caller.email.lower() not in record.participants:
            log.warning("User %s is not a participant of appointment %s", caller.id, appointment_id)
            raise UnauthorizedError("You are not a participant of this appointment")
        return self.present(record, caller.timezone)

    # ------------------------------------------------------------------ #
    #                             mutations                              #
    # ------------------------------------------------------------------ #
    async def create_appointment(
        self,
        caller: Caller,
        title: str,
        description: Optional[str],
        date: str,
        time: str,
        participants: Sequence[str],
        upload: Optional[AttachmentUpload] = None,
    ) -> AppointmentOut:
        """
        Создаёт встречу от имени ``caller``.

        Raises:
            ValidationError: Невалидные поля или пустой список участников.
            PastDateError: Момент начала не в будущем.
            UnsupportedFileTypeError: Расширение файла не из списка разрешённых.
            UploadFailedError: Хранилище вложений отказало.
        """
        data = parse_payload(
            AppointmentCreate,
            {
                "title": title,
                "description": description,
                "date": date,
                "time": time,
                "participants": list(participants or []),
            },
        )
        emails = with_owner(data.participants, caller.email)
        starts_at = to_stored_instant(data.date, data.time, caller.timezone)
        self._ensure_future(starts_at)

        appointment_id = uuid.uuid4().hex
        attachment, preview = await self._store_upload(upload, appointment_id)

        record = AppointmentRecord(
            id=appointment_id,
            title=data.title,
            description=data.description,
            starts_at=starts_at,
            time=data.time,
            participants=emails,
            owner_id=caller.id,
            status=AppointmentStatus.SCHEDULED,
            attachment=attachment,
            content_preview=preview,
        )
        record = await self.appointments.save(record)
        log.info("Appointment %s created by %s for %d participants", record.id, caller.id, len(emails))

        dispatch_notification(
            self.notifier,
            record.participants,
            "New Appointment Created",
            f'Your appointment "{record.title}" is on {data.date} at {data.time}.',
        )
        await self._fan_out(record.participants)
        return self.present(record, caller.timezone)

    async def update_appointment(self, caller: Caller, appointment_id: str, /, **patch: Any) -> AppointmentOut:
        """
        Частичное обновление. Только поля из ``AppointmentPatch``; частичные
        дата или время дополняются текущими значениями в поясе владельца.
        """
        current = await self._get_owned(caller, appointment_id)
        data = parse_payload(AppointmentPatch, patch)
        changes = {
            key: value
            for key, value in data.model_dump(exclude_unset=True).items()
            if value is not None or key == "description"
        }
        if not changes:
            raise ValidationError("No fields to update", {"patch": "At least one field must be provided"})

        self._ensure_not_canceled(current)

        update: dict[str, Any] = {"status": AppointmentStatus.UPDATED}
        if "title" in changes:
            update["title"] = changes["title"]
        if "description" in changes:
            update["description"] = changes["description"]
        if "date" in changes or "time" in changes:
            update["starts_at"], update["time"] = self._merge_schedule(
                current, changes.get("date"), changes.get("time"), caller.timezone
            )
        if "participants" in changes:
            update["participants"] = with_owner(changes["participants"], caller.email)

        record = await self.appointments.save(current.model_copy(update=update))
        log.info("Appointment %s updated (%s)", record.id, ", ".join(sorted(changes)))

        dispatch_notification(
            self.notifier,
            record.participants,
            "Appointment Updated",
            f'Your appointment "{record.title}" has been updated.',
        )
        removed = [email for email in current.participants if email not in record.participants]
        await self._fan_out(list(record.participants) + removed)
        return self.present(record, caller.timezone)

    async def reschedule_appointment(self, caller: Caller, appointment_id: str, date: str, time: str) -> AppointmentOut:
        current = await self._get_owned(caller, appointment_id)
        data = parse_payload(RescheduleRequest, {"date": date, "time": time})
        self._ensure_not_canceled(current)

        starts_at = to_stored_instant(data.date, data.time, caller.timezone)
        self._ensure_future(starts_at)
        record = await self.appointments.save(
            current.model_copy(
                update={"starts_at": starts_at, "time": data.time, "status": AppointmentStatus.RESCHEDULED}
            )
        )
        log.info("Appointment %s rescheduled to %s", record.id, starts_at.isoformat())

        dispatch_notification(
            self.notifier,
            record.participants,
            "Appointment Rescheduled",
            f'Your appointment "{record.title}" has been rescheduled.',
        )
        await self._fan_out(record.participants)
        return self.present(record, caller.timezone)

    async def cancel_appointment(self, caller: Caller, appointment_id: str) -> AppointmentOut:
        current = await self._get_owned(caller, appointment_id)
        self._ensure_not_canceled(current)

        record = await self.appointments.save(current.model_copy(update={"status": AppointmentStatus.CANCELED}))
        log.info("Appointment %s canceled by %s", record.id, caller.id)

        dispatch_notification(
            self.notifier,
            record.participants,
            "Appointment Canceled",
            f'Your appointment "{record.title}" has been canceled.',
        )
        await self._fan_out(record.participants)
        return self.present(record, caller.timezone)

    async def delete_appointment(self, caller: Caller, appointment_id: str) -> str:
        current = await self._get_owned(caller, appointment_id)
        # Список участников фиксируем до удаления
        former_participants = current.participants
        title = current.title

        await self.appointments.delete(appointment_id)
        log.info("Appointment %s deleted by %s", appointment_id, caller.id)

        dispatch_notification(
            self.notifier,
            former_participants,
            "Appointment Deleted",
            f'Your appointment "{title}" has been deleted.',
        )
        await self._fan_out(former_participants)
        return DELETED_MESSAGE

    # ------------------------------------------------------------------ #
    #                              helpers                               #
    # ------------------------------------------------------------------ #
    async def _get_owned(self, caller: Caller, appointment_id: str) -> AppointmentRecord:
        record = await self.appointments.find_by_id(appointment_id)
        if record is None:
            raise NotFoundError("Appointment", appointment_id)
        if record.owner_id != caller.id:
            log.warning("User %s is not the owner of appointment %s", caller.id, appointment_id)
            raise UnauthorizedError("Only the owner can modify this appointment")
        return record

    @staticmethod
    def _ensure_not_canceled(record: AppointmentRecord) -> None:
        if record.status == AppointmentStatus.CANCELED:
            raise AlreadyCanceledError("Appointment is already canceled", {"id": record.id})

    def _ensure_future(self, starts_at: datetime) -> None:
        now = self._clock()
        if starts_at <= now:
            log.info("Rejected past start %s (now %s)", starts_at.isoformat(), now.isoformat())
            raise PastDateError("Cannot schedule an appointment in the past", {"date": starts_at.isoformat()})

    def _merge_schedule(
        self,
        current: AppointmentRecord,
        new_date: Optional[str],
        new_time: Optional[str],
        tz_name: str,
    ) -> Tuple[datetime, str]:
        if current.starts_at is not None:
            current_date, current_time = local_parts(current.starts_at, tz_name)
        else:
            current_date, current_time = None, current.time
        local_date = new_date or current_date
        local_time = new_time or current_time
        if local_date is None:
            raise ValidationError("Date is required", {"date": "Stored appointment has no date to keep"})
        starts_at = to_stored_instant(local_date, local_time, tz_name)
        self._ensure_future(starts_at)
        return starts_at, local_time

    async def _store_upload(
        self,
        upload: Optional[AttachmentUpload],
        appointment_id: str,
    ) -> Tuple[Optional[Attachment], Optional[str]]:
        if upload is None:
            return None, None
        ext = check_extension(upload.filename)
        if self.attachment_store is None:
            raise UploadFailedError("Attachment storage is not configured")

        stored_name = f"{appointment_id}{ext}"
        result = await self.attachment_store.upload(upload.local_path, ATTACHMENTS_FOLDER, stored_name)
        preview = read_preview(upload.local_path)
        return Attachment(url=result.url, filename=upload.filename), preview

    async def _fan_out(self, emails: Iterable[str]) -> None:
        """Publishes every affected participant's fresh list, once per email."""
        for email in dict.fromkeys(emails):
            try:
                payload = [item.model_dump(mode="json") for item in await self.list_for_participant(email)]
                await self.bus.publish(email, payload)
            except Exception:
                # Мутация уже сохранена; подписчик получит следующий снимок
                log.exception("Failed to publish appointment update for %s", email)


__all__ = ["AppointmentsService", "DELETED_MESSAGE", "with_owner"]
