# scheduler/core/appointments/schemas.py
"""
Pydantic-схемы встреч.

Используются в:
    * core.appointments.service     ― входные контракты и неизменяемая запись
    * api/v1/appointments.py        ― тела запросов и ответы
    * core.updates                  ― полезная нагрузка публикаций
"""

from __future__ import annotations

from datetime import date as _date, datetime
from enum import Enum
from typing import Annotated, List, Optional, Tuple

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field, field_validator

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"
TIME_PATTERN = r"^([01]\d|2[0-3]):([0-5]\d)$"


class AppointmentStatus(str, Enum):
    SCHEDULED = "Scheduled"
    RESCHEDULED = "Rescheduled"
    UPDATED = "Updated"
    CANCELED = "Canceled"


class Attachment(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    filename: str


def normalize_participants(emails: List[str]) -> List[str]:
    """Lower-cases and de-duplicates, keeping first-seen order."""
    seen: List[str] = []
    for email in emails:
        value = str(email).strip().lower()
        if value not in seen:
            seen.append(value)
    return seen


def _check_calendar_date(value: str) -> str:
    _date.fromisoformat(value)  # ValueError -> pydantic field error
    return value


LocalDate = Annotated[str, Field(pattern=DATE_PATTERN), AfterValidator(_check_calendar_date)]
LocalTime = Annotated[str, Field(pattern=TIME_PATTERN)]


class AppointmentCreate(BaseModel):
    """Входной контракт создания встречи."""

    title: str = Field(..., min_length=3, max_length=255, description="Title must be at least 3 characters long")
    description: Optional[str] = None
    date: LocalDate = Field(..., description="Owner-local date, YYYY-MM-DD")
    time: LocalTime = Field(..., description="Owner-local time, HH:mm (24h)")
    participants: List[EmailStr] = Field(..., min_length=1, description="At least one participant required")

    @field_validator("participants")
    @classmethod
    def _normalize(cls, value: List[str]) -> List[str]:
        return normalize_participants(value)


class AppointmentPatch(BaseModel):
    """
    Whitelist of client-updatable fields. ``status``, ``owner`` and ``id``
    are not part of it.
    """

    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(None, min_length=3, max_length=255)
    description: Optional[str] = None
    date: Optional[LocalDate] = None
    time: Optional[LocalTime] = None
    participants: Optional[List[EmailStr]] = Field(None, min_length=1)

    @field_validator("participants")
    @classmethod
    def _normalize(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        return normalize_participants(value) if value is not None else None


class RescheduleRequest(BaseModel):
    date: LocalDate
    time: LocalTime


class AttachmentUpload(BaseModel):
    """A file already spooled to local disk by the transport layer."""

    local_path: str
    filename: str


class AppointmentRecord(BaseModel):
    """Immutable in-process view of a stored appointment."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str
    title: str
    description: Optional[str] = None
    starts_at: Optional[datetime] = None
    time: str
    participants: Tuple[str, ...]
    owner_id: str
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    attachment: Optional[Attachment] = None
    content_preview: Optional[str] = None


class AppointmentOut(BaseModel):
    """Встреча в часовом поясе конкретного зрителя."""

    id: str
    title: str
    description: Optional[str] = None
    date: str = Field(..., description="YYYY-MM-DD in the viewer's timezone, or 'Invalid date'")
    time: str = Field(..., description="hh:mm AM/PM in the viewer's timezone, or 'Invalid time'")
    participants: List[str]
    status: AppointmentStatus
    owner: str
    attachment: Optional[Attachment] = None
    content_preview: Optional[str] = None


__all__: list[str] = [
    "AppointmentStatus",
    "Attachment",
    "AppointmentCreate",
    "AppointmentPatch",
    "RescheduleRequest",
    "AttachmentUpload",
    "AppointmentRecord",
    "AppointmentOut",
    "normalize_participants",
]
