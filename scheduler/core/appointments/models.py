# scheduler/core/appointments/models.py

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from scheduler.db.base import Base


class Appointment(Base):
    """
    ORM модель встречи.

    ``starts_at`` is the absolute instant (UTC) derived from the owner's
    local date, time and timezone; ``time`` keeps the owner's ``HH:mm`` as
    entered.
    """
    __tablename__ = 'appointments'

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    starts_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    time: Mapped[str] = mapped_column(String(5), nullable=False)
    # Без ondelete=CASCADE: удаление пользователя не удаляет его встречи
    owner_id: Mapped[str] = mapped_column(String(64), ForeignKey('users.id'), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="Scheduled")
    attachment_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    attachment_filename: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    content_preview: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    participants: Mapped[List["AppointmentParticipant"]] = relationship(
        back_populates="appointment",
        cascade="all, delete-orphan",
        order_by="AppointmentParticipant.position",
        lazy="selectin",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Appointment id={self.id!r} owner={self.owner_id!r} status={self.status!r}>"


class AppointmentParticipant(Base):
    __tablename__ = 'appointment_participants'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    appointment_id: Mapped[str] = mapped_column(
        String(64), ForeignKey('appointments.id', ondelete='CASCADE'), nullable=False, index=True
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    appointment: Mapped["Appointment"] = relationship(back_populates="participants")

    __table_args__ = (
        Index('ix_appointment_participants_email', 'email'),
    )
