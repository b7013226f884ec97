# scheduler/core/users/models.py

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from scheduler.db.base import Base


def _new_id() -> str:
    return uuid.uuid4().hex


class User(Base):
    __tablename__ = 'users'

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id, comment="Internal User ID")
    name: Mapped[str] = mapped_column(String(128), nullable=False, comment="User display name")
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False, comment="Lower-cased login email")
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="UTC", server_default="UTC", comment="IANA zone name")
    # Никогда не отдаётся наружу
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Нет relationship на appointments: удаление пользователя их не трогает

    def __repr__(self) -> str:  # pragma: no cover
        return f"<User id={self.id!r} email={self.email!r} tz={self.timezone!r}>"
