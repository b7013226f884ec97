# scheduler/core/users/repository.py

"""User directory: lookups by id and by email, plus each user's timezone."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from scheduler.core.appointments.timezones import DEFAULT_TIMEZONE
from .models import User

log = logging.getLogger(__name__)


class UserRepository:
    """Data access layer for user records."""

    def __init__(self, db_session: AsyncSession):
        self.db: AsyncSession = db_session

    async def find_by_id(self, user_id: str) -> Optional[User]:
        log.debug("Getting user by id=%s", user_id)
        return await self.db.get(User, user_id)

    async def find_one(self, **filters: str) -> Optional[User]:
        stmt = select(User).filter_by(**filters).limit(1)
        result = await self.db.scalars(stmt)
        return result.first()

    async def find_by_email(self, email: str) -> Optional[User]:
        return await self.find_one(email=email.strip().lower())

    async def timezone_for(self, email: str) -> str:
        """Timezone of the account behind ``email``; UTC if there is none."""
        user = await self.find_by_email(email)
        return user.timezone if user and user.timezone else DEFAULT_TIMEZONE

    async def add(self, user: User) -> User:
        self.db.add(user)
        return await self._commit(user)

    async def save(self, user: User) -> User:
        self.db.add(user)
        return await self._commit(user)

    async def _commit(self, user: User) -> User:
        try:
            await self.db.commit()
            await self.db.refresh(user)
        except SQLAlchemyError:
            log.exception("Failed to persist user %s", user.email)
            await self.db.rollback()
            raise
        return user
