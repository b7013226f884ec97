# scheduler/core/users/service.py

from __future__ import annotations

import asyncio
import logging
from typing import Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from scheduler.core.appointments.timezones import is_valid_timezone
from scheduler.core.auth.passwords import hash_password, verify_password
from scheduler.core.auth.schemas import Caller
from scheduler.core.auth.security import create_access_token
from scheduler.core.errors import (
    DuplicateUserError,
    InvalidCredentialsError,
    InvalidTimezoneError,
    NotFoundError,
    UnauthorizedError,
)
from scheduler.core.validation import parse_payload

from .models import User
from .repository import UserRepository
from .schemas import LoginRequest, UserCreate

log = logging.getLogger(__name__)


def _issue_token(user: User) -> str:
    return create_access_token(data={"user_id": user.id, "email": user.email})


class UsersService:
    """
    Асинхронный сервис для работы с пользователями: регистрация, вход,
    смена часового пояса.
    """

    def __init__(self, db_session: AsyncSession):
        """
        Args:
            db_session (AsyncSession): Активная сессия SQLAlchemy.
        """
        self.db: AsyncSession = db_session
        self.users = UserRepository(db_session)

    async def create_user(
        self,
        name: str,
        email: str,
        password: str,
        timezone: str = "UTC",
    ) -> Tuple[User, str]:
        """
        Регистрирует пользователя и выдаёт токен сессии.

        Returns:
            Tuple[User, str]: Созданный пользователь и JWT.

        Raises:
            ValidationError: Невалидные имя, email или пароль.
            InvalidTimezoneError: Часовой пояс не из базы IANA.
            DuplicateUserError: Email уже занят.
        """
        data = parse_payload(UserCreate, {"name": name, "email": email, "password": password, "timezone": timezone})
        if not is_valid_timezone(data.timezone):
            raise InvalidTimezoneError(data.timezone)

        normalized_email = str(data.email).strip().lower()
        if await self.users.find_by_email(normalized_email) is not None:
            log.info("Registration rejected, email already taken: %s", normalized_email)
            raise DuplicateUserError(normalized_email)

        loop = asyncio.get_running_loop()
        hashed = await loop.run_in_executor(None, hash_password, data.password)
        user = User(name=data.name, email=normalized_email, timezone=data.timezone, hashed_password=hashed)
        try:
            user = await self.users.add(user)
        except IntegrityError as exc:
            # Параллельная регистрация с тем же email
            raise DuplicateUserError(normalized_email) from exc

        log.info("Created user id=%s email=%s tz=%s", user.id, user.email, user.timezone)
        return user, _issue_token(user)

    async def login(self, email: str, password: str) -> Tuple[User, str]:
        data = parse_payload(LoginRequest, {"email": email, "password": password})
        user = await self.users.find_by_email(str(data.email))
        if user is None:
            raise NotFoundError("User", str(data.email).lower())

        loop = asyncio.get_running_loop()
        if not await loop.run_in_executor(None, verify_password, data.password, user.hashed_password):
            log.warning("Invalid password for user id=%s", user.id)
            raise InvalidCredentialsError("Invalid email or password")

        log.info("User id=%s logged in", user.id)
        return user, _issue_token(user)

    async def update_user_timezone(self, caller: Caller, user_id: str, timezone: str) -> User:
        if caller.id != user_id:
            log.warning("User %s tried to change timezone of user %s", caller.id, user_id)
            raise UnauthorizedError("You can only change your own timezone")
        if not is_valid_timezone(timezone):
            raise InvalidTimezoneError(timezone)

        user = await self.users.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        user.timezone = timezone
        user = await self.users.save(user)
        log.info("User id=%s timezone set to %s", user.id, timezone)
        return user

    async def get_user(self, user_id: str) -> User:
        user = await self.users.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user
