# scheduler/core/auth/security.py

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from scheduler.config import settings
from scheduler.core.errors import UnauthenticatedError
from scheduler.core.users.models import User
from scheduler.db.base import get_async_db_session

from .schemas import Caller, TokenData

log = logging.getLogger(__name__)

# auto_error=False: отсутствие токена превращаем в UnauthenticatedError сами
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/v1/auth/login", auto_error=False)


# --- Функции для работы с JWT ---

def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """
    Создает JWT токен доступа.

    Args:
        data (dict): Данные для payload. Ключ 'user_id' становится 'sub',
                     'email' сохраняется как есть.
        expires_delta (timedelta | None, optional): Время жизни токена.
                                                     Если None, берётся из настроек.

    Returns:
        str: Сгенерированный JWT токен.
    """
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode["exp"] = expire
    if "user_id" in to_encode:
        to_encode["sub"] = str(to_encode.pop("user_id"))
    elif "sub" not in to_encode:
        raise ValueError("Missing 'user_id' or 'sub' in data for JWT")

    encoded_jwt = jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
    log.debug("Created JWT token for sub: %s", to_encode.get("sub"))
    return encoded_jwt


def decode_access_token(token: str) -> TokenData:
    """
    Верифицирует JWT токен и возвращает данные из него.

    Raises:
        UnauthenticatedError: Токен невалиден, истёк или без 'sub'.
    """
    try:
        payload: dict[str, Any] = jwt.decode(
            token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM]
        )
        user_id: Optional[str] = payload.get("sub")
        if user_id is None:
            log.warning("Token verification failed: 'sub' (user_id) claim missing.")
            raise UnauthenticatedError("Could not validate credentials")
        token_data = TokenData(user_id=user_id, email=payload.get("email"))
    except JWTError as e:
        log.warning("Token verification failed: JWTError - %s", e)
        raise UnauthenticatedError("Could not validate credentials") from e
    except ValidationError as e:
        log.warning("Token verification failed: ValidationError - %s", e)
        raise UnauthenticatedError("Could not validate credentials") from e

    log.debug("Token verified successfully for user_id: %s", token_data.user_id)
    return token_data


async def authenticate(token: str, db: AsyncSession) -> Caller:
    """Resolves a bearer token into the caller identity, checking the user still exists."""
    token_data = decode_access_token(token)
    user = await db.get(User, token_data.user_id)
    if user is None:
        log.warning("User with id %s from valid token not found in DB.", token_data.user_id)
        raise UnauthenticatedError("Could not validate credentials")
    return Caller(id=user.id, email=user.email, timezone=user.timezone)


# --- FastAPI Dependency ---

async def get_current_caller(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_async_db_session),
) -> Caller:
    """
    FastAPI зависимость: текущий аутентифицированный пользователь как ``Caller``.

    Raises:
        UnauthenticatedError: Нет заголовка Authorization или токен невалиден.
    """
    if not token:
        raise UnauthenticatedError("Not authenticated")
    caller = await authenticate(token, db)
    log.debug("Authenticated caller: %s", caller.id)
    return caller
