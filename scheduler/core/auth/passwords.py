# scheduler/core/auth/passwords.py

"""Password hashing (bcrypt via passlib)."""

from __future__ import annotations

import logging

from passlib.context import CryptContext

log = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """Salted bcrypt hash; the plaintext is never stored."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError) as e:
        # Битый хэш в БД - это не "неверный пароль", но войти всё равно нельзя
        log.error("Password verification error: %s", e)
        return False
