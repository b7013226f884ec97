# scheduler/core/auth/schemas.py

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Token(BaseModel):
    """Схема для возврата JWT токена клиенту."""
    access_token: str
    token_type: str = "bearer"


class TokenData(BaseModel):
    """
    Данные, хранящиеся внутри JWT токена.
    ``sub`` несёт user_id, ``email`` - адрес пользователя на момент выдачи.
    """
    user_id: str = Field(..., description="User ID within our application")
    email: str | None = Field(None, description="User email claim")


class Caller(BaseModel):
    """
    Typed identity of the authenticated caller. Produced by the auth
    dependency and passed explicitly into every service call.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    timezone: str = "UTC"
