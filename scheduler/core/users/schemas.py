# scheduler/core/users/schemas.py

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class UserCreate(BaseModel):
    name: str = Field(..., min_length=3, max_length=128, description="Name must be at least 3 characters")
    email: EmailStr
    timezone: str = Field("UTC", description="IANA timezone name")
    password: str = Field(..., min_length=6, description="Password must be at least 6 characters")


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class TimezoneUpdate(BaseModel):
    timezone: str = Field(..., min_length=1)


class UserOut(BaseModel):
    """Публичное представление пользователя (без пароля)."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    timezone: str


class AuthResponse(BaseModel):
    user: UserOut
    access_token: str
    token_type: str = "bearer"
