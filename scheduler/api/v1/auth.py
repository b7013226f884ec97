# scheduler/api/v1/auth.py

from __future__ import annotations

import logging

from fastapi import APIRouter, Body, Depends, HTTPException, status

from scheduler.api.deps import get_users_service, internal_error
from scheduler.core.errors import SchedulerError
from scheduler.core.users.schemas import AuthResponse, LoginRequest, UserCreate, UserOut
from scheduler.core.users.service import UsersService

router = APIRouter(prefix="/v1/auth", tags=["Authentication"])
log = logging.getLogger(__name__)


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an account",
    description="Registers a user and returns the user together with a bearer token.",
)
async def register(
    payload: UserCreate = Body(...),
    users: UsersService = Depends(get_users_service),
) -> AuthResponse:
    try:
        user, token = await users.create_user(
            name=payload.name,
            email=str(payload.email),
            password=payload.password,
            timezone=payload.timezone,
        )
    except (SchedulerError, HTTPException):
        raise
    except Exception as e:
        log.exception("[API /auth/register] Unhandled error for %s", payload.email)
        raise internal_error(e) from e
    return AuthResponse(user=UserOut.model_validate(user), access_token=token)


@router.post("/login", response_model=AuthResponse, summary="Log in with email and password")
async def login(
    payload: LoginRequest = Body(...),
    users: UsersService = Depends(get_users_service),
) -> AuthResponse:
    try:
        user, token = await users.login(str(payload.email), payload.password)
    except (SchedulerError, HTTPException):
        raise
    except Exception as e:
        log.exception("[API /auth/login] Unhandled error for %s", payload.email)
        raise internal_error(e) from e
    return AuthResponse(user=UserOut.model_validate(user), access_token=token)
