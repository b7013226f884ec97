# scheduler/api/v1/users.py

from __future__ import annotations

import logging

from fastapi import APIRouter, Body, Depends

from scheduler.api.deps import get_users_service
from scheduler.core.auth.schemas import Caller
from scheduler.core.auth.security import get_current_caller
from scheduler.core.users.schemas import TimezoneUpdate, UserOut
from scheduler.core.users.service import UsersService

router = APIRouter(
    prefix="/v1/users",
    tags=["Users"],
    dependencies=[Depends(get_current_caller)],
)
log = logging.getLogger(__name__)


@router.get("/me", response_model=UserOut, summary="Current user")
async def get_me(
    caller: Caller = Depends(get_current_caller),
    users: UsersService = Depends(get_users_service),
) -> UserOut:
    return UserOut.model_validate(await users.get_user(caller.id))


@router.get("/{user_id}", response_model=UserOut, summary="Get a user by id")
async def get_user(
    user_id: str,
    users: UsersService = Depends(get_users_service),
) -> UserOut:
    return UserOut.model_validate(await users.get_user(user_id))


@router.patch("/{user_id}/timezone", response_model=UserOut, summary="Change own timezone")
async def update_timezone(
    user_id: str,
    payload: TimezoneUpdate = Body(...),
    caller: Caller = Depends(get_current_caller),
    users: UsersService = Depends(get_users_service),
) -> UserOut:
    log.info("[API /users] %s changes timezone of %s to %s", caller.id, user_id, payload.timezone)
    user = await users.update_user_timezone(caller, user_id, payload.timezone)
    return UserOut.model_validate(user)
