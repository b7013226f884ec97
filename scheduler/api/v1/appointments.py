# scheduler/api/v1/appointments.py

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from typing import Any, Dict, List, Optional

import anyio
from fastapi import (
    APIRouter,
    Body,
    Depends,
    File,
    Form,
    HTTPException,
    Query,
    UploadFile,
    WebSocket,
    WebSocketDisconnect,
    status,
)
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool
from starlette.websockets import WebSocketState

from scheduler.api.deps import (
    get_appointments_service,
    internal_error,
    provide_notifier,
    provide_update_bus,
)
from scheduler.core.appointments.schemas import (
    AppointmentOut,
    AttachmentUpload,
)
from scheduler.core.appointments.service import AppointmentsService
from scheduler.core.auth.schemas import Caller
from scheduler.core.auth.security import authenticate, get_current_caller
from scheduler.core.errors import NotFoundError, SchedulerError, UnauthenticatedError, UnauthorizedError
from scheduler.core.notifications import BaseNotifier
from scheduler.core.updates import BaseUpdateBus, stream_appointment_updates
from scheduler.db.base import async_session_context

router = APIRouter(prefix="/v1/appointments", tags=["Appointments"])
log = logging.getLogger(__name__)

WS_CLOSE_UNAUTHENTICATED = 4401
WS_CLOSE_FORBIDDEN = 4403


class MessageOut(BaseModel):
    message: str


def _split_participants(values: List[str]) -> List[str]:
    # Поддерживаем и повторяющееся поле, и "a@x.com, b@y.com"
    out: List[str] = []
    for value in values:
        out.extend(part.strip() for part in value.split(",") if part.strip())
    return out


def _spool_upload(file: UploadFile) -> str:
    suffix = os.path.splitext(file.filename or "")[1]
    with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as tmp:
        shutil.copyfileobj(file.file, tmp)
        return tmp.name


@router.get("", response_model=List[AppointmentOut], summary="My appointments")
async def list_appointments(
    caller: Caller = Depends(get_current_caller),
    service: AppointmentsService = Depends(get_appointments_service),
) -> List[AppointmentOut]:
    """Все встречи, где текущий пользователь участник, в его часовом поясе."""
    return await service.list_for_participant(caller.email)


@router.post(
    "",
    response_model=AppointmentOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create an appointment",
    description=(
        "Multipart form. `participants` may be repeated or comma separated; "
        "the owner is always added. Optional `file` (.pdf, .doc, .docx, .txt)."
    ),
)
async def create_appointment(
    title: str = Form(...),
    date: str = Form(...),
    time: str = Form(...),
    description: Optional[str] = Form(None),
    participants: List[str] = Form([]),
    file: Optional[UploadFile] = File(None),
    caller: Caller = Depends(get_current_caller),
    service: AppointmentsService = Depends(get_appointments_service),
) -> AppointmentOut:
    log.info("[API /appointments] %s creates '%.50s' on %s %s", caller.id, title, date, time)
    tmp_path: Optional[str] = None
    try:
        upload = None
        if file is not None and file.filename:
            tmp_path = await run_in_threadpool(_spool_upload, file)
            upload = AttachmentUpload(local_path=tmp_path, filename=file.filename)
        return await service.create_appointment(
            caller,
            title=title,
            description=description,
            date=date,
            time=time,
            participants=_split_participants(participants),
            upload=upload,
        )
    except (SchedulerError, HTTPException):
        raise
    except Exception as e:
        log.exception("[API /appointments] Unhandled error creating appointment for %s", caller.id)
        raise internal_error(e) from e
    finally:
        if tmp_path is not None:
            os.unlink(tmp_path)


@router.websocket("/ws")
async def appointments_ws(
    websocket: WebSocket,
    token: str = Query(""),
    email: str = Query(""),
    bus: BaseUpdateBus = Depends(provide_update_bus),
    notifier: BaseNotifier = Depends(provide_notifier),
) -> None:
    """
    Живые обновления: сначала текущий список встреч, затем каждый новый
    список после мутаций. Код закрытия 4401 при невалидном токене,
    4403 при чужом email.
    """
    await websocket.accept()
    caller: Optional[Caller] = None
    async with async_session_context() as session:
        try:
            caller = await authenticate(token, session)
        except UnauthenticatedError:
            log.info("[WS /appointments] Rejected connection with invalid token")
    if caller is None:
        await websocket.close(code=WS_CLOSE_UNAUTHENTICATED)
        return

    async def load_snapshot(address: str) -> List[Dict[str, Any]]:
        async with async_session_context() as session:
            service = AppointmentsService(session, notifier, bus)
            return [item.model_dump(mode="json") for item in await service.list_for_participant(address)]

    close_code: Optional[int] = None

    async def pump(scope: anyio.CancelScope) -> None:
        nonlocal close_code
        try:
            async for payload in stream_appointment_updates(caller, email, bus, load_snapshot):
                await websocket.send_json(payload)
            # Шина закрыта (остановка сервера)
            close_code = status.WS_1000_NORMAL_CLOSURE
        except WebSocketDisconnect:
            log.info("[WS /appointments] %s went away mid-send", caller.id)
        except UnauthorizedError:
            close_code = WS_CLOSE_FORBIDDEN
        except Exception as exc:
            log.error("[WS /appointments] Stream for %s failed: %r", caller.id, exc)
            close_code = status.WS_1011_INTERNAL_ERROR
        scope.cancel()

    async def wait_disconnect(scope: anyio.CancelScope) -> None:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                log.info("[WS /appointments] %s disconnected", caller.id)
                scope.cancel()
                return

    async with anyio.create_task_group() as tg:
        tg.start_soon(pump, tg.cancel_scope)
        tg.start_soon(wait_disconnect, tg.cancel_scope)

    if close_code is not None and websocket.client_state != WebSocketState.DISCONNECTED:
        await websocket.close(code=close_code)


@router.get("/{appointment_id}", response_model=AppointmentOut, summary="Get one appointment")
async def get_appointment(
    appointment_id: str,
    caller: Caller = Depends(get_current_caller),
    service: AppointmentsService = Depends(get_appointments_service),
) -> AppointmentOut:
    appointment = await service.get_appointment(caller, appointment_id)
    if appointment is None:
        raise NotFoundError("Appointment", appointment_id)
    return appointment


@router.patch("/{appointment_id}", response_model=AppointmentOut, summary="Update an appointment")
async def update_appointment(
    appointment_id: str,
    payload: Dict[str, Any] = Body(..., description="Any subset of: title, description, date, time, participants."),
    caller: Caller = Depends(get_current_caller),
    service: AppointmentsService = Depends(get_appointments_service),
) -> AppointmentOut:
    try:
        return await service.update_appointment(caller, appointment_id, **payload)
    except (SchedulerError, HTTPException):
        raise
    except Exception as e:
        log.exception("[API /appointments] Unhandled error updating %s", appointment_id)
        raise internal_error(e) from e


@router.post("/{appointment_id}/reschedule", response_model=AppointmentOut, summary="Move to a new date and time")
async def reschedule_appointment(
    appointment_id: str,
    payload: Dict[str, Any] = Body(..., description="New `date` (YYYY-MM-DD) and `time` (HH:mm)."),
    caller: Caller = Depends(get_current_caller),
    service: AppointmentsService = Depends(get_appointments_service),
) -> AppointmentOut:
    try:
        return await service.reschedule_appointment(
            caller, appointment_id, payload.get("date"), payload.get("time")
        )
    except (SchedulerError, HTTPException):
        raise
    except Exception as e:
        log.exception("[API /appointments] Unhandled error rescheduling %s", appointment_id)
        raise internal_error(e) from e


@router.post("/{appointment_id}/cancel", response_model=AppointmentOut, summary="Cancel an appointment")
async def cancel_appointment(
    appointment_id: str,
    caller: Caller = Depends(get_current_caller),
    service: AppointmentsService = Depends(get_appointments_service),
) -> AppointmentOut:
    try:
        return await service.cancel_appointment(caller, appointment_id)
    except (SchedulerError, HTTPException):
        raise
    except Exception as e:
        log.exception("[API /appointments] Unhandled error canceling %s", appointment_id)
        raise internal_error(e) from e


@router.delete("/{appointment_id}", response_model=MessageOut, summary="Delete an appointment")
async def delete_appointment(
    appointment_id: str,
    caller: Caller = Depends(get_current_caller),
    service: AppointmentsService = Depends(get_appointments_service),
) -> MessageOut:
    try:
        message = await service.delete_appointment(caller, appointment_id)
    except (SchedulerError, HTTPException):
        raise
    except Exception as e:
        log.exception("[API /appointments] Unhandled error deleting %s", appointment_id)
        raise internal_error(e) from e
    return MessageOut(message=message)
