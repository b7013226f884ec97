# scheduler/main.py

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from scheduler.api.v1.appointments import router as appointments_router
from scheduler.api.v1.auth import router as auth_router
from scheduler.api.v1.health import router as health_router
from scheduler.api.v1.users import router as users_router
from scheduler.config import settings
from scheduler.core.errors import SchedulerError, UnauthenticatedError, ValidationError
from scheduler.core.notifications import drain_notifications
from scheduler.core.updates import get_update_bus

logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
log = logging.getLogger(__name__)

description = """
Appointment scheduling API: shared appointments, per-user timezones,
email notifications and live updates over WebSocket.
"""
tags_metadata = [
    {"name": "Authentication", "description": "Registration and login."},
    {"name": "Users", "description": "Profiles and timezones."},
    {"name": "Appointments", "description": "Appointment lifecycle and live updates."},
    {"name": "Health", "description": "Liveness of the API and its dependencies."},
]

app = FastAPI(
    title="Appointment Scheduler API",
    description=description,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=tags_metadata,
)


# --- Error handlers ---

def _error_body(exc: SchedulerError) -> dict:
    return {"detail": exc.message, "error": type(exc).__name__, "fields": exc.details}


@app.exception_handler(SchedulerError)
async def scheduler_error_handler(request: Request, exc: SchedulerError) -> JSONResponse:
    log.info("%s %s -> %s: %s", request.method, request.url.path, type(exc).__name__, exc.message)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthenticatedError) else None
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc), headers=headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields: dict[str, str] = {}
    for err in exc.errors():
        # loc начинается с "body"/"query"/"path"
        key = ".".join(str(part) for part in err["loc"][1:]) or str(err["loc"][0])
        fields.setdefault(key, err["msg"])
    error = ValidationError("Invalid input", fields)
    return JSONResponse(status_code=error.status_code, content=_error_body(error))


# --- Routers ---

app.include_router(auth_router)
app.include_router(users_router)
app.include_router(appointments_router)
app.include_router(health_router)

log.info("\U0001F331 FastAPI application configured. Environment: %s", settings.ENVIRONMENT)


@app.on_event("startup")
async def startup_event() -> None:
    app.state.update_bus = get_update_bus()
    log.info("\U0001F680 FastAPI application startup complete.")


@app.on_event("shutdown")
async def shutdown_event() -> None:
    await drain_notifications(timeout=10)
    await app.state.update_bus.close()
    log.info("\U0001F44B FastAPI application shutdown.")
