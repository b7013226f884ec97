# scheduler/core/errors.py

"""
Domain exceptions of the scheduler.

Every error a caller may legitimately see derives from ``SchedulerError`` and
carries the HTTP status it maps to. Anything else escaping a handler is an
infrastructure failure and is reported as a generic 500.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class SchedulerError(Exception):
    """Base exception for all scheduler-specific errors."""

    status_code: int = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(SchedulerError):
    """Malformed or missing field. ``details`` maps field name -> message."""
    status_code = 422


class NotFoundError(SchedulerError):
    status_code = 404

    def __init__(self, resource: str, identifier: Any):
        super().__init__(f"{resource} not found: {identifier}", {"resource": resource, "identifier": identifier})


class UnauthorizedError(SchedulerError):
    """Authenticated, but not allowed to touch this resource."""
    status_code = 403


class UnauthenticatedError(SchedulerError):
    status_code = 401


class PastDateError(SchedulerError):
    status_code = 422


class AlreadyCanceledError(SchedulerError):
    status_code = 409


class DuplicateUserError(SchedulerError):
    status_code = 409

    def __init__(self, email: str):
        super().__init__("User already exists.", {"email": email})


class InvalidCredentialsError(SchedulerError):
    status_code = 401


class InvalidTimezoneError(SchedulerError):
    status_code = 422

    def __init__(self, timezone: str):
        super().__init__("Invalid timezone format", {"timezone": timezone})


class UnsupportedFileTypeError(SchedulerError):
    status_code = 415


class UploadFailedError(SchedulerError):
    status_code = 502


__all__ = [
    "SchedulerError",
    "ValidationError",
    "NotFoundError",
    "UnauthorizedError",
    "UnauthenticatedError",
    "PastDateError",
    "AlreadyCanceledError",
    "DuplicateUserError",
    "InvalidCredentialsError",
    "InvalidTimezoneError",
    "UnsupportedFileTypeError",
    "UploadFailedError",
]
