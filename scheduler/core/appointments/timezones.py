# scheduler/core/appointments/timezones.py

"""
Conversions between stored instants and per-user wall-clock strings.

Appointments are stored as an absolute UTC instant computed from the owner's
local date, time and timezone. Every reader gets that instant projected into
their own zone. Nothing here touches the database.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, time, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from scheduler.core.errors import ValidationError

log = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "UTC"
DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"
DISPLAY_TIME_FORMAT = "%I:%M %p"

INVALID_DATE = "Invalid date"
INVALID_TIME = "Invalid time"

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def is_valid_timezone(name: str | None) -> bool:
    """True if ``name`` is a zone known to the system IANA database."""
    if not name or not isinstance(name, str):
        return False
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        return False
    return True


def resolve_timezone(name: str | None) -> ZoneInfo:
    """Returns the zone for ``name``; unknown names degrade to UTC."""
    if is_valid_timezone(name):
        return ZoneInfo(name)
    if name and name != DEFAULT_TIMEZONE:
        log.warning("Unknown timezone %r, falling back to %s", name, DEFAULT_TIMEZONE)
    return ZoneInfo(DEFAULT_TIMEZONE)


def parse_local_date(value: str) -> date:
    if not isinstance(value, str) or not _DATE_RE.match(value):
        raise ValidationError("Date must be in YYYY-MM-DD format", {"date": "Date must be in YYYY-MM-DD format"})
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise ValidationError("Invalid calendar date", {"date": str(exc)}) from exc


def parse_local_time(value: str) -> time:
    match = _TIME_RE.match(value) if isinstance(value, str) else None
    if not match:
        raise ValidationError("Invalid time format (HH:mm)", {"time": "Invalid time format (HH:mm)"})
    return time(int(match.group(1)), int(match.group(2)))


def ensure_utc(value: datetime) -> datetime:
    """Naive datetimes (SQLite hands those back) are read as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_stored_instant(local_date: str, local_time: str, tz_name: str | None) -> datetime:
    """
    Converts the owner's wall-clock intent into an absolute UTC instant.

    Args:
        local_date (str): ``YYYY-MM-DD`` in the owner's zone.
        local_time (str): ``HH:mm`` (24h) in the owner's zone.
        tz_name (str | None): Owner's IANA timezone.

    Returns:
        datetime: Timezone-aware UTC datetime.

    Raises:
        ValidationError: Malformed date/time, or a wall-clock time skipped
            by a DST transition in that zone.
    """
    tz = resolve_timezone(tz_name)
    local = datetime.combine(parse_local_date(local_date), parse_local_time(local_time), tzinfo=tz)
    instant = local.astimezone(timezone.utc)

    # Время из "дыры" перехода на летнее время не существует: отклоняем
    if instant.astimezone(tz).replace(tzinfo=None) != local.replace(tzinfo=None):
        raise ValidationError(
            f"{local_date} {local_time} does not exist in timezone {tz.key}",
            {"time": "Local time skipped by a daylight saving transition"},
        )
    return instant


def to_display(
    stored_instant: Optional[datetime],
    time_string: Optional[str],
    viewer_tz: str | None,
) -> Tuple[str, str]:
    """
    Renders a stored appointment for one viewer.

    Returns ``("YYYY-MM-DD", "hh:mm AM/PM")`` in the viewer's zone, or the
    ``("Invalid date", "Invalid time")`` sentinel when the record is broken
    (missing instant, unparsable retained time). A broken record never
    raises, so sibling records in a list still render.

    The stored instant is authoritative: it already encodes the owner's date
    and time, so it is projected as is and the retained ``HH:mm`` is only
    checked for validity. Recombining that wall-clock string with a date
    would shift the result for any viewer outside the owner's zone.
    """
    tz = resolve_timezone(viewer_tz)
    try:
        if stored_instant is None:
            raise ValueError("stored instant is missing")
        if not isinstance(time_string, str) or not _TIME_RE.match(time_string):
            raise ValueError(f"retained time {time_string!r} is not HH:mm")
        local = ensure_utc(stored_instant).astimezone(tz)
    except (TypeError, ValueError, AttributeError, OverflowError) as exc:
        log.warning("Cannot render appointment time: %s", exc)
        return INVALID_DATE, INVALID_TIME
    return local.strftime(DATE_FORMAT), local.strftime(DISPLAY_TIME_FORMAT)


def local_parts(stored_instant: datetime, tz_name: str | None) -> Tuple[str, str]:
    """``(YYYY-MM-DD, HH:mm)`` of ``stored_instant`` on the wall clock of ``tz_name``."""
    local = ensure_utc(stored_instant).astimezone(resolve_timezone(tz_name))
    return local.strftime(DATE_FORMAT), local.strftime(TIME_FORMAT)


__all__ = [
    "DEFAULT_TIMEZONE",
    "INVALID_DATE",
    "INVALID_TIME",
    "is_valid_timezone",
    "resolve_timezone",
    "parse_local_date",
    "parse_local_time",
    "ensure_utc",
    "to_stored_instant",
    "to_display",
    "local_parts",
]
