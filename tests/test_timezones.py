# tests/test_timezones.py
from datetime import datetime, timezone

import pytest

from scheduler.core.appointments.timezones import (
    INVALID_DATE,
    INVALID_TIME,
    is_valid_timezone,
    local_parts,
    resolve_timezone,
    to_display,
    to_stored_instant,
)
from scheduler.core.errors import ValidationError


@pytest.mark.parametrize("name", ["UTC", "America/New_York", "Asia/Tokyo", "Europe/Berlin"])
def test_known_timezones_are_valid(name):
    assert is_valid_timezone(name)


@pytest.mark.parametrize("name", ["", None, "Mars/Olympus", "not a zone", "../etc/passwd"])
def test_unknown_timezones_are_rejected(name):
    assert not is_valid_timezone(name)


def test_resolve_unknown_timezone_falls_back_to_utc():
    assert resolve_timezone("Mars/Olympus").key == "UTC"
    assert resolve_timezone(None).key == "UTC"


def test_stored_instant_uses_owner_timezone():
    instant = to_stored_instant("2030-01-15", "10:00", "America/New_York")
    assert instant == datetime(2030, 1, 15, 15, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "local_date, local_time, tz, expected_time",
    [
        ("2030-01-15", "00:00", "UTC", "12:00 AM"),
        ("2030-06-30", "13:45", "America/New_York", "01:45 PM"),
        ("2030-12-31", "23:59", "Asia/Tokyo", "11:59 PM"),
        ("2030-11-03", "01:30", "America/New_York", "01:30 AM"),
    ],
)
def test_round_trip_in_owner_timezone(local_date, local_time, tz, expected_time):
    instant = to_stored_instant(local_date, local_time, tz)
    assert to_display(instant, local_time, tz) == (local_date, expected_time)


def test_new_york_appointment_seen_from_tokyo():
    instant = to_stored_instant("2030-01-15", "10:00", "America/New_York")
    assert to_display(instant, "10:00", "Asia/Tokyo") == ("2030-01-16", "12:00 AM")


def test_display_follows_instant_not_retained_time():
    # Instant is 10:00 in New York; a stale retained string does not move it
    instant = to_stored_instant("2030-01-15", "10:00", "America/New_York")
    assert to_display(instant, "23:45", "America/New_York") == ("2030-01-15", "10:00 AM")
    assert to_display(instant, "23:45", "Asia/Tokyo") == ("2030-01-16", "12:00 AM")


def test_dst_gap_time_is_rejected():
    # 2030-03-10 02:30 не существует в Нью-Йорке
    with pytest.raises(ValidationError) as exc_info:
        to_stored_instant("2030-03-10", "02:30", "America/New_York")
    assert "time" in exc_info.value.details


@pytest.mark.parametrize(
    "local_date, local_time",
    [("2030-02-30", "10:00"), ("15-01-2030", "10:00"), ("2030-01-15", "24:00"), ("2030-01-15", "9:5")],
)
def test_malformed_input_is_rejected(local_date, local_time):
    with pytest.raises(ValidationError):
        to_stored_instant(local_date, local_time, "UTC")


def test_display_sentinel_for_broken_records():
    instant = datetime(2030, 1, 15, 15, 0, tzinfo=timezone.utc)
    assert to_display(None, "10:00", "UTC") == (INVALID_DATE, INVALID_TIME)
    assert to_display(instant, "10am", "UTC") == (INVALID_DATE, INVALID_TIME)
    assert to_display(instant, None, "UTC") == (INVALID_DATE, INVALID_TIME)


def test_display_treats_naive_instant_as_utc():
    naive = datetime(2030, 1, 15, 15, 0)
    assert to_display(naive, "10:00", "America/New_York") == ("2030-01-15", "10:00 AM")


def test_display_with_unknown_viewer_timezone_uses_utc():
    instant = datetime(2030, 1, 15, 15, 0, tzinfo=timezone.utc)
    assert to_display(instant, "10:00", "Nowhere/Land") == ("2030-01-15", "03:00 PM")


def test_local_parts_returns_owner_wall_clock():
    instant = to_stored_instant("2030-07-04", "18:15", "Europe/Berlin")
    assert local_parts(instant, "Europe/Berlin") == ("2030-07-04", "18:15")
