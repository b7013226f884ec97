# tests/test_appointments_api.py
import asyncio

import pytest
from fastapi.testclient import TestClient

from scheduler.api.deps import provide_notifier
from scheduler.db.base import create_db_and_tables, drop_db_and_tables
from scheduler.main import app

FUTURE_DATE = "2099-05-20"


@pytest.fixture
def client(notifier):
    asyncio.run(create_db_and_tables())
    app.dependency_overrides[provide_notifier] = lambda: notifier
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
    asyncio.run(drop_db_and_tables())


def register(client, email, timezone="UTC", name=None):
    resp = client.post(
        "/v1/auth/register",
        json={"name": name or email.split("@")[0].title(), "email": email, "password": "secret1", "timezone": timezone},
    )
    assert resp.status_code == 201, resp.text
    body = resp.json()
    return body["user"], {"Authorization": f"Bearer {body['access_token']}"}


def create(client, headers, **overrides):
    data = {
        "title": "Design review",
        "description": "Review the new layout",
        "date": FUTURE_DATE,
        "time": "14:30",
        "participants": ["guest@example.com"],
    }
    data.update(overrides)
    return client.post("/v1/appointments", data=data, headers=headers)


# --- auth & users ---

def test_register_and_login(client):
    user, _ = register(client, "alice@example.com", "Europe/Berlin")
    assert user["email"] == "alice@example.com"
    assert "hashed_password" not in user

    resp = client.post("/v1/auth/login", json={"email": "alice@example.com", "password": "secret1"})
    assert resp.status_code == 200
    assert resp.json()["token_type"] == "bearer"


def test_register_duplicate(client):
    register(client, "alice@example.com")
    resp = client.post(
        "/v1/auth/register",
        json={"name": "Alice", "email": "alice@example.com", "password": "secret1"},
    )
    assert resp.status_code == 409
    assert resp.json() == {"detail": "User already exists.", "error": "DuplicateUserError", "fields": {"email": "alice@example.com"}}


def test_register_rejects_short_password(client):
    resp = client.post("/v1/auth/register", json={"name": "Alice", "email": "alice@example.com", "password": "123"})
    assert resp.status_code == 422
    assert resp.json()["error"] == "ValidationError"
    assert "password" in resp.json()["fields"]


def test_login_wrong_password(client):
    register(client, "alice@example.com")
    resp = client.post("/v1/auth/login", json={"email": "alice@example.com", "password": "nope-nope"})
    assert resp.status_code == 401
    assert resp.json()["error"] == "InvalidCredentialsError"


def test_users_me_and_timezone_update(client):
    user, headers = register(client, "alice@example.com")

    assert client.get("/v1/users/me", headers=headers).json()["id"] == user["id"]

    resp = client.patch(f"/v1/users/{user['id']}/timezone", json={"timezone": "Asia/Tokyo"}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["timezone"] == "Asia/Tokyo"

    resp = client.patch(f"/v1/users/{user['id']}/timezone", json={"timezone": "Bad/Zone"}, headers=headers)
    assert resp.status_code == 422
    assert resp.json()["detail"] == "Invalid timezone format"


def test_cannot_change_other_users_timezone(client):
    alice, _ = register(client, "alice@example.com")
    _, bob_headers = register(client, "bob@example.com")
    resp = client.patch(f"/v1/users/{alice['id']}/timezone", json={"timezone": "Asia/Tokyo"}, headers=bob_headers)
    assert resp.status_code == 403


def test_get_unknown_user(client):
    _, headers = register(client, "alice@example.com")
    assert client.get("/v1/users/missing", headers=headers).status_code == 404


# --- appointments ---

def test_requests_without_token_are_unauthenticated(client):
    resp = client.get("/v1/appointments")
    assert resp.status_code == 401
    assert resp.headers["www-authenticate"] == "Bearer"
    assert client.get("/v1/appointments", headers={"Authorization": "Bearer garbage"}).status_code == 401


def test_create_and_list_in_each_viewers_timezone(client):
    _, owner_headers = register(client, "owner@example.com", "America/New_York")
    _, guest_headers = register(client, "guest@example.com", "Asia/Tokyo")

    resp = create(client, owner_headers, date="2099-01-15", time="10:00")
    assert resp.status_code == 201, resp.text
    created = resp.json()
    assert created["participants"] == ["owner@example.com", "guest@example.com"]
    assert (created["date"], created["time"]) == ("2099-01-15", "10:00 AM")
    assert created["status"] == "Scheduled"

    guest_list = client.get("/v1/appointments", headers=guest_headers).json()
    assert [(a["date"], a["time"]) for a in guest_list] == [("2099-01-16", "12:00 AM")]


def test_create_accepts_comma_separated_participants(client):
    _, headers = register(client, "owner@example.com")
    resp = create(client, headers, participants="a@example.com, b@example.com")
    assert resp.status_code == 201, resp.text
    assert resp.json()["participants"] == ["owner@example.com", "a@example.com", "b@example.com"]


def test_create_with_attachment(client):
    _, headers = register(client, "owner@example.com")
    resp = client.post(
        "/v1/appointments",
        data={"title": "Contract", "date": FUTURE_DATE, "time": "09:00", "participants": ["guest@example.com"]},
        files={"file": ("terms.txt", b"Terms and conditions", "text/plain")},
        headers=headers,
    )
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["attachment"]["filename"] == "terms.txt"
    assert body["content_preview"] == "Terms and conditions"


def test_create_rejects_unsupported_file(client):
    _, headers = register(client, "owner@example.com")
    resp = client.post(
        "/v1/appointments",
        data={"title": "Contract", "date": FUTURE_DATE, "time": "09:00", "participants": ["guest@example.com"]},
        files={"file": ("run.exe", b"MZ", "application/octet-stream")},
        headers=headers,
    )
    assert resp.status_code == 415


def test_create_validation_errors(client):
    _, headers = register(client, "owner@example.com")

    resp = create(client, headers, participants=[])
    assert resp.status_code == 422
    assert "participants" in resp.json()["fields"]

    resp = create(client, headers, time="25:00")
    assert resp.status_code == 422
    assert "time" in resp.json()["fields"]

    resp = create(client, headers, date="2000-01-01")
    assert resp.status_code == 422
    assert resp.json()["error"] == "PastDateError"

    assert client.get("/v1/appointments", headers=headers).json() == []


def test_get_single_appointment(client):
    _, owner_headers = register(client, "owner@example.com")
    _, stranger_headers = register(client, "stranger@example.com")
    created = create(client, owner_headers).json()

    assert client.get(f"/v1/appointments/{created['id']}", headers=owner_headers).json()["id"] == created["id"]
    assert client.get(f"/v1/appointments/{created['id']}", headers=stranger_headers).status_code == 403
    assert client.get("/v1/appointments/missing", headers=owner_headers).status_code == 404


def test_update_reschedule_cancel_delete_flow(client):
    _, headers = register(client, "owner@example.com")
    created = create(client, headers).json()
    appointment_id = created["id"]

    resp = client.patch(f"/v1/appointments/{appointment_id}", json={"title": "Design review v2"}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "Updated"
    assert resp.json()["title"] == "Design review v2"

    resp = client.post(
        f"/v1/appointments/{appointment_id}/reschedule",
        json={"date": "2099-06-01", "time": "08:05"},
        headers=headers,
    )
    assert resp.status_code == 200
    assert (resp.json()["date"], resp.json()["time"], resp.json()["status"]) == ("2099-06-01", "08:05 AM", "Rescheduled")

    assert client.post(f"/v1/appointments/{appointment_id}/cancel", headers=headers).json()["status"] == "Canceled"
    resp = client.post(f"/v1/appointments/{appointment_id}/cancel", headers=headers)
    assert resp.status_code == 409
    assert resp.json()["error"] == "AlreadyCanceledError"

    resp = client.delete(f"/v1/appointments/{appointment_id}", headers=headers)
    assert resp.status_code == 200
    assert resp.json() == {"message": "Appointment successfully deleted."}
    assert client.get("/v1/appointments", headers=headers).json() == []


def test_patch_rejects_status_and_empty_body(client):
    _, headers = register(client, "owner@example.com")
    created = create(client, headers).json()

    resp = client.patch(f"/v1/appointments/{created['id']}", json={"status": "Canceled"}, headers=headers)
    assert resp.status_code == 422
    resp = client.patch(f"/v1/appointments/{created['id']}", json={}, headers=headers)
    assert resp.status_code == 422


def test_non_owner_cannot_mutate(client):
    _, owner_headers = register(client, "owner@example.com")
    _, guest_headers = register(client, "guest@example.com")
    created = create(client, owner_headers).json()

    assert client.patch(f"/v1/appointments/{created['id']}", json={"title": "Mine now"}, headers=guest_headers).status_code == 403
    assert client.post(f"/v1/appointments/{created['id']}/cancel", headers=guest_headers).status_code == 403
    assert client.delete(f"/v1/appointments/{created['id']}", headers=guest_headers).status_code == 403
    assert client.get(f"/v1/appointments/{created['id']}", headers=owner_headers).json()["title"] == "Design review"


def test_non_owner_with_bad_payload_still_gets_403(client):
    _, owner_headers = register(client, "owner@example.com")
    _, guest_headers = register(client, "guest@example.com")
    created = create(client, owner_headers).json()
    url = f"/v1/appointments/{created['id']}"

    assert client.patch(url, json={}, headers=guest_headers).status_code == 403
    assert client.patch(url, json={"status": "Canceled"}, headers=guest_headers).status_code == 403
    resp = client.post(f"{url}/reschedule", json={"date": "2030-13-40", "time": "25:00"}, headers=guest_headers)
    assert resp.status_code == 403
    resp = client.post(f"{url}/reschedule", json={"date": "2099-04-01"}, headers=owner_headers)
    assert resp.status_code == 422
    assert "time" in resp.json()["fields"]


def test_internal_errors_do_not_leak(client, monkeypatch):
    from scheduler.core.appointments.service import AppointmentsService

    async def boom(self, *args, **kwargs):
        raise KeyError("secret internals")

    monkeypatch.setattr(AppointmentsService, "cancel_appointment", boom)
    _, headers = register(client, "owner@example.com")
    resp = client.post("/v1/appointments/anything/cancel", headers=headers)
    assert resp.status_code == 500
    assert resp.json() == {"detail": "An internal error occurred: KeyError"}


def test_healthz(client, monkeypatch):
    from scheduler.config import settings

    monkeypatch.setattr(settings, "NOTIFIER_PROVIDER", "log")
    body = client.get("/healthz").json()
    assert body["db"] == "ok"
    assert body["status"] == "ok"
