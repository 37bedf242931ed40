"""
HTTP API: request validation, auth headers and status codes.

The Google gateway is swapped for FakeGateway through FastAPI dependency overrides.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from focus_scheduler.config import Settings
from focus_scheduler.web import api


@pytest.fixture
def client_with(make_gateway):
    def _make(gateway, settings=None):
        api.app.dependency_overrides[api.get_settings] = lambda: settings or Settings()
        api.app.dependency_overrides[api.get_gateway_factory] = lambda: (lambda creds, wh, s: gateway)
        return TestClient(api.app)

    yield _make
    api.app.dependency_overrides.clear()


AUTH = {"Authorization": "Bearer access-token"}


def test_health(client_with, make_gateway):
    client = client_with(make_gateway())
    assert client.get("/health").json() == {"ok": True}


def test_schedule_creates_events(client_with, make_gateway):
    gw = make_gateway()
    client = client_with(gw)

    resp = client.post(
        "/calendar/schedule",
        json={"task": {"id": "t1", "title": "Write report", "duration": 90}},
        headers=AUTH,
    )

    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["success"] is True
    assert body["chunks_placed"] == 2
    assert body["created_event_ids"] == ["evt-1", "evt-2"]
    assert [s["part"] for s in body["slots"]] == [1, 2]
    assert [label for _, label, _ in gw.created] == [
        "[Focus] Write report (Part 1/2)",
        "[Focus] Write report (Part 2/2)",
    ]


def test_schedule_requires_bearer_token(client_with, make_gateway):
    client = client_with(make_gateway())
    resp = client.post("/calendar/schedule", json={"task": {"id": "t1", "title": "Plan"}})
    assert resp.status_code == 401


def test_unsuccessful_schedule_is_400(client_with, make_gateway):
    client = client_with(make_gateway())
    resp = client.post(
        "/calendar/schedule",
        json={"task": {"id": "t1", "title": "Plan", "duration": 60, "due_date": "yesterday"}},
        headers=AUTH,
    )
    assert resp.status_code == 400
    assert resp.json()["success"] is False


def test_invalid_payload_is_422(client_with, make_gateway):
    client = client_with(make_gateway())
    resp = client.post("/calendar/schedule", json={"task": {"id": "t1", "title": "Plan", "duration": -5}}, headers=AUTH)
    assert resp.status_code == 422


def test_unschedule(client_with, make_gateway):
    gw = make_gateway()
    client = client_with(gw)
    resp = client.post("/calendar/unschedule", json={"event_ids": ["evt-1", "evt-2"]}, headers=AUTH)
    assert resp.status_code == 200
    assert resp.json() == {"deleted_count": 2, "deleted": ["evt-1", "evt-2"]}
    assert gw.deleted == ["evt-1", "evt-2"]


def test_refresh_requires_token(client_with, make_gateway):
    client = client_with(make_gateway())
    assert client.post("/auth/refresh", json={}).status_code == 400


def test_refresh_without_client_credentials_is_server_error(client_with, make_gateway):
    client = client_with(make_gateway(), settings=Settings(google_client_id=None, google_client_secret=None))
    assert client.post("/auth/refresh", json={"refresh_token": "r1"}).status_code == 500
