import importlib
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Ensure project root is on path
sys.path.append(str(Path(__file__).resolve().parents[1]))

from churchevents.memberships import Role


@pytest.fixture
def app_module(tmp_path, monkeypatch):
    monkeypatch.setenv("CHURCHEVENTS_DB", str(tmp_path / "test.db"))
    monkeypatch.setenv("CHURCHEVENTS_TZ", "UTC")
    if "churchevents.app" in sys.modules:
        del sys.modules["churchevents.app"]
    return importlib.import_module("churchevents.app")


@pytest.fixture
def church(app_module):
    store = app_module.membership_store
    anne = store.create_church("St. Anne")
    store.add_member("admin", anne.id, Role.Admin)
    store.add_member("member", anne.id, Role.Member)
    return anne.id


def _client(app_module, user):
    client = TestClient(app_module.app)
    if user:
        client.headers.update({"X-User-Id": user})
    return client


EVENT = {
    "title": "Bible Study",
    "excerpt": "**Romans** 8",
    "time": "2024-02-14T19:00:00+00:00",
    "is_recurring": True,
    "recurrence_type": "weekly",
    "recurrence_days_of_week": [5, 3],
}


def test_requires_user_header(app_module, church):
    resp = _client(app_module, None).get("/churches")
    assert resp.status_code == 401


def test_list_churches(app_module, church):
    resp = _client(app_module, "member").get("/churches")
    assert resp.status_code == 200
    assert resp.json() == [
        {"church_id": church, "church_name": "St. Anne", "role": "member", "can_create": False}
    ]


def test_admin_creates_event(app_module, church):
    client = _client(app_module, "admin")

    resp = client.post(f"/churches/{church}/events", json=EVENT)

    assert resp.status_code == 201
    data = resp.json()
    assert data["title"] == "Bible Study"
    assert data["created_by"] == "admin"
    assert data["recurrence_days_of_week"] == [3, 5]
    assert data["recurrence_interval"] == 1
    assert data["recurrence_summary"] == "Repeats weekly on Wed, Fri"
    assert "<strong>Romans</strong>" in data["excerpt_html"]
    assert data["icon"] == "book"

    listing = client.get(f"/churches/{church}/events").json()
    assert listing["can_create"] is True
    assert [e["id"] for e in listing["events"]] == [data["id"]]


def test_member_cannot_create(app_module, church):
    resp = _client(app_module, "member").post(f"/churches/{church}/events", json=EVENT)
    assert resp.status_code == 403
    assert "admins and owners" in resp.json()["error"]


def test_validation_error_reports_field(app_module, church):
    payload = dict(EVENT, title="  ")
    resp = _client(app_module, "admin").post(f"/churches/{church}/events", json=payload)
    assert resp.status_code == 400
    assert resp.json()["field"] == "title"


def test_update_and_delete(app_module, church):
    client = _client(app_module, "admin")
    event_id = client.post(f"/churches/{church}/events", json=EVENT).json()["id"]

    resp = client.put(
        f"/events/{event_id}", json=dict(EVENT, title="Bible Study (moved)", is_recurring=False)
    )
    assert resp.status_code == 200
    assert resp.json()["title"] == "Bible Study (moved)"
    assert resp.json()["recurrence_days_of_week"] is None

    assert _client(app_module, "member").put(f"/events/{event_id}", json=EVENT).status_code == 403

    assert client.delete(f"/events/{event_id}").status_code == 409
    assert client.delete(f"/events/{event_id}?confirm=true").json() == {"ok": True}
    assert client.get(f"/churches/{church}/events").json()["events"] == []
    assert client.delete(f"/events/{event_id}?confirm=true").status_code == 404


def test_calendar_month(app_module, church):
    client = _client(app_module, "admin")
    client.post(f"/churches/{church}/events", json=EVENT)

    resp = client.get(f"/churches/{church}/calendar/2024/2")
    assert resp.status_code == 200
    data = resp.json()
    assert data["month"] == "February 2024"
    assert len(data["weeks"]) == 5
    assert data["weeks"][0][0]["date"] == "2024-01-28"
    feb14 = data["weeks"][2][3]
    assert feb14["date"] == "2024-02-14"
    assert [e["title"] for e in feb14["events"]] == ["Bible Study"]

    assert client.get(f"/churches/{church}/calendar/2024/13").status_code == 400


def test_non_members_cannot_read_church_events(app_module, church):
    _client(app_module, "admin").post(f"/churches/{church}/events", json=EVENT)
    outsider = _client(app_module, "visitor")

    resp = outsider.get(f"/churches/{church}/events")
    assert resp.status_code == 403
    assert resp.json()["action"] == "view"
    assert outsider.get(f"/churches/{church}/calendar/2024/2").status_code == 403

    member = _client(app_module, "member").get(f"/churches/{church}/events")
    assert member.status_code == 200
    assert member.json()["can_create"] is False
    assert len(member.json()["events"]) == 1
