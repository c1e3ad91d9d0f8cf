"""Tests for Event CRUD, the permission gate and the composed read view.

Covers:
- Create / list / get / update / delete through the API
- Create needs the create-events grant, update/delete need creator or admin
- Time window validation (end must be after start, ISO-8601 only)
- Optional meal auto-planning on create
- Round-trip of a freshly created event
"""
from datetime import datetime, timezone

import pytest

from farmtime.config import settings
from farmtime.errors import NotFoundError, PermissionDeniedError, ValidationError
from farmtime.services import event_service
from tests.conftest import as_identity, create_test_event, login, make_user


class TestEventCreate:
    """Event creation and initial state."""

    def test_create_event(self, client, db):
        user = make_user(db, name="Ann")
        login(client, db, user)
        data = create_test_event(client, title="Barn Dance", location="Red Barn")
        assert data["title"] == "Barn Dance"
        assert data["location"] == "Red Barn"
        assert data["created_by_user_id"] == user.id

    def test_create_requires_login(self, client):
        resp = client.post("/api/events/", json={
            "title": "Anonymous",
            "start_time": "2026-07-04T10:00:00Z",
            "end_time": "2026-07-04T12:00:00Z",
        })
        assert resp.status_code == 401

    def test_create_requires_grant(self, client, db):
        user = make_user(db, name="Guest", can_create_events=False)
        login(client, db, user)
        resp = client.post("/api/events/", json={
            "title": "Not Allowed",
            "start_time": "2026-07-04T10:00:00Z",
            "end_time": "2026-07-04T12:00:00Z",
        })
        assert resp.status_code == 403

    def test_admin_can_create_without_grant(self, client, db):
        admin = make_user(db, name="Boss", can_create_events=False, is_admin=True)
        login(client, db, admin)
        data = create_test_event(client, title="Admin Event")
        assert data["created_by_user_id"] == admin.id

    def test_blank_title_rejected(self, client, db):
        login(client, db, make_user(db))
        resp = client.post("/api/events/", json={
            "title": "   ",
            "start_time": "2026-07-04T10:00:00Z",
            "end_time": "2026-07-04T12:00:00Z",
        })
        assert resp.status_code == 400

    def test_end_before_start_rejected(self, client, db):
        login(client, db, make_user(db))
        resp = client.post("/api/events/", json={
            "title": "Backwards",
            "start_time": "2026-07-04T12:00:00Z",
            "end_time": "2026-07-04T10:00:00Z",
        })
        assert resp.status_code == 400

    def test_equal_start_and_end_rejected(self, db):
        creator = as_identity(make_user(db))
        with pytest.raises(ValidationError):
            event_service.create_event(
                db, "Instant", "", "", "2026-07-04T10:00:00Z", "2026-07-04T10:00:00Z", creator,
            )

    def test_unparseable_time_rejected(self, db):
        creator = as_identity(make_user(db))
        with pytest.raises(ValidationError):
            event_service.create_event(db, "Bad", "", "", "next tuesday", "2026-07-04T10:00:00Z", creator)

    def test_auto_create_meals(self, client, db):
        login(client, db, make_user(db))
        event = create_test_event(client, title="Long Day", hours=11, auto_create_meals=True)
        detail = client.get(f"/api/events/{event['id']}").json()
        assert [m["name"] for m in detail["meals"]] == ["Lunch", "Dinner"]
        assert all(m["meal_date"] == "2026-07-04" for m in detail["meals"])

    def test_no_meals_unless_requested(self, client, db):
        login(client, db, make_user(db))
        event = create_test_event(client, hours=11)
        assert client.get(f"/api/events/{event['id']}").json()["meals"] == []


class TestEventRead:
    """Listing and the composed single-event view."""

    def test_list_ordered_by_start(self, client, db):
        login(client, db, make_user(db))
        create_test_event(client, title="Later", start=datetime(2026, 8, 1, 9, tzinfo=timezone.utc))
        create_test_event(client, title="Sooner", start=datetime(2026, 6, 1, 9, tzinfo=timezone.utc))
        titles = [e["title"] for e in client.get("/api/events/").json()]
        assert titles == ["Sooner", "Later"]

    def test_get_unknown_event(self, client, db):
        login(client, db, make_user(db))
        assert client.get("/api/events/does-not-exist").status_code == 404

    def test_round_trip(self, db):
        creator = as_identity(make_user(db))
        created = event_service.create_event(
            db, "Harvest Supper", "Bring a chair", "Orchard",
            "2026-09-12T17:00:00", "2026-09-12T22:00:00", creator,
        )
        view = event_service.get_event(db, created.id)
        assert view.title == "Harvest Supper"
        assert view.description == "Bring a chair"
        assert view.location == "Orchard"
        assert view.start_time.replace(tzinfo=None) == datetime(2026, 9, 12, 17, 0)
        assert view.end_time.replace(tzinfo=None) == datetime(2026, 9, 12, 22, 0)
        assert view.attendees == []
        assert view.meals == []
        assert view.todos == []


class TestEventTimezones:
    """Offsets are honored and every time is stored as UTC."""

    def test_offset_input_keeps_its_instant(self, db):
        creator = as_identity(make_user(db))
        event = event_service.create_event(
            db, "Brunch", "", "", "2025-06-01T10:00+02:00", "2025-06-01T11:30+02:00", creator,
        )
        view = event_service.get_event(db, event.id)
        assert view.start_time == datetime(2025, 6, 1, 8, 0, tzinfo=timezone.utc)
        assert view.end_time == datetime(2025, 6, 1, 9, 30, tzinfo=timezone.utc)

    def test_update_compares_real_instants(self, db):
        creator = as_identity(make_user(db))
        event = event_service.create_event(
            db, "Brunch", "", "", "2025-06-01T10:00+02:00", "2025-06-01T11:30+02:00", creator,
        )
        updated = event_service.update_event(db, event.id, creator, {"end_time": "2025-06-01T09:00Z"})
        assert event_service.get_event(db, updated.id).end_time == datetime(2025, 6, 1, 9, 0, tzinfo=timezone.utc)

    def test_list_orders_across_offsets(self, db):
        creator = as_identity(make_user(db))
        # 05:00Z and 07:00Z, though the wall clocks read 07:00 and 06:00
        event_service.create_event(db, "A", "", "", "2025-06-01T07:00+02:00", "2025-06-01T08:00+02:00", creator)
        event_service.create_event(db, "B", "", "", "2025-06-01T06:00-01:00", "2025-06-01T07:00-01:00", creator)
        assert [e.title for e in event_service.list_events(db)] == ["A", "B"]

    def test_api_returns_utc(self, client, db):
        login(client, db, make_user(db))
        resp = client.post("/api/events/", json={
            "title": "Brunch",
            "start_time": "2025-06-01T10:00:00+02:00",
            "end_time": "2025-06-01T11:30:00+02:00",
        })
        detail = client.get(f"/api/events/{resp.json()['id']}").json()
        start = datetime.fromisoformat(detail["start_time"].replace("Z", "+00:00"))
        assert start == datetime(2025, 6, 1, 8, 0, tzinfo=timezone.utc)

    def test_naive_input_is_event_zone_wall_clock(self, db, monkeypatch):
        monkeypatch.setattr(settings, "EVENT_TIMEZONE", "America/New_York")
        creator = as_identity(make_user(db))
        event = event_service.create_event(
            db, "Milking", "", "", "2025-06-01T10:00", "2025-06-01T11:00", creator,
        )
        assert event_service.get_event(db, event.id).start_time == datetime(2025, 6, 1, 14, 0, tzinfo=timezone.utc)


class TestEventUpdate:
    """Partial updates with the creator-or-admin gate."""

    def test_creator_can_update(self, client, db):
        login(client, db, make_user(db, name="Ann"))
        event = create_test_event(client)
        resp = client.put(f"/api/events/{event['id']}", json={"title": "Renamed"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["title"] == "Renamed"
        assert data["location"] == event["location"]

    def test_other_user_cannot_update(self, client, db):
        login(client, db, make_user(db, name="Ann"))
        event = create_test_event(client)
        login(client, db, make_user(db, name="Bob"))
        resp = client.put(f"/api/events/{event['id']}", json={"title": "Hijacked"})
        assert resp.status_code == 403

    def test_admin_can_update(self, client, db):
        login(client, db, make_user(db, name="Ann"))
        event = create_test_event(client)
        login(client, db, make_user(db, name="Boss", is_admin=True))
        resp = client.put(f"/api/events/{event['id']}", json={"location": "Hay Loft"})
        assert resp.status_code == 200
        assert resp.json()["location"] == "Hay Loft"

    def test_update_cannot_invert_window(self, client, db):
        login(client, db, make_user(db))
        event = create_test_event(client)
        resp = client.put(f"/api/events/{event['id']}", json={"end_time": "2026-07-04T09:00:00Z"})
        assert resp.status_code == 400

    def test_update_rejects_unknown_field(self, db):
        creator = as_identity(make_user(db))
        event = event_service.create_event(
            db, "Picnic", "", "", "2026-06-01T10:00", "2026-06-01T14:00", creator,
        )
        with pytest.raises(ValidationError):
            event_service.update_event(db, event.id, creator, {"owner": "someone"})

    def test_update_unknown_event(self, db):
        creator = as_identity(make_user(db))
        with pytest.raises(NotFoundError):
            event_service.update_event(db, "missing", creator, {"title": "x"})


class TestEventDelete:
    """Delete is gated and removes the event."""

    def test_creator_can_delete(self, client, db):
        login(client, db, make_user(db))
        event = create_test_event(client)
        assert client.delete(f"/api/events/{event['id']}").status_code == 204
        assert client.get(f"/api/events/{event['id']}").status_code == 404

    def test_other_user_cannot_delete(self, db):
        owner = as_identity(make_user(db, name="Ann"))
        other = as_identity(make_user(db, name="Bob"))
        event = event_service.create_event(
            db, "Picnic", "", "", "2026-06-01T10:00", "2026-06-01T14:00", owner,
        )
        with pytest.raises(PermissionDeniedError):
            event_service.delete_event(db, event.id, other)
        assert event_service.get_event(db, event.id).title == "Picnic"
