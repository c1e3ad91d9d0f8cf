"""Tests for Google login, sessions, /auth/me and the admin user endpoints."""
from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlparse

import httpx

from farmtime import google_oauth
from farmtime.config import settings
from farmtime.google_oauth import GoogleOAuthClient, get_google_client
from farmtime.main import app
from farmtime.models.user import UserSession
from farmtime.services import identity_service
from tests.conftest import login, make_user


class TestSessions:

    def test_me_anonymous(self, client):
        resp = client.get("/auth/me")
        assert resp.status_code == 200
        assert resp.json() == {"user": None}

    def test_me_signed_in(self, client, db):
        user = make_user(db, name="Ann", email="ann@x.com")
        login(client, db, user)
        data = client.get("/auth/me").json()["user"]
        assert data["id"] == user.id
        assert data["email"] == "ann@x.com"
        assert data["can_create_events"] is True

    def test_protected_routes_need_session(self, client):
        assert client.get("/api/events/").status_code == 401
        assert client.get("/api/health").status_code == 200

    def test_unknown_cookie_is_anonymous(self, client):
        client.cookies.set(settings.SESSION_COOKIE_NAME, "not-a-session")
        assert client.get("/api/events/").status_code == 401

    def test_expired_session_is_dropped(self, client, db):
        user = make_user(db)
        db.add(UserSession(
            id="stale-session",
            user_id=user.id,
            expires_at=datetime.now(timezone.utc) - timedelta(minutes=1),
        ))
        db.commit()
        client.cookies.set(settings.SESSION_COOKIE_NAME, "stale-session")
        assert client.get("/api/events/").status_code == 401
        db.expire_all()
        assert db.query(UserSession).filter(UserSession.id == "stale-session").first() is None

    def test_logout(self, client, db):
        session_id = login(client, db, make_user(db))
        assert client.post("/auth/logout").status_code == 200
        db.expire_all()
        assert db.query(UserSession).filter(UserSession.id == session_id).first() is None

    def test_purge_expired_sessions(self, db):
        user = make_user(db)
        live = identity_service.create_session(db, user)
        db.add(UserSession(
            id="old", user_id=user.id,
            expires_at=datetime.now(timezone.utc) - timedelta(days=1),
        ))
        db.commit()
        assert identity_service.purge_expired_sessions(db) == 1
        assert identity_service.resolve_identity(db, live).id == user.id


class TestRecordUser:

    def test_record_is_upsert(self, db):
        first = identity_service.record_user(db, "g-1", "ann@x.com", "Ann")
        second = identity_service.record_user(db, "g-1", "ann@x.com", "Ann Smith", "http://pic")
        assert first.id == second.id
        assert second.name == "Ann Smith"
        assert len(identity_service.list_users(db)) == 1

    def test_admin_emails_grant_admin(self, db, monkeypatch):
        monkeypatch.setattr(settings, "ADMIN_EMAILS", "Boss@Farm.test, other@farm.test")
        user = identity_service.record_user(db, "g-boss", "boss@farm.test", "Boss")
        assert user.is_admin is True
        assert identity_service.record_user(db, "g-ann", "ann@x.com", "Ann").is_admin is False


class TestAdminUsers:

    def test_admin_lists_users(self, client, db):
        make_user(db, name="Ann")
        login(client, db, make_user(db, name="Boss", is_admin=True))
        resp = client.get("/api/admin/users")
        assert resp.status_code == 200
        assert [u["name"] for u in resp.json()] == ["Ann", "Boss"]

    def test_non_admin_forbidden(self, client, db):
        login(client, db, make_user(db, name="Ann"))
        assert client.get("/api/admin/users").status_code == 403

    def test_grant_create_events(self, client, db):
        guest = make_user(db, name="Guest", can_create_events=False)
        login(client, db, make_user(db, name="Boss", is_admin=True))
        resp = client.put(f"/api/admin/users/{guest.id}", json={"can_create_events": True})
        assert resp.status_code == 200
        assert resp.json()["can_create_events"] is True

        login(client, db, guest)
        resp = client.post("/api/events/", json={
            "title": "Now Allowed",
            "start_time": "2026-07-04T10:00:00Z",
            "end_time": "2026-07-04T12:00:00Z",
        })
        assert resp.status_code == 201

    def test_update_unknown_user(self, client, db):
        login(client, db, make_user(db, name="Boss", is_admin=True))
        resp = client.put("/api/admin/users/missing", json={"can_create_events": True})
        assert resp.status_code == 404


def _google(handler):
    """A GoogleOAuthClient whose HTTP calls go to ``handler`` instead of Google."""
    def client_class(**kwargs):
        return httpx.Client(transport=httpx.MockTransport(handler), **kwargs)

    return GoogleOAuthClient(http_client_class=client_class)


def _happy_google(calls):
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if request.url == google_oauth.TOKEN_URL:
            form = parse_qs(request.content.decode())
            assert form["code"] == ["good-code"]
            assert form["grant_type"] == ["authorization_code"]
            return httpx.Response(200, json={"access_token": "tok-123", "token_type": "Bearer"})
        if request.url == google_oauth.USERINFO_URL:
            assert request.headers["Authorization"] == "Bearer tok-123"
            return httpx.Response(200, json={
                "id": "google-42", "email": "ann@x.com", "name": "Ann", "picture": "http://pic/ann",
            })
        return httpx.Response(404)

    return handler


class TestGoogleLogin:

    def test_login_redirects_with_state_cookie(self, client):
        resp = client.get("/auth/google/login", follow_redirects=False)
        assert resp.status_code == 307
        location = resp.headers["location"]
        assert location.startswith(google_oauth.AUTHORIZE_URL)
        state = parse_qs(urlparse(location).query)["state"][0]
        assert resp.cookies.get("oauth_state") == state

    def test_callback_opens_session(self, client, db):
        calls = []
        app.dependency_overrides[get_google_client] = lambda: _google(_happy_google(calls))
        client.cookies.set("oauth_state", "state-abc")

        resp = client.get(
            "/auth/google/callback", params={"state": "state-abc", "code": "good-code"},
            follow_redirects=False,
        )
        assert resp.status_code == 307
        assert len(calls) == 2
        session_id = resp.cookies.get(settings.SESSION_COOKIE_NAME)
        assert session_id
        set_cookie = resp.headers.get_list("set-cookie")
        session_header = next(h for h in set_cookie if h.startswith(settings.SESSION_COOKIE_NAME))
        assert "httponly" in session_header.lower()
        assert "samesite=lax" in session_header.lower()

        identity = identity_service.resolve_identity(db, session_id)
        assert identity.email == "ann@x.com"
        assert identity.name == "Ann"
        users = identity_service.list_users(db)
        assert [(u.google_id, u.picture) for u in users] == [("google-42", "http://pic/ann")]

    def test_callback_purges_expired_sessions(self, client, db):
        user = make_user(db)
        db.add(UserSession(
            id="old", user_id=user.id,
            expires_at=datetime.now(timezone.utc) - timedelta(days=1),
        ))
        db.commit()
        app.dependency_overrides[get_google_client] = lambda: _google(_happy_google([]))
        client.cookies.set("oauth_state", "state-abc")

        client.get(
            "/auth/google/callback", params={"state": "state-abc", "code": "good-code"},
            follow_redirects=False,
        )
        db.expire_all()
        assert db.query(UserSession).filter(UserSession.id == "old").first() is None

    def test_state_mismatch_rejected(self, client, db):
        calls = []
        app.dependency_overrides[get_google_client] = lambda: _google(_happy_google(calls))
        client.cookies.set("oauth_state", "state-abc")
        resp = client.get(
            "/auth/google/callback", params={"state": "forged", "code": "good-code"},
            follow_redirects=False,
        )
        assert resp.status_code == 400
        assert calls == []
        assert identity_service.list_users(db) == []

    def test_provider_error_redirects_without_session(self, client, db):
        client.cookies.set("oauth_state", "state-abc")
        resp = client.get(
            "/auth/google/callback", params={"state": "state-abc", "error": "access_denied"},
            follow_redirects=False,
        )
        assert resp.status_code == 307
        assert "error=access_denied" in resp.headers["location"]
        assert resp.cookies.get(settings.SESSION_COOKIE_NAME) is None

    def test_failed_exchange_is_bad_gateway(self, client, db):
        def handler(request):
            return httpx.Response(400, json={"error": "invalid_grant"})

        app.dependency_overrides[get_google_client] = lambda: _google(handler)
        client.cookies.set("oauth_state", "state-abc")
        resp = client.get(
            "/auth/google/callback", params={"state": "state-abc", "code": "stale"},
            follow_redirects=False,
        )
        assert resp.status_code == 502
        assert identity_service.list_users(db) == []
