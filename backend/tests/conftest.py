"""Pytest fixtures — file-backed SQLite database per test, shared by API and service tests."""
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest
from sqlalchemy import event
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from farmtime.config import settings
from farmtime.database import Base, get_db, make_engine
from farmtime.main import app
from farmtime.models.user import User
from farmtime.schemas.user import Identity
from farmtime.services import identity_service

# Import all models so they register with Base.metadata
import farmtime.models  # noqa: F401


@pytest.fixture(scope="function")
def db_engine(tmp_path):
    """Create a fresh SQLite engine for each test."""
    engine = make_engine(f"sqlite:///{tmp_path / 'test.db'}")

    # Enable WAL mode for better concurrency
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db(session_factory):
    """Yield a database session, closed after the test."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(session_factory):
    """FastAPI TestClient with the database dependency overridden to use SQLite."""

    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def make_user(
    db,
    name: str = "Test User",
    email: Optional[str] = None,
    can_create_events: bool = True,
    is_admin: bool = False,
) -> User:
    """Record a provider account and set its grants directly."""
    email = email or f"{name.lower().replace(' ', '.')}@farm.test"
    user = identity_service.record_user(db, google_id=f"g-{email}", email=email, name=name)
    user.can_create_events = can_create_events
    user.is_admin = is_admin or user.is_admin
    db.commit()
    db.refresh(user)
    return user


def as_identity(user: User) -> Identity:
    return Identity.model_validate(user)


def login(client: TestClient, db, user: User) -> str:
    """Open a session for ``user`` and make it the client's cookie."""
    session_id = identity_service.create_session(db, user)
    client.cookies.clear()
    client.cookies.set(settings.SESSION_COOKIE_NAME, session_id)
    return session_id


def create_test_event(
    client: TestClient,
    title: str = "Farm Weekend",
    start: Optional[datetime] = None,
    hours: int = 4,
    **extra,
) -> dict:
    """Helper — POST /api/events and return response JSON."""
    start = start or datetime(2026, 7, 4, 10, 0, tzinfo=timezone.utc)
    payload = {
        "title": title,
        "description": extra.pop("description", ""),
        "location": extra.pop("location", "The Farm"),
        "start_time": start.isoformat(),
        "end_time": (start + timedelta(hours=hours)).isoformat(),
        **extra,
    }
    resp = client.post("/api/events/", json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()
