"""Pytest fixtures — throwaway SQLite database, recording notifier and registry."""
import json
import os
from datetime import datetime, timezone, timedelta

import pytest

SQLITE_URL = "sqlite:///./test.db"

# Must be set before app.config is imported.
os.environ.setdefault("DATABASE_URL", SQLITE_URL)
os.environ.setdefault("MAIL_ENABLED", "false")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET", "test-secret")

from sqlalchemy import create_engine, event  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.database import Base, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.services.connection_registry import ConnectionRegistry  # noqa: E402

# Import all models so they register with Base.metadata
from app.models.user import User      # noqa: F401,E402
from app.models.event import Event    # noqa: F401,E402
from app.models.rsvp import RSVP      # noqa: F401,E402


class RecordingNotifier:
    """Stands in for EmailNotifier; records every attempt."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.event_notifications: list[dict] = []
        self.welcome_emails: list[dict] = []

    def send_event_notification(self, email, event_title, message):
        self.event_notifications.append({"email": email, "title": event_title, "message": message})
        if self.fail:
            raise RuntimeError("SMTP relay unreachable")

    def send_welcome_email(self, email, role):
        self.welcome_emails.append({"email": email, "role": role})
        if self.fail:
            raise RuntimeError("SMTP relay unreachable")

    def shutdown(self):
        pass


class RecordingConnection:
    """A registry connection that keeps every decoded message it is sent."""

    def __init__(self):
        self.messages: list[dict] = []

    def send(self, text):
        self.messages.append(json.loads(text))

    @property
    def types(self) -> list[str]:
        return [m["type"] for m in self.messages]


class BrokenConnection:
    def __init__(self):
        self.attempts = 0

    def send(self, text):
        self.attempts += 1
        raise ConnectionResetError("peer went away")


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh SQLite engine for each test."""
    engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})

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
def notifier():
    return RecordingNotifier()


@pytest.fixture(scope="function")
def registry():
    return ConnectionRegistry()


@pytest.fixture(scope="function")
def listener(registry):
    """A connection registered before the test runs."""
    conn = RecordingConnection()
    registry.add(conn)
    return conn


@pytest.fixture(scope="function")
def client(session_factory, notifier, registry):
    """TestClient with the database, notifier and registry swapped for test doubles."""

    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    saved = (app.state.notifier, app.state.registry)
    app.state.notifier = notifier
    app.state.registry = registry
    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
    app.state.notifier, app.state.registry = saved


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def signup(client: TestClient, email: str = "user@example.com", role: str | None = None,
           password: str = "secret123") -> dict:
    """Helper — POST /auth/signup and return response JSON (token + user)."""
    body = {"email": email, "password": password}
    if role:
        body["role"] = role
    resp = client.post("/auth/signup", json=body)
    assert resp.status_code == 200, resp.text
    return resp.json()


def future(days: int = 7) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


def create_event(client: TestClient, token: str, title: str = "Meetup", days: int = 7, **overrides):
    """Helper — POST /events and return the raw response."""
    payload = {
        "title": title,
        "description": "A gathering",
        "date": future(days),
        "location": "Town Hall",
    }
    payload.update(overrides)
    return client.post("/events", json=payload, headers=auth(token))


def approved_event(client: TestClient, organizer_token: str, admin_token: str, **kwargs) -> dict:
    """Helper — create an event and approve it, return the approved event JSON."""
    event = create_event(client, organizer_token, **kwargs).json()
    resp = client.put(f"/events/{event['event_id']}/approve", headers=auth(admin_token))
    assert resp.status_code == 200, resp.text
    return resp.json()


@pytest.fixture(scope="function")
def users(client):
    """One user per role, each with a token."""
    return {
        "admin": signup(client, "admin@example.com", "ADMIN"),
        "organizer": signup(client, "org@example.com", "ORGANIZER"),
        "other_organizer": signup(client, "org2@example.com", "ORGANIZER"),
        "attendee": signup(client, "attendee@example.com"),
    }
