"""Shared fixtures: in-memory store, recording notifier, fixed clock, API client."""

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from medicare.models import Actor, Role
from medicare.services.memory_store import MemoryStore

# Wednesday morning; the next Monday is 2025-01-06
NOW = datetime(2025, 1, 1, 8, 0)
NEXT_MONDAY = "2025-01-06"
NEXT_TUESDAY = "2025-01-07"


class RecordingNotifier:
    """Notifier that keeps every published event for assertions."""

    def __init__(self):
        self.events = []

    async def publish(self, channel, event, payload=None):
        self.events.append((channel, event, payload))

    def names(self, channel=None):
        return [event for ch, event, _ in self.events if channel is None or ch == channel]


class FakeAuthService:
    """Stands in for Firebase Auth: tokens and minted session cookies map to user ids."""

    def __init__(self):
        self.tokens = {}
        self.sessions = {}
        self.created = []

    async def create_user(self, email, password, name):
        uid = f"uid-{len(self.created) + 1}"
        self.created.append({"uid": uid, "email": email, "name": name})
        return uid

    async def verify_id_token(self, id_token):
        return self.tokens.get(id_token)

    async def create_session_cookie(self, id_token, expires_in):
        cookie = f"signed-session-{len(self.sessions) + 1}"
        self.sessions[cookie] = self.tokens[id_token]
        return cookie

    async def verify_session_cookie(self, session_cookie):
        return self.sessions.get(session_cookie)

    async def delete_user(self, uid):
        self.created = [user for user in self.created if user["uid"] != uid]


def seed_user(store, user_id, role, **fields):
    """Write a user profile straight into the memory store."""
    data = {
        "name": fields.pop("name", user_id),
        "email": fields.pop("email", f"{user_id}@example.com"),
        "role": role,
        "status": "active",
        "bio": "",
        "contact_details": {"phone": None, "address": None},
        "average_rating": 0,
        "is_verified": False,
        "created_at": datetime(2024, 12, 1, tzinfo=timezone.utc),
    }
    data.update(fields)
    store.collections["users"][user_id] = data
    return Actor(id=user_id, role=Role(role))


def seed_window(store, doctor_id, day, start, end, window_id=None):
    """Write an availability window straight into the memory store."""
    window_id = window_id or f"{doctor_id}-{day}-{start}"
    store.collections["availabilities"][window_id] = {
        "doctor_id": doctor_id,
        "day": day,
        "start_time": start,
        "end_time": end,
        "created_at": datetime(2024, 12, 1, tzinfo=timezone.utc),
    }
    return window_id


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def auth_service():
    return FakeAuthService()


@pytest.fixture
def patient(store):
    return seed_user(store, "patient-1", "patient", name="Pat Lee", email="pat@example.com")


@pytest.fixture
def other_patient(store):
    return seed_user(store, "patient-2", "patient", name="Sam Roe", email="sam@example.com")


@pytest.fixture
def doctor(store):
    return seed_user(
        store,
        "doctor-1",
        "doctor",
        name="Dana Smith",
        email="dana@example.com",
        specialization="Cardiology",
        consultation_fee=50.0,
    )


@pytest.fixture
def monday_doctor(store, doctor):
    """Doctor working Mondays 09:00-12:00."""
    seed_window(store, doctor.id, "Monday", "09:00", "12:00", window_id="mon-morning")
    return doctor


@pytest.fixture
def app(store, notifier, clock, auth_service):
    from medicare.app import create_app

    return create_app(
        store=store,
        notifier=notifier,
        clock=clock,
        auth_service=auth_service,
        start_reminders=False,
    )


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def login(auth_service):
    """Return Authorization headers for a seeded actor."""

    def _login(actor):
        token = f"token-{actor.id}"
        auth_service.tokens[token] = actor.id
        return {"Authorization": f"Bearer {token}"}

    return _login
