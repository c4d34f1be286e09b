from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone

import fakeredis
import jwt
import pytest

from app import create_app
from models import db
from repositories import UserRepository
from utils.notifications import NotificationDispatcher

JWT_SECRET = "test-secret"


class RecordingNotifier(NotificationDispatcher):
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.sent: list[tuple] = []
        self._lock = threading.Lock()

    def _record(self, *event) -> None:
        if self.fail:
            raise RuntimeError("notification backend down")
        with self._lock:
            self.sent.append(event)

    def notify_match(self, user_id, other_user_id, match_id):
        self._record("match", user_id, other_user_id, match_id)

    def notify_like(self, user_id, from_user_id):
        self._record("like", user_id, from_user_id)

    def notify_super_like(self, user_id, from_user_id):
        self._record("super_like", user_id, from_user_id)


@pytest.fixture
def redis_client():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def app_config(tmp_path) -> dict:
    return {
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'matching.db'}",
        "SQLALCHEMY_ENGINE_OPTIONS": {"connect_args": {"timeout": 30}},
        "JWT_SECRET": JWT_SECRET,
        "JWT_AUDIENCE": None,
        "MAX_DAILY_LIKES": 3,
        "RATE_LIMIT_REQUESTS_PER_WINDOW": 1000,
        "RATE_LIMIT_BACKEND": "shared",
        "LOCK_WAIT_TIMEOUT_SECONDS": 5,
        "LOCK_POLL_INTERVAL_SECONDS": 0.01,
    }


@pytest.fixture
def app(app_config, redis_client, notifier):
    app = create_app(app_config, redis_client=redis_client, notifier=notifier)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def engine(app):
    return app.extensions["matching_engine"]


@pytest.fixture
def make_user(app):
    """Create and commit a user, returning its id"""
    users = UserRepository()
    counter = {"n": 0}

    def _make(user_id: str | None = None, name: str | None = None, email: str | None = None) -> str:
        counter["n"] += 1
        user_id = user_id or f"user-{counter['n']:03d}"
        users.create(user_id, name or f"User {user_id}", email)
        db.session.commit()
        return user_id

    return _make


@pytest.fixture
def auth_headers():
    def _headers(user_id: str) -> dict:
        token = jwt.encode(
            {"sub": user_id, "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
            JWT_SECRET,
            algorithm="HS256",
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def client(app):
    return app.test_client()
