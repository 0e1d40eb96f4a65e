import os
import tempfile

_TMP = tempfile.mkdtemp(prefix="pitchlink-tests-")

# must be set before pitchlink.core.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTH_VERIFY_MODE"] = "header"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["PUSH_ENABLED"] = "false"
os.environ["OPENAI_API_KEY"] = ""
os.environ["STORAGE_BACKEND"] = "local"
os.environ["UPLOAD_DIR"] = os.path.join(_TMP, "uploads")
os.environ["LOG_FILE"] = os.path.join(_TMP, "app.log")
os.environ["LOG_LEVEL"] = "INFO"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from pitchlink.core.db import get_db, new_id
from pitchlink.core.init_db import init_db
from pitchlink.main import app
from pitchlink.models.user import Follow, User
from pitchlink.realtime.hub import RealtimeNotifier, get_notifier
from pitchlink.schemas.enums import Role
from pitchlink.services.storage import LocalObjectStorage, get_storage


@pytest.fixture()
def session_factory():
    """Fresh in-memory database per test; every session shares one connection."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    init_db(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    engine.dispose()


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def notifier():
    return RealtimeNotifier()


@pytest.fixture()
def storage(tmp_path):
    return LocalObjectStorage(root=str(tmp_path), url_prefix="/uploads")


@pytest.fixture()
def client(session_factory, notifier, storage):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_storage] = lambda: storage
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def make_user(db):
    def _make(name: str = "user", role: Role = Role.initiator) -> User:
        user = User(name=name, username=f"{name}-{new_id()[:8]}", role=Role(role).value)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture()
def follow(db):
    def _follow(follower: User, following: User) -> None:
        db.add(Follow(follower_id=follower.id, following_id=following.id))
        db.commit()

    return _follow


@pytest.fixture()
def befriend(follow):
    """Mutual follow."""

    def _befriend(a: User, b: User) -> None:
        follow(a, b)
        follow(b, a)

    return _befriend


@pytest.fixture()
def record(notifier):
    """Subscribe a list to a user's channel and return it."""

    def _record(user: User) -> list:
        events = []
        notifier.subscribe_user(user.id, events.append)
        return events

    return _record


def auth(user: User) -> dict:
    return {"X-User-Id": user.id}
