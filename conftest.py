import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from tradeguard.api.deps import get_clock
from tradeguard.core.security import Identity, create_identity_token
from tradeguard.crud.attempts import DatabaseAttemptStore
from tradeguard.db.init_db import init_db
from tradeguard.db.session import create_db_engine, get_db, make_session_factory
from tradeguard.main import app
from tradeguard.security.rate_limit import AttemptTracker, InMemoryAttemptStore, get_attempt_tracker


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 10, 18, 12, 0, 7, tzinfo=timezone.utc))


@pytest.fixture
def engine():
    engine = create_db_engine("sqlite://", poolclass=StaticPool)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def file_session_factory(tmp_path):
    """File-backed database, for tests that use one connection per thread."""
    engine = create_db_engine(
        f"sqlite:///{tmp_path / 'tradeguard.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    init_db(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture(params=["memory", "database"])
def attempt_store(request, session_factory):
    if request.param == "database":
        return DatabaseAttemptStore(session_factory)
    return InMemoryAttemptStore()


@pytest.fixture
def tracker(clock):
    return AttemptTracker(InMemoryAttemptStore(), clock=clock)


@pytest.fixture
def client(session_factory, tracker, clock):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_attempt_tracker] = lambda: tracker
    app.dependency_overrides[get_clock] = lambda: clock
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(user_id: str = "user-1", email: str | None = "alice@example.com") -> dict:
    token = create_identity_token(Identity(user_id=user_id, email=email))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_headers():
    return auth_headers
