# tests/conftest.py

import pytest
from starlette.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from unittest.mock import MagicMock

from app.main import app
from app.api import deps
from app.db.session import get_db
from app.db.base_class import Base
from app.core.limiter import limiter
from app.schemas.token import TokenPayload
from app import models  # noqa: F401


# --- In-memory database shared by every connection ---
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine, "connect")
def _enable_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def mock_redis(monkeypatch):
    """Every Redis publisher gets the same MagicMock."""
    client = MagicMock()
    monkeypatch.setattr("app.services.negotiation_feed.redis_client", client)
    monkeypatch.setattr("app.utils.notifications.redis_client", client)
    monkeypatch.setattr("app.api.v1.endpoints.health.redis_client", client)
    return client


@pytest.fixture(autouse=True)
def disable_rate_limits():
    limiter.enabled = False
    yield
    limiter.enabled = True


# --- Authentication ---
class CurrentUser:
    """Mutable stand-in for the token payload; tests switch users with .set()."""

    def __init__(self):
        self.payload = TokenPayload(sub="user_client", role="client")

    def set(self, sub: str, role: str = "client"):
        self.payload = TokenPayload(sub=sub, role=role)

    def __call__(self):
        return self.payload


@pytest.fixture(scope="function")
def current_user():
    return CurrentUser()


# --- Test Client Fixtures ---
@pytest.fixture(scope="function")
def test_client(db_session, current_user, monkeypatch):
    """
    TestClient backed by the SQLite session, with authentication replaced
    by `current_user` and the scheduler switched off.
    """
    monkeypatch.setattr("app.main.engine", engine)
    monkeypatch.setattr("app.main.init_scheduler", MagicMock())
    monkeypatch.setattr("app.main.shutdown_scheduler", MagicMock())

    app.dependency_overrides[get_db] = lambda: db_session
    app.dependency_overrides[deps.get_current_user] = current_user

    with TestClient(app) as client:
        yield client

    app.dependency_overrides = {}
