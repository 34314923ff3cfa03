"""
Pytest configuration and fixtures for Confessions API tests.
"""
import os

# Keep the application engine off the working directory
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from confess_api.config import Settings
from confess_api.database import Base, get_db
from confess_api.limiter import limiter
from confess_api.main import app
from confess_api.models import Confession
from confess_api.push import PushNotifier, get_notifier
from confess_api.services import ConfessionService

# Disable rate limiting for tests
limiter.enabled = False

# Use in-memory SQLite for tests with shared connection
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Global session for sharing across requests
_test_session = None


def get_test_db():
    """Get the shared test database session."""
    global _test_session
    try:
        yield _test_session
    finally:
        pass


@pytest.fixture(scope="function")
def settings():
    """Settings with a dummy push key."""
    return Settings(push_server_key="test-server-key")


@pytest.fixture(scope="function")
def notifier(settings):
    """Push notifier writing delivery outcomes to the test database."""
    return PushNotifier(settings=settings, session_factory=TestingSessionLocal)


@pytest.fixture(scope="function")
def db(notifier):
    """Create a fresh database for each test."""
    global _test_session

    Base.metadata.create_all(bind=engine)

    _test_session = TestingSessionLocal()

    app.dependency_overrides[get_db] = get_test_db
    app.dependency_overrides[get_notifier] = lambda: notifier

    yield _test_session

    app.dependency_overrides.clear()
    _test_session.close()
    _test_session = None

    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db):
    """Create a test client."""
    with TestClient(app) as c:
        yield c


@pytest.fixture(scope="function")
def service(db, settings):
    """Workflow service bound to the test session."""
    return ConfessionService(db, settings=settings)


@pytest.fixture(scope="function")
def make_confession(service):
    """Factory that submits a pending confession."""
    def _make(content="hello", sender="u1", push_id="token-u1"):
        return service.create(Confession(content=content, sender=sender, push_id=push_id))
    return _make
