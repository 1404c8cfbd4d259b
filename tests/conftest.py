# tests/conftest.py

from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy_utils import create_database, database_exists, drop_database
from starlette.testclient import TestClient

from app.api import deps
from app.core.clock import FrozenClock, get_clock
from app.core.limiter import limiter
from app.db.base_class import Base
from app.db.session import get_db
from app.main import app
from app.models import DemoRequest, DemoScheduleLock
from tests.utils.demo_request import FROZEN_NOW

# --- E2E Test Database Setup ---
TEST_DATABASE_URL = "sqlite:///./demo_scheduling_test.db"
engine = create_engine(
    TEST_DATABASE_URL, connect_args={"check_same_thread": False, "timeout": 30}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    if database_exists(engine.url):
        drop_database(engine.url)
    create_database(engine.url)
    Base.metadata.create_all(bind=engine)
    yield
    engine.dispose()
    drop_database(engine.url)


@pytest.fixture(scope="session", autouse=True)
def disable_rate_limiting():
    limiter.enabled = False
    yield
    limiter.enabled = True


@pytest.fixture(scope="function")
def db_session():
    """
    A real session against the test database. The service commits, so rows
    are deleted afterwards instead of rolling back an outer transaction.
    """
    session = TestingSessionLocal()
    yield session
    session.rollback()
    session.query(DemoRequest).delete()
    session.query(DemoScheduleLock).delete()
    session.commit()
    session.close()


@pytest.fixture(scope="function")
def session_factory(db_session):
    """Opens extra sessions on the test database, e.g. one per thread."""
    return TestingSessionLocal


@pytest.fixture(scope="function")
def clock():
    return FrozenClock(FROZEN_NOW)


# --- Mock Dependencies Setup ---
class MockTokenPayload:
    def __init__(self, sub="user_123", org_id="org_abc"):
        self.sub = sub
        self.org_id = org_id


def override_get_current_user():
    return MockTokenPayload()


def override_get_internal_api_key():
    return "test-internal-key"


# --- Test Client Fixtures ---
@pytest.fixture(scope="function")
def test_client(clock):
    """
    Provides a TestClient where the database and authentication are mocked.
    This is for INTEGRATION tests.
    """
    app.dependency_overrides[get_db] = lambda: MagicMock()
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[deps.get_current_user] = override_get_current_user
    app.dependency_overrides[deps.get_internal_api_key] = override_get_internal_api_key

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def test_client_e2e(db_session, clock):
    """
    Provides a TestClient that uses the LIVE test database and mocks auth.
    This is for E2E tests.
    """

    def override_get_db_e2e():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db_e2e
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[deps.get_current_user] = override_get_current_user
    app.dependency_overrides[deps.get_internal_api_key] = override_get_internal_api_key

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def anonymous_client_e2e(db_session, clock):
    """Like test_client_e2e, but authentication is NOT mocked."""

    def override_get_db_e2e():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db_e2e
    app.dependency_overrides[get_clock] = lambda: clock

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
