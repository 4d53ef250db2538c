import os
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Keep the app's own engine off disk
os.environ.setdefault("DATABASE_URL", "sqlite://")

from app.main import app
from app.db import Base, get_db
from app.deps import get_cooking_service
from app.services.cooking_session import CookingSessionService
from app.services.session_store import SqlSessionStore

# --- Test Database Setup ---

SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool  # Share the single in-memory connection across sessions
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def setup_database():
    """Create tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def store():
    return SqlSessionStore(TestingSessionLocal)


@pytest.fixture
def service(store):
    """Session service with exact-match batching and no rest between phases."""
    return CookingSessionService(store, tolerance=0, rest_minutes=0, recent_limit=10)


@pytest.fixture
def client(service):
    """Test client with DB and service overrides."""
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cooking_service] = lambda: service
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def db_session():
    """Direct database session for assertions."""
    session = TestingSessionLocal()
    yield session
    session.close()


class BrokenSession:
    """Stand-in for a DB session whose connection has gone away."""

    def get(self, *args, **kwargs):
        from sqlalchemy.exc import OperationalError
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    scalars = get

    def rollback(self):
        pass

    def close(self):
        pass


@pytest.fixture
def broken_store():
    return SqlSessionStore(BrokenSession)
