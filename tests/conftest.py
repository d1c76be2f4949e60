"""
Test configuration and fixtures for the URL shortener.
Every test gets a fresh in-memory database and its own cache.
"""

import os

# Must be set before the app (and its settings) are imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("CACHE_BACKEND", "memory")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from redirector_app.cache.strategies import InMemoryCache, NullCache
from redirector_app.database.connection import Base, get_db
from redirector_app.dependencies import get_cache
from redirector_app.services.url_service import URLService

# In-memory SQLite shared by all connections of the test engine
SQLALCHEMY_TEST_DATABASE_URL = "sqlite://"
engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    This ensures tests are isolated and don't affect each other.
    """
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()

    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def cache():
    return InMemoryCache()


@pytest.fixture
def service(db_session, cache):
    return URLService(db_session, cache=cache)


@pytest.fixture
def uncached_service(db_session):
    """Service whose every redirect goes to the database"""
    return URLService(db_session, cache=NullCache())


def _make_client(db_session, cache):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache] = lambda: cache
    return TestClient(app)


@pytest.fixture(scope="function")
def client(db_session, cache):
    """
    Test client with database and cache dependencies overridden.
    This is the main fixture that API tests use.
    """
    with _make_client(db_session, cache) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def uncached_client(db_session):
    """Test client whose redirects always hit the database"""
    with _make_client(db_session, NullCache()) as test_client:
        yield test_client

    app.dependency_overrides.clear()
