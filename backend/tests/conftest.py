"""
Shared test fixtures for StockFlow tests

Provides database setup, client creation, materials and the acting user header
"""
import os

# Settings are read at import time; point them at SQLite before the app loads
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from decimal import Decimal
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from stockflow.main import app
from stockflow.db.base import Base
from stockflow.db.session import get_db
from stockflow.core.limiter import limiter
from stockflow.services import cache_service

from tests.factories import create_test_material, reset_sequences, set_on_hand

# Disable rate limiting for tests
limiter.enabled = False


# Create in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables(engine):
    """Create all tables for testing using SQLAlchemy metadata"""
    # Import all models to ensure they're registered with Base
    import stockflow.models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def drop_tables(engine):
    """Drop all tables after testing"""
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def _isolated_state():
    """Fresh factory sequences and no leftover cache hooks per test"""
    reset_sequences()
    cache_service.clear_hooks()
    yield
    cache_service.clear_hooks()


@pytest.fixture
def db_session():
    """Create a fresh database session for each test"""
    create_tables(engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        drop_tables(engine)


@pytest.fixture
def db(db_session):
    """Short alias used by API tests"""
    return db_session


@pytest.fixture
def client(db_session):
    """Create a test client with database override"""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def actor_headers():
    """Identity header set by the authentication layer in front of the API"""
    return {"X-User-Id": "clerk-1"}


@pytest.fixture
def material(db_session):
    """A material with no stock"""
    material = create_test_material(db_session, sku="MAT-PLA-BLK", name="PLA Black")
    db_session.commit()
    return material


@pytest.fixture
def stocked_material(db_session):
    """A material with 20 units on hand"""
    material = create_test_material(db_session, sku="MAT-PETG-WHT", name="PETG White")
    set_on_hand(db_session, material, Decimal("20"))
    db_session.commit()
    return material


@pytest.fixture
def cache_calls():
    """Record every cache invalidation"""
    calls = []
    cache_service.register_hook(calls.append)
    return calls
