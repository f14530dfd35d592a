# backend/tests/conftest.py

from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from core.config import get_settings
from core.database import Base, build_engine, get_db
from modules.punchcards.services.clock import get_clock
from tests.factories import BaseFactory, FrozenClock


@pytest.fixture
def test_engine():
    """In-memory SQLite engine with a fresh schema per test"""
    engine = build_engine("sqlite://")
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def db_session(test_engine):
    """Create a database session for testing"""
    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=test_engine
    )
    session = TestingSessionLocal()
    BaseFactory.bind_session(session)
    try:
        yield session
    finally:
        BaseFactory.reset_session()
        session.close()


@pytest.fixture
def clock():
    """Tuesday 10 March 2026, 09:00 UTC"""
    return FrozenClock(datetime(2026, 3, 10, 9, 0))


@pytest.fixture
def settings():
    """Live settings object; tests may patch attributes on it."""
    return get_settings()


@pytest.fixture
def app(db_session, clock):
    from app.main import create_app

    application = create_app()

    def override_get_db():
        yield db_session

    application.dependency_overrides[get_db] = override_get_db
    application.dependency_overrides[get_clock] = lambda: clock
    return application


@pytest.fixture
def client(app):
    """Test client for API requests"""
    return TestClient(app)
