"""Pytest configuration for tests - in-memory database per test."""

import os

# Set test database URL BEFORE any imports from src
# This ensures the SessionLocal and engine use the test database
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from src.models import Base  # noqa: E402
from src.services.config import get_settings  # noqa: E402


@pytest.fixture
def db_session():
    """Create test database session on a fresh in-memory database."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def settings_env(monkeypatch):
    """Apply environment overrides to settings for one test.

    Usage: settings_env(LOCALE="en_US", CURRENCY="USD")
    """

    def apply(**env):
        for key, value in env.items():
            monkeypatch.setenv(key, str(value))
        get_settings.cache_clear()
        return get_settings()

    yield apply
    get_settings.cache_clear()
