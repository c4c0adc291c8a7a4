"""
Pytest configuration and fixtures for marketplace scraper tests.
"""

import asyncio
from typing import List

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from marketscraper.base import BrowserLaunchError
from marketscraper.manager import ScrapeManager
from marketscraper.proxies import ProxyPool
from marketscraper.settings import ScraperSettings
from marketscraper.utils import timing
from tests.fakes import FakeMarket, FakePage, FakeSessionFactory, FakeSite
from scraper_api.database import Base, get_db
from scraper_api.main import app, get_manager


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture(autouse=True)
def no_delays(monkeypatch):
    """Skip every real wait and record the requested durations."""
    waits: List[float] = []

    async def fake_pause(seconds):
        waits.append(seconds)
        await asyncio.sleep(0)

    monkeypatch.setattr(timing, "pause", fake_pause)
    return waits


@pytest.fixture
def settings():
    return ScraperSettings(
        retries=2,
        concurrency=2,
        max_pages=5,
        proxy_file=None,
        openai_api_key=None,
        artifacts_dir=None,
    )


@pytest.fixture
def market():
    return FakeMarket()


@pytest.fixture
def session_factory(market):
    return FakeSessionFactory(market)


@pytest.fixture
def site():
    return FakeSite()


@pytest.fixture
def page(market):
    return FakePage(market)


@pytest.fixture
def failing_factory(market):
    return FakeSessionFactory(market, fail_with=BrowserLaunchError("Browser executable not found"))


# ============================================================
# API FIXTURES
# ============================================================

# Create an in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    """Override the get_db dependency for testing."""
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database session for each test."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session, settings, site, session_factory):
    """Create a test client with database and scrape manager overrides."""
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_manager] = lambda: ScrapeManager(
        settings,
        site=site,
        proxy_pool=ProxyPool(),
        session_factory=session_factory,
    )

    # Use TestClient directly without context manager so the lifespan does not touch the real database
    test_client = TestClient(app)
    yield test_client

    app.dependency_overrides.clear()
