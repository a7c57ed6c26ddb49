"""
Shared pytest fixtures.

Uses a SQLite file database so no Postgres is required for tests. Tables are
created and dropped around every test, and the reference data (data source,
site config, a small unit-cost catalog) is seeded the way the Alembic seed
migration would.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_observatory.db")

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from app.core.config import Settings, get_settings
from app.core.errors import FeedUnavailableError
from app.core.security import InMemoryRateLimiter, get_rate_limiter
from app.db.base import Base, build_engine, get_db, get_session_factory
from app.main import app
from app.models import DataSource, SiteConfig, UnitCost
from app.services.feed import get_feed_client
from app.services.ingest import IngestionPipeline

SQLITE_URL = "sqlite:///./test_observatory.db"
CRON_SECRET = "test-secret-0123456789-abcdefghijklmnop"
FEED_SOURCE = "Forbes Real-Time Billionaires"

engine = build_engine(SQLITE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

VERIFIED = date(2025, 10, 1)

# (name, display_name, cost, unit, region, category, display_order)
_CATALOG = [
    ("communityWaterWell", "Community Water Well", Decimal("15000"), "well",
     "Sub-Saharan Africa", "water", 1),
    ("waterFilterSystem", "Household Water Filter System", Decimal("50"), "filter",
     "Global", "water", 2),
    ("primarySchool", "Primary School Building", Decimal("75000"), "school",
     "Global", "education", 3),
    ("vaccineChild", "Full Childhood Immunization", Decimal("30"), "child",
     "Global", "healthcare", 4),
    ("us-family-home", "Family Home (US)", Decimal("427000"), "home",
     "United States", "housing", 5),
]

_CONFIG = [
    ("wealth_threshold", "10000000"),
    ("top_entity_limit", "50"),
    ("chart_days_default", "30"),
]


def seed_reference_data(db) -> None:
    db.add(DataSource(name=FEED_SOURCE, url="https://example.test/rtb", status="active"))
    for key, value in _CONFIG:
        db.add(SiteConfig(key=key, value=value))
    for name, display_name, cost, unit, region, category, order in _CATALOG:
        db.add(UnitCost(
            name=name,
            display_name=display_name,
            cost=cost,
            unit=unit,
            description=f"{display_name} (test)",
            source="test",
            source_url="https://example.test/source",
            region=region,
            category=category,
            active=True,
            display_order=order,
            last_verified=VERIFIED,
        ))
    db.commit()


def person(rank, name, worth, uri=None, **extra) -> dict:
    """A raw feed row shaped like the real-time list."""
    row = {"rank": rank, "personName": name, "finalWorth": worth}
    if uri is not None:
        row["uri"] = uri
    row.update(extra)
    return row


class FakeFeed:
    def __init__(self, rows=None, error=None, history=None):
        self.rows = list(rows or [])
        self.error = error
        self.history = dict(history or {})
        self.calls = 0
        self.days_fetched = []

    def fetch(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return [dict(r) if isinstance(r, dict) else r for r in self.rows]

    def fetch_day(self, day):
        self.days_fetched.append(day)
        if day not in self.history:
            raise FeedUnavailableError(f"Feed returned HTTP 404 for {day}")
        return [dict(r) for r in self.history[day]]


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def tables():
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        seed_reference_data(db)
    finally:
        db.close()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def test_settings():
    return Settings(
        DATABASE_URL=SQLITE_URL,
        CRON_SECRET=CRON_SECRET,
        DB_RETRY_BASE_DELAY_SECONDS=0.0,
        FEED_SOURCE_NAME=FEED_SOURCE,
    )


@pytest.fixture()
def feed():
    return FakeFeed()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def limiter(clock):
    return InMemoryRateLimiter(60, clock=clock)


@pytest.fixture()
def pipeline(feed, test_settings):
    return IngestionPipeline(
        TestingSessionLocal, feed, settings=test_settings, sleep=lambda _: None
    )


@pytest.fixture()
def client(feed, limiter, test_settings):
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: TestingSessionLocal
    app.dependency_overrides[get_feed_client] = lambda: feed
    app.dependency_overrides[get_rate_limiter] = lambda: limiter
    app.dependency_overrides[get_settings] = lambda: test_settings
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def auth_headers():
    return {"Authorization": f"Bearer {CRON_SECRET}"}
