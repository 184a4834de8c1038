from __future__ import annotations

import datetime as dt
import os

# Settings are resolved at import time; pin the test profile first.
os.environ["APP_ENV"] = "test"
os.environ.pop("REDIS_URL", None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from stockwatch.core.cache import SummaryCache  # noqa: E402
from stockwatch.core.config import settings  # noqa: E402
from stockwatch.db import session as db_session_module  # noqa: E402
from stockwatch.db.base_class import Base  # noqa: E402
from stockwatch.db.session import SessionLocal  # noqa: E402
from stockwatch.models.inventory_models import Component, ComponentLot, LotState  # noqa: E402

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")

test_engine = create_engine(
    TEST_DATABASE_URL,
    future=True,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Ensure application code uses the test engine
settings.DATABASE_URL = TEST_DATABASE_URL  # type: ignore[attr-defined]
db_session_module.engine = test_engine  # type: ignore[assignment]
SessionLocal.configure(bind=test_engine)

NOW = dt.datetime(2026, 10, 19, 12, 0, tzinfo=dt.timezone.utc)


class FakeClock:
    """Callable clock that tests can move forward."""

    def __init__(self, start: dt.datetime = NOW):
        self.current = start

    def __call__(self) -> dt.datetime:
        return self.current

    def advance(self, days: float = 0, hours: float = 0) -> None:
        self.current += dt.timedelta(days=days, hours=hours)


class FakeRedis:
    """In-memory stand-in for the three redis calls SummaryCache makes."""

    def __init__(self):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self.store[key] = value
        self.ttls[key] = ttl

    def delete(self, key):
        self.store.pop(key, None)
        self.ttls.pop(key, None)

    def ping(self):
        return True


@pytest.fixture(autouse=True)
def _reset_database_state():
    """Ensure each test sees a fresh database schema."""
    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)
    yield
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def db_session():
    """Provide a database session for tests."""
    session = SessionLocal()
    try:
        yield session
        session.commit()
    finally:
        session.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_component(db_session):
    def _make(name: str = "Oil filter", quantity: int = 50, minimum: int | None = 10, code: str | None = None):
        component = Component(
            name=name,
            internal_code=code,
            quantity_on_hand=quantity,
            minimum_quantity=minimum,
        )
        db_session.add(component)
        db_session.commit()
        return component

    return _make


@pytest.fixture
def make_lot(db_session):
    def _make(
        component: Component,
        lot_code: str = "L-42",
        expires_at: dt.datetime | None = None,
        quantity: int = 20,
        state: LotState = LotState.AVAILABLE,
    ):
        lot = ComponentLot(
            component_id=component.id,
            lot_code=lot_code,
            quantity_remaining=quantity,
            expiration_date=expires_at,
            state=state,
        )
        db_session.add(lot)
        db_session.commit()
        return lot

    return _make


@pytest.fixture
def client():
    """FastAPI TestClient bound to the application, summary cache disabled."""
    from stockwatch.api.main import app

    app.state.summary_cache = SummaryCache(None)
    return TestClient(app)


@pytest.fixture
def fake_redis():
    return FakeRedis()
