"""Shared test fixtures for TripTracker."""
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from triptracker.db.session import build_engine, get_db, init_db
from triptracker.main import app
from triptracker.models.user import User
from triptracker.services.currency_service import CurrencyConverter
from triptracker.services.trip_service import TripAggregate, create_trip


class FakeClock:
    """Settable clock; advance() moves it forward."""

    def __init__(self, now: datetime = None):
        self.now = now or datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite so separate sessions see each other's commits."""
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def converter():
    return CurrencyConverter()


@pytest.fixture
def clock():
    return FakeClock()


def make_user(db, username: str) -> User:
    user = User(username=username, email=f"{username}@example.com")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def owner(db):
    return make_user(db, "owner")


@pytest.fixture
def alice(db):
    return make_user(db, "alice")


@pytest.fixture
def bob(db):
    return make_user(db, "bob")


@pytest.fixture
def trip(db, owner, converter):
    """Five-day trip with a 1000 USD budget."""
    return create_trip(
        db,
        owner_id=owner.id,
        title="Lisbon",
        destination="Lisbon, Portugal",
        start_date=date(2026, 6, 1),
        end_date=date(2026, 6, 5),
        budget=Decimal("1000.00"),
        currency="USD",
        converter=converter,
    )


@pytest.fixture
def aggregate(db, trip, converter, clock):
    return TripAggregate(db, trip, converter=converter, clock=clock)


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
