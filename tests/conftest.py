"""Shared fixtures: in-memory SQLite, fakeredis, and a TestClient wired to both."""

from datetime import date, timedelta

import fakeredis
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from studio_scheduler.database import enable_sqlite_fk, get_db, init_db
from studio_scheduler.main import create_app
from studio_scheduler.models import DailyTemplates, Providers, TemplateBreaks
from studio_scheduler.redis_client import get_redis
from studio_scheduler.services.slots import BookingConfig
from studio_scheduler.services.slots.timeutil import day_of_week, get_zone, local_today

# 2026-10-19 is a Monday (day_of_week == 1)
MONDAY = date(2026, 10, 19)
TUESDAY = date(2026, 10, 20)


def upcoming(weekday: int) -> date:
    """First date after provider-local today (New York) falling on weekday."""
    dt = local_today(get_zone("America/New_York")) + timedelta(days=1)
    while day_of_week(dt) != weekday:
        dt += timedelta(days=1)
    return dt


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(engine, "connect", enable_sqlite_fk)
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture
def redis():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def config():
    return BookingConfig(default_timezone="America/New_York")


@pytest.fixture
def client(engine, redis):
    """TestClient sharing the in-memory database and fake Redis with the test."""
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    app = create_app(init_database=False)
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = lambda: redis
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def provider(db):
    obj = Providers(
        name="Dr. Smith",
        slug="dr-smith",
        timezone="America/New_York",
        slot_duration_minutes=60,
        booking_horizon_days=90,
        is_active=1,
    )
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


@pytest.fixture
def monday_template(db, provider):
    """Monday 09:00-17:00 with a lunch break 12:00-13:00."""
    obj = DailyTemplates(
        provider_id=provider.id,
        day_of_week=1,
        start_time="09:00",
        end_time="17:00",
        is_enabled=1,
    )
    obj.breaks = [TemplateBreaks(start_time="12:00", end_time="13:00", label="Lunch")]
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj
