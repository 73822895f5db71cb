"""
Test configuration and shared fixtures for the scheduling engine test suite.

Unit tests run against the in-memory repository from tests/utils.py.
Integration tests use an in-memory SQLite database shared through a
StaticPool, so worker threads started by the SQLAlchemy repository see the
same data as the test session.
"""

from datetime import date
from typing import Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from consult_scheduling.core.config import EngineSettings
from consult_scheduling.core.database import Base
# Import all models to ensure they're registered with SQLAlchemy before tables are created
from consult_scheduling.models import (  # noqa: F401
    Appointment,
    BreakPeriod,
    Patient,
    Provider,
    ProviderSchedule,
    ScheduleException,
    WeeklyAvailability,
)
from consult_scheduling.shared_types import ScheduleData

from tests.utils import InMemoryScheduleRepository, weekday_schedule


# A fixed Monday used as the reference date throughout the suite
MONDAY = date(2025, 1, 6)


@pytest.fixture(scope="session")
def db_engine() -> Generator[Engine, None, None]:
    """
    Create an in-memory SQLite engine for the test session.

    StaticPool keeps a single connection so every session (and thread)
    shares the same in-memory database.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine: Engine) -> Generator[sessionmaker, None, None]:
    """
    Provide a session factory bound to the test engine.

    Tables are emptied after each test for isolation.
    """
    factory = sessionmaker(bind=db_engine, autocommit=False, autoflush=False, expire_on_commit=False)

    yield factory

    with db_engine.begin() as connection:
        for table in reversed(Base.metadata.sorted_tables):
            connection.execute(table.delete())


@pytest.fixture(scope="function")
def db_session(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """Provide a database session for seeding test data."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def settings() -> EngineSettings:
    """Engine settings with the documented defaults, independent of the environment."""
    return EngineSettings(
        default_slot_duration_minutes=30,
        buffer_minutes=15,
        alternative_search_days=7,
        max_alternatives=3,
        schedule_change_horizon_days=90,
        repository_timeout_seconds=2.0,
        max_concurrent_provider_queries=5,
    )


@pytest.fixture
def monday() -> date:
    return MONDAY


@pytest.fixture
def schedule() -> ScheduleData:
    """Monday to Friday 09:00-17:00 for provider 'provider-1', no breaks."""
    return weekday_schedule()


@pytest.fixture
def repository(schedule: ScheduleData) -> InMemoryScheduleRepository:
    """In-memory repository holding the default schedule and one verified provider."""
    repo = InMemoryScheduleRepository()
    repo.add_provider("provider-1", "Dr. Ada Lovelace")
    repo.add_schedule(schedule)
    return repo
