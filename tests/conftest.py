"""
Shared fixtures for respcache tests.
"""

from datetime import datetime, timedelta

import pytest

from respcache.database import create_db_engine, create_session_factory, init_db
from respcache.store import CacheStore


class FakeClock:
    """Manually advanced clock returning naive UTC datetimes."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta):
        self.now += delta


@pytest.fixture
def engine(tmp_path):
    """SQLite engine with the cache table created."""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'cache.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 1, 1, 12, 0, 0))


@pytest.fixture
def store(session_factory, clock):
    return CacheStore(session_factory, clock=clock)
