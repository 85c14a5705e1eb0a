"""
Database engine and session management.

The engine and session factory are created by the application at startup and
handed to the cache store, rather than living in module globals.
"""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from respcache.db_models import Base


def create_db_engine(database_url: str) -> Engine:
    """
    Create the SQLAlchemy engine for a connection string.

    Args:
        database_url: SQLAlchemy URL, e.g. postgresql://... or sqlite:///cache.db

    Returns:
        Engine bound to the URL (no connection is opened yet)
    """
    if not database_url:
        raise ValueError("database_url is required")

    connect_args = {}
    if database_url.startswith("sqlite"):
        # Store calls run on threadpool workers
        connect_args["check_same_thread"] = False

    return create_engine(database_url, connect_args=connect_args, pool_pre_ping=True)


def create_session_factory(engine: Engine) -> sessionmaker:
    """Create a session factory bound to the engine."""
    return sessionmaker(bind=engine, expire_on_commit=False)


@contextmanager
def db_session(session_factory: sessionmaker) -> Iterator[Session]:
    """
    Context manager for a database session.

    Commits when the block succeeds and rolls back on any error, so
    everything done inside the block applies as a whole or not at all.

    Usage:
        with db_session(factory) as db:
            # Use db session
            pass
    """
    db = session_factory()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db(engine: Engine):
    """
    Initialize the database by creating all tables.
    """
    Base.metadata.create_all(bind=engine)
