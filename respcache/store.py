"""
Database-backed store of cached response bodies with TTL support.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from respcache.database import db_session
from respcache.db_models import CachedResponse
from respcache.errors import StoreUnavailable

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the form stored in the table."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class CacheStore:
    """
    Stores response bodies keyed by cache key, each with its own expiry.

    Writes always insert a new row. Lookups only return live rows and never
    delete anything; expired rows stay until purge_expired() removes them.
    When several live rows share a key, the most recently created one wins.
    """

    def __init__(self, session_factory: sessionmaker, clock: Callable[[], datetime] = utcnow):
        """
        Initialize store.

        Args:
            session_factory: SQLAlchemy session factory for the cache database
            clock: Returns the current time as a naive UTC datetime
        """
        self.session_factory = session_factory
        self.clock = clock

    def lookup(self, key: str) -> Optional[str]:
        """
        Get the cached body for a key if a live entry exists.

        Args:
            key: Cache key

        Returns:
            Cached body or None if no live entry exists

        Raises:
            StoreUnavailable: If the database operation fails
        """
        now = self.clock()
        try:
            with db_session(self.session_factory) as db:
                entry = (
                    db.query(CachedResponse)
                    .filter(CachedResponse.key == key, CachedResponse.expires_at > now)
                    .order_by(CachedResponse.created_at.desc(), CachedResponse.id.desc())
                    .first()
                )
                return entry.body if entry is not None else None
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Cache lookup failed: {e}", "lookup") from e

    def put(self, key: str, body: str, ttl: timedelta):
        """
        Insert a new entry expiring ttl from now.

        Existing entries for the same key are left alone.

        Args:
            key: Cache key
            body: Response body to store
            ttl: Time-to-live, must be positive

        Raises:
            ValueError: If ttl is not positive
            StoreUnavailable: If the database operation fails
        """
        if ttl <= timedelta(0):
            raise ValueError(f"ttl must be positive, got {ttl}")

        created_at = self.clock()
        try:
            with db_session(self.session_factory) as db:
                db.add(CachedResponse(
                    key=key,
                    body=body,
                    created_at=created_at,
                    expires_at=created_at + ttl,
                ))
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Cache write failed: {e}", "put") from e

    def purge_expired(self) -> int:
        """
        Delete every entry whose expiry time has passed.

        Returns:
            Number of deleted entries

        Raises:
            StoreUnavailable: If the database operation fails
        """
        now = self.clock()
        try:
            with db_session(self.session_factory) as db:
                deleted = db.query(CachedResponse).filter(
                    CachedResponse.expires_at <= now
                ).delete(synchronize_session=False)
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Cache purge failed: {e}", "purge_expired") from e

        logger.debug("Purged %d expired cache entries older than %s", deleted, now)
        return deleted

    def count(self, key: Optional[str] = None) -> int:
        """
        Count stored entries, live or expired.

        Args:
            key: Only count entries for this key when given

        Raises:
            StoreUnavailable: If the database operation fails
        """
        try:
            with db_session(self.session_factory) as db:
                query = db.query(CachedResponse)
                if key is not None:
                    query = query.filter(CachedResponse.key == key)
                return query.count()
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Cache count failed: {e}", "count") from e
