"""
Database models for respcache.
"""

from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# Upper bound of the key column; longer keys are never stored.
MAX_KEY_LENGTH = 450


class CachedResponse(Base):
    """
    One memoized response body.

    Rows are append-only: several rows may share a key, and a row is only
    removed by the expiry sweep once expires_at has passed.
    """
    __tablename__ = "cached_responses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String(MAX_KEY_LENGTH), nullable=False, index=True)
    body = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)
