"""
Exceptions raised by the response cache.
"""


class CacheError(Exception):
    """Base class for response cache errors."""
    pass


class StoreUnavailable(CacheError):
    """The durable store could not be reached or the operation did not complete."""

    def __init__(self, message: str, operation: str):
        super().__init__(message)
        self.operation = operation


class MalformedKeyInput(CacheError):
    """Request path or query data cannot be turned into a cache key."""
    pass
