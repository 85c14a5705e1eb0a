"""
Response caching middleware.

Sits in front of the route handlers: a live cache entry is served straight
from the store, otherwise the request runs normally and its body is stored
before the response is sent on.
"""

import logging
from datetime import timedelta
from typing import AsyncIterator, Iterable, Optional

from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from respcache.errors import MalformedKeyInput, StoreUnavailable
from respcache.keys import request_cache_key
from respcache.store import CacheStore

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(hours=2)
CACHE_STATUS_HEADER = "X-Cache"


async def _replay(body: bytes) -> AsyncIterator[bytes]:
    yield body


class CacheMiddleware(BaseHTTPMiddleware):
    """
    Memoizes successful response bodies keyed by path and query parameters.

    Only 200 responses are stored, and only their body. Requests with a
    Range header bypass the cache. A hit is always replayed with status 200
    and the configured media type, whatever the original response carried.
    """

    def __init__(
        self,
        app: ASGIApp,
        store: CacheStore,
        ttl: timedelta = DEFAULT_TTL,
        media_type: str = "application/json",
        methods: Iterable[str] = ("GET",),
        skip_paths: Iterable[str] = (),
    ):
        """
        Initialize middleware.

        Args:
            app: Wrapped ASGI application
            store: Cache store shared by all requests
            ttl: Lifetime of each stored entry
            media_type: Content type used when replaying a cached body
            methods: HTTP methods eligible for caching
            skip_paths: Path prefixes that are never cached
        """
        super().__init__(app)
        if ttl <= timedelta(0):
            raise ValueError(f"ttl must be positive, got {ttl}")
        self.store = store
        self.ttl = ttl
        self.media_type = media_type
        self.methods = frozenset(method.upper() for method in methods)
        self.skip_paths = tuple(skip_paths)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.scope["path"]
        if request.method not in self.methods or self._skipped(path):
            return await call_next(request)

        # Partial content is never cached
        if "range" in request.headers:
            return await call_next(request)

        try:
            key = request_cache_key(request)
        except MalformedKeyInput as e:
            logger.info("Bypassing cache for %s: %s", path, e)
            return await call_next(request)

        cached = await self._lookup(key)
        if cached is not None:
            logger.debug("Cache hit for %s", key)
            return Response(
                content=cached,
                media_type=self.media_type,
                headers={CACHE_STATUS_HEADER: "HIT"},
            )

        # Handler errors propagate unchanged and nothing is stored
        response = await call_next(request)
        if response.status_code != 200:
            return response

        body = b"".join([chunk async for chunk in response.body_iterator])
        response.body_iterator = _replay(body)

        text = self._decode(body)
        if text is None:
            logger.debug("Not caching non-text body for %s", key)
            return response

        if await self._put(key, text):
            logger.debug("Cache miss for %s, stored %d bytes", key, len(body))
            response.headers[CACHE_STATUS_HEADER] = "MISS"
        return response

    def _skipped(self, path: str) -> bool:
        """Match skip_paths on whole path segments."""
        return any(
            path == prefix or path.startswith(prefix.rstrip("/") + "/")
            for prefix in self.skip_paths
        )

    async def _lookup(self, key: str) -> Optional[str]:
        """Look up a key, treating an unavailable store as a miss."""
        try:
            return await run_in_threadpool(self.store.lookup, key)
        except StoreUnavailable as e:
            logger.warning("Cache lookup failed for %s, treating as miss: %s", key, e)
            return None

    async def _put(self, key: str, body: str) -> bool:
        """Store a body; failures are logged and reported as False."""
        try:
            await run_in_threadpool(self.store.put, key, body, self.ttl)
        except StoreUnavailable as e:
            logger.warning("Cache write failed for %s: %s", key, e)
            return False
        return True

    @staticmethod
    def _decode(body: bytes) -> Optional[str]:
        try:
            return body.decode("utf-8")
        except UnicodeDecodeError:
            return None
