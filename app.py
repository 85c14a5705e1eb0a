import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI

from respcache.config import Settings
from respcache.database import create_db_engine, create_session_factory, init_db
from respcache.middleware import CacheMiddleware
from respcache.store import CacheStore
from respcache.sweeper import ExpirySweeper

if os.path.exists('.dev.env'):
    load_dotenv('.dev.env')

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application with its cache store, middleware and sweeper.

    Run with: uvicorn app:create_app --factory

    Args:
        settings: Explicit settings; read from the environment when omitted

    Returns:
        Configured FastAPI application
    """
    if settings is None:
        settings = Settings.from_env()

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    engine = create_db_engine(settings.database_url)
    store = CacheStore(create_session_factory(engine))
    sweeper = ExpirySweeper(
        store,
        interval=settings.sweep_interval_seconds,
        purge_on_start=settings.sweep_on_start,
    )

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        """Lifespan event handler - runs on startup and shutdown."""
        # Startup: create tables and begin sweeping
        init_db(engine)
        sweeper.start()
        logger.info("Response cache ready, ttl %ss", settings.cache_ttl_seconds)

        yield

        # Shutdown: let any in-flight sweep finish, then release connections
        await sweeper.stop()
        engine.dispose()

    app = FastAPI(
        title="respcache",
        description="HTTP response cache backed by a relational store",
        version="0.1.0",
        lifespan=lifespan
    )
    app.add_middleware(
        CacheMiddleware,
        store=store,
        ttl=settings.cache_ttl,
        skip_paths=("/docs", "/redoc", "/openapi.json"),
    )
    app.state.cache_store = store
    app.state.sweeper = sweeper

    @app.get("/")
    def read_root():
        return {
            "message": "respcache API",
            "docs": "/docs",
            "cache": {
                "ttl_seconds": settings.cache_ttl_seconds,
                "sweep_interval_seconds": settings.sweep_interval_seconds,
            }
        }

    return app
