"""
Background task that periodically purges expired cache entries.
"""

import asyncio
import logging
from enum import Enum
from typing import Optional

from starlette.concurrency import run_in_threadpool

from respcache.errors import StoreUnavailable
from respcache.store import CacheStore

logger = logging.getLogger(__name__)


class SweeperState(str, Enum):
    """Sweeper lifecycle states."""
    IDLE = "idle"
    PURGING = "purging"


class ExpirySweeper:
    """
    Runs CacheStore.purge_expired() on a fixed interval until stopped.

    The interval restarts when a purge returns, so sweeps are spaced
    interval seconds apart from completion. Stopping waits for an in-flight
    purge to finish instead of cancelling it.
    """

    def __init__(self, store: CacheStore, interval: float, purge_on_start: bool = False):
        """
        Initialize sweeper.

        Args:
            store: Cache store to purge
            interval: Seconds to wait between sweeps
            purge_on_start: Run one sweep immediately when started
        """
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.store = store
        self.interval = interval
        self.purge_on_start = purge_on_start
        self._state = SweeperState.IDLE
        self._stop_event: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def state(self) -> SweeperState:
        return self._state

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self):
        """Start the sweep loop on the running event loop."""
        if self.running:
            raise RuntimeError("Sweeper is already running")
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run())
        logger.info("Expiry sweeper started, interval %ss", self.interval)

    async def stop(self):
        """Signal shutdown and wait for the loop to exit."""
        if self._task is None:
            return
        self._stop_event.set()
        await self._task
        self._task = None
        logger.info("Expiry sweeper stopped")

    async def sweep_once(self) -> Optional[int]:
        """
        Run a single purge.

        Returns:
            Number of purged entries, or None if the purge failed
        """
        self._state = SweeperState.PURGING
        try:
            deleted = await run_in_threadpool(self.store.purge_expired)
        except StoreUnavailable as e:
            logger.warning("Cache sweep failed, retrying next interval: %s", e)
            return None
        except Exception:
            logger.exception("Unexpected error during cache sweep")
            return None
        finally:
            self._state = SweeperState.IDLE

        logger.info("Cache sweep removed %d expired entries", deleted)
        return deleted

    async def _run(self):
        if self.purge_on_start:
            await self.sweep_once()

        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                await self.sweep_once()
