"""
Navigation Cache
================
Process-wide stale-while-revalidate cache, keyed by menu.

Each entry moves through an explicit state machine driven by the time
elapsed since it was built:

    FRESH    age <  fresh_seconds                   -> serve, no work
    STALE    age <  fresh_seconds + stale_seconds   -> serve, rebuild in background
    EXPIRED  otherwise (or no entry)                -> block on a rebuild

At most one rebuild per key is in flight; concurrent callers join it.
A failed background rebuild keeps the stale entry. A failed blocking
rebuild propagates and publishes nothing.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from storefront import config

logger = logging.getLogger(__name__)


class CacheState(str, Enum):
    FRESH = "fresh"
    STALE = "stale"
    EXPIRED = "expired"


@dataclass
class CacheEntry:
    data: Any
    built_at: float

    def age(self, now: float) -> float:
        return max(0.0, now - self.built_at)


Builder = Callable[[], Awaitable[Any]]


class NavigationCache:
    """
    Explicit cache collaborator for the navigation indexer.

    Args:
        fresh_seconds: window during which an entry is served untouched
        stale_seconds: additional grace window served while revalidating
        clock: monotonic time source (injectable for tests)
    """

    def __init__(
        self,
        fresh_seconds: float = config.NAV_FRESH_SECONDS,
        stale_seconds: float = config.NAV_STALE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.fresh_seconds = fresh_seconds
        self.stale_seconds = stale_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._in_flight: Dict[str, asyncio.Task] = {}

    def state_of(self, key: str) -> CacheState:
        entry = self._entries.get(key)
        if entry is None:
            return CacheState.EXPIRED
        age = entry.age(self._clock())
        if age < self.fresh_seconds:
            return CacheState.FRESH
        if age < self.fresh_seconds + self.stale_seconds:
            return CacheState.STALE
        return CacheState.EXPIRED

    def peek(self, key: str) -> Optional[CacheEntry]:
        return self._entries.get(key)

    def is_rebuilding(self, key: str) -> bool:
        return key in self._in_flight

    def keys(self):
        return list(self._entries)

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    async def _run_build(self, key: str, build: Builder) -> Any:
        started = self._clock()
        try:
            data = await build()
        except Exception as e:
            logger.error(f"[nav-cache] rebuild of '{key}' failed: {type(e).__name__}: {e}")
            raise
        self._entries[key] = CacheEntry(data=data, built_at=self._clock())
        logger.info(f"[nav-cache] rebuilt '{key}' in {self._clock() - started:.3f}s")
        return data

    def _on_done(self, key: str, task: asyncio.Task) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
        # mark the exception retrieved; background failures are logged in _run_build
        if not task.cancelled():
            task.exception()

    def _start_build(self, key: str, build: Builder) -> asyncio.Task:
        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._run_build(key, build))
            self._in_flight[key] = task
            task.add_done_callback(lambda t, key=key: self._on_done(key, t))
        return task

    async def get_or_build(self, key: str, build: Builder) -> Any:
        state = self.state_of(key)
        if state is CacheState.FRESH:
            return self._entries[key].data

        if state is CacheState.STALE:
            stale = self._entries[key].data
            if not self.is_rebuilding(key):
                logger.info(f"[nav-cache] '{key}' is stale, revalidating in background")
            self._start_build(key, build)
            return stale

        # shield: a cancelled caller must not cancel the shared rebuild
        return await asyncio.shield(self._start_build(key, build))

    async def refresh(self, key: str, build: Builder) -> Any:
        """Force a rebuild (joining one already in flight)."""
        return await asyncio.shield(self._start_build(key, build))
