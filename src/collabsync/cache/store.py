"""Resource cache: last server-confirmed state per scope key.

Entries are never deleted by invalidation.  A stale entry keeps serving its
old value until a refetch replaces it, so bound views do not flicker to an
empty state.  The store also owns the in-flight fetch map used to
de-duplicate concurrent fetches of the same key.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from enum import StrEnum
from typing import Any

from collabsync.cache.keys import CacheKey, matches
from collabsync.errors import StaleCacheError, TransportError
from collabsync.result import Result

logger = logging.getLogger("collabsync.cache")


class FetchStatus(StrEnum):
    IDLE = "idle"
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


class CacheEvent(StrEnum):
    UPDATED = "updated"
    INVALIDATED = "invalidated"
    STATUS = "status"
    REMOVED = "removed"


@dataclass
class CacheEntry:
    """One cached query result.

    ``version`` is the store clock value at the last ``put``; it only ever
    grows.  ``invalidated_at`` is the clock value of the last invalidation
    and lets an in-flight fetch detect that it was overtaken.
    """

    key: CacheKey
    value: Any = None
    has_value: bool = False
    status: FetchStatus = FetchStatus.IDLE
    version: int = 0
    stale: bool = False
    error: Exception | None = None
    updated_at: float | None = None  # monotonic clock
    invalidated_at: int = 0


Listener = Callable[[CacheKey, CacheEvent], None]
Fetcher = Callable[[], Awaitable[Result[Any, TransportError]]]


class ResourceCache:
    """Scope-keyed store of query results.

    ``put`` is last-write-wins, ``invalidate`` unions stale marks.  All
    mutations happen under a ``threading.Lock``; listeners are called after
    the lock is released.
    """

    def __init__(self, *, stale_seconds: float | None = None) -> None:
        self._stale_seconds = stale_seconds
        self._lock = threading.Lock()
        self._entries: dict[CacheKey, CacheEntry] = {}
        self._clock = 0
        self._listeners: list[Listener] = []
        self._inflight: dict[CacheKey, asyncio.Task[Result[Any, TransportError]]] = {}

    # -- reads ---------------------------------------------------------------

    def get(self, key: CacheKey) -> CacheEntry | None:
        """Return a snapshot of the entry for *key*, or ``None``."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            snapshot = replace(entry)
        if not snapshot.stale and self._expired(snapshot):
            snapshot.stale = True
        return snapshot

    def is_stale(self, key: CacheKey) -> bool:
        """True when *key* has no value yet or its value is due for refresh."""
        entry = self.get(key)
        return entry is None or not entry.has_value or entry.stale

    def keys(self, prefix: CacheKey = ()) -> list[CacheKey]:
        with self._lock:
            return [key for key in self._entries if matches(prefix, key)]

    # -- writes --------------------------------------------------------------

    def put(self, key: CacheKey, value: Any, *, stale: bool = False) -> CacheEntry:
        """Store a fresh server value, bumping the entry version."""
        with self._lock:
            entry = self._entries.setdefault(key, CacheEntry(key=key))
            entry.value = value
            entry.has_value = True
            entry.status = FetchStatus.SUCCESS
            entry.version = self._tick()
            entry.stale = stale
            entry.error = None
            entry.updated_at = time.monotonic()
            snapshot = replace(entry)
        self._emit(key, CacheEvent.UPDATED)
        return snapshot

    def set_pending(self, key: CacheKey) -> None:
        with self._lock:
            entry = self._entries.setdefault(key, CacheEntry(key=key))
            entry.status = FetchStatus.PENDING
        self._emit(key, CacheEvent.STATUS)

    def set_error(self, key: CacheKey, error: Exception) -> None:
        """Flag a failed fetch.  The previous value, if any, stays visible."""
        with self._lock:
            entry = self._entries.setdefault(key, CacheEntry(key=key))
            entry.status = FetchStatus.ERROR
            entry.error = error
        self._emit(key, CacheEvent.STATUS)

    def invalidate(self, prefix: CacheKey) -> list[CacheKey]:
        """Mark every entry under *prefix* stale.  Returns the affected keys."""
        with self._lock:
            tick = self._tick()
            affected = [key for key in self._entries if matches(prefix, key)]
            for key in affected:
                entry = self._entries[key]
                entry.stale = True
                entry.invalidated_at = tick
        logger.debug("Invalidated %d entries under %r", len(affected), prefix)
        for key in affected:
            self._emit(key, CacheEvent.INVALIDATED)
        return affected

    def remove(self, prefix: CacheKey) -> list[CacheKey]:
        """Drop every entry under *prefix* entirely."""
        with self._lock:
            affected = [key for key in self._entries if matches(prefix, key)]
            for key in affected:
                del self._entries[key]
        for key in affected:
            self._emit(key, CacheEvent.REMOVED)
        return affected

    def clear(self) -> None:
        self.remove(())

    # -- observers -----------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener* for every entry change.  Returns an unsubscribe callable."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    # -- fetching ------------------------------------------------------------

    def inflight(self, key: CacheKey) -> asyncio.Task[Result[Any, TransportError]] | None:
        with self._lock:
            task = self._inflight.get(key)
        return task if task is not None and not task.done() else None

    def fetch(
        self, key: CacheKey, fetcher: Fetcher
    ) -> asyncio.Task[Result[Any, TransportError]]:
        """Start a fetch for *key*, or join the one already in flight.

        Must be called from a running event loop.  The returned task
        resolves to the fetcher's ``Result``; it raises
        :class:`StaleCacheError` if *key* was invalidated while the fetch was
        running (the value is still stored, but stays stale).
        """
        existing = self.inflight(key)
        if existing is not None:
            logger.debug("Joining in-flight fetch for %r", key)
            return existing
        task = asyncio.ensure_future(self._run_fetch(key, fetcher))
        with self._lock:
            self._inflight[key] = task
        task.add_done_callback(lambda done: self._forget(key, done))
        return task

    async def _run_fetch(self, key: CacheKey, fetcher: Fetcher) -> Result[Any, TransportError]:
        with self._lock:
            started = self._clock
        self.set_pending(key)
        logger.debug("Fetching %r", key)
        try:
            result = await fetcher()
        except Exception as exc:
            self.set_error(key, exc)
            raise

        if not result.is_ok:
            logger.info("Fetch for %r failed: %s", key, result.error)
            self.set_error(key, result.error)
            return result

        with self._lock:
            entry = self._entries.get(key)
            overtaken = entry is not None and entry.invalidated_at > started
        self.put(key, result.value, stale=overtaken)
        if overtaken:
            raise StaleCacheError(key)
        return result

    # -- internal ------------------------------------------------------------

    def _tick(self) -> int:
        self._clock += 1
        return self._clock

    def _expired(self, entry: CacheEntry) -> bool:
        if self._stale_seconds is None or entry.updated_at is None:
            return False
        return time.monotonic() - entry.updated_at > self._stale_seconds

    def _forget(self, key: CacheKey, task: asyncio.Task[Any]) -> None:
        with self._lock:
            if self._inflight.get(key) is task:
                del self._inflight[key]

    def _emit(self, key: CacheKey, event: CacheEvent) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(key, event)
