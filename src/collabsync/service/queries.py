"""Query binder: keeps one cache entry populated for whoever is looking at it."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from collabsync.cache.keys import CacheKey
from collabsync.cache.store import CacheEvent, FetchStatus, ResourceCache
from collabsync.errors import StaleCacheError, TransportError
from collabsync.result import Result

logger = logging.getLogger("collabsync.queries")

T = TypeVar("T")


@dataclass(frozen=True)
class QueryState(Generic[T]):
    """What a bound view sees: the last good value plus fetch status."""

    key: CacheKey
    data: T | None
    status: FetchStatus
    is_stale: bool
    error: Exception | None = None
    version: int = 0

    @property
    def is_loading(self) -> bool:
        """Fetching with nothing to show yet."""
        return self.status == FetchStatus.PENDING and self.data is None

    @property
    def is_fetching(self) -> bool:
        return self.status == FetchStatus.PENDING

    @property
    def is_success(self) -> bool:
        return self.status == FetchStatus.SUCCESS

    @property
    def is_error(self) -> bool:
        return self.status == FetchStatus.ERROR


Observer = Callable[[QueryState[T]], None]


class QueryBinder(Generic[T]):
    """Binds a scope key to a fetcher.

    While bound, the binder watches the cache: when its entry is invalidated
    it schedules a refetch.  Binders sharing a key share the in-flight fetch
    through :meth:`ResourceCache.fetch`.  A failed fetch flags the entry as
    ``error`` and leaves the previous value in place.
    """

    def __init__(
        self,
        cache: ResourceCache,
        key: CacheKey,
        fetcher: Callable[[], Awaitable[Result[T, TransportError]]],
        *,
        enabled: bool = True,
        max_stale_retries: int = 3,
    ) -> None:
        self._cache = cache
        self._key = key
        self._fetcher = fetcher
        self._enabled = enabled
        self._max_stale_retries = max_stale_retries
        self._observers: list[Observer[T]] = []
        self._unsubscribe: Callable[[], None] | None = None
        self._refresh: asyncio.Task[QueryState[T]] | None = None

    @property
    def key(self) -> CacheKey:
        return self._key

    @property
    def bound(self) -> bool:
        return self._unsubscribe is not None

    @property
    def state(self) -> QueryState[T]:
        entry = self._cache.get(self._key)
        if entry is None:
            return QueryState(key=self._key, data=None, status=FetchStatus.IDLE, is_stale=True)
        return QueryState(
            key=self._key,
            data=entry.value if entry.has_value else None,
            status=entry.status,
            is_stale=entry.stale or not entry.has_value,
            error=entry.error,
            version=entry.version,
        )

    # -- binding -------------------------------------------------------------

    def bind(self) -> QueryState[T]:
        """Start watching the entry and make sure a fetch is outstanding if needed."""
        if self._unsubscribe is None:
            self._unsubscribe = self._cache.subscribe(self._on_cache_event)
        self.ensure_fetch()
        return self.state

    def unbind(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def subscribe(self, observer: Observer[T]) -> Callable[[], None]:
        """Call *observer* with the new state whenever the entry changes."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    # -- fetching ------------------------------------------------------------

    def ensure_fetch(self) -> asyncio.Task[QueryState[T]] | None:
        """Schedule a refetch if the entry is missing or stale.

        Returns the scheduled (or already running) task, or ``None`` when no
        fetch is needed, the binder is disabled, or no event loop is running.
        """
        if not self._enabled or not self._cache.is_stale(self._key):
            return None
        if self._refresh is not None and not self._refresh.done():
            return self._refresh
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop; deferring fetch of %r", self._key)
            return None
        self._refresh = loop.create_task(self.refetch())
        self._refresh.add_done_callback(self._report_failure)
        return self._refresh

    async def refetch(self) -> QueryState[T]:
        """Fetch now, joining any in-flight fetch for the same key.

        If the entry is invalidated while the fetch runs, the fetch is
        repeated up to ``max_stale_retries`` times.
        """
        if not self._enabled:
            return self.state
        for attempt in range(self._max_stale_retries + 1):
            try:
                await self._cache.fetch(self._key, self._fetcher)
            except StaleCacheError:
                logger.debug("%r invalidated mid-fetch (attempt %d)", self._key, attempt + 1)
                continue
            break
        else:
            logger.warning("Giving up on %r after %d stale fetches", self._key, attempt + 1)
        return self.state

    # -- internal ------------------------------------------------------------

    def _report_failure(self, task: asyncio.Task[QueryState[T]]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background fetch of %r failed", self._key, exc_info=exc)

    def _on_cache_event(self, key: CacheKey, event: CacheEvent) -> None:
        if key != self._key:
            return
        if event == CacheEvent.INVALIDATED:
            self.ensure_fetch()
        if self._observers:
            state = self.state
            for observer in list(self._observers):
                observer(state)
