"""Mutation coordinator: one write operation, its state, and its side effects.

Overlapping calls on the same coordinator follow a *supersede* policy.  The
most recent call owns the visible state; an older call still settles its
own record once, still notifies (unless suppression is configured), and
still invalidates the cache.  Only the current call runs the caller's
success continuation.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from enum import StrEnum
from typing import Generic, TypeVar

from collabsync.cache.keys import CacheKey
from collabsync.cache.store import ResourceCache
from collabsync.errors import TransportError
from collabsync.result import Err, Result
from collabsync.service.notify import Notifier

logger = logging.getLogger("collabsync.mutations")

V = TypeVar("V")
T = TypeVar("T")


class MutationStatus(StrEnum):
    IDLE = "idle"
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class MutationRecord(Generic[V, T]):
    """State of a single invocation."""

    call_id: int
    variables: V
    status: MutationStatus = MutationStatus.PENDING
    data: T | None = None
    error: Exception | None = None

    def settle(self, result: Result[T, Exception]) -> None:
        if self.status != MutationStatus.PENDING:
            raise RuntimeError(f"Mutation #{self.call_id} already settled ({self.status})")
        if result.is_ok:
            self.status = MutationStatus.SUCCESS
            self.data = result.value
        else:
            self.status = MutationStatus.ERROR
            self.error = result.error


Invalidation = Callable[[V, T], Iterable[CacheKey]]


class MutationCoordinator(Generic[V, T]):
    """Runs one kind of write and reconciles the cache afterwards."""

    def __init__(
        self,
        name: str,
        mutation_fn: Callable[[V], Awaitable[Result[T, TransportError]]],
        *,
        cache: ResourceCache,
        notifier: Notifier,
        success_message: str,
        error_message: str,
        invalidates: Invalidation[V, T] | None = None,
        suppress_superseded_notifications: bool = False,
    ) -> None:
        self.name = name
        self._mutation_fn = mutation_fn
        self._cache = cache
        self._notifier = notifier
        self._success_message = success_message
        self._error_message = error_message
        self._invalidates = invalidates
        self._suppress_superseded = suppress_superseded_notifications
        self._calls = 0
        self._current: MutationRecord[V, T] | None = None

    # -- state ---------------------------------------------------------------

    @property
    def state(self) -> MutationRecord[V, T] | None:
        """Record of the most recent call, or ``None`` when idle."""
        return self._current

    @property
    def status(self) -> MutationStatus:
        return self._current.status if self._current is not None else MutationStatus.IDLE

    @property
    def is_pending(self) -> bool:
        return self.status == MutationStatus.PENDING

    def reset(self) -> None:
        """Drop the current record.  Calls still in flight lose their continuation."""
        self._current = None

    # -- invocation ----------------------------------------------------------

    async def mutate(
        self, variables: V, *, on_success: Callable[[T], None] | None = None
    ) -> Result[T, TransportError]:
        """Run the write.

        Transport failures come back as ``Err`` and are reported through the
        notifier; they are never raised.  *on_success* receives the typed
        response body, and only if this call is still the current one.
        """
        self._calls += 1
        record: MutationRecord[V, T] = MutationRecord(call_id=self._calls, variables=variables)
        self._current = record
        logger.debug("%s #%d pending", self.name, record.call_id)

        try:
            result = await self._mutation_fn(variables)
        except TransportError as exc:
            result = Err(exc)
        except Exception as exc:
            record.settle(Err(exc))
            raise
        record.settle(result)

        superseded = record is not self._current
        if superseded:
            logger.info("%s #%d settled after being superseded", self.name, record.call_id)
        notify = not (superseded and self._suppress_superseded)

        if not result.is_ok:
            logger.warning("%s #%d failed: %s", self.name, record.call_id, result.error)
            if notify:
                self._notifier.error(self._error_message)
            return result

        logger.debug("%s #%d succeeded", self.name, record.call_id)
        if notify:
            self._notifier.success(self._success_message)
        if self._invalidates is not None:
            for prefix in self._invalidates(variables, result.value):
                self._cache.invalidate(prefix)
        if on_success is not None and not superseded:
            on_success(result.value)
        return result
