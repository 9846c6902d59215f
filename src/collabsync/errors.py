"""Error taxonomy shared by the RPC client, cache, coordinators and forms."""

from __future__ import annotations

from collections.abc import Mapping


class CollabSyncError(Exception):
    """Base class for every error raised by collabsync."""


class ValidationError(CollabSyncError):
    """Local input rejected before any request is sent.

    ``field_errors`` maps a field name to its first message, so a form layer
    can show each message inline next to the offending field.
    """

    def __init__(self, field_errors: Mapping[str, str], message: str | None = None) -> None:
        self.field_errors = dict(field_errors)
        if message is None:
            message = "; ".join(f"{name}: {msg}" for name, msg in self.field_errors.items())
        super().__init__(message or "Invalid input")


class TransportError(CollabSyncError):
    """A request failed: non-2xx status, unreadable body, or network failure."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        operation: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.status_code = status_code
        self.operation = operation
        self.cause = cause
        prefix = f"[{operation}] " if operation else ""
        suffix = f" (HTTP {status_code})" if status_code is not None else ""
        super().__init__(f"{prefix}{message}{suffix}")


class StaleCacheError(CollabSyncError):
    """A fetch finished after its entry was invalidated; the value must be refetched."""

    def __init__(self, key: tuple[str, ...]) -> None:
        self.key = key
        super().__init__(f"Cache entry {key!r} was invalidated while its fetch was in flight")
