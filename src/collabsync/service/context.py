"""The object every factory receives: RPC client, cache, notifier, settings."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

import httpx

from collabsync.cache.store import ResourceCache
from collabsync.rpc.client import RpcClient
from collabsync.service.notify import LoggingNotifier, Notifier
from collabsync.settings import Settings


@dataclass
class SyncContext:
    """Explicit dependencies for queries, mutations and forms.

    One context per client process (or per test).  Nothing in collabsync
    keeps module-level state, so isolated contexts never share cache entries.
    """

    rpc: RpcClient
    cache: ResourceCache
    notifier: Notifier = field(default_factory=LoggingNotifier)
    settings: Settings = field(default_factory=Settings)

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        *,
        notifier: Notifier | None = None,
        headers: Mapping[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> SyncContext:
        if settings is None:
            settings = Settings()
        return cls(
            rpc=RpcClient.from_settings(settings, headers=headers, transport=transport),
            cache=ResourceCache(stale_seconds=settings.cache_stale_seconds),
            notifier=notifier or LoggingNotifier(),
            settings=settings,
        )

    async def aclose(self) -> None:
        await self.rpc.aclose()
