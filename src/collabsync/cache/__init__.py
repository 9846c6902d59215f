"""Scope-keyed resource cache with hierarchical invalidation."""

from collabsync.cache.keys import CacheKey, make_key, matches, projects_key, rooms_key
from collabsync.cache.store import CacheEntry, CacheEvent, FetchStatus, ResourceCache

__all__ = [
    "CacheEntry",
    "CacheEvent",
    "CacheKey",
    "FetchStatus",
    "ResourceCache",
    "make_key",
    "matches",
    "projects_key",
    "rooms_key",
]
