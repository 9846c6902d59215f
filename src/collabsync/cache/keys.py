"""Cache key construction and hierarchical prefix matching.

Keys are tuples of strings, ``(resource_kind, scope...)``.  A prefix matches
a key element by element, so ``("rooms", "w1")`` covers
``("rooms", "w1", "archived")`` but never ``("rooms", "w10")``.
"""

from __future__ import annotations

CacheKey = tuple[str, ...]

ROOMS = "rooms"
PROJECTS = "projects"


def make_key(*parts: str) -> CacheKey:
    """Build a key, rejecting empty or non-string parts."""
    if not parts:
        raise ValueError("A cache key needs at least a resource kind")
    for part in parts:
        if not isinstance(part, str) or not part:
            raise ValueError(f"Invalid cache key part {part!r} in {parts!r}")
    return tuple(parts)


def matches(prefix: CacheKey, key: CacheKey) -> bool:
    """Return True if *key* equals *prefix* or lies below it."""
    return len(prefix) <= len(key) and key[: len(prefix)] == prefix


def rooms_key(workspace_id: str | None = None) -> CacheKey:
    """``("rooms",)`` for every room list, ``("rooms", W)`` for one workspace."""
    return make_key(ROOMS) if workspace_id is None else make_key(ROOMS, workspace_id)


def projects_key(workspace_id: str | None = None) -> CacheKey:
    return make_key(PROJECTS) if workspace_id is None else make_key(PROJECTS, workspace_id)
