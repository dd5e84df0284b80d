"""Lightweight in-memory TTL cache for rarely-changing lookups.

Used for the public plan catalog: identical requests within the TTL window
are served without touching the database.
"""

import time
from collections.abc import Hashable
from typing import Any

_cache: dict[Hashable, tuple[float, Any]] = {}

# Default TTL in seconds
DEFAULT_TTL = 300


def get(key: Hashable, ttl: float = DEFAULT_TTL) -> Any | None:
    """Return cached value if present and not expired, else None."""
    entry = _cache.get(key)
    if entry is None:
        return None
    stored_at, value = entry
    if time.monotonic() - stored_at > ttl:
        _cache.pop(key, None)
        return None
    return value


def put(key: Hashable, value: Any) -> None:
    _cache[key] = (time.monotonic(), value)


def clear() -> None:
    """Clear all cached entries."""
    _cache.clear()
