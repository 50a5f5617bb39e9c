# Overview: Short-lived read-through cache for terminal lookups (inventory, categories, quotes).

"""
Read snapshots only. Nothing on the mutating path consults this cache: the
sale executor re-checks stock and funds on the server every time.

Keys are tuples whose first element names the lookup and second the
category, e.g. ("inventory", "airtime", "mtn", None).
"""

from __future__ import annotations

import os
import time
from typing import Any, Callable, Hashable

DEFAULT_TTL_SECONDS = float(os.environ.get("INVENTORY_CACHE_TTL", "30"))


class ReadThroughCache:
    def __init__(self, ttl_seconds: float = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[Hashable, tuple[float, Any]] = {}

    def get_or_load(self, key: Hashable, loader: Callable[[], Any]) -> Any:
        """Return the cached value for key, or call loader and cache its result."""
        now = self._clock()
        entry = self._entries.get(key)
        if entry is not None and entry[0] > now:
            return entry[1]

        value = loader()
        self._entries[key] = (now + self.ttl_seconds, value)
        return value

    def invalidate(self, key: Hashable) -> None:
        self._entries.pop(key, None)

    def invalidate_category(self, category: str | None) -> int:
        """Drop every entry for a category. Returns how many were dropped."""
        if not category:
            return 0
        category = category.strip().lower()
        stale = [
            key for key in self._entries
            if isinstance(key, tuple) and len(key) > 1 and key[1] == category
        ]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
