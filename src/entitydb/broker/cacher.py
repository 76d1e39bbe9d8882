"""In-memory cacher implementation."""

from __future__ import annotations

import copy as cp
import time
from fnmatch import fnmatchcase
from typing import Any


class MemoryCacher:
    """Very small, in-memory cache with optional TTL (not for large workloads).

    Values are deep-copied in and out so callers never share cached state.

    Args:
        ttl: Seconds an entry stays valid. ``None`` keeps entries until cleaned.
    """

    def __init__(self, ttl: float | None = None) -> None:
        self._ttl = ttl
        self._store: dict[str, tuple[float | None, Any]] = {}

    async def get(self, key: str) -> Any | None:
        item = self._store.get(key)
        if item is None:
            return None
        expires_at, value = item
        if expires_at is not None and time.monotonic() >= expires_at:
            self._store.pop(key, None)
            return None
        return cp.deepcopy(value)

    async def set(self, key: str, value: Any) -> None:
        expires_at = time.monotonic() + self._ttl if self._ttl is not None else None
        self._store[key] = (expires_at, cp.deepcopy(value))

    async def clean(self, pattern: str = "*") -> None:
        for key in [k for k in self._store if fnmatchcase(k, pattern)]:
            del self._store[key]

    def keys(self) -> list[str]:
        """Currently stored keys (expired entries included until read)."""
        return list(self._store)
