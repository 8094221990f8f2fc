from __future__ import annotations

from asyncio import Lock
import copy
import time
from typing import Any

from .config import STATS_CACHE_TTL_SECONDS


class TTLCache:
    """A simple in-memory TTL cache with async-safe access.

    Values are deep-copied on the way in and out. Every match carries a
    generation number that ``invalidate_match`` bumps; a ``set`` stamped with
    an older generation is dropped.
    """

    def __init__(self, ttl_seconds: float = 300.0) -> None:
        self._ttl = ttl_seconds
        self._lock = Lock()
        self._store: dict[Any, tuple[Any, float]] = {}
        self._generations: dict[str, int] = {}

    async def get(self, key: Any) -> Any | None:
        now = time.monotonic()
        async with self._lock:
            entry = self._store.get(key)
            if not entry:
                return None
            value, expires_at = entry
            if expires_at <= now:
                self._store.pop(key, None)
                return None
            return copy.deepcopy(value)

    async def generation(self, match_id: str) -> int:
        async with self._lock:
            return self._generations.get(match_id, 0)

    async def set(
        self,
        key: Any,
        value: Any,
        ttl_seconds: float | None = None,
        *,
        generation: int | None = None,
    ) -> bool:
        ttl = self._ttl if ttl_seconds is None else ttl_seconds
        expires_at = time.monotonic() + max(ttl, 0.0)
        async with self._lock:
            if generation is not None and isinstance(key, tuple) and key:
                if self._generations.get(key[0], 0) != generation:
                    return False
            if ttl <= 0:
                self._store.pop(key, None)
                return False
            self._store[key] = (copy.deepcopy(value), expires_at)
            return True

    async def invalidate_match(self, match_id: str) -> None:
        """Drop every entry whose tuple key starts with ``match_id``."""

        if not match_id:
            return
        async with self._lock:
            self._generations[match_id] = self._generations.get(match_id, 0) + 1
            keys_to_remove = [
                key
                for key in self._store
                if isinstance(key, tuple) and key and key[0] == match_id
            ]
            for key in keys_to_remove:
                self._store.pop(key, None)

    async def clear(self) -> None:
        async with self._lock:
            self._store.clear()
            self._generations.clear()


# Keys are ``(match_id, team_id, set_id | None)``.
match_stats_cache = TTLCache(ttl_seconds=STATS_CACHE_TTL_SECONDS)
