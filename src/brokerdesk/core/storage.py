"""Locally persisted key/value state with automatic key prefixing.

Holds the dashboard's client-side state: the serialized settings object, the
cached role label, and the cache-format version marker. Every key is prefixed
with ``{prefix}:`` so several dashboard installs can share one Redis without
reading each other's preferences.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import redis.asyncio as aioredis

from src.brokerdesk.config import get_settings

# ── Module-level Redis pool (lazy init) ─────────────────────────────────────

_redis_pool: aioredis.Redis | None = None


def get_redis_pool() -> aioredis.Redis:
    """Get or create the Redis connection pool singleton."""
    global _redis_pool
    if _redis_pool is None:
        settings = get_settings()
        _redis_pool = aioredis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
        )
    return _redis_pool


async def close_redis() -> None:
    """Close the Redis connection pool."""
    global _redis_pool
    if _redis_pool:
        await _redis_pool.close()
        _redis_pool = None


# ── Local Store Interface ───────────────────────────────────────────────────


class LocalStore(ABC):
    """Named string keys holding serialized values."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the stored value, or None when the key is absent."""
        ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store a value under key."""
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove key. Removing an absent key is a no-op."""
        ...


class MemoryLocalStore(LocalStore):
    """Process-local store; state is lost on restart."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> set[str]:
        """Keys currently held (for inspection in tests and scripts)."""
        return set(self._data)


class RedisLocalStore(LocalStore):
    """Redis-backed store that auto-prefixes all keys with ``{prefix}:``."""

    def __init__(self, redis_client: aioredis.Redis, prefix: str) -> None:
        self._redis = redis_client
        self._prefix = prefix

    def _key(self, key: str) -> str:
        """Generate a prefixed key: {prefix}:{key}."""
        return f"{self._prefix}:{key}"

    async def get(self, key: str) -> str | None:
        return await self._redis.get(self._key(key))

    async def set(self, key: str, value: str) -> None:
        await self._redis.set(self._key(key), value)

    async def delete(self, key: str) -> None:
        await self._redis.delete(self._key(key))
