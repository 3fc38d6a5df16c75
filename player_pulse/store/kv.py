"""Key-value backends for session-ephemeral state.

Everything player-pulse persists is a string value under a namespaced
key with an explicit TTL.  Two backends implement the KeyValueStore
protocol:

    - InMemoryKeyValueStore: async-safe dict for tests and single-process
      runs.  An asyncio.Lock guards every mutation.  Expiry is checked
      on read, and writes sweep every expired key at most once per
      sweep interval so quiet sessions are reclaimed too.
    - RedisKeyValueStore: redis.asyncio client for shared deployments.

Design notes:
    - append_capped() is the only read-modify-write primitive and must be
      atomic per key, so concurrent writers to one session never lose
      events.  Memory does it under the lock; Redis uses a MULTI pipeline.
    - TTLs are whole seconds.  Callers needing finer liveness must track
      it themselves (see InterventionRecord.is_expired).
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Protocol

import redis.asyncio as redis
from redis.exceptions import RedisError

from player_pulse.foundation import clock

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Raised when the backing store cannot complete an operation."""


class KeyValueStore(Protocol):
    """Protocol for the session-state backend."""

    async def get(self, key: str) -> Optional[str]:
        ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        ...

    async def delete(self, key: str) -> None:
        ...

    async def append_capped(self, key: str, value: str, cap: int, ttl_seconds: int) -> None:
        """Append *value* to the list at *key*, keep the newest *cap* items, reset TTL."""
        ...

    async def read_list(self, key: str) -> list[str]:
        """Return the list at *key* oldest first, or [] if absent."""
        ...

    async def close(self) -> None:
        ...


# ── In-memory backend ────────────────────────────────────────────────────────

class InMemoryKeyValueStore:
    """Async-safe in-memory store with lazy TTL expiry.

    Args:
        sweep_interval_ms: Minimum gap between full sweeps triggered by writes.
    """

    def __init__(self, sweep_interval_ms: int = 60_000) -> None:
        self._lock = asyncio.Lock()
        self._values: dict[str, str] = {}
        self._lists: dict[str, list[str]] = {}
        self._expires_at: dict[str, int] = {}
        self._sweep_interval_ms = sweep_interval_ms
        self._next_sweep_at = 0

    async def get(self, key: str) -> Optional[str]:
        async with self._lock:
            self._evict_if_expired(key)
            return self._values.get(key)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        async with self._lock:
            self._maybe_sweep()
            self._lists.pop(key, None)
            self._values[key] = value
            self._expires_at[key] = clock.now_ms() + ttl_seconds * 1000

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._drop(key)

    async def append_capped(self, key: str, value: str, cap: int, ttl_seconds: int) -> None:
        async with self._lock:
            self._maybe_sweep()
            self._evict_if_expired(key)
            items = self._lists.setdefault(key, [])
            items.append(value)
            if len(items) > cap:
                del items[: len(items) - cap]
            self._expires_at[key] = clock.now_ms() + ttl_seconds * 1000

    async def read_list(self, key: str) -> list[str]:
        async with self._lock:
            self._evict_if_expired(key)
            return list(self._lists.get(key, []))

    async def close(self) -> None:
        async with self._lock:
            self._values.clear()
            self._lists.clear()
            self._expires_at.clear()

    async def expire_stale(self) -> list[str]:
        """Remove every key whose TTL has passed.

        Returns the expired keys for logging / diagnostics.
        """
        async with self._lock:
            return self._purge_expired()

    # ── Internals ────────────────────────────────────────────────────────

    def _maybe_sweep(self) -> None:
        """Must be called while holding self._lock."""
        if clock.now_ms() >= self._next_sweep_at:
            self._purge_expired()

    def _purge_expired(self) -> list[str]:
        """Must be called while holding self._lock."""
        now = clock.now_ms()
        expired = [key for key, expires_at in self._expires_at.items() if now >= expires_at]
        for key in expired:
            self._drop(key)
        if expired:
            logger.info("Expired %d stale key(s)", len(expired))
        self._next_sweep_at = now + self._sweep_interval_ms
        return expired

    def _evict_if_expired(self, key: str) -> None:
        """Must be called while holding self._lock."""
        expires_at = self._expires_at.get(key)
        if expires_at is not None and clock.now_ms() >= expires_at:
            self._drop(key)

    def _drop(self, key: str) -> None:
        """Must be called while holding self._lock."""
        self._values.pop(key, None)
        self._lists.pop(key, None)
        self._expires_at.pop(key, None)


# ── Redis backend ────────────────────────────────────────────────────────────

class RedisKeyValueStore:
    """Redis-backed store.  Lists map to Redis lists, values to strings.

    Args:
        redis_url: Connection URL, e.g. ``redis://localhost:6379/0``.
        client: Pre-built client (tests inject one); overrides *redis_url*.
    """

    def __init__(self, redis_url: str = "redis://localhost:6379/0", client: redis.Redis | None = None) -> None:
        self._redis_url = redis_url
        self._client = client

    @property
    def client(self) -> redis.Redis:
        """Lazy initialization of the Redis client."""
        if self._client is None:
            self._client = redis.from_url(self._redis_url, decode_responses=True)
            logger.info("Redis client created for %s", self._redis_url)
        return self._client

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self.client.get(key)
        except RedisError as exc:
            raise StoreError(f"GET {key} failed: {exc}") from exc

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            await self.client.set(key, value, ex=ttl_seconds)
        except RedisError as exc:
            raise StoreError(f"SET {key} failed: {exc}") from exc

    async def delete(self, key: str) -> None:
        try:
            await self.client.delete(key)
        except RedisError as exc:
            raise StoreError(f"DEL {key} failed: {exc}") from exc

    async def append_capped(self, key: str, value: str, cap: int, ttl_seconds: int) -> None:
        try:
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.rpush(key, value)
                pipe.ltrim(key, -cap, -1)
                pipe.expire(key, ttl_seconds)
                await pipe.execute()
        except RedisError as exc:
            raise StoreError(f"append to {key} failed: {exc}") from exc

    async def read_list(self, key: str) -> list[str]:
        try:
            return await self.client.lrange(key, 0, -1)
        except RedisError as exc:
            raise StoreError(f"LRANGE {key} failed: {exc}") from exc

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def create_store(backend: str, redis_url: str) -> KeyValueStore:
    """Build the configured backend ("memory" or "redis")."""
    if backend == "memory":
        return InMemoryKeyValueStore()
    if backend == "redis":
        return RedisKeyValueStore(redis_url)
    raise ValueError(f"Unknown store backend: {backend!r}")
