"""Tests for the key-value backends."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from player_pulse.store.kv import (
    InMemoryKeyValueStore,
    RedisKeyValueStore,
    StoreError,
    create_store,
)

from tests.test_telemetry import _NOW, _patched_now


class TestInMemoryKeyValueStore:
    @pytest.mark.asyncio
    async def test_set_and_get(self) -> None:
        kv = InMemoryKeyValueStore()
        await kv.set("k", "v", 10)
        assert await kv.get("k") == "v"

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self) -> None:
        assert await InMemoryKeyValueStore().get("missing") is None

    @pytest.mark.asyncio
    async def test_value_expires_at_ttl(self) -> None:
        kv = InMemoryKeyValueStore()
        with _patched_now(_NOW):
            await kv.set("k", "v", 2)
        with _patched_now(_NOW + 1_999):
            assert await kv.get("k") == "v"
        with _patched_now(_NOW + 2_000):
            assert await kv.get("k") is None

    @pytest.mark.asyncio
    async def test_delete(self) -> None:
        kv = InMemoryKeyValueStore()
        await kv.set("k", "v", 10)
        await kv.delete("k")
        assert await kv.get("k") is None

    @pytest.mark.asyncio
    async def test_append_capped_keeps_newest(self) -> None:
        kv = InMemoryKeyValueStore()
        for i in range(6):
            await kv.append_capped("list", str(i), 4, 10)
        assert await kv.read_list("list") == ["2", "3", "4", "5"]

    @pytest.mark.asyncio
    async def test_read_list_returns_copy(self) -> None:
        kv = InMemoryKeyValueStore()
        await kv.append_capped("list", "a", 4, 10)
        items = await kv.read_list("list")
        items.clear()
        assert await kv.read_list("list") == ["a"]

    @pytest.mark.asyncio
    async def test_expire_stale_removes_only_expired(self) -> None:
        kv = InMemoryKeyValueStore()
        with _patched_now(_NOW):
            await kv.set("short", "v", 1)
            await kv.set("long", "v", 100)
            await kv.append_capped("list", "a", 4, 100)
        with _patched_now(_NOW + 5_000):
            assert await kv.expire_stale() == ["short"]
            assert await kv.get("long") == "v"
            assert await kv.read_list("list") == ["a"]

    @pytest.mark.asyncio
    async def test_writes_reclaim_quiet_sessions(self) -> None:
        kv = InMemoryKeyValueStore()
        with _patched_now(_NOW):
            for i in range(100):
                await kv.append_capped(f"dda:actions:s{i}", "x", 10, 1)
        with _patched_now(_NOW + 10 * 3_600_000):
            await kv.append_capped("dda:actions:fresh", "x", 10, 1)
        assert list(kv._lists) == ["dda:actions:fresh"]
        assert list(kv._expires_at) == ["dda:actions:fresh"]

    @pytest.mark.asyncio
    async def test_sweeps_are_rate_limited(self) -> None:
        kv = InMemoryKeyValueStore(sweep_interval_ms=60_000)
        with _patched_now(_NOW):
            await kv.append_capped("old", "x", 10, 1)
        with _patched_now(_NOW + 2_000):
            await kv.append_capped("new", "x", 10, 100)
        assert "old" in kv._lists
        with _patched_now(_NOW + 60_000):
            await kv.set("other", "v", 100)
        assert "old" not in kv._lists


class TestRedisKeyValueStore:
    @pytest.mark.asyncio
    async def test_get_delegates_to_client(self) -> None:
        client = MagicMock()
        client.get = AsyncMock(return_value="payload")
        kv = RedisKeyValueStore(client=client)
        assert await kv.get("k") == "payload"
        client.get.assert_awaited_once_with("k")

    @pytest.mark.asyncio
    async def test_set_passes_ttl(self) -> None:
        client = MagicMock()
        client.set = AsyncMock()
        kv = RedisKeyValueStore(client=client)
        await kv.set("k", "v", 30)
        client.set.assert_awaited_once_with("k", "v", ex=30)

    @pytest.mark.asyncio
    async def test_redis_errors_become_store_errors(self) -> None:
        client = MagicMock()
        client.get = AsyncMock(side_effect=RedisConnectionError("down"))
        kv = RedisKeyValueStore(client=client)
        with pytest.raises(StoreError):
            await kv.get("k")


class TestCreateStore:
    def test_memory_backend(self) -> None:
        assert isinstance(create_store("memory", ""), InMemoryKeyValueStore)

    def test_redis_backend(self) -> None:
        assert isinstance(create_store("redis", "redis://localhost:6379/0"), RedisKeyValueStore)

    def test_unknown_backend_rejected(self) -> None:
        with pytest.raises(ValueError):
            create_store("etcd", "")
