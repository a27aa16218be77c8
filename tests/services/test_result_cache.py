import asyncio

import pytest

from anode.cache import TTLCache
from anode.services.cache import ResultCache


class FakeRedis:
    def __init__(self):
        self.data = {}
        self.ttls = {}

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self.data[key] = value
        self.ttls[key] = ex

    async def ping(self):
        return True


class BrokenRedis:
    async def get(self, key):
        raise ConnectionError("redis down")

    async def set(self, key, value, ex=None):
        raise ConnectionError("redis down")

    async def ping(self):
        raise ConnectionError("redis down")


class SlowRedis(FakeRedis):
    async def get(self, key):
        await asyncio.sleep(1)
        return None


@pytest.mark.asyncio
async def test_memory_backend_round_trip():
    cache = ResultCache(redis_url="", local=TTLCache(default_ttl=60, max_size=10))

    await cache.set("paymaster:abc", {"success": True})

    assert cache.backend == "memory"
    assert await cache.get("paymaster:abc") == {"success": True}
    assert await cache.get("paymaster:missing") is None


@pytest.mark.asyncio
async def test_redis_backend_serializes_with_ttl():
    client = FakeRedis()
    cache = ResultCache(client=client, ttl=120)

    await cache.set("paymaster:abc", {"success": True, "paymentMethod": "paymaster"})

    assert cache.backend == "redis"
    assert client.ttls["paymaster:abc"] == 120
    assert await cache.get("paymaster:abc") == {"success": True, "paymentMethod": "paymaster"}


@pytest.mark.asyncio
async def test_redis_errors_are_misses():
    cache = ResultCache(client=BrokenRedis())

    await cache.set("paymaster:abc", {"success": True})

    assert await cache.get("paymaster:abc") is None
    assert (await cache.ping())["status"] == "degraded"


@pytest.mark.asyncio
async def test_slow_reads_time_out_as_misses():
    cache = ResultCache(client=SlowRedis(), timeout=0.01)

    assert await cache.get("paymaster:abc") is None


@pytest.mark.asyncio
async def test_undecodable_payload_is_a_miss():
    client = FakeRedis()
    client.data["paymaster:abc"] = "{not json"
    cache = ResultCache(client=client)

    assert await cache.get("paymaster:abc") is None


@pytest.mark.asyncio
async def test_ttl_cache_expiry_and_eviction():
    now = [1000.0]
    cache = TTLCache(default_ttl=10, max_size=2, clock=lambda: now[0])

    await cache.set("a", 1)
    await cache.set("b", 2)
    await cache.get("a")
    await cache.set("c", 3)

    # "b" was least recently used
    assert await cache.get("b") is None
    assert await cache.get("a") == 1

    now[0] += 11
    assert await cache.get("a") is None
    assert cache.size() == 1
