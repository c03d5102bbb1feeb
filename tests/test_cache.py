import asyncio
import fnmatch

import pytest
import redis

from park_and_ride_api.app.services.cache_service import CacheService


class FakeRedis:
    """In-memory stand-in for ``redis.asyncio.Redis`` (string values only)."""

    def __init__(self, fail=False):
        self.data = {}
        self.expiry = {}
        self.fail = fail

    def _check(self):
        if self.fail:
            raise redis.ConnectionError("connection refused")

    async def get(self, key):
        self._check()
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self._check()
        self.data[key] = value
        self.expiry[key] = ex
        return True

    async def delete(self, *keys):
        self._check()
        return sum(1 for key in keys if self.data.pop(key, None) is not None)

    async def scan_iter(self, match="*"):
        self._check()
        for key in list(self.data):
            if fnmatch.fnmatchcase(key, match):
                yield key

    async def flushdb(self):
        self._check()
        self.data.clear()

    async def ping(self):
        self._check()
        return True


@pytest.fixture
def fake_redis():
    client = FakeRedis()
    CacheService.set_client(client)
    return client


def test_disabled_cache_misses():
    assert asyncio.run(CacheService.set("key", {"a": 1})) is False
    assert asyncio.run(CacheService.get("key")) is None
    assert asyncio.run(CacheService.health()) == {"status": "DISABLED", "connected": False}


def test_set_get_delete(fake_redis):
    assert asyncio.run(CacheService.set("key", {"a": [1, 2]}, ttl=60)) is True
    assert fake_redis.expiry["key"] == 60
    assert asyncio.run(CacheService.get("key")) == {"a": [1, 2]}
    assert asyncio.run(CacheService.delete("key")) is True
    assert asyncio.run(CacheService.get("key")) is None


def test_default_ttl(fake_redis):
    asyncio.run(CacheService.set("key", 1))
    assert fake_redis.expiry["key"] == 300


def test_delete_pattern_and_clear(fake_redis):
    for key in ("parking:slots:available:*:*", "parking:slots:available:Airport:*", "rides:types"):
        asyncio.run(CacheService.set(key, []))
    assert asyncio.run(CacheService.delete_pattern("parking:slots:*")) == 2
    assert set(fake_redis.data) == {"rides:types"}
    assert asyncio.run(CacheService.clear()) is True
    assert fake_redis.data == {}


def test_redis_errors_are_treated_as_miss():
    CacheService.set_client(FakeRedis(fail=True))
    assert asyncio.run(CacheService.get("key")) is None
    assert asyncio.run(CacheService.set("key", 1)) is False
    assert asyncio.run(CacheService.delete_pattern("*")) == 0
    health = asyncio.run(CacheService.health())
    assert health["status"] == "ERROR"
    assert health["connected"] is False


def test_available_slots_are_cached_and_invalidated(client, admin, user, slot, fake_redis):
    first = client.get("/api/v1/parking/slots/available").json()
    assert [s["id"] for s in first] == [slot["id"]]
    assert "parking:slots:available:*:*" in fake_redis.data

    client.post(
        "/api/v1/parking/slots",
        json={"slot_number": "A-02", "location": "Downtown"},
        headers=admin["headers"],
    )
    assert "parking:slots:available:*:*" not in fake_redis.data
    assert len(client.get("/api/v1/parking/slots/available").json()) == 2


def test_ride_types_are_cached(client, fake_redis):
    assert client.get("/api/v1/rides/types").status_code == 200
    assert fake_redis.expiry["rides:types"] == 3600
    fake_redis.data["rides:types"] = '[{"type": "cab", "name": "Cab", "base_price": 1, "description": "cached"}]'
    assert client.get("/api/v1/rides/types").json()[0]["description"] == "cached"
