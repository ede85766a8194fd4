"""Tests for the Redis cache wrapper."""

from unittest.mock import AsyncMock

from redis.exceptions import RedisError

from leadline.infrastructure.redis import RedisClient


async def test_disabled_client_is_a_no_op():
    client = RedisClient(enabled=False)
    await client.connect()

    assert not client.enabled
    assert await client.get("tenant:number:+15550000001") is None
    assert await client.set("tenant:number:+15550000001", "1", ttl=60)
    assert await client.delete("tenant:number:+15550000001") == 0


async def test_errors_are_swallowed():
    client = RedisClient(enabled=True)
    client._client = AsyncMock()
    client._client.get.side_effect = RedisError("connection reset")
    client._client.setex.side_effect = RedisError("connection reset")

    assert await client.get("k") is None
    assert await client.set("k", "v", ttl=5) is False


async def test_set_with_ttl_uses_setex():
    client = RedisClient(enabled=True)
    client._client = AsyncMock()
    client._client.setex.return_value = True

    assert await client.set("k", "v", ttl=30)
    client._client.setex.assert_awaited_once_with("k", 30, "v")
